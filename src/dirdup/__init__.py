from .scanner import Scanner
from .config import ScanOptions, ConfigurationError
from .settings import Settings
from .commands.scan import ScanResult
from .index.corpus import CorpusIndex, CorpusIndexBuilder, ScanError, ScanCancelled
from .index.overlap import find_overlaps
from .report.candidate import DuplicateCandidate
from .report.ranking import rank
from .report.store import ReportManifest, ReportStore, ReportNotFound
from .utils.processor import Processor
