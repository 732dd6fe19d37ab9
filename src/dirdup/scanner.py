import asyncio
import datetime
import logging
import os
from pathlib import Path

from .config import ScanOptions
from .commands.scan import do_scan, ScanArgs, ScanResult
from .index.corpus import FileProcessedCallback
from .report.path import get_report_directory_path
from .report.store import ReportManifest, ReportStore
from .utils.processor import Processor

logger = logging.getLogger(__name__)


class Scanner:
    """Workflow layer for finding duplicated directory trees.

    A Scanner pairs a Processor with a fixed set of ScanOptions and offers the
    user-facing operations: scan a tree for directory pairs with overlapping content,
    and persist the ranked result as a report next to the scanned tree.

    The filesystem is only ever read; save_report() writes the report directory and
    nothing else.
    """

    def __init__(self, processor: Processor, options: ScanOptions | None = None):
        self._processor = processor
        self._options = options if options is not None else ScanOptions()

    @property
    def options(self) -> ScanOptions:
        return self._options

    def scan(self, root: str | os.PathLike, on_file_processed: FileProcessedCallback | None = None) -> ScanResult:
        """Find directory pairs under ``root`` that share fingerprinted files.

        Args:
            root: Directory tree to scan
            on_file_processed: Observer called once per regular file considered

        Returns:
            ScanResult with candidates ranked by descending intersection

        Raises:
            ScanError: The root is not a directory, or a file is unreadable with abort_on_error
            ScanCancelled: The scan ran longer than the configured timeout
        """
        return asyncio.run(do_scan(
            Path(root),
            ScanArgs(self._processor, self._options, on_file_processed)
        ))

    def save_report(self, result: ScanResult) -> Path:
        """Write ``result`` to the report directory next to the scanned root.

        Any earlier report for the same root is replaced.

        Returns:
            Path of the report directory
        """
        report_dir = get_report_directory_path(result.root)
        manifest = ReportManifest(
            root_path=str(result.root),
            timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
            options=self._options.to_dict(),
        )
        count = ReportStore(report_dir).write_report(manifest, result.candidates)
        logger.info(f"Wrote {count} candidates to {report_dir}")
        return report_dir
