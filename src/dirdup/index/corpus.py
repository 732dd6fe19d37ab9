"""Corpus index linking fingerprints to directories and directories to fingerprints."""
import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Callable

from ..fingerprint import compute_fingerprint
from ..utils.walker import FileEntry

logger = logging.getLogger(__name__)

FileProcessedCallback = Callable[[FileEntry, int | None], None]


class ScanError(RuntimeError):
    """A scan could not complete."""


class ScanCancelled(ScanError):
    """A scan was stopped before ingestion completed; no partial result survives."""


class CorpusIndex:
    """Immutable pair of mappings built by CorpusIndexBuilder.

    - fingerprint -> directories containing at least one file with that fingerprint
    - directory -> fingerprints present in that directory

    A directory ``d`` is in the set for fingerprint ``f`` iff ``f`` is in the set for ``d``.
    """

    def __init__(self, fingerprint_directories: Mapping[int, frozenset[Path]],
                 directory_fingerprints: Mapping[Path, frozenset[int]]):
        self._fingerprint_directories = MappingProxyType(dict(fingerprint_directories))
        self._directory_fingerprints = MappingProxyType(dict(directory_fingerprints))

    @property
    def fingerprint_directories(self) -> Mapping[int, frozenset[Path]]:
        return self._fingerprint_directories

    @property
    def directory_fingerprints(self) -> Mapping[Path, frozenset[int]]:
        return self._directory_fingerprints

    def directories_for(self, fingerprint: int) -> frozenset[Path]:
        return self._fingerprint_directories.get(fingerprint, frozenset())

    def fingerprints_for(self, directory: Path) -> frozenset[int]:
        return self._directory_fingerprints.get(directory, frozenset())

    def directories(self) -> Iterator[Path]:
        return iter(self._directory_fingerprints)

    def __len__(self):
        """Number of distinct fingerprints."""
        return len(self._fingerprint_directories)

    def __contains__(self, directory: Path) -> bool:
        return directory in self._directory_fingerprints


class CorpusIndexBuilder:
    """Single-writer accumulator for a CorpusIndex.

    Accumulation is commutative: the built index does not depend on the order files
    are added. Each accepted file updates both mappings in one call; a file whose
    fingerprint cannot be computed updates neither.
    """

    def __init__(
            self,
            min_size: int,
            head_bytes: int,
            *,
            abort_on_error: bool = False,
            on_file_processed: FileProcessedCallback | None = None):
        """
        Args:
            min_size: Files smaller than this are ignored
            head_bytes: Head-byte limit passed to the fingerprinter
            abort_on_error: Raise ScanError on the first unreadable file instead of skipping it
            on_file_processed: Observer called once per considered file with its fingerprint,
                               or None if the file was ignored or unreadable
        """
        self.min_size = min_size
        self.head_bytes = head_bytes
        self._abort_on_error = abort_on_error
        self._on_file_processed = on_file_processed
        self._fingerprint_directories: dict[int, set[Path]] = {}
        self._directory_fingerprints: dict[Path, set[int]] = {}
        self._built = False
        self.files_indexed = 0
        self.files_ignored = 0
        self.files_skipped = 0

    def accepts(self, entry: FileEntry) -> bool:
        """Check the size floor; ignored files are reported to the observer here."""
        if entry.size < self.min_size:
            self.files_ignored += 1
            self._notify(entry, None)
            return False
        return True

    def add_fingerprint(self, entry: FileEntry, fingerprint: int):
        """Insert a fingerprinted file under its parent directory."""
        self._check_open()
        directory = entry.path.parent
        self._fingerprint_directories.setdefault(fingerprint, set()).add(directory)
        self._directory_fingerprints.setdefault(directory, set()).add(fingerprint)
        self.files_indexed += 1
        self._notify(entry, fingerprint)

    def add_failure(self, entry: FileEntry, error: OSError):
        """Record a file that could not be read.

        Raises:
            ScanError: abort_on_error is set
        """
        self._check_open()
        if self._abort_on_error:
            raise ScanError(f"Cannot read {entry.path}: {error}") from error
        logger.warning(f"Skipping unreadable file {entry.path}: {error}")
        self.files_skipped += 1
        self._notify(entry, None)

    def add_file(self, entry: FileEntry):
        """Fingerprint a file in the calling thread and insert it."""
        if not self.accepts(entry):
            return
        try:
            fingerprint = compute_fingerprint(entry.path, entry.size, self.head_bytes)
        except OSError as e:
            self.add_failure(entry, e)
        else:
            self.add_fingerprint(entry, fingerprint)

    def add_files(self, entries: Iterable[FileEntry]):
        for entry in entries:
            self.add_file(entry)

    def build(self) -> CorpusIndex:
        """Freeze the accumulated mappings. The builder cannot be used afterwards."""
        self._check_open()
        self._built = True
        index = CorpusIndex(
            {f: frozenset(dirs) for f, dirs in self._fingerprint_directories.items()},
            {d: frozenset(fps) for d, fps in self._directory_fingerprints.items()})
        self._fingerprint_directories = {}
        self._directory_fingerprints = {}
        return index

    def discard(self):
        """Drop everything accumulated so far."""
        self._built = True
        self._fingerprint_directories = {}
        self._directory_fingerprints = {}

    def _check_open(self):
        if self._built:
            raise RuntimeError("Corpus index builder is already closed")

    def _notify(self, entry: FileEntry, fingerprint: int | None):
        if self._on_file_processed is not None:
            self._on_file_processed(entry, fingerprint)
