import asyncio
import logging
import os
from asyncio import TaskGroup
from pathlib import Path
from typing import NamedTuple

from ..config import ScanOptions
from ..index.corpus import CorpusIndexBuilder, FileProcessedCallback, ScanCancelled, ScanError
from ..index.overlap import find_overlaps
from ..report.candidate import DuplicateCandidate
from ..report.ranking import rank
from ..utils.processor import Processor
from ..utils.throttler import Throttler
from ..utils.walker import FileEntry, iter_regular_files

logger = logging.getLogger(__name__)


class ScanArgs(NamedTuple):
    """Arguments for a scan."""
    processor: Processor  # Pool computing fingerprints
    options: ScanOptions
    on_file_processed: FileProcessedCallback | None = None


class ScanResult(NamedTuple):
    """Outcome of a completed scan.

    Attributes:
        root: Scanned root, absolute
        candidates: Ranked candidates passing the intersection threshold
        directories: Number of directories holding at least one fingerprinted file
        files_indexed: Files fingerprinted and inserted into the index
        files_ignored: Files below the size floor
        files_skipped: Unreadable files left out of the index
    """
    root: Path
    candidates: list[DuplicateCandidate]
    directories: int
    files_indexed: int
    files_ignored: int
    files_skipped: int


class ScanPipeline:
    """Walk a tree, fingerprint its files in the process pool and rank directory overlaps.

    Fingerprints are computed concurrently, but every index insertion runs on the event
    loop thread, one file at a time, so the builder keeps a single writer.
    """

    def __init__(self, root: Path, args: ScanArgs):
        self._root = root
        self._processor = args.processor
        self._options = args.options
        self._builder = CorpusIndexBuilder(
            args.options.min_size,
            args.options.head_bytes,
            abort_on_error=args.options.abort_on_error,
            on_file_processed=args.on_file_processed)

    async def run(self) -> ScanResult:
        logger.info(f"Scanning {self._root}")
        try:
            async with asyncio.timeout(self._options.timeout):
                await self._ingest()
        except TimeoutError as e:
            self._builder.discard()
            raise ScanCancelled(f"Scan of {self._root} exceeded {self._options.timeout} seconds") from e
        except BaseException:
            self._builder.discard()
            raise

        builder = self._builder
        index = builder.build()
        logger.info(f"Indexed {builder.files_indexed} files in {len(index.directory_fingerprints)} directories "
                    f"({builder.files_ignored} below size floor, {builder.files_skipped} skipped)")

        candidates = rank(find_overlaps(index), self._options.min_intersection)
        logger.info(f"Found {len(candidates)} duplicate candidates")

        return ScanResult(
            self._root, candidates, len(index.directory_fingerprints),
            builder.files_indexed, builder.files_ignored, builder.files_skipped)

    async def _ingest(self):
        try:
            async with TaskGroup() as tg:
                throttler = Throttler(tg, self._processor.concurrency * 2)

                for entry in iter_regular_files(self._root, self._options.excluded_paths):
                    # The walk runs on the loop thread; let the timeout fire between entries
                    await asyncio.sleep(0)
                    if self._builder.accepts(entry):
                        await throttler.schedule(self._handle_file(entry))
        except BaseExceptionGroup as group:
            for error in group.exceptions:
                if isinstance(error, ScanError):
                    raise error
            raise

    async def _handle_file(self, entry: FileEntry):
        try:
            fingerprint = await self._processor.fingerprint(entry.path, entry.size, self._builder.head_bytes)
        except OSError as e:
            self._builder.add_failure(entry, e)
        else:
            self._builder.add_fingerprint(entry, fingerprint)


async def do_scan(root: Path, args: ScanArgs) -> ScanResult:
    """Scan ``root`` and return its ranked duplicate directory candidates.

    Raises:
        ScanError: The root is not a directory, or a file is unreadable under abort_on_error
        ScanCancelled: The timeout expired; nothing of the partial index is kept
    """
    root = Path(os.path.normpath(str(root.absolute())))
    if not root.is_dir():
        raise ScanError(f"Not a directory: {root}")
    return await ScanPipeline(root, args).run()
