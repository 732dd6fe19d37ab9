import asyncio
import logging
import multiprocessing
from multiprocessing.pool import Pool
import pathlib
from typing import Awaitable

from ..fingerprint import compute_fingerprint
from .profiling import get_profile_dir, start_worker_profile

logger = logging.getLogger(__name__)


class Processor:
    """Process pool that computes fingerprints off the event loop.

    Each fingerprint computation opens, reads and closes its file inside one worker
    call, so no file handle outlives a single file.
    """

    def __init__(self, concurrency: int | None = None):
        if concurrency is None:
            concurrency = multiprocessing.cpu_count()

        self._concurrency = concurrency
        self._pool: Pool = Pool(
            self._concurrency, initializer=start_worker_profile, initargs=(get_profile_dir(),))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.terminate()
        else:
            self.close()

    def close(self):
        """Let queued computations finish, then wait for the workers to exit."""
        self._pool.close()
        self._pool.join()

    def terminate(self):
        """Stop workers immediately, dropping queued computations."""
        self._pool.terminate()

    @property
    def concurrency(self):
        return self._concurrency

    def fingerprint(self, path: pathlib.Path, size: int, head_bytes: int) -> Awaitable[int]:
        logger.debug(f"Starting fingerprint computation for: {path}")

        async def log_and_compute():
            result = await self._evaluate(compute_fingerprint, path, size, head_bytes)
            logger.debug(f"Completed fingerprint computation for: {path}")
            return result

        return log_and_compute()

    def _evaluate(self, func, *args):
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def post(callback, value):
            # The loop may be gone after a cancelled scan; nobody awaits the result then
            try:
                loop.call_soon_threadsafe(callback, value)
            except RuntimeError:
                pass

        def resolve(value):
            if not future.done():
                future.set_result(value)

        def reject(error):
            if not future.done():
                future.set_exception(error)

        self._pool.apply_async(func, args=args,
                               callback=lambda v: post(resolve, v),
                               error_callback=lambda e: post(reject, e))

        return future
