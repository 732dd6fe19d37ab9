"""Optional cProfile capture.

Setting DIRDUP_PROFILE to a directory profiles one command run. The main process
writes ``main_<pid>.prof`` and every fingerprint worker writes ``worker_<pid>.prof``
when it exits, all below ``$DIRDUP_PROFILE/<timestamp_ms>_<main_pid>/``. Workers
killed by Processor.terminate() write nothing.
"""
import cProfile
import functools
import os
import time
from multiprocessing import util
from pathlib import Path
from typing import Callable, TypeVar, ParamSpec

P = ParamSpec('P')
T = TypeVar('T')

PROFILE_ENVIRONMENT_VARIABLE = 'DIRDUP_PROFILE'
_SESSION_ENVIRONMENT_VARIABLE = '_DIRDUP_PROFILE_SESSION'

# Run before the pool's own exit handlers in the worker
_WORKER_DUMP_PRIORITY = 100

# Forked workers inherit it enabled and must switch it off before profiling themselves
_main_profiler: cProfile.Profile | None = None


def get_profile_dir() -> Path | None:
    """Directory receiving the dumps of this run, or None when profiling is off."""
    base = os.environ.get(PROFILE_ENVIRONMENT_VARIABLE)
    if not base:
        return None
    session = os.environ.get(_SESSION_ENVIRONMENT_VARIABLE) or f"{int(time.time() * 1000)}_{os.getpid()}"
    return Path(base) / session


def _dump(profiler: cProfile.Profile, profile_file: Path):
    profiler.disable()
    profile_file.parent.mkdir(parents=True, exist_ok=True)
    profiler.dump_stats(str(profile_file))


def profile_main(func: Callable[P, T]) -> Callable[P, T]:
    """Profile the command entry point.

    The session directory is published through the environment before the command
    runs, so Processor pools created by the command resolve the same directory.
    """
    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        global _main_profiler
        profile_dir = get_profile_dir()
        if profile_dir is None:
            return func(*args, **kwargs)

        os.environ[_SESSION_ENVIRONMENT_VARIABLE] = profile_dir.name
        profiler = _main_profiler = cProfile.Profile()
        profiler.enable()
        try:
            return func(*args, **kwargs)
        finally:
            _main_profiler = None
            _dump(profiler, profile_dir / f"main_{os.getpid()}.prof")

    return wrapper


def start_worker_profile(profile_dir: Path | None):
    """Pool initializer: profile the worker process for its whole lifetime.

    ``profile_dir`` is resolved by the parent, so it does not depend on the environment
    the worker was started with.
    """
    if profile_dir is None:
        return
    if _main_profiler is not None:
        _main_profiler.disable()

    profiler = cProfile.Profile()
    util.Finalize(None, _dump, args=(profiler, profile_dir / f"worker_{os.getpid()}.prof"),
                  exitpriority=_WORKER_DUMP_PRIORITY)
    profiler.enable()
