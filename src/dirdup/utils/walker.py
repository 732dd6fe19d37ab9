import functools
import logging
import os
import stat
from pathlib import Path
from typing import Generator, Iterator, NamedTuple

logger = logging.getLogger(__name__)


class FileEntry(NamedTuple):
    """A regular file found under the scanned root.

    Attributes:
        path: Absolute, normalised path of the file
        size: Size in bytes
    """
    path: Path
    size: int


class FileContext:
    """Context object for a file or directory during traversal.

    Stat information is taken with follow_symlinks=False and cached on first use.
    """
    def __init__(self, parent, name: str | None, path: Path | None = None):
        self._parent: FileContext | None = parent
        self._name: str | None = name
        self._stat: os.stat_result | None = None
        self._path: Path | None = path

    @property
    def stat(self) -> os.stat_result:
        if self._stat is None:
            if self._path is None:
                raise LookupError("stat not available and path not provided")
            self._stat = self._path.stat(follow_symlinks=False)
        return self._stat

    @functools.cached_property
    def relative_path(self) -> Path | None:
        """Path from the root context, built from the cached parent path."""
        if self._name is None:
            return None

        if self._parent is None:
            return Path(self._name)

        parent_path = self._parent.relative_path
        if parent_path is None:
            return Path(self._name)

        return parent_path / self._name

    def is_file(self):
        return stat.S_ISREG(self.stat.st_mode)

    def is_dir(self):
        return stat.S_ISDIR(self.stat.st_mode)


def walk(path: Path, parent: FileContext) -> Generator[tuple[Path, FileContext], None | bool, None]:
    """Recursively traverse a directory without following symlinks.

    Sending False back into the generator after an entry was yielded prunes it.
    """
    try:
        children = sorted(path.iterdir())
    except OSError as e:
        logger.warning(f"Cannot list directory {path}: {e}")
        return

    child: Path
    for child in children:
        context = FileContext(parent, child.name, path=child)
        prune = yield child, context

        if prune is False:
            continue

        try:
            is_dir = context.is_dir()
        except OSError as e:
            logger.warning(f"Cannot stat {child}: {e}")
            continue

        if is_dir:
            yield from walk(child, context)


class WalkPolicy(NamedTuple):
    """Policy controlling filesystem traversal.

    Attributes:
        excluded_paths: Paths relative to the root that are neither yielded nor descended into
    """
    excluded_paths: frozenset[Path] = frozenset()


def walk_with_policy(path: Path, policy: WalkPolicy) -> Iterator[tuple[Path, FileContext]]:
    """Walk a tree, pruning the excluded paths of ``policy``.

    Yields:
        Tuples of (absolute_path, file_context) for each file and directory encountered
    """
    context = FileContext(None, None, path)
    gen = walk(path, context)
    pending = None

    try:
        while True:
            file_path, file_context = gen.send(pending)
            pending = None

            if file_context.relative_path in policy.excluded_paths:
                pending = False
                continue

            yield file_path, file_context
    except StopIteration:
        pass


def iter_regular_files(root: Path, excluded_paths: frozenset[Path] = frozenset()) -> Iterator[FileEntry]:
    """Yield every regular file under ``root`` with its size.

    Symlinks, devices, sockets and directories are never yielded. Paths are made
    absolute and normalised without resolving symlinks.
    """
    root = root if root.is_absolute() else Path.cwd() / root
    root = Path(os.path.normpath(str(root)))

    for file_path, context in walk_with_policy(root, WalkPolicy(excluded_paths)):
        try:
            if not context.is_file():
                continue
            size = context.stat.st_size
        except OSError as e:
            logger.warning(f"Cannot stat {file_path}: {e}")
            continue
        yield FileEntry(file_path, size)
