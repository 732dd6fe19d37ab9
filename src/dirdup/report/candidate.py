"""Directory pair records produced by the overlap finder."""
import os
from pathlib import Path
from typing import NamedTuple

import msgpack


def path_order_key(path: Path) -> bytes:
    """Total order on directory paths: byte-wise comparison of the encoded path."""
    return os.fsencode(path)


def display_path(path: Path) -> str:
    """Printable form of a path. Bytes that are not valid UTF-8 appear as \\xNN escapes."""
    return os.fsencode(path).decode("utf-8", "backslashreplace")


class DuplicateCandidate(NamedTuple):
    """An unordered pair of directories sharing at least one fingerprint.

    ``dir1`` is always the smaller path under path_order_key(), so equal pairs compare
    and hash equal regardless of the order in which they were discovered.

    Attributes:
        dir1: Directory with the smaller path
        dir2: Directory with the larger path
        dir1_files: Number of distinct fingerprints in dir1
        dir2_files: Number of distinct fingerprints in dir2
        intersection: Number of fingerprints present in both directories
    """
    dir1: Path
    dir2: Path
    dir1_files: int
    dir2_files: int
    intersection: int

    @property
    def pair(self) -> tuple[Path, Path]:
        return self.dir1, self.dir2

    def involves(self, directory: Path) -> bool:
        return directory == self.dir1 or directory == self.dir2

    def to_dict(self) -> dict:
        return {
            'dir1': display_path(self.dir1),
            'dir1_files': self.dir1_files,
            'dir2': display_path(self.dir2),
            'dir2_files': self.dir2_files,
            'intersection': self.intersection,
        }

    def to_msgpack(self) -> bytes:
        """Serialize as msgpack([dir1_components, dir1_files, dir2_components, dir2_files, intersection]).

        Path components are stored as raw filesystem bytes.
        """
        result = msgpack.dumps([
            [os.fsencode(part) for part in self.dir1.parts],
            self.dir1_files,
            [os.fsencode(part) for part in self.dir2.parts],
            self.dir2_files,
            self.intersection,
        ])
        assert isinstance(result, bytes)
        return result

    @classmethod
    def from_msgpack(cls, data: bytes) -> 'DuplicateCandidate':
        decoded = msgpack.loads(data)
        assert isinstance(decoded, list)
        dir1_components, dir1_files, dir2_components, dir2_files, intersection = decoded
        return cls(
            Path(*(os.fsdecode(part) for part in dir1_components)),
            Path(*(os.fsdecode(part) for part in dir2_components)),
            dir1_files, dir2_files, intersection)
