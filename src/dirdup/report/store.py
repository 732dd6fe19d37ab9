"""Persisted scan reports.

A report directory holds ``manifest.json`` and a LevelDB database with the ranked
candidates. Key layout:

- ``c`` + rank (8 bytes, big endian) -> msgpack candidate record
- ``d`` + Murmur3-128 of a directory path (16 bytes) + rank -> empty; one entry for each
  directory of a candidate
"""

import json
import os
import shutil
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any

import mmh3
import plyvel

from .candidate import DuplicateCandidate

CANDIDATE_PREFIX = b'c'
DIRECTORY_PREFIX = b'd'
RANK_SIZE = 8


class ReportNotFound(FileNotFoundError):
    """No report exists for the requested path."""


@dataclass
class ReportManifest:
    """Report metadata, persisted as manifest.json."""
    version: str = "1.0"
    """Report format version"""

    root_path: str = ""
    """Absolute path of the scanned root"""

    timestamp: str = ""
    """ISO format timestamp of the scan"""

    options: dict[str, Any] = field(default_factory=dict)
    """Scan options the report was produced with"""

    candidate_count: int = 0
    """Number of candidates stored in the database"""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportManifest":
        return cls(**data)


class ReportStore:
    """Reads and writes a report directory."""

    def __init__(self, report_dir: Path) -> None:
        self.report_dir: Path = report_dir
        self.manifest_path: Path = report_dir / 'manifest.json'
        self.database_path: Path = report_dir / 'database'
        self._database: plyvel.DB | None = None

    def open_database(self, *, create_if_missing: bool = False) -> None:
        """Open the LevelDB database.

        Raises:
            ReportNotFound: The database does not exist and create_if_missing is False
        """
        if create_if_missing:
            self.database_path.mkdir(parents=True, exist_ok=True)
        elif not self.database_path.exists():
            raise ReportNotFound(f"Report database not found: {self.database_path}")
        self._database = plyvel.DB(str(self.database_path), create_if_missing=create_if_missing)

    def close_database(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None

    def __enter__(self) -> "ReportStore":
        self.open_database()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close_database()

    def write_report(self, manifest: ReportManifest, candidates: Iterable[DuplicateCandidate]) -> int:
        """Replace the report contents with ``candidates`` in their given order.

        Returns:
            Number of candidates written
        """
        self.close_database()
        if self.database_path.exists():
            shutil.rmtree(self.database_path)
        self.report_dir.mkdir(parents=True, exist_ok=True)

        self.open_database(create_if_missing=True)
        database = self._database
        assert database is not None
        count = 0
        try:
            with database.write_batch() as batch:
                for rank, candidate in enumerate(candidates):
                    rank_bytes = rank.to_bytes(RANK_SIZE, byteorder='big')
                    batch.put(CANDIDATE_PREFIX + rank_bytes, candidate.to_msgpack())
                    for directory in candidate.pair:
                        batch.put(DIRECTORY_PREFIX + self._compute_path_hash(directory) + rank_bytes, b'')
                    count += 1
        finally:
            self.close_database()

        manifest.candidate_count = count
        self.write_manifest(manifest)
        return count

    def read_candidates(self) -> Iterator[DuplicateCandidate]:
        """Yield stored candidates in rank order."""
        database = self._require_database()
        for _, value in database.iterator(prefix=CANDIDATE_PREFIX):
            yield DuplicateCandidate.from_msgpack(value)

    def candidates_for(self, directory: Path) -> Iterator[DuplicateCandidate]:
        """Yield stored candidates involving ``directory``, in rank order."""
        database = self._require_database()
        prefix = DIRECTORY_PREFIX + self._compute_path_hash(directory)
        for key in database.iterator(prefix=prefix, include_value=False):
            value = database.get(CANDIDATE_PREFIX + key[len(prefix):])
            if value is None:
                continue
            candidate = DuplicateCandidate.from_msgpack(value)
            # Different paths may share a hash
            if candidate.involves(directory):
                yield candidate

    def write_manifest(self, manifest: ReportManifest) -> None:
        with open(self.manifest_path, 'w') as f:
            json.dump(manifest.to_dict(), f, indent=2)

    def read_manifest(self) -> ReportManifest:
        """Read manifest.json.

        Raises:
            ReportNotFound: manifest.json does not exist
        """
        try:
            with open(self.manifest_path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ReportNotFound(f"Report manifest not found: {self.manifest_path}") from e
        return ReportManifest.from_dict(data)

    def _require_database(self) -> plyvel.DB:
        if self._database is None:
            raise RuntimeError("Database not opened. Use context manager or call open_database().")
        return self._database

    @staticmethod
    def _compute_path_hash(path: Path) -> bytes:
        """128-bit Murmur3 hash of a path's components."""
        path_bytes = b'\0'.join(os.fsencode(part) for part in path.parts)
        hash_value = mmh3.hash128(path_bytes, signed=False)
        return hash_value.to_bytes(16, byteorder='big')
