import logging
import re
from decimal import Decimal
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIZE = 1
DEFAULT_HEAD_BYTES = 1024
DEFAULT_MIN_INTERSECTION = 10

# Partial reads shorter than this are too weak to tell files apart
MIN_PARTIAL_HEAD_BYTES = 1000

_SIZE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$', re.IGNORECASE)

_SIZE_UNITS = {
    '': 1,
    'b': 1,
    'k': 1000, 'kb': 1000, 'kib': 1024,
    'm': 1000 ** 2, 'mb': 1000 ** 2, 'mib': 1024 ** 2,
    'g': 1000 ** 3, 'gb': 1000 ** 3, 'gib': 1024 ** 3,
    't': 1000 ** 4, 'tb': 1000 ** 4, 'tib': 1024 ** 4,
}


class ConfigurationError(ValueError):
    """An option value could not be understood.

    Attributes:
        option: Name of the offending option as the user wrote it (e.g. ``--min-size``)
        value: The rejected value
    """

    def __init__(self, option: str, value):
        super().__init__(f"Invalid value for '{option}': {value}.")
        self.option = option
        self.value = value


class ScanOptions(NamedTuple):
    """Options consumed by the scan pipeline.

    Attributes:
        min_size: Files smaller than this many bytes are not fingerprinted
        head_bytes: Bytes read per file for the checksum, 0 reads whole files
        min_intersection: Minimum shared fingerprints for a directory pair to be reported
        excluded_paths: Paths relative to the scanned root that are not walked
        abort_on_error: Abort the scan on the first unreadable file instead of skipping it
        timeout: Seconds allowed for ingestion, None for no limit
    """
    min_size: int = DEFAULT_MIN_SIZE
    head_bytes: int = DEFAULT_HEAD_BYTES
    min_intersection: int = DEFAULT_MIN_INTERSECTION
    excluded_paths: frozenset[Path] = frozenset()
    abort_on_error: bool = False
    timeout: float | None = None

    def to_dict(self) -> dict:
        return {
            'min_size': self.min_size,
            'head_bytes': self.head_bytes,
            'min_intersection': self.min_intersection,
            'excluded_paths': sorted(str(p) for p in self.excluded_paths),
            'abort_on_error': self.abort_on_error,
            'timeout': self.timeout,
        }


def parse_size(value, option: str) -> int:
    """Parse a human-readable byte count such as ``512``, ``4K``, ``1.5MB`` or ``2GiB``.

    Decimal units (K, KB, M, MB, ...) are powers of 1000, binary units (KiB, MiB, ...)
    powers of 1024. Integers are accepted as they are.

    Raises:
        ConfigurationError: The value is negative or not a size
    """
    if isinstance(value, bool):
        raise ConfigurationError(option, value)
    if isinstance(value, int):
        if value < 0:
            raise ConfigurationError(option, value)
        return value

    match = _SIZE_PATTERN.match(str(value))
    if match is None:
        raise ConfigurationError(option, value)

    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.lower())
    if multiplier is None:
        raise ConfigurationError(option, value)

    return int(Decimal(number) * multiplier)


def parse_count(value, option: str) -> int:
    """Parse a non-negative integer option."""
    if isinstance(value, bool):
        raise ConfigurationError(option, value)
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(option, value) from None
    if count < 0:
        raise ConfigurationError(option, value)
    return count


def resolve_head_bytes(head_bytes: int) -> int:
    """Apply the coercion rule for the head-byte limit.

    0 means the whole file and is kept. Values between 1 and 999 are replaced with
    DEFAULT_HEAD_BYTES and a warning is logged. Anything else is kept as is.
    """
    if 0 < head_bytes < MIN_PARTIAL_HEAD_BYTES:
        logger.warning(f"Head limit {head_bytes} is below {MIN_PARTIAL_HEAD_BYTES} bytes, "
                       f"using {DEFAULT_HEAD_BYTES} instead")
        return DEFAULT_HEAD_BYTES
    return head_bytes
