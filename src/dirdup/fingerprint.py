"""Content fingerprints for files.

A fingerprint is the CRC-32 of (at most) the first ``head_bytes`` bytes of a
file plus the file size, widened to a 64-bit integer. Two files with the same
fingerprint are treated as the same file. This is heuristic: different content
can collide, which is an accepted false-positive risk rather than a bug.
"""
import zlib
from pathlib import Path

CHUNK_SIZE = 1024

FINGERPRINT_MASK = (1 << 64) - 1


def crc32_checksum(path: Path, head_bytes: int) -> int:
    """Compute the CRC-32 of the first ``head_bytes`` bytes of a file.

    Reading happens in chunks of at most ``CHUNK_SIZE`` bytes and never goes past
    ``head_bytes``. ``head_bytes == 0`` reads the whole file. Files shorter than
    ``head_bytes`` are checksummed over their full content.

    Raises:
        OSError: The file cannot be opened or read
    """
    checksum = 0
    consumed = 0
    with open(path, 'rb') as f:
        while head_bytes == 0 or consumed < head_bytes:
            size = CHUNK_SIZE if head_bytes == 0 else min(CHUNK_SIZE, head_bytes - consumed)
            chunk = f.read(size)
            if not chunk:
                break
            checksum = zlib.crc32(chunk, checksum)
            consumed += len(chunk)
    return checksum


def compute_fingerprint(path: Path, known_size: int, head_bytes: int) -> int:
    """Compute the fingerprint of a file.

    Args:
        path: File to read
        known_size: Size of the file in bytes as reported by the walker
        head_bytes: Maximum number of leading bytes to checksum, 0 for the whole file

    Returns:
        CRC-32 of the head plus ``known_size``, as a 64-bit value

    Raises:
        OSError: The file cannot be opened or read
    """
    return (crc32_checksum(path, head_bytes) + known_size) & FINGERPRINT_MASK
