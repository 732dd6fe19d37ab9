from itertools import combinations
from pathlib import Path

from .corpus import CorpusIndex
from ..report.candidate import DuplicateCandidate, path_order_key


def canonical_pair(a: Path, b: Path) -> tuple[Path, Path]:
    """Order two directories so that the smaller path comes first."""
    return (a, b) if path_order_key(a) <= path_order_key(b) else (b, a)


def find_overlaps(index: CorpusIndex) -> list[DuplicateCandidate]:
    """Enumerate every directory pair sharing at least one fingerprint.

    Every unordered pair found in some fingerprint's directory set has its full
    intersection computed once, on first encounter; later encounters hit the seen-set.
    Work is bounded by (fingerprint, directory pair) co-occurrences, never by the
    square of all directories.
    """
    seen: set[tuple[Path, Path]] = set()
    candidates: list[DuplicateCandidate] = []

    for directories in index.fingerprint_directories.values():
        if len(directories) < 2:
            continue

        for first, second in combinations(directories, 2):
            pair = canonical_pair(first, second)
            if pair in seen:
                continue
            seen.add(pair)

            a, b = pair
            fingerprints_a = index.fingerprints_for(a)
            fingerprints_b = index.fingerprints_for(b)
            candidates.append(DuplicateCandidate(
                a, b,
                len(fingerprints_a),
                len(fingerprints_b),
                len(fingerprints_a & fingerprints_b)))

    return candidates
