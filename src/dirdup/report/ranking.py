import json
from collections.abc import Iterable

from .candidate import DuplicateCandidate, display_path, path_order_key


def rank(candidates: Iterable[DuplicateCandidate], min_intersection: int) -> list[DuplicateCandidate]:
    """Filter candidates below ``min_intersection`` and order the rest.

    Candidates are sorted by descending intersection. Ties are broken by the canonical
    pair order so the output is reproducible.
    """
    kept = [c for c in candidates if c.intersection >= min_intersection]
    kept.sort(key=lambda c: (-c.intersection, path_order_key(c.dir1), path_order_key(c.dir2)))
    return kept


def format_candidate(candidate: DuplicateCandidate) -> str:
    """Render a candidate as ``dir1: count1 - dir2: count2 | intersection``."""
    return (f"{display_path(candidate.dir1)}: {candidate.dir1_files} - "
            f"{display_path(candidate.dir2)}: {candidate.dir2_files} | {candidate.intersection}")


def format_candidate_json(candidate: DuplicateCandidate) -> str:
    return json.dumps(candidate.to_dict())


FORMATTERS = {
    'text': format_candidate,
    'json': format_candidate_json,
}
