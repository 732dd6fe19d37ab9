"""Describe subcommand: show saved candidates for a directory."""

import os
from collections.abc import Callable, Iterator
from pathlib import Path

from ..report.candidate import DuplicateCandidate
from ..report.path import find_report_for_path, get_report_directory_path
from ..report.ranking import format_candidate
from ..report.store import ReportNotFound, ReportStore


def _is_within(path: Path, directory: Path) -> bool:
    return path == directory or directory in path.parents


def describe_candidates(target: Path, recursive: bool = False) -> Iterator[DuplicateCandidate]:
    """Yield saved candidates involving ``target``, in rank order.

    Args:
        target: Directory to describe
        recursive: Also include candidates involving directories below ``target``

    Raises:
        ReportNotFound: No report covers ``target``
    """
    target = target if target.is_absolute() else Path.cwd() / target
    target = Path(os.path.normpath(str(target)))

    root = find_report_for_path(target)
    if root is None:
        raise ReportNotFound(f"No report found for {target}")

    with ReportStore(get_report_directory_path(root)) as store:
        if recursive:
            for candidate in store.read_candidates():
                if _is_within(candidate.dir1, target) or _is_within(candidate.dir2, target):
                    yield candidate
        else:
            yield from store.candidates_for(target)


def do_describe(target: Path, recursive: bool = False,
                formatter: Callable[[DuplicateCandidate], str] = format_candidate) -> int:
    """Print saved candidates for ``target``.

    Returns:
        Number of candidates printed
    """
    count = 0
    for candidate in describe_candidates(target, recursive):
        print(formatter(candidate))
        count += 1
    return count
