"""Report path utilities for finding and generating report directory paths."""

import os
from pathlib import Path


def get_report_directory_path(root: Path) -> Path:
    """The report directory for a scanned root sits next to it: /data/backups -> /data/backups.report"""
    return Path(str(root) + '.report')


def find_report_for_path(target_path: Path) -> Path | None:
    """Find the scanned root whose report covers ``target_path``.

    Checks the target itself and then each ancestor for a sibling ``.report``
    directory. The path is normalised without following symlinks.

    Returns:
        The scanned root, or None if no report covers the target
    """
    target_path = target_path if target_path.is_absolute() else Path.cwd() / target_path
    current = Path(os.path.normpath(str(target_path)))

    while True:
        if get_report_directory_path(current).is_dir():
            return current

        parent = current.parent
        if parent == current:
            return None
        current = parent
