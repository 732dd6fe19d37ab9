"""Reporting of duplicate directory candidates.

This package contains:
- candidate: DuplicateCandidate record and the path order used for pair identity
- ranking: threshold filter, ordering and line formatting
- store: ReportStore and ReportManifest for persisted reports
- path: Utilities for finding and generating report directory paths
"""
