"""Tests for the report package.

| Test File            | Test Classes                   | Tested Constructs                   |
|----------------------|--------------------------------|-------------------------------------|
| test_ranking.py      | RankTest, FormatCandidateTest  | rank(), format_candidate()          |
| test_report_store.py | ReportStoreTest                | ReportStore, DuplicateCandidate     |
| test_report_path.py  | ReportPathTest                 | find_report_for_path()              |
"""
