"""Tests for command implementation modules.

| Test File        | Test Classes                        | Tested Functionalities                          |
|------------------|-------------------------------------|-------------------------------------------------|
| test_scan.py     | ScanScenarioTest, ScanPipelineTest  | End-to-end scans, skip/abort, timeout           |
| test_describe.py | DescribeTest                        | Saved report lookup, recursive describe         |
| test_cli.py      | CliTest                             | Argument handling, exit codes, output format    |
"""
