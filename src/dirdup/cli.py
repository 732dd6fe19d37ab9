import argparse
import logging
import sys
import textwrap
from functools import wraps
from pathlib import Path

from . import Processor, Scanner, ScanOptions, ConfigurationError, ScanError, ReportNotFound, Settings
from .config import (
    DEFAULT_HEAD_BYTES, DEFAULT_MIN_INTERSECTION, DEFAULT_MIN_SIZE,
    parse_count, parse_size, resolve_head_bytes,
)
from .report.ranking import FORMATTERS
from .settings import (
    SETTING_ABORT_ON_ERROR, SETTING_EXCLUDE, SETTING_HEAD, SETTING_JOBS, SETTING_LOGGING_LEVEL,
    SETTING_LOGGING_PATH, SETTING_MIN_INTERSECTION, SETTING_MIN_SIZE,
)
from .utils.profiling import profile_main

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def needs_processor(func):
    """Decorator for commands that fingerprint files.

    The decorated function receives (processor, options, settings, args); the wrapper
    takes (settings, args), validates every option and only then starts the Processor,
    which it owns for the duration of the command.
    """
    @wraps(func)
    def wrapper(settings, args):
        options = build_scan_options(settings, args)
        option = '--jobs' if args.jobs is not None else SETTING_JOBS
        jobs = args.jobs if args.jobs is not None else settings.get(SETTING_JOBS)
        concurrency = parse_count(jobs, option) if jobs is not None else None
        if concurrency == 0:
            raise ConfigurationError(option, jobs)
        with Processor(concurrency) as processor:
            return func(processor, options, settings, args)
    return wrapper


def no_processor(func):
    """Decorator for commands that only read saved reports."""
    @wraps(func)
    def wrapper(settings, args):
        return func(settings, args)
    return wrapper


def _add_format_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        '--format',
        choices=sorted(FORMATTERS),
        default='text',
        help='Output format: text ("DIR1: FILES - DIR2: FILES | SHARED", default) or json (one object per line)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dirdup',
        description='Find directories whose files substantially overlap, such as redundant backups or copied '
                    'project folders. Files are compared by a checksum of their first bytes and their size.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              dirdup scan /data/backups
              dirdup scan --min-intersection 3 --head 64K --save-report /data/backups
              dirdup describe /data/backups/2023/photos
            ''').strip()
    )
    parser.add_argument(
        '--config',
        metavar='PATH',
        help='Path to a TOML settings file. If not provided, uses the DIRDUP_CONFIG environment variable or no '
             'settings file.')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file. If not provided, uses logging.path from the settings file or logs warnings to '
             'stderr.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when a log file is used.')
    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        title='Commands',
        help='Use "dirdup COMMAND --help" for command-specific help'
    )

    parser_scan = subparsers.add_parser(
        'scan',
        help='Scan a directory tree for duplicated directories',
        description='Fingerprints every regular file under ROOT and reports pairs of directories sharing at least '
                    'the given number of fingerprints, most overlapping first. Nothing is modified.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Sizes accept unit suffixes: 512, 4K, 1.5MB, 2GiB.
            A --head value between 1 and 999 is raised to 1024 with a warning.

            With --save-report the result is stored in ROOT.report next to ROOT
            and can be queried later with "dirdup describe".
            ''').strip())
    parser_scan.add_argument(
        'root',
        metavar='ROOT',
        help='Directory to search')
    parser_scan.add_argument(
        '-m', '--min-size',
        metavar='N',
        help=f'Ignore files smaller than this size (default: {DEFAULT_MIN_SIZE})')
    parser_scan.add_argument(
        '-i', '--min-intersection',
        metavar='N',
        help='How many equal files must be in 2 directories to consider those directories as duplicates '
             f'(default: {DEFAULT_MIN_INTERSECTION})')
    parser_scan.add_argument(
        '--head',
        metavar='N',
        help=f'Read only N bytes of each file to calculate its checksum. Set 0 to read full files '
             f'(default: {DEFAULT_HEAD_BYTES})')
    parser_scan.add_argument(
        '--exclude',
        action='append',
        metavar='PATH',
        help='Path relative to ROOT to leave out of the scan (repeatable)')
    parser_scan.add_argument(
        '--jobs',
        metavar='N',
        help='Number of worker processes computing fingerprints (default: number of CPUs)')
    parser_scan.add_argument(
        '--timeout',
        type=float,
        metavar='SECONDS',
        help='Give up if reading the tree takes longer than this; no result is reported')
    parser_scan.add_argument(
        '--abort-on-error',
        action='store_true',
        default=None,
        help='Stop at the first unreadable file instead of skipping it with a warning')
    parser_scan.add_argument(
        '--save-report',
        action='store_true',
        help='Store the result in ROOT.report for later use by "describe"')
    parser_scan.add_argument(
        '--progress',
        action='store_true',
        help='Show the number of processed files on stderr')
    _add_format_argument(parser_scan)
    parser_scan.set_defaults(method=_scan)

    parser_describe = subparsers.add_parser(
        'describe',
        help='Show saved duplicate candidates for a directory',
        description='Looks up the report covering PATH (saved by "scan --save-report" on PATH or one of its '
                    'ancestors) and prints the candidates involving PATH.')
    parser_describe.add_argument(
        'path',
        nargs='?',
        metavar='PATH',
        help='Directory to describe (default: current working directory)')
    parser_describe.add_argument(
        '-r', '--recursive',
        action='store_true',
        help='Also show candidates involving directories below PATH')
    _add_format_argument(parser_describe)
    parser_describe.set_defaults(method=_describe)

    return parser


def configure_logging(settings: Settings, log_file: str | None, log_level: str | None) -> bool:
    """Send log records to ``log_file``, or to logging.path from the settings.

    Returns:
        True if a log file was configured, False otherwise
    """
    if log_file is None:
        log_file = settings.get(SETTING_LOGGING_PATH)
    if log_level is None:
        log_level = settings.get(SETTING_LOGGING_LEVEL)

    level = logging.INFO
    if log_level is not None:
        level = logging.getLevelName(str(log_level).upper())
        if not isinstance(level, int):
            raise ConfigurationError('--log-level', log_level)

    if log_file:
        logging.basicConfig(
            filename=str(log_file),
            level=level,
            format=LOG_FORMAT
        )
        return True

    if log_level is not None:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    return False


def build_scan_options(settings: Settings, args) -> ScanOptions:
    """Merge command-line flags over settings over built-in defaults.

    Raises:
        ConfigurationError: A value cannot be parsed
    """
    def pick(flag_value, flag_name, setting_key, default):
        if flag_value is not None:
            return flag_value, flag_name
        return settings.get(setting_key, default), setting_key

    min_size = parse_size(*pick(args.min_size, '--min-size', SETTING_MIN_SIZE, DEFAULT_MIN_SIZE))
    head_bytes = parse_size(*pick(args.head, '--head', SETTING_HEAD, DEFAULT_HEAD_BYTES))
    min_intersection = parse_count(
        *pick(args.min_intersection, '--min-intersection', SETTING_MIN_INTERSECTION, DEFAULT_MIN_INTERSECTION))

    excluded, excluded_option = pick(args.exclude, '--exclude', SETTING_EXCLUDE, [])
    if not isinstance(excluded, list) or not all(isinstance(p, str) for p in excluded):
        raise ConfigurationError(excluded_option, excluded)

    abort_on_error, abort_option = pick(args.abort_on_error, '--abort-on-error', SETTING_ABORT_ON_ERROR, False)
    if not isinstance(abort_on_error, bool):
        raise ConfigurationError(abort_option, abort_on_error)

    if args.timeout is not None and args.timeout <= 0:
        raise ConfigurationError('--timeout', args.timeout)

    return ScanOptions(
        min_size=min_size,
        head_bytes=resolve_head_bytes(head_bytes),
        min_intersection=min_intersection,
        excluded_paths=frozenset(Path(p) for p in excluded),
        abort_on_error=abort_on_error,
        timeout=args.timeout,
    )


class ProgressCounter:
    """File counter on stderr, redrawn in place."""

    def __init__(self, stream=None):
        self._stream = stream if stream is not None else sys.stderr
        self.count = 0

    def __call__(self, entry, fingerprint):
        self.count += 1
        self._stream.write(f"\rProcessed {self.count} files")
        self._stream.flush()

    def finish(self):
        if self.count:
            self._stream.write("\n")
            self._stream.flush()


@profile_main
def dirdup_main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.locate(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: cannot read settings file: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        configure_logging(settings, args.log_file, args.log_level)
        return args.method(settings, args)
    except ConfigurationError as e:
        print(e, file=sys.stderr)
        return EXIT_USAGE
    except ScanError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except ReportNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


@needs_processor
def _scan(processor: Processor, options: ScanOptions, settings: Settings, args) -> int:
    scanner = Scanner(processor, options)
    formatter = FORMATTERS[args.format]

    progress = ProgressCounter() if args.progress else None
    try:
        result = scanner.scan(args.root, progress)
    finally:
        if progress is not None:
            progress.finish()

    for candidate in result.candidates:
        print(formatter(candidate))

    if args.save_report:
        scanner.save_report(result)

    return EXIT_OK


@no_processor
def _describe(settings: Settings, args) -> int:
    from .commands.describe import do_describe

    path = Path(args.path) if args.path is not None else Path.cwd()
    do_describe(path, recursive=args.recursive, formatter=FORMATTERS[args.format])
    return EXIT_OK


def main():
    sys.exit(dirdup_main())


if __name__ == '__main__':
    main()
