"""CLI entry and startup wiring."""

from __future__ import annotations

import argparse
from collections.abc import Callable

from . import __version__
from .backup_service import BackupConfig, BackupOrchestrator
from .batch_service import BatchResolver
from .constants import APP_NAME
from .discovery_service import find_repositories, write_list_file
from .errors import GitBackupError
from .logging import EventLog, LogConfig, setup_logging
from .models import ErrorKind
from .path_mapping import (
    map_path_argument,
    resolve_find_output_file,
    resolve_list_file,
    resolve_output_dir,
)
from .presenters import render_batch_summary, render_error

EXIT_CODES = {
    ErrorKind.SOURCE_UNREADABLE: 2,
    ErrorKind.EXPORT_FAILED: 3,
    ErrorKind.PACKAGE_FAILED: 4,
    ErrorKind.METADATA_WRITE_FAILED: 5,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    handler: Callable[[argparse.Namespace, EventLog], int] | None = getattr(
        args, "handler", None
    )
    if handler is None:
        parser.print_help()
        return 0

    try:
        log_file = (
            map_path_argument(raw_path=args.log, argument_name="--log")
            if args.log is not None
            else None
        )
        event_log = setup_logging(LogConfig(log_file=log_file))
    except GitBackupError as exc:
        print(render_error(str(exc)))
        return 1
    except OSError as exc:
        print(render_error(f"Failed to open log file: {exc}"))
        return 1

    try:
        return handler(args, event_log)
    except GitBackupError as exc:
        event_log.error("command_failed", str(exc), exc_info=exc)
        return 1


def _run_backup(args: argparse.Namespace, event_log: EventLog) -> int:
    source_dir_abs = map_path_argument(raw_path=args.path, argument_name="path")
    dest_dir_abs = resolve_output_dir(raw_path=args.out, argument_name="--out")

    orchestrator = BackupOrchestrator(BackupConfig(event_log=event_log))
    result = orchestrator.backup(source_dir_abs=source_dir_abs, dest_dir_abs=dest_dir_abs)
    if result.error_kind is not None:
        return EXIT_CODES[result.error_kind]
    return 0


def _run_batch(args: argparse.Namespace, event_log: EventLog) -> int:
    list_file_abs = resolve_list_file(raw_path=args.path, argument_name="listfile")
    dest_dir_abs = resolve_output_dir(raw_path=args.out, argument_name="--out")

    resolver = BatchResolver(
        orchestrator=BackupOrchestrator(BackupConfig(event_log=event_log)),
        event_log=event_log,
    )
    batch_result = resolver.run(list_file_abs=list_file_abs, dest_dir_abs=dest_dir_abs)

    print()
    for line in render_batch_summary(batch_result):
        print(line)
    return 0


def _run_find(args: argparse.Namespace, event_log: EventLog) -> int:
    root_dir_abs = map_path_argument(raw_path=args.path, argument_name="path")
    output_file_abs = resolve_find_output_file(raw_path=args.out, argument_name="--out")

    repository_dirs = find_repositories(
        root_dir_abs=root_dir_abs,
        exclude_patterns=args.exclude,
        event_log=event_log,
    )
    write_list_file(repository_dirs=repository_dirs, output_file_abs=output_file_abs)
    event_log.debug(
        "list_file_written",
        f"Write output to {output_file_abs}",
        output=output_file_abs,
        repository_count=len(repository_dirs),
    )
    return 0


def _add_log_option(parser: argparse.ArgumentParser, *, default: object) -> None:
    parser.add_argument(
        "-l",
        "--log",
        default=default,
        help="Path to log file (optional).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Incremental backups of Git repositories.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    _add_log_option(parser, default=None)

    subparsers = parser.add_subparsers(dest="command")

    backup_parser = subparsers.add_parser("backup", help="Backup a Git repository.")
    backup_parser.add_argument("path", help="Path to Git repository.")
    backup_parser.add_argument(
        "-o", "--out", help="Path to backup directory (default: current directory)."
    )
    # Subcommand-level --log must not reset a global --log given earlier.
    _add_log_option(backup_parser, default=argparse.SUPPRESS)
    backup_parser.set_defaults(handler=_run_backup)

    batch_parser = subparsers.add_parser(
        "batch", help="Batch backup Git repositories listed in a text file."
    )
    batch_parser.add_argument(
        "path", help="Path to text file containing one directory per line."
    )
    batch_parser.add_argument(
        "-o", "--out", help="Path to backup directory (default: current directory)."
    )
    _add_log_option(batch_parser, default=argparse.SUPPRESS)
    batch_parser.set_defaults(handler=_run_batch)

    find_parser = subparsers.add_parser("find", help="Find Git repositories.")
    find_parser.add_argument("path", help="Directory to search for Git repositories.")
    find_parser.add_argument(
        "-o",
        "--out",
        help=(
            "Path to output text file; a directory means find.txt inside it "
            "(default: current directory)."
        ),
    )
    find_parser.add_argument(
        "-x",
        "--exclude",
        action="append",
        default=[],
        help="Exclude repositories whose path contains this text (repeatable).",
    )
    _add_log_option(find_parser, default=argparse.SUPPRESS)
    find_parser.set_defaults(handler=_run_find)

    return parser
