"""
Command-line interface for the build supervisor.

This module provides the ``buildsupervisor`` entry point with two
subcommands:

- ``monitor``: run a build command under supervision, printing progress bars,
  hang alerts and a final summary
- ``scan``: sweep the process table for stuck compiler processes and kill them
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from ..config import get_config, set_config_path
from ..models.config import AppConfig
from ..models.session import BuildSession, HangAlert, SessionOutcome, SessionStatus
from ..orchestration import HANG_REASON, BuildSupervisor
from ..system import EmergencyScanner
from ..validation import (
    SpawnError,
    SupervisorError,
    ValidationError,
    handle_cli_error,
    validate_build_session,
    validate_name_patterns,
    validate_positive_float,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"

# Exit codes of `monitor` for sessions that did not complete on their own.
EXIT_HANG = 124
EXIT_INTERRUPTED = 130
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="Path to an alternative config.toml.")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    parser = argparse.ArgumentParser(
        prog="buildsupervisor",
        description="Supervise long-running builds and reclaim stuck compiler processes.",
    )
    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    monitor = subparsers.add_parser(
        "monitor", parents=[common],
        help="Run a build command with progress reporting and hang detection.",
    )
    monitor.add_argument("--cwd", type=Path, default=Path("."),
                         help="Working directory of the build (default: current directory).")
    monitor.add_argument("--timeout", type=int,
                         help="Seconds without output before a hang alert. Defaults to the config value.")
    monitor.add_argument("--no-hang-detection", action="store_true",
                         help="Disable the hang watchdog.")
    monitor.add_argument("--resource-monitoring", action="store_true",
                         help="Sample CPU and memory of the build process tree.")
    monitor.add_argument("command", nargs=argparse.REMAINDER,
                         help="Build command and its arguments, after '--'.")

    scan = subparsers.add_parser(
        "scan", parents=[common],
        help="Kill compiler processes exceeding CPU and runtime thresholds.",
    )
    scan.add_argument("--cpu-threshold", type=float,
                      help="Minimum CPU percentage. Defaults to the config value.")
    scan.add_argument("--runtime-threshold", type=float,
                      help="Minimum runtime in minutes. Defaults to the config value.")
    scan.add_argument("--pattern", action="append", dest="patterns",
                      help="Process name glob; repeat for several. Defaults to the config list.")
    scan.add_argument("--dry-run", action="store_true",
                      help="Only report the processes that would be killed.")
    return parser


def exit_code_for(status: SessionStatus) -> int:
    """Map a session status to the process exit code of `monitor`."""
    if status.outcome is SessionOutcome.COMPLETED:
        # Killed by a signal: report it the way shells do.
        return 128 - status.exit_code if status.exit_code < 0 else status.exit_code
    if status.outcome is SessionOutcome.TERMINATED:
        return EXIT_HANG if status.reason == HANG_REASON else EXIT_INTERRUPTED
    return EXIT_FAILURE


def _progress_printer() -> Callable[[str], None]:
    """Return an on_progress callback that prints only changed bars."""
    last_line: List[Optional[str]] = [None]

    def print_progress(line: str) -> None:
        if line != last_line[0]:
            last_line[0] = line
            print(line, flush=True)

    return print_progress


def _print_alert(alert: HangAlert) -> None:
    print(f"WARNING: possible hang. {alert.describe()}", flush=True)


def _load_app_config(args: argparse.Namespace) -> AppConfig:
    if args.config is not None:
        set_config_path(args.config)
    try:
        return get_config()
    except (FileNotFoundError, ValidationError, ValueError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=EXIT_FAILURE,
            include_traceback=True,
            logger=logger,
        )


def run_monitor(args: argparse.Namespace, app_config: AppConfig) -> int:
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    supervisor_config = app_config.supervisor
    try:
        session = validate_build_session(BuildSession(
            working_directory=args.cwd.resolve(),
            command=tuple(command),
            hang_detection_enabled=supervisor_config.hang_detection_enabled and not args.no_hang_detection,
            timeout_seconds=args.timeout if args.timeout is not None else supervisor_config.timeout_seconds,
            resource_monitoring_enabled=(
                supervisor_config.resource_monitoring_enabled or args.resource_monitoring
            ),
        ))
    except ValidationError as e:
        handle_cli_error(
            error=e,
            context="build session validation",
            exit_code=EXIT_FAILURE,
            include_traceback=False,
            logger=logger,
        )

    supervisor = BuildSupervisor(
        session,
        config=supervisor_config,
        on_progress=_progress_printer(),
        on_alert=_print_alert,
        install_signal_handlers=True,
    )
    try:
        status = supervisor.start()
    except SpawnError as e:
        handle_cli_error(
            error=e,
            context="starting build",
            exit_code=EXIT_FAILURE,
            include_traceback=False,
            logger=logger,
        )

    print(status.summary(), flush=True)
    for warning in status.warnings:
        print(f"WARNING: {warning}", flush=True)
    if status.outcome is not SessionOutcome.COMPLETED and status.output_tail:
        print("Last build output:", flush=True)
        for line in status.output_tail[-10:]:
            print(f"  {line}", flush=True)
    return exit_code_for(status)


def run_scan(args: argparse.Namespace, app_config: AppConfig,
             scanner: Optional[EmergencyScanner] = None) -> int:
    scanner_config = app_config.scanner
    try:
        cpu_threshold = validate_positive_float(
            args.cpu_threshold if args.cpu_threshold is not None else scanner_config.cpu_threshold_percent,
            field_name="--cpu-threshold",
        )
        runtime_threshold = validate_positive_float(
            args.runtime_threshold if args.runtime_threshold is not None
            else scanner_config.runtime_threshold_minutes,
            field_name="--runtime-threshold",
        )
        patterns = validate_name_patterns(args.patterns or scanner_config.name_patterns,
                                          field_name="--pattern")
    except ValidationError as e:
        handle_cli_error(
            error=e,
            context="scan argument validation",
            exit_code=EXIT_FAILURE,
            include_traceback=False,
            logger=logger,
        )

    scanner = scanner or EmergencyScanner()
    try:
        results = scanner.scan(cpu_threshold, runtime_threshold, patterns, dry_run=args.dry_run)
    except SupervisorError as e:
        handle_cli_error(
            error=e,
            context="emergency scan",
            exit_code=EXIT_FAILURE,
            include_traceback=False,
            logger=logger,
        )

    if not results:
        print("No stuck compiler processes found.", flush=True)
    for result in results:
        print(result.describe(), flush=True)
    return 0 if all(result.succeeded for result in results) else EXIT_FAILURE


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line runs."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", stream=sys.stdout)
    logging.getLogger().setLevel(level)


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for the build supervisor.

    Raises:
        SystemExit: Always, with the subcommand's exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.subcommand == "monitor":
        if not [part for part in args.command if part != "--"]:
            parser.error("monitor requires a build command, e.g. 'monitor -- swift build'")

    app_config = _load_app_config(args)

    if args.subcommand == "monitor":
        sys.exit(run_monitor(args, app_config))
    sys.exit(run_scan(args, app_config))


if __name__ == "__main__":
    main_cli()
