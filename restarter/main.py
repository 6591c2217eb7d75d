"""
Restarter command line.

`restarter restart SERVICE` kills a stale instance of SERVICE if one is
running and launches a fresh detached one. `restarter find SERVICE` only
lists what would be killed.
"""

import argparse
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from . import __version__
from .config import config
from .launcher import LaunchError
from .process import process_locator
from .services import SERVICE_PRESETS, resolve_service, service_query
from .supervisor import RestartSupervisor

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LAUNCH_FAILED = 1
EXIT_BAD_CONFIG = 2
EXIT_UNHEALTHY = 3


def configure_logging(verbose: bool = False):
    """Log to a rotating file under the data directory and to the console."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(logging.DEBUG if verbose else logging.INFO)
        return

    log_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)
    handlers = [console_handler]

    try:
        config.data_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.supervisor_log,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(log_formatter)
        handlers.append(file_handler)
    except OSError as e:
        print(f"Cannot write {config.supervisor_log}, logging to console only: {e}", file=sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restarter",
        description="Replace a running service with a fresh, detached instance.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    known = ", ".join(SERVICE_PRESETS)

    restart = commands.add_parser(
        "restart",
        help="Kill a stale instance and launch a new one",
        epilog="Arguments after -- are passed to the executable.",
    )
    restart.add_argument("service", help=f"Service name (presets: {known})")
    restart.add_argument("--pattern", help="Command-line substring identifying the service")
    restart.add_argument("--executable", help="Executable or launch script to start")
    restart.add_argument("--workdir", dest="working_dir", type=Path, help="Working directory")
    restart.add_argument("--log-file", help="Service log file, relative to the working directory")
    restart.add_argument(
        "--append-log",
        dest="log_mode",
        action="store_const",
        const="append",
        help="Keep previous output instead of truncating the log",
    )
    limit = restart.add_mutually_exclusive_group()
    limit.add_argument("--fd-limit", type=int, help="Open file limit for the service")
    limit.add_argument(
        "--no-fd-limit",
        dest="fd_limit",
        action="store_const",
        const=0,
        help="Leave the open file limit alone",
    )
    restart.add_argument("--attempts", dest="max_attempts", type=int, help="Search attempts before launching")
    restart.add_argument("--delay", dest="attempt_delay", type=float, help="Seconds between search attempts")
    restart.add_argument(
        "--graceful-timeout",
        type=float,
        help="Send SIGTERM and wait this long before SIGKILL (default: SIGKILL immediately)",
    )
    restart.add_argument("--health-port", type=int, help="Wait for the new instance to listen on this port")
    restart.add_argument("--health-host", help="Host for the health probe")
    restart.add_argument("--health-timeout", type=float, help="Seconds to wait for the health probe")
    restart.add_argument("--json", action="store_true", help="Print a JSON report")
    restart.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    find = commands.add_parser("find", help="List running instances of a service")
    find.add_argument("service", help=f"Service name (presets: {known})")
    find.add_argument("--pattern", help="Command-line substring identifying the service")
    find.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser


def cmd_restart(args: argparse.Namespace, supervisor: Optional[RestartSupervisor] = None) -> int:
    try:
        service = resolve_service(
            args.service,
            pattern=args.pattern,
            executable=args.executable,
            arguments=getattr(args, "arguments", None) or None,
            working_dir=args.working_dir,
            log_file=args.log_file,
            log_mode=args.log_mode,
            fd_limit=args.fd_limit,
            max_attempts=args.max_attempts,
            attempt_delay=args.attempt_delay,
            graceful_timeout=args.graceful_timeout,
            health_port=args.health_port,
            health_host=args.health_host,
            health_timeout=args.health_timeout,
        )
    except (ValidationError, ValueError) as e:
        logger.error(f"Invalid configuration for {args.service}: {e}")
        return EXIT_BAD_CONFIG

    supervisor = supervisor or RestartSupervisor()
    logger.info(f"Restarting {service.name} (pattern '{service.pattern}') in {service.working_dir}")

    try:
        report = supervisor.restart(
            service.query(),
            service.retry_policy(),
            service.launch_spec(),
            health=service.health_check(),
        )
    except LaunchError as e:
        logger.error(f"Failed to start service {service.name}: {e}")
        return EXIT_LAUNCH_FAILED

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))

    if report.healthy is False:
        return EXIT_UNHEALTHY
    return EXIT_OK


def cmd_find(args: argparse.Namespace, locator=None) -> int:
    try:
        query = service_query(args.service, args.pattern)
    except ValueError as e:
        logger.error(f"Invalid pattern for {args.service}: {e}")
        return EXIT_BAD_CONFIG

    locator = locator or process_locator
    handles = sorted(locator.find(query))
    if not handles:
        logger.info(f"No {query.pattern} process")
    for handle in handles:
        print(f"{handle.pid}\t{handle.command_line}")
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    passthrough = []
    if "--" in argv:
        split = argv.index("--")
        argv, passthrough = argv[:split], argv[split + 1 :]

    parser = build_parser()
    args = parser.parse_args(argv)
    args.arguments = passthrough
    configure_logging(args.verbose)

    if args.command == "find":
        return cmd_find(args)
    return cmd_restart(args)
