#!/usr/bin/env python3
"""
CLI for running the file watcher agent.

Usage:
    filewatcher watch --url http://localhost:9090 --installer /usr/local/bin/cwctl
    python -m filewatcher.cli watch --url http://localhost:9090 --installer cwctl --debug
"""

import argparse
import logging
import secrets
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import WatcherConfig
from .coordinator import CliSyncNotifier, CoordinatorClient
from .exceptions import ConfigError, CoordinatorError
from .logsetup import setup_logging
from .session import WatcherSession


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self, logger: logging.Logger):
        self.should_exit = False
        self.logger = logger
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        self.logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def build_config(args) -> WatcherConfig:
    """Create the watcher config from parsed arguments and the environment."""
    config = WatcherConfig.from_env(
        coordinator_url=args.url,
        installer_path=args.installer,
        quiet_period_ms=args.quiet_period,
    )
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    if args.debug:
        config.log_level = "DEBUG"
    config.validate()
    return config


def cmd_watch(args) -> int:
    """Run the watcher agent until interrupted."""
    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(config.log_dir, config.log_level)
    client_uuid = secrets.token_hex(16)
    logger.info(f"Starting watcher {client_uuid} for coordinator {config.coordinator_url}")

    client = CoordinatorClient(config.coordinator_url, timeout=config.request_timeout_s)
    notifier = CliSyncNotifier(config.installer_path)

    try:
        descriptors = client.get_watchlist()
    except CoordinatorError as e:
        logger.error(f"Could not retrieve watch list: {e}")
        return 1

    shutdown = GracefulShutdown(logger)

    with WatcherSession(notifier, config=config, logger=logger) as session:
        for descriptor in descriptors:
            try:
                session.watch(descriptor)
            except OSError as e:
                logger.error(f"Could not watch {descriptor.project_id}: {e}")

        logger.info(f"Watcher running with {len(session.projects())} project(s)")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            time.sleep(0.5)

    logger.info("Watcher stopped")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filewatcher",
        description="Watch project directories and report settled changes to the build coordinator",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch", help="Run the watcher agent")
    watch.add_argument("--url", required=True, help="Coordinator base URL")
    watch.add_argument("--installer", required=True, help="Path to the coordinator CLI")
    watch.add_argument("--log-dir", help="Directory for the log file")
    watch.add_argument(
        "--quiet-period",
        type=int,
        default=1000,
        help="Milliseconds without changes before a batch is reported (default: 1000)",
    )
    watch.add_argument("--debug", action="store_true", help="Enable debug logging")
    watch.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
