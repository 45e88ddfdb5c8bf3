"""Command line entry point"""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from taskbridge.config import Settings
from taskbridge.exceptions import ConfigError, FetchError, SyncCancelled
from taskbridge.scheduler import SyncScheduler
from taskbridge.services import JiraClient, SyncService, TodoistClient

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_SYNC_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure root logging (console, plus an optional log file)"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    lvl = getattr(logging, (level or "INFO").upper(), None)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    logging.basicConfig(level=lvl, format=LOG_FORMAT, handlers=handlers, force=True)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(lvl, logging.WARNING))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskbridge",
        description="Bidirectional sync between a Todoist project and Jira Cloud",
    )
    parser.add_argument("--env-file", default=None, help="Settings file (default: .env)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR (env: LOG_LEVEL)")
    parser.add_argument("--todoist-project", default=None, help="Todoist project name (env: TODOIST_PROJECT)")
    parser.add_argument("--jira-project", default=None, help="Jira project key (env: JIRA_PROJECT)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Run a single sync cycle")
    watch = sub.add_parser("watch", help="Sync continuously on a polling interval")
    watch.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Polling interval in minutes (env: SYNC_INTERVAL_MINUTES)",
    )
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Build settings from env/.env, apply CLI overrides and validate"""
    try:
        if args.env_file:
            settings = Settings(_env_file=args.env_file)
        else:
            settings = Settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    overrides = {
        "log_level": args.log_level,
        "todoist_project": args.todoist_project,
        "jira_project": args.jira_project,
        "sync_interval_minutes": getattr(args, "interval", None),
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    return settings.validate_required()


def run_sync(service: SyncService) -> int:
    try:
        summary = service.run_cycle()
    except FetchError as e:
        logger.error(f"Sync failed: {e}")
        return EXIT_SYNC_FAILED
    except SyncCancelled as e:
        logger.error(f"Sync cancelled: {e}")
        return EXIT_SYNC_FAILED
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_INTERRUPTED
    print(summary.render())
    return EXIT_OK


def run_watch(service: SyncService, interval_minutes: int) -> int:
    logger.info(f"Starting watch mode (every {interval_minutes} minutes)")
    SyncScheduler(service, interval_minutes).run_forever()
    logger.info("Shutting down watch mode")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigError as e:
        configure_logging()
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    configure_logging(settings.log_level, settings.log_file)
    logger.info(
        f"Config: todoist_project={settings.todoist_project} jira_url={settings.jira_url} "
        f"jira_project={settings.jira_project} issue_types={settings.issue_types()} "
        f"interval={settings.sync_interval_minutes}m"
    )

    todoist = TodoistClient(settings.todoist_token)
    jira = JiraClient(settings.jira_url, settings.jira_email, settings.jira_token)
    try:
        service = SyncService(settings, todoist, jira)
        if args.command == "watch":
            return run_watch(service, settings.sync_interval_minutes)
        return run_sync(service)
    finally:
        todoist.close()
        jira.close()


if __name__ == "__main__":
    sys.exit(main())
