"""
Switchyard - Launcher

Command-line entry point: parses the log level and app selection, loads the
SSOT, then runs either the TUI or the legacy prompt menu. Fatal startup
errors are reported on stderr with exit status 1 before any terminal mode
is changed.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Iterable

from rich.console import Console

from . import __version__
from .backups import BackupRotator
from .constants import ENV_LOGLEVEL, ERROR_NOT_A_TTY, ERROR_STARTUP
from .errors import (
    LiveSyncFailure,
    MigrationFailure,
    PersistenceFailure,
    TerminalModeFailure,
    TerminalUnavailable,
)
from .paths import AppPaths
from .projector import LiveProjector
from .records import AppType
from .services import Services
from .store import ConfigStore
from .terminal import PanicRestoreGuard, PosixTerminalBackend, TerminalSession
from .utils import is_interactive, legacy_requested, no_color, setup_logging

VALID_LEVELS = {
    "TRACE",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
}

ALIASES = {
    "WARN": "WARNING",
}

launcher_logger = logging.getLogger("SwitchyardLauncher")


def _normalize_level(value: str) -> str:
    """Normalize arbitrary user input into a supported logging level."""
    normalized = value.strip().replace("-", "").replace("_", "")
    if not normalized:
        raise ValueError("Empty log level")
    upper = normalized.upper()
    upper = ALIASES.get(upper, upper)
    if upper not in VALID_LEVELS:
        raise ValueError(f"Unsupported log level '{value}'")
    return upper


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="switchyard",
        description="Manage claude / codex / gemini CLI providers, MCP servers and prompts.",
    )
    parser.add_argument(
        "log_level",
        nargs="?",
        help="TRACE | DEBUG | INFO | WARNING | ERROR (case insensitive)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level_kw",
        help="TRACE | DEBUG | INFO | WARNING | ERROR (case insensitive)",
    )
    parser.add_argument(
        "--app",
        choices=[member.value for member in AppType],
        default=AppType.CLAUDE.value,
        help="App target selected at startup",
    )
    parser.add_argument(
        "--legacy",
        action="store_true",
        help="Run the prompt-driven legacy menu instead of the TUI",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    args = parser.parse_args(list(argv))

    chosen = args.log_level_kw or args.log_level
    if chosen is None:
        args.level = os.environ.get(ENV_LOGLEVEL, "INFO").upper()
    else:
        try:
            args.level = _normalize_level(chosen)
        except ValueError as exc:
            parser.error(str(exc))
    return args


def _fail(message: str) -> int:
    print(ERROR_STARTUP.format(error=message), file=sys.stderr)
    launcher_logger.error("Startup failed: %s", message)
    return 1


def _reconcile_live(store: ConfigStore) -> None:
    """Bring live artifacts in line with the SSOT once per start."""
    if not store.path.exists():
        return
    try:
        store.sync_live()
    except LiveSyncFailure as exc:
        launcher_logger.warning("Startup live sync incomplete: %s", exc)


def run_tui(store: ConfigStore, services: Services, paths: AppPaths, app_type: AppType) -> int:
    from .app import SwitchyardTUI
    from .probe import ProbeWorker

    session = TerminalSession(PosixTerminalBackend())
    worker = ProbeWorker()
    app = SwitchyardTUI(
        store=store,
        services=services,
        paths=paths,
        session=session,
        worker=worker,
        app_type=app_type,
        plain=no_color(),
    )
    try:
        with session, PanicRestoreGuard(session):
            worker.start()
            app.run()
    except TerminalUnavailable as exc:
        return _fail(str(exc))
    except TerminalModeFailure as exc:
        session.restore_best_effort()
        return _fail(str(exc))
    finally:
        worker.stop()
    return app.return_code or 0


def run_legacy(services: Services, app_type: AppType) -> int:
    from .legacy import run_legacy_session

    session = TerminalSession(PosixTerminalBackend())
    try:
        return run_legacy_session(services, app_type, session, console=Console(no_color=no_color()))
    except TerminalUnavailable:
        return _fail(ERROR_NOT_A_TTY)


def main(argv: Iterable[str] | None = None) -> int:
    """Main entry point."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    if args.version:
        print(f"Switchyard v{__version__}")
        return 0

    os.environ[ENV_LOGLEVEL] = args.level
    paths = AppPaths.from_env()
    _, log_file = setup_logging(paths.log_dir, args.level)
    launcher_logger.info("Switchyard v%s starting (log level %s)", __version__, args.level)
    launcher_logger.debug("Data dir: %s", paths.data_dir)

    try:
        store = ConfigStore.open(
            paths,
            rotator=BackupRotator(paths.backup_dir),
            projector=LiveProjector(paths),
        )
    except (MigrationFailure, PersistenceFailure) as exc:
        return _fail(str(exc))

    _reconcile_live(store)
    services = Services.build(store, paths)
    app_type = AppType.parse(args.app)

    legacy = args.legacy or legacy_requested() or not is_interactive()
    try:
        if legacy:
            launcher_logger.info("Running legacy menu")
            return run_legacy(services, app_type)
        return run_tui(store, services, paths, app_type)
    finally:
        message = f"Log saved: {log_file}"
        if sys.stdout.isatty():
            print(f"\n{message}")
        launcher_logger.info(message)


if __name__ == "__main__":
    sys.exit(main())
