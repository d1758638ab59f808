"""
Switchyard - Utilities

Logging setup (TRACE level, per-run log file, optional stderr echo), the
tomllib import and environment helpers.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

import os
import sys
import logging
from pathlib import Path
from datetime import datetime

from rich.console import Console
from rich.traceback import Traceback

from .constants import ENV_LOGLEVEL, ENV_NO_COLOR, ENV_STDERR_LEVEL, ENV_STDERR_TRACE, ENV_LEGACY_TUI

# tomllib is stdlib from 3.11; tomli provides it before that
try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore


# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVELS = {
    'TRACE': 5,       # raw documents, rendered artifacts, key events
    'DEBUG': 10,      # router transitions, commits, probe traffic
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}

LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)-5s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
STDERR_DISABLED = {'OFF', 'NONE', 'DISABLE'}
QUIET_LOGGERS = ("urllib3", "urllib3.connectionpool", "markdown_it")
FALSE_FLAGS = {"", "0", "false", "no", "off"}

logging.addLevelName(LOG_LEVELS['TRACE'], 'TRACE')


def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(LOG_LEVELS['TRACE']):
        self._log(LOG_LEVELS['TRACE'], message, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _trace  # type: ignore[attr-defined]


def env_flag(name: str, environ=None) -> bool:
    """Interpret an environment variable as a boolean switch."""
    source = os.environ if environ is None else environ
    return source.get(name, "").strip().lower() not in FALSE_FLAGS


def no_color(environ=None) -> bool:
    """NO_COLOR is honoured whenever it is present and non-empty."""
    source = os.environ if environ is None else environ
    return bool(source.get(ENV_NO_COLOR, ""))


def legacy_requested(environ=None) -> bool:
    source = os.environ if environ is None else environ
    return source.get(ENV_LEGACY_TUI, "").strip() == "1"


def is_interactive(stdin=None, stdout=None) -> bool:
    """True when both stdin and stdout are attached to a terminal."""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    try:
        return bool(stdin and stdin.isatty() and stdout and stdout.isatty())
    except (AttributeError, ValueError):
        return False


def resolve_level(name: str | None, default: int = 20) -> int:
    """Map a level name (TRACE..CRITICAL, or any stdlib name) onto a number."""
    key = (name or '').strip().upper()
    if key in LOG_LEVELS:
        return LOG_LEVELS[key]
    value = logging.getLevelName(key)
    return value if isinstance(value, int) else default


def _managed(handler: logging.Handler) -> logging.Handler:
    handler._switchyard_managed = True  # type: ignore[attr-defined]
    return handler


def _drop_managed_handlers(root: logging.Logger) -> None:
    for handler in [h for h in root.handlers if getattr(h, "_switchyard_managed", False)]:
        root.removeHandler(handler)
        try:
            handler.close()
        except OSError:
            root.debug("Closing stale log handler failed", exc_info=True)


def _stderr_handler(formatter: logging.Formatter) -> logging.Handler | None:
    requested = os.environ.get(ENV_STDERR_LEVEL, 'OFF').strip().upper()
    if requested in STDERR_DISABLED:
        return None
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(resolve_level(requested, logging.CRITICAL))
    handler.setFormatter(formatter)
    return _managed(handler)


def _install_excepthook(root: logging.Logger, show_trace: bool) -> None:
    def excepthook(exc_type, exc_value, exc_traceback):
        root.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))
        if show_trace:
            Console(stderr=True).print(Traceback.from_exception(exc_type, exc_value, exc_traceback))

    sys.excepthook = excepthook


def setup_logging(log_dir: Path, level_name: str | None = None):
    """Open a per-run log file under log_dir.

    The level comes from level_name, else LOGLEVEL, else INFO. Calling this
    again replaces the handlers installed by the previous call.
    """
    level = resolve_level(level_name or os.environ.get(ENV_LOGLEVEL, 'INFO'))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"switchyard_{datetime.now():%Y%m%d_%H%M%S}.log"

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    file_handler = _managed(logging.FileHandler(log_file, encoding='utf-8'))
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    _drop_managed_handlers(root)
    root.addHandler(file_handler)
    stderr_handler = _stderr_handler(formatter)
    if stderr_handler is not None:
        root.addHandler(stderr_handler)

    # requests' pool chatter drowns the probe log at DEBUG
    for name in QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        quiet.setLevel(logging.WARNING)
        quiet.propagate = False

    _install_excepthook(root, env_flag(ENV_STDERR_TRACE))
    return root, log_file


__all__ = [
    'LOG_LEVELS',
    'tomllib',
    'env_flag',
    'no_color',
    'legacy_requested',
    'is_interactive',
    'resolve_level',
    'setup_logging',
]
