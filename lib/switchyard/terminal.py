"""
Switchyard - Terminal Session

Acquires and releases the terminal (raw mode, alternate screen, hidden cursor)
as a scoped resource. Restoration runs on every exit path: normal return,
exceptions, and uncaught exceptions reaching sys.excepthook or
threading.excepthook. Suspend/resume hand the terminal to legacy flows.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Any

from .errors import TerminalModeFailure, TerminalUnavailable
from .utils import is_interactive

ENTER_ALT_SCREEN = "\033[?1049h"
LEAVE_ALT_SCREEN = "\033[?1049l"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"


class TerminalBackend:
    """Primitive terminal operations. Subclasses talk to a real device."""

    def is_interactive(self) -> bool:
        raise NotImplementedError

    def enable_raw_mode(self) -> None:
        raise NotImplementedError

    def disable_raw_mode(self) -> None:
        raise NotImplementedError

    def enter_alternate_screen(self) -> None:
        raise NotImplementedError

    def leave_alternate_screen(self) -> None:
        raise NotImplementedError

    def hide_cursor(self) -> None:
        raise NotImplementedError

    def show_cursor(self) -> None:
        raise NotImplementedError


class PosixTerminalBackend(TerminalBackend):
    """termios/tty + ANSI escape sequences on the process's stdin/stdout."""

    def __init__(self, stdin=None, stdout=None) -> None:
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self._saved_attrs: Any = None

    def is_interactive(self) -> bool:
        return os.name == "posix" and is_interactive(self.stdin, self.stdout)

    def _write(self, sequence: str) -> None:
        self.stdout.write(sequence)
        self.stdout.flush()

    def enable_raw_mode(self) -> None:
        import termios
        import tty

        fd = self.stdin.fileno()
        try:
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setraw(fd)
        except termios.error as exc:
            raise OSError(f"raw mode: {exc}") from exc

    def disable_raw_mode(self) -> None:
        import termios

        if self._saved_attrs is None:
            return
        try:
            termios.tcsetattr(self.stdin.fileno(), termios.TCSADRAIN, self._saved_attrs)
        except termios.error as exc:
            raise OSError(f"restore mode: {exc}") from exc
        self._saved_attrs = None

    def enter_alternate_screen(self) -> None:
        self._write(ENTER_ALT_SCREEN)

    def leave_alternate_screen(self) -> None:
        self._write(LEAVE_ALT_SCREEN)

    def hide_cursor(self) -> None:
        self._write(HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._write(SHOW_CURSOR)


class TerminalSession:
    """Tracks which terminal modes are active and reverses exactly those."""

    def __init__(self, backend: TerminalBackend | None = None) -> None:
        self.backend = backend if backend is not None else PosixTerminalBackend()
        self.raw_mode = False
        self.alternate_screen = False
        self.cursor_hidden = False
        self.suspended = False
        self._lock = threading.RLock()
        self.logger = logging.getLogger('TerminalSession')

    @property
    def active(self) -> bool:
        return self.raw_mode or self.alternate_screen or self.cursor_hidden

    def require_interactive(self) -> None:
        if not self.backend.is_interactive():
            raise TerminalUnavailable("stdin/stdout is not an interactive terminal")

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------

    def _apply(self) -> None:
        """Set every mode that is not set yet."""
        if not self.raw_mode:
            self.backend.enable_raw_mode()
            self.raw_mode = True
        if not self.alternate_screen:
            self.backend.enter_alternate_screen()
            self.alternate_screen = True
        if not self.cursor_hidden:
            self.backend.hide_cursor()
            self.cursor_hidden = True

    def enter(self) -> None:
        self.require_interactive()
        with self._lock:
            try:
                self._apply()
            except OSError as exc:
                self.restore_best_effort()
                raise TerminalModeFailure(f"Failed to prepare terminal: {exc}") from exc
        self.logger.debug("Terminal session entered")

    def restore(self) -> None:
        """Reverse every active mode. Idempotent; attempts all steps before raising."""
        errors: list[Exception] = []
        with self._lock:
            if self.cursor_hidden:
                try:
                    self.backend.show_cursor()
                    self.cursor_hidden = False
                except OSError as exc:
                    errors.append(exc)
            if self.alternate_screen:
                try:
                    self.backend.leave_alternate_screen()
                    self.alternate_screen = False
                except OSError as exc:
                    errors.append(exc)
            if self.raw_mode:
                try:
                    self.backend.disable_raw_mode()
                    self.raw_mode = False
                except OSError as exc:
                    errors.append(exc)
        if errors:
            raise TerminalModeFailure(f"Failed to restore terminal: {errors[0]}") from errors[0]

    def restore_best_effort(self) -> bool:
        """restore() for paths that must not raise; returns False when something failed."""
        try:
            self.restore()
        except TerminalModeFailure as exc:
            self.logger.error("%s", exc)
            return False
        return True

    def __enter__(self) -> "TerminalSession":
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.restore()
        else:
            self.restore_best_effort()

    # ------------------------------------------------------------------
    # Legacy handoff
    # ------------------------------------------------------------------

    def suspend(self) -> None:
        self.suspended = True
        self.restore()
        self.logger.debug("Terminal session suspended")

    def resume(self) -> None:
        """Re-apply modes; safe even when suspend() stopped part-way."""
        with self._lock:
            try:
                self._apply()
            except OSError as exc:
                raise TerminalModeFailure(f"Failed to resume terminal: {exc}") from exc
            self.suspended = False
        self.logger.debug("Terminal session resumed")


class PanicRestoreGuard:
    """Restores the terminal before any uncaught-exception hook prints."""

    def __init__(self, session: TerminalSession) -> None:
        self.session = session
        self._previous_hook = None
        self._previous_thread_hook = None
        self.installed = False

    def _excepthook(self, exc_type, exc_value, exc_traceback) -> None:
        self.session.restore_best_effort()
        (self._previous_hook or sys.__excepthook__)(exc_type, exc_value, exc_traceback)

    def _thread_excepthook(self, args) -> None:
        self.session.restore_best_effort()
        (self._previous_thread_hook or threading.__excepthook__)(args)

    def install(self) -> "PanicRestoreGuard":
        if self.installed:
            return self
        self._previous_hook = sys.excepthook
        self._previous_thread_hook = threading.excepthook
        sys.excepthook = self._excepthook
        threading.excepthook = self._thread_excepthook
        self.installed = True
        return self

    def uninstall(self) -> None:
        if not self.installed:
            return
        sys.excepthook = self._previous_hook
        threading.excepthook = self._previous_thread_hook
        self.installed = False

    def __enter__(self) -> "PanicRestoreGuard":
        return self.install()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.session.restore_best_effort()
        self.uninstall()


__all__ = [
    "TerminalBackend",
    "PosixTerminalBackend",
    "TerminalSession",
    "PanicRestoreGuard",
]
