from __future__ import annotations

import sys
import threading

import pytest

from conftest import FakeBackend
from switchyard.errors import TerminalModeFailure, TerminalUnavailable
from switchyard.terminal import PanicRestoreGuard, TerminalSession


def test_enter_and_exit_restore_every_mode(fake_backend):
    with TerminalSession(fake_backend) as session:
        assert fake_backend.raw and fake_backend.alt and fake_backend.cursor_hidden
        assert session.active
    assert not (fake_backend.raw or fake_backend.alt or fake_backend.cursor_hidden)
    assert not session.active


def test_exception_inside_session_still_restores(fake_backend):
    session = TerminalSession(fake_backend)
    with pytest.raises(ZeroDivisionError):
        with session:
            1 / 0
    assert not session.active
    assert not fake_backend.raw and not fake_backend.alt


def test_restore_is_idempotent(fake_backend):
    session = TerminalSession(fake_backend)
    session.enter()
    session.restore()
    calls = list(fake_backend.calls)
    session.restore()
    assert fake_backend.calls == calls


def test_non_interactive_terminal_is_refused():
    session = TerminalSession(FakeBackend(interactive=False))
    with pytest.raises(TerminalUnavailable):
        session.enter()
    assert not session.active


def test_partial_enter_failure_rolls_back():
    backend = FakeBackend(fail_on={"enter_alternate_screen"})
    session = TerminalSession(backend)
    with pytest.raises(TerminalModeFailure):
        session.enter()
    assert not backend.raw
    assert not session.active


def test_restore_attempts_all_steps_before_raising():
    backend = FakeBackend()
    session = TerminalSession(backend)
    session.enter()
    backend.fail_on = {"show_cursor"}
    with pytest.raises(TerminalModeFailure):
        session.restore()
    assert not backend.alt and not backend.raw
    assert session.cursor_hidden


def test_suspend_and_resume(fake_backend):
    session = TerminalSession(fake_backend)
    session.enter()
    session.suspend()
    assert session.suspended and not fake_backend.raw
    session.resume()
    assert not session.suspended
    assert fake_backend.raw and fake_backend.alt and fake_backend.cursor_hidden
    session.restore()


def test_panic_hook_restores_before_delegating(fake_backend, monkeypatch):
    seen = []

    def previous_hook(exc_type, exc_value, tb):
        seen.append((exc_type, fake_backend.raw, fake_backend.alt))

    monkeypatch.setattr(sys, "excepthook", previous_hook)
    session = TerminalSession(fake_backend)
    session.enter()
    guard = PanicRestoreGuard(session).install()
    try:
        try:
            raise RuntimeError("panic")
        except RuntimeError:
            sys.excepthook(*sys.exc_info())
    finally:
        guard.uninstall()

    assert seen == [(RuntimeError, False, False)]
    assert sys.excepthook is previous_hook


def test_panic_in_thread_restores_terminal(fake_backend, monkeypatch):
    seen = []
    monkeypatch.setattr(threading, "excepthook", lambda args: seen.append(fake_backend.raw))
    session = TerminalSession(fake_backend)
    session.enter()
    with PanicRestoreGuard(session):
        thread = threading.Thread(target=lambda: 1 / 0)
        thread.start()
        thread.join()
    assert seen == [False]
    assert not session.active


def test_guard_restores_on_unwind(fake_backend):
    session = TerminalSession(fake_backend)
    session.enter()
    with pytest.raises(KeyError):
        with PanicRestoreGuard(session):
            raise KeyError("unwind")
    assert not fake_backend.raw and not fake_backend.alt and not fake_backend.cursor_hidden
