from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, "lib"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from switchyard.backups import BackupRotator
from switchyard.paths import AppPaths
from switchyard.projector import LiveProjector
from switchyard.services import Services
from switchyard.store import ConfigStore
from switchyard.terminal import TerminalBackend


class FakeBackend(TerminalBackend):
    """Records terminal mode changes instead of touching a real TTY."""

    def __init__(self, interactive=True, fail_on=None):
        self.interactive = interactive
        self.fail_on = set(fail_on or ())
        self.calls = []
        self.raw = False
        self.alt = False
        self.cursor_hidden = False

    def _step(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise OSError(f"{name} failed")

    def is_interactive(self):
        return self.interactive

    def enable_raw_mode(self):
        self._step("enable_raw_mode")
        self.raw = True

    def disable_raw_mode(self):
        self._step("disable_raw_mode")
        self.raw = False

    def enter_alternate_screen(self):
        self._step("enter_alternate_screen")
        self.alt = True

    def leave_alternate_screen(self):
        self._step("leave_alternate_screen")
        self.alt = False

    def hide_cursor(self):
        self._step("hide_cursor")
        self.cursor_hidden = True

    def show_cursor(self):
        self._step("show_cursor")
        self.cursor_hidden = False


class StepClock:
    """Deterministic clock for backup stamps; each call advances one second."""

    def __init__(self, start=datetime(2025, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def paths(tmp_path):
    layout = AppPaths.under(tmp_path)
    layout.claude_dir.mkdir(parents=True)
    return layout


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def rotator(paths, clock):
    return BackupRotator(paths.backup_dir, clock=clock)


@pytest.fixture
def store(paths, rotator):
    return ConfigStore.open(paths, rotator=rotator, projector=LiveProjector(paths))


@pytest.fixture
def services(store, paths):
    return Services.build(store, paths)


def claude_provider(provider_id, base_url="https://api.example.com", token="sk-test"):
    return {
        "id": provider_id,
        "name": provider_id.upper(),
        "settingsConfig": {"env": {"ANTHROPIC_BASE_URL": base_url, "ANTHROPIC_AUTH_TOKEN": token}},
    }
