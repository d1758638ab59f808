from __future__ import annotations

import io
from contextlib import contextmanager

import pytest
from rich.console import Console

from conftest import FakeBackend, claude_provider
from switchyard.data import UiData
from switchyard.errors import TerminalUnavailable
from switchyard.events import EventKind, UiEvent
from switchyard.legacy import LegacyBridge, guided_add_mcp_server, guided_add_provider, legacy_menu, provider_payload
from switchyard.projector import provider_api_url
from switchyard.records import AppType
from switchyard.router import Route, Router
from switchyard.terminal import TerminalSession


def _console():
    return Console(file=io.StringIO(), force_terminal=False, width=100)


def _script(monkeypatch, prompts, confirms=()):
    prompt_answers = iter(prompts)
    confirm_answers = iter(confirms)
    monkeypatch.setattr("switchyard.legacy.Prompt.ask", lambda *args, **kwargs: next(prompt_answers))
    monkeypatch.setattr("switchyard.legacy.Confirm.ask", lambda *args, **kwargs: next(confirm_answers))


class RecordingSuspender:
    def __init__(self):
        self.entered = 0
        self.exited = 0

    @contextmanager
    def __call__(self):
        self.entered += 1
        try:
            yield
        finally:
            self.exited += 1


def test_round_trip_leaves_router_state_unchanged(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    services.providers.add(AppType.CLAUDE, claude_provider("p2"))
    data = UiData.build(store.snapshot(), AppType.CLAUDE)
    router = Router()
    router.replace(Route.PROVIDERS)
    router.handle(UiEvent(EventKind.DOWN), data)
    router.handle(UiEvent(EventKind.RIGHT), data)
    before = [(ctx.route, ctx.focus.cursor, dict(ctx.params)) for ctx in router.stack]

    backend = FakeBackend()
    session = TerminalSession(backend)
    session.enter()
    suspender = RecordingSuspender()
    bridge = LegacyBridge(session, suspender=suspender, console=_console())

    assert bridge.run_legacy(lambda console: "done") == "done"

    after = [(ctx.route, ctx.focus.cursor, dict(ctx.params)) for ctx in router.stack]
    assert after == before
    assert suspender.entered == suspender.exited == 1
    assert backend.raw and backend.alt and backend.cursor_hidden
    assert "disable_raw_mode" in backend.calls
    session.restore()


def test_flow_runs_with_terminal_released():
    backend = FakeBackend()
    session = TerminalSession(backend)
    session.enter()
    states = []
    bridge = LegacyBridge(session, console=_console())
    bridge.run_legacy(lambda console: states.append((backend.raw, backend.alt)))
    assert states == [(False, False)]
    assert session.active


def test_interrupted_flow_is_cancelled_and_resumed():
    backend = FakeBackend()
    session = TerminalSession(backend)
    session.enter()

    def flow(console):
        raise KeyboardInterrupt

    assert LegacyBridge(session, console=_console()).run_legacy(flow) is None
    assert backend.raw and not session.suspended


def test_flow_error_propagates_after_resume():
    backend = FakeBackend()
    session = TerminalSession(backend)
    session.enter()

    def flow(console):
        raise ValueError("bad flow")

    with pytest.raises(ValueError):
        LegacyBridge(session, console=_console()).run_legacy(flow)
    assert backend.raw and not session.suspended


def test_non_interactive_terminal_is_refused():
    session = TerminalSession(FakeBackend(interactive=False))
    with pytest.raises(TerminalUnavailable):
        LegacyBridge(session, console=_console()).run_legacy(lambda console: None)


def test_guided_provider_for_codex(services, store, monkeypatch):
    _script(monkeypatch, ["c1", "Codex One", "https://codex.example.com/v1", "sk-1", "gpt-5", ""], [True])

    assert guided_add_provider(_console(), services, AppType.CODEX) == "c1"

    section = store.snapshot().section(AppType.CODEX)
    assert section.current == "c1"
    record = section.providers["c1"]
    assert record.settings["auth"] == {"OPENAI_API_KEY": "sk-1"}
    assert provider_api_url(AppType.CODEX, record) == "https://codex.example.com/v1"


def test_guided_provider_rejects_blank_id(services, store, monkeypatch):
    _script(monkeypatch, ["", "Name", "https://x", "k", "", ""])
    assert guided_add_provider(_console(), services, AppType.CLAUDE) is None
    assert store.snapshot().section(AppType.CLAUDE).providers == {}


def test_guided_mcp_server_stdio(services, store, monkeypatch):
    _script(monkeypatch, ["fs", "Filesystem", "stdio", "npx -y @mcp/fs /tmp"], [True, False, True])

    assert guided_add_mcp_server(_console(), services, AppType.CLAUDE) == "fs"

    record = store.snapshot().mcp_servers["fs"]
    assert record.server == {"type": "stdio", "command": "npx", "args": ["-y", "@mcp/fs", "/tmp"]}
    assert record.apps == {"claude": True, "codex": False, "gemini": True}


def test_legacy_menu_switches_provider(services, store, monkeypatch):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    services.providers.add(AppType.CLAUDE, claude_provider("p2"))
    _script(monkeypatch, ["2", "2", "0"])

    assert legacy_menu(_console(), services, AppType.CLAUDE) is AppType.CLAUDE
    assert store.snapshot().section(AppType.CLAUDE).current == "p2"


def test_legacy_menu_handles_empty_backup_list(services, monkeypatch):
    _script(monkeypatch, ["8", "0"])
    console = _console()
    legacy_menu(console, services, AppType.CLAUDE)
    assert "Nothing to choose from" in console.file.getvalue()


def test_provider_payload_per_app():
    assert provider_payload(AppType.CLAUDE, "https://c", "t")["env"]["ANTHROPIC_BASE_URL"] == "https://c"
    assert "GEMINI_MODEL" in provider_payload(AppType.GEMINI, "https://g", "k", "m")["env"]
    assert 'base_url = "https://o"' in provider_payload(AppType.CODEX, "https://o", "k")["config"]


def test_guided_mcp_server_rejects_unbalanced_quotes(services, store, monkeypatch):
    _script(monkeypatch, ["fs", "fs", "stdio", 'npx "unterminated'])
    console = _console()

    assert guided_add_mcp_server(console, services, AppType.CLAUDE) is None
    assert "Cannot parse command" in console.file.getvalue()
    assert store.snapshot().mcp_servers == {}


def test_legacy_menu_keeps_running_after_bad_command(services, store, monkeypatch):
    _script(monkeypatch, ["5", "fs", "fs", "stdio", 'npx "unterminated', "0"])
    assert legacy_menu(_console(), services, AppType.CLAUDE) is AppType.CLAUDE
    assert "fs" not in store.snapshot().mcp_servers
