from __future__ import annotations

import asyncio
import json

from textual.widgets import TextArea

from conftest import FakeBackend, claude_provider
from switchyard.app import SwitchyardTUI
from switchyard.modals import EditorScreen
from switchyard.probe import ProbeWorker
from switchyard.records import AppType
from switchyard.router import Route
from switchyard.terminal import TerminalSession


def _make_app(store, services, paths):
    # Worker is never started; probes only queue.
    return SwitchyardTUI(
        store=store,
        services=services,
        paths=paths,
        session=TerminalSession(FakeBackend()),
        worker=ProbeWorker(),
        plain=True,
    )


def _run(app, scenario):
    async def runner():
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.pause()
            await scenario(pilot)
            await pilot.pause()

    asyncio.run(runner())


def test_switch_provider_from_the_keyboard(store, services, paths):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    services.providers.add(AppType.CLAUDE, claude_provider("p2"))
    app = _make_app(store, services, paths)

    async def scenario(pilot):
        await pilot.press("enter")
        assert app.router.base.route is Route.PROVIDERS
        await pilot.press("down", "s")
        await pilot.pause()

    _run(app, scenario)

    assert store.snapshot().section(AppType.CLAUDE).current == "p2"
    assert json.loads(paths.claude_settings.read_text())["env"]["ANTHROPIC_BASE_URL"] == "https://api.example.com"


def test_app_switch_keys_change_target_app(store, services, paths):
    app = _make_app(store, services, paths)

    async def scenario(pilot):
        await pilot.press("right_square_bracket")
        await pilot.pause()
        assert app.app_type is AppType.CODEX
        await pilot.press("left_square_bracket", "left_square_bracket")
        await pilot.pause()
        assert app.app_type is AppType.GEMINI

    _run(app, scenario)


def test_editor_saves_new_provider(store, services, paths):
    app = _make_app(store, services, paths)

    async def scenario(pilot):
        await pilot.press("enter", "a")
        await pilot.pause()
        assert isinstance(app.screen, EditorScreen)
        payload = claude_provider("fresh")
        app.screen.query_one(TextArea).load_text(json.dumps(payload))
        await pilot.press("ctrl+s")
        await pilot.pause()
        assert not isinstance(app.screen, EditorScreen)
        assert app.router.top.route is Route.PROVIDERS

    _run(app, scenario)

    assert "fresh" in store.snapshot().section(AppType.CLAUDE).providers


def test_cancelled_editor_leaves_store_untouched(store, services, paths):
    app = _make_app(store, services, paths)

    async def scenario(pilot):
        await pilot.press("enter", "a")
        await pilot.pause()
        await pilot.press("escape")
        await pilot.pause()
        assert app.router.top.route is Route.PROVIDERS

    _run(app, scenario)

    assert store.snapshot().section(AppType.CLAUDE).providers == {}
