from __future__ import annotations

import pytest

from conftest import claude_provider
from switchyard.data import UiData
from switchyard.events import EventKind, KeyDispatcher, UiEvent
from switchyard.focus import ListFocus
from switchyard.records import AppType, CanonicalStore, McpServerRecord, ProviderRecord
from switchyard.router import (
    KEYMAPS,
    NAV_ITEMS,
    OVERLAYS,
    TRANSITIONS,
    ActionKind,
    Route,
    Router,
)


def _data(provider_ids=("p1", "p2", "p3"), current="p1", app=AppType.CLAUDE):
    store = CanonicalStore()
    section = store.section(app)
    for index, provider_id in enumerate(provider_ids):
        record = ProviderRecord.from_dict(claude_provider(provider_id))
        record.sort_index = index
        section.providers[provider_id] = record
    section.current = current if current in section.providers else ""
    store.mcp_servers["fs"] = McpServerRecord.from_dict({"id": "fs", "server": {"command": "npx"}, "apps": {"claude": True}})
    return UiData.build(store, app)


def _key(router, data, kind, char=None):
    return router.handle(UiEvent(kind, char), data)


def _chars(router, data, text):
    for char in text:
        _key(router, data, EventKind.CHAR, char)


# Dispatcher -------------------------------------------------------------------

def test_dispatcher_named_and_character_keys():
    dispatcher = KeyDispatcher()
    assert dispatcher.translate("up").kind is EventKind.UP
    assert dispatcher.translate("escape").kind is EventKind.BACK
    assert dispatcher.translate("enter", "\r").kind is EventKind.CONFIRM
    assert dispatcher.translate("ctrl+c").kind is EventKind.INTERRUPT
    assert dispatcher.translate("right_square_bracket", "]").kind is EventKind.APP_NEXT
    assert dispatcher.translate("question_mark", "?").kind is EventKind.HELP
    event = dispatcher.translate("s", "s")
    assert event.kind is EventKind.CHAR and event.char == "s"
    assert dispatcher.translate("space", " ").char == " "


def test_dispatcher_ignores_unknown_keys():
    dispatcher = KeyDispatcher()
    assert dispatcher.translate("f5") is None
    assert dispatcher.translate("tab", "\t") is None


# Focus ------------------------------------------------------------------------

def test_focus_filter_and_clamp():
    labels = ["alpha", "beta", "gamma", "alphabet"]
    focus = ListFocus()
    focus.start_filter()
    for char in "alph":
        focus.type_char(char)
    assert focus.visible(labels) == [0, 3]
    focus.move(5, labels)
    assert focus.selected(labels) == 3
    focus.backspace()
    assert focus.cursor == 0
    focus.stop_filter(clear=True)
    assert focus.visible(labels) == [0, 1, 2, 3]


def test_focus_on_empty_list():
    focus = ListFocus(cursor=4)
    focus.clamp([])
    assert focus.cursor == 0
    assert focus.selected([]) is None


# Transition table ---------------------------------------------------------------

def test_every_route_has_a_keymap_and_transitions():
    assert set(KEYMAPS) == set(Route)
    assert set(TRANSITIONS) == set(Route)
    for route in Route:
        assert Route.TEXT_VIEW in TRANSITIONS[route]
        assert Route.CONFIRM in TRANSITIONS[route]


def test_disallowed_transition_raises():
    router = Router()
    with pytest.raises(ValueError):
        router.push(Route.PROVIDER_DETAIL)


def test_overlays_are_flagged():
    assert Route.CONFIRM.is_overlay
    assert not Route.PROVIDERS.is_overlay
    assert Route.EDITOR in OVERLAYS


# Navigation ---------------------------------------------------------------------

def test_main_menu_opens_screens_and_escape_returns():
    router = Router()
    data = _data()
    _key(router, data, EventKind.CONFIRM)
    assert router.base.route is Route.PROVIDERS
    _key(router, data, EventKind.BACK)
    assert router.base.route is Route.MAIN


def test_exit_item_quits_from_main():
    router = Router()
    data = _data()
    _key(router, data, EventKind.END)
    assert NAV_ITEMS[router.base.focus.cursor][1] is None
    action = _key(router, data, EventKind.CONFIRM)
    assert action.kind is ActionKind.QUIT


def test_escape_on_main_requests_exit():
    router = Router()
    assert _key(router, _data(), EventKind.BACK).kind is ActionKind.QUIT


def test_interrupt_forces_quit_anywhere():
    router = Router()
    data = _data()
    router.replace(Route.CONFIG)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.CONFIRM)
    assert router.top.route is Route.TEXT_INPUT
    action = _key(router, data, EventKind.INTERRUPT)
    assert action.kind is ActionKind.QUIT
    assert action.get("force") is True


def test_focus_is_remembered_per_screen():
    router = Router()
    data = _data()
    router.replace(Route.PROVIDERS)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.DOWN)
    router.replace(Route.MCP)
    router.replace(Route.PROVIDERS)
    assert router.base.focus.cursor == 2


def test_provider_keys_emit_actions():
    router = Router()
    data = _data()
    router.replace(Route.PROVIDERS)
    _key(router, data, EventKind.DOWN)

    switch = _key(router, data, EventKind.CHAR, "s")
    assert switch.kind is ActionKind.PROVIDER_SWITCH and switch.get("provider_id") == "p2"

    probe = _key(router, data, EventKind.CHAR, "t")
    assert probe.kind is ActionKind.PROVIDER_PROBE

    assert _key(router, data, EventKind.CHAR, "a").kind is ActionKind.PROVIDER_ADD
    assert _key(router, data, EventKind.CHAR, "e").get("provider_id") == "p2"
    assert _key(router, data, EventKind.CHAR, "z").kind is ActionKind.NONE


def test_delete_goes_through_confirmation():
    router = Router()
    data = _data()
    router.replace(Route.PROVIDERS)
    assert _key(router, data, EventKind.CHAR, "d").kind is ActionKind.NONE
    assert router.top.route is Route.CONFIRM

    action = _key(router, data, EventKind.CHAR, "y")
    assert action.kind is ActionKind.PROVIDER_DELETE
    assert action.get("provider_id") == "p1"
    assert router.top.route is Route.PROVIDERS


def test_confirmation_can_be_dismissed():
    router = Router()
    data = _data()
    router.replace(Route.PROVIDERS)
    _key(router, data, EventKind.CHAR, "d")
    assert _key(router, data, EventKind.CHAR, "n").kind is ActionKind.NONE
    assert router.top.route is Route.PROVIDERS


def test_filter_narrows_selection():
    router = Router()
    data = _data()
    router.replace(Route.PROVIDERS)
    _key(router, data, EventKind.FILTER)
    _chars(router, data, "p3")
    assert router.base.focus.query == "p3"
    _key(router, data, EventKind.CONFIRM)
    assert not router.base.focus.filtering
    action = _key(router, data, EventKind.CHAR, "s")
    assert action.get("provider_id") == "p3"
    _key(router, data, EventKind.BACK)
    assert router.base.focus.query == ""
    assert router.base.route is Route.PROVIDERS


def test_app_switch_keys():
    router = Router()
    data = _data()
    assert _key(router, data, EventKind.APP_NEXT).get("app") is AppType.CODEX
    assert _key(router, data, EventKind.APP_PREV).get("app") is AppType.GEMINI


def test_reset_for_app_drops_detail_screen():
    router = Router()
    data = _data()
    router.replace(Route.PROVIDERS)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.CONFIRM)
    assert router.top.route is Route.PROVIDER_DETAIL
    router.reset_for_app()
    assert [ctx.route for ctx in router.stack] == [Route.PROVIDERS]
    assert router.base.focus.cursor == 0


def test_sync_drops_detail_of_deleted_provider():
    router = Router()
    router.replace(Route.PROVIDERS)
    data = _data()
    _key(router, data, EventKind.END)
    _key(router, data, EventKind.CONFIRM)
    assert router.top.params["provider_id"] == "p3"
    router.sync(_data(provider_ids=("p1", "p2")))
    assert router.top.route is Route.PROVIDERS
    assert router.base.focus.cursor == 1


def test_help_overlay_toggles():
    router = Router()
    data = _data()
    _key(router, data, EventKind.HELP)
    assert router.top.route is Route.HELP
    _key(router, data, EventKind.HELP)
    assert router.top.route is Route.MAIN


def test_text_view_scrolls_within_bounds():
    router = Router()
    data = _data()
    router.show_text("Long", [str(n) for n in range(50)])
    _key(router, data, EventKind.PAGE_DOWN)
    assert router.top.scroll == 10
    _key(router, data, EventKind.END)
    assert router.top.scroll == 49
    _key(router, data, EventKind.HOME)
    assert router.top.scroll == 0
    _key(router, data, EventKind.BACK)
    assert router.top.route is Route.MAIN


def test_backup_text_input_submits_name():
    router = Router()
    data = _data()
    router.replace(Route.CONFIG)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.CONFIRM)
    _chars(router, data, "nightly")
    action = _key(router, data, EventKind.CONFIRM)
    assert action.kind is ActionKind.CONFIG_BACKUP
    assert action.get("name") == "nightly"
    assert router.top.route is Route.CONFIG


def test_unsaved_input_asks_before_exit():
    router = Router()
    data = _data()
    router.replace(Route.CONFIG)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.DOWN)
    _key(router, data, EventKind.CONFIRM)
    _chars(router, data, "q")
    assert router.has_unsaved()
    assert router.top.route is Route.TEXT_INPUT

    assert router.request_exit().kind is ActionKind.NONE
    assert router.top.route is Route.CONFIRM
    action = _key(router, data, EventKind.CHAR, "y")
    assert action.kind is ActionKind.QUIT


def test_settings_cycle_values():
    router = Router()
    data = _data()
    router.replace(Route.SETTINGS)
    action = _key(router, data, EventKind.CONFIRM)
    assert action.kind is ActionKind.SET_LANGUAGE and action.get("language") == "zh"
    _key(router, data, EventKind.DOWN)
    action = _key(router, data, EventKind.CONFIRM)
    assert action.kind is ActionKind.SET_LIVE_SYNC and action.get("policy") == "always"


def test_mcp_space_toggles_selected_server():
    router = Router()
    data = _data()
    router.replace(Route.MCP)
    action = _key(router, data, EventKind.CHAR, " ")
    assert action.kind is ActionKind.MCP_TOGGLE and action.get("server_id") == "fs"
