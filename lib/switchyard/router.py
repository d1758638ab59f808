"""
Switchyard - Router

Screen state machine: a navigation stack of base screens and overlays, a fixed
transition table, global keys handled the same on every screen, and one key
map per screen. Unmapped keys do nothing. Every keypress yields an Action for
the application to perform (ActionKind.NONE when the router handled it alone).

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .constants import (
    CONFIG_BACKUP,
    CONFIG_EXPORT,
    CONFIG_IMPORT,
    CONFIG_LEGACY,
    CONFIG_RESET,
    CONFIG_RESTORE,
    CONFIG_SHOW_FULL,
    CONFIG_VALIDATE,
    ERROR_UNSAVED_EXIT,
    HELP_LINES,
    LANGUAGES,
    LIVE_SYNC_POLICIES,
    NAV_CONFIG,
    NAV_EXIT,
    NAV_MCP,
    NAV_PROMPTS,
    NAV_PROVIDERS,
    NAV_SETTINGS,
    SETTING_LANGUAGE,
    SETTING_LIVE_SYNC,
)
from .data import UiData
from .events import EventKind, UiEvent
from .focus import PAGE_SIZE, ListFocus


class Route(Enum):
    # Base screens
    MAIN = "main"
    PROVIDERS = "providers"
    PROVIDER_DETAIL = "provider_detail"
    MCP = "mcp"
    PROMPTS = "prompts"
    CONFIG = "config"
    SETTINGS = "settings"
    # Overlays
    CONFIRM = "confirm"
    TEXT_INPUT = "text_input"
    BACKUP_PICKER = "backup_picker"
    TEXT_VIEW = "text_view"
    EDITOR = "editor"
    HELP = "help"

    @property
    def is_overlay(self) -> bool:
        return self in OVERLAYS


OVERLAYS = frozenset({
    Route.CONFIRM, Route.TEXT_INPUT, Route.BACKUP_PICKER, Route.TEXT_VIEW, Route.EDITOR, Route.HELP,
})
TOP_LEVEL = frozenset({Route.MAIN, Route.PROVIDERS, Route.MCP, Route.PROMPTS, Route.CONFIG, Route.SETTINGS})
FILTERABLE = frozenset({Route.PROVIDERS, Route.MCP, Route.PROMPTS, Route.BACKUP_PICKER})
SCROLLABLE = frozenset({Route.TEXT_VIEW, Route.HELP})

_ANYWHERE = {Route.TEXT_VIEW, Route.CONFIRM}
TRANSITIONS: dict[Route, frozenset[Route]] = {
    route: frozenset(targets | _ANYWHERE)
    for route, targets in {
        Route.MAIN: {Route.HELP},
        Route.PROVIDERS: {Route.PROVIDER_DETAIL, Route.EDITOR, Route.HELP},
        Route.PROVIDER_DETAIL: {Route.EDITOR, Route.HELP},
        Route.MCP: {Route.EDITOR, Route.HELP},
        Route.PROMPTS: {Route.EDITOR, Route.HELP},
        Route.CONFIG: {Route.TEXT_INPUT, Route.BACKUP_PICKER, Route.HELP},
        Route.SETTINGS: {Route.HELP},
        Route.CONFIRM: set(),
        Route.TEXT_INPUT: set(),
        Route.BACKUP_PICKER: {Route.HELP},
        Route.TEXT_VIEW: {Route.HELP},
        Route.EDITOR: set(),
        Route.HELP: set(),
    }.items()
}

# Per-screen key maps: key ("enter", "left", "right" or a character) -> command
KEYMAPS: dict[Route, dict[str, str]] = {
    Route.MAIN: {"enter": "open_nav", "right": "open_nav", "q": "quit"},
    Route.PROVIDERS: {
        "enter": "open_detail", "right": "open_detail",
        "s": "switch", "a": "add", "g": "guided_add", "e": "edit", "d": "delete", "t": "probe",
    },
    Route.PROVIDER_DETAIL: {
        "enter": "switch", "s": "switch", "e": "edit", "d": "delete", "t": "probe", "left": "close",
    },
    Route.MCP: {
        "enter": "toggle", " ": "toggle", "a": "add", "g": "guided_add", "e": "edit", "d": "delete", "i": "import",
    },
    Route.PROMPTS: {
        "enter": "toggle", " ": "toggle", "a": "add", "e": "edit", "v": "view", "d": "delete",
    },
    Route.CONFIG: {"enter": "run_item", "right": "run_item"},
    Route.SETTINGS: {"enter": "run_item", "right": "run_item"},
    Route.CONFIRM: {"enter": "confirm", "y": "confirm", "n": "close"},
    Route.BACKUP_PICKER: {"enter": "pick", "d": "delete"},
    Route.TEXT_VIEW: {"enter": "close", "q": "close"},
    Route.HELP: {"enter": "close", "q": "close"},
    Route.TEXT_INPUT: {},
    Route.EDITOR: {},
}

HINTS: dict[Route, str] = {
    Route.MAIN: "Enter open  [ ] app  ? help  q quit",
    Route.PROVIDERS: "Enter details  s switch  a add  g guided  e edit  d delete  t probe  / filter  Esc back",
    Route.PROVIDER_DETAIL: "s switch  e edit  d delete  t probe  Esc back",
    Route.MCP: "Space toggle  a add  g guided  e edit  d delete  i import  / filter  Esc back",
    Route.PROMPTS: "Space toggle  a add  e edit  v view  d delete  / filter  Esc back",
    Route.CONFIG: "Enter run  Esc back",
    Route.SETTINGS: "Enter change  Esc back",
    Route.CONFIRM: "y / Enter confirm  n / Esc cancel",
    Route.TEXT_INPUT: "Enter submit  Esc cancel",
    Route.BACKUP_PICKER: "Enter restore  d delete  / filter  Esc back",
    Route.TEXT_VIEW: "Up/Down scroll  Esc close",
    Route.EDITOR: "Ctrl+S save  Esc cancel",
    Route.HELP: "Esc close",
}

NAV_ITEMS: list[tuple[str, Route | None]] = [
    (NAV_PROVIDERS, Route.PROVIDERS),
    (NAV_MCP, Route.MCP),
    (NAV_PROMPTS, Route.PROMPTS),
    (NAV_CONFIG, Route.CONFIG),
    (NAV_SETTINGS, Route.SETTINGS),
    (NAV_EXIT, None),
]

CONFIG_ITEMS: list[tuple[str, str]] = [
    (CONFIG_SHOW_FULL, "show_full"),
    (CONFIG_VALIDATE, "validate"),
    (CONFIG_BACKUP, "backup"),
    (CONFIG_RESTORE, "restore"),
    (CONFIG_EXPORT, "export"),
    (CONFIG_IMPORT, "import"),
    (CONFIG_RESET, "reset"),
    (CONFIG_LEGACY, "legacy"),
]

SETTINGS_ITEMS: list[tuple[str, str]] = [
    (SETTING_LANGUAGE, "language"),
    (SETTING_LIVE_SYNC, "live_sync"),
]


class ActionKind(Enum):
    NONE = "none"
    QUIT = "quit"
    SET_APP = "set_app"
    PROVIDER_SWITCH = "provider_switch"
    PROVIDER_DELETE = "provider_delete"
    PROVIDER_PROBE = "provider_probe"
    PROVIDER_ADD = "provider_add"
    PROVIDER_EDIT = "provider_edit"
    PROVIDER_GUIDED_ADD = "provider_guided_add"
    MCP_TOGGLE = "mcp_toggle"
    MCP_DELETE = "mcp_delete"
    MCP_IMPORT = "mcp_import"
    MCP_ADD = "mcp_add"
    MCP_EDIT = "mcp_edit"
    MCP_GUIDED_ADD = "mcp_guided_add"
    PROMPT_TOGGLE = "prompt_toggle"
    PROMPT_DELETE = "prompt_delete"
    PROMPT_ADD = "prompt_add"
    PROMPT_EDIT = "prompt_edit"
    CONFIG_SHOW_FULL = "config_show_full"
    CONFIG_VALIDATE = "config_validate"
    CONFIG_BACKUP = "config_backup"
    CONFIG_RESTORE = "config_restore"
    CONFIG_DELETE_BACKUP = "config_delete_backup"
    CONFIG_EXPORT = "config_export"
    CONFIG_IMPORT = "config_import"
    CONFIG_RESET = "config_reset"
    CONFIG_LEGACY = "config_legacy"
    SET_LANGUAGE = "set_language"
    SET_LIVE_SYNC = "set_live_sync"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    payload: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)


NO_ACTION = Action(ActionKind.NONE)


@dataclass(slots=True)
class ScreenContext:
    """One entry of the navigation stack."""

    route: Route
    focus: ListFocus = field(default_factory=ListFocus)
    params: dict[str, Any] = field(default_factory=dict)
    buffer: str = ""
    scroll: int = 0

    @property
    def dirty(self) -> bool:
        return self.route is Route.TEXT_INPUT and self.buffer != self.params.get("initial", "")

    @property
    def text_entry(self) -> bool:
        return self.route is Route.TEXT_INPUT or self.focus.filtering


def _cycle(options, current):
    options = list(options)
    try:
        return options[(options.index(current) + 1) % len(options)]
    except ValueError:
        return options[0]


class Router:
    """Owns the navigation stack. Constructed once per application run."""

    def __init__(self) -> None:
        self.stack: list[ScreenContext] = [ScreenContext(Route.MAIN)]
        self._remembered: dict[Route, ListFocus] = {}
        self.logger = logging.getLogger('Router')
        self._commands: dict[str, Callable[[ScreenContext, UiData], Action]] = {
            "open_nav": self._cmd_open_nav,
            "quit": self._cmd_quit,
            "open_detail": self._cmd_open_detail,
            "switch": self._cmd_switch,
            "add": self._cmd_add,
            "guided_add": self._cmd_guided_add,
            "edit": self._cmd_edit,
            "delete": self._cmd_delete,
            "probe": self._cmd_probe,
            "toggle": self._cmd_toggle,
            "import": self._cmd_import,
            "view": self._cmd_view,
            "run_item": self._cmd_run_item,
            "confirm": self._cmd_confirm,
            "pick": self._cmd_pick,
            "close": self._cmd_close,
        }

    # ------------------------------------------------------------------
    # Stack operations
    # ------------------------------------------------------------------

    @property
    def top(self) -> ScreenContext:
        return self.stack[-1]

    @property
    def base(self) -> ScreenContext:
        return self.stack[0]

    def overlay(self) -> ScreenContext | None:
        return self.top if self.top.route.is_overlay else None

    def screen(self) -> ScreenContext:
        """Top-most non-overlay context (what is drawn under any overlay)."""
        for ctx in reversed(self.stack):
            if not ctx.route.is_overlay:
                return ctx
        return self.base

    def push(self, route: Route, **params: Any) -> ScreenContext:
        allowed = TRANSITIONS[self.top.route]
        if route not in allowed:
            raise ValueError(f"Transition {self.top.route.value} -> {route.value} is not allowed")
        ctx = ScreenContext(route, params=params, buffer=str(params.get("initial", "")))
        self.stack.append(ctx)
        self.logger.debug("push %s (depth %d)", route.value, len(self.stack))
        return ctx

    def pop(self) -> ScreenContext | None:
        if len(self.stack) == 1:
            return None
        ctx = self.stack.pop()
        self.logger.debug("pop %s", ctx.route.value)
        return ctx

    def pop_route(self, route: Route) -> None:
        """Remove the top-most context of a route (used when a Textual modal closes)."""
        for index in range(len(self.stack) - 1, 0, -1):
            if self.stack[index].route is route:
                del self.stack[index]
                return

    def replace(self, route: Route) -> ScreenContext:
        """Swap the base screen; overlays and pushed screens are dropped."""
        if route not in TOP_LEVEL:
            raise ValueError(f"{route.value} cannot be a base screen")
        self._remembered[self.base.route] = self.base.focus
        focus = self._remembered.get(route) or ListFocus()
        focus.stop_filter()
        self.stack = [ScreenContext(route, focus=focus)]
        self.logger.debug("replace -> %s", route.value)
        return self.base

    def reset_for_app(self) -> None:
        """App target changed: drop record-specific screens and reset list cursors."""
        self.stack = [self.base]
        self.base.focus = ListFocus(cursor=self.base.focus.cursor if self.base.route is Route.MAIN else 0)
        self._remembered = {Route.MAIN: self._remembered.get(Route.MAIN, ListFocus())}

    def show_text(self, title: str, lines: list[str], *, error: bool = False) -> ScreenContext:
        return self.push(Route.TEXT_VIEW, title=title, lines=list(lines), error=error)

    def has_unsaved(self) -> bool:
        return any(ctx.dirty for ctx in self.stack)

    def request_exit(self) -> Action:
        if self.has_unsaved():
            if self.top.route is Route.CONFIRM and self.top.params.get("exit"):
                return NO_ACTION
            self.push(Route.CONFIRM, message=ERROR_UNSAVED_EXIT, action=Action(ActionKind.QUIT), exit=True)
            return NO_ACTION
        return Action(ActionKind.QUIT)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    @staticmethod
    def labels(route: Route, data: UiData) -> list[str]:
        if route is Route.MAIN:
            return [label for label, _ in NAV_ITEMS]
        if route is Route.PROVIDERS:
            return [row.label for row in data.providers]
        if route is Route.MCP:
            return [row.label for row in data.mcp]
        if route is Route.PROMPTS:
            return [row.label for row in data.prompts]
        if route is Route.CONFIG:
            return [label for label, _ in CONFIG_ITEMS]
        if route is Route.SETTINGS:
            return [label for label, _ in SETTINGS_ITEMS]
        if route is Route.BACKUP_PICKER:
            return [info.id for info in data.backups]
        return []

    def selected_index(self, ctx: ScreenContext, data: UiData) -> int | None:
        return ctx.focus.selected(self.labels(ctx.route, data))

    def sync(self, data: UiData) -> None:
        """Clamp cursors after the data changed underneath."""
        for ctx in self.stack:
            ctx.focus.clamp(self.labels(ctx.route, data))
        detail = next((ctx for ctx in self.stack if ctx.route is Route.PROVIDER_DETAIL), None)
        if detail is not None and data.provider(detail.params.get("provider_id", "")) is None:
            index = self.stack.index(detail)
            self.stack = self.stack[:index]

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def handle(self, event: UiEvent, data: UiData) -> Action:
        ctx = self.top
        kind = event.kind

        if kind is EventKind.INTERRUPT:
            return Action(ActionKind.QUIT, {"force": True})

        if ctx.text_entry:
            consumed, action = self._handle_text_entry(ctx, event, data)
            if consumed:
                return action

        if kind is EventKind.APP_NEXT:
            return Action(ActionKind.SET_APP, {"app": data.app.next()})
        if kind is EventKind.APP_PREV:
            return Action(ActionKind.SET_APP, {"app": data.app.prev()})
        if kind is EventKind.FILTER:
            if ctx.route in FILTERABLE:
                ctx.focus.start_filter()
            return NO_ACTION
        if kind is EventKind.HELP:
            if ctx.route is Route.HELP:
                self.pop()
            elif Route.HELP in TRANSITIONS[ctx.route]:
                self.push(Route.HELP, title="Help", lines=list(HELP_LINES))
            return NO_ACTION
        if kind is EventKind.BACK:
            return self._back()

        if kind in (EventKind.UP, EventKind.DOWN, EventKind.PAGE_UP, EventKind.PAGE_DOWN, EventKind.HOME, EventKind.END):
            self._navigate(ctx, kind, data)
            return NO_ACTION

        if kind is EventKind.CONFIRM:
            key = "enter"
        elif kind is EventKind.LEFT:
            key = "left"
        elif kind is EventKind.RIGHT:
            key = "right"
        elif kind is EventKind.CHAR:
            key = event.char or ""
        else:
            return NO_ACTION

        command = KEYMAPS[ctx.route].get(key)
        if command is None:
            return NO_ACTION
        self.logger.trace("%s: %r -> %s", ctx.route.value, key, command)
        return self._commands[command](ctx, data)

    def _handle_text_entry(self, ctx: ScreenContext, event: UiEvent, data: UiData) -> tuple[bool, Action]:
        kind = event.kind
        if kind is EventKind.BACK:
            return False, NO_ACTION
        if event.printable:
            if ctx.route is Route.TEXT_INPUT:
                ctx.buffer += event.char
            else:
                ctx.focus.type_char(event.char)
            return True, NO_ACTION
        if kind is EventKind.BACKSPACE:
            if ctx.route is Route.TEXT_INPUT:
                ctx.buffer = ctx.buffer[:-1]
            else:
                ctx.focus.backspace()
            return True, NO_ACTION
        if kind is EventKind.CONFIRM:
            if ctx.route is Route.TEXT_INPUT:
                return True, self._submit_text(ctx)
            ctx.focus.stop_filter()
            return True, NO_ACTION
        return False, NO_ACTION

    def _back(self) -> Action:
        ctx = self.top
        if ctx.route in FILTERABLE and (ctx.focus.filtering or ctx.focus.query):
            ctx.focus.stop_filter(clear=True)
            return NO_ACTION
        if len(self.stack) > 1:
            self.pop()
            return NO_ACTION
        if ctx.route is not Route.MAIN:
            self.replace(Route.MAIN)
            return NO_ACTION
        return self.request_exit()

    def _navigate(self, ctx: ScreenContext, kind: EventKind, data: UiData) -> None:
        if ctx.route in SCROLLABLE:
            limit = max(0, len(ctx.params.get("lines", [])) - 1)
            delta = {
                EventKind.UP: -1, EventKind.DOWN: 1,
                EventKind.PAGE_UP: -PAGE_SIZE, EventKind.PAGE_DOWN: PAGE_SIZE,
                EventKind.HOME: -limit - 1, EventKind.END: limit + 1,
            }[kind]
            ctx.scroll = max(0, min(ctx.scroll + delta, limit))
            return
        labels = self.labels(ctx.route, data)
        if kind is EventKind.HOME:
            ctx.focus.home()
        elif kind is EventKind.END:
            ctx.focus.end(labels)
        else:
            delta = {
                EventKind.UP: -1, EventKind.DOWN: 1,
                EventKind.PAGE_UP: -PAGE_SIZE, EventKind.PAGE_DOWN: PAGE_SIZE,
            }[kind]
            ctx.focus.move(delta, labels)

    def _submit_text(self, ctx: ScreenContext) -> Action:
        value = ctx.buffer.strip()
        submit = ctx.params.get("submit")
        self.pop()
        if submit == "backup":
            return Action(ActionKind.CONFIG_BACKUP, {"name": value})
        if not value:
            return NO_ACTION
        if submit == "export":
            return Action(ActionKind.CONFIG_EXPORT, {"path": value})
        if submit == "import":
            return Action(ActionKind.CONFIG_IMPORT, {"path": value})
        return NO_ACTION

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _selected_id(self, ctx: ScreenContext, data: UiData) -> str | None:
        if ctx.route is Route.PROVIDER_DETAIL:
            return ctx.params.get("provider_id")
        rows = {
            Route.PROVIDERS: data.providers,
            Route.MCP: data.mcp,
            Route.PROMPTS: data.prompts,
            Route.BACKUP_PICKER: data.backups,
        }.get(ctx.route)
        index = self.selected_index(ctx, data)
        if rows is None or index is None:
            return None
        return rows[index].id

    def _confirm(self, message: str, action: Action) -> Action:
        self.push(Route.CONFIRM, message=message, action=action)
        return NO_ACTION

    def _cmd_open_nav(self, ctx, data) -> Action:
        index = self.selected_index(ctx, data)
        if index is None:
            return NO_ACTION
        target = NAV_ITEMS[index][1]
        if target is None:
            return self.request_exit()
        self.replace(target)
        return NO_ACTION

    def _cmd_quit(self, ctx, data) -> Action:
        return self.request_exit()

    def _cmd_open_detail(self, ctx, data) -> Action:
        provider_id = self._selected_id(ctx, data)
        if provider_id is not None:
            self.push(Route.PROVIDER_DETAIL, provider_id=provider_id)
        return NO_ACTION

    def _cmd_switch(self, ctx, data) -> Action:
        provider_id = self._selected_id(ctx, data)
        if provider_id is None:
            return NO_ACTION
        return Action(ActionKind.PROVIDER_SWITCH, {"provider_id": provider_id})

    def _cmd_add(self, ctx, data) -> Action:
        kind = {
            Route.PROVIDERS: ActionKind.PROVIDER_ADD,
            Route.MCP: ActionKind.MCP_ADD,
            Route.PROMPTS: ActionKind.PROMPT_ADD,
        }[ctx.route]
        return Action(kind)

    def _cmd_guided_add(self, ctx, data) -> Action:
        kind = ActionKind.PROVIDER_GUIDED_ADD if ctx.route is Route.PROVIDERS else ActionKind.MCP_GUIDED_ADD
        return Action(kind)

    def _cmd_edit(self, ctx, data) -> Action:
        record_id = self._selected_id(ctx, data)
        if record_id is None:
            return NO_ACTION
        if ctx.route in (Route.PROVIDERS, Route.PROVIDER_DETAIL):
            return Action(ActionKind.PROVIDER_EDIT, {"provider_id": record_id})
        if ctx.route is Route.MCP:
            return Action(ActionKind.MCP_EDIT, {"server_id": record_id})
        return Action(ActionKind.PROMPT_EDIT, {"prompt_id": record_id})

    def _cmd_delete(self, ctx, data) -> Action:
        record_id = self._selected_id(ctx, data)
        if record_id is None:
            return NO_ACTION
        if ctx.route in (Route.PROVIDERS, Route.PROVIDER_DETAIL):
            return self._confirm(
                f"Delete provider '{record_id}' from {data.app.value}?",
                Action(ActionKind.PROVIDER_DELETE, {"provider_id": record_id}),
            )
        if ctx.route is Route.MCP:
            return self._confirm(
                f"Delete MCP server '{record_id}' for all apps?",
                Action(ActionKind.MCP_DELETE, {"server_id": record_id}),
            )
        if ctx.route is Route.BACKUP_PICKER:
            return self._confirm(
                f"Delete backup '{record_id}'?",
                Action(ActionKind.CONFIG_DELETE_BACKUP, {"backup_id": record_id}),
            )
        return self._confirm(
            f"Delete prompt '{record_id}' from {data.app.value}?",
            Action(ActionKind.PROMPT_DELETE, {"prompt_id": record_id}),
        )

    def _cmd_probe(self, ctx, data) -> Action:
        provider_id = self._selected_id(ctx, data)
        if provider_id is None:
            return NO_ACTION
        return Action(ActionKind.PROVIDER_PROBE, {"provider_id": provider_id})

    def _cmd_toggle(self, ctx, data) -> Action:
        record_id = self._selected_id(ctx, data)
        if record_id is None:
            return NO_ACTION
        if ctx.route is Route.MCP:
            return Action(ActionKind.MCP_TOGGLE, {"server_id": record_id})
        return Action(ActionKind.PROMPT_TOGGLE, {"prompt_id": record_id})

    def _cmd_import(self, ctx, data) -> Action:
        return Action(ActionKind.MCP_IMPORT)

    def _cmd_view(self, ctx, data) -> Action:
        index = self.selected_index(ctx, data)
        if index is None:
            return NO_ACTION
        record = data.prompts[index].record
        self.show_text(record.name, record.content.splitlines() or [""])
        return NO_ACTION

    def _cmd_run_item(self, ctx, data) -> Action:
        index = self.selected_index(ctx, data)
        if index is None:
            return NO_ACTION
        if ctx.route is Route.SETTINGS:
            item = SETTINGS_ITEMS[index][1]
            if item == "language":
                return Action(ActionKind.SET_LANGUAGE, {"language": _cycle(LANGUAGES, data.language)})
            return Action(ActionKind.SET_LIVE_SYNC, {"policy": _cycle(LIVE_SYNC_POLICIES, data.live_sync)})

        item = CONFIG_ITEMS[index][1]
        if item == "show_full":
            return Action(ActionKind.CONFIG_SHOW_FULL)
        if item == "validate":
            return Action(ActionKind.CONFIG_VALIDATE)
        if item == "backup":
            self.push(Route.TEXT_INPUT, prompt="Backup name (optional)", submit="backup", initial="")
        elif item == "restore":
            self.push(Route.BACKUP_PICKER, title=CONFIG_RESTORE)
        elif item == "export":
            initial = str(data.store_path.with_name("config-export.json")) if data.store_path else ""
            self.push(Route.TEXT_INPUT, prompt="Export to file", submit="export", initial=initial)
        elif item == "import":
            self.push(Route.TEXT_INPUT, prompt="Import from file", submit="import", initial="")
        elif item == "reset":
            return self._confirm(
                "Reset every provider, MCP server and prompt? A backup is taken first.",
                Action(ActionKind.CONFIG_RESET),
            )
        elif item == "legacy":
            return Action(ActionKind.CONFIG_LEGACY)
        return NO_ACTION

    def _cmd_confirm(self, ctx, data) -> Action:
        action = ctx.params.get("action", NO_ACTION)
        self.pop()
        return action

    def _cmd_pick(self, ctx, data) -> Action:
        backup_id = self._selected_id(ctx, data)
        if backup_id is None:
            return NO_ACTION
        return self._confirm(
            f"Restore backup '{backup_id}'? The current config is backed up first.",
            Action(ActionKind.CONFIG_RESTORE, {"backup_id": backup_id}),
        )

    def _cmd_close(self, ctx, data) -> Action:
        self.pop()
        return NO_ACTION


__all__ = [
    "Route",
    "OVERLAYS",
    "TRANSITIONS",
    "KEYMAPS",
    "HINTS",
    "NAV_ITEMS",
    "CONFIG_ITEMS",
    "SETTINGS_ITEMS",
    "ActionKind",
    "Action",
    "NO_ACTION",
    "ScreenContext",
    "Router",
]
