"""
Switchyard - UI Widgets

App tab header, the router view that draws the current screen and overlay,
the toast/status bar, and the key-hint footer.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

import logging
import time

from textual.widget import Widget
from textual.widgets import Static
from rich import box
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .constants import (
    PROBE_FAILED,
    PROBE_OK,
    PROBE_PENDING,
    STATUS_READY,
    TOAST_SECONDS,
)
from .data import UiData
from .focus import PAGE_SIZE
from .probe import ProbeBoard, probe_target
from .records import AppType
from .router import CONFIG_ITEMS, HINTS, NAV_ITEMS, SETTINGS_ITEMS, Route, Router, ScreenContext

TOAST_STYLES = {
    "info": "bold cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
}


def probe_status(board: ProbeBoard, target: str) -> str:
    result = board.get(target)
    if board.is_pending(target):
        return PROBE_PENDING
    if result is None:
        return ""
    if result.ok:
        return PROBE_OK.format(latency=result.latency_ms or 0.0, status=result.status)
    return PROBE_FAILED.format(error=result.error or "unknown")


class AppTabsHeader(Widget):
    """Single-line header listing the app targets with the current one highlighted."""

    DEFAULT_CSS = """
    AppTabsHeader {
        dock: top;
        height: 1;
        background: $panel;
        color: $text;
        padding: 0 1;
        overflow: hidden;
    }
    """

    def __init__(self, *, plain: bool = False, id: str | None = None) -> None:
        super().__init__(id=id)
        self.plain = plain
        self._text = Text("", no_wrap=True, overflow="ellipsis")

    def set_app(self, app_type: AppType, subtitle: str = "") -> None:
        text = Text(no_wrap=True, overflow="ellipsis")
        text.append("Switchyard ", style="" if self.plain else "bold")
        for member in AppType:
            label = f" {member.label} "
            if member is app_type:
                text.append(f"[{label.strip()}]" if self.plain else label, style="" if self.plain else "reverse bold")
            else:
                text.append(label, style="" if self.plain else "dim")
        if subtitle:
            text.append(f"  {subtitle}", style="" if self.plain else "italic")
        self._text = text
        self.refresh()

    def render(self) -> Text:
        return self._text


class RouterView(Static):
    """Draws the screen beneath the overlay stack plus the top overlay."""

    DEFAULT_CSS = """
    RouterView {
        height: 1fr;
        padding: 0 1;
    }
    """

    def __init__(self, *, plain: bool = False, id: str | None = None) -> None:
        super().__init__("", id=id)
        self.plain = plain
        self.box_style = box.ASCII if plain else box.ROUNDED

    def _style(self, style: str) -> str:
        return "" if self.plain else style

    def show(self, router: Router, data: UiData, board: ProbeBoard) -> None:
        screen = router.screen()
        parts = [self._render_screen(router, screen, data, board)]
        overlay = router.overlay()
        if overlay is not None and overlay.route is not Route.EDITOR:
            parts.append(self._render_overlay(router, overlay, data))
        self.update(Group(*parts))

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _table(self, *columns: str) -> Table:
        table = Table(box=None, show_header=bool(columns), expand=True, pad_edge=False)
        table.add_column("", width=2, no_wrap=True)
        for column in columns:
            table.add_column(column, overflow="ellipsis", no_wrap=True)
        return table

    def _window(self, ctx: ScreenContext, count: int) -> range:
        size = PAGE_SIZE * 2
        start = max(0, min(ctx.focus.cursor - size // 2, count - size))
        return range(start, min(count, start + size))

    def _list_panel(self, router: Router, ctx: ScreenContext, data: UiData, title: str, columns, rows) -> Panel:
        """rows: list of (marker, cells) aligned with Router.labels(ctx.route)."""
        table = self._table(*columns)
        visible = ctx.focus.visible(router.labels(ctx.route, data))
        for position in self._window(ctx, len(visible)):
            marker, cells = rows[visible[position]]
            selected = position == ctx.focus.cursor
            pointer = ">" if selected else " "
            style = self._style("reverse") if selected else ""
            table.add_row(f"{pointer}{marker}", *cells, style=style)
        if not visible:
            table.add_row(" ", Text("(empty)", style=self._style("dim")), *[""] * max(0, len(columns) - 1))
        subtitle = None
        if ctx.focus.filtering or ctx.focus.query:
            cursor = "_" if ctx.focus.filtering else ""
            subtitle = f"filter: {ctx.focus.query}{cursor}"
        return Panel(table, title=title, subtitle=subtitle, box=self.box_style, border_style=self._style("cyan"))

    def _render_screen(self, router: Router, ctx: ScreenContext, data: UiData, board: ProbeBoard):
        route = ctx.route
        app_label = data.app.label
        if route is Route.MAIN:
            rows = [(" ", [label]) for label, _ in NAV_ITEMS]
            menu = self._list_panel(router, ctx, data, "Menu", (), rows)
            return Group(menu, self._summary(data))
        if route is Route.PROVIDERS:
            rows = [
                ("*" if row.is_current else " ", [row.record.name, row.id, row.api_url or "-", probe_status(board, probe_target(data.app.value, row.id))])
                for row in data.providers
            ]
            return self._list_panel(router, ctx, data, f"{app_label} providers", ("Name", "Id", "API URL", "Probe"), rows)
        if route is Route.PROVIDER_DETAIL:
            return self._provider_detail(ctx, data, board)
        if route is Route.MCP:
            rows = [
                ("*" if row.enabled else " ", [row.record.name, row.id, row.summary,
                                               ",".join(app.value for app in AppType if row.record.enabled_for(app))])
                for row in data.mcp
            ]
            return self._list_panel(router, ctx, data, f"MCP servers ({app_label})", ("Name", "Id", "Server", "Apps"), rows)
        if route is Route.PROMPTS:
            rows = [("*" if row.active else " ", [row.record.name, row.id, row.preview]) for row in data.prompts]
            return self._list_panel(router, ctx, data, f"{app_label} prompts", ("Name", "Id", "Preview"), rows)
        if route is Route.CONFIG:
            rows = [(" ", [label]) for label, _ in CONFIG_ITEMS]
            info = Text(f"SSOT: {data.store_path or '-'}    backups: {len(data.backups)}", style=self._style("dim"))
            return Group(self._list_panel(router, ctx, data, "Configuration", (), rows), info)
        values = {"language": data.language, "live_sync": data.live_sync}
        rows = [(" ", [label, values[key]]) for label, key in SETTINGS_ITEMS]
        return self._list_panel(router, ctx, data, "Settings", ("Setting", "Value"), rows)

    def _summary(self, data: UiData) -> Panel:
        current = data.current_provider
        prompt = data.active_prompt
        lines = Table.grid(padding=(0, 2))
        lines.add_column(style=self._style("bold"))
        lines.add_column()
        lines.add_row("App", data.app.label)
        lines.add_row("Provider", f"{current.record.name} ({current.id})" if current else "-")
        lines.add_row("API URL", (current.api_url or "-") if current else "-")
        lines.add_row("MCP enabled", str(sum(1 for row in data.mcp if row.enabled)))
        lines.add_row("Prompt", prompt.record.name if prompt else "-")
        lines.add_row("Live dir", str(data.live_dir or "-"))
        return Panel(lines, title="Current", box=self.box_style, border_style=self._style("green"))

    def _provider_detail(self, ctx: ScreenContext, data: UiData, board: ProbeBoard) -> Panel:
        row = data.provider(ctx.params.get("provider_id", ""))
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style=self._style("bold"))
        grid.add_column()
        if row is None:
            grid.add_row("Provider", "(missing)")
        else:
            record = row.record
            grid.add_row("Id", record.id)
            grid.add_row("Name", record.name)
            grid.add_row("Active", "yes" if row.is_current else "no")
            grid.add_row("API URL", row.api_url or "-")
            grid.add_row("Website", record.website_url or "-")
            grid.add_row("Category", record.category or "-")
            grid.add_row("Notes", record.notes or "-")
            grid.add_row("Probe", probe_status(board, probe_target(data.app.value, record.id)) or "-")
            grid.add_row("Settings keys", ", ".join(sorted(record.settings)) or "-")
        return Panel(grid, title=f"{data.app.label} provider", box=self.box_style, border_style=self._style("cyan"))

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def _render_overlay(self, router: Router, ctx: ScreenContext, data: UiData) -> Panel:
        route = ctx.route
        if route is Route.CONFIRM:
            body = Text(ctx.params.get("message", ""), style=self._style("bold"))
            return Panel(body, title="Confirm", box=self.box_style, border_style=self._style("yellow"))
        if route is Route.TEXT_INPUT:
            body = Text()
            body.append(f"{ctx.params.get('prompt', '')}: ", style=self._style("bold"))
            body.append(ctx.buffer)
            body.append("_", style=self._style("blink"))
            return Panel(body, title="Input", box=self.box_style, border_style=self._style("yellow"))
        if route is Route.BACKUP_PICKER:
            rows = [(" ", [info.id, info.created.strftime("%Y-%m-%d %H:%M:%S"), f"{info.size} B"]) for info in data.backups]
            return self._list_panel(router, ctx, data, ctx.params.get("title", "Backups"), ("Backup", "Created", "Size"), rows)
        lines = ctx.params.get("lines", [])
        height = PAGE_SIZE * 2
        window = lines[ctx.scroll:ctx.scroll + height]
        body = Text("\n".join(window))
        error = ctx.params.get("error", False)
        title = ctx.params.get("title", "")
        if len(lines) > height:
            title = f"{title} ({ctx.scroll + 1}-{min(len(lines), ctx.scroll + height)}/{len(lines)})"
        return Panel(body, title=title, box=self.box_style, border_style=self._style("red" if error else "magenta"))


class ToastBar(Static):
    """Status line showing the latest toast until it expires."""

    DEFAULT_CSS = """
    ToastBar {
        height: 1;
        background: #000000;
        color: #888888;
        padding: 0 1;
    }
    """

    def __init__(self, *, plain: bool = False, id: str | None = None) -> None:
        super().__init__("", markup=False, id=id)
        self.plain = plain
        self._expires_at = 0.0
        self._message = STATUS_READY
        self._kind = "info"
        self.logger = logging.getLogger("ToastBar")

    def on_mount(self) -> None:
        self._render_message()

    def toast(self, message: str, kind: str = "info", seconds: float = TOAST_SECONDS) -> None:
        self._message = message
        self._kind = kind if kind in TOAST_STYLES else "info"
        self._expires_at = time.monotonic() + seconds
        self.logger.debug("[%s] %s", self._kind, message)
        self._render_message()

    @property
    def message(self) -> str:
        return self._message

    def expire(self) -> None:
        """Called from the UI tick; falls back to the idle text once expired."""
        if self._expires_at and time.monotonic() >= self._expires_at:
            self._expires_at = 0.0
            self._message = STATUS_READY
            self._kind = "info"
            self._render_message()

    def _render_message(self) -> None:
        style = "" if self.plain else TOAST_STYLES[self._kind]
        self.update(Text(self._message, style=style, no_wrap=True, overflow="ellipsis"))


class HintFooter(Static):
    DEFAULT_CSS = """
    HintFooter {
        dock: bottom;
        height: 1;
        background: $panel;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def __init__(self, *, id: str | None = None) -> None:
        super().__init__("", markup=False, id=id)

    def show_route(self, route: Route) -> None:
        self.update(Text(HINTS.get(route, ""), no_wrap=True, overflow="ellipsis"))


__all__ = ["AppTabsHeader", "RouterView", "ToastBar", "HintFooter", "probe_status"]
