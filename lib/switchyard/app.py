"""
Switchyard - Main Application

Textual application hosting the router: translates key presses into UI
events, performs the actions the router emits through the domain services,
and redraws. Probe results are drained on a timer so the UI never blocks on
the network.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

import logging
from typing import Callable

from textual import events
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.screen import ModalScreen
from rich.console import Console

from .constants import (
    APP_TITLE,
    CONFIG_SHOW_FULL,
    ERROR_LEGACY_UNAVAILABLE,
    ERROR_LIVE_SYNC,
    ERROR_TITLE,
    POLL_INTERVAL,
    STATUS_BACKUP_CREATED,
    STATUS_BACKUP_DELETED,
    STATUS_BACKUP_RESTORED,
    STATUS_CONFIG_EXPORTED,
    STATUS_CONFIG_IMPORTED,
    STATUS_CONFIG_RESET,
    STATUS_CONFIG_VALID,
    STATUS_EDITING_CANCELLED,
    STATUS_LANGUAGE_SET,
    STATUS_LIVE_SYNC_SET,
    STATUS_MCP_DELETED,
    STATUS_MCP_IMPORTED,
    STATUS_MCP_SAVED,
    STATUS_MCP_TOGGLED,
    STATUS_NO_API_URL,
    STATUS_NOTHING_SELECTED,
    STATUS_PROBE_STARTED,
    STATUS_PROMPT_ACTIVATED,
    STATUS_PROMPT_DEACTIVATED,
    STATUS_PROMPT_DELETED,
    STATUS_PROMPT_SAVED,
    STATUS_PROVIDER_DELETED,
    STATUS_PROVIDER_SAVED,
    STATUS_PROVIDER_SWITCHED,
)
from .data import UiData
from .errors import (
    LiveSyncFailure,
    PersistenceFailure,
    SwitchyardError,
    TerminalModeFailure,
    TerminalUnavailable,
    ValidationFailure,
)
from .events import KeyDispatcher
from .fsutil import dump_json
from .legacy import LegacyBridge, guided_add_mcp_server, guided_add_provider, legacy_menu
from .modals import EditorScreen
from .paths import AppPaths
from .probe import ProbeBoard, ProbeWorker, probe_target
from .records import AppType
from .router import Action, ActionKind, Route, Router
from .services import Services, mcp_template, parse_json_object, prompt_template, provider_template
from .store import ConfigStore
from .terminal import TerminalSession
from .widgets import AppTabsHeader, HintFooter, RouterView, ToastBar

# Submit callback for the editor: applies the parsed text, returns the toast message
EditorApply = Callable[[str], str]


class SwitchyardTUI(App):
    """Switchyard TUI: one router, one store, one probe worker."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #router-view {
        height: 1fr;
    }

    #status-bar {
        height: 1;
        background: #000000;
        color: #888888;
        padding: 0 1;
        content-align: left middle;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "force_quit", "Quit", show=False, priority=True),
        Binding("ctrl+q", "request_quit", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        *,
        store: ConfigStore,
        services: Services,
        paths: AppPaths,
        session: TerminalSession,
        worker: ProbeWorker | None = None,
        app_type: AppType = AppType.CLAUDE,
        plain: bool = False,
        console: Console | None = None,
    ) -> None:
        super().__init__()
        self.title = APP_TITLE
        self.store = store
        self.services = services
        self.paths = paths
        self.session = session
        self.worker = worker or ProbeWorker()
        self.app_type = app_type
        self.plain = plain
        self.router = Router()
        self.dispatcher = KeyDispatcher()
        self.board = ProbeBoard()
        self.bridge = LegacyBridge(session, suspender=self.suspend, console=console)
        self.data = UiData(app=app_type)
        self.logger = logging.getLogger('SwitchyardTUI')
        self._handlers: dict[ActionKind, Callable[[Action], None]] = {
            ActionKind.QUIT: self._do_quit,
            ActionKind.SET_APP: self._do_set_app,
            ActionKind.PROVIDER_SWITCH: self._do_provider_switch,
            ActionKind.PROVIDER_DELETE: self._do_provider_delete,
            ActionKind.PROVIDER_PROBE: self._do_provider_probe,
            ActionKind.PROVIDER_ADD: self._do_provider_add,
            ActionKind.PROVIDER_EDIT: self._do_provider_edit,
            ActionKind.PROVIDER_GUIDED_ADD: self._do_provider_guided_add,
            ActionKind.MCP_TOGGLE: self._do_mcp_toggle,
            ActionKind.MCP_DELETE: self._do_mcp_delete,
            ActionKind.MCP_IMPORT: self._do_mcp_import,
            ActionKind.MCP_ADD: self._do_mcp_add,
            ActionKind.MCP_EDIT: self._do_mcp_edit,
            ActionKind.MCP_GUIDED_ADD: self._do_mcp_guided_add,
            ActionKind.PROMPT_TOGGLE: self._do_prompt_toggle,
            ActionKind.PROMPT_DELETE: self._do_prompt_delete,
            ActionKind.PROMPT_ADD: self._do_prompt_add,
            ActionKind.PROMPT_EDIT: self._do_prompt_edit,
            ActionKind.CONFIG_SHOW_FULL: self._do_config_show_full,
            ActionKind.CONFIG_VALIDATE: self._do_config_validate,
            ActionKind.CONFIG_BACKUP: self._do_config_backup,
            ActionKind.CONFIG_RESTORE: self._do_config_restore,
            ActionKind.CONFIG_DELETE_BACKUP: self._do_config_delete_backup,
            ActionKind.CONFIG_EXPORT: self._do_config_export,
            ActionKind.CONFIG_IMPORT: self._do_config_import,
            ActionKind.CONFIG_RESET: self._do_config_reset,
            ActionKind.CONFIG_LEGACY: self._do_config_legacy,
            ActionKind.SET_LANGUAGE: self._do_set_language,
            ActionKind.SET_LIVE_SYNC: self._do_set_live_sync,
        }

    # ------------------------------------------------------------------
    # Layout and lifecycle
    # ------------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield AppTabsHeader(plain=self.plain, id="app-tabs")
        yield RouterView(plain=self.plain, id="router-view")
        yield ToastBar(plain=self.plain, id="status-bar")
        yield HintFooter(id="hint-footer")

    def on_mount(self) -> None:
        self.logger.info("UI mounted (app=%s)", self.app_type.value)
        self.reload_data()
        self.set_interval(POLL_INTERVAL, self._on_tick)

    def _on_tick(self) -> None:
        results = self.worker.drain()
        accepted = [result for result in results if self.board.accept(result)]
        self.query_one(ToastBar).expire()
        if accepted:
            self.logger.debug("Accepted %d probe result(s)", len(accepted))
            self.refresh_view()

    def reload_data(self) -> None:
        self.data = UiData.build(
            self.store.snapshot(),
            self.app_type,
            rotator=self.store.rotator,
            paths=self.paths,
        )
        self.router.sync(self.data)
        self.refresh_view()

    def refresh_view(self) -> None:
        current = self.data.current_provider
        subtitle = f"provider: {current.record.name}" if current else "no provider"
        self.query_one(AppTabsHeader).set_app(self.app_type, subtitle)
        self.query_one(RouterView).show(self.router, self.data, self.board)
        self.query_one(HintFooter).show_route(self.router.top.route)

    def toast(self, message: str, kind: str = "info") -> None:
        self.query_one(ToastBar).toast(message, kind)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _modal_open(self) -> bool:
        return isinstance(self.screen, ModalScreen) or self.router.top.route is Route.EDITOR

    def on_key(self, event: events.Key) -> None:
        if self._modal_open():
            return
        ui_event = self.dispatcher.translate(event.key, event.character)
        if ui_event is None:
            return
        event.stop()
        event.prevent_default()
        self.logger.trace("Key %r -> %s", event.key, ui_event.kind.value)
        action = self.router.handle(ui_event, self.data)
        self.perform(action)
        self.refresh_view()

    def action_force_quit(self) -> None:
        self.logger.info("Interrupt received, exiting")
        self.exit()

    def action_request_quit(self) -> None:
        if self._modal_open():
            return
        self.perform(self.router.request_exit())
        self.refresh_view()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def perform(self, action: Action) -> None:
        """Run one router action, mapping domain errors onto toasts and overlays."""
        if action.kind is ActionKind.NONE:
            return
        handler = self._handlers[action.kind]
        self.logger.debug("Action %s %s", action.kind.value, action.payload or "")
        try:
            handler(action)
        except TerminalModeFailure as exc:
            self.logger.critical("Terminal state lost: %s", exc)
            self.session.restore_best_effort()
            self.exit(return_code=1, message=str(exc))
            return
        except TerminalUnavailable as exc:
            self.toast(ERROR_LEGACY_UNAVAILABLE.format(error=exc), "warning")
        except ValidationFailure as exc:
            self.logger.info("Rejected %s: %s", action.kind.value, exc)
            self.toast(str(exc), "warning")
        except PersistenceFailure as exc:
            self.logger.error("Persistence failure during %s: %s", action.kind.value, exc)
            self.router.show_text(ERROR_TITLE, [str(exc)], error=True)
        except LiveSyncFailure as exc:
            self.logger.warning("Live sync failure during %s: %s", action.kind.value, exc)
            self.toast(ERROR_LIVE_SYNC.format(error=exc), "warning")
        except SwitchyardError as exc:
            self.logger.error("%s failed: %s", action.kind.value, exc)
            self.toast(str(exc), "error")
        self.reload_data()

    def _do_quit(self, action: Action) -> None:
        self.exit()

    def _do_set_app(self, action: Action) -> None:
        self.app_type = action.get("app")
        self.router.reset_for_app()
        self.logger.info("Active app: %s", self.app_type.value)

    # Providers

    def _do_provider_switch(self, action: Action) -> None:
        provider_id = action.get("provider_id")
        self.services.providers.switch(self.app_type, provider_id)
        self.toast(STATUS_PROVIDER_SWITCHED.format(app=self.app_type.label, provider=provider_id), "success")

    def _do_provider_delete(self, action: Action) -> None:
        record = self.services.providers.delete(self.app_type, action.get("provider_id"))
        self.toast(STATUS_PROVIDER_DELETED.format(provider=record.id), "success")

    def _do_provider_probe(self, action: Action) -> None:
        row = self.data.provider(action.get("provider_id"))
        if row is None:
            self.toast(STATUS_NOTHING_SELECTED, "warning")
            return
        if not row.api_url:
            self.toast(STATUS_NO_API_URL.format(provider=row.id), "warning")
            return
        request = self.worker.submit(probe_target(self.app_type.value, row.id), row.api_url)
        self.board.mark_pending(request)
        self.toast(STATUS_PROBE_STARTED.format(target=row.id))

    def _do_provider_add(self, action: Action) -> None:
        app = self.app_type

        def apply(text: str) -> str:
            record = self.services.providers.add(app, parse_json_object(text, "provider"))
            return STATUS_PROVIDER_SAVED.format(provider=record.id)

        self.open_editor(f"New {app.label} provider", dump_json(provider_template(app)), apply)

    def _do_provider_edit(self, action: Action) -> None:
        app = self.app_type
        provider_id = action.get("provider_id")
        record = self.store.snapshot().section(app).providers.get(provider_id)
        if record is None:
            raise ValidationFailure(f"Provider '{provider_id}' not found", field="id")

        def apply(text: str) -> str:
            self.services.providers.update(app, provider_id, parse_json_object(text, "provider"))
            return STATUS_PROVIDER_SAVED.format(provider=provider_id)

        self.open_editor(f"Edit {app.label} provider: {provider_id}", dump_json(record.editable_dict()), apply)

    def _do_provider_guided_add(self, action: Action) -> None:
        app = self.app_type
        provider_id = self.run_legacy(lambda console: guided_add_provider(console, self.services, app))
        if provider_id:
            self.toast(STATUS_PROVIDER_SAVED.format(provider=provider_id), "success")

    # MCP servers

    def _do_mcp_toggle(self, action: Action) -> None:
        server_id = action.get("server_id")
        state = self.services.mcp.toggle(server_id, self.app_type)
        self.toast(
            STATUS_MCP_TOGGLED.format(server=server_id, state="enabled" if state else "disabled", app=self.app_type.label),
            "success",
        )

    def _do_mcp_delete(self, action: Action) -> None:
        record = self.services.mcp.delete(action.get("server_id"))
        self.toast(STATUS_MCP_DELETED.format(server=record.id), "success")

    def _do_mcp_import(self, action: Action) -> None:
        imported = self.services.mcp.import_from_live(self.app_type)
        self.toast(STATUS_MCP_IMPORTED.format(count=len(imported), app=self.app_type.label), "success")

    def _do_mcp_add(self, action: Action) -> None:
        def apply(text: str) -> str:
            record = self.services.mcp.upsert(parse_json_object(text, "MCP server"))
            return STATUS_MCP_SAVED.format(server=record.id)

        self.open_editor("New MCP server", dump_json(mcp_template()), apply)

    def _do_mcp_edit(self, action: Action) -> None:
        server_id = action.get("server_id")
        record = self.store.snapshot().mcp_servers.get(server_id)
        if record is None:
            raise ValidationFailure(f"MCP server '{server_id}' not found", field="id")

        def apply(text: str) -> str:
            self.services.mcp.upsert(parse_json_object(text, "MCP server"), original_id=server_id)
            return STATUS_MCP_SAVED.format(server=server_id)

        self.open_editor(f"Edit MCP server: {server_id}", dump_json(record.editable_dict()), apply)

    def _do_mcp_guided_add(self, action: Action) -> None:
        app = self.app_type
        server_id = self.run_legacy(lambda console: guided_add_mcp_server(console, self.services, app))
        if server_id:
            self.toast(STATUS_MCP_SAVED.format(server=server_id), "success")

    # Prompts

    def _do_prompt_toggle(self, action: Action) -> None:
        prompt_id = action.get("prompt_id")
        active = self.services.prompts.toggle(self.app_type, prompt_id)
        message = STATUS_PROMPT_ACTIVATED if active else STATUS_PROMPT_DEACTIVATED
        self.toast(message.format(prompt=prompt_id), "success")

    def _do_prompt_delete(self, action: Action) -> None:
        record = self.services.prompts.delete(self.app_type, action.get("prompt_id"))
        self.toast(STATUS_PROMPT_DELETED.format(prompt=record.id), "success")

    def _do_prompt_add(self, action: Action) -> None:
        app = self.app_type

        def apply(text: str) -> str:
            record = self.services.prompts.upsert(app, parse_json_object(text, "prompt"))
            return STATUS_PROMPT_SAVED.format(prompt=record.id)

        self.open_editor(f"New {app.label} prompt", dump_json(prompt_template()), apply)

    def _do_prompt_edit(self, action: Action) -> None:
        app = self.app_type
        prompt_id = action.get("prompt_id")
        record = self.store.snapshot().section(app).prompts.get(prompt_id)
        if record is None:
            raise ValidationFailure(f"Prompt '{prompt_id}' not found", field="id")

        def apply(text: str) -> str:
            self.services.prompts.upsert(app, parse_json_object(text, "prompt"), original_id=prompt_id)
            return STATUS_PROMPT_SAVED.format(prompt=prompt_id)

        self.open_editor(f"Edit {app.label} prompt: {prompt_id}", dump_json(record.editable_dict()), apply)

    # Configuration

    def _do_config_show_full(self, action: Action) -> None:
        self.router.show_text(CONFIG_SHOW_FULL, self.services.config.show_full().splitlines())

    def _do_config_validate(self, action: Action) -> None:
        report = self.services.config.validate()
        self.router.show_text("Validation", report.lines, error=not report.ok)
        if report.ok:
            self.toast(STATUS_CONFIG_VALID, "success")

    def _do_config_backup(self, action: Action) -> None:
        info = self.services.config.create_backup(action.get("name") or None)
        self.toast(STATUS_BACKUP_CREATED.format(backup=info.id), "success")

    def _do_config_restore(self, action: Action) -> None:
        backup_id = action.get("backup_id")
        self.services.config.restore_backup(backup_id)
        self.router.pop_route(Route.BACKUP_PICKER)
        self.toast(STATUS_BACKUP_RESTORED.format(backup=backup_id), "success")

    def _do_config_delete_backup(self, action: Action) -> None:
        info = self.services.config.delete_backup(action.get("backup_id"))
        self.toast(STATUS_BACKUP_DELETED.format(backup=info.id), "success")

    def _do_config_export(self, action: Action) -> None:
        target = self.services.config.export(action.get("path"))
        self.toast(STATUS_CONFIG_EXPORTED.format(path=target), "success")

    def _do_config_import(self, action: Action) -> None:
        path = action.get("path")
        self.services.config.import_from(path)
        self.toast(STATUS_CONFIG_IMPORTED.format(path=path), "success")

    def _do_config_reset(self, action: Action) -> None:
        self.services.config.reset()
        self.toast(STATUS_CONFIG_RESET, "success")

    def _do_config_legacy(self, action: Action) -> None:
        app = self.app_type
        self.run_legacy(lambda console: legacy_menu(console, self.services, app))

    # Settings

    def _do_set_language(self, action: Action) -> None:
        language = action.get("language")
        self.services.settings.set_language(language)
        self.toast(STATUS_LANGUAGE_SET.format(language=language), "success")

    def _do_set_live_sync(self, action: Action) -> None:
        policy = action.get("policy")
        self.services.settings.set_live_sync(policy)
        self.toast(STATUS_LIVE_SYNC_SET.format(policy=policy), "success")

    # ------------------------------------------------------------------
    # Editor and legacy handoff
    # ------------------------------------------------------------------

    def open_editor(self, title: str, text: str, apply: EditorApply) -> None:
        """Push the modal editor; the router tracks it as an EDITOR overlay."""

        def submit(raw: str) -> str | None:
            try:
                message = apply(raw)
            except (ValidationFailure, PersistenceFailure) as exc:
                return str(exc)
            except LiveSyncFailure as exc:
                self.logger.warning("Live sync failure after editor save: %s", exc)
                self.toast(ERROR_LIVE_SYNC.format(error=exc), "warning")
                return None
            self.toast(message, "success")
            return None

        def on_dismiss(saved: bool | None) -> None:
            self.router.pop_route(Route.EDITOR)
            if not saved:
                self.toast(STATUS_EDITING_CANCELLED)
            self.reload_data()

        self.router.push(Route.EDITOR, title=title)
        self.push_screen(EditorScreen(title, text, submit), on_dismiss)

    def run_legacy(self, flow):
        """Hand the terminal to a prompt-driven flow and take it back afterwards."""
        try:
            return self.bridge.run_legacy(flow)
        except SuspendNotSupported as exc:
            raise TerminalUnavailable(str(exc) or "suspend is not supported by this driver") from exc
        finally:
            self.refresh(layout=True)


__all__ = ["SwitchyardTUI"]
