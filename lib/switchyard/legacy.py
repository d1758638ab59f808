"""
Switchyard - Legacy Bridge

Prompt-driven flows for operations that are not modelled as TUI screens. The
bridge hands the terminal over completely: it suspends the TUI, runs the flow
in cooked mode, and resumes the TUI on every exit path.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import logging
import shlex
from contextlib import nullcontext
from typing import Any, Callable, ContextManager, TypeVar

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .errors import LiveSyncFailure, PersistenceFailure, TerminalUnavailable, ValidationFailure
from .projector import provider_api_url
from .records import AppType
from .services import Services
from .terminal import TerminalSession

T = TypeVar("T")

logger = logging.getLogger("LegacyBridge")


class LegacyBridge:
    """Runs a flow with exclusive ownership of the terminal."""

    def __init__(
        self,
        session: TerminalSession,
        *,
        suspender: Callable[[], ContextManager[Any]] | None = None,
        console: Console | None = None,
    ) -> None:
        self.session = session
        self.suspender = suspender or nullcontext
        self.console = console or Console()

    def run_legacy(self, flow: Callable[[Console], T]) -> T | None:
        """Suspend, run ``flow``, resume. Cancellation (Ctrl+C, EOF) returns None."""
        self.session.require_interactive()
        with self.suspender():
            try:
                self.session.suspend()
                logger.debug("Legacy flow starting: %s", getattr(flow, "__name__", flow))
                return flow(self.console)
            except (KeyboardInterrupt, EOFError):
                logger.info("Legacy flow cancelled")
                return None
            finally:
                self.session.resume()
                logger.debug("Legacy flow finished; TUI resumed")


# ----------------------------------------------------------------------------
# Flows
# ----------------------------------------------------------------------------

def _ask(console: Console, label: str, default: str | None = None, *, password: bool = False) -> str:
    if default is None:
        return Prompt.ask(label, console=console, password=password).strip()
    return Prompt.ask(label, console=console, default=default, password=password).strip()


def _report(console: Console, exc: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {exc}")


def provider_payload(app: AppType, base_url: str, api_key: str, model: str = "") -> dict[str, Any]:
    """Build a provider settings payload from the guided answers."""
    if app is AppType.CLAUDE:
        env = {"ANTHROPIC_BASE_URL": base_url, "ANTHROPIC_AUTH_TOKEN": api_key}
        if model:
            env["ANTHROPIC_MODEL"] = model
        return {"env": env}
    if app is AppType.CODEX:
        lines = ['model_provider = "custom"']
        if model:
            lines.append(f'model = "{model}"')
        lines += ["", "[model_providers.custom]", 'name = "custom"', f'base_url = "{base_url}"', 'wire_api = "responses"']
        return {"auth": {"OPENAI_API_KEY": api_key}, "config": "\n".join(lines) + "\n"}
    env = {"GOOGLE_GEMINI_BASE_URL": base_url, "GEMINI_API_KEY": api_key}
    if model:
        env["GEMINI_MODEL"] = model
    return {"env": env}


def guided_add_provider(console: Console, services: Services, app: AppType) -> str | None:
    console.rule(f"Add {app.label} provider")
    provider_id = _ask(console, "Provider id")
    name = _ask(console, "Display name", default=provider_id)
    base_url = _ask(console, "API base URL")
    api_key = _ask(console, "API key", password=True)
    model = _ask(console, "Model (optional)", default="")
    website = _ask(console, "Website (optional)", default="")
    data = {
        "id": provider_id,
        "name": name,
        "settingsConfig": provider_payload(app, base_url, api_key, model),
        "websiteUrl": website,
    }
    try:
        services.providers.add(app, data)
    except ValidationFailure as exc:
        _report(console, exc)
        return None
    if Confirm.ask(f"Switch {app.label} to '{provider_id}' now?", console=console, default=True):
        services.providers.switch(app, provider_id)
    console.print(f"[green]Provider '{provider_id}' added.[/green]")
    return provider_id


def guided_add_mcp_server(console: Console, services: Services, app: AppType) -> str | None:
    console.rule("Add MCP server")
    server_id = _ask(console, "Server id")
    name = _ask(console, "Display name", default=server_id)
    transport = Prompt.ask("Transport", choices=["stdio", "http", "sse"], default="stdio", console=console)
    if transport == "stdio":
        command_line = _ask(console, "Command (with arguments)")
        try:
            parts = shlex.split(command_line)
        except ValueError as exc:
            _report(console, ValidationFailure(f"Cannot parse command: {exc}", field="server"))
            return None
        server: dict[str, Any] = {"type": "stdio", "command": parts[0] if parts else "", "args": parts[1:]}
    else:
        server = {"type": transport, "url": _ask(console, "URL")}
    apps = {
        member.value: Confirm.ask(f"Enable for {member.label}?", console=console, default=member is app)
        for member in AppType
    }
    try:
        services.mcp.upsert({"id": server_id, "name": name, "server": server, "apps": apps})
    except ValidationFailure as exc:
        _report(console, exc)
        return None
    console.print(f"[green]MCP server '{server_id}' added.[/green]")
    return server_id


def _print_providers(console: Console, services: Services, app: AppType) -> list[str]:
    table = Table(title=f"{app.label} providers")
    table.add_column("#", justify="right")
    table.add_column("Active")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("API URL")
    current = services.providers.current(app)
    ids = []
    for index, record in enumerate(services.providers.list(app), start=1):
        ids.append(record.id)
        table.add_row(str(index), "*" if record.id == current else "", record.id, record.name,
                      provider_api_url(app, record) or "-")
    console.print(table)
    return ids


def _pick(console: Console, ids: list[str], label: str) -> str | None:
    if not ids:
        console.print("[yellow]Nothing to choose from.[/yellow]")
        return None
    choice = Prompt.ask(label, choices=[str(i) for i in range(1, len(ids) + 1)] + ["q"], default="q", console=console)
    return None if choice == "q" else ids[int(choice) - 1]


def legacy_menu(console: Console, services: Services, app: AppType) -> AppType:
    """Numbered menu loop; returns the app selected when the user leaves."""
    while True:
        console.rule(f"Switchyard legacy menu ({app.label})")
        console.print(
            "1) List providers   2) Switch provider   3) Add provider\n"
            "4) Toggle MCP server   5) Add MCP server\n"
            "6) Toggle prompt   7) Create backup   8) Restore backup\n"
            "9) Switch app   0) Exit"
        )
        choice = Prompt.ask("Choice", choices=[str(i) for i in range(10)], default="0", console=console)
        try:
            if choice == "0":
                return app
            if choice == "1":
                _print_providers(console, services, app)
            elif choice == "2":
                provider_id = _pick(console, _print_providers(console, services, app), "Provider #")
                if provider_id:
                    services.providers.switch(app, provider_id)
                    console.print(f"[green]Switched to {provider_id}[/green]")
            elif choice == "3":
                guided_add_provider(console, services, app)
            elif choice == "4":
                servers = services.mcp.list()
                for index, record in enumerate(servers, start=1):
                    state = "on" if record.enabled_for(app) else "off"
                    console.print(f"{index}) {record.id} [{state}]")
                server_id = _pick(console, [record.id for record in servers], "Server #")
                if server_id:
                    state = services.mcp.toggle(server_id, app)
                    console.print(f"{server_id} {'enabled' if state else 'disabled'}")
            elif choice == "5":
                guided_add_mcp_server(console, services, app)
            elif choice == "6":
                prompts = services.prompts.list(app)
                for index, record in enumerate(prompts, start=1):
                    console.print(f"{index}) {record.id} - {record.name}")
                prompt_id = _pick(console, [record.id for record in prompts], "Prompt #")
                if prompt_id:
                    active = services.prompts.toggle(app, prompt_id)
                    console.print(f"{prompt_id} {'activated' if active else 'deactivated'}")
            elif choice == "7":
                name = _ask(console, "Backup name (optional)", default="")
                info = services.config.create_backup(name or None)
                console.print(f"[green]Backup created: {info.id}[/green]")
            elif choice == "8":
                backups = services.config.list_backups()
                for index, info in enumerate(backups, start=1):
                    console.print(f"{index}) {info.id}")
                backup_id = _pick(console, [info.id for info in backups], "Backup #")
                if backup_id and Confirm.ask(f"Restore {backup_id}?", console=console, default=False):
                    services.config.restore_backup(backup_id)
                    console.print(f"[green]Restored {backup_id}[/green]")
            elif choice == "9":
                picked = Prompt.ask("App", choices=[member.value for member in AppType], default=app.value, console=console)
                app = AppType(picked)
        except (ValidationFailure, LiveSyncFailure, PersistenceFailure) as exc:
            logger.warning("Legacy menu action failed: %s", exc)
            _report(console, exc)


def run_legacy_session(
    services: Services,
    app: AppType,
    session: TerminalSession,
    *,
    console: Console | None = None,
) -> int:
    """Standalone legacy mode (no TUI). Requires a TTY."""
    console = console or Console()
    if not session.backend.is_interactive():
        raise TerminalUnavailable("Legacy mode requires an interactive terminal (TTY)")
    try:
        legacy_menu(console, services, app)
    except (KeyboardInterrupt, EOFError):
        console.print()
    return 0


__all__ = [
    "LegacyBridge",
    "guided_add_provider",
    "guided_add_mcp_server",
    "legacy_menu",
    "provider_payload",
    "run_legacy_session",
]
