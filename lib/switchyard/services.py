"""
Switchyard - Services

Domain operations on providers, MCP servers, prompts, backups and settings.
Each operation validates its input and applies exactly one store transaction.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import tomlemit
from .backups import BackupInfo
from .constants import LANGUAGES, LIVE_SYNC_POLICIES
from .errors import MigrationFailure, PersistenceFailure, ValidationFailure
from .fsutil import atomic_write_text, read_json_object, read_text
from .migrate import parse_document
from .paths import AppPaths
from .records import (
    AppType,
    CanonicalStore,
    McpServerRecord,
    PromptRecord,
    ProviderRecord,
    now_ms,
)
from .store import ConfigStore, serialize


def parse_json_object(text: str, what: str) -> dict[str, Any]:
    """Parse editor text into a JSON object or raise ValidationFailure."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationFailure(f"Invalid JSON in {what}: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    if not isinstance(data, dict):
        raise ValidationFailure(f"{what} must be a JSON object")
    return data


def validate_provider_settings(app: AppType, settings: dict[str, Any]) -> None:
    """Shape checks for a provider payload per app."""
    if app is AppType.CLAUDE:
        env = settings.get("env")
        if env is not None and not isinstance(env, dict):
            raise ValidationFailure("claude settingsConfig.env must be an object", field="settingsConfig")
        return
    if app is AppType.CODEX:
        auth = settings.get("auth")
        if auth is not None and not isinstance(auth, dict):
            raise ValidationFailure("codex settingsConfig.auth must be an object", field="settingsConfig")
        config = settings.get("config")
        if config is not None:
            if not isinstance(config, str):
                raise ValidationFailure("codex settingsConfig.config must be TOML text", field="settingsConfig")
            try:
                tomlemit.loads(config)
            except tomlemit.tomllib.TOMLDecodeError as exc:
                raise ValidationFailure(f"codex config TOML is invalid: {exc}", field="settingsConfig") from exc
        return
    for key in ("env", "config"):
        value = settings.get(key)
        if value is not None and not isinstance(value, dict):
            raise ValidationFailure(f"gemini settingsConfig.{key} must be an object", field="settingsConfig")


def provider_template(app: AppType) -> dict[str, Any]:
    """Starting payload offered by the editor when adding a provider."""
    if app is AppType.CLAUDE:
        settings: dict[str, Any] = {"env": {"ANTHROPIC_BASE_URL": "https://", "ANTHROPIC_AUTH_TOKEN": ""}}
    elif app is AppType.CODEX:
        settings = {
            "auth": {"OPENAI_API_KEY": ""},
            "config": 'model_provider = "custom"\nmodel = ""\n\n[model_providers.custom]\nname = "custom"\nbase_url = "https://"\nwire_api = "responses"\n',
        }
    else:
        settings = {"env": {"GOOGLE_GEMINI_BASE_URL": "https://", "GEMINI_API_KEY": "", "GEMINI_MODEL": ""}}
    return {"id": "", "name": "", "settingsConfig": settings, "websiteUrl": ""}


def mcp_template() -> dict[str, Any]:
    return {
        "id": "",
        "name": "",
        "server": {"type": "stdio", "command": "", "args": []},
        "apps": {app.value: False for app in AppType},
        "description": "",
    }


def prompt_template() -> dict[str, Any]:
    return {"id": "", "name": "", "content": ""}


# ----------------------------------------------------------------------------
# Providers
# ----------------------------------------------------------------------------

class ProviderService:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store
        self.logger = logging.getLogger('ProviderService')

    def list(self, app: AppType) -> list[ProviderRecord]:
        return self.store.snapshot().section(app).sorted_providers()

    def current(self, app: AppType) -> str:
        return self.store.snapshot().section(app).current

    def add(self, app: AppType, data: dict[str, Any]) -> ProviderRecord:
        record = ProviderRecord.from_dict(data)
        validate_provider_settings(app, record.settings)
        with self.store.transaction() as draft:
            section = draft.section(app)
            if record.id in section.providers:
                raise ValidationFailure(f"Provider '{record.id}' already exists for {app.value}", field="id")
            record.created_at = now_ms()
            record.updated_at = None
            record.sort_index = None
            record.in_failover_queue = False
            section.providers[record.id] = record
        self.logger.info("Provider added: %s/%s", app.value, record.id)
        return record

    def update(self, app: AppType, provider_id: str, data: dict[str, Any]) -> ProviderRecord:
        """Replace the editable payload; the id is immutable and bookkeeping is kept."""
        incoming = ProviderRecord.from_dict(data, fallback_id=provider_id)
        if incoming.id != provider_id:
            raise ValidationFailure("Provider id cannot be changed", field="id")
        validate_provider_settings(app, incoming.settings)
        with self.store.transaction() as draft:
            section = draft.section(app)
            existing = section.providers.get(provider_id)
            if existing is None:
                raise ValidationFailure(f"Provider '{provider_id}' not found", field="id")
            incoming.created_at = existing.created_at
            incoming.sort_index = existing.sort_index
            incoming.in_failover_queue = existing.in_failover_queue
            incoming.updated_at = now_ms()
            section.providers[provider_id] = incoming
        self.logger.info("Provider updated: %s/%s", app.value, provider_id)
        return incoming

    def switch(self, app: AppType, provider_id: str) -> None:
        with self.store.transaction() as draft:
            section = draft.section(app)
            if provider_id not in section.providers:
                raise ValidationFailure(f"Provider '{provider_id}' not found", field="id")
            section.current = provider_id
        self.logger.info("Switched %s to provider %s", app.value, provider_id)

    def delete(self, app: AppType, provider_id: str) -> ProviderRecord:
        with self.store.transaction() as draft:
            record = draft.section(app).delete_provider(provider_id)
        self.logger.info("Provider deleted: %s/%s", app.value, provider_id)
        return record


# ----------------------------------------------------------------------------
# MCP servers
# ----------------------------------------------------------------------------

class McpService:
    def __init__(self, store: ConfigStore, paths: AppPaths) -> None:
        self.store = store
        self.paths = paths
        self.logger = logging.getLogger('McpService')

    def list(self) -> list[McpServerRecord]:
        return self.store.snapshot().sorted_mcp_servers()

    def upsert(self, data: dict[str, Any], *, original_id: str | None = None) -> McpServerRecord:
        record = McpServerRecord.from_dict(data, fallback_id=original_id)
        if original_id is not None and record.id != original_id:
            raise ValidationFailure("MCP server id cannot be changed", field="id")
        with self.store.transaction() as draft:
            existing = draft.mcp_servers.get(record.id)
            if original_id is None and existing is not None:
                raise ValidationFailure(f"MCP server '{record.id}' already exists", field="id")
            if existing is not None:
                record.created_at = existing.created_at
                record.updated_at = now_ms()
            else:
                record.created_at = now_ms()
                record.updated_at = None
            draft.mcp_servers[record.id] = record
        self.logger.info("MCP server saved: %s", record.id)
        return record

    def toggle(self, server_id: str, app: AppType, enabled: bool | None = None) -> bool:
        """Flip (or set) the enable flag for one app; returns the new state."""
        with self.store.transaction() as draft:
            record = draft.mcp_servers.get(server_id)
            if record is None:
                raise ValidationFailure(f"MCP server '{server_id}' not found", field="id")
            state = (not record.enabled_for(app)) if enabled is None else enabled
            record.apps[app.value] = state
            record.updated_at = now_ms()
        self.logger.info("MCP server %s %s for %s", server_id, "enabled" if state else "disabled", app.value)
        return state

    def delete(self, server_id: str) -> McpServerRecord:
        with self.store.transaction() as draft:
            record = draft.delete_mcp_server(server_id)
        self.logger.info("MCP server deleted: %s", server_id)
        return record

    def _live_servers(self, app: AppType) -> dict[str, Any]:
        if app is AppType.CLAUDE:
            return read_json_object(self.paths.claude_mcp).get("mcpServers") or {}
        if app is AppType.GEMINI:
            return read_json_object(self.paths.gemini_settings).get("mcpServers") or {}
        text = read_text(self.paths.codex_config)
        if not text:
            return {}
        try:
            return tomlemit.loads(text).get("mcp_servers") or {}
        except tomlemit.tomllib.TOMLDecodeError as exc:
            raise ValidationFailure(f"{self.paths.codex_config} is not valid TOML: {exc}") from exc

    def import_from_live(self, app: AppType) -> list[str]:
        """Adopt MCP servers found in an app's live config; existing ids just get enabled."""
        live = self._live_servers(app)
        if not isinstance(live, dict):
            raise ValidationFailure("Live MCP section is not an object")
        imported: list[str] = []
        with self.store.transaction() as draft:
            for server_id, spec in live.items():
                if not isinstance(spec, dict):
                    continue
                server = dict(spec)
                if "httpUrl" in server:
                    server["url"] = server.pop("httpUrl")
                    server.setdefault("type", "http")
                if "http_headers" in server:
                    server["headers"] = server.pop("http_headers")
                existing = draft.mcp_servers.get(server_id)
                if existing is not None:
                    if not existing.enabled_for(app):
                        existing.apps[app.value] = True
                        imported.append(server_id)
                    continue
                try:
                    record = McpServerRecord.from_dict(
                        {"id": server_id, "name": server_id, "server": server, "apps": {app.value: True}}
                    )
                except ValidationFailure as exc:
                    self.logger.warning("Skipping live MCP server %s: %s", server_id, exc)
                    continue
                record.created_at = now_ms()
                draft.mcp_servers[server_id] = record
                imported.append(server_id)
        self.logger.info("Imported %d MCP server(s) from %s", len(imported), app.value)
        return imported


# ----------------------------------------------------------------------------
# Prompts
# ----------------------------------------------------------------------------

class PromptService:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store
        self.logger = logging.getLogger('PromptService')

    def list(self, app: AppType) -> list[PromptRecord]:
        return self.store.snapshot().section(app).sorted_prompts()

    def upsert(self, app: AppType, data: dict[str, Any], *, original_id: str | None = None) -> PromptRecord:
        record = PromptRecord.from_dict(data, fallback_id=original_id)
        if original_id is not None and record.id != original_id:
            raise ValidationFailure("Prompt id cannot be changed", field="id")
        with self.store.transaction() as draft:
            section = draft.section(app)
            existing = section.prompts.get(record.id)
            if original_id is None and existing is not None:
                raise ValidationFailure(f"Prompt '{record.id}' already exists for {app.value}", field="id")
            record.created_at = existing.created_at if existing else now_ms()
            record.updated_at = now_ms()
            section.prompts[record.id] = record
        return record

    def activate(self, app: AppType, prompt_id: str) -> None:
        with self.store.transaction() as draft:
            section = draft.section(app)
            if prompt_id not in section.prompts:
                raise ValidationFailure(f"Prompt '{prompt_id}' not found", field="id")
            section.active_prompt = prompt_id

    def deactivate(self, app: AppType, prompt_id: str) -> None:
        with self.store.transaction() as draft:
            section = draft.section(app)
            if section.active_prompt == prompt_id:
                section.active_prompt = ""

    def toggle(self, app: AppType, prompt_id: str) -> bool:
        """Activate the prompt, or deactivate it when it is already active."""
        if self.store.snapshot().section(app).active_prompt == prompt_id:
            self.deactivate(app, prompt_id)
            return False
        self.activate(app, prompt_id)
        return True

    def delete(self, app: AppType, prompt_id: str) -> PromptRecord:
        with self.store.transaction() as draft:
            return draft.section(app).delete_prompt(prompt_id)


# ----------------------------------------------------------------------------
# Config file and backups
# ----------------------------------------------------------------------------

@dataclass(slots=True)
class ValidationReport:
    ok: bool
    lines: list[str]


class ConfigService:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store
        self.logger = logging.getLogger('ConfigService')

    @property
    def path(self) -> Path:
        return self.store.path

    def show_full(self) -> str:
        return serialize(self.store.snapshot())

    def validate(self) -> ValidationReport:
        """Re-read the SSOT file from disk and check it parses and satisfies the invariants."""
        lines = [f"File: {self.path}"]
        try:
            text = read_text(self.path)
        except OSError as exc:
            return ValidationReport(False, lines + [f"Unreadable: {exc}"])
        if text is None:
            return ValidationReport(True, lines + ["Not created yet (empty config)"])
        try:
            loaded = parse_document(text)
        except MigrationFailure as exc:
            return ValidationReport(False, lines + [str(exc)])
        store = loaded.store
        lines.append(f"Schema version: {store.version}")
        for app in AppType:
            section = store.section(app)
            lines.append(
                f"{app.value}: {len(section.providers)} provider(s), current={section.current or '-'}, "
                f"{len(section.prompts)} prompt(s), active prompt={section.active_prompt or '-'}"
            )
            for record in section.providers.values():
                try:
                    validate_provider_settings(app, record.settings)
                except ValidationFailure as exc:
                    return ValidationReport(False, lines + [f"{app.value}/{record.id}: {exc}"])
        lines.append(f"MCP servers: {len(store.mcp_servers)}")
        if store != self.store.snapshot():
            lines.append("Warning: file on disk differs from the loaded state")
        return ValidationReport(True, lines)

    def export(self, target: Path) -> Path:
        target = Path(target).expanduser()
        try:
            atomic_write_text(target, serialize(self.store.snapshot()))
        except OSError as exc:
            raise PersistenceFailure(f"Failed to export to {target}: {exc}", path=target) from exc
        self.logger.info("Config exported to %s", target)
        return target

    def _replace(self, replacement: CanonicalStore) -> BackupInfo | None:
        with self.store.transaction() as draft:
            draft.replace_with(replacement)
        commit = self.store.last_commit
        return commit.backup if commit else None

    def import_from(self, source: Path) -> BackupInfo | None:
        source = Path(source).expanduser()
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationFailure(f"Cannot read {source}: {exc}", field="path") from exc
        try:
            loaded = parse_document(text)
        except MigrationFailure as exc:
            raise ValidationFailure(f"Cannot import {source}: {exc}", field="path") from exc
        backup = self._replace(loaded.store)
        self.logger.info("Config imported from %s", source)
        return backup

    def create_backup(self, name: str | None = None) -> BackupInfo:
        return self.store.backup_now(name or None)

    def list_backups(self) -> list[BackupInfo]:
        return self.store.rotator.list()

    def restore_backup(self, backup_id: str) -> BackupInfo | None:
        """Apply a snapshot as a new mutation; returns the pre-restore backup."""
        text = self.store.rotator.read(backup_id)
        try:
            loaded = parse_document(text)
        except MigrationFailure as exc:
            raise ValidationFailure(f"Backup '{backup_id}' is unusable: {exc}", field="backup") from exc
        backup = self._replace(loaded.store)
        self.logger.info("Restored backup %s", backup_id)
        return backup

    def delete_backup(self, backup_id: str) -> BackupInfo:
        return self.store.rotator.delete(backup_id)

    def reset(self) -> BackupInfo | None:
        """Replace everything with an empty store, keeping settings."""
        fresh = CanonicalStore()
        fresh.settings = dict(self.store.snapshot().settings)
        backup = self._replace(fresh)
        self.logger.info("Config reset to defaults")
        return backup


class SettingsService:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def language(self) -> str:
        return self.store.snapshot().language

    def set_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValidationFailure(f"Unsupported language '{language}'", field="language")
        with self.store.transaction() as draft:
            draft.settings["language"] = language

    def set_live_sync(self, policy: str) -> None:
        if policy not in LIVE_SYNC_POLICIES:
            raise ValidationFailure(f"Unsupported live sync policy '{policy}'", field="liveSync")
        with self.store.transaction() as draft:
            draft.settings["liveSync"] = policy


@dataclass(slots=True)
class Services:
    """Bundle handed to the UI and the legacy flows."""

    providers: ProviderService
    mcp: McpService
    prompts: PromptService
    config: ConfigService
    settings: SettingsService

    @classmethod
    def build(cls, store: ConfigStore, paths: AppPaths) -> "Services":
        return cls(
            providers=ProviderService(store),
            mcp=McpService(store, paths),
            prompts=PromptService(store),
            config=ConfigService(store),
            settings=SettingsService(store),
        )


__all__ = [
    "Services",
    "ProviderService",
    "McpService",
    "PromptService",
    "ConfigService",
    "SettingsService",
    "ValidationReport",
    "parse_json_object",
    "validate_provider_settings",
    "provider_template",
    "mcp_template",
    "prompt_template",
]
