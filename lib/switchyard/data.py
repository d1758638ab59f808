"""
Switchyard - UI Data

Immutable per-render view of the store for the current app: the rows each
list screen shows, with active markers and derived fields.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .backups import BackupInfo, BackupRotator
from .paths import AppPaths
from .projector import provider_api_url
from .records import AppType, CanonicalStore, McpServerRecord, PromptRecord, ProviderRecord


@dataclass(frozen=True, slots=True)
class ProviderRow:
    record: ProviderRecord
    api_url: str | None
    is_current: bool

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def label(self) -> str:
        return f"{self.record.name} {self.record.id} {self.api_url or ''}"


@dataclass(frozen=True, slots=True)
class McpRow:
    record: McpServerRecord
    enabled: bool

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def label(self) -> str:
        return f"{self.record.name} {self.record.id} {self.summary}"

    @property
    def summary(self) -> str:
        server = self.record.server
        if server.get("command"):
            args = " ".join(str(arg) for arg in server.get("args") or [])
            return f"{server['command']} {args}".strip()
        return str(server.get("url") or "")


@dataclass(frozen=True, slots=True)
class PromptRow:
    record: PromptRecord
    active: bool

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def label(self) -> str:
        return f"{self.record.name} {self.record.id}"

    @property
    def preview(self) -> str:
        first = next((line.strip() for line in self.record.content.splitlines() if line.strip()), "")
        return first[:60]


@dataclass(frozen=True, slots=True)
class UiData:
    app: AppType
    providers: list[ProviderRow] = field(default_factory=list)
    mcp: list[McpRow] = field(default_factory=list)
    prompts: list[PromptRow] = field(default_factory=list)
    backups: list[BackupInfo] = field(default_factory=list)
    language: str = "en"
    live_sync: str = "auto"
    store_path: Path | None = None
    live_dir: Path | None = None

    @classmethod
    def build(
        cls,
        store: CanonicalStore,
        app: AppType,
        *,
        rotator: BackupRotator | None = None,
        paths: AppPaths | None = None,
    ) -> "UiData":
        section = store.section(app)
        return cls(
            app=app,
            providers=[
                ProviderRow(record=record, api_url=provider_api_url(app, record), is_current=record.id == section.current)
                for record in section.sorted_providers()
            ],
            mcp=[McpRow(record=record, enabled=record.enabled_for(app)) for record in store.sorted_mcp_servers()],
            prompts=[
                PromptRow(record=record, active=record.id == section.active_prompt)
                for record in section.sorted_prompts()
            ],
            backups=rotator.list() if rotator is not None else [],
            language=store.language,
            live_sync=store.live_sync,
            store_path=paths.store_file if paths else None,
            live_dir=paths.app_dir(app) if paths else None,
        )

    def provider(self, provider_id: str) -> ProviderRow | None:
        return next((row for row in self.providers if row.id == provider_id), None)

    @property
    def current_provider(self) -> ProviderRow | None:
        return next((row for row in self.providers if row.is_current), None)

    @property
    def active_prompt(self) -> PromptRow | None:
        return next((row for row in self.prompts if row.active), None)


__all__ = ["UiData", "ProviderRow", "McpRow", "PromptRow"]
