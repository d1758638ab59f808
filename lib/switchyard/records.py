"""
Switchyard - Records

Canonical data model: provider, MCP server and prompt records grouped into one
section per application target, plus the top-level CanonicalStore.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from .constants import LANGUAGES, LIVE_SYNC_POLICIES, SCHEMA_VERSION
from .errors import ValidationFailure


def now_ms() -> int:
    return int(time.time() * 1000)


class AppType(str, Enum):
    """Application targets whose live configuration Switchyard owns."""

    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def next(self) -> "AppType":
        members = list(AppType)
        return members[(members.index(self) + 1) % len(members)]

    def prev(self) -> "AppType":
        members = list(AppType)
        return members[(members.index(self) - 1) % len(members)]

    @classmethod
    def parse(cls, value: str) -> "AppType":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValidationFailure(f"Unknown app '{value}'", field="app") from exc


def _ensure_dict(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationFailure(f"{what} must be a JSON object")
    return value


def _optional_int(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailure(f"{key} must be an integer", field=key)
    return value


def _split_known(data: dict, known: Iterable[str]) -> dict:
    known = set(known)
    return {key: copy.deepcopy(value) for key, value in data.items() if key not in known}


# ----------------------------------------------------------------------------
# Records
# ----------------------------------------------------------------------------

PROVIDER_KEYS = (
    "id", "name", "settingsConfig", "websiteUrl", "category", "notes",
    "createdAt", "updatedAt", "sortIndex", "inFailoverQueue",
)
PROVIDER_BOOKKEEPING = ("createdAt", "updatedAt", "sortIndex", "inFailoverQueue")


@dataclass(slots=True)
class ProviderRecord:
    """A named upstream endpoint/credential set for one application."""

    id: str
    name: str
    settings: dict[str, Any] = field(default_factory=dict)
    website_url: str | None = None
    category: str | None = None
    notes: str | None = None
    created_at: int | None = None
    updated_at: int | None = None
    sort_index: int | None = None
    in_failover_queue: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "settingsConfig": copy.deepcopy(self.settings),
        }
        for key, value in (
            ("websiteUrl", self.website_url),
            ("category", self.category),
            ("notes", self.notes),
            ("createdAt", self.created_at),
            ("updatedAt", self.updated_at),
            ("sortIndex", self.sort_index),
        ):
            if value is not None:
                data[key] = value
        if self.in_failover_queue:
            data["inFailoverQueue"] = True
        data.update(copy.deepcopy(self.extra))
        return data

    def editable_dict(self) -> dict[str, Any]:
        """Payload shown in the editor: bookkeeping fields stripped."""
        data = self.as_dict()
        for key in PROVIDER_BOOKKEEPING:
            data.pop(key, None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, fallback_id: str | None = None) -> "ProviderRecord":
        data = _ensure_dict(data, "Provider")
        provider_id = str(data.get("id") or fallback_id or "").strip()
        if not provider_id:
            raise ValidationFailure("Provider id is required", field="id")
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationFailure("Provider name is required", field="name")
        return cls(
            id=provider_id,
            name=name,
            settings=copy.deepcopy(_ensure_dict(data.get("settingsConfig"), "settingsConfig")),
            website_url=data.get("websiteUrl") or None,
            category=data.get("category") or None,
            notes=data.get("notes") or None,
            created_at=_optional_int(data, "createdAt"),
            updated_at=_optional_int(data, "updatedAt"),
            sort_index=_optional_int(data, "sortIndex"),
            in_failover_queue=bool(data.get("inFailoverQueue", False)),
            extra=_split_known(data, PROVIDER_KEYS),
        )

    def sort_key(self) -> tuple:
        return (
            self.sort_index if self.sort_index is not None else 1 << 31,
            self.created_at or 0,
            self.name.lower(),
            self.id,
        )


MCP_KEYS = ("id", "name", "server", "apps", "description", "homepage", "tags", "createdAt", "updatedAt")
MCP_BOOKKEEPING = ("createdAt", "updatedAt")


@dataclass(slots=True)
class McpServerRecord:
    """A tool-server definition with per-application enable flags."""

    id: str
    name: str
    server: dict[str, Any] = field(default_factory=dict)
    apps: dict[str, bool] = field(default_factory=dict)
    description: str | None = None
    homepage: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: int | None = None
    updated_at: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def enabled_for(self, app: AppType) -> bool:
        return bool(self.apps.get(app.value, False))

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "server": copy.deepcopy(self.server),
            "apps": {app.value: bool(self.apps.get(app.value, False)) for app in AppType},
        }
        for key, value in (
            ("description", self.description),
            ("homepage", self.homepage),
            ("createdAt", self.created_at),
            ("updatedAt", self.updated_at),
        ):
            if value is not None:
                data[key] = value
        if self.tags:
            data["tags"] = list(self.tags)
        data.update(copy.deepcopy(self.extra))
        return data

    def editable_dict(self) -> dict[str, Any]:
        data = self.as_dict()
        for key in MCP_BOOKKEEPING:
            data.pop(key, None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, fallback_id: str | None = None) -> "McpServerRecord":
        data = _ensure_dict(data, "MCP server")
        server_id = str(data.get("id") or fallback_id or "").strip()
        if not server_id:
            raise ValidationFailure("MCP server id is required", field="id")
        server = copy.deepcopy(_ensure_dict(data.get("server"), "server"))
        if not server.get("command") and not server.get("url"):
            raise ValidationFailure(
                f"MCP server '{server_id}' needs a command (stdio) or a url (http/sse)",
                field="server",
            )
        apps = _ensure_dict(data.get("apps"), "apps")
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ValidationFailure("tags must be a list", field="tags")
        return cls(
            id=server_id,
            name=str(data.get("name") or server_id).strip(),
            server=server,
            apps={app.value: bool(apps.get(app.value, False)) for app in AppType},
            description=data.get("description") or None,
            homepage=data.get("homepage") or None,
            tags=[str(tag) for tag in tags],
            created_at=_optional_int(data, "createdAt"),
            updated_at=_optional_int(data, "updatedAt"),
            extra=_split_known(data, MCP_KEYS),
        )


PROMPT_KEYS = ("id", "name", "content", "description", "createdAt", "updatedAt")


@dataclass(slots=True)
class PromptRecord:
    """A named system-prompt document."""

    id: str
    name: str
    content: str = ""
    description: str | None = None
    created_at: int | None = None
    updated_at: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name, "content": self.content}
        for key, value in (
            ("description", self.description),
            ("createdAt", self.created_at),
            ("updatedAt", self.updated_at),
        ):
            if value is not None:
                data[key] = value
        data.update(copy.deepcopy(self.extra))
        return data

    def editable_dict(self) -> dict[str, Any]:
        data = self.as_dict()
        data.pop("createdAt", None)
        data.pop("updatedAt", None)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, fallback_id: str | None = None) -> "PromptRecord":
        data = _ensure_dict(data, "Prompt")
        prompt_id = str(data.get("id") or fallback_id or "").strip()
        if not prompt_id:
            raise ValidationFailure("Prompt id is required", field="id")
        content = data.get("content", "")
        if not isinstance(content, str):
            raise ValidationFailure("Prompt content must be text", field="content")
        return cls(
            id=prompt_id,
            name=str(data.get("name") or prompt_id).strip(),
            content=content,
            description=data.get("description") or None,
            created_at=_optional_int(data, "createdAt"),
            updated_at=_optional_int(data, "updatedAt"),
            extra=_split_known(data, PROMPT_KEYS),
        )


# ----------------------------------------------------------------------------
# Sections and store
# ----------------------------------------------------------------------------

@dataclass(slots=True)
class AppSection:
    """Providers and prompts for a single application target."""

    providers: dict[str, ProviderRecord] = field(default_factory=dict)
    current: str = ""
    prompts: dict[str, PromptRecord] = field(default_factory=dict)
    active_prompt: str = ""

    def current_provider(self) -> ProviderRecord | None:
        return self.providers.get(self.current) if self.current else None

    def active_prompt_record(self) -> PromptRecord | None:
        return self.prompts.get(self.active_prompt) if self.active_prompt else None

    def sorted_providers(self) -> list[ProviderRecord]:
        return sorted(self.providers.values(), key=ProviderRecord.sort_key)

    def sorted_prompts(self) -> list[PromptRecord]:
        return sorted(
            self.prompts.values(),
            key=lambda prompt: (-(prompt.updated_at or prompt.created_at or 0), prompt.id),
        )

    def delete_provider(self, provider_id: str) -> ProviderRecord:
        record = self.providers.pop(provider_id, None)
        if record is None:
            raise ValidationFailure(f"Provider '{provider_id}' not found", field="id")
        if self.current == provider_id:
            self.current = ""
        return record

    def delete_prompt(self, prompt_id: str) -> PromptRecord:
        record = self.prompts.pop(prompt_id, None)
        if record is None:
            raise ValidationFailure(f"Prompt '{prompt_id}' not found", field="id")
        if self.active_prompt == prompt_id:
            self.active_prompt = ""
        return record

    def as_dict(self) -> dict[str, Any]:
        return {
            "providers": {pid: record.as_dict() for pid, record in self.providers.items()},
            "current": self.current,
            "prompts": {pid: record.as_dict() for pid, record in self.prompts.items()},
            "activePrompt": self.active_prompt,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AppSection":
        data = _ensure_dict(data, "App section")
        providers: dict[str, ProviderRecord] = {}
        for key, value in _ensure_dict(data.get("providers"), "providers").items():
            record = ProviderRecord.from_dict(value, fallback_id=key)
            providers[record.id] = record
        prompts: dict[str, PromptRecord] = {}
        for key, value in _ensure_dict(data.get("prompts"), "prompts").items():
            record = PromptRecord.from_dict(value, fallback_id=key)
            prompts[record.id] = record
        return cls(
            providers=providers,
            current=str(data.get("current") or ""),
            prompts=prompts,
            active_prompt=str(data.get("activePrompt") or ""),
        )


DEFAULT_SETTINGS = {"language": "en", "liveSync": "auto"}
STORE_KEYS = ("version", "mcp", "settings", *(app.value for app in AppType))


@dataclass(slots=True)
class CanonicalStore:
    """The single source of truth for every managed application."""

    version: int = SCHEMA_VERSION
    apps: dict[AppType, AppSection] = field(default_factory=lambda: {app: AppSection() for app in AppType})
    mcp_servers: dict[str, McpServerRecord] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SETTINGS))
    extra: dict[str, Any] = field(default_factory=dict)

    def section(self, app: AppType) -> AppSection:
        section = self.apps.get(app)
        if section is None:
            section = self.apps[app] = AppSection()
        return section

    def copy(self) -> "CanonicalStore":
        return copy.deepcopy(self)

    def replace_with(self, other: "CanonicalStore") -> None:
        """Overwrite this store's content in place (used by restore/import/reset)."""
        fresh = other.copy()
        self.version = fresh.version
        self.apps = fresh.apps
        self.mcp_servers = fresh.mcp_servers
        self.settings = fresh.settings
        self.extra = fresh.extra

    def sorted_mcp_servers(self) -> list[McpServerRecord]:
        return [self.mcp_servers[key] for key in sorted(self.mcp_servers)]

    def delete_mcp_server(self, server_id: str) -> McpServerRecord:
        record = self.mcp_servers.pop(server_id, None)
        if record is None:
            raise ValidationFailure(f"MCP server '{server_id}' not found", field="id")
        return record

    @property
    def language(self) -> str:
        return str(self.settings.get("language", DEFAULT_SETTINGS["language"]))

    @property
    def live_sync(self) -> str:
        return str(self.settings.get("liveSync", DEFAULT_SETTINGS["liveSync"]))

    def validate(self) -> None:
        """Check structural invariants; raises ValidationFailure on the first violation."""
        for app, section in self.apps.items():
            for key, record in section.providers.items():
                if key != record.id:
                    raise ValidationFailure(f"{app.value}: provider key '{key}' does not match id '{record.id}'")
            for key, record in section.prompts.items():
                if key != record.id:
                    raise ValidationFailure(f"{app.value}: prompt key '{key}' does not match id '{record.id}'")
            if section.current and section.current not in section.providers:
                raise ValidationFailure(f"{app.value}: active provider '{section.current}' does not exist")
            if section.active_prompt and section.active_prompt not in section.prompts:
                raise ValidationFailure(f"{app.value}: active prompt '{section.active_prompt}' does not exist")
        for key, record in self.mcp_servers.items():
            if key != record.id:
                raise ValidationFailure(f"MCP server key '{key}' does not match id '{record.id}'")
        if self.language not in LANGUAGES:
            raise ValidationFailure(f"Unsupported language '{self.language}'", field="language")
        if self.live_sync not in LIVE_SYNC_POLICIES:
            raise ValidationFailure(f"Unsupported live sync policy '{self.live_sync}'", field="liveSync")

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"version": self.version}
        for app in AppType:
            data[app.value] = self.section(app).as_dict()
        data["mcp"] = {"servers": {sid: record.as_dict() for sid, record in self.mcp_servers.items()}}
        data["settings"] = copy.deepcopy(self.settings)
        data.update(copy.deepcopy(self.extra))
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CanonicalStore":
        data = _ensure_dict(data, "Config document")
        apps = {app: AppSection.from_dict(data.get(app.value)) for app in AppType}
        servers: dict[str, McpServerRecord] = {}
        mcp = _ensure_dict(data.get("mcp"), "mcp")
        for key, value in _ensure_dict(mcp.get("servers"), "mcp.servers").items():
            record = McpServerRecord.from_dict(value, fallback_id=key)
            servers[record.id] = record
        settings = dict(DEFAULT_SETTINGS)
        settings.update(_ensure_dict(data.get("settings"), "settings"))
        return cls(
            version=int(data.get("version", SCHEMA_VERSION)),
            apps=apps,
            mcp_servers=servers,
            settings=settings,
            extra=_split_known(data, STORE_KEYS),
        )


__all__ = [
    "AppType",
    "ProviderRecord",
    "McpServerRecord",
    "PromptRecord",
    "AppSection",
    "CanonicalStore",
    "DEFAULT_SETTINGS",
    "now_ms",
]
