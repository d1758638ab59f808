"""
Switchyard - Document Migration

Parses the persisted SSOT document and upgrades older schema versions.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .constants import SCHEMA_VERSION
from .errors import MigrationFailure, ValidationFailure
from .records import AppType, CanonicalStore

logger = logging.getLogger("Migration")


@dataclass(slots=True)
class LoadedDocument:
    store: CanonicalStore
    migrated_from: int | None = None

    @property
    def migrated(self) -> bool:
        return self.migrated_from is not None


def _detect_version(data: dict[str, Any]) -> int:
    if "version" in data:
        try:
            return int(data["version"])
        except (TypeError, ValueError) as exc:
            raise MigrationFailure(f"Invalid schema version marker: {data['version']!r}") from exc
    if any(app.value in data for app in AppType) or "mcp" in data:
        return SCHEMA_VERSION
    if "providers" in data or "current" in data:
        return 1
    return SCHEMA_VERSION


def _migrate_v1(data: dict[str, Any]) -> dict[str, Any]:
    """Single-app layout {providers, current} becomes the claude section."""
    providers = data.get("providers") or {}
    if not isinstance(providers, dict):
        raise MigrationFailure("Legacy 'providers' must be an object")
    upgraded: dict[str, Any] = {
        key: value for key, value in data.items() if key not in {"providers", "current"}
    }
    upgraded["version"] = 2
    upgraded[AppType.CLAUDE.value] = {
        "providers": providers,
        "current": data.get("current") or "",
    }
    logger.info("Migrated legacy v1 document (%d providers) into the claude section", len(providers))
    return upgraded


MIGRATIONS = {
    1: _migrate_v1,
}


def upgrade(data: Any) -> LoadedDocument:
    """Apply every migration step needed to reach SCHEMA_VERSION."""
    if not isinstance(data, dict):
        raise MigrationFailure("Config document root must be a JSON object")
    version = _detect_version(data)
    if version > SCHEMA_VERSION:
        raise MigrationFailure(
            f"Config schema version {version} is newer than supported version {SCHEMA_VERSION}"
        )
    if version < 1:
        raise MigrationFailure(f"Unsupported config schema version {version}")

    original = version
    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise MigrationFailure(f"No migration path from schema version {version}")
        data = step(data)
        version += 1

    try:
        store = CanonicalStore.from_dict(data)
        store.version = SCHEMA_VERSION
        # Dangling selectors in old files are cleared rather than rejected.
        for app, section in store.apps.items():
            if section.current and section.current not in section.providers:
                logger.warning("%s: clearing dangling active provider '%s'", app.value, section.current)
                section.current = ""
            if section.active_prompt and section.active_prompt not in section.prompts:
                logger.warning("%s: clearing dangling active prompt '%s'", app.value, section.active_prompt)
                section.active_prompt = ""
        store.validate()
    except ValidationFailure as exc:
        raise MigrationFailure(f"Config document is invalid: {exc}") from exc

    return LoadedDocument(store=store, migrated_from=original if original != SCHEMA_VERSION else None)


def parse_document(text: str) -> LoadedDocument:
    """Parse JSON text into a CanonicalStore; empty text yields a fresh store."""
    if not text.strip():
        return LoadedDocument(store=CanonicalStore())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MigrationFailure(f"Config file is not valid JSON: {exc}") from exc
    return upgrade(data)


__all__ = ["LoadedDocument", "parse_document", "upgrade"]
