"""
Switchyard - Live Config Projector

Derives every application's native configuration files from the canonical
store. Only keys sourced from provider payloads and MCP entries known to the
store are owned; everything else found in a live file is passed through
unchanged. Rendering is deterministic so repeated projection is idempotent.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Iterable

from . import tomlemit
from .errors import LiveSyncFailure
from .fsutil import atomic_write_text, dump_json, parse_env, read_json_object, read_text, render_env
from .paths import AppPaths
from .records import AppType, CanonicalStore, McpServerRecord, ProviderRecord

logger = logging.getLogger("LiveProjector")

CLAUDE_URL_KEYS = ("ANTHROPIC_BASE_URL",)
GEMINI_URL_KEYS = ("GOOGLE_GEMINI_BASE_URL", "GEMINI_BASE_URL", "BASE_URL")


# ----------------------------------------------------------------------------
# Provider payload accessors
# ----------------------------------------------------------------------------

def codex_config_table(provider: ProviderRecord) -> dict[str, Any]:
    """Parsed TOML from a codex provider's ``config`` text ({} when absent or invalid)."""
    text = provider.settings.get("config")
    if not isinstance(text, str) or not text.strip():
        return {}
    try:
        return tomlemit.loads(text)
    except tomlemit.tomllib.TOMLDecodeError as exc:
        logger.warning("codex provider '%s' has invalid config TOML: %s", provider.id, exc)
        return {}


def _dict_field(provider: ProviderRecord, key: str) -> dict[str, Any]:
    value = provider.settings.get(key)
    return value if isinstance(value, dict) else {}


def provider_api_url(app: AppType, provider: ProviderRecord) -> str | None:
    """The endpoint a provider points its app at, used for probing and display."""
    if app is AppType.CLAUDE:
        env = _dict_field(provider, "env")
        for key in CLAUDE_URL_KEYS:
            if env.get(key):
                return str(env[key])
        return None
    if app is AppType.CODEX:
        table = codex_config_table(provider)
        if table.get("base_url"):
            return str(table["base_url"])
        providers = table.get("model_providers")
        if isinstance(providers, dict):
            preferred = table.get("model_provider")
            ordered = [providers.get(preferred)] if preferred else []
            ordered.extend(providers.values())
            for entry in ordered:
                if isinstance(entry, dict) and entry.get("base_url"):
                    return str(entry["base_url"])
        return None
    env = _dict_field(provider, "env")
    for key in GEMINI_URL_KEYS:
        if env.get(key):
            return str(env[key])
    return None


# ----------------------------------------------------------------------------
# MCP server shapes per app
# ----------------------------------------------------------------------------

def _clean(spec: dict[str, Any]) -> dict[str, Any]:
    return {key: copy.deepcopy(value) for key, value in spec.items() if value not in (None, "", [], {})}


def claude_server_spec(server: dict[str, Any]) -> dict[str, Any]:
    spec = _clean(server)
    spec.setdefault("type", "stdio" if spec.get("command") else "http")
    return spec


def gemini_server_spec(server: dict[str, Any]) -> dict[str, Any]:
    spec = _clean(server)
    kind = spec.pop("type", None) or ("stdio" if spec.get("command") else "http")
    if kind == "http" and "url" in spec:
        spec["httpUrl"] = spec.pop("url")
    return spec


def codex_server_spec(server: dict[str, Any]) -> dict[str, Any]:
    spec = _clean(server)
    if "headers" in spec:
        spec["http_headers"] = spec.pop("headers")
    return spec


def _merge_servers(
    existing: Any,
    store: CanonicalStore,
    previous: CanonicalStore | None,
    app: AppType,
    shape: Callable[[dict[str, Any]], dict[str, Any]],
) -> dict[str, Any]:
    owned = set(store.mcp_servers)
    if previous is not None:
        owned.update(previous.mcp_servers)
    base = existing if isinstance(existing, dict) else {}
    merged = {key: value for key, value in base.items() if key not in owned}
    for record in store.sorted_mcp_servers():
        if record.enabled_for(app):
            merged[record.id] = shape(record.server)
    return merged


def _overlay(existing: dict[str, Any], owned: Iterable[str], payload: dict[str, Any]) -> dict[str, Any]:
    """Replace owned keys where they already sit; new payload keys go last."""
    owned = set(owned) | set(payload)
    result: dict[str, Any] = {}
    for key, value in existing.items():
        if key not in owned:
            result[key] = value
        elif key in payload:
            result[key] = copy.deepcopy(payload[key])
    for key, value in payload.items():
        if key not in result:
            result[key] = copy.deepcopy(value)
    return result


def _owned_keys(
    store: CanonicalStore,
    previous: CanonicalStore | None,
    app: AppType,
    extract: Callable[[ProviderRecord], dict[str, Any]],
) -> set[str]:
    keys: set[str] = set()
    for source in (store, previous):
        if source is None:
            continue
        for record in source.section(app).providers.values():
            keys.update(extract(record))
    return keys


def _mcp_view(store: CanonicalStore, app: AppType) -> tuple[frozenset, dict]:
    enabled = {rid: record.server for rid, record in store.mcp_servers.items() if record.enabled_for(app)}
    return frozenset(store.mcp_servers), enabled


def affected_apps(previous: CanonicalStore | None, current: CanonicalStore) -> list[AppType]:
    """Apps whose projection inputs differ between two store versions."""
    if previous is None or previous.live_sync != current.live_sync:
        return list(AppType)
    apps = []
    for app in AppType:
        if previous.section(app) != current.section(app) or _mcp_view(previous, app) != _mcp_view(current, app):
            apps.append(app)
    return apps


# ----------------------------------------------------------------------------
# Projector
# ----------------------------------------------------------------------------

class LiveProjector:
    """Renders and writes live artifacts for claude, codex and gemini."""

    def __init__(self, paths: AppPaths) -> None:
        self.paths = paths
        self.logger = logger

    def should_sync(self, app: AppType, store: CanonicalStore) -> bool:
        if store.live_sync == "always":
            return True
        return self.paths.app_dir(app).is_dir()

    def render(self, store: CanonicalStore, app: AppType, previous: CanonicalStore | None = None) -> dict[Path, str]:
        """Compute artifact contents for one app. Paths left out are not touched."""
        renderers = {
            AppType.CLAUDE: self._render_claude,
            AppType.CODEX: self._render_codex,
            AppType.GEMINI: self._render_gemini,
        }
        rendered: dict[Path, str] = {}
        renderers[app](store, previous, rendered)
        self._render_prompt(store, previous, app, rendered)
        return rendered

    def project(
        self,
        store: CanonicalStore,
        previous: CanonicalStore | None = None,
        apps: Iterable[AppType] | None = None,
    ) -> dict[AppType, list[Path]]:
        """Write rendered artifacts; files whose bytes are unchanged are skipped."""
        written: dict[AppType, list[Path]] = {}
        failures: dict[str, str] = {}
        for app in list(AppType) if apps is None else apps:
            if not self.should_sync(app, store):
                self.logger.debug("%s config dir missing; live sync skipped", app.value)
                continue
            for path, text in self.render(store, app, previous).items():
                if read_text(path) == text:
                    continue
                try:
                    atomic_write_text(path, text)
                except OSError as exc:
                    self.logger.error("Failed to write %s: %s", path, exc)
                    failures[str(path)] = str(exc)
                    continue
                written.setdefault(app, []).append(path)
                self.logger.debug("Projected %s -> %s", app.value, path)
        if failures:
            summary = ", ".join(f"{path} ({error})" for path, error in failures.items())
            raise LiveSyncFailure(summary, failures=failures)
        return written

    # ------------------------------------------------------------------
    # Per-app rendering
    # ------------------------------------------------------------------

    @staticmethod
    def _emit(rendered: dict[Path, str], path: Path, data: dict[str, Any], text: str) -> None:
        if not data and not path.exists():
            return
        rendered[path] = text

    def _render_claude(self, store, previous, rendered) -> None:
        paths = self.paths
        section = store.section(AppType.CLAUDE)
        active = section.current_provider()

        owned = _owned_keys(store, previous, AppType.CLAUDE, lambda record: record.settings)
        settings = _overlay(read_json_object(paths.claude_settings), owned, active.settings if active else {})
        self._emit(rendered, paths.claude_settings, settings, dump_json(settings))

        doc = read_json_object(paths.claude_mcp)
        servers = _merge_servers(doc.get("mcpServers"), store, previous, AppType.CLAUDE, claude_server_spec)
        if servers or "mcpServers" in doc:
            doc["mcpServers"] = servers
        self._emit(rendered, paths.claude_mcp, doc, dump_json(doc))

    def _render_codex(self, store, previous, rendered) -> None:
        paths = self.paths
        section = store.section(AppType.CODEX)
        active = section.current_provider()

        owned_auth = _owned_keys(store, previous, AppType.CODEX, lambda record: _dict_field(record, "auth"))
        auth = _overlay(read_json_object(paths.codex_auth), owned_auth, _dict_field(active, "auth") if active else {})
        self._emit(rendered, paths.codex_auth, auth, dump_json(auth))

        existing_text = read_text(paths.codex_config)
        existing: dict[str, Any] = {}
        if existing_text:
            try:
                existing = tomlemit.loads(existing_text)
            except tomlemit.tomllib.TOMLDecodeError as exc:
                self.logger.warning("Regenerating unparseable %s: %s", paths.codex_config, exc)
        owned_config = _owned_keys(store, previous, AppType.CODEX, codex_config_table)
        config = _overlay(existing, owned_config, codex_config_table(active) if active else {})
        servers = _merge_servers(config.get("mcp_servers"), store, previous, AppType.CODEX, codex_server_spec)
        if servers or "mcp_servers" in config:
            config["mcp_servers"] = servers
        self._emit(rendered, paths.codex_config, config, tomlemit.dumps(config))

    def _render_gemini(self, store, previous, rendered) -> None:
        paths = self.paths
        section = store.section(AppType.GEMINI)
        active = section.current_provider()

        owned_env = _owned_keys(store, previous, AppType.GEMINI, lambda record: _dict_field(record, "env"))
        env = _overlay(parse_env(read_text(paths.gemini_env)), owned_env, _dict_field(active, "env") if active else {})
        self._emit(rendered, paths.gemini_env, env, render_env(env))

        owned_config = _owned_keys(store, previous, AppType.GEMINI, lambda record: _dict_field(record, "config"))
        owned_config.discard("mcpServers")
        config = _overlay(
            read_json_object(paths.gemini_settings),
            owned_config,
            _dict_field(active, "config") if active else {},
        )
        servers = _merge_servers(config.get("mcpServers"), store, previous, AppType.GEMINI, gemini_server_spec)
        if servers or "mcpServers" in config:
            config["mcpServers"] = servers
        self._emit(rendered, paths.gemini_settings, config, dump_json(config))

    def _render_prompt(self, store, previous, app: AppType, rendered) -> None:
        known = bool(store.section(app).prompts) or (previous is not None and bool(previous.section(app).prompts))
        if not known:
            return
        active = store.section(app).active_prompt_record()
        content = active.content if active else ""
        path = self.paths.prompt_file(app)
        if not content and not path.exists():
            return
        rendered[path] = content


__all__ = [
    "LiveProjector",
    "affected_apps",
    "provider_api_url",
    "codex_config_table",
    "claude_server_spec",
    "codex_server_spec",
    "gemini_server_spec",
]
