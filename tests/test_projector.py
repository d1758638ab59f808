from __future__ import annotations

import json

import pytest

from conftest import claude_provider
from switchyard import tomlemit
from switchyard.errors import LiveSyncFailure
from switchyard.projector import LiveProjector, affected_apps, provider_api_url
from switchyard.records import AppType, CanonicalStore, McpServerRecord, PromptRecord, ProviderRecord


def _read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


def _artifact_bytes(paths):
    files = [
        paths.claude_settings, paths.claude_mcp, paths.claude_prompt,
        paths.codex_auth, paths.codex_config, paths.codex_prompt,
        paths.gemini_env, paths.gemini_settings, paths.gemini_prompt,
    ]
    return {path: path.read_bytes() for path in files if path.exists()}


def _store_with_everything():
    store = CanonicalStore()
    claude = store.section(AppType.CLAUDE)
    claude.providers["p1"] = ProviderRecord.from_dict(claude_provider("p1"))
    claude.current = "p1"
    claude.prompts["base"] = PromptRecord(id="base", name="Base", content="Be terse.\n")
    claude.active_prompt = "base"

    codex = store.section(AppType.CODEX)
    codex.providers["c1"] = ProviderRecord(
        id="c1",
        name="C1",
        settings={
            "auth": {"OPENAI_API_KEY": "sk-codex"},
            "config": 'model_provider = "custom"\nmodel = "gpt-5"\n\n[model_providers.custom]\nbase_url = "https://codex.example.com/v1"\n',
        },
    )
    codex.current = "c1"

    gemini = store.section(AppType.GEMINI)
    gemini.providers["g1"] = ProviderRecord(
        id="g1",
        name="G1",
        settings={"env": {"GEMINI_API_KEY": "g-key", "GOOGLE_GEMINI_BASE_URL": "https://gemini.example.com"}},
    )
    gemini.current = "g1"

    store.mcp_servers["fs"] = McpServerRecord.from_dict(
        {"id": "fs", "server": {"command": "npx", "args": ["-y", "fs"]}, "apps": {"claude": True, "codex": True, "gemini": True}}
    )
    store.mcp_servers["web"] = McpServerRecord.from_dict(
        {"id": "web", "server": {"type": "http", "url": "https://mcp.example.com", "headers": {"X": "1"}},
         "apps": {"codex": True, "gemini": True}}
    )
    store.settings["liveSync"] = "always"
    return store


def test_projection_is_idempotent(paths):
    projector = LiveProjector(paths)
    store = _store_with_everything()

    projector.project(store)
    first = _artifact_bytes(paths)
    written = projector.project(store)
    second = _artifact_bytes(paths)

    assert first == second
    assert written == {}
    assert paths.claude_settings in first
    assert paths.codex_config in first


def test_claude_artifacts(paths):
    LiveProjector(paths).project(_store_with_everything())

    settings = _read_json(paths.claude_settings)
    assert settings["env"]["ANTHROPIC_BASE_URL"] == "https://api.example.com"
    assert _read_json(paths.claude_mcp)["mcpServers"] == {"fs": {"command": "npx", "args": ["-y", "fs"], "type": "stdio"}}
    assert paths.claude_prompt.read_text() == "Be terse.\n"


def test_codex_artifacts(paths):
    LiveProjector(paths).project(_store_with_everything())

    assert _read_json(paths.codex_auth) == {"OPENAI_API_KEY": "sk-codex"}
    config = tomlemit.loads(paths.codex_config.read_text())
    assert config["model"] == "gpt-5"
    assert config["model_providers"]["custom"]["base_url"] == "https://codex.example.com/v1"
    assert config["mcp_servers"]["fs"]["command"] == "npx"
    assert config["mcp_servers"]["web"]["http_headers"] == {"X": "1"}


def test_gemini_artifacts(paths):
    LiveProjector(paths).project(_store_with_everything())

    env_text = paths.gemini_env.read_text()
    assert "GEMINI_API_KEY=g-key" in env_text
    servers = _read_json(paths.gemini_settings)["mcpServers"]
    assert servers["web"] == {"httpUrl": "https://mcp.example.com", "headers": {"X": "1"}}
    assert "type" not in servers["fs"]


def test_unowned_keys_pass_through(paths):
    paths.claude_settings.write_text(json.dumps({"theme": "dark", "env": {"OLD": "1"}}))
    paths.claude_mcp.write_text(json.dumps({"projects": {"/x": {}}, "mcpServers": {"mine": {"command": "me"}}}))

    LiveProjector(paths).project(_store_with_everything())

    settings = _read_json(paths.claude_settings)
    assert settings["theme"] == "dark"
    assert settings["env"] == {"ANTHROPIC_BASE_URL": "https://api.example.com", "ANTHROPIC_AUTH_TOKEN": "sk-test"}
    doc = _read_json(paths.claude_mcp)
    assert doc["projects"] == {"/x": {}}
    assert set(doc["mcpServers"]) == {"mine", "fs"}


def test_codex_unowned_toml_survives(paths):
    paths.codex_dir.mkdir(parents=True)
    paths.codex_config.write_text('approval_policy = "never"\n\n[profiles.fast]\nmodel = "o4-mini"\n')

    LiveProjector(paths).project(_store_with_everything())

    config = tomlemit.loads(paths.codex_config.read_text())
    assert config["approval_policy"] == "never"
    assert config["profiles"]["fast"]["model"] == "o4-mini"


def test_disabling_mcp_server_removes_only_owned_entry(paths):
    projector = LiveProjector(paths)
    store = _store_with_everything()
    projector.project(store)
    doc = _read_json(paths.claude_mcp)
    doc["mcpServers"]["hand-made"] = {"command": "x"}
    paths.claude_mcp.write_text(json.dumps(doc))

    updated = store.copy()
    updated.mcp_servers["fs"].apps["claude"] = False
    projector.project(updated, previous=store)

    assert _read_json(paths.claude_mcp)["mcpServers"] == {"hand-made": {"command": "x"}}


def test_auto_policy_skips_missing_app_dirs(paths):
    store = _store_with_everything()
    store.settings["liveSync"] = "auto"
    LiveProjector(paths).project(store)

    assert paths.claude_settings.exists()
    assert not paths.codex_dir.exists()
    assert not paths.gemini_dir.exists()


def test_empty_store_creates_nothing(paths):
    LiveProjector(paths).project(CanonicalStore())
    assert not paths.claude_settings.exists()
    assert not paths.claude_mcp.exists()
    assert not paths.claude_prompt.exists()


def test_write_failure_raises_live_sync_failure(paths, monkeypatch):
    def refuse(path, text):
        raise OSError("read-only file system")

    monkeypatch.setattr("switchyard.projector.atomic_write_text", refuse)
    with pytest.raises(LiveSyncFailure) as info:
        LiveProjector(paths).project(_store_with_everything(), apps=[AppType.CLAUDE])
    assert str(paths.claude_settings) in info.value.failures


def test_affected_apps_tracks_sections_and_mcp():
    before = _store_with_everything()
    after = before.copy()
    assert affected_apps(before, after) == []

    after.section(AppType.GEMINI).current = ""
    assert affected_apps(before, after) == [AppType.GEMINI]

    after = before.copy()
    after.mcp_servers["web"].apps["claude"] = True
    assert affected_apps(before, after) == [AppType.CLAUDE]


def test_provider_api_url_per_app():
    store = _store_with_everything()
    assert provider_api_url(AppType.CLAUDE, store.section(AppType.CLAUDE).providers["p1"]) == "https://api.example.com"
    assert provider_api_url(AppType.CODEX, store.section(AppType.CODEX).providers["c1"]) == "https://codex.example.com/v1"
    assert provider_api_url(AppType.GEMINI, store.section(AppType.GEMINI).providers["g1"]) == "https://gemini.example.com"
    assert provider_api_url(AppType.CLAUDE, ProviderRecord(id="x", name="x")) is None


def test_codex_config_table_order_is_stable(paths):
    paths.codex_dir.mkdir(parents=True)
    paths.codex_config.write_text('approval_policy = "never"\n\n[features]\nweb = true\n')
    projector = LiveProjector(paths)
    store = _store_with_everything()

    outputs = []
    for _ in range(3):
        projector.project(store)
        outputs.append(paths.codex_config.read_text())

    assert outputs[0] == outputs[1] == outputs[2]
    text = outputs[0]
    assert text.index("[model_providers.custom]") < text.index("[mcp_servers.fs]")
    assert text.index("[features]") < text.index("[model_providers.custom]")
