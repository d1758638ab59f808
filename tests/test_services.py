from __future__ import annotations

import json

import pytest

from conftest import claude_provider
from switchyard.errors import ValidationFailure
from switchyard.records import AppType
from switchyard.services import parse_json_object, provider_template, validate_provider_settings


def test_duplicate_provider_is_rejected(services):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    with pytest.raises(ValidationFailure):
        services.providers.add(AppType.CLAUDE, claude_provider("p1"))


def test_same_provider_id_allowed_in_other_app(services):
    services.providers.add(AppType.CLAUDE, claude_provider("shared"))
    services.providers.add(AppType.GEMINI, {"id": "shared", "name": "Shared", "settingsConfig": {"env": {}}})
    assert services.providers.list(AppType.GEMINI)[0].id == "shared"


def test_update_keeps_id_and_bookkeeping(services):
    created = services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    edited = dict(claude_provider("p1", base_url="https://new"))
    edited["name"] = "Renamed"
    updated = services.providers.update(AppType.CLAUDE, "p1", edited)
    assert updated.name == "Renamed"
    assert updated.created_at == created.created_at
    assert updated.updated_at is not None

    with pytest.raises(ValidationFailure):
        services.providers.update(AppType.CLAUDE, "p1", claude_provider("other"))


def test_deleting_active_records_clears_selectors(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    services.providers.switch(AppType.CLAUDE, "p1")
    services.prompts.upsert(AppType.CLAUDE, {"id": "base", "content": "hi"})
    services.prompts.activate(AppType.CLAUDE, "base")

    services.providers.delete(AppType.CLAUDE, "p1")
    services.prompts.delete(AppType.CLAUDE, "base")

    section = store.snapshot().section(AppType.CLAUDE)
    assert section.current == ""
    assert section.active_prompt == ""


def test_switch_to_unknown_provider_fails(services):
    with pytest.raises(ValidationFailure):
        services.providers.switch(AppType.CODEX, "ghost")


def test_codex_provider_needs_valid_toml():
    with pytest.raises(ValidationFailure):
        validate_provider_settings(AppType.CODEX, {"config": "model = "})
    validate_provider_settings(AppType.CODEX, {"config": 'model = "gpt-5"\n'})


def test_templates_are_valid_payloads():
    for app in AppType:
        validate_provider_settings(app, provider_template(app)["settingsConfig"])


def test_parse_json_object_reports_position():
    with pytest.raises(ValidationFailure) as info:
        parse_json_object('{"id": }', "provider")
    assert "line 1" in str(info.value)
    with pytest.raises(ValidationFailure):
        parse_json_object("[]", "provider")


def test_mcp_toggle_per_app(services, store):
    services.mcp.upsert({"id": "fs", "server": {"command": "npx"}})
    assert services.mcp.toggle("fs", AppType.CODEX) is True
    assert services.mcp.toggle("fs", AppType.CODEX) is False
    assert services.mcp.toggle("fs", AppType.GEMINI, enabled=True) is True
    record = store.snapshot().mcp_servers["fs"]
    assert record.apps == {"claude": False, "codex": False, "gemini": True}


def test_mcp_edit_cannot_rename(services):
    services.mcp.upsert({"id": "fs", "server": {"command": "npx"}})
    with pytest.raises(ValidationFailure):
        services.mcp.upsert({"id": "other", "server": {"command": "npx"}}, original_id="fs")


def test_mcp_import_from_claude_live_config(services, store, paths):
    paths.claude_mcp.write_text(json.dumps({
        "mcpServers": {
            "fs": {"type": "stdio", "command": "npx", "args": ["fs"]},
            "broken": {"args": []},
        }
    }))
    assert services.mcp.import_from_live(AppType.CLAUDE) == ["fs"]
    record = store.snapshot().mcp_servers["fs"]
    assert record.enabled_for(AppType.CLAUDE)
    assert "broken" not in store.snapshot().mcp_servers


def test_mcp_import_from_gemini_http_server(services, store, paths):
    paths.gemini_dir.mkdir(parents=True)
    paths.gemini_settings.write_text(json.dumps({"mcpServers": {"web": {"httpUrl": "https://mcp"}}}))
    services.mcp.import_from_live(AppType.GEMINI)
    assert store.snapshot().mcp_servers["web"].server == {"url": "https://mcp", "type": "http"}


def test_prompt_toggle(services, store):
    services.prompts.upsert(AppType.GEMINI, {"id": "a", "content": "A"})
    assert services.prompts.toggle(AppType.GEMINI, "a") is True
    assert store.snapshot().section(AppType.GEMINI).active_prompt == "a"
    assert services.prompts.toggle(AppType.GEMINI, "a") is False
    assert store.snapshot().section(AppType.GEMINI).active_prompt == ""


def test_export_import_round_trip(services, store, tmp_path):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    target = services.config.export(tmp_path / "export" / "config.json")
    services.config.reset()
    assert store.snapshot().section(AppType.CLAUDE).providers == {}

    services.config.import_from(target)
    assert "p1" in store.snapshot().section(AppType.CLAUDE).providers


def test_import_of_garbage_is_a_validation_failure(services, tmp_path):
    source = tmp_path / "bad.json"
    source.write_text("nope")
    with pytest.raises(ValidationFailure):
        services.config.import_from(source)
    with pytest.raises(ValidationFailure):
        services.config.import_from(tmp_path / "missing.json")


def test_reset_keeps_settings(services, store):
    services.settings.set_language("zh")
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    services.config.reset()
    snapshot = store.snapshot()
    assert snapshot.language == "zh"
    assert snapshot.section(AppType.CLAUDE).providers == {}


def test_validate_reports_file_state(services):
    report = services.config.validate()
    assert report.ok
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    report = services.config.validate()
    assert report.ok
    assert any("1 provider(s)" in line for line in report.lines)


def test_settings_reject_unknown_values(services):
    with pytest.raises(ValidationFailure):
        services.settings.set_language("fr")
    with pytest.raises(ValidationFailure):
        services.settings.set_live_sync("never")


def test_provider_bookkeeping_must_be_integers(services, store):
    with pytest.raises(ValidationFailure) as info:
        services.providers.add(AppType.CLAUDE, dict(claude_provider("p1"), sortIndex="first"))
    assert info.value.field == "sortIndex"
    with pytest.raises(ValidationFailure):
        services.providers.add(AppType.CLAUDE, dict(claude_provider("p2"), createdAt="yesterday"))
    assert store.snapshot().section(AppType.CLAUDE).providers == {}


def test_add_replaces_caller_bookkeeping(services):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    record = services.providers.add(
        AppType.CLAUDE,
        dict(claude_provider("p2"), createdAt=1, updatedAt=2, sortIndex=0, inFailoverQueue=True),
    )
    assert record.created_at > 1
    assert record.updated_at is None
    assert record.sort_index is None
    assert not record.in_failover_queue
    assert [provider.id for provider in services.providers.list(AppType.CLAUDE)] == ["p1", "p2"]


def test_mcp_bookkeeping_must_be_integers(services):
    with pytest.raises(ValidationFailure):
        services.mcp.upsert({"id": "fs", "server": {"command": "npx"}, "updatedAt": "soon"})
