from __future__ import annotations

import json
import os

import pytest

from conftest import claude_provider
from switchyard.errors import PersistenceFailure, ValidationFailure
from switchyard.migrate import parse_document
from switchyard.records import AppType, CanonicalStore, ProviderRecord
from switchyard.store import ConfigStore


def _on_disk(store: ConfigStore) -> CanonicalStore:
    return parse_document(store.path.read_text(encoding="utf-8")).store


def test_open_without_file_starts_empty(store, paths):
    snapshot = store.snapshot()
    assert snapshot == CanonicalStore()
    assert not paths.store_file.exists()


def test_every_mutation_is_persisted_and_round_trips(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    assert _on_disk(store) == store.snapshot()

    services.providers.switch(AppType.CLAUDE, "p1")
    assert _on_disk(store) == store.snapshot()

    services.mcp.upsert({"id": "fs", "server": {"command": "npx", "args": ["fs"]}, "apps": {"claude": True}})
    assert _on_disk(store) == store.snapshot()

    services.prompts.upsert(AppType.CODEX, {"id": "review", "content": "Review carefully."})
    services.prompts.activate(AppType.CODEX, "review")
    assert _on_disk(store) == store.snapshot()

    services.settings.set_live_sync("always")
    assert _on_disk(store) == store.snapshot()
    assert json.loads(store.path.read_text())["settings"]["liveSync"] == "always"


def test_snapshot_is_isolated_from_committed_state(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    snapshot = store.snapshot()
    snapshot.section(AppType.CLAUDE).providers.clear()
    assert "p1" in store.snapshot().section(AppType.CLAUDE).providers


def test_exception_inside_transaction_discards_draft(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    before = store.path.read_bytes()

    with pytest.raises(RuntimeError):
        with store.transaction() as draft:
            draft.section(AppType.CLAUDE).providers.clear()
            raise RuntimeError("boom")

    assert "p1" in store.snapshot().section(AppType.CLAUDE).providers
    assert store.path.read_bytes() == before


def test_invalid_draft_is_rejected(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    with pytest.raises(ValidationFailure):
        with store.transaction() as draft:
            draft.section(AppType.CLAUDE).current = "missing"
    assert store.snapshot().section(AppType.CLAUDE).current == ""


def test_crash_between_write_and_rename_leaves_old_state(services, store, monkeypatch):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    before_bytes = store.path.read_bytes()
    before_state = store.snapshot()

    def broken_replace(src, dst):
        raise OSError("simulated crash before rename")

    monkeypatch.setattr("switchyard.fsutil.os.replace", broken_replace)

    with pytest.raises(PersistenceFailure):
        services.providers.add(AppType.CLAUDE, claude_provider("p2"))

    monkeypatch.undo()
    assert store.snapshot() == before_state
    assert store.path.read_bytes() == before_bytes
    assert _on_disk(store) == before_state
    leftovers = [name for name in os.listdir(store.path.parent) if name.endswith(".tmp")]
    assert leftovers == []


def test_unchanged_transaction_is_not_written(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    backups_before = len(store.rotator.list())
    with store.transaction():
        pass
    assert store.last_commit.changed is False
    assert len(store.rotator.list()) == backups_before


def test_commit_takes_backup_of_previous_file(services, store):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    first = store.path.read_text()
    services.providers.add(AppType.CLAUDE, claude_provider("p2"))

    backup = store.last_commit.backup
    assert backup is not None
    assert backup.path.read_text() == first


def test_caller_draft_cannot_mutate_committed_state(store):
    with store.transaction() as draft:
        draft.section(AppType.GEMINI).providers["g1"] = ProviderRecord(id="g1", name="G1")
    draft.section(AppType.GEMINI).providers.clear()
    assert "g1" in store.snapshot().section(AppType.GEMINI).providers


def test_reopen_reads_persisted_state(services, store, paths, rotator):
    services.providers.add(AppType.CLAUDE, claude_provider("p1"))
    services.providers.switch(AppType.CLAUDE, "p1")
    reopened = ConfigStore.open(paths, rotator=rotator)
    assert reopened.snapshot() == store.snapshot()


def test_backup_now_materializes_missing_file(store):
    info = store.backup_now("manual")
    assert store.path.exists()
    assert info.display_name == "manual"
