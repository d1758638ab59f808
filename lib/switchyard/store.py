"""
Switchyard - Config Store

Owns the canonical in-memory store and is the only writer of the SSOT file.
Every mutation runs on a draft copy under a lock, then commits as
backup -> temp-file write -> atomic rename -> reference swap -> projection.
A failure before the rename leaves both memory and disk untouched.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, TypeVar

from .backups import BackupInfo, BackupRotator
from .errors import MigrationFailure, PersistenceFailure
from .fsutil import atomic_write_text, dump_json
from .migrate import parse_document
from .paths import AppPaths
from .projector import LiveProjector, affected_apps
from .records import AppType, CanonicalStore

T = TypeVar("T")


@dataclass(slots=True)
class CommitResult:
    """Outcome of the most recent successful commit."""

    changed: bool
    backup: BackupInfo | None = None
    apps: list[AppType] = field(default_factory=list)


def serialize(store: CanonicalStore) -> str:
    return dump_json(store.as_dict())


class ConfigStore:
    """Serialized, crash-safe access to the canonical store."""

    def __init__(
        self,
        path: Path,
        *,
        rotator: BackupRotator,
        projector: LiveProjector | None = None,
        initial: CanonicalStore | None = None,
    ) -> None:
        self.path = path
        self.rotator = rotator
        self.projector = projector
        self._current = initial if initial is not None else CanonicalStore()
        self._lock = threading.RLock()
        self.last_commit: CommitResult | None = None
        self.logger = logging.getLogger('ConfigStore')

    @classmethod
    def open(
        cls,
        paths: AppPaths,
        *,
        rotator: BackupRotator | None = None,
        projector: LiveProjector | None = None,
    ) -> "ConfigStore":
        """Load (and migrate) the SSOT file. Raises MigrationFailure when unreadable."""
        rotator = rotator or BackupRotator(paths.backup_dir)
        path = paths.store_file
        try:
            text = path.read_text(encoding="utf-8") if path.exists() else ""
        except OSError as exc:
            raise MigrationFailure(f"Cannot read {path}: {exc}") from exc

        loaded = parse_document(text)
        store = cls(path, rotator=rotator, projector=projector, initial=loaded.store)
        store.logger.info(
            "Loaded %s (%s)", path, "new" if not text else f"schema v{loaded.store.version}"
        )
        if loaded.migrated:
            store.logger.info("Persisting migration from schema v%s", loaded.migrated_from)
            store._persist(loaded.store)
        return store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> CanonicalStore:
        """A private copy of the committed state; never observes a partial mutation."""
        return self._current.copy()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[CanonicalStore]:
        """Yield a draft; commit it if the block exits cleanly, discard it otherwise."""
        with self._lock:
            draft = self._current.copy()
            yield draft
            self._commit(draft)

    def with_mutable(self, fn: Callable[[CanonicalStore], T]) -> T:
        with self.transaction() as draft:
            result = fn(draft)
        return result

    def _persist(self, draft: CanonicalStore) -> BackupInfo | None:
        backup = self.rotator.snapshot(self.path)
        text = serialize(draft)
        try:
            atomic_write_text(self.path, text)
        except OSError as exc:
            self.logger.error("SSOT write failed, mutation rolled back: %s", exc)
            raise PersistenceFailure(f"Failed to write {self.path}: {exc}", path=self.path) from exc
        self.logger.trace("SSOT written:\n%s", text)
        return backup

    def _commit(self, draft: CanonicalStore) -> None:
        draft.validate()
        previous = self._current
        if draft == previous and self.path.exists():
            self.last_commit = CommitResult(changed=False)
            self.logger.debug("Transaction produced no changes")
            return

        backup = self._persist(draft)
        committed = draft.copy()
        self._current = committed
        apps = affected_apps(previous, committed)
        self.last_commit = CommitResult(changed=True, backup=backup, apps=apps)
        self.logger.debug(
            "Committed (backup=%s, apps=%s)",
            backup.id if backup else None,
            ",".join(app.value for app in apps) or "-",
        )
        if self.projector is not None and apps:
            self.projector.project(committed, previous=previous, apps=apps)

    def backup_now(self, name: str | None = None) -> BackupInfo:
        """Take a named snapshot on demand, materializing the file first if needed."""
        with self._lock:
            if not self.path.exists():
                self._persist(self._current)
            info = self.rotator.snapshot(self.path, name=name)
        if info is None:
            raise PersistenceFailure(f"Nothing to back up at {self.path}", path=self.path)
        return info

    def sync_live(self, apps: list[AppType] | None = None) -> None:
        """Re-project the committed state (startup reconciliation)."""
        if self.projector is None:
            return
        with self._lock:
            self.projector.project(self._current, apps=apps)


__all__ = ["ConfigStore", "CommitResult", "serialize"]
