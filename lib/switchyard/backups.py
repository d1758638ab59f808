"""
Switchyard - Backup Rotator

Immutable snapshots of the SSOT file taken before every mutating write.
Snapshots are kept newest-first and bounded by BACKUP_RETENTION.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from .constants import BACKUP_PREFIX, BACKUP_RETENTION
from .errors import PersistenceFailure, ValidationFailure

STAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_STAMP_RE = re.compile(r"^(?P<name>.+?)_(?P<stamp>\d{8}_\d{6}_\d{6})(?:_(?P<seq>\d+))?$")
_NAME_SANITIZE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True, slots=True)
class BackupInfo:
    """A single snapshot on disk."""

    id: str
    path: Path
    created: datetime
    display_name: str
    seq: int = 0

    @property
    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "path": str(self.path),
            "created": self.created.isoformat(timespec="seconds"),
            "name": self.display_name,
        }


def sanitize_backup_name(name: str) -> str:
    cleaned = _NAME_SANITIZE.sub("-", name.strip()).strip("-._")
    if not cleaned:
        raise ValidationFailure("Backup name must contain letters or digits", field="name")
    return cleaned[:48]


class BackupRotator:
    """Creates, lists, reads, deletes and evicts SSOT snapshots."""

    def __init__(
        self,
        backup_dir: Path,
        *,
        retention: int = BACKUP_RETENTION,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self.backup_dir = backup_dir
        self.retention = retention
        self._clock = clock
        self.logger = logging.getLogger('BackupRotator')

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _parse(self, path: Path) -> BackupInfo | None:
        match = _STAMP_RE.match(path.stem)
        if not match:
            return None
        try:
            created = datetime.strptime(match.group("stamp"), STAMP_FORMAT)
        except ValueError:
            return None
        return BackupInfo(
            id=path.stem,
            path=path,
            created=created,
            display_name=match.group("name"),
            seq=int(match.group("seq") or 0),
        )

    def list(self) -> list[BackupInfo]:
        """All snapshots, newest first."""
        if not self.backup_dir.is_dir():
            return []
        infos = [info for info in map(self._parse, self.backup_dir.glob("*.json")) if info is not None]
        infos.sort(key=lambda info: (info.created, info.seq, info.id), reverse=True)
        return infos

    def get(self, backup_id: str) -> BackupInfo:
        for info in self.list():
            if info.id == backup_id:
                return info
        raise ValidationFailure(f"Backup '{backup_id}' not found", field="backup")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def snapshot(self, source: Path, name: str | None = None) -> BackupInfo | None:
        """Copy ``source`` into the backup directory and evict beyond retention.

        Returns None when there is nothing to back up yet.
        """
        if not source.exists():
            self.logger.debug("No SSOT file at %s yet; skipping snapshot", source)
            return None

        label = sanitize_backup_name(name) if name else BACKUP_PREFIX
        stamp = self._clock().strftime(STAMP_FORMAT)
        target = self.backup_dir / f"{label}_{stamp}.json"
        seq = 0
        while target.exists():
            seq += 1
            target = self.backup_dir / f"{label}_{stamp}_{seq}.json"

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to back up {source}: {exc}", path=target) from exc

        info = self._parse(target)
        self.logger.info("Snapshot created: %s", target.name)
        self._evict()
        return info

    def _evict(self) -> None:
        for stale in self.list()[self.retention:]:
            try:
                stale.path.unlink()
                self.logger.debug("Evicted snapshot %s", stale.id)
            except OSError as exc:
                self.logger.warning("Failed to evict snapshot %s: %s", stale.path, exc)

    def read(self, backup_id: str) -> str:
        info = self.get(backup_id)
        try:
            return info.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceFailure(f"Failed to read backup {info.path}: {exc}", path=info.path) from exc

    def delete(self, backup_id: str) -> BackupInfo:
        info = self.get(backup_id)
        try:
            info.path.unlink()
        except OSError as exc:
            raise PersistenceFailure(f"Failed to delete backup {info.path}: {exc}", path=info.path) from exc
        self.logger.info("Snapshot deleted: %s", info.id)
        return info


__all__ = ["BackupInfo", "BackupRotator", "sanitize_backup_name"]
