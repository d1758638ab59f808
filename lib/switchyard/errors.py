"""
Switchyard - Error Taxonomy

Exception classes raised across the store, projector, terminal and probe layers.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations


class SwitchyardError(Exception):
    """Base class for every error raised by Switchyard."""


class TerminalUnavailable(SwitchyardError):
    """stdin/stdout is not an interactive terminal."""


class TerminalModeFailure(SwitchyardError):
    """Raw mode, alternate screen or cursor state could not be changed."""


class PersistenceFailure(SwitchyardError):
    """The SSOT file could not be backed up, written or renamed into place."""

    def __init__(self, message: str, path=None) -> None:
        super().__init__(message)
        self.path = path


class ValidationFailure(SwitchyardError):
    """User input or a store mutation violates a domain rule."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ProbeFailure(SwitchyardError):
    """A probe could not reach its target. Reported per item, never fatal."""


class MigrationFailure(SwitchyardError):
    """The persisted document is unreadable or uses an unsupported schema."""


class LiveSyncFailure(SwitchyardError):
    """The SSOT was committed but one or more live artifacts could not be written."""

    def __init__(self, message: str, failures: dict | None = None) -> None:
        super().__init__(message)
        self.failures = failures or {}


__all__ = [
    "SwitchyardError",
    "TerminalUnavailable",
    "TerminalModeFailure",
    "PersistenceFailure",
    "ValidationFailure",
    "ProbeFailure",
    "MigrationFailure",
    "LiveSyncFailure",
]
