"""
Switchyard - List Focus

Cursor and filter state for one list screen. The cursor indexes the filtered
view; callers translate back to row indices with selected().

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

PAGE_SIZE = 10


@dataclass(slots=True)
class ListFocus:
    cursor: int = 0
    query: str = ""
    filtering: bool = False

    def visible(self, labels: Sequence[str]) -> list[int]:
        """Row indices matching the filter query (case-insensitive substring)."""
        needle = self.query.strip().lower()
        if not needle:
            return list(range(len(labels)))
        return [index for index, label in enumerate(labels) if needle in label.lower()]

    def clamp(self, labels: Sequence[str]) -> None:
        count = len(self.visible(labels))
        self.cursor = 0 if count == 0 else max(0, min(self.cursor, count - 1))

    def move(self, delta: int, labels: Sequence[str]) -> None:
        count = len(self.visible(labels))
        if count == 0:
            self.cursor = 0
            return
        self.cursor = max(0, min(self.cursor + delta, count - 1))

    def home(self) -> None:
        self.cursor = 0

    def end(self, labels: Sequence[str]) -> None:
        self.cursor = max(0, len(self.visible(labels)) - 1)

    def selected(self, labels: Sequence[str]) -> int | None:
        rows = self.visible(labels)
        if not rows:
            return None
        return rows[max(0, min(self.cursor, len(rows) - 1))]

    def start_filter(self) -> None:
        self.filtering = True

    def stop_filter(self, *, clear: bool = False) -> None:
        self.filtering = False
        if clear:
            self.query = ""
            self.cursor = 0

    def type_char(self, char: str) -> None:
        self.query += char
        self.cursor = 0

    def backspace(self) -> None:
        self.query = self.query[:-1]
        self.cursor = 0


__all__ = ["ListFocus", "PAGE_SIZE"]
