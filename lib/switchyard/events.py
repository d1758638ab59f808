"""
Switchyard - Input Dispatcher

Translates Textual key events into the small semantic vocabulary the router
understands.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum


class EventKind(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    APP_NEXT = "app_next"
    APP_PREV = "app_prev"
    FILTER = "filter"
    HELP = "help"
    BACK = "back"
    CONFIRM = "confirm"
    BACKSPACE = "backspace"
    CHAR = "char"
    INTERRUPT = "interrupt"


@dataclass(frozen=True, slots=True)
class UiEvent:
    kind: EventKind
    char: str | None = None

    @property
    def printable(self) -> bool:
        return self.char is not None


NAMED_KEYS = {
    "up": EventKind.UP,
    "down": EventKind.DOWN,
    "left": EventKind.LEFT,
    "right": EventKind.RIGHT,
    "pageup": EventKind.PAGE_UP,
    "pagedown": EventKind.PAGE_DOWN,
    "home": EventKind.HOME,
    "end": EventKind.END,
    "enter": EventKind.CONFIRM,
    "escape": EventKind.BACK,
    "backspace": EventKind.BACKSPACE,
    "ctrl+c": EventKind.INTERRUPT,
}

CHAR_KEYS = {
    "]": EventKind.APP_NEXT,
    "[": EventKind.APP_PREV,
    "/": EventKind.FILTER,
    "?": EventKind.HELP,
}


class KeyDispatcher:
    """Stateless key translation; unknown keys map to None."""

    def __init__(self) -> None:
        self.logger = logging.getLogger('KeyDispatcher')

    def translate(self, key: str, character: str | None = None) -> UiEvent | None:
        kind = NAMED_KEYS.get(key)
        if kind is not None:
            return UiEvent(kind)
        if character and len(character) == 1 and character.isprintable():
            kind = CHAR_KEYS.get(character, EventKind.CHAR)
            return UiEvent(kind, character)
        self.logger.trace("Ignoring key %r", key)
        return None


__all__ = ["EventKind", "UiEvent", "KeyDispatcher"]
