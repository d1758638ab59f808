"""
Switchyard - TOML Emitter

Deterministic TOML rendering for codex's config.toml. Parsing goes through
tomllib (tomli on older interpreters).

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import datetime as _dt
import math
import re
from typing import Any

from .utils import tomllib

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


def loads(text: str) -> dict[str, Any]:
    """Parse TOML text. Raises tomllib.TOMLDecodeError on bad input."""
    return tomllib.loads(text)


def _key(key: str) -> str:
    return key if _BARE_KEY.match(key) else _string(key)


def _string(value: str) -> str:
    out = ['"']
    for char in value:
        code = ord(char)
        if char == '"':
            out.append('\\"')
        elif char == "\\":
            out.append("\\\\")
        elif char == "\n":
            out.append("\\n")
        elif char == "\t":
            out.append("\\t")
        elif char == "\r":
            out.append("\\r")
        elif code < 0x20 or code == 0x7F:
            out.append(f"\\u{code:04x}")
        else:
            out.append(char)
    out.append('"')
    return "".join(out)


def _is_table(value: Any) -> bool:
    return isinstance(value, dict)


def _is_table_array(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(item, dict) for item in value)


def _value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "nan"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        return repr(value)
    if isinstance(value, str):
        return _string(value)
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_value(item) for item in value if item is not None) + "]"
    if isinstance(value, dict):
        items = [f"{_key(k)} = {_value(v)}" for k, v in value.items() if v is not None]
        return "{ " + ", ".join(items) + " }" if items else "{}"
    raise TypeError(f"Cannot render {type(value).__name__} as TOML")


def _emit_table(lines: list[str], path: list[str], table: dict[str, Any]) -> None:
    scalars = [(k, v) for k, v in table.items() if v is not None and not _is_table(v) and not _is_table_array(v)]
    tables = [(k, v) for k, v in table.items() if _is_table(v)]
    arrays = [(k, v) for k, v in table.items() if _is_table_array(v)]

    header_needed = bool(path) and (scalars or not tables and not arrays)
    if header_needed:
        if lines:
            lines.append("")
        lines.append("[" + ".".join(_key(part) for part in path) + "]")
    for key, value in scalars:
        lines.append(f"{_key(key)} = {_value(value)}")

    for key, value in tables:
        _emit_table(lines, path + [key], value)

    for key, items in arrays:
        for item in items:
            if lines:
                lines.append("")
            lines.append("[[" + ".".join(_key(part) for part in path + [key]) + "]]")
            for sub_key, sub_value in item.items():
                if sub_value is None:
                    continue
                lines.append(f"{_key(sub_key)} = {_value(sub_value)}")


def dumps(data: dict[str, Any]) -> str:
    """Render a mapping as TOML; top-level scalars first, then tables in insertion order."""
    lines: list[str] = []
    _emit_table(lines, [], data)
    return "\n".join(lines) + ("\n" if lines else "")


__all__ = ["loads", "dumps"]
