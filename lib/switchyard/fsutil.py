"""
Switchyard - File Helpers

Atomic text writes (temp file in the same directory, fsync, rename), JSON
document helpers, and the KEY=VALUE env-file format.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger("FileHelpers")

_ENV_LINE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_.-]*)\s*=\s*(.*?)\s*$")
_ENV_PLAIN_VALUE = re.compile(r"^[A-Za-z0-9_./:@%+,=-]*$")


def atomic_write_text(path: Path, text: str) -> None:
    """Atomically write UTF-8 text to ``path``.

    The content lands in a temporary file beside the target, is fsynced, and is
    renamed over the target. On any failure the temporary file is removed and
    the original target is left untouched; the error propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmppath = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmppath, path)
    except BaseException:
        try:
            os.remove(tmppath)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Failed to remove temporary file %s", tmppath, exc_info=True)
        raise
    logger.trace("Wrote %s (%d bytes)", path, len(text))


def read_text(path: Path) -> str | None:
    """Return file content or None when it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def dump_json(data: Any) -> str:
    """Deterministic JSON rendering shared by the store and the projector."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def read_json_object(path: Path) -> dict[str, Any]:
    """Load a JSON object from a live artifact.

    Missing or empty files read as ``{}``. Unparseable or non-object content is
    logged and treated as empty so projection can regenerate the file.
    """
    text = read_text(path)
    if text is None or not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring unparseable JSON in %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring non-object JSON in %s", path)
        return {}
    return data


def parse_env(text: str | None) -> dict[str, str]:
    """Parse KEY=VALUE lines; comments and blank lines are skipped."""
    values: dict[str, str] = {}
    if not text:
        return values
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _ENV_LINE.match(line)
        if not match:
            continue
        key, value = match.group(1), match.group(2)
        if len(value) >= 2 and value[0] == value[-1] == '"':
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                value = value[1:-1]
        elif len(value) >= 2 and value[0] == value[-1] == "'":
            value = value[1:-1]
        values[key] = value
    return values


def render_env(values: dict[str, Any]) -> str:
    lines = []
    for key, value in values.items():
        text = "" if value is None else str(value)
        if not _ENV_PLAIN_VALUE.match(text):
            text = json.dumps(text, ensure_ascii=False)
        lines.append(f"{key}={text}")
    return "\n".join(lines) + ("\n" if lines else "")


__all__ = [
    "atomic_write_text",
    "read_text",
    "dump_json",
    "read_json_object",
    "parse_env",
    "render_env",
]
