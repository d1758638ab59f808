"""
Switchyard - Paths

Well-known locations of the SSOT file, backups, logs and every live artifact.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    BACKUP_DIR_NAME,
    DATA_DIR_NAME,
    ENV_CLAUDE_HOME,
    ENV_CODEX_HOME,
    ENV_GEMINI_HOME,
    ENV_HOME,
    LOG_DIR_NAME,
    STORE_FILE_NAME,
)
from .records import AppType


def _expand(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value)))


@dataclass(frozen=True, slots=True)
class AppPaths:
    """Resolved filesystem layout. Construct once at startup and pass around."""

    home: Path
    data_dir: Path
    claude_dir: Path
    codex_dir: Path
    gemini_dir: Path

    @classmethod
    def from_env(cls, environ=None, home: Path | None = None) -> "AppPaths":
        env = os.environ if environ is None else environ
        home = home or Path.home()
        data_dir = _expand(env[ENV_HOME]) if env.get(ENV_HOME) else home / DATA_DIR_NAME
        claude_dir = _expand(env[ENV_CLAUDE_HOME]) if env.get(ENV_CLAUDE_HOME) else home / ".claude"
        codex_dir = _expand(env[ENV_CODEX_HOME]) if env.get(ENV_CODEX_HOME) else home / ".codex"
        gemini_dir = _expand(env[ENV_GEMINI_HOME]) if env.get(ENV_GEMINI_HOME) else home / ".gemini"
        return cls(home=home, data_dir=data_dir, claude_dir=claude_dir, codex_dir=codex_dir, gemini_dir=gemini_dir)

    @classmethod
    def under(cls, root: Path) -> "AppPaths":
        """Layout rooted at a single directory acting as $HOME."""
        return cls.from_env(environ={}, home=root)

    # SSOT -------------------------------------------------------------------

    @property
    def store_file(self) -> Path:
        return self.data_dir / STORE_FILE_NAME

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / BACKUP_DIR_NAME

    @property
    def log_dir(self) -> Path:
        return self.data_dir / LOG_DIR_NAME

    # Live artifacts ---------------------------------------------------------

    @property
    def claude_settings(self) -> Path:
        return self.claude_dir / "settings.json"

    @property
    def claude_mcp(self) -> Path:
        # ~/.claude.json stays in the home directory even when CLAUDE_CONFIG_DIR moves the rest
        return self.home / ".claude.json"

    @property
    def claude_prompt(self) -> Path:
        return self.claude_dir / "CLAUDE.md"

    @property
    def codex_auth(self) -> Path:
        return self.codex_dir / "auth.json"

    @property
    def codex_config(self) -> Path:
        return self.codex_dir / "config.toml"

    @property
    def codex_prompt(self) -> Path:
        return self.codex_dir / "AGENTS.md"

    @property
    def gemini_env(self) -> Path:
        return self.gemini_dir / ".env"

    @property
    def gemini_settings(self) -> Path:
        return self.gemini_dir / "settings.json"

    @property
    def gemini_prompt(self) -> Path:
        return self.gemini_dir / "GEMINI.md"

    def app_dir(self, app: AppType) -> Path:
        return {
            AppType.CLAUDE: self.claude_dir,
            AppType.CODEX: self.codex_dir,
            AppType.GEMINI: self.gemini_dir,
        }[app]

    def prompt_file(self, app: AppType) -> Path:
        return {
            AppType.CLAUDE: self.claude_prompt,
            AppType.CODEX: self.codex_prompt,
            AppType.GEMINI: self.gemini_prompt,
        }[app]

    def artifacts(self, app: AppType) -> list[Path]:
        """Every live file the projector may write for an app."""
        if app is AppType.CLAUDE:
            return [self.claude_settings, self.claude_mcp, self.claude_prompt]
        if app is AppType.CODEX:
            return [self.codex_auth, self.codex_config, self.codex_prompt]
        return [self.gemini_env, self.gemini_settings, self.gemini_prompt]


__all__ = ["AppPaths"]
