"""
Switchyard - Constants and Text Strings

All hardcoded constants, environment variable names and user-visible strings.
Extracted for easy maintenance and localization.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

# ============================================================================
# CONFIGURATION CONSTANTS
# ============================================================================

SCHEMA_VERSION = 2  # persisted document version marker
BACKUP_RETENTION = 10  # snapshots kept by the backup rotator
POLL_INTERVAL = 0.2  # seconds between UI ticks (probe drain, toast expiry)
PROBE_TIMEOUT = 8.0  # seconds per reachability check
PROBE_THREAD_NAME = "switchyard-probe"
TOAST_SECONDS = 4.0
WORKER_JOIN_TIMEOUT = 2.0

DATA_DIR_NAME = ".switchyard"
STORE_FILE_NAME = "config.json"
BACKUP_DIR_NAME = "backups"
LOG_DIR_NAME = "logs"
BACKUP_PREFIX = "backup"

LANGUAGES = ("en", "zh")
LIVE_SYNC_POLICIES = ("auto", "always")

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_HOME = "SWITCHYARD_HOME"
ENV_LEGACY_TUI = "SWITCHYARD_LEGACY_TUI"
ENV_STDERR_LEVEL = "SWITCHYARD_STDERR_LEVEL"
ENV_STDERR_TRACE = "SWITCHYARD_STDERR_TRACE"
ENV_NO_COLOR = "NO_COLOR"
ENV_LOGLEVEL = "LOGLEVEL"
ENV_CODEX_HOME = "CODEX_HOME"
ENV_GEMINI_HOME = "GEMINI_HOME"
ENV_CLAUDE_HOME = "CLAUDE_CONFIG_DIR"

# ============================================================================
# HARDCODED TEXT CONSTANTS
# ============================================================================

APP_TITLE = "Switchyard"

# Navigation
NAV_PROVIDERS = "Providers"
NAV_MCP = "MCP servers"
NAV_PROMPTS = "Prompts"
NAV_CONFIG = "Configuration"
NAV_SETTINGS = "Settings"
NAV_EXIT = "Exit"

# Config actions
CONFIG_SHOW_FULL = "Show full config"
CONFIG_VALIDATE = "Validate config"
CONFIG_BACKUP = "Create backup"
CONFIG_RESTORE = "Restore backup"
CONFIG_EXPORT = "Export config"
CONFIG_IMPORT = "Import config"
CONFIG_RESET = "Reset to defaults"
CONFIG_LEGACY = "Legacy menu"

# Settings
SETTING_LANGUAGE = "Language"
SETTING_LIVE_SYNC = "Live sync"

# Status messages - Success
STATUS_READY = "Ready"
STATUS_PROVIDER_SWITCHED = "Switched {app} provider to {provider}"
STATUS_PROVIDER_SAVED = "Provider saved: {provider}"
STATUS_PROVIDER_DELETED = "Provider deleted: {provider}"
STATUS_MCP_SAVED = "MCP server saved: {server}"
STATUS_MCP_DELETED = "MCP server deleted: {server}"
STATUS_MCP_TOGGLED = "{server} {state} for {app}"
STATUS_MCP_IMPORTED = "Imported {count} MCP server(s) from {app}"
STATUS_PROMPT_SAVED = "Prompt saved: {prompt}"
STATUS_PROMPT_DELETED = "Prompt deleted: {prompt}"
STATUS_PROMPT_ACTIVATED = "Prompt activated: {prompt}"
STATUS_PROMPT_DEACTIVATED = "Prompt deactivated: {prompt}"
STATUS_BACKUP_CREATED = "Backup created: {backup}"
STATUS_BACKUP_RESTORED = "Restored backup {backup}"
STATUS_BACKUP_DELETED = "Backup deleted: {backup}"
STATUS_CONFIG_EXPORTED = "Config exported to {path}"
STATUS_CONFIG_IMPORTED = "Config imported from {path}"
STATUS_CONFIG_RESET = "Config reset to defaults"
STATUS_CONFIG_VALID = "Config is valid"
STATUS_LANGUAGE_SET = "Language set to {language}"
STATUS_LIVE_SYNC_SET = "Live sync policy set to {policy}"
STATUS_EDITING_CANCELLED = "Editing cancelled"
STATUS_PROBE_STARTED = "Probing {target}..."
STATUS_NOTHING_SELECTED = "Nothing selected"
STATUS_NO_API_URL = "{provider} has no API URL to probe"

# Status messages - Errors
ERROR_TITLE = "Error"
ERROR_INVALID_JSON = "Invalid JSON: {error}"
ERROR_LIVE_SYNC = "Saved, but live config could not be updated: {error}"
ERROR_LEGACY_UNAVAILABLE = "Legacy mode is unavailable: {error}"
ERROR_STARTUP = "switchyard: {error}"
ERROR_NOT_A_TTY = "Legacy mode requires an interactive terminal (TTY)."
ERROR_UNSAVED_EXIT = "Discard unsaved input and exit?"

# Probe states
PROBE_PENDING = "probing..."
PROBE_OK = "{latency:.0f} ms (HTTP {status})"
PROBE_FAILED = "unreachable: {error}"

# Help overlay
HELP_LINES = [
    "Global keys",
    "  [ / ]       previous / next app",
    "  /           filter the current list",
    "  ?           toggle this help",
    "  Esc         back / leave filter / exit",
    "  Ctrl+C      quit immediately",
    "",
    "Lists",
    "  Up / Down   move      PgUp / PgDn   page",
    "  Enter       open / run the selected item",
    "",
    "Providers   s switch  a add  g guided add  e edit  d delete  t probe",
    "MCP         space toggle  a add  g guided add  e edit  d delete  i import",
    "Prompts     space toggle  a add  e edit  v view  d delete",
    "Backups     Enter restore  d delete",
    "Editor      Ctrl+S save  Esc cancel",
]
