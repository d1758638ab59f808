"""
Switchyard - Provider, MCP server and prompt switcher for AI coding assistant CLIs.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from . import utils as _utils  # noqa: F401  registers the TRACE level

__version__ = "0.1.0"
