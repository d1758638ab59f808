#!/usr/bin/env python3
"""
Switchyard - Main Entry Point

Follows the bin/lib structure and can be invoked with an optional log level.
Example:
    ./switchyard-main.py TRACE
    ./switchyard-main.py --log-level debug --app codex

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

import sys
from pathlib import Path

BIN_DIR = Path(__file__).resolve().parent
LIB_DIR = BIN_DIR.parent / "lib"
if (LIB_DIR / "switchyard" / "__init__.py").exists() and str(LIB_DIR) not in sys.path:
    sys.path.insert(0, str(LIB_DIR))

from switchyard.launcher import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
