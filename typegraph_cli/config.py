"""Configuration paths and scanning constants for TypeGraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("TYPEGRAPH_HOME", str(Path.home() / ".typegraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

SUPPORTED_EXTENSIONS = {".cs"}
ARCHIVE_EXTENSIONS = {".zip"}

SKIP_DIRS = {
    ".git", ".vs", ".vscode", ".idea", "bin", "obj", "node_modules",
    "packages", "TestResults", "__MACOSX",
}

# Defaults used when config.toml has no [analysis] section
DEFAULT_ANALYSIS = {
    "mode": "syntactic",
    "include_method_signatures": False,
    "strict": False,
    "lenient": False,
}
