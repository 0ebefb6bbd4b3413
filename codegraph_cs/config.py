"""Configuration paths and analysis constants for CodeGraph CS."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODEGRAPH_CS_HOME", str(Path.home() / ".codegraph-cs"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_INDENT = 2
DEFAULT_LOG_LEVEL = "INFO"

SOURCE_EXTENSIONS = {".cs", ".csx"}

# Directories never searched for default compile items.
SKIP_DIRS = {"bin", "obj", "node_modules", "packages"}

# File name suffixes produced by code generators (compared lower-case).
GENERATED_FILE_PATTERNS = (
    ".g.cs",
    ".g.i.cs",
    ".designer.cs",
    ".generated.cs",
)
