"""Locate ``cmdgraph.toml``.

``CMDGRAPH_CONFIG`` names the file explicitly. Otherwise the directory tree is
searched from the start directory up to the filesystem root, nearest first.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "cmdgraph.toml"
CONFIG_ENV_VAR = "CMDGRAPH_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), or None.

    An env override pointing at a missing file disables discovery.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        explicit = Path(override)
        return explicit if explicit.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
