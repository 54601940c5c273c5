"""Config file discovery and loading.

Walk-up finder locates flowlab.toml, similar to how git finds .git/.
Supports the FLOWLAB_CONFIG env var and --config CLI flag overrides.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from flowlab.config.models import FlowlabConfig

CONFIG_FILENAME = "flowlab.toml"
CONFIG_ENV_VAR = "FLOWLAB_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for flowlab.toml.

    Returns the path to the config file, or None if not found.
    Checks FLOWLAB_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(path: Path | None = None, cwd: Path | None = None) -> FlowlabConfig:
    """Load and validate config from a TOML file.

    If *path* is None, uses find_config(*cwd*) to discover the file.
    Returns the default FlowlabConfig if no file is found.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return FlowlabConfig()

    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return FlowlabConfig.model_validate(data)
