"""Core constants and paths for Alfred.

Single source of truth for global and workspace-local paths. Modules import
from here instead of hardcoding `Path.home() / ".alfred"`.
"""

import os
from pathlib import Path

ALFRED_DIR_NAME = ".alfred"
SETTINGS_FILE_NAME = "settings.local.json"
CONFIG_FILE_NAME = "config.json"
SYSTEM_PROMPT_FILE_NAME = "system.md"


def get_alfred_dir() -> Path:
    """Get the global config directory (~/.alfred, or $ALFRED_HOME)."""
    override = os.environ.get("ALFRED_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ALFRED_DIR_NAME


def get_workspace_dir(workspace_root: Path) -> Path:
    """Get the workspace-local settings directory (<workspace>/.alfred)."""
    return workspace_root / ALFRED_DIR_NAME


def get_log_dir() -> Path:
    """Get the default log directory."""
    return get_alfred_dir() / "logs"
