"""Workspace-local persistence of permission lists.

Permissions live in ``<workspace>/.alfred/settings.local.json``::

    {"permissions": {"allow": [...], "deny": [...], "ask": [...]}}

Every read goes to disk (merge-on-read) and there is no locking: fine for a
single operator, unsafe for concurrent writers in several processes.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from alfred.config.load_utils import load_json_file_optional
from alfred.core.constants import SETTINGS_FILE_NAME, get_workspace_dir
from alfred.core.errors import LoadError
from alfred.policy.types import PermissionConfig

logger = logging.getLogger(__name__)

_PREFIX_KEY = re.compile(r"^(?P<label>\w+)\((?P<prefix>.+):\*\)$", re.DOTALL)
_ARGUMENT_KEY = re.compile(r"^(?P<label>\w+)\((?P<argument>.+)\)$", re.DOTALL)


def parse_prefix_key(key: str) -> tuple[str, str] | None:
    """Split ``Label(prefix:*)`` into (label, prefix), or None."""
    match = _PREFIX_KEY.match(key)
    if not match:
        return None
    return match.group("label"), match.group("prefix")


class PermissionStorage:
    """Reads and writes the permission section of the workspace settings file."""

    def __init__(self, workspace_root: Path) -> None:
        self._workspace_root = workspace_root

    @property
    def settings_path(self) -> Path:
        return get_workspace_dir(self._workspace_root) / SETTINGS_FILE_NAME

    def _read_settings(self) -> dict[str, Any]:
        try:
            return load_json_file_optional(self.settings_path, "permissions") or {}
        except LoadError as e:
            logger.warning("Ignoring unreadable permission settings: %s", e.message)
            return {}

    def load(self) -> PermissionConfig:
        """Load the stored permissions.

        A missing, unreadable, or malformed file yields empty lists.
        """
        permissions = self._read_settings().get("permissions")
        if not isinstance(permissions, dict):
            return PermissionConfig()
        return PermissionConfig.from_dict(permissions)

    def save(self, config: PermissionConfig) -> None:
        """Write permissions, preserving any other keys in the settings file.

        Raises:
            OSError: If the settings file cannot be written.
        """
        settings = self._read_settings()
        settings["permissions"] = config.to_dict()

        path = self.settings_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(settings, indent=2) + "\n", encoding="utf-8")
        except OSError:
            logger.error("Failed to save permissions to %s", path)
            raise
        logger.debug("Saved permissions to %s", path)

    def add_permission(self, key: str) -> None:
        """Add key to the allow list (deduplicated, kept sorted)."""
        config = self.load()
        if key in config.allow:
            return
        config.allow = sorted({*config.allow, key})
        self.save(config)
        logger.info("Persisted permission: %s", key)

    def remove_permission(self, key: str) -> None:
        """Remove key from the allow list."""
        config = self.load()
        config.allow = [k for k in config.allow if k != key]
        self.save(config)

    def has_permission(self, key: str) -> bool:
        return key in self.load().allow

    def has_matching_prefix(self, key: str, config: PermissionConfig | None = None) -> bool:
        """Check whether a stored prefix entry covers an argument key.

        ``Bash(npm install:*)`` covers ``Bash(npm install)`` and
        ``Bash(npm install foo)`` but not ``Bash(npm installx)``.
        """
        match = _ARGUMENT_KEY.match(key)
        if not match:
            return False
        label = match.group("label")
        argument = match.group("argument")

        allow = (config if config is not None else self.load()).allow
        for allowed in allow:
            parsed = parse_prefix_key(allowed)
            if parsed is None or parsed[0] != label:
                continue
            prefix = parsed[1]
            if argument == prefix or argument.startswith(prefix + " "):
                return True
        return False
