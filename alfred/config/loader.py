"""Configuration loading with fail-fast behavior and layered merging.

Layers, later ones overriding earlier ones:
1. Global user config (~/.alfred/config.json)
2. Workspace config (<cwd>/.alfred/config.json)
3. Environment overrides (ALFRED_MODEL, ALFRED_MAX_TOKENS, ALFRED_MAX_TURNS,
   ALFRED_LOG_LEVEL)
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from alfred.config.load_utils import load_json_file, load_json_file_optional
from alfred.config.schema import Config
from alfred.core.constants import CONFIG_FILE_NAME, get_alfred_dir, get_workspace_dir
from alfred.core.errors import ConfigError, LoadError
from alfred.core.utils import deep_merge

logger = logging.getLogger(__name__)

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ALFRED_MODEL": ("provider", "model"),
    "ALFRED_MAX_TOKENS": ("provider", "max_tokens"),
    "ALFRED_MAX_TURNS": ("session", "max_turns"),
    "ALFRED_LOG_LEVEL": ("logging", "level"),
}


def load_config(
    path: Path | None = None,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration with layered merging.

    Args:
        path: Explicit config file. If provided, the global and workspace
            layers are skipped (environment overrides still apply).
        cwd: Workspace directory for the local layer. Defaults to Path.cwd().
        environ: Environment mapping for overrides. Defaults to os.environ.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If a config file is unreadable or invalid JSON, or if the
            merged result fails validation.
    """
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {}
    loaded_from: list[str] = []

    if path is not None:
        try:
            merged = load_json_file(path, error_context="config")
        except LoadError as e:
            raise ConfigError(e.message) from e
        loaded_from.append(str(path))
    else:
        effective_cwd = cwd or Path.cwd()
        layers = [
            get_alfred_dir() / CONFIG_FILE_NAME,
            get_workspace_dir(effective_cwd) / CONFIG_FILE_NAME,
        ]
        for layer in _unique(layers):
            try:
                data = load_json_file_optional(layer, error_context="config")
            except LoadError as e:
                raise ConfigError(e.message) from e
            if data:
                merged = deep_merge(merged, data)
                loaded_from.append(str(layer))

    overrides = _env_overrides(env)
    if overrides:
        merged = deep_merge(merged, overrides)
        loaded_from.append("environment")

    if loaded_from:
        logger.info("Config loaded from: %s", loaded_from)
    else:
        logger.debug("No config files found, using defaults")

    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        sources = ", ".join(loaded_from) or "defaults"
        raise ConfigError(f"Config validation failed (merged from {sources}): {e}") from e


def _unique(paths: list[Path]) -> list[Path]:
    """Drop duplicate layers (cwd may be the home directory)."""
    seen: set[Path] = set()
    result = []
    for p in paths:
        resolved = p.resolve()
        if resolved not in seen:
            seen.add(resolved)
            result.append(p)
    return result


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for var, (section, field) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            overrides.setdefault(section, {})[field] = value
    return overrides
