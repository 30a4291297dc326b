"""System prompt assembly.

The base prompt comes from the first source that exists:

1. The file named by $ALFRED_SYSTEM_MD
2. The configured session.system_prompt_path
3. ~/.alfred/system.md
4. The built-in default

A context section (working directory, date, platform) and a tools line are
appended to it.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

from alfred.core.constants import SYSTEM_PROMPT_FILE_NAME, get_alfred_dir

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_ENV = "ALFRED_SYSTEM_MD"

DEFAULT_SYSTEM_PROMPT = """\
You are Alfred, a helpful CLI assistant with access to tools. Be concise, direct, \
and focused on helping with command-line tasks.

Key guidelines:
- Respond concisely - aim for 1-3 lines unless more detail is needed
- Execute tools when appropriate to help the user
- Prioritize clarity and accuracy
- Focus on the specific task at hand"""


class PromptBuilder:
    """Builds the system prompt for a session.

    Attributes:
        cwd: Working directory reported to the model.
        configured_path: session.system_prompt_path from the config, if any.
    """

    def __init__(
        self,
        cwd: Path,
        configured_path: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.cwd = cwd
        self.configured_path = configured_path
        self._environ = os.environ if environ is None else environ

    def candidate_paths(self) -> list[Path]:
        paths = []
        override = self._environ.get(SYSTEM_PROMPT_ENV)
        if override:
            paths.append(Path(override).expanduser())
        if self.configured_path:
            paths.append(Path(self.configured_path).expanduser())
        paths.append(get_alfred_dir() / SYSTEM_PROMPT_FILE_NAME)
        return paths

    def load_base_prompt(self) -> str:
        for path in self.candidate_paths():
            if not path.is_file():
                continue
            try:
                return path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to load system prompt from %s: %s", path, e)
        return DEFAULT_SYSTEM_PROMPT

    def build(
        self,
        tool_count: int = 0,
        extra_context: Mapping[str, Any] | None = None,
        today: date | None = None,
    ) -> str:
        """Return the complete system prompt."""
        today = today or date.today()
        parts = [
            self.load_base_prompt().rstrip(),
            "",
            "# Context",
            f"Working directory: {self.cwd}",
            f"Today's date: {today.strftime('%A, %B %d, %Y')}",
            f"Platform: {sys.platform}",
        ]

        if tool_count > 0:
            parts += ["", "# Tools", f"You have access to {tool_count} tools to help complete tasks."]

        if extra_context:
            parts += ["", "# Additional Context"]
            parts += [f"{key}: {json.dumps(value)}" for key, value in extra_context.items()]

        return "\n".join(parts)


def initialize_system_prompt_file(path: Path | None = None) -> bool:
    """Write the default prompt to ~/.alfred/system.md for customization.

    Returns:
        True if the file was created, False if it already existed.
    """
    path = path or get_alfred_dir() / SYSTEM_PROMPT_FILE_NAME
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_SYSTEM_PROMPT, encoding="utf-8")
    logger.info("Created system prompt file at %s", path)
    return True
