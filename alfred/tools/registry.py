"""Tool registry: one tool instance per name.

One registry belongs to one session; nothing here is global. Registering a
name twice is a programming error and fails immediately.

Example:
    registry = ToolRegistry()
    registry.register(ReadFileTool())

    tool = registry.get("read_file")
    schemas = registry.get_schemas()
"""

from __future__ import annotations

import logging
import re

from alfred.core.errors import DuplicateToolError, ToolRegistrationError
from alfred.tools.base import BaseTool, ToolSchema
from alfred.tools.services import ServiceContainer

logger = logging.getLogger(__name__)

# 1-64 chars, starting with a letter or underscore
_TOOL_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]{0,63}$")


class ToolRegistry:
    """Name-keyed collection of tools, iterated in registration order.

    Attributes:
        _services: ServiceContainer shared by the session's tools.
        _tools: Mapping of tool name to instance.
    """

    def __init__(self, services: ServiceContainer | None = None) -> None:
        self._services = services if services is not None else ServiceContainer()
        self._tools: dict[str, BaseTool] = {}

    @property
    def services(self) -> ServiceContainer:
        return self._services

    def register(self, tool: BaseTool) -> None:
        """Register a tool under its name.

        Raises:
            ToolRegistrationError: If the name is malformed.
            DuplicateToolError: If the name is already registered.
        """
        name = tool.name
        if not _TOOL_NAME_PATTERN.match(name):
            raise ToolRegistrationError(f"Invalid tool name: {name!r}")
        if name in self._tools:
            raise DuplicateToolError(name)
        self._tools[name] = tool
        logger.debug("Registered tool %s", name)

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns True if it was registered."""
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools.keys())

    def get_schemas(self) -> list[ToolSchema]:
        """Schemas for every registered tool, in registration order."""
        return [tool.schema for tool in self._tools.values()]

    def clear(self) -> None:
        self._tools.clear()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
