"""Tool runtime: the tool contract, the registry and the executor."""

from alfred.tools.base import BaseTool, ToolContext, ToolSchema
from alfred.tools.executor import ToolExecutor
from alfred.tools.registry import ToolRegistry
from alfred.tools.services import ServiceContainer

__all__ = [
    "BaseTool",
    "ServiceContainer",
    "ToolContext",
    "ToolExecutor",
    "ToolRegistry",
    "ToolSchema",
]
