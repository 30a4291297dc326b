"""Registration helpers for built-in tools."""

from alfred.tools.builtin.bash import BashTool
from alfred.tools.builtin.edit_file import EditFileTool
from alfred.tools.builtin.read_file import ReadFileTool
from alfred.tools.builtin.task_write import TaskWriteTool
from alfred.tools.builtin.write_file import WriteFileTool
from alfred.tools.registry import ToolRegistry


def register_builtin_tools(registry: ToolRegistry) -> None:
    """Register all built-in tools with the registry.

    Tools share the registry's ServiceContainer.

    Example:
        services = ServiceContainer()
        registry = ToolRegistry(services)
        register_builtin_tools(registry)
    """
    services = registry.services

    # File operations
    registry.register(ReadFileTool(services))
    registry.register(WriteFileTool(services))
    registry.register(EditFileTool(services))

    # Execution
    registry.register(BashTool(services))

    # Planning
    registry.register(TaskWriteTool(services))
