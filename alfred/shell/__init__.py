"""Shell command execution for the bash tool."""

from alfred.shell.execution import (
    BinaryDetectedEvent,
    BinaryProgressEvent,
    DataEvent,
    ExecutionHandle,
    ExecutionResult,
    ShellExecutionService,
    ShellOutputEvent,
)

__all__ = [
    "BinaryDetectedEvent",
    "BinaryProgressEvent",
    "DataEvent",
    "ExecutionHandle",
    "ExecutionResult",
    "ShellExecutionService",
    "ShellOutputEvent",
]
