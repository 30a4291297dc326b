"""Task list tool: the model's structured plan for the current session."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from alfred.core.types import ToolKind, ToolResult
from alfred.tools.base import BaseTool, ToolContext


class TaskStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STATUS_INDICATORS = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.IN_PROGRESS: "[~]",
    TaskStatus.COMPLETED: "[x]",
    TaskStatus.CANCELLED: "[-]",
}


@dataclass(frozen=True)
class Task:
    """One task item.

    Attributes:
        content: Imperative form ("Run tests").
        active_form: Present continuous form ("Running tests").
        status: Current status.
    """

    content: str
    active_form: str
    status: TaskStatus

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        return cls(
            content=data["content"],
            active_form=data["active_form"],
            status=TaskStatus(data["status"]),
        )

    def to_dict(self) -> dict[str, str]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class TaskStore:
    """Per-session task list. Each write replaces the whole list."""

    def __init__(self) -> None:
        self._tasks: tuple[Task, ...] = ()

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    def replace(self, tasks: list[Task]) -> None:
        self._tasks = tuple(tasks)

    def clear(self) -> None:
        self._tasks = ()

    def stats(self) -> dict[str, int]:
        return task_stats(self._tasks)

    def active(self) -> Task | None:
        return next((t for t in self._tasks if t.status == TaskStatus.IN_PROGRESS), None)


def task_stats(tasks: tuple[Task, ...] | list[Task]) -> dict[str, int]:
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status.value] += 1
    return {"total": len(tasks), **counts}


def format_task_list(tasks: tuple[Task, ...] | list[Task]) -> str:
    """Human-readable rendering with status indicators."""
    if not tasks:
        return "No tasks"
    plural = "s" if len(tasks) != 1 else ""
    lines = [f"Tasks ({len(tasks)} task{plural})"]
    for task in tasks:
        suffix = " (cancelled)" if task.status == TaskStatus.CANCELLED else ""
        lines.append(f" {STATUS_INDICATORS[task.status]} {task.content}{suffix}")
    if all(t.status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED) for t in tasks):
        lines.append("")
        lines.append("All tasks completed!")
    return "\n".join(lines)


class TaskWriteTool(BaseTool):
    """Replaces the session task list with the list the model sends."""

    @property
    def name(self) -> str:
        return "task_write"

    @property
    def display_name(self) -> str:
        return "Tasks"

    @property
    def description(self) -> str:
        return (
            "Create and manage a structured task list for the current session. Use it "
            "for multi-step work (3 or more steps) or when the user gives several "
            "tasks at once; skip it for single trivial requests.\n\n"
            "Statuses: pending, in_progress (only ONE at a time), completed, "
            "cancelled. Mark a task in_progress before starting it and completed "
            "immediately after finishing it. Only mark completed when the work is "
            "fully done. Each task needs content (imperative, e.g. \"Run tests\") "
            "and active_form (present continuous, e.g. \"Running tests\"). The list "
            "you send replaces the current list; send an empty list to clear it."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.THINK

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "tasks": {
                    "type": "array",
                    "description": "The complete task list; replaces the existing one",
                    "items": {
                        "type": "object",
                        "properties": {
                            "content": {
                                "type": "string",
                                "description": "What needs to be done (imperative)",
                            },
                            "active_form": {
                                "type": "string",
                                "description": "Present continuous form shown while active",
                            },
                            "status": {
                                "type": "string",
                                "enum": [s.value for s in TaskStatus],
                            },
                        },
                        "required": ["content", "active_form", "status"],
                    },
                },
            },
            "required": ["tasks"],
            "additionalProperties": False,
        }

    def validate_params(self, params: dict[str, Any]) -> str | None:
        tasks = params["tasks"]
        for item in tasks:
            if not item["content"].strip():
                return "Each task must have a non-empty content string"
            if not item["active_form"].strip():
                return "Each task must have a non-empty active_form string"
        in_progress = sum(1 for item in tasks if item["status"] == "in_progress")
        if in_progress > 1:
            return 'Only one task can be "in_progress" at a time'
        return None

    def format_params(self, params: dict[str, Any]) -> str:
        tasks = params.get("tasks") or []
        if not tasks:
            return "Clear tasks"
        for item in tasks:
            if item.get("status") == "in_progress":
                return item.get("active_form", "")
        return f"{len(tasks)} task{'s' if len(tasks) != 1 else ''}"

    def summarize_result(self, result: ToolResult) -> str:
        if result.error is not None:
            return f"Failed: {result.error.message}"
        display = result.return_display
        if isinstance(display, dict):
            stats = display["stats"]
            return (
                f"{stats['pending']} pending, {stats['in_progress']} active, "
                f"{stats['completed']} done"
            )
        return "Tasks updated"

    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        tasks = [Task.from_dict(item) for item in params["tasks"]]
        self._services.get_task_store().replace(tasks)

        if tasks:
            listing = "\n".join(
                f"{i}. [{task.status.value}] {task.content}"
                for i, task in enumerate(tasks, start=1)
            )
            llm_content = f"Successfully updated the task list. The current list is now:\n{listing}"
        else:
            llm_content = "Successfully cleared the task list"

        return ToolResult(
            llm_content=llm_content,
            return_display={
                "tasks": [task.to_dict() for task in tasks],
                "stats": task_stats(tasks),
                "text": format_task_list(tasks),
            },
        )
