"""Tests for the task_write tool and task store."""

from pathlib import Path

import pytest

from alfred.core.cancel import CancellationToken
from alfred.tools.base import ToolContext
from alfred.tools.builtin.task_write import (
    Task,
    TaskStatus,
    TaskStore,
    TaskWriteTool,
    format_task_list,
)
from alfred.tools.services import ServiceContainer


def item(content: str, status: str = "pending") -> dict[str, str]:
    return {"content": content, "active_form": f"{content}ing", "status": status}


@pytest.fixture
def services() -> ServiceContainer:
    return ServiceContainer()


@pytest.fixture
def tool(services: ServiceContainer) -> TaskWriteTool:
    return TaskWriteTool(services)


@pytest.fixture
def context(tmp_path: Path, services: ServiceContainer) -> ToolContext:
    return ToolContext(cwd=tmp_path, cancel_token=CancellationToken(), services=services)


class TestTaskWriteTool:
    """Tests for TaskWriteTool."""

    @pytest.mark.asyncio
    async def test_replaces_list(self, tool, context, services) -> None:
        await tool.run({"tasks": [item("Read"), item("Write")]}, context)
        result = await tool.run({"tasks": [item("Test", "in_progress")]}, context)

        store = services.get_task_store()
        assert [t.content for t in store.tasks] == ["Test"]
        assert store.active() == Task("Test", "Testing", TaskStatus.IN_PROGRESS)
        assert "1. [in_progress] Test" in result.llm_content

    @pytest.mark.asyncio
    async def test_empty_list_clears(self, tool, context, services) -> None:
        await tool.run({"tasks": [item("Read")]}, context)
        result = await tool.run({"tasks": []}, context)

        assert services.get_task_store().tasks == ()
        assert result.llm_content == "Successfully cleared the task list"

    @pytest.mark.asyncio
    async def test_display_has_stats(self, tool, context) -> None:
        result = await tool.run(
            {"tasks": [item("A", "completed"), item("B", "in_progress"), item("C")]},
            context,
        )

        assert result.return_display["stats"]["total"] == 3
        assert tool.summarize_result(result) == "1 pending, 1 active, 1 done"

    def test_one_in_progress_at_most(self, tool) -> None:
        error = tool.validate({"tasks": [item("A", "in_progress"), item("B", "in_progress")]})
        assert error == 'Only one task can be "in_progress" at a time'

    def test_blank_content_rejected(self, tool) -> None:
        assert tool.validate({"tasks": [item(" ")]}) is not None

    def test_unknown_status_rejected(self, tool) -> None:
        assert tool.validate({"tasks": [item("A", "blocked")]}) is not None

    def test_format_params_shows_active_task(self, tool) -> None:
        assert tool.format_params({"tasks": [item("A"), item("Build", "in_progress")]}) == "Building"
        assert tool.format_params({"tasks": []}) == "Clear tasks"


class TestFormatTaskList:
    """Tests for format_task_list."""

    def test_empty(self) -> None:
        assert format_task_list([]) == "No tasks"

    def test_indicators(self) -> None:
        tasks = [
            Task("A", "Aing", TaskStatus.COMPLETED),
            Task("B", "Bing", TaskStatus.IN_PROGRESS),
            Task("C", "Cing", TaskStatus.CANCELLED),
        ]
        assert format_task_list(tasks).splitlines() == [
            "Tasks (3 tasks)",
            " [x] A",
            " [~] B",
            " [-] C (cancelled)",
        ]

    def test_all_done(self) -> None:
        text = format_task_list([Task("A", "Aing", TaskStatus.COMPLETED)])
        assert text.endswith("All tasks completed!")

    def test_store_stats(self) -> None:
        store = TaskStore()
        store.replace([Task("A", "Aing", TaskStatus.PENDING)])
        assert store.stats() == {
            "total": 1,
            "pending": 1,
            "in_progress": 0,
            "completed": 0,
            "cancelled": 0,
        }
