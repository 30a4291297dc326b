"""Tests for the read_file tool."""

from pathlib import Path

import pytest

from alfred.core.cancel import CancellationToken
from alfred.core.types import ToolErrorType
from alfred.tools.base import ToolContext
from alfred.tools.builtin.read_file import MAX_LINE_LENGTH, MAX_LINES, ReadFileTool
from alfred.tools.services import ServiceContainer


@pytest.fixture
def tool() -> ReadFileTool:
    return ReadFileTool()


@pytest.fixture
def context(tmp_path: Path) -> ToolContext:
    services = ServiceContainer()
    services.register("cwd", tmp_path)
    return ToolContext(cwd=tmp_path, cancel_token=CancellationToken(), services=services)


def write_lines(path: Path, count: int) -> None:
    path.write_text("".join(f"line {i}\n" for i in range(1, count + 1)), encoding="utf-8")


class TestReadFileTool:
    """Tests for ReadFileTool.run."""

    @pytest.mark.asyncio
    async def test_cat_n_format(self, tool, context, tmp_path: Path) -> None:
        """Lines are numbered from 1 in cat -n format."""
        write_lines(tmp_path / "a.txt", 2)

        result = await tool.run({"file_path": "a.txt"}, context)

        assert result.success
        assert result.llm_content == "     1\tline 1\n     2\tline 2"
        assert result.return_display == "Read 2 lines"

    @pytest.mark.asyncio
    async def test_offset_and_limit(self, tool, context, tmp_path: Path) -> None:
        """offset is the number of lines skipped."""
        write_lines(tmp_path / "a.txt", 10)

        result = await tool.run({"file_path": "a.txt", "offset": 2, "limit": 3}, context)

        lines = result.llm_content.splitlines()
        assert lines[0] == "[Truncated: showing lines 3-5 of 10. To read more, use offset=5, limit=5]"
        assert lines[1:] == ["     3\tline 3", "     4\tline 4", "     5\tline 5"]

    @pytest.mark.asyncio
    async def test_offset_to_end(self, tool, context, tmp_path: Path) -> None:
        write_lines(tmp_path / "a.txt", 4)

        result = await tool.run({"file_path": "a.txt", "offset": 2}, context)

        assert result.llm_content.splitlines()[0] == "[Showing lines 3-4 of 4]"

    @pytest.mark.asyncio
    async def test_long_files_paged(self, tool, context, tmp_path: Path) -> None:
        write_lines(tmp_path / "big.txt", MAX_LINES + 5)

        result = await tool.run({"file_path": "big.txt", "limit": MAX_LINES + 100}, context)

        assert result.return_display == f"Read {MAX_LINES} lines"
        assert f"offset={MAX_LINES}, limit=5" in result.llm_content.splitlines()[0]

    @pytest.mark.asyncio
    async def test_long_lines_truncated(self, tool, context, tmp_path: Path) -> None:
        (tmp_path / "wide.txt").write_text("x" * (MAX_LINE_LENGTH + 10), encoding="utf-8")

        result = await tool.run({"file_path": "wide.txt"}, context)

        assert result.llm_content.endswith("x... [line truncated]")

    @pytest.mark.asyncio
    async def test_empty_file(self, tool, context, tmp_path: Path) -> None:
        (tmp_path / "empty.txt").write_text("", encoding="utf-8")

        result = await tool.run({"file_path": "empty.txt"}, context)

        assert result.success
        assert result.llm_content == "File is empty: empty.txt"

    @pytest.mark.asyncio
    async def test_offset_beyond_end(self, tool, context, tmp_path: Path) -> None:
        write_lines(tmp_path / "a.txt", 3)

        result = await tool.run({"file_path": "a.txt", "offset": 10}, context)

        assert result.success
        assert "beyond the end" in result.llm_content

    @pytest.mark.asyncio
    async def test_missing_file(self, tool, context) -> None:
        result = await tool.run({"file_path": "nope.txt"}, context)

        assert result.error is not None
        assert result.error.type == ToolErrorType.FILE_NOT_FOUND
        assert result.llm_content == "Error: File does not exist: nope.txt"

    @pytest.mark.asyncio
    async def test_directory(self, tool, context, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()

        result = await tool.run({"file_path": "sub"}, context)

        assert result.error is not None
        assert "Cannot read directory" in result.error.message


class TestReadFileValidation:
    """Tests for input validation."""

    def test_blank_path(self, tool) -> None:
        assert tool.validate({"file_path": "  "}) == "file_path must not be empty"

    def test_negative_offset(self, tool) -> None:
        assert tool.validate({"file_path": "a", "offset": -1}) is not None

    def test_unknown_property(self, tool) -> None:
        assert tool.validate({"file_path": "a", "path": "b"}) is not None

    def test_format_params(self, tool) -> None:
        assert tool.format_params({"file_path": "a.py", "offset": 9, "limit": 5}) == (
            "a.py, from line 10, 5 lines"
        )
