"""Read file tool: numbered file contents with pagination."""

import asyncio
from pathlib import Path
from typing import Any

from alfred.core.types import ToolErrorType, ToolKind, ToolResult
from alfred.tools.base import BaseTool, ToolContext

MAX_LINES = 2000
MAX_LINE_LENGTH = 2000


def _read_lines(path: Path, offset: int, limit: int) -> tuple[list[str], int]:
    """Read lines [offset, offset + limit) and count the total.

    Streams the file so only the selected window is kept in memory.

    Returns:
        Tuple of (formatted lines, total line count).
    """
    selected: list[str] = []
    total = 0
    with open(path, encoding="utf-8", errors="replace") as f:
        for index, line in enumerate(f):
            total = index + 1
            if offset <= index < offset + limit:
                text = line.rstrip("\r\n")
                if len(text) > MAX_LINE_LENGTH:
                    text = text[:MAX_LINE_LENGTH] + "... [line truncated]"
                selected.append(f"{index + 1:6}\t{text}")
    return selected, total


class ReadFileTool(BaseTool):
    """Reads a text file and returns it in ``cat -n`` format.

    At most MAX_LINES lines are returned per call; longer files are paged
    with offset (lines to skip) and limit.
    """

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def display_name(self) -> str:
        return "Read"

    @property
    def description(self) -> str:
        return (
            "Reads a file from the local filesystem. Returns up to 2000 lines "
            "in cat -n format (line numbers start at 1). Lines longer than 2000 "
            "characters are truncated. Use offset and limit to page through long "
            "files. Relative paths resolve against the working directory."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.READ

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path to the file to read",
                },
                "offset": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Number of lines to skip before reading",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum number of lines to read",
                },
            },
            "required": ["file_path"],
            "additionalProperties": False,
        }

    def validate_params(self, params: dict[str, Any]) -> str | None:
        if not params["file_path"].strip():
            return "file_path must not be empty"
        return None

    def format_params(self, params: dict[str, Any]) -> str:
        parts = [params.get("file_path", "")]
        if "offset" in params:
            parts.append(f"from line {params['offset'] + 1}")
        if "limit" in params:
            parts.append(f"{params['limit']} lines")
        return ", ".join(parts)

    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        file_path = params["file_path"]
        offset = params.get("offset", 0)
        limit = min(params.get("limit", MAX_LINES), MAX_LINES)
        path = context.resolve_path(file_path)

        try:
            lines, total = await asyncio.to_thread(_read_lines, path, offset, limit)
        except FileNotFoundError:
            return ToolResult.failure(
                f"File does not exist: {file_path}", ToolErrorType.FILE_NOT_FOUND
            )
        except IsADirectoryError:
            return ToolResult.failure(
                f"Cannot read directory. Use the bash tool with 'ls' to list it: {file_path}",
                ToolErrorType.INVALID_PARAMS,
            )
        except PermissionError:
            return ToolResult.failure(
                f"Permission denied: {file_path}", ToolErrorType.PERMISSION_DENIED
            )
        except OSError as e:
            return ToolResult.failure(
                f"Failed to read file: {e}", ToolErrorType.EXECUTION_FAILED
            )

        if total == 0:
            return ToolResult(
                llm_content=f"File is empty: {file_path}",
                return_display="Read 0 lines",
            )

        if not lines:
            return ToolResult(
                llm_content=(
                    f"Offset {offset} is beyond the end of {file_path} "
                    f"({total} lines)."
                ),
                return_display=f"Offset beyond end ({total} lines)",
            )

        end = offset + len(lines)
        body = "\n".join(lines)
        if end < total:
            header = (
                f"[Truncated: showing lines {offset + 1}-{end} of {total}. "
                f"To read more, use offset={end}, limit={min(total - end, MAX_LINES)}]"
            )
            llm_content = f"{header}\n{body}"
        elif offset > 0:
            llm_content = f"[Showing lines {offset + 1}-{end} of {total}]\n{body}"
        else:
            llm_content = body

        shown = len(lines)
        return ToolResult(
            llm_content=llm_content,
            return_display=f"Read {shown} line{'s' if shown != 1 else ''}",
        )
