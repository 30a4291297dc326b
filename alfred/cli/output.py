"""Rich-based rendering of stream events for the Alfred REPL."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape

from alfred.core.types import StopReason
from alfred.session.events import (
    Complete,
    Content,
    Error,
    StreamEvent,
    Thinking,
    ToolComplete,
    ToolExecuting,
)

if TYPE_CHECKING:
    from alfred.core.types import ToolCall
    from alfred.tools.registry import ToolRegistry


def print_error(console: Console, message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_info(console: Console, message: str) -> None:
    console.print(f"[dim]{escape(message)}[/dim]")


class EventRenderer:
    """Prints StreamEvents as they arrive.

    Assistant text is rendered as Markdown, tool calls as one status line
    each, and streamed shell output as dim raw text.
    """

    def __init__(self, console: Console, registry: ToolRegistry) -> None:
        self._console = console
        self._registry = registry
        self._output_open = False

    def tool_output(self, chunk: str) -> None:
        """Sink for streamed tool output (ToolContext.on_output)."""
        self._console.print(chunk, end="", style="dim", markup=False, highlight=False)
        self._output_open = not chunk.endswith("\n")

    def render(self, event: StreamEvent) -> None:
        self._close_output()
        console = self._console

        if isinstance(event, Content):
            console.print()
            console.print(Markdown(event.text))
        elif isinstance(event, ToolExecuting):
            console.print(f"[cyan]●[/] {self._describe(event.tool_call)}", highlight=False)
        elif isinstance(event, ToolComplete):
            self._render_result(event.tool_call)
        elif isinstance(event, Thinking):
            console.print("[dim]  thinking...[/]")
        elif isinstance(event, Complete):
            if event.stop_reason == StopReason.MAX_TOKENS:
                console.print("[yellow]Response truncated: output token limit reached[/]")
        elif isinstance(event, Error):
            print_error(console, event.error.message)

    def _describe(self, tool_call: ToolCall) -> str:
        tool = self._registry.get(tool_call.name)
        if tool is None:
            return f"[bold]{escape(tool_call.name)}[/]"
        params = escape(tool.format_params(tool_call.input))
        return f"[bold]{escape(tool.display_name)}[/]({params})"

    def _render_result(self, tool_call: ToolCall) -> None:
        result = tool_call.result
        if result is None:
            return
        tool = self._registry.get(tool_call.name)
        summary = tool.summarize_result(result) if tool is not None else result.llm_content
        style = "green" if result.success else "red"
        self._console.print(f"  [{style}]⎿[/] {escape(summary)}", highlight=False)

        display = result.return_display
        if isinstance(display, dict) and "text" in display:
            self._console.print(display["text"], markup=False, highlight=False)

    def _close_output(self) -> None:
        if self._output_open:
            self._console.print()
            self._output_open = False
