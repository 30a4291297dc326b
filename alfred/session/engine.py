"""Conversation engine: the multi-turn tool-calling loop.

One call to send_message_stream handles one human message. Internally the
engine may call the model several times: whenever a response stops with
``tool_use``, the requested tools run (sequentially, in model order) through
the ToolExecutor, their results go back as one user message, and the model is
called again. The loop ends when the model stops asking for tools, when the
turn budget runs out, on a model-call error, or on cancellation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from alfred.core.cancel import CancellationToken
from alfred.core.errors import to_structured_error
from alfred.core.history import consolidate_text_blocks, extract_valid_history
from alfred.core.types import (
    ContentBlock,
    Message,
    ModelResponse,
    Role,
    StopReason,
    TextBlock,
    ToolCall,
    ToolResult,
    ToolResultBlock,
    ToolUseBlock,
)
from alfred.session.events import (
    Complete,
    Content,
    Error,
    StreamEvent,
    Thinking,
    ToolComplete,
    ToolExecuting,
)
from alfred.tools.base import OutputCallback, ToolContext

if TYPE_CHECKING:
    from alfred.core.interfaces import ModelClient
    from alfred.tools.executor import ToolExecutor

logger = logging.getLogger(__name__)

# Model round-trips allowed per human message
MAX_TURNS = 100


class ConversationEngine:
    """Drives one conversation with the model.

    The engine owns the message history. Nothing else appends to it; the
    UI only reads it and consumes the StreamEvents.

    Attributes:
        max_turns: Default turn budget for send_message_stream.
        system_prompt: System prompt sent with every model call.
        on_tool_output: Receives streamed tool output (shell commands).
    """

    def __init__(
        self,
        client: ModelClient,
        executor: ToolExecutor,
        *,
        system_prompt: str | None = None,
        max_turns: int = MAX_TURNS,
        on_tool_output: OutputCallback | None = None,
    ) -> None:
        self._client = client
        self._executor = executor
        self.system_prompt = system_prompt
        self.max_turns = max_turns
        self.on_tool_output = on_tool_output

        self._history: list[Message] = []
        self._tool_results: dict[str, ToolResult] = {}
        self._last_run_exhausted = False

    @property
    def history(self) -> tuple[Message, ...]:
        return tuple(self._history)

    @property
    def tool_results(self) -> dict[str, ToolResult]:
        """Results of the last run, keyed by tool_use id."""
        return dict(self._tool_results)

    @property
    def last_run_exhausted(self) -> bool:
        """True if the last run stopped because the turn budget ran out."""
        return self._last_run_exhausted

    def clear_history(self) -> None:
        self._history.clear()
        self._tool_results.clear()
        self._last_run_exhausted = False

    def add_user_message(self, text: str) -> Message:
        message = Message(role=Role.USER, content=text)
        self._history.append(message)
        return message

    async def send_message_stream(
        self,
        message: str,
        cancel_token: CancellationToken | None = None,
        max_turns: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Send a human message and yield events until the run ends.

        Args:
            message: The user's message text.
            cancel_token: Shared token; once cancelled no further events are
                yielded and history is left as it is.
            max_turns: Turn budget for this call (defaults to self.max_turns).

        Yields:
            Content, ToolExecuting, ToolComplete and Thinking events, ending
            with Complete or Error (or nothing, on cancellation or when the
            turn budget runs out).
        """
        token = cancel_token or CancellationToken()
        turns_left = self.max_turns if max_turns is None else max_turns
        self._tool_results = {}
        self._last_run_exhausted = False

        if token.is_cancelled:
            return

        self.add_user_message(message)
        done = False

        while not done:
            if token.is_cancelled:
                return

            try:
                response = await self._call_model(token)
            except asyncio.CancelledError:
                if token.is_cancelled:
                    logger.debug("Model call cancelled")
                    return
                raise
            except Exception as e:
                logger.error("Model call failed: %s", e)
                yield Error(to_structured_error(e))
                return

            if token.is_cancelled:
                return

            blocks = consolidate_text_blocks(response.content)
            stored = _drop_blank_text(blocks)
            if stored:
                self._history.append(Message(role=Role.ASSISTANT, content=stored))
            else:
                logger.debug("Empty model response not stored")

            text = "".join(b.text for b in blocks if isinstance(b, TextBlock))
            if text:
                yield Content(text)

            tool_uses = [b for b in blocks if isinstance(b, ToolUseBlock)]
            if not tool_uses or response.stop_reason != StopReason.TOOL_USE:
                if tool_uses:
                    logger.warning(
                        "Ignoring %d tool call(s) in response with stop_reason=%s",
                        len(tool_uses),
                        response.stop_reason,
                    )
                yield Complete(response.stop_reason)
                done = True
                continue

            result_blocks: list[ToolResultBlock] = []
            for block in tool_uses:
                if token.is_cancelled:
                    return

                tool_call = ToolCall.from_block(block).start()
                yield ToolExecuting(tool_call)

                try:
                    result = await self._execute_tool(tool_call, token)
                except asyncio.CancelledError:
                    if token.is_cancelled:
                        logger.debug("Tool %s cancelled", tool_call.name)
                        return
                    raise

                if token.is_cancelled:
                    return

                self._tool_results[tool_call.id] = result
                yield ToolComplete(tool_call.settle(result))
                result_blocks.append(
                    ToolResultBlock(
                        tool_use_id=tool_call.id,
                        content=result.llm_content,
                        is_error=not result.success,
                    )
                )

            self._history.append(Message(role=Role.USER, content=tuple(result_blocks)))

            turns_left -= 1
            if turns_left <= 0:
                logger.warning("Turn budget exhausted; stopping without a final response")
                self._last_run_exhausted = True
                done = True
            else:
                yield Thinking()

    async def _call_model(self, token: CancellationToken) -> ModelResponse:
        history = extract_valid_history(self._history)
        schemas = [schema.to_dict() for schema in self._executor.registry.get_schemas()]
        logger.debug("Calling model with %d messages, %d tools", len(history), len(schemas))
        return await self._client.create_message(
            history,
            system=self.system_prompt,
            tools=schemas,
            cancel_token=token,
        )

    async def _execute_tool(self, tool_call: ToolCall, token: CancellationToken) -> ToolResult:
        services = self._executor.registry.services
        context = ToolContext(
            cwd=services.get_cwd(),
            cancel_token=token,
            on_output=self.on_tool_output,
            services=services,
        )
        return await self._executor.execute(tool_call, context)


def _drop_blank_text(blocks: list[ContentBlock]) -> tuple[ContentBlock, ...]:
    """Remove text blocks the API would reject as empty."""
    return tuple(b for b in blocks if not (isinstance(b, TextBlock) and not b.text.strip()))
