"""Chat session: input queueing and the visible transcript.

ChatSession sits between a front end and the ConversationEngine. It runs one
turn at a time; input that arrives while a turn is running waits in an
InputQueue and is sent as one coalesced message when the turn finishes.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING

from alfred.core.cancel import CancellationToken
from alfred.session.events import (
    Complete,
    Content,
    Error,
    StreamEvent,
    ToolComplete,
    ToolExecuting,
)

if TYPE_CHECKING:
    from alfred.core.types import ToolCall
    from alfred.session.engine import ConversationEngine

logger = logging.getLogger(__name__)

EventCallback = Callable[[StreamEvent], None]

# Continuation lines of a coalesced message line up under the "> " prompt
QUEUED_MESSAGE_SEPARATOR = "\n  "


def coalesce_messages(first: str, queued: Sequence[str] = ()) -> str:
    """Join a message with the ones queued behind it.

    Example:
        >>> coalesce_messages(" fix the test ", ["also lint", "then commit"])
        'fix the test\\n  also lint\\n  then commit'
    """
    combined = first.strip()
    if queued:
        combined += QUEUED_MESSAGE_SEPARATOR + QUEUED_MESSAGE_SEPARATOR.join(
            message.strip() for message in queued
        )
    return combined


class InputQueue:
    """FIFO of messages submitted while a turn is running."""

    def __init__(self) -> None:
        self._items: deque[str] = deque()

    def push(self, text: str) -> bool:
        """Queue text. Blank input is ignored (returns False)."""
        if not text.strip():
            return False
        self._items.append(text)
        return True

    def drain(self) -> list[str]:
        """Remove and return everything queued, oldest first."""
        items = list(self._items)
        self._items.clear()
        return items

    @property
    def pending(self) -> tuple[str, ...]:
        """Queued messages (trimmed) for display."""
        return tuple(item.strip() for item in self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


class EntryKind(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    ERROR = "error"


@dataclass(frozen=True)
class TranscriptEntry:
    """One visible line item of the conversation.

    Attributes:
        kind: What the entry shows.
        text: Message text, or the error message.
        tool_call: The tool call, for TOOL entries (updated as it settles).
        interrupted: The turn was aborted while this was the last entry.
    """

    kind: EntryKind
    text: str = ""
    tool_call: ToolCall | None = None
    interrupted: bool = False


class ChatSession:
    """Runs turns against a ConversationEngine, one at a time.

    Example:
        chat = ChatSession(engine, on_event=render)
        await chat.send("list the files here")
        # Elsewhere, on Ctrl-C:
        chat.cancel()
    """

    def __init__(
        self,
        engine: ConversationEngine,
        on_event: EventCallback | None = None,
    ) -> None:
        self.engine = engine
        self.on_event = on_event
        self.queue = InputQueue()
        self._transcript: list[TranscriptEntry] = []
        self._processing = False
        self._token: CancellationToken | None = None
        self._last_error: str | None = None

    @property
    def transcript(self) -> tuple[TranscriptEntry, ...]:
        return tuple(self._transcript)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def last_error(self) -> str | None:
        return self._last_error

    async def send(self, text: str) -> None:
        """Submit user input.

        Blank input is ignored. While a turn is running the input is queued;
        otherwise a turn starts now and, when it ends, everything queued in
        the meantime is sent as the next turn.
        """
        if not text.strip():
            return
        if self._processing:
            self.queue.push(text)
            logger.debug("Turn in progress; queued input (%d pending)", len(self.queue))
            return

        message: str | None = coalesce_messages(text, self.queue.drain())
        while message is not None:
            await self._run_turn(message)
            queued = self.queue.drain()
            message = coalesce_messages(queued[0], queued[1:]) if queued else None

    def cancel(self) -> bool:
        """Cancel the running turn. Returns False if nothing was running."""
        if self._token is None or not self._processing:
            return False
        self._token.cancel()
        return True

    def clear(self) -> None:
        """Forget the transcript, the queue and the engine history."""
        self._transcript.clear()
        self.queue.clear()
        self.engine.clear_history()

    async def _run_turn(self, message: str) -> None:
        token = CancellationToken()
        self._token = token
        self._processing = True
        self._last_error = None
        self._transcript.append(TranscriptEntry(EntryKind.USER, message))
        try:
            async for event in self.engine.send_message_stream(message, token):
                self._apply(event)
                if self.on_event is not None:
                    self.on_event(event)
        finally:
            self._processing = False
            self._token = None

        if token.is_cancelled:
            self._mark_interrupted()

    def _apply(self, event: StreamEvent) -> None:
        if isinstance(event, Content):
            self._transcript.append(TranscriptEntry(EntryKind.ASSISTANT, event.text))
        elif isinstance(event, ToolExecuting):
            self._transcript.append(
                TranscriptEntry(EntryKind.TOOL, event.tool_call.name, event.tool_call)
            )
        elif isinstance(event, ToolComplete):
            self._settle_tool_entry(event.tool_call)
        elif isinstance(event, Error):
            self._last_error = event.error.message
            self._transcript.append(TranscriptEntry(EntryKind.ERROR, event.error.message))
        elif isinstance(event, Complete):
            logger.debug("Turn complete (stop_reason=%s)", event.stop_reason)

    def _settle_tool_entry(self, tool_call: ToolCall) -> None:
        for index in range(len(self._transcript) - 1, -1, -1):
            entry = self._transcript[index]
            if entry.tool_call is not None and entry.tool_call.id == tool_call.id:
                self._transcript[index] = replace(entry, tool_call=tool_call)
                return
        self._transcript.append(TranscriptEntry(EntryKind.TOOL, tool_call.name, tool_call))

    def _mark_interrupted(self) -> None:
        if self._transcript:
            self._transcript[-1] = replace(self._transcript[-1], interrupted=True)
        logger.info("Turn interrupted by user")
