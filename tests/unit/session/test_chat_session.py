"""Tests for ChatSession input queueing and transcript tracking."""

import asyncio

import pytest

from alfred.core.cancel import CancellationToken
from alfred.core.errors import StructuredError
from alfred.core.types import StopReason, ToolCall, ToolCallStatus, ToolResult
from alfred.session.chat import ChatSession, EntryKind, InputQueue, coalesce_messages
from alfred.session.events import Complete, Content, Error, ToolComplete, ToolExecuting


class FakeEngine:
    """Stands in for ConversationEngine; echoes input, optionally blocking."""

    def __init__(self) -> None:
        self.messages: list[str] = []
        self.release = asyncio.Event()
        self.release.set()
        self.started = asyncio.Event()
        self.cleared = False
        self.events_for: dict[str, list] = {}

    async def send_message_stream(self, message: str, cancel_token: CancellationToken):
        self.messages.append(message)
        self.started.set()
        await self.release.wait()
        if cancel_token.is_cancelled:
            return
        for event in self.events_for.get(message, [Content(f"echo: {message}")]):
            yield event
        yield Complete(StopReason.END_TURN)

    def clear_history(self) -> None:
        self.cleared = True


class TestCoalesceMessages:
    """Tests for coalesce_messages."""

    def test_single(self) -> None:
        assert coalesce_messages("  hi  ") == "hi"

    def test_queued_lines_indented(self) -> None:
        assert coalesce_messages("first", [" second ", "third"]) == "first\n  second\n  third"


class TestInputQueue:
    """Tests for InputQueue."""

    def test_fifo_drain(self) -> None:
        queue = InputQueue()
        queue.push("a")
        queue.push(" b ")

        assert len(queue) == 2
        assert queue.pending == ("a", "b")
        assert queue.drain() == ["a", " b "]
        assert not queue

    def test_blank_ignored(self) -> None:
        queue = InputQueue()
        assert not queue.push("   ")
        assert len(queue) == 0


class TestChatSession:
    """Tests for ChatSession."""

    @pytest.mark.asyncio
    async def test_send_records_transcript(self) -> None:
        engine = FakeEngine()
        seen = []
        chat = ChatSession(engine, on_event=seen.append)

        await chat.send("hello")

        assert [(e.kind, e.text) for e in chat.transcript] == [
            (EntryKind.USER, "hello"),
            (EntryKind.ASSISTANT, "echo: hello"),
        ]
        assert seen == [Content("echo: hello"), Complete(StopReason.END_TURN)]
        assert not chat.is_processing

    @pytest.mark.asyncio
    async def test_blank_input_ignored(self) -> None:
        engine = FakeEngine()
        chat = ChatSession(engine)
        await chat.send("  \n")
        assert engine.messages == []

    @pytest.mark.asyncio
    async def test_input_queued_while_processing(self) -> None:
        """Messages sent during a turn become one coalesced follow-up turn."""
        engine = FakeEngine()
        engine.release.clear()
        chat = ChatSession(engine)

        first = asyncio.create_task(chat.send("first"))
        await engine.started.wait()
        assert chat.is_processing

        await chat.send("second")
        await chat.send("third")
        assert chat.queue.pending == ("second", "third")

        engine.release.set()
        await first

        assert engine.messages == ["first", "second\n  third"]
        assert len(chat.queue) == 0

    @pytest.mark.asyncio
    async def test_cancel_marks_interrupted(self) -> None:
        engine = FakeEngine()
        engine.release.clear()
        chat = ChatSession(engine)

        task = asyncio.create_task(chat.send("long job"))
        await engine.started.wait()
        assert chat.cancel()
        engine.release.set()
        await task

        assert chat.transcript[-1].interrupted
        assert chat.transcript[-1].text == "long job"

    @pytest.mark.asyncio
    async def test_cancel_when_idle(self) -> None:
        assert not ChatSession(FakeEngine()).cancel()

    @pytest.mark.asyncio
    async def test_tool_entries_settle_in_place(self) -> None:
        engine = FakeEngine()
        running = ToolCall(id="t1", name="bash").start()
        done = running.settle(ToolResult(llm_content="ok"))
        engine.events_for["run it"] = [ToolExecuting(running), ToolComplete(done), Content("done")]
        chat = ChatSession(engine)

        await chat.send("run it")

        kinds = [e.kind for e in chat.transcript]
        assert kinds == [EntryKind.USER, EntryKind.TOOL, EntryKind.ASSISTANT]
        assert chat.transcript[1].tool_call.status == ToolCallStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_error_event_recorded(self) -> None:
        engine = FakeEngine()
        engine.events_for["hi"] = [Error(StructuredError(message="API down", status=503))]
        chat = ChatSession(engine)

        await chat.send("hi")

        assert chat.last_error == "API down"
        assert chat.transcript[-1].kind == EntryKind.ERROR

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        engine = FakeEngine()
        chat = ChatSession(engine)
        await chat.send("hello")

        chat.clear()

        assert chat.transcript == ()
        assert engine.cleared
