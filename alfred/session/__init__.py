"""Conversation engine, chat session and session bootstrap.

Example:
    session = build_session(config, cwd=Path.cwd())
    chat = ChatSession(session.engine, on_event=render)
    await chat.send("what changed in this repo?")
"""

from alfred.session.bootstrap import Session, build_session, configure_logging
from alfred.session.chat import ChatSession, InputQueue, coalesce_messages
from alfred.session.engine import MAX_TURNS, ConversationEngine
from alfred.session.events import (
    Complete,
    Content,
    Error,
    StreamEvent,
    Thinking,
    ToolComplete,
    ToolExecuting,
)
from alfred.session.prompt import DEFAULT_SYSTEM_PROMPT, PromptBuilder

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "MAX_TURNS",
    "ChatSession",
    "Complete",
    "Content",
    "ConversationEngine",
    "Error",
    "InputQueue",
    "PromptBuilder",
    "Session",
    "StreamEvent",
    "Thinking",
    "ToolComplete",
    "ToolExecuting",
    "build_session",
    "coalesce_messages",
    "configure_logging",
]
