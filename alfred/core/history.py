"""Conversation history validation.

Pure functions over message lists that keep the payload sent to the model API
well-formed. extract_valid_history() runs immediately before every model call
and is the last guard against sending a history the API would reject (for
example an assistant turn whose only text was elided, leaving no blocks).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from alfred.core.types import (
    ContentBlock,
    Message,
    ModelResponse,
    Role,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)


def is_valid_content_block(block: object) -> bool:
    """Check that a single content block is well-formed.

    Text blocks must be non-empty, tool-use blocks need an id and a name,
    tool-result blocks need the id of the call they answer (content may be
    empty).
    """
    if isinstance(block, TextBlock):
        return block.text != ""
    if isinstance(block, ToolUseBlock):
        return bool(block.id) and bool(block.name)
    if isinstance(block, ToolResultBlock):
        return bool(block.tool_use_id)
    return False


def is_valid_message(message: object) -> bool:
    """Check that a message is well-formed.

    String content is always accepted (user messages may be empty). Block
    content must be non-empty for assistant messages and every block valid.
    """
    if not isinstance(message, Message):
        return False
    if message.role not in (Role.USER, Role.ASSISTANT):
        return False
    if isinstance(message.content, str):
        return True
    if message.role == Role.ASSISTANT and not message.content:
        return False
    return all(is_valid_content_block(block) for block in message.content)


def _has_visible_content(message: Message) -> bool:
    """True if an assistant message carries non-blank text or a tool call."""
    if isinstance(message.content, str):
        return bool(message.content.strip())
    for block in message.content:
        if isinstance(block, TextBlock) and block.text.strip():
            return True
        if isinstance(block, ToolUseBlock):
            return True
    return False


def _warn_consecutive_roles(messages: Sequence[Message]) -> list[str]:
    warnings: list[str] = []
    last_role: Role | None = None
    for index, message in enumerate(messages):
        if message.role == last_role:
            warning = f"Consecutive {message.role.value} messages at index {index}"
            logger.warning(warning)
            warnings.append(warning)
        last_role = message.role
    return warnings


def validate_history(history: Sequence[Message]) -> list[str]:
    """Check a history for structural problems.

    Consecutive same-role messages are allowed but logged as warnings.

    Returns:
        The list of warnings found (empty if none).

    Raises:
        ValueError: If an entry is not a Message with a user/assistant role.
    """
    for index, message in enumerate(history):
        if not isinstance(message, Message):
            raise ValueError(f"History contains a non-message at index {index}")
        if message.role not in (Role.USER, Role.ASSISTANT):
            raise ValueError(f"Invalid role {message.role!r} at index {index}")
    return _warn_consecutive_roles(history)


def extract_valid_history(messages: Sequence[Message]) -> list[Message]:
    """Return the subsequence of messages that is safe to send to the model.

    User messages are always kept, including ones with empty string content.
    Assistant messages are kept if they contain a non-blank text block or a
    tool-use block, even when other blocks are empty. Dropping a tool-use turn
    would orphan the tool results that follow it.
    """
    valid: list[Message] = []
    for message in messages:
        if message.role == Role.USER:
            valid.append(message)
        elif message.role == Role.ASSISTANT:
            if _has_visible_content(message):
                valid.append(message)
            else:
                logger.debug("Dropping empty assistant message from history")
    _warn_consecutive_roles(valid)
    return valid


def consolidate_text_blocks(blocks: Iterable[ContentBlock]) -> list[ContentBlock]:
    """Merge adjacent text blocks, preserving order.

    Non-text blocks act as merge barriers and pass through unchanged.
    """
    consolidated: list[ContentBlock] = []
    for block in blocks:
        if (
            consolidated
            and isinstance(block, TextBlock)
            and isinstance(consolidated[-1], TextBlock)
        ):
            consolidated[-1] = TextBlock(consolidated[-1].text + block.text)
        else:
            consolidated.append(block)
    return consolidated


def string_to_content_blocks(text: str) -> list[ContentBlock]:
    """Wrap text in a single text block; blank text yields no blocks."""
    if not text or not text.strip():
        return []
    return [TextBlock(text)]


@dataclass(frozen=True)
class HistoryCheck:
    """Result of can_add_to_history."""

    valid: bool
    reason: str = ""


def can_add_to_history(history: Sequence[Message], new_message: Message) -> HistoryCheck:
    """Check that new_message may follow the current history.

    A tool call must be answered by a user message, and tool results must be
    followed by an assistant message.
    """
    if not is_valid_message(new_message):
        return HistoryCheck(False, "Invalid message format")

    if not history:
        return HistoryCheck(True)

    last = history[-1]
    if last.role == Role.ASSISTANT and last.tool_uses and new_message.role == Role.ASSISTANT:
        return HistoryCheck(
            False, "Tool call must be followed by user message with tool results"
        )

    if (
        last.role == Role.USER
        and not isinstance(last.content, str)
        and any(isinstance(b, ToolResultBlock) for b in last.content)
        and new_message.role == Role.USER
    ):
        return HistoryCheck(False, "Tool results must be followed by assistant message")

    return HistoryCheck(True)


def is_valid_response(response: ModelResponse) -> bool:
    """A response is valid if it has at least one block and every block is valid."""
    if not response.content:
        return False
    return all(is_valid_content_block(block) for block in response.content)


def is_complete_response(response: ModelResponse, has_tool_calls: bool = False) -> bool:
    """Check whether a response ended properly.

    Tool-calling responses count as complete. Otherwise a stop reason and some
    non-blank text or a tool-use block are required.
    """
    if has_tool_calls:
        return True
    if response.stop_reason is None:
        return False
    has_text = any(
        isinstance(b, TextBlock) and b.text.strip() for b in response.content
    )
    return has_text or bool(response.tool_uses)
