"""Anthropic Messages API provider.

- Endpoint: POST {base_url}/v1/messages
- Auth: x-api-key header + anthropic-version header
- Messages: content blocks; tool results travel in user messages
- Responses are requested non-streamed and parsed into a ModelResponse
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from alfred.core.errors import ProviderError
from alfred.core.types import (
    ContentBlock,
    Message,
    ModelResponse,
    Role,
    StopReason,
    ToolResultBlock,
    Usage,
    content_block_from_dict,
)
from alfred.provider.base import BaseProvider

if TYPE_CHECKING:
    from alfred.core.cancel import CancellationToken

logger = logging.getLogger(__name__)

# Anthropic API version header
ANTHROPIC_VERSION = "2023-06-01"

INTERRUPTED_TOOL_RESULT = "[Tool execution was interrupted]"


def _synthetic_result(tool_use_id: str) -> dict[str, Any]:
    return {
        "type": "tool_result",
        "tool_use_id": tool_use_id,
        "content": INTERRUPTED_TOOL_RESULT,
        "is_error": True,
    }


def convert_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert messages to the API form, pairing every tool_use with a result.

    A tool_use whose result never made it into history (the turn was
    cancelled, or a tool crashed the process) would make the API reject the
    whole request. Missing results are synthesized at the start of the user
    message that follows the assistant message, or in a new trailing user
    message.
    """
    converted = [message.to_dict() for message in messages]

    answered: set[str] = set()
    for message in messages:
        if message.role == Role.USER and not isinstance(message.content, str):
            answered.update(
                b.tool_use_id for b in message.content if isinstance(b, ToolResultBlock)
            )

    result: list[dict[str, Any]] = []
    pending: list[dict[str, Any]] = []
    for message, payload in zip(messages, converted, strict=True):
        if message.role == Role.USER and pending:
            content = payload["content"]
            if isinstance(content, str):
                content = [{"type": "text", "text": content}] if content else []
            payload = {"role": "user", "content": pending + content}
            pending = []
        elif message.role == Role.ASSISTANT and pending:
            result.append({"role": "user", "content": pending})
            pending = []

        result.append(payload)

        if message.role == Role.ASSISTANT:
            orphaned = [b.id for b in message.tool_uses if b.id not in answered]
            if orphaned:
                logger.warning(
                    "Synthesizing %d missing tool_result(s) for orphaned tool_use "
                    "blocks: %s",
                    len(orphaned),
                    orphaned,
                )
                pending = [_synthetic_result(tool_use_id) for tool_use_id in orphaned]

    if pending:
        result.append({"role": "user", "content": pending})
    return result


def parse_response(data: dict[str, Any]) -> ModelResponse:
    """Parse a Messages API response body.

    Unknown block types (thinking, server tool blocks) are skipped. An
    unrecognized stop_reason is treated as missing.

    Raises:
        ProviderError: If the response shape is invalid.
    """
    raw_blocks = data.get("content")
    if not isinstance(raw_blocks, list):
        raise ProviderError("Failed to parse Anthropic response: missing content array")

    blocks: list[ContentBlock] = []
    for raw in raw_blocks:
        if not isinstance(raw, dict):
            raise ProviderError("Failed to parse Anthropic response: invalid content block")
        try:
            blocks.append(content_block_from_dict(raw))
        except ValueError:
            logger.debug("Skipping unsupported content block type %r", raw.get("type"))

    stop_reason: StopReason | None = None
    raw_stop = data.get("stop_reason")
    if raw_stop is not None:
        try:
            stop_reason = StopReason(raw_stop)
        except ValueError:
            logger.warning("Unknown stop_reason from API: %r", raw_stop)

    raw_usage = data.get("usage") or {}
    usage = Usage(
        input_tokens=int(raw_usage.get("input_tokens", 0) or 0),
        output_tokens=int(raw_usage.get("output_tokens", 0) or 0),
    )
    return ModelResponse(content=tuple(blocks), stop_reason=stop_reason, usage=usage)


class AnthropicProvider(BaseProvider):
    """ModelClient for the Anthropic Messages API.

    Example:
        provider = AnthropicProvider(config.provider)
        response = await provider.create_message(
            history, system=prompt, tools=[s.to_dict() for s in schemas]
        )
    """

    def _build_endpoint(self) -> str:
        return f"{self._base_url}/v1/messages"

    def _build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_request_body(
        self,
        messages: Sequence[Message],
        system: str | None = None,
        tools: Sequence[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._config.max_tokens,
            "messages": convert_messages(messages),
        }
        if system:
            body["system"] = system
        if tools:
            body["tools"] = list(tools)
        return body

    async def create_message(
        self,
        messages: Sequence[Message],
        *,
        system: str | None = None,
        tools: Sequence[dict[str, Any]] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelResponse:
        body = self.build_request_body(messages, system, tools)
        data = await self._make_request(body, cancel_token)
        response = parse_response(data)
        logger.debug(
            "Model response: stop_reason=%s blocks=%d usage=%s/%s",
            response.stop_reason.value if response.stop_reason else None,
            len(response.content),
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        return response
