"""Core interfaces (protocols) for Alfred.

Protocols give structural subtyping: the conversation engine depends on the
shape of a model client, not on a concrete provider class, so tests can pass
a scripted fake.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from alfred.core.cancel import CancellationToken
from alfred.core.types import Message, ModelResponse


class ModelClient(Protocol):
    """Protocol for async model API clients.

    Example:
        class ScriptedClient:
            async def create_message(
                self,
                messages: Sequence[Message],
                *,
                system: str | None = None,
                tools: Sequence[dict[str, Any]] | None = None,
                cancel_token: CancellationToken | None = None,
            ) -> ModelResponse:
                return ModelResponse(content=(TextBlock("hi"),))
    """

    async def create_message(
        self,
        messages: Sequence[Message],
        *,
        system: str | None = None,
        tools: Sequence[dict[str, Any]] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelResponse:
        """Send one request to the model and return its complete response.

        Args:
            messages: Sanitized conversation history.
            system: System prompt.
            tools: Tool schemas advertised to the model.
            cancel_token: Token observed while the request is in flight.

        Returns:
            The model's response.

        Raises:
            ProviderError: On transport or API failure after retries.
        """
        ...
