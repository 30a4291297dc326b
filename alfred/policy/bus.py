"""In-process publish/subscribe channel for permission traffic.

The UI never touches core state: it subscribes to confirmation requests and
answers by publishing a ToolConfirmationResponse carrying the same
correlation id.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from alfred.policy.types import (
    BusMessage,
    MessageBusTopic,
    ToolConfirmationRequest,
    ToolConfirmationResponse,
)

logger = logging.getLogger(__name__)

Listener = Callable[[BusMessage], Awaitable[None] | None]


class InvalidMessageError(ValueError):
    """Raised when a malformed message is published."""


class MessageBus:
    """Topic-keyed publish/subscribe.

    Listeners run synchronously in publish order. A listener may be a
    coroutine function; its coroutine is scheduled as a task on the running
    loop. Listener failures are logged and never reach the publisher.
    """

    def __init__(self) -> None:
        self._listeners: dict[MessageBusTopic, list[Listener]] = defaultdict(list)
        self._tasks: set[asyncio.Task[None]] = set()

    def subscribe(self, topic: MessageBusTopic, listener: Listener) -> None:
        self._listeners[topic].append(listener)

    def unsubscribe(self, topic: MessageBusTopic, listener: Listener) -> None:
        try:
            self._listeners[topic].remove(listener)
        except ValueError:
            pass

    def listener_count(self, topic: MessageBusTopic) -> int:
        return len(self._listeners[topic])

    def publish(self, message: BusMessage) -> None:
        """Deliver message to every listener of its topic.

        Raises:
            InvalidMessageError: If a confirmation request or response has no
                correlation id.
        """
        if (
            isinstance(message, (ToolConfirmationRequest, ToolConfirmationResponse))
            and not message.correlation_id
        ):
            raise InvalidMessageError(
                f"{type(message).__name__} requires a correlation id"
            )

        for listener in list(self._listeners[message.topic]):
            try:
                outcome = listener(message)
            except Exception:
                logger.exception("Listener failed for %s", message.topic.value)
                continue
            if inspect.isawaitable(outcome):
                self._schedule(outcome, message.topic)

    def _schedule(self, awaitable: Awaitable[None], topic: MessageBusTopic) -> None:
        async def _run() -> None:
            try:
                await awaitable
            except Exception:
                logger.exception("Async listener failed for %s", topic.value)

        task = asyncio.get_running_loop().create_task(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
