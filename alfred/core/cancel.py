"""Cancellation support for async operations.

One token is shared by every suspension point of a conversation turn: the
model call, each tool run, a pending permission prompt and any running shell
process. Cancelling it stops the turn at the next check.
"""

import asyncio
import logging
from asyncio import CancelledError
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Token for cooperative cancellation of async operations.

    When the user interrupts a turn, the token is cancelled. Async operations
    should check is_cancelled, call raise_if_cancelled(), or await wait()
    alongside their own work.

    Example:
        token = CancellationToken()

        async def long_operation():
            for chunk in stream:
                token.raise_if_cancelled()
                yield chunk

        # On Ctrl-C:
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation and notify callbacks."""
        if self._cancelled:
            return
        self._cancelled = True
        self._event.set()
        for callback in list(self._callbacks):
            self._invoke(callback)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when cancelled.

        If already cancelled, callback is invoked immediately.
        """
        self._callbacks.append(callback)
        if self._cancelled:
            self._invoke(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback added with on_cancel (no-op if absent)."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation was requested.

        Raises:
            asyncio.CancelledError: If cancel() was called.
        """
        if self._cancelled:
            raise CancelledError("Operation cancelled by user")

    def reset(self) -> None:
        """Reset the token for reuse.

        Clears cancelled state but keeps callbacks.
        """
        self._cancelled = False
        self._event.clear()

    @staticmethod
    def _invoke(callback: Callable[[], None]) -> None:
        # A failing callback must not prevent the others from running
        try:
            callback()
        except Exception:
            logger.exception("Cancellation callback %r failed", callback)
