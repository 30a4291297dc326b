"""Confirmation broker: turns ASK_USER decisions into awaited human answers.

Each ask-user decision gets a correlation id. The broker publishes a
ToolConfirmationRequest with that id and parks a future under it; the first
ToolConfirmationResponse carrying the same id resolves the future and removes
it from the pending set. Later responses for the same id find nothing and are
ignored, so each request resolves exactly once regardless of caller
discipline. Several requests may be pending at once and resolve in any order.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from alfred.policy.constants import extract_command_prefix
from alfred.policy.engine import get_permission_key, get_permission_key_with_prefix
from alfred.policy.types import (
    BusMessage,
    ConfirmationDetails,
    ExecConfirmationDetails,
    MessageBusTopic,
    PolicyDecision,
    ToolConfirmationOutcome,
    ToolConfirmationRequest,
    ToolConfirmationResponse,
    ToolPolicyRejection,
)

if TYPE_CHECKING:
    from alfred.core.cancel import CancellationToken
    from alfred.core.types import ToolCall
    from alfred.policy.bus import MessageBus
    from alfred.policy.engine import PolicyEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionVerdict:
    """Final answer for one gated tool call.

    Attributes:
        approved: True if the tool may run.
        decision: What the policy engine decided before any prompt.
        outcome: The human's answer (None when no prompt was shown).
        permission_key: Key the decision was made for.
        cancelled: True if the wait was cut short by cancellation.
    """

    approved: bool
    decision: PolicyDecision
    permission_key: str
    outcome: ToolConfirmationOutcome | None = None
    cancelled: bool = False

    @property
    def auto_denied(self) -> bool:
        """True if stored policy blocked the call without asking."""
        return self.decision == PolicyDecision.DENY


class ConfirmationBroker:
    """Routes gated tool calls through the policy engine and the message bus."""

    def __init__(self, policy: PolicyEngine, bus: MessageBus) -> None:
        self._policy = policy
        self._bus = bus
        self._pending: dict[str, asyncio.Future[ToolConfirmationOutcome]] = {}
        bus.subscribe(MessageBusTopic.TOOL_CONFIRMATION_RESPONSE, self._on_response)

    @property
    def policy(self) -> PolicyEngine:
        return self._policy

    @property
    def pending_ids(self) -> tuple[str, ...]:
        return tuple(self._pending)

    def close(self) -> None:
        """Detach from the bus and cancel anything still pending."""
        self._bus.unsubscribe(MessageBusTopic.TOOL_CONFIRMATION_RESPONSE, self._on_response)
        for future in self._pending.values():
            future.cancel()
        self._pending.clear()

    async def request(
        self,
        tool_call: ToolCall,
        details: ConfirmationDetails,
        cancel_token: CancellationToken | None = None,
    ) -> PermissionVerdict:
        """Decide whether tool_call may run, asking the user if policy says so.

        Args:
            tool_call: The call being gated.
            details: What a confirmation prompt should show.
            cancel_token: Observed while waiting for the user.

        Returns:
            The verdict. Cancellation while waiting yields an unapproved
            verdict with cancelled=True.
        """
        key = get_permission_key(tool_call)
        decision = self._policy.check(tool_call)

        if decision == PolicyDecision.ALLOW:
            return PermissionVerdict(True, decision, key)

        if decision == PolicyDecision.DENY:
            logger.info("Tool call blocked by policy: %s", key)
            self._bus.publish(ToolPolicyRejection(tool_call=tool_call, permission_key=key))
            return PermissionVerdict(False, decision, key)

        if self._bus.listener_count(MessageBusTopic.TOOL_CONFIRMATION_REQUEST) == 0:
            logger.warning("No confirmation handler subscribed; rejecting %s", key)
            return PermissionVerdict(False, decision, key, ToolConfirmationOutcome.CANCEL)

        correlation_id = uuid.uuid4().hex
        future = self._register(correlation_id)
        on_confirm = self._continuation(tool_call, details)
        bound = replace(details, on_confirm=on_confirm)

        self._bus.publish(
            ToolConfirmationRequest(
                correlation_id=correlation_id,
                tool_call=tool_call,
                details=bound,
            )
        )

        outcome = await self._wait(correlation_id, future, cancel_token)
        if outcome is None:
            return PermissionVerdict(
                False, decision, key, ToolConfirmationOutcome.CANCEL, cancelled=True
            )

        await on_confirm(outcome)
        return PermissionVerdict(outcome.approved, decision, key, outcome)

    def respond(self, correlation_id: str, outcome: ToolConfirmationOutcome) -> None:
        """Publish a response on the bus (convenience for UIs and tests)."""
        self._bus.publish(
            ToolConfirmationResponse(correlation_id=correlation_id, outcome=outcome)
        )

    def _register(self, correlation_id: str) -> asyncio.Future[ToolConfirmationOutcome]:
        if correlation_id in self._pending:
            raise ValueError(f"Confirmation {correlation_id} is already pending")
        future: asyncio.Future[ToolConfirmationOutcome] = (
            asyncio.get_running_loop().create_future()
        )
        self._pending[correlation_id] = future
        return future

    def _on_response(self, message: BusMessage) -> None:
        if not isinstance(message, ToolConfirmationResponse):
            logger.warning(
                "Ignoring unexpected %s on the response topic", type(message).__name__
            )
            return
        future = self._pending.pop(message.correlation_id, None)
        if future is None:
            logger.warning(
                "Ignoring response for unknown or settled confirmation %s",
                message.correlation_id,
            )
            return
        if not future.done():
            future.set_result(message.outcome)

    async def _wait(
        self,
        correlation_id: str,
        future: asyncio.Future[ToolConfirmationOutcome],
        cancel_token: CancellationToken | None,
    ) -> ToolConfirmationOutcome | None:
        """Wait for the response; None if cancelled first."""
        if cancel_token is None:
            try:
                return await future
            except asyncio.CancelledError:
                self._discard(correlation_id, future)
                raise

        if cancel_token.is_cancelled:
            self._discard(correlation_id, future)
            return None

        cancel_wait = asyncio.ensure_future(cancel_token.wait())
        try:
            await asyncio.wait({future, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            self._discard(correlation_id, future)
            raise
        finally:
            cancel_wait.cancel()

        if future.done() and not future.cancelled():
            return future.result()

        self._discard(correlation_id, future)
        return None

    def _discard(
        self,
        correlation_id: str,
        future: asyncio.Future[ToolConfirmationOutcome],
    ) -> None:
        self._pending.pop(correlation_id, None)
        future.cancel()
        logger.debug("Confirmation %s abandoned by cancellation", correlation_id)

    def _continuation(self, tool_call: ToolCall, details: ConfirmationDetails):
        """Build the on_confirm continuation that applies an outcome.

        PROCEED_ALWAYS_SESSION caches the key in memory, PROCEED_ALWAYS and
        PROCEED_ALWAYS_PREFIX persist it, PROCEED_ONCE and CANCEL write nothing.
        A tool-supplied on_confirm runs afterwards.
        """
        key = get_permission_key(tool_call)
        tool_callback = details.on_confirm

        async def on_confirm(outcome: ToolConfirmationOutcome) -> None:
            if outcome == ToolConfirmationOutcome.PROCEED_ALWAYS_SESSION:
                self._policy.allow_for_session(key)
            elif outcome == ToolConfirmationOutcome.PROCEED_ALWAYS:
                self._persist(key)
            elif outcome == ToolConfirmationOutcome.PROCEED_ALWAYS_PREFIX:
                prefix = ""
                if isinstance(details, ExecConfirmationDetails):
                    prefix = details.root_command or extract_command_prefix(details.command)
                self._persist(get_permission_key_with_prefix(tool_call, prefix))
            if tool_callback is not None:
                await tool_callback(outcome)

        return on_confirm

    def _persist(self, key: str) -> None:
        """Save an always-allow rule; a write failure still approves this call."""
        try:
            self._policy.storage.add_permission(key)
        except OSError as e:
            logger.warning("Could not persist permission %s: %s", key, e)
