"""Tool confirmation UI for the Alfred REPL.

ConfirmationPrompt subscribes to confirmation requests on the message bus,
asks the user, and answers through the broker with the same correlation id.
It never touches the policy engine directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from alfred.policy.types import (
    BusMessage,
    EditConfirmationDetails,
    ExecConfirmationDetails,
    InfoConfirmationDetails,
    MessageBusTopic,
    ToolConfirmationOutcome,
    ToolConfirmationRequest,
)

if TYPE_CHECKING:
    from alfred.policy.broker import ConfirmationBroker
    from alfred.policy.bus import MessageBus

logger = logging.getLogger(__name__)

# Diffs longer than this are clipped in the prompt
MAX_DIFF_LINES = 80


@dataclass(frozen=True)
class Choice:
    key: str
    label: str
    outcome: ToolConfirmationOutcome


def build_choices(request: ToolConfirmationRequest) -> list[Choice]:
    """Options offered for a request.

    The prefix option only appears for shell commands with a known prefix.
    """
    choices = [
        Choice("1", "Yes, once", ToolConfirmationOutcome.PROCEED_ONCE),
        Choice("2", "Yes, for this session", ToolConfirmationOutcome.PROCEED_ALWAYS_SESSION),
        Choice(
            "3", "Yes, always (save to workspace settings)", ToolConfirmationOutcome.PROCEED_ALWAYS
        ),
    ]
    details = request.details
    if isinstance(details, ExecConfirmationDetails) and details.root_command:
        choices.append(
            Choice(
                "4",
                f"Yes, always for commands starting with '{details.root_command}'",
                ToolConfirmationOutcome.PROCEED_ALWAYS_PREFIX,
            )
        )
    choices.append(
        Choice(
            str(len(choices) + 1),
            "No, tell Alfred what to do instead",
            ToolConfirmationOutcome.CANCEL,
        )
    )
    return choices


def parse_choice(response: str, choices: list[Choice]) -> ToolConfirmationOutcome:
    """Map typed input to an outcome. Anything unrecognized is a refusal."""
    answer = response.strip().lower()
    if answer in ("y", "yes"):
        return ToolConfirmationOutcome.PROCEED_ONCE
    for choice in choices:
        if answer == choice.key:
            return choice.outcome
    return ToolConfirmationOutcome.CANCEL


def _clip_diff(diff: str) -> str:
    lines = diff.splitlines()
    if len(lines) <= MAX_DIFF_LINES:
        return diff
    hidden = len(lines) - MAX_DIFF_LINES
    return "\n".join(lines[:MAX_DIFF_LINES] + [f"... ({hidden} more lines)"])


class ConfirmationPrompt:
    """Answers confirmation requests interactively.

    Example:
        prompt = ConfirmationPrompt(console, session.broker)
        prompt.attach(session.bus)
    """

    def __init__(
        self,
        console: Console,
        broker: ConfirmationBroker,
        prompt_session: PromptSession[str] | None = None,
    ) -> None:
        self._console = console
        self._broker = broker
        self._prompt_session: PromptSession[str] = prompt_session or PromptSession()
        self._lock = asyncio.Lock()
        self._active: set[asyncio.Task[str]] = set()

    def attach(self, bus: MessageBus) -> None:
        bus.subscribe(MessageBusTopic.TOOL_CONFIRMATION_REQUEST, self.handle)

    def detach(self, bus: MessageBus) -> None:
        bus.unsubscribe(MessageBusTopic.TOOL_CONFIRMATION_REQUEST, self.handle)

    def cancel_active(self) -> None:
        """Abandon any prompt currently waiting for input."""
        for task in list(self._active):
            task.cancel()

    async def handle(self, message: BusMessage) -> None:
        assert isinstance(message, ToolConfirmationRequest)
        # One prompt on screen at a time; later requests wait their turn
        async with self._lock:
            outcome = await self._ask(message)
        self._broker.respond(message.correlation_id, outcome)

    def render(self, request: ToolConfirmationRequest) -> None:
        console = self._console
        details = request.details
        console.print()
        console.print(f"[yellow]{escape(details.title)}[/]")

        if isinstance(details, ExecConfirmationDetails):
            console.print(f"  [dim]Command:[/] {escape(details.command)}", highlight=False)
            if details.description:
                console.print(f"  [dim]Description:[/] {escape(details.description)}", highlight=False)
        elif isinstance(details, EditConfirmationDetails):
            action = "Modify" if details.is_modifying else "Create"
            console.print(f"  [dim]{action}:[/] {escape(details.file_path)}", highlight=False)
            if details.file_diff:
                console.print(Syntax(_clip_diff(details.file_diff), "diff", theme="ansi_dark"))
        elif isinstance(details, InfoConfirmationDetails):
            console.print(f"  {escape(details.prompt)}", highlight=False)
            for url in details.urls:
                console.print(f"  [dim]-[/] {escape(url)}", highlight=False)

    async def _ask(self, request: ToolConfirmationRequest) -> ToolConfirmationOutcome:
        self.render(request)
        choices = build_choices(request)
        self._console.print()
        for choice in choices:
            self._console.print(f"  [cyan][{choice.key}][/] {escape(choice.label)}")

        task = asyncio.ensure_future(
            self._prompt_session.prompt_async(f"Choice [1-{len(choices)}]: ")
        )
        self._active.add(task)
        try:
            response = await task
        except (EOFError, KeyboardInterrupt):
            logger.debug("Confirmation %s abandoned", request.correlation_id)
            return ToolConfirmationOutcome.CANCEL
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if not task.cancelled() or (current is not None and current.cancelling()):
                raise
            logger.debug("Confirmation %s abandoned", request.correlation_id)
            return ToolConfirmationOutcome.CANCEL
        finally:
            self._active.discard(task)

        outcome = parse_choice(response, choices)
        logger.debug("Confirmation %s answered: %s", request.correlation_id, outcome.value)
        return outcome
