"""Tool executor: the single chokepoint every tool call passes through.

Order of operations for one call:

1. Resolve the tool by name (unknown -> TOOL_NOT_FOUND).
2. Validate input (schema + tool checks; invalid -> INVALID_PARAMS).
3. Ask the tool whether it needs confirmation; if so, route through the
   ConfirmationBroker. A rejection is a soft result (no error) whose text
   tells the model the user declined.
4. Run the tool. Anything it raises becomes EXECUTION_FAILED, except
   asyncio.CancelledError which propagates. A ToolExecutionError keeps its
   own message; other exceptions are logged with a traceback.

After a run, ToolExecutionSuccess or ToolExecutionFailure is published on the
message bus.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from alfred.core.errors import ToolExecutionError
from alfred.core.types import ToolCall, ToolErrorType, ToolResult
from alfred.policy.types import ToolExecutionFailure, ToolExecutionSuccess

if TYPE_CHECKING:
    from alfred.policy.broker import ConfirmationBroker
    from alfred.policy.bus import MessageBus
    from alfred.tools.base import BaseTool, ToolContext
    from alfred.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

REJECTED_MESSAGE = "The user declined this operation. Do not retry it; ask how to proceed."
POLICY_BLOCKED_MESSAGE = "This operation is blocked by the workspace permission settings ({key})."
CANCELLED_MESSAGE = "Operation cancelled by user."


class ToolExecutor:
    """Validates, gates and runs tool calls for one session.

    Attributes:
        registry: Where tools are looked up.
        broker: Confirmation broker; without one, tools that ask for
            confirmation are refused.
        bus: Where execution outcomes are published (optional).
    """

    def __init__(
        self,
        registry: ToolRegistry,
        broker: ConfirmationBroker | None = None,
        bus: MessageBus | None = None,
    ) -> None:
        self.registry = registry
        self.broker = broker
        self.bus = bus

    async def execute(self, tool_call: ToolCall, context: ToolContext) -> ToolResult:
        """Execute one tool call and return its result.

        Args:
            tool_call: The call requested by the model.
            context: Runtime context (cwd, cancel token, output sink).

        Returns:
            The ToolResult. Never raises for tool failures.

        Raises:
            asyncio.CancelledError: If the surrounding task is cancelled.
        """
        tool = self.registry.get(tool_call.name)
        if tool is None:
            logger.warning("Unknown tool requested: %s", tool_call.name)
            available = ", ".join(self.registry.names) or "none"
            return ToolResult.failure(
                f'Tool "{tool_call.name}" not found. Available tools: {available}',
                ToolErrorType.TOOL_NOT_FOUND,
                display=f"Unknown tool: {tool_call.name}",
            )

        params = tool_call.input
        error = tool.validate(params)
        if error is not None:
            logger.debug("Invalid params for %s: %s", tool_call.name, error)
            return ToolResult.failure(error, ToolErrorType.INVALID_PARAMS)

        try:
            rejection = await self._confirm(tool, tool_call, context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Confirmation for '%s' failed: %s", tool_call.name, e, exc_info=True
            )
            result = ToolResult.failure(
                f"Tool confirmation failed: {e}", ToolErrorType.EXECUTION_FAILED
            )
            self._publish(tool_call, result)
            return result
        if rejection is not None:
            return rejection

        context.cancel_token.raise_if_cancelled()
        result = await self._run(tool, tool_call, context)
        self._publish(tool_call, result)
        return result

    async def _confirm(
        self,
        tool: BaseTool,
        tool_call: ToolCall,
        context: ToolContext,
    ) -> ToolResult | None:
        """Return a soft rejection result, or None if the call may run."""
        details = await tool.should_confirm_execute(tool_call.input, context.cancel_token)
        if details is None:
            return None

        if self.broker is None:
            logger.warning("No confirmation broker; refusing %s", tool_call.name)
            return ToolResult(llm_content=REJECTED_MESSAGE, return_display="Rejected")

        verdict = await self.broker.request(tool_call, details, context.cancel_token)
        if verdict.approved:
            return None

        if verdict.cancelled:
            return ToolResult(llm_content=CANCELLED_MESSAGE, return_display="Cancelled")
        if verdict.auto_denied:
            message = POLICY_BLOCKED_MESSAGE.format(key=verdict.permission_key)
            return ToolResult(llm_content=message, return_display="Blocked by policy")
        return ToolResult(llm_content=REJECTED_MESSAGE, return_display="Rejected by user")

    async def _run(
        self,
        tool: BaseTool,
        tool_call: ToolCall,
        context: ToolContext,
    ) -> ToolResult:
        try:
            result = await tool.run(tool_call.input, context)
        except asyncio.CancelledError:
            raise
        except ToolExecutionError as e:
            logger.warning("Tool '%s' failed: %s", e.tool_name, e.message)
            return ToolResult.failure(e.message, ToolErrorType.EXECUTION_FAILED)
        except Exception as e:
            logger.error("Tool '%s' raised exception: %s", tool.name, e, exc_info=True)
            return ToolResult.failure(
                f"Tool execution failed: {e}", ToolErrorType.EXECUTION_FAILED
            )

        if result.error is not None:
            logger.warning("Tool '%s' returned error: %s", tool.name, result.error.message)
        return result

    def _publish(self, tool_call: ToolCall, result: ToolResult) -> None:
        if self.bus is None:
            return
        settled = tool_call.settle(result) if not tool_call.is_settled else tool_call
        if result.success:
            self.bus.publish(ToolExecutionSuccess(tool_call=settled, result=result))
        else:
            self.bus.publish(ToolExecutionFailure(tool_call=settled, result=result))
