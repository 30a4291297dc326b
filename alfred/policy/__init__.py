"""Permission policy: decisions, persisted lists, and the confirmation channel.

Example:
    storage = PermissionStorage(workspace_root)
    policy = PolicyEngine(storage)
    bus = MessageBus()
    broker = ConfirmationBroker(policy, bus)

    verdict = await broker.request(tool_call, details, cancel_token)
"""

from alfred.policy.broker import ConfirmationBroker, PermissionVerdict
from alfred.policy.bus import MessageBus
from alfred.policy.constants import (
    BANNED_COMMANDS,
    SAFE_COMMANDS,
    extract_command_prefix,
    find_banned_command,
)
from alfred.policy.engine import (
    PolicyEngine,
    get_permission_key,
    get_permission_key_with_prefix,
)
from alfred.policy.storage import PermissionStorage
from alfred.policy.types import (
    ConfirmationDetails,
    EditConfirmationDetails,
    ExecConfirmationDetails,
    InfoConfirmationDetails,
    MessageBusTopic,
    PermissionConfig,
    PolicyDecision,
    ToolConfirmationOutcome,
    ToolConfirmationRequest,
    ToolConfirmationResponse,
    ToolExecutionFailure,
    ToolExecutionSuccess,
    ToolPolicyRejection,
)

__all__ = [
    "BANNED_COMMANDS",
    "SAFE_COMMANDS",
    "ConfirmationBroker",
    "ConfirmationDetails",
    "EditConfirmationDetails",
    "ExecConfirmationDetails",
    "InfoConfirmationDetails",
    "MessageBus",
    "MessageBusTopic",
    "PermissionConfig",
    "PermissionStorage",
    "PermissionVerdict",
    "PolicyDecision",
    "PolicyEngine",
    "ToolConfirmationOutcome",
    "ToolConfirmationRequest",
    "ToolConfirmationResponse",
    "ToolExecutionFailure",
    "ToolExecutionSuccess",
    "ToolPolicyRejection",
    "extract_command_prefix",
    "find_banned_command",
    "get_permission_key",
    "get_permission_key_with_prefix",
]
