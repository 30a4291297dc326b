"""Permission policy engine.

Decides, for a tool call, whether it runs without asking (ALLOW), is blocked
without asking (DENY), or needs a human decision (ASK_USER). Evaluation
order:

1. exact key in deny            -> DENY
2. exact key in allow           -> ALLOW
3. exact key in session cache   -> ALLOW
4. stored prefix entry covers it -> ALLOW
5. safe read-only command       -> ALLOW
6. otherwise                    -> ASK_USER

Deny always wins: a key listed in deny is denied even if it is also allowed
or on the safe-command list.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from alfred.policy.constants import ARGUMENT_SENSITIVE_TOOLS, SAFE_COMMANDS
from alfred.policy.types import PolicyDecision

if TYPE_CHECKING:
    from alfred.core.types import ToolCall
    from alfred.policy.storage import PermissionStorage

logger = logging.getLogger(__name__)


def get_permission_key(tool_call: ToolCall) -> str:
    """Permission key for a tool call.

    Argument-sensitive tools (the shell) use ``Label(<argument>)`` with the
    literal argument text; every other tool uses its bare name.
    """
    sensitive = ARGUMENT_SENSITIVE_TOOLS.get(tool_call.name)
    if sensitive is not None:
        label, field = sensitive
        argument = tool_call.input.get(field)
        if isinstance(argument, str) and argument:
            return f"{label}({argument})"
    return tool_call.name


def get_permission_key_with_prefix(tool_call: ToolCall, prefix: str) -> str:
    """Prefix-form key (``Label(<prefix>:*)``) for argument-sensitive tools."""
    sensitive = ARGUMENT_SENSITIVE_TOOLS.get(tool_call.name)
    if sensitive is None or not prefix:
        return tool_call.name
    return f"{sensitive[0]}({prefix}:*)"


def is_safe_command(tool_call: ToolCall) -> bool:
    """True for a shell call whose trimmed command is on the safe list."""
    sensitive = ARGUMENT_SENSITIVE_TOOLS.get(tool_call.name)
    if sensitive is None or sensitive[0] != "Bash":
        return False
    command = tool_call.input.get(sensitive[1])
    return isinstance(command, str) and command.strip() in SAFE_COMMANDS


class PolicyEngine:
    """Evaluates tool calls against stored and session permissions.

    One instance per session. The stored lists are re-read on every check,
    so decisions persisted by another session in the same workspace apply
    immediately. Session allowances live only in memory.
    """

    def __init__(self, storage: PermissionStorage) -> None:
        self._storage = storage
        self._session_allow: set[str] = set()

    @property
    def storage(self) -> PermissionStorage:
        return self._storage

    @property
    def session_keys(self) -> frozenset[str]:
        return frozenset(self._session_allow)

    def check(self, tool_call: ToolCall) -> PolicyDecision:
        """Decide how a tool call proceeds.

        Pure with respect to (tool_call, stored permissions, session cache):
        it never writes anything.
        """
        key = get_permission_key(tool_call)
        config = self._storage.load()

        if key in config.deny:
            logger.debug("Policy DENY for %s", key)
            return PolicyDecision.DENY

        if key in config.allow or key in self._session_allow:
            return PolicyDecision.ALLOW

        if self._storage.has_matching_prefix(key, config):
            return PolicyDecision.ALLOW

        if is_safe_command(tool_call):
            return PolicyDecision.ALLOW

        logger.debug("Policy ASK_USER for %s", key)
        return PolicyDecision.ASK_USER

    def allow_for_session(self, key: str) -> None:
        """Allow a key until the session ends (never written to disk)."""
        self._session_allow.add(key)

    def clear_session(self) -> None:
        self._session_allow.clear()
