"""Tests for the permission policy engine and permission keys."""

import json
from pathlib import Path

import pytest

from alfred.core.types import ToolCall
from alfred.policy.constants import extract_command_prefix, find_banned_command
from alfred.policy.engine import (
    PolicyEngine,
    get_permission_key,
    get_permission_key_with_prefix,
    is_safe_command,
)
from alfred.policy.storage import PermissionStorage
from alfred.policy.types import PermissionConfig, PolicyDecision


def bash(command: str) -> ToolCall:
    return ToolCall(id="t1", name="bash", input={"command": command})


@pytest.fixture
def storage(tmp_path: Path) -> PermissionStorage:
    return PermissionStorage(tmp_path)


@pytest.fixture
def engine(storage: PermissionStorage) -> PolicyEngine:
    return PolicyEngine(storage)


class TestPermissionKeys:
    """Tests for get_permission_key and friends."""

    def test_shell_key_includes_command(self) -> None:
        assert get_permission_key(bash("npm install")) == "Bash(npm install)"

    def test_other_tools_use_bare_name(self) -> None:
        call = ToolCall(id="t1", name="write_file", input={"file_path": "a.txt"})
        assert get_permission_key(call) == "write_file"

    def test_prefix_key(self) -> None:
        assert get_permission_key_with_prefix(bash("rm -rf x"), "rm") == "Bash(rm:*)"

    def test_prefix_key_for_plain_tool(self) -> None:
        call = ToolCall(id="t1", name="edit_file")
        assert get_permission_key_with_prefix(call, "x") == "edit_file"

    def test_extract_command_prefix(self) -> None:
        """Subcommand tools keep their subcommand."""
        assert extract_command_prefix("git status --short") == "git status"
        assert extract_command_prefix("npm install lodash") == "npm install"
        assert extract_command_prefix("rm -rf build") == "rm"
        assert extract_command_prefix("git") == "git"

    def test_safe_command_is_exact(self) -> None:
        """Only the exact trimmed command line counts as safe."""
        assert is_safe_command(bash("  ls "))
        assert not is_safe_command(bash("ls; rm -rf x"))
        assert not is_safe_command(bash("ls -la"))
        assert not is_safe_command(ToolCall(id="t1", name="read_file", input={"command": "ls"}))


class TestBannedCommands:
    """Tests for find_banned_command."""

    @pytest.mark.parametrize(
        "command,expected",
        [
            ("rm -rf /", "rm -rf /"),
            ("sudo rm -fr /*", "rm -rf /"),
            ("dd if=/dev/zero of=/dev/sda", "dd"),
            ("mkfs.ext4 /dev/sdb1", "mkfs"),
            (":(){ :|:& };:", ":(){:|:&};:"),
        ],
    )
    def test_banned(self, command: str, expected: str) -> None:
        assert find_banned_command(command) == expected

    @pytest.mark.parametrize(
        "command",
        ["git add .", "rm -rf /tmp/build", "ls", "echo formatting", "python -m odd"],
    )
    def test_allowed(self, command: str) -> None:
        """Word matching does not flag substrings."""
        assert find_banned_command(command) is None


class TestPolicyEngine:
    """Tests for PolicyEngine.check."""

    def test_unknown_command_asks(self, engine: PolicyEngine) -> None:
        assert engine.check(bash("make build")) == PolicyDecision.ASK_USER

    def test_safe_command_allowed(self, engine: PolicyEngine) -> None:
        assert engine.check(bash("pwd")) == PolicyDecision.ALLOW

    def test_exact_allow(self, engine: PolicyEngine, storage: PermissionStorage) -> None:
        storage.add_permission("Bash(make build)")
        assert engine.check(bash("make build")) == PolicyDecision.ALLOW
        assert engine.check(bash("make clean")) == PolicyDecision.ASK_USER

    def test_deny_wins_over_allow_and_safe(
        self, engine: PolicyEngine, storage: PermissionStorage
    ) -> None:
        """A denied key stays denied even when also allowed or safe."""
        storage.save(PermissionConfig(allow=["Bash(ls)"], deny=["Bash(ls)"]))
        assert engine.check(bash("ls")) == PolicyDecision.DENY

    def test_deny_wins_over_session(
        self, engine: PolicyEngine, storage: PermissionStorage
    ) -> None:
        storage.save(PermissionConfig(deny=["write_file"]))
        engine.allow_for_session("write_file")
        call = ToolCall(id="t1", name="write_file")
        assert engine.check(call) == PolicyDecision.DENY

    def test_prefix_allow(self, engine: PolicyEngine, storage: PermissionStorage) -> None:
        """A prefix grant covers the bare prefix and prefix + arguments only."""
        storage.add_permission("Bash(rm:*)")
        assert engine.check(bash("rm")) == PolicyDecision.ALLOW
        assert engine.check(bash("rm -rf x")) == PolicyDecision.ALLOW
        assert engine.check(bash("rmdir x")) == PolicyDecision.ASK_USER

    def test_session_allow(self, engine: PolicyEngine, storage: PermissionStorage) -> None:
        """Session grants apply in memory and never reach disk."""
        engine.allow_for_session("Bash(make build)")
        assert engine.check(bash("make build")) == PolicyDecision.ALLOW
        assert not storage.settings_path.exists()

        engine.clear_session()
        assert engine.check(bash("make build")) == PolicyDecision.ASK_USER

    def test_check_is_pure(self, engine: PolicyEngine, storage: PermissionStorage) -> None:
        """Checking never writes anything."""
        for _ in range(3):
            engine.check(bash("make build"))
        assert not storage.settings_path.exists()
        assert engine.session_keys == frozenset()

    def test_decisions_from_other_sessions_apply(self, tmp_path: Path) -> None:
        """Stored lists are re-read, so a second engine sees new grants."""
        first = PolicyEngine(PermissionStorage(tmp_path))
        second = PolicyEngine(PermissionStorage(tmp_path))
        assert second.check(bash("make")) == PolicyDecision.ASK_USER

        first.storage.add_permission("Bash(make)")
        assert second.check(bash("make")) == PolicyDecision.ALLOW

    def test_hand_edited_settings(self, engine: PolicyEngine, storage: PermissionStorage) -> None:
        storage.settings_path.parent.mkdir(parents=True)
        storage.settings_path.write_text(
            json.dumps({"permissions": {"deny": ["bash"]}}), encoding="utf-8"
        )
        # "bash" is only the key for a shell call without a command
        assert engine.check(bash("ls")) == PolicyDecision.ALLOW
