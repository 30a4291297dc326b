"""Tests for workspace permission persistence."""

import json
import logging
from pathlib import Path

import pytest

from alfred.policy.storage import PermissionStorage, parse_prefix_key
from alfred.policy.types import PermissionConfig


@pytest.fixture
def storage(tmp_path: Path) -> PermissionStorage:
    return PermissionStorage(tmp_path)


class TestPermissionStorage:
    """Tests for PermissionStorage."""

    def test_settings_path(self, storage: PermissionStorage, tmp_path: Path) -> None:
        assert storage.settings_path == tmp_path / ".alfred" / "settings.local.json"

    def test_missing_file_is_empty(self, storage: PermissionStorage) -> None:
        assert storage.load() == PermissionConfig()

    def test_add_permission_sorted_and_deduplicated(self, storage: PermissionStorage) -> None:
        storage.add_permission("write_file")
        storage.add_permission("Bash(ls -la)")
        storage.add_permission("write_file")

        assert storage.load().allow == ["Bash(ls -la)", "write_file"]

    def test_file_format(self, storage: PermissionStorage) -> None:
        """The file holds allow, deny and ask under "permissions"."""
        storage.add_permission("Bash(rm:*)")

        data = json.loads(storage.settings_path.read_text(encoding="utf-8"))
        assert data == {"permissions": {"allow": ["Bash(rm:*)"], "deny": [], "ask": []}}

    def test_other_keys_preserved(self, storage: PermissionStorage) -> None:
        storage.settings_path.parent.mkdir(parents=True)
        storage.settings_path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

        storage.add_permission("edit_file")

        data = json.loads(storage.settings_path.read_text(encoding="utf-8"))
        assert data["theme"] == "dark"
        assert data["permissions"]["allow"] == ["edit_file"]

    def test_remove_permission(self, storage: PermissionStorage) -> None:
        storage.add_permission("edit_file")
        storage.remove_permission("edit_file")
        assert not storage.has_permission("edit_file")

    def test_malformed_file_treated_as_empty(
        self, storage: PermissionStorage, caplog: pytest.LogCaptureFixture
    ) -> None:
        storage.settings_path.parent.mkdir(parents=True)
        storage.settings_path.write_text("{broken", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="alfred.policy.storage"):
            assert storage.load() == PermissionConfig()
        assert "unreadable" in caplog.text

    def test_non_string_entries_ignored(self, storage: PermissionStorage) -> None:
        storage.settings_path.parent.mkdir(parents=True)
        storage.settings_path.write_text(
            json.dumps({"permissions": {"allow": ["ok", 3, None]}}), encoding="utf-8"
        )
        assert storage.load().allow == ["ok"]


class TestPrefixMatching:
    """Tests for prefix keys."""

    def test_parse_prefix_key(self) -> None:
        assert parse_prefix_key("Bash(npm install:*)") == ("Bash", "npm install")
        assert parse_prefix_key("Bash(npm install)") is None
        assert parse_prefix_key("write_file") is None

    def test_has_matching_prefix(self, storage: PermissionStorage) -> None:
        storage.add_permission("Bash(npm install:*)")

        assert storage.has_matching_prefix("Bash(npm install)")
        assert storage.has_matching_prefix("Bash(npm install lodash)")
        assert not storage.has_matching_prefix("Bash(npm installx)")
        assert not storage.has_matching_prefix("Bash(npm test)")
        assert not storage.has_matching_prefix("write_file")

    def test_prefix_label_must_match(self, storage: PermissionStorage) -> None:
        storage.add_permission("Other(npm:*)")
        assert not storage.has_matching_prefix("Bash(npm install)")
