"""Tests for alfred.config.load_utils."""

from pathlib import Path

import pytest

from alfred.config.load_utils import load_json_file, load_json_file_optional
from alfred.core.errors import LoadError


class TestLoadJsonFile:
    """Tests for load_json_file."""

    def test_load_valid_json_file(self, tmp_path: Path) -> None:
        """A JSON object loads as a dict."""
        json_file = tmp_path / "valid.json"
        json_file.write_text('{"key": "value", "number": 42}', encoding="utf-8")

        assert load_json_file(json_file) == {"key": "value", "number": 42}

    def test_whitespace_only_file_returns_empty_dict(self, tmp_path: Path) -> None:
        """Blank files load as an empty dict."""
        json_file = tmp_path / "blank.json"
        json_file.write_text("   \n\t  \n  ", encoding="utf-8")

        assert load_json_file(json_file) == {}

    def test_utf8_bom_is_accepted(self, tmp_path: Path) -> None:
        """Files saved with a BOM still parse."""
        json_file = tmp_path / "bom.json"
        json_file.write_bytes(b'\xef\xbb\xbf{"a": 1}')

        assert load_json_file(json_file) == {"a": 1}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Missing files raise LoadError naming the path."""
        missing = tmp_path / "does_not_exist.json"

        with pytest.raises(LoadError) as exc_info:
            load_json_file(missing)

        assert "File not found" in str(exc_info.value)
        assert str(missing) in str(exc_info.value)

    def test_invalid_json_raises_with_context(self, tmp_path: Path) -> None:
        """Invalid JSON raises LoadError prefixed with the error context."""
        invalid = tmp_path / "invalid.json"
        invalid.write_text('{"key": "unclosed', encoding="utf-8")

        with pytest.raises(LoadError) as exc_info:
            load_json_file(invalid, error_context="config")

        assert str(exc_info.value).startswith("config: Invalid JSON")

    def test_non_object_raises(self, tmp_path: Path) -> None:
        """JSON arrays are rejected."""
        array_file = tmp_path / "array.json"
        array_file.write_text('["item1", "item2"]', encoding="utf-8")

        with pytest.raises(LoadError, match="Expected object .* got list"):
            load_json_file(array_file)


class TestLoadJsonFileOptional:
    """Tests for load_json_file_optional."""

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert load_json_file_optional(tmp_path / "nope.json") is None

    def test_directory_returns_none(self, tmp_path: Path) -> None:
        """A directory where the file should be counts as missing."""
        assert load_json_file_optional(tmp_path) is None

    def test_existing_invalid_file_raises(self, tmp_path: Path) -> None:
        """An existing but broken file is an error, not a missing layer."""
        broken = tmp_path / "broken.json"
        broken.write_text("{", encoding="utf-8")

        with pytest.raises(LoadError):
            load_json_file_optional(broken)
