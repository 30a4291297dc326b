"""Tests for system prompt assembly."""

from datetime import date
from pathlib import Path

import pytest

from alfred.session.prompt import (
    DEFAULT_SYSTEM_PROMPT,
    SYSTEM_PROMPT_ENV,
    PromptBuilder,
    initialize_system_prompt_file,
)


@pytest.fixture(autouse=True)
def alfred_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("ALFRED_HOME", str(home))
    return home


class TestPromptBuilder:
    """Tests for PromptBuilder."""

    def test_default_prompt_with_context(self, tmp_path: Path) -> None:
        builder = PromptBuilder(tmp_path, environ={})

        prompt = builder.build(tool_count=5, today=date(2024, 3, 1))

        assert prompt.startswith(DEFAULT_SYSTEM_PROMPT)
        assert f"Working directory: {tmp_path}" in prompt
        assert "Today's date: Friday, March 01, 2024" in prompt
        assert "You have access to 5 tools" in prompt

    def test_no_tools_section_without_tools(self, tmp_path: Path) -> None:
        assert "# Tools" not in PromptBuilder(tmp_path, environ={}).build()

    def test_extra_context_json(self, tmp_path: Path) -> None:
        prompt = PromptBuilder(tmp_path, environ={}).build(extra_context={"branch": "main"})
        assert 'branch: "main"' in prompt

    def test_source_precedence(self, tmp_path: Path, alfred_home: Path) -> None:
        """Env override beats configured path beats ~/.alfred/system.md."""
        alfred_home.mkdir()
        (alfred_home / "system.md").write_text("global prompt", encoding="utf-8")
        configured = tmp_path / "configured.md"
        configured.write_text("configured prompt", encoding="utf-8")
        override = tmp_path / "override.md"
        override.write_text("override prompt", encoding="utf-8")

        assert PromptBuilder(tmp_path, environ={}).load_base_prompt() == "global prompt"
        assert (
            PromptBuilder(tmp_path, str(configured), environ={}).load_base_prompt()
            == "configured prompt"
        )
        builder = PromptBuilder(
            tmp_path, str(configured), environ={SYSTEM_PROMPT_ENV: str(override)}
        )
        assert builder.load_base_prompt() == "override prompt"

    def test_missing_files_fall_back(self, tmp_path: Path) -> None:
        builder = PromptBuilder(
            tmp_path, str(tmp_path / "nope.md"), environ={SYSTEM_PROMPT_ENV: "/nonexistent"}
        )
        assert builder.load_base_prompt() == DEFAULT_SYSTEM_PROMPT


class TestInitializeSystemPromptFile:
    """Tests for initialize_system_prompt_file."""

    def test_creates_once(self, alfred_home: Path) -> None:
        assert initialize_system_prompt_file()
        path = alfred_home / "system.md"
        assert path.read_text(encoding="utf-8") == DEFAULT_SYSTEM_PROMPT

        path.write_text("custom", encoding="utf-8")
        assert not initialize_system_prompt_file()
        assert path.read_text(encoding="utf-8") == "custom"
