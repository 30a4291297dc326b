"""Tests for the tool registry and base tool helpers."""

from pathlib import Path
from typing import Any

import pytest

from alfred.core.errors import DuplicateToolError, ToolRegistrationError
from alfred.core.types import ToolResult
from alfred.tools.base import BaseTool, ToolContext
from alfred.tools.builtin import register_builtin_tools
from alfred.tools.registry import ToolRegistry
from alfred.tools.services import ServiceContainer


class NamedTool(BaseTool):
    def __init__(self, name: str, services: ServiceContainer | None = None) -> None:
        super().__init__(services)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"The {self._name} tool"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "count": {"type": "integer"},
                "mode": {"type": "string", "enum": ["fast", "slow"]},
            },
            "required": ["count"],
        }

    async def run(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        return ToolResult(llm_content="ok")


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_and_get(self) -> None:
        registry = ToolRegistry()
        tool = NamedTool("alpha")
        registry.register(tool)

        assert registry.get("alpha") is tool
        assert "alpha" in registry
        assert registry.get("missing") is None
        assert len(registry) == 1

    def test_duplicate_name_fails(self) -> None:
        """Registering the same name twice is an error."""
        registry = ToolRegistry()
        registry.register(NamedTool("alpha"))

        with pytest.raises(DuplicateToolError, match="alpha"):
            registry.register(NamedTool("alpha"))

    @pytest.mark.parametrize("name", ["", "1tool", "has space", "x" * 65])
    def test_invalid_names_rejected(self, name: str) -> None:
        with pytest.raises(ToolRegistrationError):
            ToolRegistry().register(NamedTool(name))

    def test_schemas_in_registration_order(self) -> None:
        registry = ToolRegistry()
        registry.register(NamedTool("beta"))
        registry.register(NamedTool("alpha"))

        schemas = registry.get_schemas()

        assert [s.name for s in schemas] == ["beta", "alpha"]
        assert schemas[0].to_dict() == {
            "name": "beta",
            "description": "The beta tool",
            "input_schema": NamedTool("beta").input_schema,
        }

    def test_unregister(self) -> None:
        registry = ToolRegistry()
        registry.register(NamedTool("alpha"))
        assert registry.unregister("alpha")
        assert not registry.unregister("alpha")

    def test_builtin_tools(self) -> None:
        """The built-in set shares the registry's services."""
        services = ServiceContainer()
        registry = ToolRegistry(services)
        register_builtin_tools(registry)

        assert registry.names == ["read_file", "write_file", "edit_file", "bash", "task_write"]
        assert all(registry.get(n).services is services for n in registry.names)


class TestBaseToolValidation:
    """Tests for BaseTool.validate."""

    def test_valid_params(self) -> None:
        assert NamedTool("alpha").validate({"count": 1}) is None

    def test_missing_required(self) -> None:
        error = NamedTool("alpha").validate({})
        assert error == "alpha: 'count' is a required property"

    def test_wrong_type(self) -> None:
        error = NamedTool("alpha").validate({"count": "many"})
        assert error is not None
        assert "Parameter 'count' has wrong type" in error

    def test_enum(self) -> None:
        error = NamedTool("alpha").validate({"count": 1, "mode": "medium"})
        assert error == "alpha: Parameter 'mode' must be one of ['fast', 'slow']"

    def test_format_params_truncates(self) -> None:
        text = NamedTool("alpha").format_params({"command": "x" * 100, "count": 2})
        assert text.startswith("command=" + "x" * 57 + "...")
        assert text.endswith("count=2")


class TestToolContext:
    """Tests for ToolContext path resolution."""

    def test_relative_paths_resolve_against_cwd(self, tmp_path: Path) -> None:
        context = ToolContext(cwd=tmp_path, cancel_token=None)  # type: ignore[arg-type]
        assert context.resolve_path("a/b.txt") == (tmp_path / "a" / "b.txt").resolve()

    def test_absolute_paths_kept(self, tmp_path: Path) -> None:
        context = ToolContext(cwd=Path("/elsewhere"), cancel_token=None)  # type: ignore[arg-type]
        target = tmp_path / "x.txt"
        assert context.resolve_path(str(target)) == target.resolve()


class TestServiceContainer:
    """Tests for the typed accessors."""

    def test_require_missing(self) -> None:
        with pytest.raises(KeyError, match="shell"):
            ServiceContainer().require("shell")

    def test_task_store_created_once(self) -> None:
        services = ServiceContainer()
        assert services.get_task_store() is services.get_task_store()

    def test_cwd_defaults_to_process_cwd(self) -> None:
        assert ServiceContainer().get_cwd() == Path.cwd()
