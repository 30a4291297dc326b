"""Service container for tool dependency injection.

A typed dictionary wrapper: tools ask for shared session services (the shell
execution service, the task store, shell settings) by name. No automatic
resolution, no scopes, no lifecycle management.

Example usage:
    services = ServiceContainer()
    services.register("shell", ShellExecutionService())
    services.register("task_store", TaskStore())

    shell = services.require("shell")  # Raises if not registered
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from alfred.config.schema import ShellConfig
    from alfred.shell.execution import ShellExecutionService
    from alfred.tools.builtin.task_write import TaskStore


@dataclass
class ServiceContainer:
    """Holds shared services for the tools of one session.

    Attributes:
        _services: Internal dictionary mapping service names to instances.
    """

    _services: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str) -> Any:
        """Get a service by name, or None if not registered."""
        return self._services.get(name)

    def require(self, name: str) -> Any:
        """Get a service by name, raising if not registered.

        Raises:
            KeyError: If the service is not registered.
        """
        if name not in self._services:
            raise KeyError(f"Required service not registered: {name}")
        return self._services[name]

    def register(self, name: str, service: Any) -> None:
        """Register a service by name (overwrites any existing one)."""
        self._services[name] = service

    def has(self, name: str) -> bool:
        return name in self._services

    def unregister(self, name: str) -> Any:
        return self._services.pop(name, None)

    def names(self) -> list[str]:
        return list(self._services.keys())

    # Typed accessors for common services

    def get_cwd(self) -> Path:
        """Session working directory, or the process cwd if unset."""
        cwd = self.get("cwd")
        if cwd is not None:
            return Path(cwd)
        return Path.cwd()

    def get_shell(self) -> "ShellExecutionService":
        """The shell execution service, created on first use if missing."""
        shell = self.get("shell")
        if shell is None:
            from alfred.shell.execution import ShellExecutionService

            shell = ShellExecutionService()
            self.register("shell", shell)
        return shell

    def get_shell_config(self) -> "ShellConfig":
        config = self.get("shell_config")
        if config is None:
            from alfred.config.schema import ShellConfig

            config = ShellConfig()
            self.register("shell_config", config)
        return config

    def get_task_store(self) -> "TaskStore":
        """The per-session task list, created on first use if missing."""
        store = self.get("task_store")
        if store is None:
            from alfred.tools.builtin.task_write import TaskStore

            store = TaskStore()
            self.register("task_store", store)
        return store
