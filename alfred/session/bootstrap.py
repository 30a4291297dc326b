"""Object graph bootstrap for one Alfred conversation.

There are no process-wide singletons: every conversation gets its own
service container, tool registry, policy engine, message bus, confirmation
broker, executor and engine. Only the on-disk permission file is shared.

Usage:
    configure_logging(get_log_dir(), level="INFO")
    session = build_session(config, cwd=Path.cwd())
    async for event in session.engine.send_message_stream("hello"):
        ...
    await session.aclose()
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from alfred.policy.broker import ConfirmationBroker
from alfred.policy.bus import MessageBus
from alfred.policy.engine import PolicyEngine
from alfred.policy.storage import PermissionStorage
from alfred.provider import create_provider
from alfred.session.engine import ConversationEngine
from alfred.session.prompt import PromptBuilder
from alfred.shell.execution import ShellExecutionService
from alfred.tools.builtin import TaskStore, register_builtin_tools
from alfred.tools.executor import ToolExecutor
from alfred.tools.registry import ToolRegistry
from alfred.tools.services import ServiceContainer

if TYPE_CHECKING:
    from alfred.config.schema import Config
    from alfred.core.interfaces import ModelClient
    from alfred.provider.retry import OnPersistentRateLimit, OnRetry
    from alfred.tools.base import OutputCallback

logger = logging.getLogger(__name__)

ROOT_LOGGER_NAME = "alfred"
LOG_FILE_NAME = "alfred.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    log_dir: Path,
    level: int | str = logging.WARNING,
    console_level: int | str = logging.WARNING,
) -> Path:
    """Configure logging for the alfred namespace.

    Logs go to ``{log_dir}/alfred.log`` (rotated at 5MB, 3 backups) and to
    stderr. Calling it again replaces the previous handlers.

    Args:
        log_dir: Directory for alfred.log. Created if it doesn't exist.
        level: Level for the file handler.
        console_level: Level for the stderr handler.

    Returns:
        Path to the log file.
    """
    file_level = logging.getLevelName(level) if isinstance(level, str) else level
    stderr_level = (
        logging.getLevelName(console_level) if isinstance(console_level, str) else console_level
    )

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(stderr_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    alfred_logger = logging.getLogger(ROOT_LOGGER_NAME)
    alfred_logger.setLevel(min(file_level, stderr_level))

    for handler in list(alfred_logger.handlers):
        alfred_logger.removeHandler(handler)
        handler.close()
    alfred_logger.addHandler(file_handler)
    alfred_logger.addHandler(console_handler)

    # Don't propagate to root logger
    alfred_logger.propagate = False

    logger.info("Logging configured: %s", log_file)
    return log_file


@dataclass
class Session:
    """Everything one conversation needs, wired together.

    Attributes:
        config: The loaded configuration.
        cwd: Workspace directory (tool paths and permission file).
        services: Shared tool services.
        registry: Registered tools.
        bus: Confirmation and execution message bus.
        policy: Permission policy engine.
        broker: Confirmation broker (front ends answer its requests).
        executor: Tool executor.
        client: Model client.
        engine: Conversation engine.
    """

    config: Config
    cwd: Path
    services: ServiceContainer
    registry: ToolRegistry
    bus: MessageBus
    policy: PolicyEngine
    broker: ConfirmationBroker
    executor: ToolExecutor
    client: ModelClient
    engine: ConversationEngine

    async def aclose(self) -> None:
        """Release the broker subscription and the HTTP client."""
        self.broker.close()
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()


def build_session(
    config: Config,
    cwd: Path,
    *,
    client: ModelClient | None = None,
    on_tool_output: OutputCallback | None = None,
    on_retry: OnRetry | None = None,
    on_persistent_rate_limit: OnPersistentRateLimit | None = None,
) -> Session:
    """Construct the object graph for one conversation.

    Args:
        config: Loaded configuration.
        cwd: Workspace directory.
        client: Model client; an AnthropicProvider is created if omitted.
        on_tool_output: Receives streamed shell output.
        on_retry: Passed to the provider's retry loop.
        on_persistent_rate_limit: Passed to the provider's retry loop.

    Raises:
        ProviderError: If no client is given and the provider cannot be
            created (missing API key, invalid base_url).
    """
    cwd = cwd.resolve()

    services = ServiceContainer()
    services.register("cwd", cwd)
    services.register("shell_config", config.shell)
    services.register("shell", ShellExecutionService(config.shell))
    services.register("task_store", TaskStore())

    registry = ToolRegistry(services)
    register_builtin_tools(registry)

    bus = MessageBus()
    policy = PolicyEngine(PermissionStorage(cwd))
    broker = ConfirmationBroker(policy, bus)
    executor = ToolExecutor(registry, broker=broker, bus=bus)

    if client is None:
        client = create_provider(
            config.provider,
            on_retry=on_retry,
            on_persistent_rate_limit=on_persistent_rate_limit,
        )

    prompt = PromptBuilder(cwd, config.session.system_prompt_path)
    engine = ConversationEngine(
        client,
        executor,
        system_prompt=prompt.build(tool_count=len(registry)),
        max_turns=config.session.max_turns,
        on_tool_output=on_tool_output,
    )

    logger.debug("Session built for %s with tools: %s", cwd, ", ".join(registry.names))
    return Session(
        config=config,
        cwd=cwd,
        services=services,
        registry=registry,
        bus=bus,
        policy=policy,
        broker=broker,
        executor=executor,
        client=client,
        engine=engine,
    )
