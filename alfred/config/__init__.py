"""Configuration module for Alfred."""

from alfred.config.loader import load_config
from alfred.config.schema import (
    Config,
    LoggingConfig,
    ProviderConfig,
    RetryConfig,
    SessionConfig,
    ShellConfig,
)

__all__ = [
    "Config",
    "LoggingConfig",
    "ProviderConfig",
    "RetryConfig",
    "SessionConfig",
    "ShellConfig",
    "load_config",
]
