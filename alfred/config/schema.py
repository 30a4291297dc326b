"""Pydantic models for Alfred configuration validation."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class RetryConfig(BaseModel):
    """Retry policy for model API calls.

    Example in config.json:
        "provider": {"retry": {"max_attempts": 5, "max_delay": 60}}
    """

    model_config = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=3, ge=1, le=10)
    """Total attempts per request, including the first."""

    initial_delay: float = Field(default=1.0, ge=0.0)
    """Seconds to wait before the first retry."""

    max_delay: float = Field(default=30.0, ge=0.0)
    """Upper bound on the delay between retries, in seconds."""

    backoff_factor: float = Field(default=2.0, ge=1.0)
    """Multiplier applied to the delay after each retry."""

    @model_validator(mode="after")
    def _check_delays(self) -> "RetryConfig":
        if self.initial_delay > self.max_delay:
            raise ValueError("initial_delay must not exceed max_delay")
        return self


class ProviderConfig(BaseModel):
    """Configuration for the Anthropic Messages API."""

    model_config = ConfigDict(extra="forbid")

    api_key_env: str = "ANTHROPIC_API_KEY"
    """Environment variable containing the API key."""

    base_url: str = "https://api.anthropic.com"
    """Base URL for API requests."""

    model: str = "claude-3-5-sonnet-20241022"
    """Model identifier sent with each request."""

    max_tokens: int = Field(default=4096, ge=1)
    """Maximum tokens the model may generate per response."""

    request_timeout: float = Field(default=120.0, gt=0.0)
    """HTTP request timeout in seconds."""

    retry: RetryConfig = RetryConfig()
    """Retry policy for failed requests."""


class SessionConfig(BaseModel):
    """Conversation engine settings."""

    model_config = ConfigDict(extra="forbid")

    max_turns: int = Field(default=100, ge=1)
    """Model round-trips allowed per user message."""

    system_prompt_path: str | None = None
    """Optional file holding the base system prompt."""


class ShellConfig(BaseModel):
    """Shell execution settings for the bash tool."""

    model_config = ConfigDict(extra="forbid")

    default_timeout_ms: int = Field(default=120_000, ge=1)
    """Timeout applied when the model does not pass one."""

    max_timeout_ms: int = Field(default=600_000, ge=1)
    """Largest timeout the model may request."""

    use_pty: bool = True
    """Run commands under a pseudo-terminal where the platform supports it."""

    kill_grace_period: float = Field(default=0.2, ge=0.0)
    """Seconds between SIGTERM and SIGKILL when a command is aborted."""

    @model_validator(mode="after")
    def _check_timeouts(self) -> "ShellConfig":
        if self.default_timeout_ms > self.max_timeout_ms:
            raise ValueError("default_timeout_ms must not exceed max_timeout_ms")
        return self


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(extra="forbid")

    level: LogLevel = "WARNING"
    """Level written to the log file."""

    console_level: LogLevel = "WARNING"
    """Level written to stderr."""

    log_dir: str | None = None
    """Directory for alfred.log (default: ~/.alfred/logs)."""


class Config(BaseModel):
    """Root configuration.

    Example config.json:
        {
            "provider": {"model": "claude-3-5-sonnet-20241022"},
            "session": {"max_turns": 50},
            "shell": {"use_pty": false}
        }
    """

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig = ProviderConfig()
    """Model API settings."""

    session: SessionConfig = SessionConfig()
    """Conversation engine settings."""

    shell: ShellConfig = ShellConfig()
    """Shell tool settings."""

    logging: LoggingConfig = LoggingConfig()
    """Logging settings."""
