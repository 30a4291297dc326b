"""Typed exception hierarchy for Alfred."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


class AlfredError(Exception):
    """Base class for all Alfred errors."""

    code: str = "ALFRED_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(AlfredError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""

    code = "CONFIGURATION_ERROR"


class LoadError(AlfredError):
    """Base class for loading errors (config, settings, prompt files)."""

    code = "LOAD_ERROR"


# === Model transport errors ===


class ProviderError(AlfredError):
    """Raised for LLM provider issues (API errors, network issues, auth failure)."""

    code = "PROVIDER_ERROR"


class UnauthorizedError(ProviderError):
    """Authentication or authorization failure. Never retried."""

    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ApiError(ProviderError):
    """An HTTP-level API failure.

    Attributes:
        status_code: HTTP status code, if known.
        retryable: Whether the transport may retry the request.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
        self.code = f"API_ERROR_{status_code}" if status_code else "API_ERROR"

    @classmethod
    def from_status(cls, status_code: int, detail: str) -> ApiError:
        """Build the most specific ApiError subclass for an HTTP status."""
        message = f"API request failed with status {status_code}: {detail}"
        if status_code == 429:
            return RateLimitError(message)
        if status_code >= 500:
            return ServerError(message, status_code)
        return cls(message, status_code, retryable=False)


class RateLimitError(ApiError):
    """HTTP 429 from the model API."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 429, retryable=True)


class ServerError(ApiError):
    """HTTP 5xx from the model API."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message, status_code, retryable=True)


class NetworkError(ProviderError):
    """Connection reset, refused, or timed out."""

    code = "NETWORK_ERROR"


# === Tool runtime errors ===


class ToolRegistrationError(AlfredError):
    """Raised when a tool cannot be registered."""

    code = "TOOL_REGISTRATION_ERROR"


class DuplicateToolError(ToolRegistrationError):
    """Raised when a tool name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ToolExecutionError(AlfredError):
    """A tool failed in a way the tool itself chose to raise."""

    code = "TOOL_EXECUTION_ERROR"

    def __init__(self, message: str, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class ShellExecutionError(AlfredError):
    """Raised when a shell process cannot be spawned."""

    code = "SHELL_EXECUTION_ERROR"


# === Structured errors for the event surface ===

_STATUS_PATTERN = re.compile(r"\b(\d{3})\b")


@dataclass(frozen=True)
class StructuredError:
    """Plain-data error for StreamEvent consumers.

    Attributes:
        message: Error message.
        status: HTTP status, if one applies.
        code: Machine-readable error code.
        details: Extra information (the original exception type name).
    """

    message: str
    status: int | None = None
    code: str | None = None
    details: Any = None


def to_structured_error(error: BaseException) -> StructuredError:
    """Convert any exception to a StructuredError."""
    if isinstance(error, ApiError):
        return StructuredError(
            message=error.message,
            status=error.status_code,
            code=error.code,
            details=type(error).__name__,
        )

    if isinstance(error, AlfredError):
        return StructuredError(
            message=error.message,
            code=error.code,
            details=type(error).__name__,
        )

    message = str(error) or type(error).__name__
    match = _STATUS_PATTERN.search(message)
    return StructuredError(
        message=message,
        status=int(match.group(1)) if match else None,
        details=type(error).__name__,
    )


def is_retryable_error(error: BaseException) -> bool:
    """Return True if a model call failing with this error may be retried."""
    if isinstance(error, UnauthorizedError):
        return False
    if isinstance(error, ApiError):
        return error.retryable
    if isinstance(error, NetworkError):
        return True

    message = str(error).lower()
    if any(
        marker in message
        for marker in ("connection reset", "timed out", "connection refused", "network")
    ):
        return True
    if "429" in message or "rate limit" in message:
        return True
    return re.search(r"\b5\d{2}\b", message) is not None


def to_friendly_error(error: BaseException) -> str:
    """Return a short message suitable for showing to the user."""
    if isinstance(error, UnauthorizedError):
        return "Authentication failed. Please check your API key."

    if isinstance(error, ApiError):
        if error.status_code == 429:
            return "Rate limit exceeded. Please try again later."
        if error.status_code is not None and error.status_code >= 500:
            return "Server error. Please try again later."
        if error.status_code == 404:
            return "Resource not found."

    if isinstance(error, NetworkError):
        return "Network error. Check your connection and try again."

    if isinstance(error, ConfigError):
        return f"Configuration error: {error.message}"

    if isinstance(error, ToolExecutionError):
        return f"Tool execution failed: {error.message}"

    return str(error) or "An unexpected error occurred"
