"""Model API providers.

Example:
    from alfred.provider import create_provider

    provider = create_provider(config.provider)
    response = await provider.create_message(messages, system="...")
"""

from typing import TYPE_CHECKING

from alfred.provider.anthropic import ANTHROPIC_VERSION, AnthropicProvider
from alfred.provider.base import BaseProvider, validate_base_url
from alfred.provider.retry import RetryPolicy, retry_with_backoff

if TYPE_CHECKING:
    from alfred.config.schema import ProviderConfig
    from alfred.provider.retry import OnPersistentRateLimit, OnRetry


def create_provider(
    config: "ProviderConfig",
    *,
    on_retry: "OnRetry | None" = None,
    on_persistent_rate_limit: "OnPersistentRateLimit | None" = None,
) -> AnthropicProvider:
    """Create the provider for a ProviderConfig.

    Raises:
        ProviderError: If the API key is missing or base_url is invalid.
    """
    return AnthropicProvider(
        config,
        on_retry=on_retry,
        on_persistent_rate_limit=on_persistent_rate_limit,
    )


__all__ = [
    "ANTHROPIC_VERSION",
    "AnthropicProvider",
    "BaseProvider",
    "RetryPolicy",
    "create_provider",
    "retry_with_backoff",
    "validate_base_url",
]
