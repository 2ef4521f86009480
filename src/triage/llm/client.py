"""Anthropic client factory and model configuration for email classification."""

from anthropic import AsyncAnthropic

# Haiku keeps per-email classification fast and cheap
CLASSIFICATION_MODEL = "claude-haiku-4-5-20251001"

DEFAULT_MAX_TOKENS = 1024


def get_anthropic_client(
    api_key: str | None = None,
    *,
    timeout: float | None = None,
) -> AsyncAnthropic:
    """Create an async Anthropic client.

    When *api_key* is ``None`` the constructor falls back to the
    ``ANTHROPIC_API_KEY`` environment variable.

    Args:
        api_key: Explicit API key, typically from ``Settings.anthropic_api_key``.
        timeout: Optional per-request timeout in seconds applied by the SDK.

    Returns:
        Configured ``AsyncAnthropic`` client instance.
    """
    if timeout is None:
        return AsyncAnthropic(api_key=api_key)
    return AsyncAnthropic(api_key=api_key, timeout=timeout)
