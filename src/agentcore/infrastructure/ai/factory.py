"""Provider factory - returns the configured model provider."""

from functools import lru_cache

from agentcore.config import Settings, get_settings
from agentcore.infrastructure.ai.anthropic_provider import AnthropicProvider
from agentcore.infrastructure.ai.openai_provider import OpenAIProvider
from agentcore.shared.exceptions import ConfigurationError
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)


def create_provider(settings: Settings | None = None) -> AnthropicProvider | OpenAIProvider:
    """Build the provider selected by ``AI_PROVIDER``.

    Raises:
        ConfigurationError: If the selected provider has no API key.

    Usage:
        # In .env:
        AI_PROVIDER=deepseek  # or "anthropic", "openai"
        DEEPSEEK_API_KEY=sk-...
    """
    settings = settings or get_settings()
    provider = settings.ai_provider

    if provider == "deepseek":
        if not settings.deepseek_api_key:
            raise ConfigurationError("DEEPSEEK_API_KEY is not configured")
        logger.info("using_ai_provider", provider="deepseek", model=settings.deepseek_model)
        return OpenAIProvider(
            api_key=settings.deepseek_api_key,
            model=settings.deepseek_model,
            base_url=settings.deepseek_base_url,
            max_tokens=settings.anthropic_max_tokens,
            name="deepseek",
        )

    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        logger.info("using_ai_provider", provider="openai", model=settings.openai_model)
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            max_tokens=settings.anthropic_max_tokens,
        )

    # Default to Anthropic
    if not settings.anthropic_api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY is not configured")
    logger.info("using_ai_provider", provider="anthropic", model=settings.anthropic_model)
    return AnthropicProvider(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
    )


@lru_cache(maxsize=1)
def get_provider() -> AnthropicProvider | OpenAIProvider:
    """Get the shared provider built from the environment settings."""
    return create_provider(get_settings())


async def close_provider() -> None:
    """Close and clear the shared provider."""
    if get_provider.cache_info().currsize:
        provider = get_provider()
        await provider.close()
    get_provider.cache_clear()
