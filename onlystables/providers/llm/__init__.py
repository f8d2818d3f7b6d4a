from typing import Dict, Optional, Type

from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from ...core.errors import ConfigurationError

PROVIDER_ALIAS_MAP: Dict[str, str] = {
    "claude": "anthropic",
    "gpt": "openai",
}

# Registry of available LLM providers
PROVIDER_REGISTRY: Dict[str, Type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def canonical_provider_name(name: str) -> str:
    """Normalize provider aliases to their canonical identifier."""

    return PROVIDER_ALIAS_MAP.get(name.lower(), name.lower())


def get_llm_provider(settings, provider_name: Optional[str] = None) -> LLMProvider:
    """Instantiate the configured extraction provider.

    A missing API key raises ``ConfigurationError`` here, at the first call that
    needs the provider, rather than at process start.
    """

    provider_key = canonical_provider_name(provider_name or settings.llm_provider)
    if provider_key not in PROVIDER_REGISTRY:
        available = ", ".join(PROVIDER_REGISTRY.keys())
        raise ValueError(f"Unsupported provider '{provider_key}'. Available providers: {available}")

    if provider_key == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured")
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.openai_base_url,
            timeout=float(settings.request_timeout_seconds),
        )

    if not settings.anthropic_api_key:
        raise ConfigurationError("Anthropic API key not configured")
    return AnthropicProvider(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        timeout=float(settings.request_timeout_seconds),
    )


__all__ = [
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMProviderError",
    "LLMProviderAPIError",
    "LLMProviderAuthError",
    "LLMProviderRateLimitError",
    "AnthropicProvider",
    "OpenAIProvider",
    "PROVIDER_REGISTRY",
    "canonical_provider_name",
    "get_llm_provider",
]
