from typing import Any

from .base import LLMProvider
from .providers import AnthropicProvider, OpenAIProvider

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "claude": AnthropicProvider,
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider by name.

    Args:
        provider: 'openai' or 'anthropic' (alias 'claude'), case-insensitive
        **config: Constructor arguments; ``api_key`` is required.
            OpenAI also takes model, base_url, organization, project.
            Anthropic also takes model, base_url.

    Returns:
        Provider instance

    Raises:
        ValueError: If the provider name is unknown
        TypeError: If ``api_key`` is missing

    Example:
        >>> llm = create_llm_provider("anthropic", api_key="sk-ant-...")
    """
    provider_class = _PROVIDERS.get(provider.lower())
    if provider_class is None:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(sorted(_PROVIDERS))}"
        )
    if "api_key" not in config:
        raise TypeError(f"{provider_class.__name__} requires 'api_key' in config")
    return provider_class(**config)
