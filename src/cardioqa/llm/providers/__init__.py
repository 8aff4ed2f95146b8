from .anthropic import AnthropicProvider
from .openai import OpenAIProvider

__all__ = ["AnthropicProvider", "OpenAIProvider"]
