"""Provider implementations."""

from .anthropic import AnthropicProvider
from .base import ProviderProfile, StructuredProvider, TextProvider
from .gemini import GeminiProvider
from .mock import MockStructuredProvider, MockTextProvider
from .openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "GeminiProvider",
    "MockStructuredProvider",
    "MockTextProvider",
    "OpenAIProvider",
    "ProviderProfile",
    "StructuredProvider",
    "TextProvider",
]
