"""LLM provider integrations."""

from .base import BaseLLMProvider, ProviderError
from .google_provider import GoogleProvider
from .openai_provider import OpenAIProvider

__all__ = ["BaseLLMProvider", "ProviderError", "OpenAIProvider", "GoogleProvider"]
