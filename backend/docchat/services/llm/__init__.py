"""LLM provider factory."""

from docchat.core.config import settings
from docchat.services.llm.base import BaseLLMProvider


def get_llm_provider() -> BaseLLMProvider:
    """Factory function that returns the configured LLM provider."""
    if settings.llm_provider == "gemini":
        from docchat.services.llm.gemini import GeminiProvider
        return GeminiProvider()
    elif settings.llm_provider == "openrouter":
        from docchat.services.llm.openrouter import OpenRouterProvider
        return OpenRouterProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")
