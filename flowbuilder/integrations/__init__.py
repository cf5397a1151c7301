"""Language model provider integrations."""

from .llm import LLM_PROVIDERS, LLMProvider, ProviderModelClient

__all__ = [
    "LLM_PROVIDERS",
    "LLMProvider",
    "ProviderModelClient",
]
