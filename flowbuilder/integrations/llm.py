"""Provider catalog and model client used by LLM engine nodes.

Provider SDK calls are not wired in: the client validates the provider,
model and credentials like a real client would, then answers with a
placeholder completion. Swap in another ``ModelClient`` to reach a real API.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..core.exceptions import ModelProviderError
from ..core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LLMProvider:
    """A language model provider and the models it serves."""
    key: str
    name: str
    models: Tuple[str, ...]
    api_key_env: str


LLM_PROVIDERS: Dict[str, LLMProvider] = {
    "openai": LLMProvider(
        key="openai",
        name="OpenAI",
        models=("gpt-4", "gpt-3.5-turbo", "gpt-4-turbo"),
        api_key_env="OPENAI_API_KEY",
    ),
    "gemini": LLMProvider(
        key="gemini",
        name="Google Gemini",
        models=("gemini-pro", "gemini-pro-vision"),
        api_key_env="GEMINI_API_KEY",
    ),
    "claude": LLMProvider(
        key="claude",
        name="Anthropic Claude",
        models=("claude-3-opus", "claude-3-sonnet", "claude-3-haiku"),
        api_key_env="ANTHROPIC_API_KEY",
    ),
}

PROMPT_PREVIEW_CHARS = 50


class ProviderModelClient:
    """Routes model calls to the provider named by the node configuration."""

    def __init__(self, api_keys: Optional[Dict[str, Optional[str]]] = None,
                 providers: Optional[Dict[str, LLMProvider]] = None):
        """Initialize the client.

        Args:
            api_keys: Credentials keyed by provider key (see ``AppConfig.get_provider_api_keys``)
            providers: Provider catalog, defaults to ``LLM_PROVIDERS``
        """
        self._api_keys = dict(api_keys or {})
        self._providers = providers or LLM_PROVIDERS

    @classmethod
    def from_config(cls, config) -> "ProviderModelClient":
        return cls(api_keys=config.get_provider_api_keys())

    def get_provider(self, provider: str) -> LLMProvider:
        """Look up a provider, raising ``ModelProviderError`` if it is not in the catalog."""
        try:
            return self._providers[provider]
        except KeyError:
            raise ModelProviderError(
                f"Unknown LLM provider: '{provider}'. Supported: {sorted(self._providers)}",
                provider=provider
            )

    def call_model(self, provider: str, model: str, system_prompt: str, prompt: str, temperature: float) -> str:
        """
        Answer a prompt with the given provider and model.

        Raises:
            ModelProviderError: If the provider is unknown or has no API key configured
        """
        info = self.get_provider(provider)

        if not self._api_keys.get(info.key):
            raise ModelProviderError(f"{info.name} API key not configured", provider=provider, model=model)

        if model not in info.models:
            logger.warning(f"Model '{model}' is not in the {info.name} catalog, passing it through")

        logger.info(f"{info.name} call: model={model}, temperature={temperature}")
        logger.debug(f"System prompt: {system_prompt}")

        return f"{info.name} {model} response to: {prompt[:PROMPT_PREVIEW_CHARS]}..."
