"""Provider service: the single entry point to every LLM provider.

Builds one adapter per registry entry and dispatches ``send_message`` to the
adapter of the requested provider. No retries, rate limiting or caching is
done here; every call is one attempt forwarded straight to the caller.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from chathub.config import LLM_PROVIDERS
from chathub.core.exceptions import ConfigurationError, UnsupportedProviderError
from chathub.schemas.provider import ChatTurn, NormalizedReply, Provider, ProviderInfo
from chathub.utils.providers.anthropic_adapter import AnthropicAdapter
from chathub.utils.providers.base import ProviderAdapter, ProviderConfig
from chathub.utils.providers.cohere_adapter import CohereAdapter
from chathub.utils.providers.google_adapter import GoogleAdapter
from chathub.utils.providers.huggingface_adapter import HuggingFaceAdapter
from chathub.utils.providers.openai_compatible import OpenAICompatibleAdapter

logger = logging.getLogger(__name__)

ADAPTER_KINDS: Dict[str, Type[ProviderAdapter]] = {
    "openai_compatible": OpenAICompatibleAdapter,
    "anthropic": AnthropicAdapter,
    "google": GoogleAdapter,
    "huggingface": HuggingFaceAdapter,
    "cohere": CohereAdapter,
}


def make_adapter(name: str, entry: Dict[str, Any]) -> ProviderAdapter:
    """Instantiate the adapter for one registry entry."""
    kind = entry.get("kind")
    adapter_cls = ADAPTER_KINDS.get(kind)
    if adapter_cls is None:
        raise ConfigurationError(f"Unknown provider kind '{kind}' for {name}")
    return adapter_cls(ProviderConfig.from_registry(name, entry))


class ProviderService:
    """Normalizes calls to the supported providers behind one interface."""

    def __init__(self, registry: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        registry = LLM_PROVIDERS if registry is None else registry
        self._adapters: Dict[Provider, ProviderAdapter] = {
            Provider(name): make_adapter(name, entry) for name, entry in registry.items()
        }
        missing = set(Provider) - set(self._adapters)
        if missing:
            logger.warning(
                "No adapter registered for: %s",
                ", ".join(sorted(p.value for p in missing)),
            )

    def get_adapter(self, provider: Any) -> ProviderAdapter:
        """Return the adapter for a provider.

        Raises:
            UnsupportedProviderError: If the provider is unknown or has no adapter.
        """
        try:
            return self._adapters[Provider(provider)]
        except (ValueError, KeyError):
            raise UnsupportedProviderError(str(provider)) from None

    def send_message(
        self,
        provider: Any,
        api_key: str,
        messages: List[ChatTurn],
        model: Optional[str] = None,
    ) -> NormalizedReply:
        """Send a conversation history to a provider.

        Args:
            provider: Provider enum or name.
            api_key: Plaintext credential.
            messages: History in creation order, provider-neutral roles.
            model: Optional model override.

        Returns:
            The provider's reply in normalized form.

        Raises:
            UnsupportedProviderError: If the provider is not supported.
            ProviderSendError: If the provider call fails.
            ProviderTimeoutError: If the provider call times out.
        """
        return self.get_adapter(provider).send(api_key, messages, model)

    def list_models(self, provider: Any) -> List[str]:
        """Return the static list of known-good models; no network call."""
        return list(self.get_adapter(provider).config.models)

    def default_model(self, provider: Any) -> str:
        return self.get_adapter(provider).config.default_model

    def list_providers(self) -> List[ProviderInfo]:
        return [
            ProviderInfo(
                provider=adapter.provider,
                display_name=adapter.config.display_name,
                default_model=adapter.config.default_model,
                supports_images=adapter.config.supports_images,
                models=list(adapter.config.models),
            )
            for adapter in self._adapters.values()
        ]
