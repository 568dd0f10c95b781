"""Common base for provider adapters.

An adapter turns the provider-neutral history into one provider's wire
format, performs a single bounded call, and maps the reply back to a
``NormalizedReply``. SDK errors are converted here so that callers only ever
see ``ProviderSendError`` or its ``ProviderTimeoutError`` subclass.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from chathub.config import PROVIDER_TIMEOUT_SECONDS
from chathub.core.exceptions import ProviderSendError, ProviderTimeoutError
from chathub.schemas.provider import ChatTurn, NormalizedReply, Provider, TokenUsage

logger = logging.getLogger(__name__)

# Inline images are sent with this media type
IMAGE_MEDIA_TYPE = "image/jpeg"


@dataclass
class ProviderConfig:
    """Static settings of one provider, taken from the registry."""

    provider: Provider
    display_name: str
    default_model: str
    models: List[str]
    base_url: Optional[str] = None
    supports_images: bool = False
    max_tokens: Optional[int] = None
    timeout: float = PROVIDER_TIMEOUT_SECONDS

    @classmethod
    def from_registry(cls, name: str, entry: Dict[str, Any]) -> "ProviderConfig":
        return cls(
            provider=Provider(name),
            display_name=entry["display_name"],
            default_model=entry["default_model"],
            models=list(entry["models"]),
            base_url=entry.get("base_url"),
            supports_images=bool(entry.get("supports_images")),
            max_tokens=entry.get("max_tokens"),
        )


class ProviderAdapter(ABC):
    """One wire protocol family.

    Subclasses implement ``_complete`` and list the SDK exception types that
    signal a timeout in ``timeout_errors``.
    """

    timeout_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    def provider(self) -> Provider:
        return self.config.provider

    def send(
        self, api_key: str, turns: List[ChatTurn], model: Optional[str] = None
    ) -> NormalizedReply:
        """Send the history and return the normalized reply.

        Args:
            api_key: Plaintext credential for the provider.
            turns: Conversation history in creation order.
            model: Model override; the provider default when omitted.

        Returns:
            NormalizedReply with ``provider`` and ``model`` set.

        Raises:
            ProviderTimeoutError: If the call exceeded the timeout.
            ProviderSendError: On any other transport or provider failure.
        """
        resolved_model = model or self.config.default_model
        logger.info(
            "Dispatching %d turn(s) to %s (model=%s)",
            len(turns),
            self.provider.value,
            resolved_model,
        )
        try:
            content, usage = self._complete(api_key, turns, resolved_model)
        except (TimeoutError,) + self.timeout_errors as e:
            logger.error("%s request timed out: %s", self.provider.value, e)
            raise ProviderTimeoutError(self.provider.value, str(e) or "timed out") from e
        except Exception as e:
            logger.error("%s request failed: %s", self.provider.value, e)
            raise ProviderSendError(self.provider.value, str(e)) from e

        return NormalizedReply(
            content=content,
            model=resolved_model,
            provider=self.provider,
            usage=usage,
        )

    def _images(self, turn: ChatTurn) -> List[str]:
        """Images to embed for a turn; always empty without image support."""
        if not self.config.supports_images:
            return []
        return list(turn.images or [])

    @abstractmethod
    def _complete(
        self, api_key: str, turns: List[ChatTurn], model: str
    ) -> Tuple[str, Optional[TokenUsage]]:
        """Perform the provider call and return (content, usage)."""
