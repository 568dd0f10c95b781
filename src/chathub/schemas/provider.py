"""Provider schema definitions.

This module defines the supported provider set and the provider-neutral
shapes exchanged with the provider adapter layer.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field

from chathub.schemas.base import CamelModel


class Provider(str, Enum):
    """Closed set of supported LLM providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    HUGGINGFACE = "huggingface"
    CEREBRAS = "cerebras"
    SAMBANOVA = "sambanova"
    MISTRAL = "mistral"
    COHERE = "cohere"
    XAI = "xai"
    PERPLEXITY = "perplexity"
    TOGETHER = "together"
    FIREWORKS = "fireworks"


class ChatTurn(CamelModel):
    """One provider-neutral history entry handed to an adapter."""

    role: Literal["user", "assistant"]
    content: str
    images: Optional[List[str]] = Field(
        default=None,
        description="Base64-encoded image payloads attached to this turn.",
    )


class TokenUsage(CamelModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class NormalizedReply(CamelModel):
    """The adapter's common output shape, independent of the provider."""

    content: str
    model: str
    provider: Provider
    usage: Optional[TokenUsage] = Field(
        default=None,
        description="Present only when the provider reports token counts.",
    )


class ModelListResponse(CamelModel):
    models: List[str]


class ProviderInfo(CamelModel):
    """Registry entry exposed to the UI."""

    provider: Provider
    display_name: str
    default_model: str
    supports_images: bool
    models: List[str]
