"""API key schema definitions."""

from datetime import datetime

from pydantic import Field

from chathub.config import API_KEY_MASK, API_KEY_VISIBLE_CHARS
from chathub.schemas.base import CamelModel
from chathub.schemas.provider import Provider


class ApiKey(CamelModel):
    """A stored credential. ``key_value`` is the plaintext secret."""

    id: str
    user_id: str
    provider: Provider
    key_value: str
    is_active: bool
    created_at: datetime

    def masked(self) -> "ApiKey":
        """Return a copy safe to send to a client."""
        return self.model_copy(update={"key_value": mask_key(self.key_value)})


class SetApiKeyRequest(CamelModel):
    provider: Provider
    key_value: str = Field(min_length=1)


def mask_key(key_value: str) -> str:
    """Keep the first characters of a secret and mask the rest."""
    return key_value[:API_KEY_VISIBLE_CHARS] + API_KEY_MASK
