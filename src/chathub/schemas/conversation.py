"""Conversation schema definitions."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from chathub.schemas.base import CamelModel
from chathub.schemas.provider import Provider


class Conversation(CamelModel):
    id: str
    title: str
    user_id: Optional[str] = None
    provider: Provider
    model: str
    created_at: datetime
    updated_at: datetime


class CreateConversationRequest(CamelModel):
    title: Optional[str] = Field(default=None, max_length=500)
    provider: Provider
    model: Optional[str] = Field(
        default=None,
        description="Falls back to the provider's default model when omitted.",
    )


class UpdateConversationRequest(CamelModel):
    """Partial update; empty or missing fields are left untouched."""

    title: Optional[str] = Field(default=None, max_length=500)
    provider: Optional[Provider] = None
    model: Optional[str] = None

    @field_validator("title", "model")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value
