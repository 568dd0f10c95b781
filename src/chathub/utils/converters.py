"""Conversions between ORM models and pydantic schemas."""

import copy
from datetime import datetime
from typing import Optional

import pytz

from chathub.models.api_key import ApiKeyModel
from chathub.models.conversation import ConversationModel
from chathub.models.message import MessageModel
from chathub.models.user import UserModel
from chathub.schemas.api_key import ApiKey
from chathub.schemas.conversation import Conversation
from chathub.schemas.message import Message
from chathub.schemas.user import User


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=pytz.utc)
    return value


def model_to_user(model: UserModel) -> User:
    return User(id=model.id, username=model.username, password=model.password)


def model_to_conversation(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        title=model.title,
        user_id=model.user_id,
        provider=model.provider,
        model=model.model,
        created_at=_as_utc(model.created_at),
        updated_at=_as_utc(model.updated_at),
    )


def model_to_message(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        role=model.role,
        content=model.content,
        metadata=copy.deepcopy(model.meta_info),
        created_at=_as_utc(model.created_at),
    )


def model_to_api_key(model: ApiKeyModel, key_value: str) -> ApiKey:
    """Build an ApiKey schema; ``key_value`` is the decrypted secret."""
    return ApiKey(
        id=model.id,
        user_id=model.user_id,
        provider=model.provider,
        key_value=key_value,
        is_active=bool(model.is_active),
        created_at=_as_utc(model.created_at),
    )
