"""Conversation store contract and its in-memory implementation.

The store holds users, conversations, messages and API keys. Two
implementations share the ``ConversationStore`` contract: the dict-backed
``MemoryConversationStore`` in this module and the SQLAlchemy-backed
``SQLConversationStore`` in ``utils.sql_store``.

Failure semantics: lookups by id return ``None`` (or ``False`` for deletes)
when the target does not exist; listing operations never fail.
"""

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, TypeVar, Union

import pytz
from pydantic import BaseModel

from chathub.config import get_default_model
from chathub.core.exceptions import UnsupportedProviderError, UserAlreadyExistsError
from chathub.schemas.api_key import ApiKey
from chathub.schemas.conversation import Conversation
from chathub.schemas.message import Message
from chathub.schemas.provider import Provider
from chathub.schemas.user import User

logger = logging.getLogger(__name__)

ProviderLike = Union[Provider, str]

# Fields a caller may change through update_conversation / update_message
CONVERSATION_UPDATABLE_FIELDS = frozenset({"title", "provider", "model", "user_id"})
MESSAGE_UPDATABLE_FIELDS = frozenset({"content", "metadata"})


class MonotonicClock:
    """UTC clock that never hands out the same instant twice.

    Creation-time ordering must be total, so two calls within the same
    microsecond are pushed one microsecond apart.
    """

    def __init__(self) -> None:
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(pytz.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current


utc_clock = MonotonicClock()


def provider_value(provider: ProviderLike) -> str:
    """Normalize a provider enum or name to its string value.

    Raises:
        UnsupportedProviderError: If the name is outside the supported set.
    """
    try:
        return Provider(provider).value
    except ValueError:
        raise UnsupportedProviderError(str(provider)) from None


def new_id() -> str:
    return str(uuid.uuid4())


_Record = TypeVar("_Record", bound=BaseModel)


def _copy(record: Optional[_Record]) -> Optional[_Record]:
    return record.model_copy(deep=True) if record is not None else None


class ConversationStore(ABC):
    """Repository contract for conversations, messages, API keys and users."""

    # --- Users ---

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def create_user(
        self, username: str, password: str, user_id: Optional[str] = None
    ) -> User:
        """Create a user; ``password`` must already be hashed.

        Raises:
            UserAlreadyExistsError: If the username is taken.
        """

    # --- Conversations ---

    @abstractmethod
    def list_conversations_for_user(self, user_id: str) -> List[Conversation]:
        """Return the user's conversations, most recently updated first."""

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        ...

    @abstractmethod
    def create_conversation(
        self,
        title: str,
        provider: ProviderLike,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Conversation:
        """Create a conversation with created_at == updated_at == now.

        ``model`` defaults to the provider's canonical default.
        """

    @abstractmethod
    def update_conversation(
        self, conversation_id: str, **fields: Any
    ) -> Optional[Conversation]:
        """Merge ``fields`` and refresh updated_at, even for an empty update."""

    @abstractmethod
    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete the conversation's messages, then the conversation.

        Returns:
            Whether the conversation existed.
        """

    # --- Messages ---

    @abstractmethod
    def list_messages(self, conversation_id: str) -> List[Message]:
        """Return the conversation's messages in creation order."""

    @abstractmethod
    def get_message(self, message_id: str) -> Optional[Message]:
        ...

    @abstractmethod
    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        ...

    @abstractmethod
    def update_message(self, message_id: str, **fields: Any) -> Optional[Message]:
        """Replace content and/or metadata; role and timestamps never change."""

    @abstractmethod
    def delete_message(self, message_id: str) -> bool:
        ...

    @abstractmethod
    def delete_messages_for_conversation(self, conversation_id: str) -> bool:
        """Delete every message of a conversation. Always returns True."""

    # --- API keys ---

    @abstractmethod
    def list_api_keys(self, user_id: str) -> List[ApiKey]:
        """Return all of the user's keys, active and inactive, oldest first."""

    @abstractmethod
    def get_active_api_key(
        self, user_id: str, provider: ProviderLike
    ) -> Optional[ApiKey]:
        ...

    @abstractmethod
    def set_api_key(self, user_id: str, provider: ProviderLike, key_value: str) -> ApiKey:
        """Deactivate the pair's existing keys and insert a new active one."""

    @abstractmethod
    def delete_api_key(self, user_id: str, provider: ProviderLike) -> bool:
        """Remove the pair's active key. Returns whether one existed."""


def check_updatable_fields(fields: Dict[str, Any], allowed: frozenset) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


class MemoryConversationStore(ConversationStore):
    """Dict-backed store for tests and single-process development.

    Every operation holds one lock, which makes multi-step mutations such as
    ``set_api_key`` atomic with respect to concurrent callers. Records go in
    and come out as deep copies, so callers never share state with the store.
    """

    def __init__(self, clock: MonotonicClock = utc_clock) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._users: Dict[str, User] = {}
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, Message] = {}
        self._api_keys: Dict[str, ApiKey] = {}

    # --- Users ---

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return _copy(self._users.get(user_id))

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return _copy(
                next((u for u in self._users.values() if u.username == username), None)
            )

    def create_user(
        self, username: str, password: str, user_id: Optional[str] = None
    ) -> User:
        with self._lock:
            if self.get_user_by_username(username) is not None:
                raise UserAlreadyExistsError(f"User '{username}' already exists")
            user = User(id=user_id or new_id(), username=username, password=password)
            self._users[user.id] = _copy(user)
        logger.info("Created user: %s", username)
        return user

    # --- Conversations ---

    def list_conversations_for_user(self, user_id: str) -> List[Conversation]:
        with self._lock:
            owned = [
                _copy(c) for c in self._conversations.values() if c.user_id == user_id
            ]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            return _copy(self._conversations.get(conversation_id))

    def create_conversation(
        self,
        title: str,
        provider: ProviderLike,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Conversation:
        provider = provider_value(provider)
        now = self._clock.now()
        conversation = Conversation(
            id=new_id(),
            title=title,
            user_id=user_id,
            provider=provider,
            model=model or get_default_model(provider),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._conversations[conversation.id] = _copy(conversation)
        logger.info("Created conversation %s (%s)", conversation.id, provider)
        return conversation

    def update_conversation(
        self, conversation_id: str, **fields: Any
    ) -> Optional[Conversation]:
        check_updatable_fields(fields, CONVERSATION_UPDATABLE_FIELDS)
        if "provider" in fields:
            fields["provider"] = Provider(provider_value(fields["provider"]))
        with self._lock:
            existing = self._conversations.get(conversation_id)
            if existing is None:
                return None
            updated = existing.model_copy(
                update={**copy.deepcopy(fields), "updated_at": self._clock.now()}
            )
            self._conversations[conversation_id] = updated
            return _copy(updated)

    def delete_conversation(self, conversation_id: str) -> bool:
        with self._lock:
            self.delete_messages_for_conversation(conversation_id)
            existed = self._conversations.pop(conversation_id, None) is not None
        if existed:
            logger.info("Deleted conversation %s", conversation_id)
        return existed

    # --- Messages ---

    def list_messages(self, conversation_id: str) -> List[Message]:
        with self._lock:
            owned = [
                _copy(m) for m in self._messages.values()
                if m.conversation_id == conversation_id
            ]
        return sorted(owned, key=lambda m: m.created_at)

    def get_message(self, message_id: str) -> Optional[Message]:
        with self._lock:
            return _copy(self._messages.get(message_id))

    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        message = Message(
            id=new_id(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            metadata=metadata or None,
            created_at=self._clock.now(),
        )
        with self._lock:
            self._messages[message.id] = _copy(message)
        return message

    def update_message(self, message_id: str, **fields: Any) -> Optional[Message]:
        check_updatable_fields(fields, MESSAGE_UPDATABLE_FIELDS)
        with self._lock:
            existing = self._messages.get(message_id)
            if existing is None:
                return None
            updated = existing.model_copy(update=copy.deepcopy(fields))
            self._messages[message_id] = updated
            return _copy(updated)

    def delete_message(self, message_id: str) -> bool:
        with self._lock:
            return self._messages.pop(message_id, None) is not None

    def delete_messages_for_conversation(self, conversation_id: str) -> bool:
        with self._lock:
            doomed = [
                m.id for m in self._messages.values()
                if m.conversation_id == conversation_id
            ]
            for message_id in doomed:
                del self._messages[message_id]
        return True

    # --- API keys ---

    def list_api_keys(self, user_id: str) -> List[ApiKey]:
        with self._lock:
            keys = [_copy(k) for k in self._api_keys.values() if k.user_id == user_id]
        return sorted(keys, key=lambda k: k.created_at)

    def get_active_api_key(
        self, user_id: str, provider: ProviderLike
    ) -> Optional[ApiKey]:
        provider = provider_value(provider)
        with self._lock:
            return _copy(
                next(
                    (
                        k for k in self._api_keys.values()
                        if k.user_id == user_id and k.provider == provider and k.is_active
                    ),
                    None,
                )
            )

    def set_api_key(self, user_id: str, provider: ProviderLike, key_value: str) -> ApiKey:
        provider = provider_value(provider)
        with self._lock:
            for key in list(self._api_keys.values()):
                if key.user_id == user_id and key.provider == provider and key.is_active:
                    self._api_keys[key.id] = key.model_copy(update={"is_active": False})
            api_key = ApiKey(
                id=new_id(),
                user_id=user_id,
                provider=provider,
                key_value=key_value,
                is_active=True,
                created_at=self._clock.now(),
            )
            self._api_keys[api_key.id] = _copy(api_key)
        logger.info("Set API key for user %s, provider %s", user_id, provider)
        return api_key

    def delete_api_key(self, user_id: str, provider: ProviderLike) -> bool:
        with self._lock:
            key = self.get_active_api_key(user_id, provider)
            if key is None:
                return False
            del self._api_keys[key.id]
        logger.info("Deleted API key for user %s, provider %s", user_id, provider)
        return True
