"""SQLAlchemy-backed conversation store.

This module implements ``ConversationStore`` over a request-scoped
SQLAlchemy session, with optional Fernet encryption of API keys at rest.
"""

import logging
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chathub.config import API_KEY_ENCRYPTION_KEY, get_default_model
from chathub.core.exceptions import UserAlreadyExistsError
from chathub.models.api_key import ApiKeyModel
from chathub.models.conversation import ConversationModel
from chathub.models.message import MessageModel
from chathub.models.user import UserModel
from chathub.schemas.api_key import ApiKey
from chathub.schemas.conversation import Conversation
from chathub.schemas.message import Message
from chathub.schemas.user import User
from chathub.utils.conversation_store import (
    CONVERSATION_UPDATABLE_FIELDS,
    MESSAGE_UPDATABLE_FIELDS,
    ConversationStore,
    MonotonicClock,
    ProviderLike,
    check_updatable_fields,
    new_id,
    provider_value,
    utc_clock,
)
from chathub.utils.converters import (
    model_to_api_key,
    model_to_conversation,
    model_to_message,
    model_to_user,
)

logger = logging.getLogger(__name__)

_CIPHER = Fernet(API_KEY_ENCRYPTION_KEY.encode()) if API_KEY_ENCRYPTION_KEY else None
if not _CIPHER:
    logger.warning(
        "API_KEY_ENCRYPTION_KEY not set; API keys will be stored in plain text."
    )


class SQLConversationStore(ConversationStore):
    """Manages conversation data persistence using SQLAlchemy."""

    def __init__(
        self,
        db: Session,
        cipher: Optional[Fernet] = _CIPHER,
        clock: MonotonicClock = utc_clock,
    ):
        """Initialize SQLConversationStore.

        Args:
            db: SQLAlchemy Session.
            cipher: Fernet instance for API keys at rest, or None for plain text.
            clock: Source of creation/update timestamps.
        """
        self.db = db
        self._cipher = cipher
        self._clock = clock

    def _encrypt_api_key(self, api_key: str) -> str:
        if self._cipher:
            return self._cipher.encrypt(api_key.encode()).decode()
        return api_key

    def _decrypt_api_key(self, encrypted_key: str) -> str:
        if self._cipher:
            return self._cipher.decrypt(encrypted_key.encode()).decode()
        return encrypted_key

    def _to_api_key(self, model: ApiKeyModel) -> ApiKey:
        return model_to_api_key(model, self._decrypt_api_key(model.key_value))

    # --- Users ---

    def get_user(self, user_id: str) -> Optional[User]:
        model = self.db.get(UserModel, user_id)
        return model_to_user(model) if model else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.username == username).first()
        return model_to_user(model) if model else None

    def create_user(
        self, username: str, password: str, user_id: Optional[str] = None
    ) -> User:
        if self.get_user_by_username(username) is not None:
            raise UserAlreadyExistsError(f"User '{username}' already exists")
        model = UserModel(id=user_id or new_id(), username=username, password=password)
        # Two concurrent signups can both pass the check above; the unique
        # constraint catches the loser.
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError(f"User '{username}' already exists") from e
        logger.info("Created user: %s", username)
        return model_to_user(model)

    # --- Conversations ---

    def list_conversations_for_user(self, user_id: str) -> List[Conversation]:
        models = (
            self.db.query(ConversationModel)
            .filter(ConversationModel.user_id == user_id)
            .order_by(ConversationModel.updated_at.desc())
            .all()
        )
        return [model_to_conversation(m) for m in models]

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        model = self.db.get(ConversationModel, conversation_id)
        return model_to_conversation(model) if model else None

    def create_conversation(
        self,
        title: str,
        provider: ProviderLike,
        model: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Conversation:
        provider = provider_value(provider)
        now = self._clock.now()
        row = ConversationModel(
            id=new_id(),
            title=title,
            user_id=user_id,
            provider=provider,
            model=model or get_default_model(provider),
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        self.db.commit()
        logger.info("Created conversation %s (%s)", row.id, provider)
        return model_to_conversation(row)

    def update_conversation(
        self, conversation_id: str, **fields: Any
    ) -> Optional[Conversation]:
        check_updatable_fields(fields, CONVERSATION_UPDATABLE_FIELDS)
        if "provider" in fields:
            fields["provider"] = provider_value(fields["provider"])
        row = self.db.get(ConversationModel, conversation_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = self._clock.now()
        self.db.commit()
        return model_to_conversation(row)

    def delete_conversation(self, conversation_id: str) -> bool:
        row = self.db.get(ConversationModel, conversation_id)
        # Messages go first, in the same transaction as the conversation
        self.db.query(MessageModel).filter(
            MessageModel.conversation_id == conversation_id
        ).delete(synchronize_session=False)
        if row is not None:
            self.db.delete(row)
        self.db.commit()
        if row is None:
            return False
        logger.info("Deleted conversation %s", conversation_id)
        return True

    # --- Messages ---

    def list_messages(self, conversation_id: str) -> List[Message]:
        models = (
            self.db.query(MessageModel)
            .filter(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.asc())
            .all()
        )
        return [model_to_message(m) for m in models]

    def get_message(self, message_id: str) -> Optional[Message]:
        model = self.db.get(MessageModel, message_id)
        return model_to_message(model) if model else None

    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        row = MessageModel(
            id=new_id(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            meta_info=metadata or None,
            created_at=self._clock.now(),
        )
        self.db.add(row)
        self.db.commit()
        return model_to_message(row)

    def update_message(self, message_id: str, **fields: Any) -> Optional[Message]:
        check_updatable_fields(fields, MESSAGE_UPDATABLE_FIELDS)
        row = self.db.get(MessageModel, message_id)
        if row is None:
            return None
        if "content" in fields:
            row.content = fields["content"]
        if "metadata" in fields:
            row.meta_info = fields["metadata"]
        self.db.commit()
        return model_to_message(row)

    def delete_message(self, message_id: str) -> bool:
        row = self.db.get(MessageModel, message_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def delete_messages_for_conversation(self, conversation_id: str) -> bool:
        self.db.query(MessageModel).filter(
            MessageModel.conversation_id == conversation_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return True

    # --- API keys ---

    def list_api_keys(self, user_id: str) -> List[ApiKey]:
        models = (
            self.db.query(ApiKeyModel)
            .filter(ApiKeyModel.user_id == user_id)
            .order_by(ApiKeyModel.created_at.asc())
            .all()
        )
        return [self._to_api_key(m) for m in models]

    def _active_key_row(self, user_id: str, provider: str) -> Optional[ApiKeyModel]:
        return (
            self.db.query(ApiKeyModel)
            .filter(
                ApiKeyModel.user_id == user_id,
                ApiKeyModel.provider == provider,
                ApiKeyModel.is_active.is_(True),
            )
            .first()
        )

    def get_active_api_key(
        self, user_id: str, provider: ProviderLike
    ) -> Optional[ApiKey]:
        row = self._active_key_row(user_id, provider_value(provider))
        return self._to_api_key(row) if row else None

    def set_api_key(self, user_id: str, provider: ProviderLike, key_value: str) -> ApiKey:
        provider = provider_value(provider)
        encrypted = self._encrypt_api_key(key_value)
        # Deactivate + insert commit together. The partial unique index
        # rejects a concurrent writer that inserted first; one more attempt
        # then deactivates that writer's key.
        for attempt in range(2):
            self.db.query(ApiKeyModel).filter(
                ApiKeyModel.user_id == user_id,
                ApiKeyModel.provider == provider,
                ApiKeyModel.is_active.is_(True),
            ).update({ApiKeyModel.is_active: False}, synchronize_session=False)
            row = ApiKeyModel(
                id=new_id(),
                user_id=user_id,
                provider=provider,
                key_value=encrypted,
                is_active=True,
                created_at=self._clock.now(),
            )
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if attempt:
                    raise
                logger.warning(
                    "Concurrent API key update for user %s, provider %s; retrying",
                    user_id,
                    provider,
                )
                continue
            break
        logger.info("Set API key for user %s, provider %s", user_id, provider)
        return self._to_api_key(row)

    def delete_api_key(self, user_id: str, provider: ProviderLike) -> bool:
        provider = provider_value(provider)
        row = self._active_key_row(user_id, provider)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        logger.info("Deleted API key for user %s, provider %s", user_id, provider)
        return True
