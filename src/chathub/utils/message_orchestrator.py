"""Message orchestration.

This module composes the conversation store and the provider service into
the send-message workflow. The workflow is deliberately not transactional:

1. Load the conversation (must be owned by the caller).
2. Load the caller's active API key for the conversation's provider.
3. Persist the user's turn.
4. Reload the full history, including that turn.
5. Call the provider.
6. Persist the reply as an assistant turn.
7. Touch the conversation's updated_at.

A provider failure in step 5 leaves the user turn from step 3 committed. The
raised ``ProviderSendError`` carries it as ``user_message`` so callers can
tell "sent, no reply" apart from a complete exchange.
"""

import logging
from typing import Any, Dict, List, Optional

from chathub.core.exceptions import (
    ConversationNotFoundError,
    MessageNotFoundError,
    ProviderNotConfiguredError,
    ProviderSendError,
)
from chathub.schemas.api_key import ApiKey
from chathub.schemas.conversation import Conversation
from chathub.schemas.message import Attachment, Message, SendMessageResponse
from chathub.schemas.provider import ChatTurn, NormalizedReply
from chathub.utils.conversation_store import ConversationStore
from chathub.utils.providers import ProviderService

logger = logging.getLogger(__name__)


def message_to_turn(message: Message) -> ChatTurn:
    """Build the provider-neutral turn for a stored message.

    Attachment text is appended to the content sent to the provider; the
    stored content is left as typed.
    """
    metadata = message.metadata or {}
    content = message.content
    attachments = metadata.get("attachments") or []
    if attachments:
        blocks = [content] + [
            f"[Attachment: {a['name']}]\n{a['content']}" for a in attachments
        ]
        content = "\n\n".join(blocks)
    return ChatTurn(role=message.role, content=content, images=message.images)


def reply_metadata(reply: NormalizedReply) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "provider": reply.provider.value,
        "model": reply.model,
    }
    if reply.usage is not None:
        metadata["usage"] = reply.usage.model_dump(by_alias=True)
    return metadata


class MessageOrchestrator:
    """Runs message workflows for one user against a store and providers."""

    def __init__(self, store: ConversationStore, providers: ProviderService):
        """Initialize MessageOrchestrator.

        Args:
            store: Conversation store to read from and write to.
            providers: Provider service used for the outbound calls.
        """
        self.store = store
        self.providers = providers

    def get_owned_conversation(self, user_id: str, conversation_id: str) -> Conversation:
        """Load a conversation owned by ``user_id``.

        Raises:
            ConversationNotFoundError: If absent or owned by someone else.
        """
        conversation = self.store.get_conversation(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def _get_owned_message(
        self, user_id: str, conversation_id: str, message_id: str
    ) -> Message:
        self.get_owned_conversation(user_id, conversation_id)
        message = self.store.get_message(message_id)
        if message is None or message.conversation_id != conversation_id:
            raise MessageNotFoundError(message_id)
        return message

    def _require_api_key(self, user_id: str, conversation: Conversation) -> ApiKey:
        api_key = self.store.get_active_api_key(user_id, conversation.provider)
        if api_key is None:
            raise ProviderNotConfiguredError(conversation.provider.value)
        return api_key

    def send_user_message(
        self,
        user_id: str,
        conversation_id: str,
        content: str,
        images: Optional[List[str]] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> SendMessageResponse:
        """Persist a user turn, ask the provider, and persist its reply.

        Args:
            user_id: The requesting user.
            conversation_id: Target conversation.
            content: Text typed by the user.
            images: Optional base64-encoded images for this turn.
            attachments: Optional text attachments for this turn.

        Returns:
            SendMessageResponse with both persisted messages.

        Raises:
            ConversationNotFoundError: If the conversation is missing or not owned.
            ProviderNotConfiguredError: If no active key exists; nothing is persisted.
            ProviderSendError: If the provider call fails; the user turn stays
                persisted and is attached as ``user_message``.
        """
        conversation = self.get_owned_conversation(user_id, conversation_id)
        api_key = self._require_api_key(user_id, conversation)

        metadata: Dict[str, Any] = {}
        if images:
            metadata["images"] = list(images)
        if attachments:
            metadata["attachments"] = [a.model_dump() for a in attachments]
        user_message = self.store.create_message(
            conversation_id=conversation_id,
            role="user",
            content=content,
            metadata=metadata or None,
        )

        history = [message_to_turn(m) for m in self.store.list_messages(conversation_id)]

        try:
            reply = self.providers.send_message(
                conversation.provider, api_key.key_value, history, conversation.model
            )
        except ProviderSendError as e:
            logger.error(
                "Reply failed for conversation %s; user message %s kept without reply",
                conversation_id,
                user_message.id,
            )
            e.user_message = user_message
            raise

        assistant_message = self.store.create_message(
            conversation_id=conversation_id,
            role="assistant",
            content=reply.content,
            metadata=reply_metadata(reply),
        )
        self.store.update_conversation(conversation_id)

        return SendMessageResponse(
            user_message=user_message, assistant_message=assistant_message
        )

    def regenerate_reply(
        self, user_id: str, conversation_id: str, message_id: str
    ) -> Message:
        """Re-ask the provider for an assistant turn and replace it in place.

        The history sent is every message created before the target one.

        Raises:
            ConversationNotFoundError: If the conversation is missing or not owned.
            MessageNotFoundError: If the message is not in the conversation.
            ValueError: If the message is not an assistant turn or has no
                preceding history.
            ProviderNotConfiguredError: If no active key exists.
            ProviderSendError: If the provider call fails; nothing changes.
        """
        target = self._get_owned_message(user_id, conversation_id, message_id)
        if target.role != "assistant":
            raise ValueError("Only assistant messages can be regenerated")
        conversation = self.get_owned_conversation(user_id, conversation_id)
        api_key = self._require_api_key(user_id, conversation)

        history = [
            message_to_turn(m)
            for m in self.store.list_messages(conversation_id)
            if m.created_at < target.created_at
        ]
        if not history:
            raise ValueError("Nothing to regenerate from")

        reply = self.providers.send_message(
            conversation.provider, api_key.key_value, history, conversation.model
        )
        updated = self.store.update_message(
            message_id, content=reply.content, metadata=reply_metadata(reply)
        )
        if updated is None:
            raise MessageNotFoundError(message_id)
        self.store.update_conversation(conversation_id)
        logger.info("Regenerated message %s in conversation %s", message_id, conversation_id)
        return updated

    def edit_message(
        self, user_id: str, conversation_id: str, message_id: str, content: str
    ) -> Message:
        """Replace a message's content; role and metadata are kept."""
        self._get_owned_message(user_id, conversation_id, message_id)
        updated = self.store.update_message(message_id, content=content)
        if updated is None:
            raise MessageNotFoundError(message_id)
        self.store.update_conversation(conversation_id)
        return updated

    def delete_message(self, user_id: str, conversation_id: str, message_id: str) -> None:
        self._get_owned_message(user_id, conversation_id, message_id)
        self.store.delete_message(message_id)
        self.store.update_conversation(conversation_id)
