"""Conversation and message routes.

This module handles HTTP endpoints for conversations and their messages.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from chathub.config import DEFAULT_CONVERSATION_TITLE
from chathub.core.dependencies import (
    CurrentUserDep,
    MessageOrchestratorDep,
    ProviderServiceDep,
    StoreDep,
)
from chathub.core.exceptions import (
    ConversationNotFoundError,
    MessageNotFoundError,
    ProviderNotConfiguredError,
    ProviderSendError,
    ProviderTimeoutError,
)
from chathub.schemas.conversation import (
    Conversation,
    CreateConversationRequest,
    UpdateConversationRequest,
)
from chathub.schemas.message import (
    EditMessageRequest,
    Message,
    SendMessageRequest,
    SendMessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["Conversation"])


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=List[Conversation], summary="List conversations")
def list_conversations(store: StoreDep, current_user: CurrentUserDep) -> List[Conversation]:
    """List the current user's conversations, most recently updated first."""
    return store.list_conversations_for_user(current_user.id)


@router.post("", response_model=Conversation, summary="Create a conversation")
def create_conversation(
    req: CreateConversationRequest,
    store: StoreDep,
    current_user: CurrentUserDep,
) -> Conversation:
    """Create a conversation for the current user.

    Args:
        req: Title, provider and optional model.

    Returns:
        The created Conversation.
    """
    return store.create_conversation(
        title=req.title or DEFAULT_CONVERSATION_TITLE,
        provider=req.provider,
        model=req.model,
        user_id=current_user.id,
    )


@router.get("/{conversation_id}", response_model=Conversation, summary="Get a conversation")
def get_conversation(
    conversation_id: str,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
) -> Conversation:
    try:
        return orchestrator.get_owned_conversation(current_user.id, conversation_id)
    except ConversationNotFoundError as e:
        raise _not_found(e)


@router.patch("/{conversation_id}", response_model=Conversation, summary="Update a conversation")
def update_conversation(
    conversation_id: str,
    req: UpdateConversationRequest,
    store: StoreDep,
    providers: ProviderServiceDep,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
) -> Conversation:
    """Update title, provider and/or model.

    Changing the provider without naming a model resets the model to the new
    provider's default.

    Raises:
        HTTPException: 404 if the conversation is not found.
    """
    try:
        existing = orchestrator.get_owned_conversation(current_user.id, conversation_id)
    except ConversationNotFoundError as e:
        raise _not_found(e)

    updates = req.model_dump(exclude_none=True)
    if req.provider is not None and req.provider != existing.provider and not req.model:
        updates["model"] = providers.default_model(req.provider)

    updated = store.update_conversation(conversation_id, **updates)
    if updated is None:
        raise _not_found(ConversationNotFoundError(conversation_id))
    return updated


@router.delete("/{conversation_id}", summary="Delete a conversation")
def delete_conversation(
    conversation_id: str,
    store: StoreDep,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
) -> dict:
    """Delete a conversation and all of its messages."""
    try:
        orchestrator.get_owned_conversation(current_user.id, conversation_id)
    except ConversationNotFoundError as e:
        raise _not_found(e)
    store.delete_conversation(conversation_id)
    return {"success": True}


@router.get(
    "/{conversation_id}/messages",
    response_model=List[Message],
    summary="List messages",
)
def list_messages(
    conversation_id: str,
    store: StoreDep,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
) -> List[Message]:
    """List a conversation's messages in creation order."""
    try:
        orchestrator.get_owned_conversation(current_user.id, conversation_id)
    except ConversationNotFoundError as e:
        raise _not_found(e)
    return store.list_messages(conversation_id)


def _send_failure_response(e: ProviderSendError) -> JSONResponse:
    """Body for a failed exchange, carrying the user turn that was kept."""
    timed_out = isinstance(e, ProviderTimeoutError)
    body = {
        "detail": "Provider timed out" if timed_out else "Failed to send message",
        "provider": e.provider,
        "userMessage": None,
    }
    if e.user_message is not None:
        body["userMessage"] = e.user_message.model_dump(mode="json", by_alias=True)
    return JSONResponse(
        status_code=(
            status.HTTP_504_GATEWAY_TIMEOUT
            if timed_out
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        ),
        content=body,
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=SendMessageResponse,
    summary="Send a message",
)
def send_message(
    conversation_id: str,
    req: SendMessageRequest,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
):
    """Send a user message and return it together with the provider's reply.

    Raises:
        HTTPException: 404 if the conversation is not found, 400 if the
            provider has no API key configured.
    """
    try:
        return orchestrator.send_user_message(
            current_user.id,
            conversation_id,
            req.content,
            images=req.images,
            attachments=req.attachments,
        )
    except ConversationNotFoundError as e:
        raise _not_found(e)
    except ProviderNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProviderSendError as e:
        return _send_failure_response(e)


@router.patch(
    "/{conversation_id}/messages/{message_id}",
    response_model=Message,
    summary="Edit a message",
)
def edit_message(
    conversation_id: str,
    message_id: str,
    req: EditMessageRequest,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
) -> Message:
    try:
        return orchestrator.edit_message(
            current_user.id, conversation_id, message_id, req.content
        )
    except (ConversationNotFoundError, MessageNotFoundError) as e:
        raise _not_found(e)


@router.delete("/{conversation_id}/messages/{message_id}", summary="Delete a message")
def delete_message(
    conversation_id: str,
    message_id: str,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
) -> dict:
    try:
        orchestrator.delete_message(current_user.id, conversation_id, message_id)
    except (ConversationNotFoundError, MessageNotFoundError) as e:
        raise _not_found(e)
    return {"success": True}


@router.post(
    "/{conversation_id}/messages/{message_id}/regenerate",
    response_model=Message,
    summary="Regenerate an assistant reply",
)
def regenerate_message(
    conversation_id: str,
    message_id: str,
    orchestrator: MessageOrchestratorDep,
    current_user: CurrentUserDep,
):
    """Ask the provider again for an assistant message and replace it."""
    try:
        return orchestrator.regenerate_reply(current_user.id, conversation_id, message_id)
    except (ConversationNotFoundError, MessageNotFoundError) as e:
        raise _not_found(e)
    except (ProviderNotConfiguredError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProviderSendError as e:
        return _send_failure_response(e)
