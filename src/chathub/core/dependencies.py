"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
Tests swap implementations through ``app.dependency_overrides``.
"""

from typing import Annotated, Iterator, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from chathub.config import STORAGE_BACKEND
from chathub.core.database import SessionLocal
from chathub.schemas.user import User
from chathub.utils.conversation_store import ConversationStore, MemoryConversationStore
from chathub.utils.message_orchestrator import MessageOrchestrator
from chathub.utils.providers import ProviderService
from chathub.utils.sql_store import SQLConversationStore
from chathub.utils.user_manager import UserManager

# Process-wide instances, created on first use
_memory_store_instance: Optional[MemoryConversationStore] = None
_provider_service_instance: Optional[ProviderService] = None


def get_store() -> Iterator[ConversationStore]:
    """Yield the configured store.

    The SQL store wraps a request-scoped session; the memory store is shared
    by every request of the process.
    """
    global _memory_store_instance
    if STORAGE_BACKEND == "memory":
        if _memory_store_instance is None:
            _memory_store_instance = MemoryConversationStore()
        yield _memory_store_instance
        return

    db: Session = SessionLocal()
    try:
        yield SQLConversationStore(db)
    finally:
        db.close()


def get_provider_service() -> ProviderService:
    """Get ProviderService singleton instance."""
    global _provider_service_instance
    if _provider_service_instance is None:
        _provider_service_instance = ProviderService()
    return _provider_service_instance


StoreDep = Annotated[ConversationStore, Depends(get_store)]
ProviderServiceDep = Annotated[ProviderService, Depends(get_provider_service)]


def get_user_manager(store: StoreDep) -> UserManager:
    return UserManager(store)


def get_current_user(
    user_manager: Annotated[UserManager, Depends(get_user_manager)],
) -> User:
    """Resolve the requesting user.

    Authentication is out of scope: every request acts as the mock user.
    """
    return user_manager.get_or_create_mock_user()


def get_message_orchestrator(
    store: StoreDep, providers: ProviderServiceDep
) -> MessageOrchestrator:
    """Get MessageOrchestrator bound to the request's store."""
    return MessageOrchestrator(store, providers)


# Type aliases for dependency injection
UserManagerDep = Annotated[UserManager, Depends(get_user_manager)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
MessageOrchestratorDep = Annotated[
    MessageOrchestrator, Depends(get_message_orchestrator)
]
