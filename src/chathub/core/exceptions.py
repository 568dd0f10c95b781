"""Custom exception classes for ChatHub.

This module defines application-specific exceptions following Google Python
Style Guide.
"""

from typing import Any, Optional


class ChatHubError(Exception):
    """Base exception for all ChatHub errors."""

    pass


class ConversationNotFoundError(ChatHubError):
    """Raised when a conversation does not exist or is not owned by the caller."""

    def __init__(self, conversation_id: str):
        """Initialize the exception.

        Args:
            conversation_id: The ID of the conversation that was not found.
        """
        self.conversation_id = conversation_id
        super().__init__(f"Conversation '{conversation_id}' not found")


class MessageNotFoundError(ChatHubError):
    """Raised when a message does not exist in the given conversation."""

    def __init__(self, message_id: str):
        """Initialize the exception.

        Args:
            message_id: The ID of the message that was not found.
        """
        self.message_id = message_id
        super().__init__(f"Message '{message_id}' not found")


class UnsupportedProviderError(ChatHubError):
    """Raised when a provider name is outside the supported set."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")


class ProviderNotConfiguredError(ChatHubError):
    """Raised when the user has no active API key for a provider."""

    def __init__(self, provider: str):
        """Initialize the exception.

        Args:
            provider: The provider lacking an active key.
        """
        self.provider = provider
        super().__init__(f"API key not configured for {provider}")


class ProviderSendError(ChatHubError):
    """Raised when a call to an external provider fails.

    Attributes:
        provider: Name of the provider that failed.
        detail: The underlying error message.
        user_message: The user turn that was already persisted before the
            call, when the failure happened inside a send workflow.
    """

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        self.user_message: Optional[Any] = None
        super().__init__(f"{provider} request failed: {detail}")


class ProviderTimeoutError(ProviderSendError):
    """Raised when a provider call exceeds the configured timeout."""

    pass


class UserAlreadyExistsError(ChatHubError):
    """Raised when trying to create a user that already exists."""

    pass


class ConfigurationError(ChatHubError):
    """Raised when there is a configuration error."""

    pass
