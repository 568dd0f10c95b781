"""Message schema definitions.

This module defines the stored Message model and the request/response
bodies of the messaging endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from chathub.schemas.base import CamelModel


class Message(CamelModel):
    id: str
    conversation_id: str
    role: Literal["user", "assistant"]
    content: str
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Open-ended data such as attached images or token usage.",
    )
    created_at: datetime

    @property
    def images(self) -> Optional[List[str]]:
        if not self.metadata:
            return None
        return self.metadata.get("images")


class Attachment(CamelModel):
    type: Literal["pdf", "doc", "txt"]
    name: str
    content: str


class SendMessageRequest(CamelModel):
    content: str
    images: Optional[List[str]] = None
    attachments: Optional[List[Attachment]] = None


class EditMessageRequest(CamelModel):
    content: str


class SendMessageResponse(CamelModel):
    user_message: Message
    assistant_message: Message
