"""Conversation database model."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import Base


class ConversationModel(Base):
    """A named chat session bound to one provider and model."""

    __tablename__ = "conversations"

    id = Column(String, primary_key=True, index=True)
    title = Column(Text, nullable=False)
    # Nullable: ownerless conversations are allowed
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)
    provider = Column(String, nullable=False)
    model = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)

    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
