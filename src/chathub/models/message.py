"""Message database model."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import Base


class MessageModel(Base):
    """One turn of a conversation."""

    __tablename__ = "messages"

    id = Column(String, primary_key=True, index=True)
    conversation_id = Column(
        String,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    role = Column(String, nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta_info = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    conversation = relationship("ConversationModel", back_populates="messages")
