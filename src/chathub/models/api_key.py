"""Per-user, per-provider API key model.

Replaced keys are kept as inactive rows; a partial unique index allows at
most one active row per (user_id, provider).
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, text

from .base import Base


class ApiKeyModel(Base):
    __tablename__ = "api_keys"
    __table_args__ = (
        Index(
            "uq_api_keys_active_user_provider",
            "user_id",
            "provider",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    provider = Column(String, nullable=False)
    key_value = Column(String, nullable=False)  # Fernet token when encryption is on
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
