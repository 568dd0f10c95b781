"""User database model.

This module defines the User database model using SQLAlchemy.
"""

from sqlalchemy import Column, String

from .base import Base


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
