"""User schema definitions."""

import uuid

from pydantic import Field

from chathub.schemas.base import CamelModel


class User(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    username: str
    password: str = Field(exclude=True, description="bcrypt hash")
