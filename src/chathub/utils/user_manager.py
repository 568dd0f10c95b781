"""User management utilities.

This module provides password hashing, user creation and the bootstrap of
the single mock user the API acts on behalf of.
"""

import logging
from typing import Optional

import bcrypt

from chathub.config import MOCK_PASSWORD, MOCK_USER_ID, MOCK_USERNAME
from chathub.core.exceptions import UserAlreadyExistsError
from chathub.schemas.user import User
from chathub.utils.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > _BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            _BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:_BCRYPT_MAX_BYTES]
    return password_bytes


class UserManager:
    """Manages users on top of a conversation store."""

    def __init__(self, store: ConversationStore, rounds: int = BCRYPT_ROUNDS):
        """Initialize UserManager.

        Args:
            store: Store holding the user records.
            rounds: bcrypt cost factor.
        """
        self.store = store
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        try:
            return bcrypt.checkpw(
                _password_bytes(plain_password), hashed_password.encode("utf-8")
            )
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

    def create_user(
        self, username: str, password: str, user_id: Optional[str] = None
    ) -> User:
        """Create a new user.

        Args:
            username: Username for the new user.
            password: Plain text password.
            user_id: Optional fixed id; a UUID is generated otherwise.

        Returns:
            Created User object.

        Raises:
            UserAlreadyExistsError: If username already exists.
        """
        return self.store.create_user(
            username=username,
            password=self.hash_password(password),
            user_id=user_id,
        )

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, None otherwise."""
        user = self.store.get_user_by_username(username)
        if user is None or not self.verify_password(password, user.password):
            return None
        return user

    def get_or_create_mock_user(self) -> User:
        """Return the fixed user every request acts as, creating it once."""
        user = self.store.get_user(MOCK_USER_ID)
        if user is not None:
            return user
        try:
            user = self.create_user(MOCK_USERNAME, MOCK_PASSWORD, user_id=MOCK_USER_ID)
        except UserAlreadyExistsError:
            # A concurrent request created it first
            user = self.store.get_user(MOCK_USER_ID)
            if user is None:
                raise
        logger.info("Bootstrapped mock user %s", MOCK_USER_ID)
        return user
