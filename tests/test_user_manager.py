import pytest

from chathub.config import MOCK_USER_ID, MOCK_USERNAME
from chathub.core.exceptions import UserAlreadyExistsError
from chathub.utils.user_manager import UserManager


@pytest.fixture
def manager(store):
    return UserManager(store, rounds=4)


def test_password_hash_verifies(manager):
    hashed = manager.hash_password("correct horse")
    assert hashed != "correct horse"
    assert manager.verify_password("correct horse", hashed) is True
    assert manager.verify_password("wrong horse", hashed) is False


def test_long_passwords_compare_on_first_72_bytes(manager):
    long_password = "a" * 72 + "first tail"
    hashed = manager.hash_password(long_password)
    assert manager.verify_password("a" * 72 + "other tail", hashed) is True
    assert manager.verify_password("a" * 71, hashed) is False


def test_malformed_hash_does_not_verify(manager):
    assert manager.verify_password("anything", "not-a-bcrypt-hash") is False


def test_authenticate(manager):
    user = manager.create_user("alice", "s3cret")
    assert user.password != "s3cret"

    assert manager.authenticate("alice", "s3cret").id == user.id
    assert manager.authenticate("alice", "nope") is None
    assert manager.authenticate("bob", "s3cret") is None


def test_duplicate_username_is_rejected(manager):
    manager.create_user("alice", "one")
    with pytest.raises(UserAlreadyExistsError):
        manager.create_user("alice", "two")


def test_mock_user_is_created_once(manager, store):
    first = manager.get_or_create_mock_user()
    second = manager.get_or_create_mock_user()
    assert first.id == second.id == MOCK_USER_ID
    assert store.get_user_by_username(MOCK_USERNAME).id == MOCK_USER_ID
