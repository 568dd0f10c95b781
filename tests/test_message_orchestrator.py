import pytest

from chathub.core.exceptions import (
    ConversationNotFoundError,
    MessageNotFoundError,
    ProviderNotConfiguredError,
    ProviderSendError,
    ProviderTimeoutError,
)
from chathub.schemas.message import Attachment
from chathub.schemas.provider import Provider
from chathub.utils.message_orchestrator import MessageOrchestrator, message_to_turn

USER = "u1"


@pytest.fixture
def orchestrator(store, stub_providers):
    return MessageOrchestrator(store, stub_providers)


@pytest.fixture
def conversation(store):
    return store.create_conversation("Chat", "openai", user_id=USER)


def test_first_message_round_trip(orchestrator, store, stub_providers, conversation):
    store.set_api_key(USER, "openai", "sk-live")

    result = orchestrator.send_user_message(USER, conversation.id, "Hello")

    assert result.user_message.role == "user"
    assert result.user_message.content == "Hello"
    assert result.assistant_message.role == "assistant"
    assert result.assistant_message.content == "Hi! How can I help?"
    assert result.assistant_message.metadata == {
        "provider": "openai",
        "model": "gpt-4o",
        "usage": {"promptTokens": 5, "completionTokens": 7, "totalTokens": 12},
    }

    call = stub_providers.calls[-1]
    assert call["api_key"] == "sk-live"
    assert call["model"] == "gpt-4o"
    assert [t.content for t in call["messages"]] == ["Hello"]

    assert [m.id for m in store.list_messages(conversation.id)] == [
        result.user_message.id,
        result.assistant_message.id,
    ]
    assert store.get_conversation(conversation.id).updated_at > conversation.updated_at


def test_history_includes_earlier_turns(orchestrator, store, stub_providers, conversation):
    store.set_api_key(USER, "openai", "sk-live")
    orchestrator.send_user_message(USER, conversation.id, "one")
    orchestrator.send_user_message(USER, conversation.id, "two")

    sent = stub_providers.calls[-1]["messages"]
    assert [(t.role, t.content) for t in sent] == [
        ("user", "one"),
        ("assistant", "Hi! How can I help?"),
        ("user", "two"),
    ]


def test_missing_key_persists_nothing(orchestrator, store, stub_providers, conversation):
    with pytest.raises(ProviderNotConfiguredError) as excinfo:
        orchestrator.send_user_message(USER, conversation.id, "Hello")

    assert str(excinfo.value) == "API key not configured for openai"
    assert store.list_messages(conversation.id) == []
    assert stub_providers.calls == []


def test_provider_failure_keeps_user_message(orchestrator, store, stub_providers, conversation):
    store.set_api_key(USER, "openai", "sk-bad")
    stub_providers.error = ProviderSendError("openai", "Incorrect API key provided")

    with pytest.raises(ProviderSendError) as excinfo:
        orchestrator.send_user_message(USER, conversation.id, "Hello")

    messages = store.list_messages(conversation.id)
    assert [(m.role, m.content) for m in messages] == [("user", "Hello")]
    assert excinfo.value.user_message.id == messages[0].id


def test_timeout_keeps_user_message(orchestrator, store, stub_providers, conversation):
    store.set_api_key(USER, "openai", "sk")
    stub_providers.error = ProviderTimeoutError("openai", "timed out")

    with pytest.raises(ProviderTimeoutError) as excinfo:
        orchestrator.send_user_message(USER, conversation.id, "Hello?")
    assert excinfo.value.user_message.content == "Hello?"
    assert len(store.list_messages(conversation.id)) == 1


def test_conversation_of_another_user_is_not_found(orchestrator, store):
    foreign = store.create_conversation("theirs", "openai", user_id="someone-else")
    store.set_api_key(USER, "openai", "sk")
    with pytest.raises(ConversationNotFoundError):
        orchestrator.send_user_message(USER, foreign.id, "Hi")
    with pytest.raises(ConversationNotFoundError):
        orchestrator.send_user_message(USER, "missing", "Hi")


def test_provider_switch_uses_new_key_and_default_model(
    orchestrator, store, stub_providers, conversation
):
    store.set_api_key(USER, "openai", "sk-openai")
    store.set_api_key(USER, "anthropic", "sk-ant")
    store.update_conversation(
        conversation.id, provider="anthropic", model="claude-sonnet-4-20250514"
    )

    result = orchestrator.send_user_message(USER, conversation.id, "Bonjour")

    call = stub_providers.calls[-1]
    assert call["provider"] == Provider.ANTHROPIC
    assert call["api_key"] == "sk-ant"
    assert result.assistant_message.metadata["provider"] == "anthropic"


def test_images_and_attachments_are_stored_and_sent(
    orchestrator, store, stub_providers, conversation
):
    store.set_api_key(USER, "openai", "sk")
    attachment = Attachment(type="txt", name="notes.txt", content="remember the milk")

    result = orchestrator.send_user_message(
        USER, conversation.id, "Summarize", images=["aW1n"], attachments=[attachment]
    )

    stored = result.user_message
    assert stored.content == "Summarize"
    assert stored.metadata["images"] == ["aW1n"]
    assert stored.metadata["attachments"] == [
        {"type": "txt", "name": "notes.txt", "content": "remember the milk"}
    ]
    turn = stub_providers.calls[-1]["messages"][0]
    assert turn.images == ["aW1n"]
    assert turn.content == "Summarize\n\n[Attachment: notes.txt]\nremember the milk"


def test_message_to_turn_without_metadata(store, conversation):
    message = store.create_message(conversation.id, "assistant", "plain")
    turn = message_to_turn(message)
    assert turn.role == "assistant"
    assert turn.content == "plain"
    assert turn.images is None


def test_reply_without_usage_has_no_usage_metadata(
    orchestrator, store, stub_providers, conversation
):
    store.set_api_key(USER, "openai", "sk")
    stub_providers.usage = None
    result = orchestrator.send_user_message(USER, conversation.id, "Hi")
    assert "usage" not in result.assistant_message.metadata


def test_regenerate_replaces_reply_in_place(orchestrator, store, stub_providers, conversation):
    store.set_api_key(USER, "openai", "sk")
    first = orchestrator.send_user_message(USER, conversation.id, "Tell a joke")
    orchestrator.send_user_message(USER, conversation.id, "Another")

    stub_providers.reply_content = "A better joke"
    updated = orchestrator.regenerate_reply(
        USER, conversation.id, first.assistant_message.id
    )

    assert updated.id == first.assistant_message.id
    assert updated.content == "A better joke"
    assert updated.created_at == first.assistant_message.created_at
    sent = stub_providers.calls[-1]["messages"]
    assert [t.content for t in sent] == ["Tell a joke"]
    assert len(store.list_messages(conversation.id)) == 4


def test_regenerate_rejects_user_messages(orchestrator, store, conversation):
    store.set_api_key(USER, "openai", "sk")
    result = orchestrator.send_user_message(USER, conversation.id, "Hi")
    with pytest.raises(ValueError):
        orchestrator.regenerate_reply(USER, conversation.id, result.user_message.id)


def test_regenerate_needs_preceding_history(orchestrator, store, conversation):
    store.set_api_key(USER, "openai", "sk")
    lonely = store.create_message(conversation.id, "assistant", "Welcome!")
    with pytest.raises(ValueError):
        orchestrator.regenerate_reply(USER, conversation.id, lonely.id)


def test_edit_and_delete_message(orchestrator, store, conversation):
    message = store.create_message(conversation.id, "user", "tpyo")

    edited = orchestrator.edit_message(USER, conversation.id, message.id, "typo")
    assert edited.content == "typo"
    assert edited.role == "user"

    orchestrator.delete_message(USER, conversation.id, message.id)
    assert store.get_message(message.id) is None
    with pytest.raises(MessageNotFoundError):
        orchestrator.delete_message(USER, conversation.id, message.id)


def test_message_must_belong_to_conversation(orchestrator, store, conversation):
    other = store.create_conversation("other", "openai", user_id=USER)
    message = store.create_message(other.id, "user", "elsewhere")
    with pytest.raises(MessageNotFoundError):
        orchestrator.edit_message(USER, conversation.id, message.id, "moved")
