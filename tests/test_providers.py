import base64
import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage

from chathub.config import LLM_PROVIDERS
from chathub.core.exceptions import (
    ConfigurationError,
    ProviderSendError,
    ProviderTimeoutError,
    UnsupportedProviderError,
)
from chathub.schemas.provider import ChatTurn, Provider
from chathub.utils.providers import ProviderService, make_adapter
from chathub.utils.providers.huggingface_adapter import build_transcript

IMAGE = base64.b64encode(b"fake-jpeg-bytes").decode()

HISTORY = [
    ChatTurn(role="user", content="Hello"),
    ChatTurn(role="assistant", content="Hi there"),
    ChatTurn(role="user", content="What is 2+2?"),
]


@pytest.fixture
def service():
    return ProviderService()


def test_registry_covers_every_provider(service):
    assert set(LLM_PROVIDERS) == {p.value for p in Provider}
    assert {info.provider for info in service.list_providers()} == set(Provider)


@pytest.mark.parametrize("provider", list(Provider))
def test_reply_uses_default_model(fake_sdks, service, provider):
    reply = service.send_message(provider, "key-123", HISTORY)
    assert reply.provider == provider
    assert reply.model == LLM_PROVIDERS[provider.value]["default_model"]
    assert reply.content


@pytest.mark.parametrize("provider", list(Provider))
def test_reply_uses_requested_model(fake_sdks, service, provider):
    reply = service.send_message(provider.value, "key-123", HISTORY, model="custom-model")
    assert reply.model == "custom-model"
    assert reply.provider == provider


def test_unknown_provider_is_rejected(service):
    with pytest.raises(UnsupportedProviderError):
        service.send_message("openrouter", "key", HISTORY)
    with pytest.raises(UnsupportedProviderError):
        service.list_models("openrouter")


def test_list_models_is_static(service):
    assert "gemini-2.5-flash" in service.list_models("google")
    assert service.default_model(Provider.GOOGLE) == "gemini-2.5-flash"
    assert service.list_models("openai") == LLM_PROVIDERS["openai"]["models"]


def test_unknown_adapter_kind_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        make_adapter("openai", {**LLM_PROVIDERS["openai"], "kind": "carrier-pigeon"})


def test_openai_maps_roles_and_usage(fake_sdks, service):
    reply = service.send_message("openai", "sk-test", HISTORY)

    llm = fake_sdks.openai.instances[-1]
    assert llm.kwargs["api_key"] == "sk-test"
    assert llm.kwargs["max_retries"] == 0
    assert "base_url" not in llm.kwargs
    assert [type(m) for m in llm.messages] == [HumanMessage, AIMessage, HumanMessage]
    assert reply.content == "Hello from OpenAI"
    assert reply.usage.prompt_tokens == 10
    assert reply.usage.completion_tokens == 5
    assert reply.usage.total_tokens == 15


def test_openai_compatible_providers_use_base_url(fake_sdks, service):
    service.send_message("cerebras", "csk", HISTORY)
    assert fake_sdks.openai.instances[-1].kwargs["base_url"] == "https://api.cerebras.ai/v1"


def test_openai_embeds_images_as_data_urls(fake_sdks, service):
    turns = [ChatTurn(role="user", content="What is this?", images=[IMAGE])]
    service.send_message("openai", "sk", turns)

    content = fake_sdks.openai.instances[-1].messages[0].content
    assert content[0] == {"type": "text", "text": "What is this?"}
    assert content[1]["image_url"]["url"] == f"data:image/jpeg;base64,{IMAGE}"


def test_images_are_dropped_without_image_support(fake_sdks, service):
    turns = [ChatTurn(role="user", content="What is this?", images=[IMAGE])]
    service.send_message("mistral", "key", turns)
    assert fake_sdks.openai.instances[-1].messages[0].content == "What is this?"


def test_openai_joins_block_content(fake_sdks, service):
    fake_sdks.openai.response = AIMessage(
        content=[{"type": "text", "text": "four"}, "!"]
    )
    reply = service.send_message("xai", "key", HISTORY)
    assert reply.content == "four!"
    assert reply.usage is None


def test_anthropic_request_and_reply(fake_sdks, service):
    turns = [ChatTurn(role="user", content="Describe", images=[IMAGE])]
    reply = service.send_message("anthropic", "ant-key", turns)

    client = fake_sdks.anthropic.instances[-1]
    assert client.kwargs["api_key"] == "ant-key"
    assert client.create_kwargs["max_tokens"] == 4000
    blocks = client.create_kwargs["messages"][0]["content"]
    assert blocks[0] == {"type": "text", "text": "Describe"}
    assert blocks[1]["source"] == {
        "type": "base64",
        "media_type": "image/jpeg",
        "data": IMAGE,
    }
    assert reply.content == "Bonjour !"
    assert reply.usage.total_tokens == 10


def test_google_builds_a_keyed_client_per_call(fake_sdks, service):
    reply = service.send_message("google", "g-key", HISTORY)

    llm = fake_sdks.google.instances[-1]
    assert llm.kwargs["google_api_key"] == "g-key"
    assert llm.kwargs["model"] == "gemini-2.5-flash"
    assert llm.kwargs["max_retries"] == 0
    assert [type(m) for m in llm.messages] == [HumanMessage, AIMessage, HumanMessage]
    assert reply.content == "Gemini says hi"
    assert reply.usage.total_tokens == 15


def test_google_embeds_images_as_data_urls(fake_sdks, service):
    turns = [ChatTurn(role="user", content="Look", images=[IMAGE])]
    service.send_message("google", "g-key", turns)

    content = fake_sdks.google.instances[-1].messages[0].content
    assert content[1]["image_url"]["url"] == f"data:image/jpeg;base64,{IMAGE}"


def test_google_calls_run_concurrently(fake_sdks, service):
    # Every call waits until all three are in flight at once
    barrier = threading.Barrier(3, timeout=5)
    fake_sdks.google.on_invoke = barrier.wait

    with ThreadPoolExecutor(max_workers=3) as pool:
        futures = [
            pool.submit(service.send_message, "google", f"key-{i}", HISTORY)
            for i in range(3)
        ]
        replies = [f.result() for f in futures]

    assert [r.content for r in replies] == ["Gemini says hi"] * 3
    assert sorted(i.kwargs["google_api_key"] for i in fake_sdks.google.instances) == [
        "key-0",
        "key-1",
        "key-2",
    ]


def test_huggingface_flattens_history(fake_sdks, service):
    turns = [ChatTurn(role="user", content="Hi", images=[IMAGE])]
    reply = service.send_message("huggingface", "hf-token", turns)

    client = fake_sdks.huggingface.instances[-1]
    assert client.token == "hf-token"
    assert client.prompt == "Human: Hi\nAssistant:"
    assert reply.content == "I am a llama."
    assert reply.usage is None


def test_build_transcript():
    assert build_transcript(HISTORY) == (
        "Human: Hello\nAssistant: Hi there\nHuman: What is 2+2?\nAssistant:"
    )


def test_cohere_splits_last_turn_from_history(fake_sdks, service):
    reply = service.send_message("cohere", "co-key", HISTORY)

    kwargs = fake_sdks.cohere.instances[-1].chat_kwargs
    assert kwargs["message"] == "What is 2+2?"
    assert kwargs["chat_history"] == [
        {"role": "USER", "message": "Hello"},
        {"role": "CHATBOT", "message": "Hi there"},
    ]
    assert reply.content == "Cohere reply"


def test_cohere_single_turn_has_no_history(fake_sdks, service):
    service.send_message("cohere", "co-key", HISTORY[:1])
    assert fake_sdks.cohere.instances[-1].chat_kwargs["chat_history"] is None


def test_sdk_errors_become_send_errors(fake_sdks, service):
    fake_sdks.openai.error = RuntimeError("Incorrect API key provided")
    with pytest.raises(ProviderSendError) as excinfo:
        service.send_message("openai", "bad-key", HISTORY)
    assert not isinstance(excinfo.value, ProviderTimeoutError)
    assert excinfo.value.provider == "openai"
    assert "Incorrect API key" in excinfo.value.detail


def test_sdk_timeouts_become_timeout_errors(fake_sdks, service):
    fake_sdks.openai.error = openai.APITimeoutError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )
    with pytest.raises(ProviderTimeoutError) as excinfo:
        service.send_message("together", "key", HISTORY)
    assert excinfo.value.provider == "together"


def test_builtin_timeout_becomes_timeout_error(fake_sdks, service):
    fake_sdks.anthropic.error = TimeoutError("read timed out")
    with pytest.raises(ProviderTimeoutError) as excinfo:
        service.send_message("anthropic", "key", HISTORY)
    assert excinfo.value.provider == "anthropic"


def test_huggingface_transport_timeout_becomes_timeout_error(fake_sdks, service):
    fake_sdks.huggingface.error = httpx.ReadTimeout("timed out")
    with pytest.raises(ProviderTimeoutError) as excinfo:
        service.send_message("huggingface", "hf-token", HISTORY)
    assert excinfo.value.provider == "huggingface"
