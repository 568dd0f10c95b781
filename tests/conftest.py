import os

# Must be set before chathub.config is imported
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("API_KEY_ENCRYPTION_KEY", "")

from types import SimpleNamespace
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chathub.app import app
from chathub.config import MOCK_USER_ID
from chathub.core.dependencies import get_provider_service, get_store, get_user_manager
from chathub.models.base import Base
from chathub.schemas.provider import ChatTurn, NormalizedReply, TokenUsage
from chathub.utils.conversation_store import MemoryConversationStore
from chathub.utils.providers import ProviderService
from chathub.utils.providers import (
    anthropic_adapter,
    cohere_adapter,
    google_adapter,
    huggingface_adapter,
    openai_compatible,
)
from chathub.utils.sql_store import SQLConversationStore
from chathub.utils.user_manager import UserManager


@pytest.fixture
def memory_store():
    return MemoryConversationStore()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_store(db_session):
    return SQLConversationStore(db_session, cipher=None)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs a test once per store implementation."""
    return request.getfixturevalue(f"{request.param}_store")


class StubProviderService(ProviderService):
    """Real registry, canned replies. Records every send."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.reply_content = "Hi! How can I help?"
        self.usage: Optional[TokenUsage] = TokenUsage(
            prompt_tokens=5, completion_tokens=7, total_tokens=12
        )
        self.error: Optional[Exception] = None

    def send_message(self, provider, api_key, messages: List[ChatTurn], model=None):
        adapter = self.get_adapter(provider)
        self.calls.append(
            {"provider": adapter.provider, "api_key": api_key, "messages": messages, "model": model}
        )
        if self.error is not None:
            raise self.error
        return NormalizedReply(
            content=self.reply_content,
            model=model or adapter.config.default_model,
            provider=adapter.provider,
            usage=self.usage,
        )


@pytest.fixture
def stub_providers():
    return StubProviderService()


@pytest.fixture
def client(memory_store, stub_providers):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_provider_service] = lambda: stub_providers
    # Cheap bcrypt rounds keep the mock-user bootstrap fast
    app.dependency_overrides[get_user_manager] = lambda: UserManager(memory_store, rounds=4)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return MOCK_USER_ID


# --- SDK fakes -------------------------------------------------------------


class FakeChatModel:
    """Records constructor kwargs and the messages of each invoke."""

    instances: list = []
    response = None
    error: Optional[BaseException] = None
    on_invoke: Optional[Callable[[], None]] = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.messages = None
        type(self).instances.append(self)

    def invoke(self, messages):
        self.messages = messages
        cls = type(self)
        if cls.on_invoke is not None:
            cls.on_invoke()
        if cls.error is not None:
            raise cls.error
        return cls.response

    @classmethod
    def reset(cls, content):
        cls.instances = []
        cls.error = None
        cls.on_invoke = None
        cls.response = AIMessage(
            content=content,
            usage_metadata={"input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
        )


class FakeChatOpenAI(FakeChatModel):
    pass


class FakeChatGoogle(FakeChatModel):
    pass


class FakeAnthropic:
    instances: list = []
    error: Optional[BaseException] = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.create_kwargs = None
        self.messages = SimpleNamespace(create=self._create)
        FakeAnthropic.instances.append(self)

    def _create(self, **kwargs):
        self.create_kwargs = kwargs
        if FakeAnthropic.error is not None:
            raise FakeAnthropic.error
        return SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Bonjour"),
                SimpleNamespace(type="text", text=" !"),
            ],
            usage=SimpleNamespace(input_tokens=4, output_tokens=6),
        )


class FakeInferenceClient:
    instances: list = []
    error: Optional[BaseException] = None

    def __init__(self, model=None, token=None, timeout=None):
        self.model = model
        self.token = token
        self.timeout = timeout
        self.prompt = None
        FakeInferenceClient.instances.append(self)

    def text_generation(self, prompt, **kwargs):
        self.prompt = prompt
        self.kwargs = kwargs
        if FakeInferenceClient.error is not None:
            raise FakeInferenceClient.error
        return " I am a llama. "


class FakeCohereClient:
    instances: list = []

    def __init__(self, api_key=None, timeout=None):
        self.api_key = api_key
        self.chat_kwargs = None
        FakeCohereClient.instances.append(self)

    def chat(self, **kwargs):
        self.chat_kwargs = kwargs
        return SimpleNamespace(text="Cohere reply")


@pytest.fixture
def fake_sdks(monkeypatch):
    """Replace every provider SDK entry point with an in-process fake."""
    FakeChatOpenAI.reset("Hello from OpenAI")
    FakeChatGoogle.reset(" Gemini says hi ")
    FakeAnthropic.instances = []
    FakeAnthropic.error = None
    FakeInferenceClient.instances = []
    FakeInferenceClient.error = None
    FakeCohereClient.instances = []

    monkeypatch.setattr(openai_compatible, "ChatOpenAI", FakeChatOpenAI)
    monkeypatch.setattr(anthropic_adapter.anthropic, "Anthropic", FakeAnthropic)
    monkeypatch.setattr(google_adapter, "ChatGoogleGenerativeAI", FakeChatGoogle)
    monkeypatch.setattr(huggingface_adapter, "InferenceClient", FakeInferenceClient)
    monkeypatch.setattr(cohere_adapter.cohere, "Client", FakeCohereClient)
    return SimpleNamespace(
        openai=FakeChatOpenAI,
        anthropic=FakeAnthropic,
        google=FakeChatGoogle,
        huggingface=FakeInferenceClient,
        cohere=FakeCohereClient,
    )
