"""OpenAI-compatible chat-completion adapter.

OpenAI and every third party that mimics its API (Cerebras, SambaNova,
Mistral, xAI, Perplexity, Together, Fireworks) go through this one adapter,
parameterized by the registry's ``base_url``.
"""

from typing import Any, Dict

import openai
from langchain_openai import ChatOpenAI

from chathub.config import TEMPERATURE
from chathub.utils.providers.langchain_chat import LangChainChatAdapter


class OpenAICompatibleAdapter(LangChainChatAdapter):
    timeout_errors = (openai.APITimeoutError,)

    def _build_llm(self, api_key: str, model: str) -> ChatOpenAI:
        kwargs: Dict[str, Any] = {
            "model": model,
            "api_key": api_key,
            "temperature": TEMPERATURE,
            "timeout": self.config.timeout,
            "max_retries": 0,
        }
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        if self.config.max_tokens:
            kwargs["max_tokens"] = self.config.max_tokens
        return ChatOpenAI(**kwargs)
