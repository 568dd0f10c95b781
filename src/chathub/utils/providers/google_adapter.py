"""Google Gemini adapter.

The key is passed to each ``ChatGoogleGenerativeAI`` instance, so concurrent
requests with different keys run independently. LangChain maps assistant
turns to Gemini's ``model`` role and data-URI images to inline parts.
"""

from typing import Any, Dict

import httpx
from google.api_core.exceptions import DeadlineExceeded
from langchain_google_genai import ChatGoogleGenerativeAI

from chathub.config import TEMPERATURE
from chathub.utils.providers.langchain_chat import LangChainChatAdapter


class GoogleAdapter(LangChainChatAdapter):
    timeout_errors = (DeadlineExceeded, httpx.TimeoutException)

    def _build_llm(self, api_key: str, model: str) -> ChatGoogleGenerativeAI:
        kwargs: Dict[str, Any] = {
            "model": model,
            "google_api_key": api_key,
            "temperature": TEMPERATURE,
            "timeout": self.config.timeout,
            "max_retries": 0,
        }
        if self.config.max_tokens:
            kwargs["max_output_tokens"] = self.config.max_tokens
        return ChatGoogleGenerativeAI(**kwargs)
