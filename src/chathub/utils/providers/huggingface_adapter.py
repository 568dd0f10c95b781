"""Hugging Face Inference API adapter.

Text generation only: the history is flattened into a Human/Assistant
transcript and images are ignored.
"""

from typing import List, Optional, Tuple

import httpx
from huggingface_hub import InferenceClient, InferenceTimeoutError

from chathub.config import TEMPERATURE
from chathub.schemas.provider import ChatTurn, TokenUsage
from chathub.utils.providers.base import ProviderAdapter


def build_transcript(turns: List[ChatTurn]) -> str:
    lines = [
        f"Human: {t.content}" if t.role == "user" else f"Assistant: {t.content}"
        for t in turns
    ]
    return "\n".join(lines) + "\nAssistant:"


class HuggingFaceAdapter(ProviderAdapter):
    timeout_errors = (InferenceTimeoutError, httpx.TimeoutException)

    def _complete(
        self, api_key: str, turns: List[ChatTurn], model: str
    ) -> Tuple[str, Optional[TokenUsage]]:
        prompt = build_transcript(turns)
        client = InferenceClient(model=model, token=api_key, timeout=self.config.timeout)
        generated = client.text_generation(
            prompt,
            max_new_tokens=self.config.max_tokens or 1000,
            temperature=TEMPERATURE,
        )
        # Some endpoints echo the prompt back
        return generated.replace(prompt, "").strip(), None
