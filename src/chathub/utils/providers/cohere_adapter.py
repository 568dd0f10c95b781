"""Cohere chat adapter.

The last turn is sent as ``message`` and the earlier ones as
``chat_history`` in Cohere's USER/CHATBOT vocabulary. Images are ignored.
"""

from typing import Dict, List, Optional, Tuple

import cohere
import httpx

from chathub.schemas.provider import ChatTurn, TokenUsage
from chathub.utils.providers.base import ProviderAdapter

COHERE_ROLES = {"user": "USER", "assistant": "CHATBOT"}


class CohereAdapter(ProviderAdapter):
    timeout_errors = (httpx.TimeoutException,)

    def _complete(
        self, api_key: str, turns: List[ChatTurn], model: str
    ) -> Tuple[str, Optional[TokenUsage]]:
        if not turns:
            raise ValueError("Cohere requires at least one turn")
        *earlier, last = turns
        chat_history: List[Dict[str, str]] = [
            {"role": COHERE_ROLES[t.role], "message": t.content} for t in earlier
        ]
        client = cohere.Client(api_key=api_key, timeout=self.config.timeout)
        response = client.chat(
            model=model,
            message=last.content,
            chat_history=chat_history or None,
        )
        return response.text or "", None
