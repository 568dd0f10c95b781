"""Anthropic Messages API adapter."""

from typing import Any, Dict, List, Optional, Tuple

import anthropic

from chathub.schemas.provider import ChatTurn, TokenUsage
from chathub.utils.providers.base import IMAGE_MEDIA_TYPE, ProviderAdapter


class AnthropicAdapter(ProviderAdapter):
    timeout_errors = (anthropic.APITimeoutError,)

    def _to_message(self, turn: ChatTurn) -> Dict[str, Any]:
        images = self._images(turn) if turn.role == "user" else []
        if not images:
            return {"role": turn.role, "content": turn.content}
        content: List[Dict[str, Any]] = [{"type": "text", "text": turn.content}]
        content.extend(
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": IMAGE_MEDIA_TYPE,
                    "data": image,
                },
            }
            for image in images
        )
        return {"role": turn.role, "content": content}

    def _complete(
        self, api_key: str, turns: List[ChatTurn], model: str
    ) -> Tuple[str, Optional[TokenUsage]]:
        client = anthropic.Anthropic(
            api_key=api_key, timeout=self.config.timeout, max_retries=0
        )
        resp = client.messages.create(
            model=model,
            max_tokens=self.config.max_tokens or 4000,
            messages=[self._to_message(t) for t in turns],
        )
        # Anthropic returns a list of content blocks
        text = "".join(
            blk.text for blk in resp.content if getattr(blk, "type", "") == "text"
        )
        usage = None
        if resp.usage is not None:
            usage = TokenUsage(
                prompt_tokens=resp.usage.input_tokens,
                completion_tokens=resp.usage.output_tokens,
                total_tokens=resp.usage.input_tokens + resp.usage.output_tokens,
            )
        return text, usage
