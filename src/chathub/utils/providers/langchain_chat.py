"""Shared base for adapters backed by a LangChain chat model.

Subclasses only build the chat model; history conversion, the call and
usage extraction are common. Each call builds its own model instance, so the
credential never lives in shared state.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from chathub.schemas.provider import ChatTurn, TokenUsage
from chathub.utils.providers.base import IMAGE_MEDIA_TYPE, ProviderAdapter


class LangChainChatAdapter(ProviderAdapter):
    @abstractmethod
    def _build_llm(self, api_key: str, model: str) -> BaseChatModel:
        """Return a chat model bound to ``api_key`` and ``model``."""

    def _to_message(self, turn: ChatTurn) -> BaseMessage:
        if turn.role == "assistant":
            return AIMessage(content=turn.content)
        images = self._images(turn)
        if not images:
            return HumanMessage(content=turn.content)
        parts: List[Union[str, Dict[str, Any]]] = [{"type": "text", "text": turn.content}]
        parts.extend(
            {
                "type": "image_url",
                "image_url": {"url": f"data:{IMAGE_MEDIA_TYPE};base64,{image}"},
            }
            for image in images
        )
        return HumanMessage(content=parts)

    def _complete(
        self, api_key: str, turns: List[ChatTurn], model: str
    ) -> Tuple[str, Optional[TokenUsage]]:
        llm = self._build_llm(api_key, model)
        response = llm.invoke([self._to_message(t) for t in turns])

        usage = None
        if response.usage_metadata:
            usage = TokenUsage(
                prompt_tokens=response.usage_metadata["input_tokens"],
                completion_tokens=response.usage_metadata["output_tokens"],
                total_tokens=response.usage_metadata["total_tokens"],
            )
        return _text_of(response.content).strip(), usage


def _text_of(content: Union[str, List[Any]]) -> str:
    if isinstance(content, str):
        return content
    return "".join(
        block if isinstance(block, str) else block.get("text", "")
        for block in content
    )
