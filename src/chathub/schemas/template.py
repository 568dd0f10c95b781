from chathub.schemas.base import CamelModel


class ChatTemplate(CamelModel):
    """A canned system prompt offered when starting a chat."""

    id: str
    name: str
    description: str
    prompt: str
    category: str
