from .base import Base
from .user import UserModel
from .conversation import ConversationModel
from .message import MessageModel
from .api_key import ApiKeyModel

__all__ = [
    "Base",
    "UserModel",
    "ConversationModel",
    "MessageModel",
    "ApiKeyModel",
]
