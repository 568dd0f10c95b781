"""Provider adapter layer."""

from chathub.utils.providers.base import ProviderAdapter, ProviderConfig
from chathub.utils.providers.service import ProviderService, make_adapter

__all__ = ["ProviderAdapter", "ProviderConfig", "ProviderService", "make_adapter"]
