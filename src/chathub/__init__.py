"""ChatHub: one REST API in front of many hosted LLM providers."""

__version__ = "1.0.0"
