"""Configuration module for the ChatHub service.

This module provides centralized configuration management, including directory
paths, API server settings, storage selection, the LLM provider registry and
application defaults. All scalar values can be overridden via environment
variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.parent.resolve()

DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / "data")))

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,"
    "http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Storage Configuration ---

# "sql" persists through SQLAlchemy, "memory" keeps everything in-process
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "sql").lower()

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/chathub.db")

# Fernet key for API keys at rest. Plain text storage when unset.
API_KEY_ENCRYPTION_KEY: Optional[str] = os.getenv("API_KEY_ENCRYPTION_KEY")

# --- Authentication Configuration ---

# Single fixed user the API acts on behalf of
MOCK_USER_ID: str = os.getenv("MOCK_USER_ID", "user-1")
MOCK_USERNAME: str = os.getenv("MOCK_USERNAME", "demo")
MOCK_PASSWORD: str = os.getenv("MOCK_PASSWORD", "demo")

# --- Conversation Configuration ---

DEFAULT_CONVERSATION_TITLE: str = os.getenv("DEFAULT_CONVERSATION_TITLE", "New Chat")

# Number of visible characters left when an API key is shown to the client
API_KEY_VISIBLE_CHARS = 8
API_KEY_MASK = "•" * 40

# --- LLM Configuration ---

TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.7"))

# Upper bound for a single provider round-trip, in seconds
PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "60"))

# Provider registry. ``kind`` selects the wire protocol family; providers of
# the "openai_compatible" kind differ only in base_url and defaults.
LLM_PROVIDERS: Dict[str, Dict[str, Any]] = {
    "openai": {
        "display_name": "OpenAI",
        "kind": "openai_compatible",
        "base_url": None,
        "default_model": "gpt-4o",
        "models": ["gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo"],
        "supports_images": True,
        "max_tokens": 4000,
    },
    "anthropic": {
        "display_name": "Anthropic",
        "kind": "anthropic",
        "base_url": None,
        "default_model": "claude-sonnet-4-20250514",
        "models": [
            "claude-sonnet-4-20250514",
            "claude-3-7-sonnet-20250219",
            "claude-3-haiku-20240307",
        ],
        "supports_images": True,
        "max_tokens": 4000,
    },
    "google": {
        "display_name": "Google Gemini",
        "kind": "google",
        "base_url": None,
        "default_model": "gemini-2.5-flash",
        "models": ["gemini-2.5-flash", "gemini-2.5-pro", "gemini-1.5-flash"],
        "supports_images": True,
        "max_tokens": None,
    },
    "huggingface": {
        "display_name": "Hugging Face",
        "kind": "huggingface",
        "base_url": None,
        "default_model": "meta-llama/Llama-3.2-11B-Vision-Instruct",
        "models": [
            "meta-llama/Llama-3.2-11B-Vision-Instruct",
            "meta-llama/Llama-3.1-8B-Instruct",
            "microsoft/DialoGPT-medium",
        ],
        "supports_images": False,
        "max_tokens": 1000,
    },
    "cerebras": {
        "display_name": "Cerebras",
        "kind": "openai_compatible",
        "base_url": "https://api.cerebras.ai/v1",
        "default_model": "llama3.1-8b",
        "models": ["llama3.1-8b", "llama3.1-70b"],
        "supports_images": False,
        "max_tokens": 1000,
    },
    "sambanova": {
        "display_name": "SambaNova",
        "kind": "openai_compatible",
        "base_url": "https://api.sambanova.ai/v1",
        "default_model": "Meta-Llama-3.1-8B-Instruct",
        "models": ["Meta-Llama-3.1-8B-Instruct", "Meta-Llama-3.1-70B-Instruct"],
        "supports_images": False,
        "max_tokens": 1000,
    },
    "mistral": {
        "display_name": "Mistral AI",
        "kind": "openai_compatible",
        "base_url": "https://api.mistral.ai/v1",
        "default_model": "mistral-large-latest",
        "models": [
            "mistral-large-latest",
            "mistral-medium-latest",
            "mistral-small-latest",
            "codestral-latest",
        ],
        "supports_images": False,
        "max_tokens": None,
    },
    "cohere": {
        "display_name": "Cohere",
        "kind": "cohere",
        "base_url": None,
        "default_model": "command-r-plus",
        "models": ["command-r-plus", "command-r", "command-light"],
        "supports_images": False,
        "max_tokens": None,
    },
    "xai": {
        "display_name": "xAI",
        "kind": "openai_compatible",
        "base_url": "https://api.x.ai/v1",
        "default_model": "grok-beta",
        "models": ["grok-beta", "grok-vision-beta"],
        "supports_images": False,
        "max_tokens": 1000,
    },
    "perplexity": {
        "display_name": "Perplexity",
        "kind": "openai_compatible",
        "base_url": "https://api.perplexity.ai",
        "default_model": "llama-3.1-sonar-large-128k-online",
        "models": [
            "llama-3.1-sonar-large-128k-online",
            "llama-3.1-sonar-small-128k-online",
            "llama-3.1-sonar-huge-128k-online",
        ],
        "supports_images": False,
        "max_tokens": 1000,
    },
    "together": {
        "display_name": "Together AI",
        "kind": "openai_compatible",
        "base_url": "https://api.together.xyz/v1",
        "default_model": "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
        "models": [
            "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
            "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
            "microsoft/WizardLM-2-8x22B",
        ],
        "supports_images": False,
        "max_tokens": 1000,
    },
    "fireworks": {
        "display_name": "Fireworks AI",
        "kind": "openai_compatible",
        "base_url": "https://api.fireworks.ai/inference/v1",
        "default_model": "accounts/fireworks/models/llama-v3p1-8b-instruct",
        "models": [
            "accounts/fireworks/models/llama-v3p1-8b-instruct",
            "accounts/fireworks/models/mixtral-8x7b-instruct",
            "accounts/fireworks/models/yi-large",
        ],
        "supports_images": False,
        "max_tokens": 1000,
    },
}


def get_default_model(provider: str) -> str:
    """Return the canonical default model for a provider.

    Raises:
        KeyError: If the provider is not in the registry.
    """
    return LLM_PROVIDERS[provider]["default_model"]


# --- Chat Templates ---

CHAT_TEMPLATES: List[Dict[str, str]] = [
    {
        "id": "creative-writing",
        "name": "Creative Writing",
        "description": "Generate creative stories, poems, and narratives",
        "prompt": (
            "You are a creative writing assistant. Help me write engaging and "
            "imaginative content. Focus on vivid descriptions, compelling "
            "characters, and interesting plot developments."
        ),
        "category": "Writing",
    },
    {
        "id": "code-review",
        "name": "Code Review",
        "description": "Review and improve code quality",
        "prompt": (
            "You are an expert code reviewer. Analyze the provided code for "
            "bugs, performance issues, security vulnerabilities, and suggest "
            "improvements. Provide specific feedback with examples."
        ),
        "category": "Programming",
    },
    {
        "id": "business-analysis",
        "name": "Business Analysis",
        "description": "Analyze business problems and strategies",
        "prompt": (
            "You are a business analyst. Help analyze business problems, "
            "identify opportunities, and suggest strategic solutions. Focus on "
            "data-driven insights and practical recommendations."
        ),
        "category": "Business",
    },
    {
        "id": "learning-tutor",
        "name": "Learning Tutor",
        "description": "Personalized learning and explanations",
        "prompt": (
            "You are a patient and knowledgeable tutor. Break down complex "
            "topics into easy-to-understand explanations. Use examples, "
            "analogies, and step-by-step reasoning."
        ),
        "category": "Education",
    },
    {
        "id": "research-assistant",
        "name": "Research Assistant",
        "description": "Help with research and fact-finding",
        "prompt": (
            "You are a research assistant. Help gather information, analyze "
            "sources, and synthesize findings. Provide well-structured research "
            "with citations and key insights."
        ),
        "category": "Research",
    },
    {
        "id": "creative-problem-solving",
        "name": "Creative Problem Solver",
        "description": "Innovative solutions to complex problems",
        "prompt": (
            "You are a creative problem-solving expert. Think outside the box "
            "to find innovative solutions. Use lateral thinking, brainstorming "
            "techniques, and unconventional approaches."
        ),
        "category": "Innovation",
    },
]
