"""Language model services."""

from vaultchat.llm.base import LLM_PLATFORMS, RULE_TEXT, LLMService, get_platform_models
from vaultchat.llm.factory import create_service
from vaultchat.llm.gemini import GeminiService

__all__ = [
    "LLM_PLATFORMS",
    "RULE_TEXT",
    "GeminiService",
    "LLMService",
    "create_service",
    "get_platform_models",
]
