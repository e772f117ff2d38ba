"""Selects the language model service implementation for a platform id."""

from __future__ import annotations

from typing import Callable, Dict

from vaultchat.llm.base import LLMService
from vaultchat.llm.gemini import GeminiService

SERVICES: Dict[str, Callable[[str], LLMService]] = {
    "gemini": GeminiService,
}


def create_service(platform: str, api_key: str) -> LLMService:
    try:
        service_cls = SERVICES[platform]
    except KeyError:
        raise ValueError(f"Unsupported LLM platform: {platform!r}") from None
    return service_cls(api_key)
