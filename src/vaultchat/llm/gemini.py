"""Google Gemini chat service."""

from __future__ import annotations

import logging
from typing import Any, Iterator, List, Sequence

from google import genai
from google.genai import types

from vaultchat.errors import GenerationError
from vaultchat.models import ConversationTurn

LOGGER = logging.getLogger(__name__)


def to_contents(history: Sequence[ConversationTurn]) -> List[types.Content]:
    """Convert conversation turns into Gemini request contents."""
    return [
        types.Content(role=turn.role, parts=[types.Part(text=part) for part in turn.parts])
        for turn in history
    ]


class GeminiService:
    """Thin wrapper around the ``google-genai`` chat API."""

    platform = "gemini"

    def __init__(self, api_key: str, *, client: Any = None) -> None:
        if client is None:
            if not api_key:
                raise GenerationError("Gemini API key is not configured")
            client = genai.Client(api_key=api_key)
        self._client = client

    def _start_chat(self, history: Sequence[ConversationTurn], model: str) -> Any:
        return self._client.chats.create(model=model, history=to_contents(history))

    def generate(self, query: str, history: Sequence[ConversationTurn], model: str) -> str:
        LOGGER.debug("send_message requested [model: %s, history: %d]", model, len(history))
        try:
            response = self._start_chat(history, model).send_message(query)
        except Exception as exc:
            raise GenerationError(f"Gemini request failed: {exc}") from exc
        return response.text or ""

    def generate_stream(
        self, query: str, history: Sequence[ConversationTurn], model: str
    ) -> Iterator[str]:
        """Yield text deltas in arrival order; closing the generator stops consumption."""
        LOGGER.debug("send_message_stream requested [model: %s, history: %d]", model, len(history))
        try:
            for chunk in self._start_chat(history, model).send_message_stream(query):
                if chunk.text:
                    yield chunk.text
        except Exception as exc:
            raise GenerationError(f"Gemini streaming request failed: {exc}") from exc
