"""Editor commands built on a chat session."""

from __future__ import annotations

import logging

from vaultchat.chat.history import ChatSession
from vaultchat.errors import GenerationError

CONTINUE_PROMPT = "Continue writing the text above."
FLOWCHART_PROMPT = "Use ```mermaid ``` to draw a flow chart that meets the following requirements:"

LOGGER = logging.getLogger(__name__)


def continue_writing(session: ChatSession, text_before_cursor: str) -> str:
    """Ask the model to continue ``text_before_cursor``."""
    return session.ask(CONTINUE_PROMPT, text_before_cursor)


def fallback_flowchart(request: str) -> str:
    return f"```mermaid\nflowchart TD\n{request}\n```"


def generate_flowchart(session: ChatSession, document: str, request: str) -> str:
    """Mermaid flowchart for ``document``; falls back to a stub chart when generation fails."""
    try:
        return session.ask(FLOWCHART_PROMPT + request, document)
    except GenerationError as exc:
        LOGGER.warning("Flowchart generation failed: %s", exc)
        return fallback_flowchart(request)
