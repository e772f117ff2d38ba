"""Bounded-size prompt context built from the open document, the selection and ranked notes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from vaultchat.config import AppConfig
from vaultchat.errors import DocumentStoreError
from vaultchat.index.search import Ranker, SearchResult
from vaultchat.ingestion.vault import DocumentStore

CONTEXT_SEPARATOR = "\n\n---\n\n"

LOGGER = logging.getLogger(__name__)


def truncate_context(context: str, max_length: int) -> str:
    """Keep the first ``max_length`` characters; cutting mid-word is fine."""
    if len(context) <= max_length:
        return context
    return context[:max_length]


def format_current_document(path: str, content: str) -> str:
    return (
        f"::: Current Opened Document Path :::\n{path}\n\n"
        f"::: Current Opened Document Content :::\n{content}\n"
    )


def format_selected_text(text: str) -> str:
    if not text:
        return ""
    return f"::: Selected Text :::\n{text}\n"


def format_result(result: SearchResult) -> str:
    """Render a ranked note; in chunk mode only its matching sections are included."""
    matching = sorted(
        (item.chunk for item in result.chunks if item.score > 0),
        key=lambda chunk: chunk.start_line,
    )
    content = "".join(chunk.content for chunk in matching) if matching else result.content
    return f"::: Document Path :::\n{result.doc_id}\n\n::: Document Content :::\n{content}\n"


@dataclass(slots=True)
class AssembledContext:
    text: str
    results: List[SearchResult] = field(default_factory=list)
    truncated: bool = False


class ContextAssembler:
    """Composes the context blocks in a fixed order and truncates the result."""

    def __init__(
        self,
        ranker: Ranker,
        store: DocumentStore,
        *,
        max_context_length: int = 4000,
    ) -> None:
        self.ranker = ranker
        self.store = store
        self.max_context_length = max_context_length

    @classmethod
    def from_config(cls, ranker: Ranker, store: DocumentStore, config: AppConfig) -> "ContextAssembler":
        return cls(ranker, store, max_context_length=config.max_context_length)

    def _current_document_block(self, doc_id: str | None) -> str:
        if not doc_id:
            return ""
        try:
            content = self.store.read(doc_id)
        except DocumentStoreError as exc:
            LOGGER.warning("Current document unavailable: %s", exc)
            return ""
        return format_current_document(doc_id, content)

    def build(
        self,
        query: str,
        *,
        current_document: str | None = None,
        selected_text: str = "",
    ) -> AssembledContext:
        results = self.ranker.rank(query)
        blocks = [
            self._current_document_block(current_document),
            format_selected_text(selected_text),
            *(format_result(result) for result in results),
        ]
        context = CONTEXT_SEPARATOR.join(blocks)
        text = truncate_context(context, self.max_context_length)
        if len(text) < len(context):
            LOGGER.debug("Context truncated from %d to %d characters", len(context), len(text))
        return AssembledContext(text=text, results=results, truncated=len(text) < len(context))

    def assemble(
        self,
        query: str,
        *,
        current_document: str | None = None,
        selected_text: str = "",
    ) -> str:
        return self.build(query, current_document=current_document, selected_text=selected_text).text
