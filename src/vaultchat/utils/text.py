"""Text helpers: sub-word tokenization and heading-based chunking."""

from __future__ import annotations

import logging
import re
from typing import Any, List

import tiktoken

from vaultchat.errors import TokenizationError
from vaultchat.models import Chunk

DEFAULT_ENCODING = "cl100k_base"
HEADING_RE = re.compile(r"^#[ \t]+\S")

LOGGER = logging.getLogger(__name__)


class Tokenizer:
    """Deterministic text to token-string converter backed by tiktoken.

    Each whitespace separated word is BPE-encoded on its own, so a word maps to
    the same token ids wherever it appears in a line. Token ids are returned as
    strings; no stemming or stop-word removal is applied.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING, *, encoding: Any = None) -> None:
        self.encoding_name = encoding_name
        self._encoding = encoding

    @property
    def encoding(self) -> Any:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
        return self._encoding

    def _encode(self, text: str) -> List[str]:
        try:
            encoding = self.encoding
        except Exception as exc:
            raise TokenizationError(f"Could not load encoding {self.encoding_name}: {exc}") from exc
        tokens: List[str] = []
        try:
            for word in text.split():
                tokens.extend(str(token) for token in encoding.encode_ordinary(word))
        except (TypeError, ValueError) as exc:
            raise TokenizationError(f"Could not tokenize text: {exc}") from exc
        return tokens

    def tokenize(self, text: Any) -> List[str]:
        """Return the token sequence for ``text``; never raises for bad input."""
        if not isinstance(text, str):
            LOGGER.warning("Refusing to tokenize non-text input of type %s", type(text).__name__)
            return []
        if not text:
            return []
        try:
            return self._encode(text)
        except TokenizationError as exc:
            LOGGER.error("%s", exc)
            return []

    __call__ = tokenize


_default_tokenizer: Tokenizer | None = None


def get_tokenizer() -> Tokenizer:
    """Get or create the shared tokenizer (lazy initialization)."""
    global _default_tokenizer
    if _default_tokenizer is None:
        _default_tokenizer = Tokenizer()
    return _default_tokenizer


def tokenize(text: Any) -> List[str]:
    return get_tokenizer().tokenize(text)


def is_heading(line: str) -> bool:
    """True for a top-level Markdown heading (``# Title``)."""
    return bool(HEADING_RE.match(line))


def split_by_headings(text: str, *, doc_id: str = "") -> List[Chunk]:
    """Split a document into chunks at every top-level heading.

    Lines before the first heading form a chunk with an empty title. Joining
    the contents of the returned chunks gives back ``text`` unchanged.
    """
    if not text:
        return []

    lines = text.splitlines(keepends=True)
    chunks: List[Chunk] = []
    start = 0
    title = ""

    for number, line in enumerate(lines):
        if not is_heading(line):
            continue
        if number > start:
            chunks.append(_make_chunk(doc_id, title, lines, start, number))
        start = number
        title = line.lstrip("#").strip()

    chunks.append(_make_chunk(doc_id, title, lines, start, len(lines)))
    return chunks


def _make_chunk(doc_id: str, title: str, lines: List[str], start: int, end: int) -> Chunk:
    return Chunk(
        doc_id=doc_id,
        title=title,
        start_line=start,
        end_line=end,
        content="".join(lines[start:end]),
    )
