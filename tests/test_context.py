"""Tests for context assembly."""

from __future__ import annotations

import pytest

from vaultchat.config import AppConfig
from vaultchat.context import (
    CONTEXT_SEPARATOR,
    ContextAssembler,
    format_current_document,
    format_result,
    format_selected_text,
    truncate_context,
)
from vaultchat.index.search import Ranker, ScoredChunk, SearchResult
from vaultchat.models import Chunk

NOTES = {
    "fruit/apple.md": ("apple", "apple pie recipe"),
    "fruit/banana.md": ("banana", "banana bread"),
    "open.md": ("open", "what I am reading"),
}


class TestTruncateContext:
    """Test truncate_context."""

    def test_short_context_unchanged(self) -> None:
        assert truncate_context("abc", 10) == "abc"

    def test_exact_length_unchanged(self) -> None:
        assert truncate_context("abcde", 5) == "abcde"

    def test_prefix_of_long_context(self) -> None:
        """A 150 character context cut to 100 keeps exactly its first 100 characters."""
        context = "".join(chr(ord("a") + i % 26) for i in range(150))

        result = truncate_context(context, 100)

        assert len(result) == 100
        assert result == context[:100]

    def test_zero_budget(self) -> None:
        assert truncate_context("abc", 0) == ""


class TestFormatting:
    """Test block rendering."""

    def test_current_document_block(self) -> None:
        block = format_current_document("a/b.md", "body")
        assert block == (
            "::: Current Opened Document Path :::\na/b.md\n\n"
            "::: Current Opened Document Content :::\nbody\n"
        )

    def test_selected_text_block(self) -> None:
        assert format_selected_text("picked") == "::: Selected Text :::\npicked\n"
        assert format_selected_text("") == ""

    def test_result_block(self) -> None:
        result = SearchResult(doc_id="n.md", title="n", score=1.0, content="full text")
        assert format_result(result) == "::: Document Path :::\nn.md\n\n::: Document Content :::\nfull text\n"

    def test_result_block_with_chunks(self) -> None:
        """Matching chunks are rendered in document order, zero-score chunks omitted."""
        first = Chunk(doc_id="n.md", title="A", start_line=0, end_line=1, content="# A\n")
        second = Chunk(doc_id="n.md", title="B", start_line=1, end_line=2, content="# B\n")
        third = Chunk(doc_id="n.md", title="C", start_line=2, end_line=3, content="# C\n")
        result = SearchResult(
            doc_id="n.md",
            title="n",
            score=1.0,
            content="# A\n# B\n# C\n",
            chunks=[ScoredChunk(second, 2.0), ScoredChunk(first, 1.0), ScoredChunk(third, 0.0)],
        )

        assert "::: Document Content :::\n# A\n# B\n\n" in format_result(result)


class TestContextAssembler:
    """Test ContextAssembler block ordering and truncation."""

    @pytest.fixture
    def assembler(self, make_index) -> ContextAssembler:
        index = make_index(NOTES)
        return ContextAssembler(Ranker(index), index.store, max_context_length=10_000)

    def test_block_order(self, assembler: ContextAssembler) -> None:
        """Current document, then selection, then ranked results."""
        context = assembler.assemble("apple", current_document="open.md", selected_text="chosen words")

        blocks = context.split(CONTEXT_SEPARATOR)
        assert blocks[0].startswith("::: Current Opened Document Path :::\nopen.md")
        assert "what I am reading" in blocks[0]
        assert blocks[1] == "::: Selected Text :::\nchosen words\n"
        assert blocks[2].startswith("::: Document Path :::\nfruit/apple.md")
        assert len(blocks) == 3

    def test_empty_blocks_are_kept(self, assembler: ContextAssembler) -> None:
        """Missing current document and selection leave empty leading blocks."""
        context = assembler.assemble("banana")

        assert context.startswith(CONTEXT_SEPARATOR * 2 + "::: Document Path :::\nfruit/banana.md")

    def test_truncation(self, make_index) -> None:
        index = make_index(NOTES)
        assembler = ContextAssembler(Ranker(index), index.store, max_context_length=100)
        full = ContextAssembler(Ranker(index), index.store, max_context_length=10_000)

        built = assembler.build("apple banana", current_document="open.md")
        untruncated = full.assemble("apple banana", current_document="open.md")

        assert len(untruncated) > 100
        assert built.text == untruncated[:100]
        assert built.truncated

    def test_empty_corpus_keeps_current_and_selected(self, make_index) -> None:
        index = make_index({})
        index.store.write("open.md", "draft")
        assembler = ContextAssembler(Ranker(index), index.store)

        built = assembler.build("anything", current_document="open.md", selected_text="sel")

        assert built.results == []
        assert built.text == (
            format_current_document("open.md", "draft")
            + CONTEXT_SEPARATOR
            + format_selected_text("sel")
        )

    def test_unreadable_current_document(self, assembler: ContextAssembler) -> None:
        """A current document that cannot be read becomes an empty block."""
        context = assembler.assemble("apple", current_document="missing.md")

        assert context.startswith(CONTEXT_SEPARATOR)

    def test_from_config(self, make_index) -> None:
        index = make_index(NOTES)
        assembler = ContextAssembler.from_config(Ranker(index), index.store, AppConfig(max_context_length=42))

        assert assembler.max_context_length == 42
