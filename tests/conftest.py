"""Shared fixtures for VaultChat tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Tuple

import pytest

from vaultchat.errors import DocumentStoreError
from vaultchat.index.indexer import CorpusIndex
from vaultchat.index.storage import JSONCacheStore
from vaultchat.models import DocumentInfo
from vaultchat.utils.text import Tokenizer


class FakeEncoding:
    """Word-level stand-in for a tiktoken encoding."""

    def __init__(self) -> None:
        self.vocab: Dict[str, int] = {}

    def encode_ordinary(self, text: str) -> List[int]:
        return [self.vocab.setdefault(text, len(self.vocab))]


class MemoryStore:
    """In-memory document store keyed by document id."""

    def __init__(self, documents: Dict[str, Tuple[str, str]] | None = None) -> None:
        self.documents: Dict[str, Tuple[str, str]] = dict(documents or {})
        self.versions: Dict[str, int] = {doc_id: 0 for doc_id in self.documents}
        self.callbacks: List[Callable[[str], None]] = []
        self.broken: set[str] = set()

    def list_documents(self) -> List[DocumentInfo]:
        return [DocumentInfo(doc_id=doc_id, title=title) for doc_id, (title, _) in self.documents.items()]

    def read(self, doc_id: str) -> str:
        if doc_id in self.broken or doc_id not in self.documents:
            raise DocumentStoreError(f"Cannot read {doc_id}")
        return self.documents[doc_id][1]

    def staleness_key(self, doc_id: str) -> str:
        if doc_id not in self.documents:
            raise DocumentStoreError(f"Unknown {doc_id}")
        return str(self.versions[doc_id])

    def subscribe_on_modify(self, callback: Callable[[str], None]) -> None:
        self.callbacks.append(callback)

    def resolve_link(self, text: str) -> str | None:
        return text if text in self.documents else None

    def write(self, doc_id: str, content: str, title: str | None = None) -> None:
        previous_title = self.documents.get(doc_id, (Path(doc_id).stem, ""))[0]
        self.documents[doc_id] = (title or previous_title, content)
        self.versions[doc_id] = self.versions.get(doc_id, -1) + 1

    def notify(self, doc_id: str) -> None:
        for callback in self.callbacks:
            callback(doc_id)


@pytest.fixture
def fake_tokenizer() -> Tokenizer:
    return Tokenizer(encoding=FakeEncoding())


@pytest.fixture
def use_fake_tokenizer(monkeypatch, fake_tokenizer):
    """Replace the shared tiktoken tokenizer for code that builds its own index."""
    monkeypatch.setattr("vaultchat.utils.text._default_tokenizer", fake_tokenizer)
    return fake_tokenizer


@pytest.fixture
def make_store() -> Callable[..., MemoryStore]:
    return MemoryStore


@pytest.fixture
def make_index(tmp_path, fake_tokenizer):
    """Build a loaded CorpusIndex over a MemoryStore with the given contents."""

    def _make(documents: Dict[str, Tuple[str, str]]) -> CorpusIndex:
        store = MemoryStore(documents)
        index = CorpusIndex(store, JSONCacheStore(tmp_path / "cache.json"), tokenizer=fake_tokenizer)
        index.load_or_initialize()
        return index

    return _make
