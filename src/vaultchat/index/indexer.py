"""Corpus indexing pipeline backed by the JSON cache."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, Iterable, List, Sequence

from vaultchat.errors import DocumentStoreError
from vaultchat.index.scoring import bm25_score, tf_idf_score
from vaultchat.index.storage import JSONCacheStore
from vaultchat.ingestion.vault import DocumentStore
from vaultchat.models import CacheEntry, Document, DocumentInfo
from vaultchat.utils.text import get_tokenizer

LOGGER = logging.getLogger(__name__)

TokenizeFn = Callable[[Any], List[str]]


@dataclass(slots=True)
class CorpusStatistics:
    """Global statistics derived from a set of term sequences."""

    document_frequency: Dict[str, int] = field(default_factory=dict)
    total_documents: int = 0
    average_document_length: float = 0.0

    @classmethod
    def from_terms(cls, term_lists: Iterable[Sequence[str]]) -> "CorpusStatistics":
        df: Counter[str] = Counter()
        total_docs = 0
        total_length = 0
        for terms in term_lists:
            total_docs += 1
            total_length += len(terms)
            df.update(set(terms))
        average = total_length / total_docs if total_docs else 0.0
        return cls(document_frequency=dict(df), total_documents=total_docs, average_document_length=average)


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    processed_files: list[str] = field(default_factory=list)

    def increment(self, status: str, doc_id: str) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.processed_files.append(doc_id)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated)


class CorpusIndex:
    """Keeps per-document term data and corpus statistics in sync with a document store.

    Global statistics reflect the last call to :meth:`recompute_statistics`.
    :meth:`on_document_modified` only refreshes the one document's entry.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: JSONCacheStore,
        *,
        tokenizer: TokenizeFn | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.tokenize: TokenizeFn = tokenizer if tokenizer is not None else get_tokenizer().tokenize
        self._statistics = CorpusStatistics()
        self._doc_locks: Dict[str, threading.Lock] = {}
        self._doc_locks_guard = threading.Lock()
        store.subscribe_on_modify(self.on_document_modified)

    def _lock_for(self, doc_id: str) -> threading.Lock:
        with self._doc_locks_guard:
            return self._doc_locks.setdefault(doc_id, threading.Lock())

    def _build_entry(self, info: DocumentInfo) -> CacheEntry:
        staleness_key = self.store.staleness_key(info.doc_id)
        content = self.store.read(info.doc_id)
        title_terms = self.tokenize(info.title)
        content_terms = self.tokenize(content)
        return CacheEntry(
            title=info.title,
            content=content,
            terms=[*title_terms, *content_terms],
            title_terms=title_terms,
            staleness_key=staleness_key,
        )

    def _score_snapshot(self, entry: CacheEntry) -> None:
        """Score the entry against its own title under the current statistics."""
        stats = self._statistics
        entry.tf_idf_score = tf_idf_score(
            entry.title_terms, entry.terms, stats.document_frequency, stats.total_documents
        )
        entry.bm25_score = bm25_score(
            entry.title_terms,
            entry.terms,
            entry.title_terms,
            stats.document_frequency,
            stats.total_documents,
            stats.average_document_length,
        )

    def load_or_initialize(self) -> IndexStats:
        """Load the cache and add entries for documents it does not know yet."""
        stats = IndexStats()
        self.cache.load()
        try:
            documents = self.store.list_documents()
        except DocumentStoreError as exc:
            LOGGER.error("Failed to list documents, using cached entries only: %s", exc)
            documents = []

        for info in documents:
            if info.doc_id in self.cache:
                stats.increment("skipped", info.doc_id)
                continue
            try:
                LOGGER.debug("Tokenizing: %s", info.doc_id)
                entry = self._build_entry(info)
            except DocumentStoreError as exc:
                LOGGER.error("Skipping %s: %s", info.doc_id, exc)
                stats.increment("failed", info.doc_id)
                continue
            with self._lock_for(info.doc_id):
                self.cache.stage(info.doc_id, entry)
            stats.increment("inserted", info.doc_id)

        self.recompute_statistics()
        return stats

    def on_document_modified(self, doc_id: str) -> str:
        """Re-tokenize one document and write the cache through.

        Corpus statistics are left as they were; call :meth:`recompute_statistics`
        when strict global consistency is required.
        """
        with self._lock_for(doc_id):
            previous = self.cache.get(doc_id)
            title = previous.title if previous is not None else PurePosixPath(doc_id).stem
            try:
                entry = self._build_entry(DocumentInfo(doc_id=doc_id, title=title))
            except DocumentStoreError as exc:
                LOGGER.error("Failed to recompute %s: %s", doc_id, exc)
                return "failed"
            self._score_snapshot(entry)
            self.cache.put(doc_id, entry)
        LOGGER.info("Recomputed term data for %s", doc_id)
        return "updated" if previous is not None else "inserted"

    def refresh(self) -> IndexStats:
        """Recompute documents whose staleness key changed and add new ones."""
        stats = IndexStats()
        try:
            documents = self.store.list_documents()
        except DocumentStoreError as exc:
            LOGGER.error("Failed to list documents: %s", exc)
            return stats

        for info in documents:
            entry = self.cache.get(info.doc_id)
            if entry is not None:
                try:
                    current_key = self.store.staleness_key(info.doc_id)
                except DocumentStoreError as exc:
                    LOGGER.error("Skipping %s: %s", info.doc_id, exc)
                    stats.increment("failed", info.doc_id)
                    continue
                if current_key == entry.staleness_key:
                    stats.increment("skipped", info.doc_id)
                    continue
            stats.increment(self.on_document_modified(info.doc_id), info.doc_id)

        if stats.changed:
            self.recompute_statistics()
        return stats

    def prune(self) -> int:
        """Drop cache entries whose documents are gone from the store."""
        try:
            present = {info.doc_id for info in self.store.list_documents()}
        except DocumentStoreError as exc:
            LOGGER.error("Failed to list documents, nothing pruned: %s", exc)
            return 0
        missing = [doc_id for doc_id in self.cache.doc_ids() if doc_id not in present]
        removed = self.cache.remove(missing)
        if removed:
            self.recompute_statistics()
        return removed

    def recompute_statistics(self) -> CorpusStatistics:
        """Re-derive global statistics and score snapshots from every cache entry."""
        with self.cache.transaction() as entries:
            self._statistics = CorpusStatistics.from_terms(entry.terms for entry in entries.values())
            for entry in entries.values():
                self._score_snapshot(entry)
        LOGGER.debug(
            "Corpus statistics: %d documents, %d terms, avg length %.2f",
            self._statistics.total_documents,
            len(self._statistics.document_frequency),
            self._statistics.average_document_length,
        )
        return self._statistics

    @property
    def statistics(self) -> CorpusStatistics:
        return self._statistics

    def document_frequency(self) -> Dict[str, int]:
        return self._statistics.document_frequency

    def total_documents(self) -> int:
        return self._statistics.total_documents

    def average_document_length(self) -> float:
        return self._statistics.average_document_length

    def documents(self) -> List[Document]:
        """Cached documents in scan order."""
        return [entry.to_document(doc_id) for doc_id, entry in self.cache.items()]
