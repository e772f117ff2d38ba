"""Lexical ranking over the cached corpus."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from vaultchat.config import AppConfig
from vaultchat.errors import RankingInputError
from vaultchat.index.indexer import CorpusIndex
from vaultchat.index.scoring import bm25_score, tf_idf_score
from vaultchat.models import Chunk, Document
from vaultchat.utils.text import split_by_headings

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScoredChunk:
    chunk: Chunk
    score: float


@dataclass(slots=True)
class SearchResult:
    doc_id: str
    title: str
    score: float
    content: str
    chunks: List[ScoredChunk] = field(default_factory=list)


class Ranker:
    """Scores every cached document (or its chunks) against a query.

    Results are sorted by descending score with ties kept in scan order,
    entries scoring zero are dropped and at most ``document_num`` are returned.
    """

    def __init__(
        self,
        index: CorpusIndex,
        *,
        algorithm: str = "BM25",
        document_num: int = 5,
        chunk_enabled: bool = False,
        chunk_num: int = 3,
    ) -> None:
        self.index = index
        self.algorithm = algorithm
        self.document_num = document_num
        self.chunk_enabled = chunk_enabled
        self.chunk_num = chunk_num
        # doc_id -> (content the chunks were built from, chunks)
        self._chunk_cache: Dict[str, Tuple[str, List[Chunk]]] = {}

    @classmethod
    def from_config(cls, index: CorpusIndex, config: AppConfig) -> "Ranker":
        return cls(
            index,
            algorithm=config.search_algorithm,
            document_num=config.document_num,
            chunk_enabled=config.chunk_enabled,
            chunk_num=config.chunk_num,
        )

    def score_terms(
        self, query_terms: Sequence[str], terms: Sequence[str], title_terms: Sequence[str]
    ) -> float:
        stats = self.index.statistics
        if self.algorithm == "BM25":
            return bm25_score(
                query_terms,
                terms,
                title_terms,
                stats.document_frequency,
                stats.total_documents,
                stats.average_document_length,
            )
        return tf_idf_score(query_terms, terms, stats.document_frequency, stats.total_documents)

    def _chunks_for(self, document: Document) -> List[Chunk]:
        cached = self._chunk_cache.get(document.doc_id)
        if cached is not None and cached[0] == document.content:
            return cached[1]
        chunks = split_by_headings(document.content, doc_id=document.doc_id)
        for chunk in chunks:
            chunk.terms = self.index.tokenize(chunk.content)
        self._chunk_cache[document.doc_id] = (document.content, chunks)
        return chunks

    def _score_chunked(self, query_terms: Sequence[str], document: Document) -> SearchResult:
        scored = [
            ScoredChunk(chunk, self.score_terms(query_terms, chunk.terms, document.title_terms))
            for chunk in self._chunks_for(document)
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        top = scored[: self.chunk_num]
        score = float(np.mean([item.score for item in top])) if top else 0.0
        return SearchResult(
            doc_id=document.doc_id,
            title=document.title,
            score=score,
            content=document.content,
            chunks=top,
        )

    def _score_whole(self, query_terms: Sequence[str], document: Document) -> SearchResult:
        return SearchResult(
            doc_id=document.doc_id,
            title=document.title,
            score=self.score_terms(query_terms, document.terms, document.title_terms),
            content=document.content,
        )

    def _documents(self) -> List[Document]:
        documents = self.index.documents()
        if not documents:
            raise RankingInputError("The corpus is empty")
        return documents

    def rank(self, query: str) -> List[SearchResult]:
        try:
            documents = self._documents()
        except RankingInputError as exc:
            LOGGER.warning("%s, no documents to rank", exc)
            return []

        query_terms = self.index.tokenize(query)
        score_fn = self._score_chunked if self.chunk_enabled else self._score_whole
        results = [score_fn(query_terms, document) for document in documents]
        return self._select(results)

    def _select(self, results: List[SearchResult]) -> List[SearchResult]:
        if not results:
            return []
        scores = np.array([result.score for result in results], dtype=float)
        order = np.argsort(-scores, kind="stable")
        selected = [results[idx] for idx in order if scores[idx] > 0]
        return selected[: self.document_num]
