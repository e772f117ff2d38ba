"""Core VaultChat data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal

Role = Literal["user", "model"]


@dataclass(slots=True)
class DocumentInfo:
    """Identity of a document as listed by a document store."""

    doc_id: str
    title: str


@dataclass(slots=True)
class Document:
    """A vault note with its derived term data."""

    doc_id: str
    title: str
    content: str
    terms: List[str]
    title_terms: List[str]
    staleness_key: str = ""


@dataclass(slots=True)
class CacheEntry:
    """Persisted form of a document's derived data."""

    title: str
    content: str
    terms: List[str]
    title_terms: List[str]
    tf_idf_score: float = 0.0
    bm25_score: float = 0.0
    staleness_key: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "terms": list(self.terms),
            "titleTerms": list(self.title_terms),
            "tfIdfScore": self.tf_idf_score,
            "bm25Score": self.bm25_score,
            "stalenessKey": self.staleness_key,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            terms=[str(term) for term in data.get("terms", [])],
            title_terms=[str(term) for term in data.get("titleTerms", [])],
            tf_idf_score=float(data.get("tfIdfScore", 0.0)),
            bm25_score=float(data.get("bm25Score", 0.0)),
            staleness_key=str(data.get("stalenessKey", "")),
        )

    def to_document(self, doc_id: str) -> Document:
        return Document(
            doc_id=doc_id,
            title=self.title,
            content=self.content,
            terms=self.terms,
            title_terms=self.title_terms,
            staleness_key=self.staleness_key,
        )


@dataclass(slots=True)
class Chunk:
    """Heading-delimited section of a document.

    ``end_line`` is exclusive, so the chunks of one document tile its lines.
    """

    doc_id: str
    title: str
    start_line: int
    end_line: int
    content: str
    terms: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ConversationTurn:
    """One entry of the chat history sent to the model."""

    role: Role
    parts: List[str]
    ephemeral: bool = False

    @property
    def text(self) -> str:
        return "".join(self.parts)
