"""BM25 and TF-IDF relevance formulas."""

from __future__ import annotations

import math
from collections import Counter
from typing import Mapping, Sequence

# BM25 parameters
K1 = 1.5
B = 0.75
TITLE_WEIGHT = 1.5


def compute_idf(df: int, total_docs: int) -> float:
    """Smoothed inverse document frequency; finite and positive even for df=0."""
    return math.log(1 + (total_docs - df + 0.5) / (df + 0.5))


def tf_idf_score(
    query_terms: Sequence[str],
    doc_terms: Sequence[str],
    df: Mapping[str, int],
    total_docs: int,
) -> float:
    tf = Counter(doc_terms)
    score = 0.0
    for term in query_terms:
        if tf[term]:
            score += tf[term] * compute_idf(df.get(term, 0), total_docs)
    return score


def bm25_score(
    query_terms: Sequence[str],
    doc_terms: Sequence[str],
    title_terms: Sequence[str],
    df: Mapping[str, int],
    total_docs: int,
    avg_doc_length: float,
    *,
    k1: float = K1,
    b: float = B,
    title_weight: float = TITLE_WEIGHT,
) -> float:
    """BM25 over the body plus a weighted BM25 contribution from the title.

    Title matches are normalized by the body length, not the title length.
    """
    tf = Counter(doc_terms)
    title_tf = Counter(title_terms)
    length_ratio = len(doc_terms) / avg_doc_length if avg_doc_length > 0 else 1.0
    norm = k1 * (1 - b + b * length_ratio)
    score = 0.0

    for term in query_terms:
        if not tf[term] and not title_tf[term]:
            continue
        idf = compute_idf(df.get(term, 0), total_docs)
        if tf[term]:
            score += idf * (tf[term] * (k1 + 1)) / (tf[term] + norm)
        if title_tf[term]:
            score += title_weight * idf * (title_tf[term] * (k1 + 1)) / (title_tf[term] + norm)

    return score
