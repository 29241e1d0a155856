"""
TF-IDF relevance scoring over the live in-memory corpus.

Document frequencies are computed from whatever corpus is passed in on
each call; nothing is cached between queries.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from typing import Any

from .models import MemoryRecord
from .text import normalize

#: Results scoring at or below this value are dropped by ``rank``.
MIN_RELEVANCE: float = 0.05

#: Queries shorter than this (after stripping) bypass scoring.
MIN_QUERY_LENGTH: int = 3


def document_terms(record: MemoryRecord) -> list[str]:
    return normalize(record.content + " " + (record.summary or ""))


def score_terms(query_terms: Sequence[str], corpus_terms: Sequence[Sequence[str]]) -> list[float]:
    """
    Score every document in *corpus_terms* against *query_terms*.

    ``tf = count / len(doc)``, ``idf = ln(N / df)`` (0 when the term occurs
    nowhere), and each score is the summed ``tf * idf`` divided by the
    number of query terms.
    """
    n_docs = len(corpus_terms)
    if n_docs == 0:
        return []

    doc_sets = [set(terms) for terms in corpus_terms]
    idf: dict[str, float] = {}
    for term in set(query_terms):
        df = sum(1 for terms in doc_sets if term in terms)
        idf[term] = math.log(n_docs / df) if df else 0.0

    scores: list[float] = []
    for terms in corpus_terms:
        counts = Counter(terms)
        length = max(len(terms), 1)
        total = sum(counts[t] / length * idf[t] for t in query_terms)
        scores.append(total / max(len(query_terms), 1))
    return scores


def score_documents(query: str, records: Sequence[MemoryRecord]) -> list[tuple[MemoryRecord, float]]:
    """Pair each record with its relevance to *query*, preserving corpus order."""
    scores = score_terms(normalize(query), [document_terms(r) for r in records])
    return list(zip(records, scores))


def rank(
    query: str,
    records: Sequence[MemoryRecord],
    limit: int | None = None,
    threshold: float = MIN_RELEVANCE,
) -> list[dict[str, Any]]:
    """
    Return the records most relevant to *query* as dicts with a ``score``.

    Scores at or below *threshold* are dropped.  The sort is stable, so
    ties keep corpus (newest-first) order.
    """
    scored = [(r, s) for r, s in score_documents(query, records) if s > threshold]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    if limit is not None:
        scored = scored[:limit]
    return [{**record.to_dict(), "score": score} for record, score in scored]
