"""
Text normalisation and set-overlap similarity.

``normalize`` is the tokenizer shared by relevance scoring, categorisation
helpers and deduplication signatures.  ``jaccard`` works over any pair of
token collections; callers choose the tokenization.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

# ASCII word characters only, so accented letters split tokens.
_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)

STOPWORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
        "will", "would", "could", "should", "may", "might", "must", "can", "shall",
        "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
        "my", "your", "his", "its", "our", "their", "this", "that", "these", "those",
        "what", "where", "when", "why", "how", "which", "who", "whom", "whose",
        "if", "then", "else", "so", "because", "since", "while", "during", "before", "after",
        "above", "below", "up", "down", "out", "off", "over", "under", "again", "further",
        "once", "here", "there", "everywhere", "anywhere", "somewhere", "nowhere",
        "all", "any", "both", "each", "few", "more", "most", "other", "some", "such",
        "no", "nor", "not", "only", "own", "same", "than", "too", "very", "just", "now",
    }
)


def strip_punctuation(text: str) -> str:
    """Lowercase *text* and replace every non-word character with a space."""
    return _NON_WORD.sub(" ", text.lower())


def normalize(text: str | None) -> list[str]:
    """
    Tokenize *text* for relevance scoring.

    Lowercases, replaces punctuation with spaces, drops tokens of two
    characters or fewer and removes stopwords.  Token order and repeats
    are preserved.
    """
    if not text:
        return []
    return [
        word
        for word in strip_punctuation(text).split()
        if len(word) > 2 and word not in STOPWORDS
    ]


def raw_words(text: str) -> set[str]:
    """Lowercase whitespace-split words, punctuation kept."""
    return set(text.lower().split())


def jaccard(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """|A ∩ B| / |A ∪ B| over token sets; 0.0 when either side is empty."""
    set_a, set_b = set(tokens_a), set(tokens_b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def signature(text: str, size: int = 10) -> str:
    """Order-insensitive fingerprint built from the first *size* normalised tokens."""
    return "|".join(sorted(normalize(text)[:size]))
