"""
Intelligent logic layer: duplicate detection, conversation grouping and
identifier generation.

These utilities sit between the classifier and the memory store to decide:
  - whether new content is already remembered
  - whether it continues an open conversation and should be appended
  - which conversation a location belongs to
"""

from __future__ import annotations

import hashlib
import re
import uuid
from collections.abc import Iterable

from .classifier import categorize
from .models import MemoryRecord
from .text import jaccard, raw_words, strip_punctuation

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Raw-word Jaccard similarity above which two texts are duplicates.
DUPLICATE_THRESHOLD: float = 0.9

#: A conversation stays open for merging this long after its last write.
CONVERSATION_WINDOW_SECONDS: float = 2 * 60 * 60

#: Relative keyword overlap above which differently-categorised texts group.
GROUPING_OVERLAP_THRESHOLD: float = 0.15

# Short filler words ignored when comparing topics.  Differs from the
# normaliser's stopword list.
_GROUPING_STOPLIST = frozenset(
    {
        "the", "and", "but", "you", "for", "are", "any", "can", "had", "her", "was",
        "one", "our", "out", "day", "get", "has", "him", "his", "how", "man", "new",
        "now", "old", "see", "two", "way", "who", "boy", "did", "its", "let", "put",
        "say", "she", "too", "use",
    }
)

_CONVERSATION_PATH = re.compile(r"/c/([a-zA-Z0-9-]+)")


# ---------------------------------------------------------------------------
# Duplicate detection
# ---------------------------------------------------------------------------


def is_near_duplicate(text_a: str, text_b: str, threshold: float = DUPLICATE_THRESHOLD) -> bool:
    """Exact match, or raw-word Jaccard similarity strictly above *threshold*."""
    if text_a == text_b:
        return True
    return jaccard(raw_words(text_a), raw_words(text_b)) > threshold


def is_duplicate(
    candidate: MemoryRecord,
    existing: Iterable[MemoryRecord],
    threshold: float = DUPLICATE_THRESHOLD,
) -> bool:
    """True when *candidate* duplicates any record in *existing*."""
    return any(is_near_duplicate(r.content, candidate.content, threshold) for r in existing)


# ---------------------------------------------------------------------------
# Conversation grouping
# ---------------------------------------------------------------------------


def _topic_keywords(text: str) -> set[str]:
    return {
        word
        for word in strip_punctuation(text).split()
        if len(word) > 2 and word not in _GROUPING_STOPLIST
    }


def should_group_in_same_conversation(text_a: str, text_b: str) -> bool:
    """
    Decide whether two texts from the same conversation share a topic.

    Same category always groups.  Otherwise the texts group when they share
    a keyword or their relative overlap exceeds the threshold; when either
    side has no keywords there is nothing to tell them apart, so they group.
    """
    if categorize(text_a) == categorize(text_b):
        return True

    keywords_a = _topic_keywords(text_a)
    keywords_b = _topic_keywords(text_b)
    if not keywords_a or not keywords_b:
        return True

    shared = len(keywords_a & keywords_b)
    overlap = shared / min(len(keywords_a), len(keywords_b))
    return shared >= 1 or overlap > GROUPING_OVERLAP_THRESHOLD


def find_active_conversation(
    candidate: MemoryRecord,
    existing: Iterable[MemoryRecord],
    now: float,
    window: float = CONVERSATION_WINDOW_SECONDS,
) -> MemoryRecord | None:
    """
    Return the open record *candidate* should be appended to, if any.

    Only records with the same conversation and source written within
    *window* seconds qualify; of those the most recent is tested for a
    shared topic.
    """
    recent = [
        r
        for r in existing
        if now - r.timestamp < window
        and r.conversation_id == candidate.conversation_id
        and r.source == candidate.source
    ]
    if not recent:
        return None

    latest = recent[0]
    for record in recent[1:]:
        if record.timestamp > latest.timestamp:
            latest = record

    if should_group_in_same_conversation(latest.content, candidate.content):
        return latest
    return None


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def conversation_id_for(location: str) -> str:
    """
    Derive a stable conversation key from a location URL.

    Chat URLs of the form ``.../c/<id>`` yield ``<id>``; anything else is
    keyed by a short hash of the URL without its query string.
    """
    match = _CONVERSATION_PATH.search(location)
    if match:
        return match.group(1)
    base = location.split("?", 1)[0]
    return hashlib.sha1(base.encode("utf-8")).hexdigest()[:12]


def generate_id(now: float) -> str:
    """Return a new memory ID: creation millis plus a random tie-break."""
    return f"{int(now * 1000)}-{uuid.uuid4().hex[:8]}"
