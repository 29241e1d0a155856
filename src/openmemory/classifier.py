"""
Content classification heuristics: category, summary, worthiness and
key-fact extraction.

Category keywords live in ``patterns.json`` as an ordered table of
``(label, keywords)`` rows.  Each row compiles to one case-insensitive
pattern anchored only at the start of a word, so a keyword also matches
longer words that begin with it ("past" matches "pasta").  The first row
that matches wins; order is part of the contract.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any

STRUCTURED_CATEGORY = "structured_conversation"
DEFAULT_CATEGORY = "general"

#: Texts at or under this length are their own summary.
SUMMARY_PASSTHROUGH_LENGTH = 100

#: Minimum length for content to be considered worth saving.
MIN_WORTHY_LENGTH = 30

_SENTENCE_END = re.compile(r"[.!?]+")

_GENERIC_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(hello|hi|hey|thanks|thank you|ok|okay|yes|no|sure|maybe)$",
        r"^(how are you|what's up|how's it going)",
        r"^(goodbye|bye|see you|talk to you later)",
        r"^(i understand|i see|got it|makes sense|that's right|exactly|correct)$",
        r"^(please|sorry|excuse me|pardon|apologize)$",
        r"^(let me know|feel free|don't hesitate|happy to help)$",
        # Boilerplate assistant openers.
        r"^(I'd be happy to help|I'm here to assist|I can help you with)",
        r"^(Is there anything else|Do you have any other questions|Would you like me to)",
        r"^(I hope this helps|Let me know if you need|Feel free to ask)",
    )
]

_STRUCTURE_INDICATORS = [
    re.compile(r"\d+[.)]\s"),  # numbered lists
    re.compile("•|▪|▫|‣|⁃"),  # bullets
]

_FACT_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(?:I am|I'm|My name is|I work as|I live in|I'm from|I study|I like|I prefer"
        r"|I hate|I love|I need|I want|I have) .+",
        r"(?:lives in|works as|studies|prefers|needs|has|is a|is an) .+",
        r"(?:birthday|anniversary|age|born) .+",
        r"(?:favorite|prefers|allergic to|vegetarian|vegan) .+",
    )
]


@dataclass(frozen=True)
class CategoryRule:
    label: str
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _keyword_pattern(keywords: list[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternation})", re.IGNORECASE | re.ASCII)


@lru_cache(maxsize=1)
def _load_table() -> dict[str, Any]:
    raw = resources.files("openmemory").joinpath("patterns.json").read_text(encoding="utf-8")
    return json.loads(raw)


@lru_cache(maxsize=1)
def category_rules() -> tuple[CategoryRule, ...]:
    """The ordered category table, compiled."""
    return tuple(
        CategoryRule(row["label"], _keyword_pattern(row["keywords"]))
        for row in _load_table()["categories"]
    )


@lru_cache(maxsize=1)
def _value_pattern() -> re.Pattern[str]:
    return _keyword_pattern(_load_table()["value_indicators"])


def category_labels() -> list[str]:
    """Every label ``categorize`` can return, in priority order."""
    return [STRUCTURED_CATEGORY] + [r.label for r in category_rules()] + [DEFAULT_CATEGORY]


# ---------------------------------------------------------------------------
# Categorisation
# ---------------------------------------------------------------------------


def is_structured_conversation(text: str) -> bool:
    """True when *text* is a JSON object with non-empty ``user`` and ``ai_output``."""
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError, RecursionError):
        return False
    return isinstance(parsed, dict) and bool(parsed.get("user")) and bool(parsed.get("ai_output"))


def categorize(text: str) -> str:
    """Return the first category whose keywords occur anywhere in *text*."""
    if is_structured_conversation(text):
        return STRUCTURED_CATEGORY
    for rule in category_rules():
        if rule.matches(text):
            return rule.label
    return DEFAULT_CATEGORY


# ---------------------------------------------------------------------------
# Summarisation
# ---------------------------------------------------------------------------


def summarize(text: str) -> str:
    """
    Produce a short summary of *text*.

    Short texts are returned unchanged.  Otherwise the first and last
    substantial sentences are joined with ``"... "``; when there are too
    few sentences, or the joined form is too long, a truncated prefix is
    used instead.
    """
    if len(text) <= SUMMARY_PASSTHROUGH_LENGTH:
        return text

    sentences = [s for s in _SENTENCE_END.split(text) if len(s.strip()) > 10]
    if len(sentences) <= 2:
        return text[:150] + "..."

    summary = sentences[0].strip() + "... " + sentences[-1].strip()
    if len(summary) > 200:
        return text[:200] + "..."
    return summary


# ---------------------------------------------------------------------------
# Worthiness and fact extraction
# ---------------------------------------------------------------------------


def is_worth_saving(text: str | None) -> bool:
    """Filter out greetings, acknowledgements and other low-value chatter."""
    if not text or len(text) < MIN_WORTHY_LENGTH:
        return False

    stripped = text.strip()
    if any(p.search(stripped) for p in _GENERIC_PATTERNS):
        return False

    if _value_pattern().search(text):
        return True
    if any(p.search(text) for p in _STRUCTURE_INDICATORS):
        return True
    return len(text) > 200


def extract_key_facts(text: str | None) -> list[str]:
    """
    Pull first-person and biographical statements out of *text*.

    Each line is scanned independently; matches are kept when longer than
    15 and shorter than 200 characters.  Duplicates are dropped, keeping
    first-seen order.
    """
    if not text:
        return []

    facts: list[str] = []
    for line in text.split("\n"):
        if len(line.strip()) <= 10:
            continue
        for pattern in _FACT_PATTERNS:
            for match in pattern.finditer(line):
                found = match.group(0)
                if 15 < len(found) < 200:
                    facts.append(found.strip())
    return list(dict.fromkeys(facts))
