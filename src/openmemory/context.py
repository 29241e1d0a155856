"""
Context providers: where new memories come from.

The memory engine never discovers its own location.  A provider tells it
the current source (a host string) and location (a URL); these stamp new
records and key conversations.
"""

from __future__ import annotations

from typing import Protocol
from urllib.parse import urlsplit

# (host fragment, required path fragment or None, platform name)
_PLATFORMS: tuple[tuple[str, str | None, str], ...] = (
    ("chat.openai.com", None, "chatgpt"),
    ("chatgpt.com", None, "chatgpt"),
    ("claude.ai", None, "claude"),
    ("gemini.google.com", None, "gemini"),
    ("bard.google.com", None, "gemini"),
    ("perplexity.ai", None, "perplexity"),
    ("x.ai", None, "grok"),
    ("you.com", "search", "you"),
    ("character.ai", None, "character"),
    ("poe.com", None, "poe"),
    ("huggingface.co", "chat", "huggingface"),
    ("zendesk.com", None, "zendesk"),
    ("zendeskgov.com", None, "zendesk"),
)


class ContextProvider(Protocol):
    def current_source(self) -> str: ...

    def current_location(self) -> str: ...


class StaticContext:
    """
    A fixed location, for CLIs, servers and tests.

    When *source* is omitted it is the host of *location*, or the whole
    location when it has no host.
    """

    def __init__(self, location: str, source: str | None = None) -> None:
        self.location = location
        self.source = source or urlsplit(location).hostname or location

    def current_source(self) -> str:
        return self.source

    def current_location(self) -> str:
        return self.location


def detect_platform(location: str) -> str:
    """Name the chat platform a URL belongs to, or ``"unknown"``."""
    parts = urlsplit(location)
    host = parts.hostname or ""
    for fragment, path_fragment, name in _PLATFORMS:
        if fragment in host and (path_fragment is None or path_fragment in parts.path):
            return name
    return "unknown"
