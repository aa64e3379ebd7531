"""Inline-query answering for chat bot integrations.

A bot receiving an inline query calls InlineQueryAnswerer.answer() and turns
the returned results into the platform's audio result cards. Result URLs
carry a short identifier rather than the text because inline result URLs are
length-limited.
"""

import base64
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from .cache.fingerprint import normalize_text
from .cache.index import IdentifierIndex

logger = logging.getLogger(__name__)

RESULT_TITLE = "🐸"
RESULT_CACHE_TIME = 60


def audio_url_for_identifier(base_url: str, identifier: str) -> str:
    """Build ``<base>/audio?telegram=<identifier>``."""
    return f"{base_url.rstrip('/')}/audio?{urlencode({'telegram': identifier})}"


def audio_url_for_text(base_url: str, text: str) -> str:
    """Build ``<base>/audio?text=<base64>`` with the base64 URL-escaped."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"{base_url.rstrip('/')}/audio?{urlencode({'text': encoded})}"


@dataclass(frozen=True)
class InlineAudioResult:
    """One audio card offered in reply to an inline query.

    Attributes:
        id: Result identifier, the text fingerprint
        title: Card title
        caption: Text shown under the audio, the raw query
        url: Audio URL the platform fetches
    """

    id: str
    title: str
    caption: str
    url: str


@dataclass(frozen=True)
class InlineAnswer:
    """Reply to an inline query: results plus how long clients may cache it."""

    results: list[InlineAudioResult]
    cache_time: int = RESULT_CACHE_TIME


class InlineQueryAnswerer:
    """Answers inline queries with identifier-based audio URLs."""

    def __init__(self, index: IdentifierIndex, public_url: str, max_length: int) -> None:
        self.index = index
        self.public_url = public_url.rstrip("/")
        self.max_length = max_length

    def answer(self, query_text: str) -> InlineAnswer:
        """Record the query text and build the result list.

        The text is always observed so its identifier resolves. Blank texts
        and texts the audio endpoint would reject as too long get no results.
        The length is checked on the indexed text, which is the first text
        observed for the identifier and what the audio endpoint will speak.
        """
        identifier = self.index.observe(query_text)

        if not normalize_text(query_text):
            return InlineAnswer(results=[])
        spoken = self.index.resolve(identifier) or query_text
        if len(spoken) > self.max_length:
            logger.debug(f"Query too long for audio: '{spoken[:50]}...'")
            return InlineAnswer(results=[])

        return InlineAnswer(
            results=[
                InlineAudioResult(
                    id=identifier,
                    title=RESULT_TITLE,
                    caption=query_text,
                    url=audio_url_for_identifier(self.public_url, identifier),
                )
            ]
        )
