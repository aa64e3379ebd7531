"""Data models for the identifier index."""

from dataclasses import dataclass


@dataclass(frozen=True)
class IndexEntry:
    """Identifier index entry mapping a fingerprint back to its text.

    Attributes:
        text: Original, unnormalized text as first observed
        issued_at: Clock reading (seconds) when the entry was created
        ttl: Lifetime in seconds
    """

    text: str
    issued_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        """Return True once the entry has outlived its TTL."""
        return now >= self.issued_at + self.ttl
