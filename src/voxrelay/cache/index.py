"""In-memory identifier index with TTL and periodic sweeping.

Inline-query result URLs have a length limit, so queries are answered with a
short fingerprint instead of the text itself. This index maps fingerprints
back to the text for the lifetime of the process.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable

from .fingerprint import text_fingerprint
from .models import IndexEntry

logger = logging.getLogger(__name__)


class IdentifierIndex:
    """Process-lifetime fingerprint -> text mapping.

    Entries are created by observe() and only removed by sweep(). Lookups do
    not enforce expiry: an entry that expired but has not been swept yet still
    resolves.

    Example:
        index = IdentifierIndex(ttl=60.0)
        index.start(interval=600.0)

        fingerprint = index.observe("Hello there")
        assert index.resolve(fingerprint) == "Hello there"

        await index.shutdown()
    """

    def __init__(
        self,
        ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty index.

        Args:
            ttl: Lifetime in seconds given to new entries
            clock: Monotonic time source, injectable for tests

        Raises:
            ValueError: If ttl is not positive
        """
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")

        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, IndexEntry] = {}
        # Guards every access to _entries; observe() may be called from
        # outside the event loop thread.
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def observe(self, text: str) -> str:
        """Record text and return its fingerprint.

        A new entry is inserted when none exists for the fingerprint or the
        existing one has expired. A live entry is left untouched, so repeated
        calls within the TTL window do not extend its lifetime.

        Args:
            text: Raw query text

        Returns:
            Fingerprint of the normalized text
        """
        fingerprint = text_fingerprint(text)
        now = self._clock()

        with self._lock:
            existing = self._entries.get(fingerprint)
            if existing is None or existing.expired(now):
                self._entries[fingerprint] = IndexEntry(
                    text=text, issued_at=now, ttl=self.ttl
                )
                logger.debug(f"Indexed {fingerprint} for '{text[:50]}'")

        return fingerprint

    def resolve(self, fingerprint: str) -> str | None:
        """Return the text stored for fingerprint, or None if unknown."""
        with self._lock:
            entry = self._entries.get(fingerprint)
        return entry.text if entry is not None else None

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, v in self._entries.items() if v.expired(now)]
            for key in expired:
                del self._entries[key]
            remaining = len(self._entries)

        logger.info(f"Swept {len(expired)} expired identifiers ({remaining} left)")
        return len(expired)

    def start(self, interval: float = 600.0) -> None:
        """Launch the background sweep task on the running event loop.

        Args:
            interval: Seconds between sweeps

        Raises:
            ValueError: If interval is not positive
            RuntimeError: If the sweeper is already running
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if self._sweeper is not None and not self._sweeper.done():
            raise RuntimeError("Sweeper already running")

        self._sweeper = asyncio.create_task(self._sweep_forever(interval))
        logger.debug(f"Identifier sweeper started (every {interval}s)")

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Identifier sweep failed: {e}")

    async def shutdown(self) -> None:
        """Cancel the sweep task and wait for it to stop."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Identifier sweeper stopped")

    @property
    def running(self) -> bool:
        """True while the background sweeper is active."""
        return self._sweeper is not None and not self._sweeper.done()
