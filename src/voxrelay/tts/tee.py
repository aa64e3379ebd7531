"""Fan-out of one audio stream to a client and the audio cache."""

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from pathlib import Path

from ..cache.storage import ArtifactWriter
from .errors import StorageError

logger = logging.getLogger(__name__)

_END = object()


async def chain_first(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Yield an already consumed first chunk, then the rest of the stream."""
    yield first
    async for chunk in rest:
        yield chunk


class StreamTee:
    """Consumes a source stream once and mirrors every chunk to a writer.

    A pump task owns the source. Each chunk is queued for the client before
    it is written to the mirror, so slow disk writes never hold the client
    back. The pump keeps running when the client goes away, and mirror
    failures are logged and dropped without touching the client side.

    Example:
        tee = StreamTee(provider_chunks, await cache.open_writer(fingerprint))
        async for chunk in tee:
            await send(chunk)
        path = await tee.wait()  # None if nothing was persisted
    """

    def __init__(
        self,
        source: AsyncIterator[bytes],
        mirror: ArtifactWriter | None,
        label: str = "",
    ) -> None:
        """Start pumping source into the client queue and the mirror.

        Must be created from within a running event loop.

        Args:
            source: Stream to consume, exactly once
            mirror: Writer receiving a copy of every chunk, committed when the
                    source is exhausted and aborted if it fails
            label: Text used in log messages
        """
        self._source = source
        self._mirror = mirror
        self._label = label
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._client_attached = True
        self._iterated = False

        self.persisted: Path | None = None
        self.source_error: Exception | None = None
        self.mirror_error: StorageError | None = None

        self.task = asyncio.create_task(self._pump())

    async def _pump(self) -> None:
        completed = False
        try:
            async for chunk in self._source:
                if self._client_attached:
                    self._queue.put_nowait(chunk)
                await self._write_mirror(chunk)
            completed = True
        except Exception as e:
            self.source_error = e
            logger.error(f"Audio stream for '{self._label}' failed mid-way: {e}")
        finally:
            self._queue.put_nowait(_END)
            await self._finish_mirror(completed)

    async def _write_mirror(self, chunk: bytes) -> None:
        if self._mirror is None:
            return
        try:
            await self._mirror.write(chunk)
        except StorageError as e:
            logger.error(f"Caching '{self._label}' failed, continuing uncached: {e}")
            self.mirror_error = e
            mirror, self._mirror = self._mirror, None
            await mirror.abort()

    async def _finish_mirror(self, completed: bool) -> None:
        mirror, self._mirror = self._mirror, None
        if mirror is None:
            return
        if not completed:
            await mirror.abort()
            return
        try:
            self.persisted = await mirror.commit()
        except StorageError as e:
            logger.error(f"Caching '{self._label}' failed: {e}")
            self.mirror_error = e

    def __aiter__(self) -> AsyncGenerator[bytes, None]:
        if self._iterated:
            raise RuntimeError("StreamTee can only be iterated once")
        self._iterated = True
        return self._drain()

    async def _drain(self) -> AsyncGenerator[bytes, None]:
        try:
            while True:
                item = await self._queue.get()
                if item is _END:
                    break
                yield item  # type: ignore[misc]
        finally:
            self.detach()

    def detach(self) -> None:
        """Stop queueing chunks for the client; the mirror still gets them."""
        self._client_attached = False
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _END:
                self._queue.put_nowait(_END)
                break

    async def wait(self) -> Path | None:
        """Wait for the pump to finish and return the persisted path, if any."""
        await asyncio.shield(self.task)
        return self.persisted
