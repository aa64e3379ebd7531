"""Audio delivery pipeline for voxrelay.

Coordinates AudioCache and a TTSProvider: cached artifacts are streamed from
disk, misses are synthesized and streamed to the client while being written
to the cache in the background.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass

from ..cache.fingerprint import text_fingerprint
from ..cache.storage import ArtifactReader, AudioCache
from ..providers.base import TTSProvider
from .errors import StorageError, SynthesisFailed
from .models import AudioFormat
from .tee import StreamTee, chain_first

logger = logging.getLogger(__name__)


@dataclass
class AudioStream:
    """An opened audio response.

    Attributes:
        chunks: Audio bytes to send, iterated once
        fingerprint: Fingerprint of the spoken text
        cached: True if served from the audio cache
        media_type: Content type of the audio
        tee: Fan-out of a fresh synthesis, None for cache hits
    """

    chunks: ArtifactReader | AsyncGenerator[bytes, None]
    fingerprint: str
    cached: bool
    media_type: str
    tee: StreamTee | None = None

    async def aclose(self) -> None:
        """Release the stream once the response is over, sent in full or not.

        Closes a cached artifact's file. For a fresh synthesis the client side
        is detached, the background cache write carries on.
        """
        if self.tee is not None:
            self.tee.detach()
        await self.chunks.aclose()


class DeliveryPipeline:
    """Serves audio for resolved text, synthesizing at most once per text.

    Concurrent misses for the same fingerprint are collapsed: the first
    request synthesizes, later ones wait until its artifact is persisted and
    then read it from the cache. If the first request fails, the next waiter
    takes over.

    Example:
        pipeline = DeliveryPipeline(
            cache=AudioCache(audio_dir),
            provider=ProviderRegistry.get_instance("elevenlabs"),
            voice="Brian",
            audio_format=get_audio_format("mp3"),
        )

        stream = await pipeline.open("Deploy complete")
        async for chunk in stream.chunks:
            ...
    """

    def __init__(
        self,
        cache: AudioCache,
        provider: TTSProvider,
        voice: str,
        audio_format: AudioFormat,
    ) -> None:
        self.cache = cache
        self.provider = provider
        self.voice = voice
        self.audio_format = audio_format

        self._inflight: dict[str, asyncio.Event] = {}
        self._pumps: set[asyncio.Task[None]] = set()

    async def open(self, text: str) -> AudioStream:
        """Open an audio stream for text.

        Every failure that can be reported to the client is raised before the
        first chunk is produced.

        Args:
            text: Resolved text, already checked against the length limit

        Returns:
            AudioStream ready to be sent

        Raises:
            SynthesisFailed: If the provider fails before producing audio
            StorageError: If the cache directory or files cannot be opened
        """
        fingerprint = text_fingerprint(text)

        while True:
            if self.cache.lookup(fingerprint) is not None:
                logger.info(f"{text} (cache)")
                try:
                    chunks = await self.cache.open_artifact(fingerprint)
                except StorageError as e:
                    logger.error(f"Cache read failed for '{text}': {e}")
                    raise
                return AudioStream(
                    chunks, fingerprint, cached=True, media_type=self.audio_format.media_type
                )

            pending = self._inflight.get(fingerprint)
            if pending is None:
                break
            logger.debug(f"Waiting for in-flight synthesis of {fingerprint}")
            await pending.wait()

        # No await between the lookup above and claiming the fingerprint.
        done = asyncio.Event()
        self._inflight[fingerprint] = done
        try:
            tee = await self._synthesize(text, fingerprint)
        except BaseException:
            self._release(fingerprint, done)
            raise

        tee.task.add_done_callback(lambda _task: self._release(fingerprint, done))
        self._pumps.add(tee.task)
        tee.task.add_done_callback(self._pumps.discard)

        return AudioStream(
            tee.__aiter__(),
            fingerprint,
            cached=False,
            media_type=self.audio_format.media_type,
            tee=tee,
        )

    async def _synthesize(self, text: str, fingerprint: str) -> StreamTee:
        try:
            writer = await self.cache.open_writer(fingerprint)
        except StorageError as e:
            logger.error(f"Cache write setup failed for '{text}': {e}")
            raise

        logger.info(f"{text} (synthesis)")
        source = self.provider.stream(text, self.voice, self.audio_format.name)
        try:
            first = await anext(source)
        except StopAsyncIteration as e:
            await writer.abort()
            logger.error(f"Provider returned no audio for '{text}'")
            raise SynthesisFailed(f"No audio produced for '{text}'") from e
        except Exception as e:
            await writer.abort()
            logger.error(f"Synthesis failed for '{text}': {e}")
            raise SynthesisFailed(
                f"Synthesis failed for '{text}': {e}", original_error=e
            ) from e
        except BaseException:
            await writer.abort()
            raise

        return StreamTee(chain_first(first, source), writer, label=text)

    def _release(self, fingerprint: str, done: asyncio.Event) -> None:
        if self._inflight.get(fingerprint) is done:
            del self._inflight[fingerprint]
        done.set()

    def in_flight(self, fingerprint: str) -> bool:
        """True while a synthesis for fingerprint is being persisted."""
        return fingerprint in self._inflight

    async def aclose(self) -> None:
        """Wait for background cache writes to finish."""
        if self._pumps:
            logger.info(f"Waiting for {len(self._pumps)} pending cache writes")
            await asyncio.gather(*self._pumps, return_exceptions=True)
