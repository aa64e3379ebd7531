"""FastAPI application serving synthesized audio.

Every component is created per application and torn down by its lifespan,
so several apps (e.g. in tests) never share state.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from ..cache.index import IdentifierIndex
from ..cache.storage import AudioCache
from ..config import RelayConfig
from ..inline import InlineQueryAnswerer
from ..providers import ProviderRegistry
from ..providers.base import TTSProvider
from ..tts.errors import RelayError
from ..tts.models import get_audio_format
from ..tts.pipeline import AudioStream, DeliveryPipeline
from ..tts.resolver import RequestResolver

logger = logging.getLogger(__name__)


class AudioResponse(StreamingResponse):
    """Streams an AudioStream and releases it when the response ends.

    Starlette does not close the body iterator when the client disconnects,
    so the stream is closed here, after a complete or aborted send.
    """

    def __init__(self, stream: AudioStream) -> None:
        super().__init__(
            stream.chunks,
            media_type=stream.media_type,
            headers={"X-Voxrelay-Cache": "hit" if stream.cached else "miss"},
        )
        self.stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.stream.aclose()


def create_app(
    config: RelayConfig,
    provider: TTSProvider | None = None,
    index: IdentifierIndex | None = None,
) -> FastAPI:
    """Build the audio server.

    Args:
        config: Loaded configuration
        provider: Synthesis provider (defaults to the configured one)
        index: Identifier index (defaults to a fresh one with the configured TTL)

    Returns:
        FastAPI app; components are exposed on ``app.state``

    Raises:
        ValueError: If the provider cannot produce the configured format
        KeyError: If the configured provider is not registered
    """
    audio_format = get_audio_format(config.tts.format)
    if provider is None:
        provider = ProviderRegistry.get_instance(config.tts.provider)
    if provider.formats and audio_format.name not in provider.formats:
        raise ValueError(
            f"Provider {type(provider).__name__} cannot produce {audio_format.name}, "
            f"supported: {', '.join(provider.formats)}"
        )

    if index is None:
        index = IdentifierIndex(ttl=config.cache.identifier_ttl)
    cache = AudioCache(config.cache.audio_dir, audio_format.extension)
    pipeline = DeliveryPipeline(cache, provider, config.tts.voice, audio_format)
    resolver = RequestResolver(index, config.cache.max_length)
    answerer = InlineQueryAnswerer(
        index, config.server.public_url, config.cache.max_length
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        index.start(config.cache.sweep_interval)
        logger.info(
            f"Serving {audio_format.name} audio from {cache.audio_dir} "
            f"({type(provider).__name__}, voice {config.tts.voice})"
        )
        try:
            yield
        finally:
            await index.shutdown()
            await pipeline.aclose()
            logger.info("Audio server stopped")

    app = FastAPI(title="voxrelay", lifespan=lifespan)
    app.state.config = config
    app.state.index = index
    app.state.cache = cache
    app.state.pipeline = pipeline
    app.state.resolver = resolver
    app.state.answerer = answerer

    @app.get("/audio")
    async def serve_audio(text: str | None = None, telegram: str | None = None):
        # Rejections keep HTTP 200 with a plain-text reason, which is what
        # existing bot clients expect.
        try:
            resolved = resolver.resolve(text=text, identifier=telegram)
            stream = await pipeline.open(resolved.text)
        except RelayError as e:
            return PlainTextResponse(e.reply)

        return AudioResponse(stream)

    @app.get("/inline")
    async def answer_inline(query: str = ""):
        answer = answerer.answer(query)
        return {
            "cache_time": answer.cache_time,
            "results": [
                {
                    "id": result.id,
                    "title": result.title,
                    "caption": result.caption,
                    "url": result.url,
                }
                for result in answer.results
            ],
        }

    @app.get("/status")
    async def status():
        return {
            "status": "ok",
            "identifiers": len(index),
            "provider": type(provider).__name__,
            "voice": config.tts.voice,
            "format": audio_format.name,
        }

    return app
