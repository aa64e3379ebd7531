"""Unit tests for DeliveryPipeline cache hits, misses and single-flight."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from test_helpers import FakeProvider

from voxrelay.cache.fingerprint import text_fingerprint
from voxrelay.cache.storage import AudioCache
from voxrelay.tts.errors import StorageError, SynthesisFailed, TTSAPIError
from voxrelay.tts.models import get_audio_format
from voxrelay.tts.pipeline import DeliveryPipeline


def make_pipeline(audio_dir: Path, provider: FakeProvider) -> DeliveryPipeline:
    return DeliveryPipeline(
        cache=AudioCache(audio_dir),
        provider=provider,
        voice="Brian",
        audio_format=get_audio_format("mp3"),
    )


async def drain(pipeline: DeliveryPipeline, text: str) -> tuple[bytes, bool]:
    stream = await pipeline.open(text)
    body = b"".join([chunk async for chunk in stream.chunks])
    return body, stream.cached


class TestMissThenHit:
    """Test the synthesize-once behavior."""

    @pytest.mark.asyncio
    async def test_first_request_synthesizes_and_persists(self, audio_dir) -> None:
        """Test a miss streams provider output and stores it under the fingerprint."""
        provider = FakeProvider()
        pipeline = make_pipeline(audio_dir, provider)

        body, cached = await drain(pipeline, "Hello")
        await pipeline.aclose()

        assert body == FakeProvider.audio_for("Hello")
        assert not cached
        assert provider.calls == [("Hello", "Brian", "mp3")]
        artifact = audio_dir / f"{text_fingerprint('Hello')}.mp3"
        assert artifact.read_bytes() == body

    @pytest.mark.asyncio
    async def test_second_request_is_served_from_cache(self, audio_dir) -> None:
        """Test a repeat request is byte-identical and skips the provider."""
        provider = FakeProvider()
        pipeline = make_pipeline(audio_dir, provider)

        first, _ = await drain(pipeline, "Hello")
        await pipeline.aclose()
        second, cached = await drain(pipeline, "hello ")

        assert cached
        assert second == first
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_stream_reports_media_type(self, audio_dir) -> None:
        """Test the stream carries the configured media type."""
        pipeline = make_pipeline(audio_dir, FakeProvider())

        stream = await pipeline.open("Hello")
        [chunk async for chunk in stream.chunks]

        assert stream.media_type == "audio/mpeg"
        assert stream.fingerprint == text_fingerprint("Hello")


class TestFailures:
    """Test provider and storage failures."""

    @pytest.mark.asyncio
    async def test_provider_failure_raises_synthesis_failed(self, audio_dir) -> None:
        """Test a provider error surfaces before streaming and writes nothing."""
        pipeline = make_pipeline(audio_dir, FakeProvider(fail=True))

        with pytest.raises(SynthesisFailed) as exc_info:
            await pipeline.open("Hello")

        assert exc_info.value.reply == "Synthesize error"
        assert list(audio_dir.iterdir()) == []
        assert not pipeline.in_flight(text_fingerprint("Hello"))

    @pytest.mark.asyncio
    async def test_mid_stream_failure_is_not_cached(self, audio_dir) -> None:
        """Test a provider dying mid-stream truncates the body and caches nothing."""
        provider = FakeProvider(chunk_size=2, fail_after=2)
        pipeline = make_pipeline(audio_dir, provider)

        body, _ = await drain(pipeline, "Hello")
        await pipeline.aclose()

        assert body == FakeProvider.audio_for("Hello")[:4]
        assert pipeline.cache.lookup(text_fingerprint("Hello")) is None

    @pytest.mark.asyncio
    async def test_storage_setup_failure_skips_provider(self, tmp_path) -> None:
        """Test an uncreatable cache directory is reported without synthesis."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        provider = FakeProvider()
        pipeline = make_pipeline(blocker / "audio", provider)

        with pytest.raises(StorageError) as exc_info:
            await pipeline.open("Hello")

        assert exc_info.value.reply == "Could not create cache directory"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_persistence_failure_still_serves_client(
        self, audio_dir, monkeypatch
    ) -> None:
        """Test a failing cache write leaves the client response intact."""
        provider = FakeProvider()
        pipeline = make_pipeline(audio_dir, provider)

        async def failing_write(self, chunk: bytes) -> None:
            raise StorageError("disk full", reply="Cannot write file")

        monkeypatch.setattr("voxrelay.cache.storage.ArtifactWriter.write", failing_write)

        body, _ = await drain(pipeline, "Hello")
        await pipeline.aclose()

        assert body == FakeProvider.audio_for("Hello")
        assert pipeline.cache.lookup(text_fingerprint("Hello")) is None


class TestSingleFlight:
    """Test concurrent misses for the same text."""

    @pytest.mark.asyncio
    async def test_concurrent_misses_synthesize_once(self, audio_dir) -> None:
        """Test simultaneous requests share one provider call."""
        provider = FakeProvider(delay=0.01)
        pipeline = make_pipeline(audio_dir, provider)

        results = await asyncio.gather(
            *(drain(pipeline, "Hello") for _ in range(5))
        )
        await pipeline.aclose()

        assert len(provider.calls) == 1
        assert {body for body, _ in results} == {FakeProvider.audio_for("Hello")}
        assert sum(1 for _, cached in results if cached) == 4

    @pytest.mark.asyncio
    async def test_waiter_takes_over_after_failed_leader(self, audio_dir) -> None:
        """Test a waiter synthesizes itself when the leader's stream fails."""

        class FlakyProvider(FakeProvider):
            async def stream(self, text, voice, audio_format="mp3"):
                first_call = not self.calls
                async for chunk in super().stream(text, voice, audio_format):
                    yield chunk
                    if first_call:
                        await asyncio.sleep(0.05)
                        raise TTSAPIError("connection reset")

        provider = FlakyProvider()
        pipeline = make_pipeline(audio_dir, provider)

        leader = await pipeline.open("Hello")
        waiter = asyncio.create_task(pipeline.open("Hello"))
        await asyncio.sleep(0.01)
        assert not waiter.done()

        [chunk async for chunk in leader.chunks]
        follower = await waiter
        body = b"".join([chunk async for chunk in follower.chunks])
        await pipeline.aclose()

        assert len(provider.calls) == 2
        assert body == FakeProvider.audio_for("Hello")
        assert not follower.cached

    @pytest.mark.asyncio
    async def test_different_texts_do_not_wait_on_each_other(self, audio_dir) -> None:
        """Test in-flight markers are per fingerprint."""
        provider = FakeProvider(delay=0.01)
        pipeline = make_pipeline(audio_dir, provider)

        await asyncio.gather(drain(pipeline, "one"), drain(pipeline, "two"))
        await pipeline.aclose()

        assert sorted(call[0] for call in provider.calls) == ["one", "two"]
