"""Unit tests for StreamTee fan-out and failure isolation."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from voxrelay.cache.storage import AudioCache
from voxrelay.tts.errors import StorageError
from voxrelay.tts.tee import StreamTee, chain_first

FINGERPRINT = "0123456789abcdef0123456789abcdef"


async def chunks(*parts: bytes, fail: Exception | None = None, delay: float = 0.0):
    for part in parts:
        if delay:
            await asyncio.sleep(delay)
        yield part
    if fail is not None:
        raise fail


class BrokenWriter:
    """ArtifactWriter stand-in whose writes fail after the first chunk."""

    def __init__(self) -> None:
        self.written: list[bytes] = []
        self.aborted = False
        self.committed = False

    async def write(self, chunk: bytes) -> None:
        if self.written:
            raise StorageError("disk full", reply="Cannot write file")
        self.written.append(chunk)

    async def commit(self) -> Path:
        self.committed = True
        return Path("/nowhere")

    async def abort(self) -> None:
        self.aborted = True


class TestStreamTee:
    """Test mirrored streaming."""

    @pytest.mark.asyncio
    async def test_client_and_mirror_receive_identical_bytes(self, audio_dir) -> None:
        """Test every chunk reaches both the client and the artifact."""
        cache = AudioCache(audio_dir)
        writer = await cache.open_writer(FINGERPRINT)

        tee = StreamTee(chunks(b"ab", b"cd", b"ef"), writer)
        received = b"".join([chunk async for chunk in tee])
        path = await tee.wait()

        assert received == b"abcdef"
        assert path == cache.path_for(FINGERPRINT)
        assert path.read_bytes() == b"abcdef"

    @pytest.mark.asyncio
    async def test_mirror_failure_does_not_affect_client(self) -> None:
        """Test a failing writer is aborted while the client gets every byte."""
        writer = BrokenWriter()

        tee = StreamTee(chunks(b"ab", b"cd", b"ef"), writer)  # type: ignore[arg-type]
        received = b"".join([chunk async for chunk in tee])
        path = await tee.wait()

        assert received == b"abcdef"
        assert path is None
        assert writer.aborted
        assert not writer.committed
        assert isinstance(tee.mirror_error, StorageError)

    @pytest.mark.asyncio
    async def test_source_failure_truncates_client_and_aborts_mirror(
        self, audio_dir
    ) -> None:
        """Test a mid-stream source error ends the client stream, caches nothing."""
        cache = AudioCache(audio_dir)
        writer = await cache.open_writer(FINGERPRINT)

        tee = StreamTee(chunks(b"ab", fail=ConnectionError("reset")), writer)
        received = b"".join([chunk async for chunk in tee])
        await tee.wait()

        assert received == b"ab"
        assert isinstance(tee.source_error, ConnectionError)
        assert cache.lookup(FINGERPRINT) is None
        assert list(audio_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_persistence_completes_after_client_disconnects(
        self, audio_dir
    ) -> None:
        """Test an abandoned client does not stop the artifact write."""
        cache = AudioCache(audio_dir)
        writer = await cache.open_writer(FINGERPRINT)
        tee = StreamTee(chunks(b"ab", b"cd", b"ef", delay=0.01), writer)

        client = tee.__aiter__()
        assert await anext(client) == b"ab"
        await client.aclose()

        path = await tee.wait()

        assert path is not None
        assert path.read_bytes() == b"abcdef"

    @pytest.mark.asyncio
    async def test_tee_can_only_be_iterated_once(self) -> None:
        """Test a second iteration is refused."""
        tee = StreamTee(chunks(b"x"), None)
        [chunk async for chunk in tee]

        with pytest.raises(RuntimeError, match="only be iterated once"):
            tee.__aiter__()
        await tee.wait()

    @pytest.mark.asyncio
    async def test_chain_first_prepends_primed_chunk(self) -> None:
        """Test the primed first chunk is yielded before the remainder."""
        rest = chunks(b"b", b"c")

        assert [c async for c in chain_first(b"a", rest)] == [b"a", b"b", b"c"]
