"""Content-addressed audio storage on the filesystem."""

import asyncio
import logging
import os
import tempfile
from collections.abc import AsyncIterable
from pathlib import Path
from typing import BinaryIO

from ..tts.errors import StorageError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


class ArtifactWriter:
    """Writes one artifact through a temp file and renames it into place.

    Readers never observe a partially written artifact. Concurrent writers for
    the same fingerprint each use their own temp file, the last commit wins.
    """

    def __init__(self, file: BinaryIO, temp_path: Path, final_path: Path) -> None:
        self._file = file
        self.temp_path = temp_path
        self.final_path = final_path
        self.bytes_written = 0
        self.closed = False

    async def write(self, chunk: bytes) -> None:
        """Append a chunk to the temp file.

        Raises:
            StorageError: If the write fails
        """
        try:
            await asyncio.to_thread(self._file.write, chunk)
        except OSError as e:
            raise StorageError(
                f"Failed writing {self.temp_path}: {e}",
                original_error=e,
                reply="Cannot write file",
            ) from e
        self.bytes_written += len(chunk)

    async def commit(self) -> Path:
        """Flush, close and atomically move the temp file to its final path.

        Raises:
            StorageError: If closing or renaming fails
        """
        try:
            await asyncio.to_thread(self._close_and_replace)
        except OSError as e:
            await self.abort()
            raise StorageError(
                f"Failed committing {self.final_path}: {e}",
                original_error=e,
                reply="Cannot write file",
            ) from e
        logger.debug(f"Stored {self.bytes_written} bytes at {self.final_path}")
        return self.final_path

    def _close_and_replace(self) -> None:
        self.closed = True
        self._file.close()
        os.replace(self.temp_path, self.final_path)

    async def abort(self) -> None:
        """Discard the temp file. Never raises."""
        await asyncio.to_thread(self._discard)

    def _discard(self) -> None:
        self.closed = True
        try:
            self._file.close()
        except OSError as e:
            logger.warning(f"Failed to close {self.temp_path}: {e}")
        try:
            self.temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clean up partial artifact {self.temp_path}: {e}")


class ArtifactReader:
    """Streams one stored artifact in chunks.

    The file is closed when iteration ends, when a read fails, or on
    aclose(), whichever comes first. aclose() is safe before iteration
    has started.
    """

    def __init__(self, file: BinaryIO, path: Path, chunk_size: int = CHUNK_SIZE) -> None:
        self._file = file
        self.path = path
        self.chunk_size = chunk_size
        self.closed = False

    def __aiter__(self) -> "ArtifactReader":
        return self

    async def __anext__(self) -> bytes:
        if self.closed:
            raise StopAsyncIteration
        try:
            chunk = await asyncio.to_thread(self._file.read, self.chunk_size)
        except OSError as e:
            logger.error(f"Read of {self.path} failed mid-stream: {e}")
            chunk = b""
        if not chunk:
            await self.aclose()
            raise StopAsyncIteration
        return chunk

    async def aclose(self) -> None:
        """Close the file. Idempotent."""
        if self.closed:
            return
        self.closed = True
        await asyncio.to_thread(self._file.close)


class AudioCache:
    """Durable fingerprint -> audio file store.

    Each artifact lives at ``<audio_dir>/<fingerprint>.<extension>``. The cache
    is unbounded and never deletes artifacts itself.

    Example:
        cache = AudioCache(Path("~/.cache/voxrelay/audio").expanduser())

        await cache.store(fingerprint, audio_bytes)
        if cache.lookup(fingerprint):
            async for chunk in await cache.open_artifact(fingerprint):
                ...
    """

    def __init__(
        self, audio_dir: Path, extension: str = "mp3", chunk_size: int = CHUNK_SIZE
    ) -> None:
        """Initialize the cache. The directory is created on first store.

        Args:
            audio_dir: Directory holding audio artifacts
            extension: File extension for artifacts (without dot)
            chunk_size: Read size used when streaming artifacts
        """
        self.audio_dir = audio_dir
        self.extension = extension.lstrip(".")
        self.chunk_size = chunk_size

    def path_for(self, fingerprint: str) -> Path:
        """Return the deterministic artifact path for a fingerprint."""
        return self.audio_dir / f"{fingerprint}.{self.extension}"

    def lookup(self, fingerprint: str) -> Path | None:
        """Return the artifact path if it exists, None on a miss."""
        path = self.path_for(fingerprint)
        return path if path.is_file() else None

    async def open_artifact(self, fingerprint: str) -> ArtifactReader:
        """Open a stored artifact for streaming.

        The file is opened before this coroutine returns, so open failures
        surface before any byte is streamed. A read error mid-stream is logged
        and ends the iteration early.

        Raises:
            StorageError: If the artifact cannot be opened
        """
        path = self.path_for(fingerprint)
        try:
            file = await asyncio.to_thread(path.open, "rb")
        except OSError as e:
            raise StorageError(
                f"Cannot open {path}: {e}",
                original_error=e,
                reply="Cannot open file (read)",
            ) from e
        return ArtifactReader(file, path, self.chunk_size)

    def _ensure_dir(self) -> None:
        try:
            self.audio_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create {self.audio_dir}: {e}",
                original_error=e,
                reply="Could not create cache directory",
            ) from e

    def _create_temp(self, fingerprint: str) -> ArtifactWriter:
        self._ensure_dir()
        final_path = self.path_for(fingerprint)
        try:
            fd, name = tempfile.mkstemp(
                prefix=f"{fingerprint}.", suffix=".part", dir=self.audio_dir
            )
            file = os.fdopen(fd, "wb")
        except OSError as e:
            raise StorageError(
                f"Cannot open temp file for {final_path}: {e}",
                original_error=e,
                reply="Cannot open file (write)",
            ) from e
        return ArtifactWriter(file, Path(name), final_path)

    async def open_writer(self, fingerprint: str) -> ArtifactWriter:
        """Create the cache directory if needed and open a writer.

        Raises:
            StorageError: If the directory or the temp file cannot be created
        """
        return await asyncio.to_thread(self._create_temp, fingerprint)

    async def store(
        self, fingerprint: str, data: bytes | AsyncIterable[bytes]
    ) -> Path:
        """Persist audio for a fingerprint.

        Args:
            fingerprint: Text fingerprint used as the key
            data: Audio bytes or an async stream of chunks

        Returns:
            Path of the stored artifact

        Raises:
            StorageError: If any filesystem step fails
        """
        writer = await self.open_writer(fingerprint)
        try:
            if isinstance(data, bytes | bytearray):
                await writer.write(bytes(data))
            else:
                async for chunk in data:
                    await writer.write(chunk)
        except BaseException:
            await writer.abort()
            raise
        return await writer.commit()
