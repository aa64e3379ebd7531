"""System TTS provider using native OS text-to-speech commands.

This module provides text-to-speech functionality using the built-in
TTS capabilities of the operating system (espeak on Linux, say on macOS).
It needs no API key, which makes it handy for offline setups.
"""

import asyncio
import logging
import platform
import shutil
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path

from ..tts.errors import TTSAPIError
from .base import TTSProvider

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


class SystemTTSProvider(TTSProvider):
    """System TTS provider using native OS commands.

    Produces WAV audio only. On Linux espeak (or espeak-ng) writes WAV to
    stdout, which is streamed as it is produced. On macOS say renders to a
    temp file that is streamed once complete.

    Note: Audio quality will be robotic compared to AI-powered voices.
    """

    formats = ("wav",)

    def __init__(self) -> None:
        """Initialize system TTS provider and detect platform."""
        self.platform = platform.system()

        logger.warning(
            "Using system TTS - quality will be robotic compared to AI voices. "
            "For better quality, set ELEVENLABS_API_KEY and use provider=elevenlabs"
        )

        if self.platform not in ["Darwin", "Linux"]:
            raise RuntimeError(f"Unsupported platform: {self.platform}")

    async def stream(
        self, text: str, voice: str, audio_format: str = "wav"
    ) -> AsyncIterator[bytes]:
        """Convert text to WAV audio using native OS commands.

        Args:
            text: Text to convert to speech
            voice: Optional voice name (platform-specific)
            audio_format: Must be "wav"

        Yields:
            WAV audio chunks

        Raises:
            TTSAPIError: If the TTS command is missing or fails
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        if audio_format != "wav":
            raise TTSAPIError(f"System TTS only produces wav, not {audio_format}")

        if self.platform == "Darwin":
            async for chunk in self._stream_say(text, voice):
                yield chunk
        else:
            async for chunk in self._stream_espeak(text, voice):
                yield chunk

    async def _stream_espeak(self, text: str, voice: str) -> AsyncIterator[bytes]:
        binary = shutil.which("espeak-ng") or shutil.which("espeak")
        if binary is None:
            raise TTSAPIError(
                "espeak not found. Install it with: sudo apt-get install espeak-ng"
            )

        cmd = [binary, "--stdout"]
        if voice:
            cmd.extend(["-v", voice])
        cmd.extend(["--", text])

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        assert proc.stdout is not None
        try:
            while True:
                chunk = await proc.stdout.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

            stderr = await proc.stderr.read() if proc.stderr else b""
            if await proc.wait() != 0:
                raise TTSAPIError(
                    f"System TTS failed with code {proc.returncode}: {stderr.decode()}"
                )
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

    async def _stream_say(self, text: str, voice: str) -> AsyncIterator[bytes]:
        with tempfile.TemporaryDirectory() as tmp:
            output_path = Path(tmp) / "speech.wav"
            cmd = ["say", "--file-format=WAVE", "--data-format=LEI16@22050"]
            cmd.extend(["-o", str(output_path)])
            if voice:
                cmd.extend(["-v", voice])
            cmd.extend(["--", text])

            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await proc.communicate()
            if proc.returncode != 0:
                raise TTSAPIError(
                    f"System TTS failed with code {proc.returncode}: {stderr.decode()}"
                )

            audio = await asyncio.to_thread(output_path.read_bytes)
            for start in range(0, len(audio), CHUNK_SIZE):
                yield audio[start : start + CHUNK_SIZE]

    async def list_voices(self) -> list[dict]:
        """List voices reported by the OS TTS command.

        Returns:
            List of voice dictionaries with id, name, and provider fields

        Raises:
            TTSAPIError: If the TTS command is missing or fails
        """
        if self.platform == "Darwin":
            cmd = ["say", "-v", "?"]
        else:
            binary = shutil.which("espeak-ng") or shutil.which("espeak")
            if binary is None:
                raise TTSAPIError("espeak not found")
            cmd = [binary, "--voices"]

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise TTSAPIError(f"Listing voices failed: {stderr.decode()}")

        voices = []
        lines = stdout.decode(errors="replace").splitlines()
        if self.platform == "Darwin":
            for line in lines:
                name = line.split("  ")[0].strip()
                if name:
                    voices.append({"id": name, "name": name, "provider": "system"})
        else:
            # espeak --voices: Pty Language Age/Gender VoiceName File Other
            for line in lines[1:]:
                parts = line.split()
                if len(parts) >= 5:
                    voices.append(
                        {"id": parts[4], "name": parts[3], "provider": "system"}
                    )
        return voices
