"""Abstract base class for text-to-speech providers.

This module defines the interface that all TTS providers must implement,
ensuring consistent behavior across different TTS backends.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class TTSProvider(ABC):
    """Abstract base class for text-to-speech providers.

    Providers stream audio as chunks so the delivery pipeline can forward
    bytes to the client while the synthesis is still running.

    Voice Dictionary Structure:
        Each voice returned by list_voices() should follow this structure:
        {
            "id": str,       # Unique identifier for the voice
            "name": str,     # Human-readable name for the voice
            "provider": str  # Name of the provider (e.g., "elevenlabs", "system")
        }
    """

    #: Audio formats this provider can produce, by AudioFormat name.
    formats: tuple[str, ...] = ()

    @abstractmethod
    def stream(
        self, text: str, voice: str, audio_format: str = "mp3"
    ) -> AsyncIterator[bytes]:
        """Convert text to a stream of audio chunks.

        Args:
            text: The text to convert to speech
            voice: Voice ID or name to use for synthesis
            audio_format: AudioFormat name of the output

        Yields:
            Non-empty audio chunks

        Raises:
            TTSError: If synthesis fails, before or during streaming
            ValueError: If text is empty
        """

    async def synthesize(
        self, text: str, voice: str, audio_format: str = "mp3"
    ) -> bytes:
        """Convert text to audio bytes by draining stream()."""
        return b"".join([chunk async for chunk in self.stream(text, voice, audio_format)])

    @abstractmethod
    async def list_voices(self) -> list[dict]:
        """Return available voices for this provider.

        Returns:
            List of voice dictionaries, each containing:
            - id: Unique voice identifier
            - name: Human-readable voice name
            - provider: Provider name

        Raises:
            TTSError: If voice listing fails
        """
