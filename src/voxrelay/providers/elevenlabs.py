"""ElevenLabs text-to-speech provider implementation."""

import asyncio
import os
from collections.abc import AsyncIterator

from elevenlabs.client import ElevenLabs

from ..tts.errors import TTSAPIError, TTSAuthError, TTSError
from ..tts.models import VoiceSettings
from .base import TTSProvider

# AudioFormat name -> ElevenLabs output_format
OUTPUT_FORMATS = {
    "mp3": "mp3_44100_128",
    "pcm": "pcm_24000",
}


def _translate_error(e: Exception, action: str) -> TTSError:
    """Map an ElevenLabs SDK failure to the TTS error hierarchy."""
    if isinstance(e, TTSError):
        return e
    if "unauthorized" in str(e).lower() or "401" in str(e):
        return TTSAuthError(f"Authentication failed: {e}", e)
    if "429" in str(e):
        return TTSAPIError(f"Rate limit exceeded: {e}", 429, e)
    if "5" in str(e)[:1]:  # 5xx server errors
        return TTSAPIError(f"Server error: {e}", original_error=e)
    return TTSAPIError(f"{action} failed: {e}", original_error=e)


class ElevenLabsProvider(TTSProvider):
    """ElevenLabs TTS provider implementation.

    The SDK client is synchronous; its chunk generator is advanced in worker
    threads so the event loop keeps serving other requests.
    """

    formats = tuple(OUTPUT_FORMATS)

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str = "eleven_turbo_v2_5",
        voice_settings: VoiceSettings | None = None,
    ) -> None:
        """Initialize ElevenLabs provider.

        Args:
            api_key: ElevenLabs API key. If not provided, reads from
                    ELEVENLABS_API_KEY environment variable.
            model_id: ElevenLabs model ID to use
            voice_settings: Voice settings sent with every request

        Raises:
            TTSAuthError: If API key is not provided or invalid.
        """
        self._api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise TTSAuthError(
                "ElevenLabs API key not found. Set ELEVENLABS_API_KEY environment "
                "variable or provide api_key parameter."
            )

        try:
            self._client = ElevenLabs(api_key=self._api_key)
        except Exception as e:
            raise TTSAuthError(f"Failed to initialize ElevenLabs client: {e}") from e

        self.model_id = model_id
        self.voice_settings = voice_settings or VoiceSettings()

        # Cache for voices to avoid repeated API calls
        self._voices_cache: list[dict] | None = None

    async def stream(
        self, text: str, voice: str, audio_format: str = "mp3"
    ) -> AsyncIterator[bytes]:
        """Stream speech audio chunks from the ElevenLabs API.

        Args:
            text: Text to convert to speech
            voice: Voice ID to use (first available voice if empty)
            audio_format: "mp3" or "pcm"

        Yields:
            Audio chunks as they arrive

        Raises:
            TTSAPIError: If API call fails or returns no audio
            TTSAuthError: If authentication fails
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        output_format = OUTPUT_FORMATS.get(audio_format)
        if output_format is None:
            raise TTSAPIError(f"Unsupported audio format for ElevenLabs: {audio_format}")

        # Use first available voice if not specified
        if not voice:
            voices = await self.list_voices()
            if not voices:
                raise TTSAPIError("No voices available")
            voice = voices[0]["id"]

        def _sync_convert():
            return iter(
                self._client.text_to_speech.convert(
                    text=text.strip(),
                    voice_id=voice,
                    model_id=self.model_id,
                    output_format=output_format,
                    voice_settings=self.voice_settings.to_dict(),
                )
            )

        received = 0
        try:
            chunks = await asyncio.to_thread(_sync_convert)
            while True:
                chunk = await asyncio.to_thread(next, chunks, None)
                if chunk is None:
                    break
                if chunk:
                    received += len(chunk)
                    yield chunk
        except Exception as e:
            raise _translate_error(e, "API call") from e

        if not received:
            raise TTSAPIError("No audio data received from API")

    async def list_voices(self) -> list[dict]:
        """Get list of available voices.

        Results are cached after first call to avoid repeated API requests.

        Returns:
            List of voice dictionaries with id, name, and provider fields

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
        """
        if self._voices_cache is not None:
            return self._voices_cache

        def _sync_get_voices():
            response = self._client.voices.get_all()
            return [
                {"id": voice.voice_id, "name": voice.name, "provider": "elevenlabs"}
                for voice in response.voices
            ]

        try:
            voices = await asyncio.to_thread(_sync_get_voices)
        except Exception as e:
            raise _translate_error(e, "Listing voices") from e

        self._voices_cache = voices
        return voices
