"""TTS data models with validation."""

from dataclasses import dataclass
from enum import Enum


class RequestSource(str, Enum):
    """How the text of an audio request was supplied."""

    LITERAL = "literal"
    IDENTIFIER = "identifier"


@dataclass(frozen=True)
class ResolvedRequest:
    """Text resolved from an inbound audio request.

    Args:
        text: Text to speak, as originally supplied
        source: Whether it came literally or through an identifier
    """

    text: str
    source: RequestSource


@dataclass(frozen=True)
class AudioFormat:
    """Audio output format shared by providers, cache files and responses.

    Args:
        name: Configuration name (e.g. "mp3")
        extension: File extension for cached artifacts
        media_type: Content type of HTTP responses
    """

    name: str
    extension: str
    media_type: str


AUDIO_FORMATS: dict[str, AudioFormat] = {
    "mp3": AudioFormat("mp3", "mp3", "audio/mpeg"),
    "ogg_vorbis": AudioFormat("ogg_vorbis", "ogg", "audio/ogg"),
    "pcm": AudioFormat("pcm", "pcm", "audio/L16"),
    "wav": AudioFormat("wav", "wav", "audio/wav"),
}


def get_audio_format(name: str) -> AudioFormat:
    """Look up an audio format by name.

    Raises:
        ValueError: If the format is unknown
    """
    try:
        return AUDIO_FORMATS[name]
    except KeyError:
        available = ", ".join(AUDIO_FORMATS)
        raise ValueError(
            f"Unknown audio format '{name}'. Available formats: {available}"
        ) from None


@dataclass
class VoiceSettings:
    """Voice generation settings.

    Args:
        stability: Voice stability (0.0-1.0)
        similarity_boost: Voice similarity boost (0.0-1.0)
        style: Voice style exaggeration (0.0-1.0)
        use_speaker_boost: Whether to use speaker boost
    """

    stability: float = 0.65
    similarity_boost: float = 0.75
    style: float = 0.4
    use_speaker_boost: bool = True

    def __post_init__(self) -> None:
        """Validate voice settings."""
        if not 0.0 <= self.stability <= 1.0:
            raise ValueError("stability must be between 0.0 and 1.0")
        if not 0.0 <= self.similarity_boost <= 1.0:
            raise ValueError("similarity_boost must be between 0.0 and 1.0")
        if not 0.0 <= self.style <= 1.0:
            raise ValueError("style must be between 0.0 and 1.0")

    def to_dict(self) -> dict[str, float | bool]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }
