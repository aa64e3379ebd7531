"""Request resolution and audio delivery for voxrelay.

The resolver and pipeline live in their own modules
(``voxrelay.tts.resolver`` and ``voxrelay.tts.pipeline``).
"""

from .errors import (
    DecodeError,
    MissingParameter,
    RelayError,
    StorageError,
    SynthesisFailed,
    TooLong,
    TTSAPIError,
    TTSAuthError,
    TTSError,
    UnknownIdentifier,
)
from .models import AudioFormat, RequestSource, ResolvedRequest, VoiceSettings

__all__ = [
    "AudioFormat",
    "DecodeError",
    "MissingParameter",
    "RelayError",
    "RequestSource",
    "ResolvedRequest",
    "StorageError",
    "SynthesisFailed",
    "TTSAPIError",
    "TTSAuthError",
    "TTSError",
    "TooLong",
    "UnknownIdentifier",
    "VoiceSettings",
]
