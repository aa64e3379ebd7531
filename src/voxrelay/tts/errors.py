"""Custom exceptions for synthesis providers and audio requests."""


class TTSError(Exception):
    """Base exception for TTS provider errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class TTSAuthError(TTSError):
    """Exception raised for authentication failures.

    This typically occurs when:
    - API key is missing or invalid
    - Account has insufficient credits
    """

    pass


class TTSAPIError(TTSError):
    """Exception raised for API communication errors.

    This typically occurs when:
    - API server is unavailable (5xx errors)
    - Rate limits are exceeded (429 error)
    - Request format is invalid (4xx errors)
    - Network connectivity issues
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class RelayError(Exception):
    """Base exception for audio requests that cannot be served.

    Every subclass carries the plain-text reply sent back to the requester.
    """

    reply = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        original_error: Exception | None = None,
        reply: str | None = None,
    ) -> None:
        if reply is not None:
            self.reply = reply
        super().__init__(message or self.reply)
        self.original_error = original_error


class DecodeError(RelayError):
    """The literal text parameter is not valid base64-encoded UTF-8."""

    reply = "Base64 decode error"


class MissingParameter(RelayError):
    """Neither a literal text nor an identifier was supplied."""

    reply = "Invalid request"


class UnknownIdentifier(RelayError):
    """The identifier was never issued or has been swept."""

    reply = "Unknown md5"


class TooLong(RelayError):
    """The resolved text exceeds the configured maximum length."""

    reply = "Too long"


class SynthesisFailed(RelayError):
    """The synthesis provider failed before producing audio."""

    reply = "Synthesize error"


class StorageError(RelayError):
    """A filesystem step of the audio cache failed.

    The reply names the failing step, e.g. "Cannot open file (write)".
    """

    reply = "Storage error"
