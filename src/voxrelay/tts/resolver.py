"""Resolution of inbound audio requests to text."""

import base64
import binascii
import logging

from ..cache.index import IdentifierIndex
from .errors import DecodeError, MissingParameter, TooLong, UnknownIdentifier
from .models import RequestSource, ResolvedRequest

logger = logging.getLogger(__name__)


class RequestResolver:
    """Turns request parameters into the text to speak.

    A request carries either base64-encoded text or an identifier issued by
    the identifier index. Literal text takes precedence when both are given.
    The maximum length is enforced here, once, after resolution.
    """

    def __init__(self, index: IdentifierIndex, max_length: int = 64) -> None:
        """Initialize the resolver.

        Args:
            index: Identifier index used to resolve identifiers
            max_length: Maximum accepted text length in characters

        Raises:
            ValueError: If max_length is not positive
        """
        if max_length <= 0:
            raise ValueError(f"max_length must be positive, got {max_length}")

        self.index = index
        self.max_length = max_length

    def resolve(
        self, text: str | None = None, identifier: str | None = None
    ) -> ResolvedRequest:
        """Resolve request parameters.

        Empty parameters count as absent.

        Args:
            text: Base64-encoded literal text
            identifier: Identifier previously returned by IdentifierIndex.observe

        Returns:
            ResolvedRequest with the text and where it came from

        Raises:
            DecodeError: If text is not valid base64-encoded UTF-8
            UnknownIdentifier: If the identifier is not in the index
            MissingParameter: If neither parameter is given
            TooLong: If the resolved text exceeds max_length
        """
        if text:
            resolved = ResolvedRequest(self._decode(text), RequestSource.LITERAL)
        elif identifier:
            found = self.index.resolve(identifier)
            if found is None:
                logger.warning(f"Unknown identifier: {identifier}")
                raise UnknownIdentifier(f"Unknown identifier {identifier}")
            resolved = ResolvedRequest(found, RequestSource.IDENTIFIER)
        else:
            raise MissingParameter("Request has neither text nor identifier")

        if len(resolved.text) > self.max_length:
            logger.info(
                f"Rejected {len(resolved.text)} character text "
                f"(max {self.max_length}): '{resolved.text[:50]}...'"
            )
            raise TooLong(
                f"Text has {len(resolved.text)} characters, max is {self.max_length}"
            )

        return resolved

    def _decode(self, encoded: str) -> str:
        try:
            return base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Base64 decode error for '{encoded[:80]}': {e}")
            raise DecodeError(f"Invalid base64 text: {e}", original_error=e) from e
