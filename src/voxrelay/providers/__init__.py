"""Speech providers, selected by the name given in ``[tts] provider``."""

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from .base import TTSProvider

from .elevenlabs import ElevenLabsProvider
from .system import SystemTTSProvider

__all__ = ["ProviderRegistry"]


class ProviderRegistry:
    """Name -> provider class table with one shared instance per name.

    The server builds a single provider per process, so instances are
    created lazily and reused by every request.
    """

    _providers: ClassVar[dict[str, type["TTSProvider"]]] = {}
    _instances: ClassVar[dict[str, "TTSProvider"]] = {}

    @classmethod
    def register(cls, name: str, provider_class: type["TTSProvider"]) -> None:
        """Register provider_class under name, dropping any stale instance."""
        cls._providers[name] = provider_class
        cls._instances.pop(name, None)

    @classmethod
    def get(cls, name: str) -> type["TTSProvider"]:
        """Return the provider class registered under name.

        Raises:
            KeyError: If name is not registered; the message lists the
                      registered names
        """
        try:
            return cls._providers[name]
        except KeyError:
            available = ", ".join(cls._providers) or "none"
            raise KeyError(
                f"Provider '{name}' not found. Available providers: {available}"
            ) from None

    @classmethod
    def get_instance(cls, name: str) -> "TTSProvider":
        """Return the shared instance for name, constructing it on first use.

        Raises:
            KeyError: If name is not registered
            TTSAuthError: If the provider needs credentials that are missing
        """
        instance = cls._instances.get(name)
        if instance is None:
            instance = cls._instances[name] = cls.get(name)()
        return instance


ProviderRegistry.register("elevenlabs", ElevenLabsProvider)
ProviderRegistry.register("system", SystemTTSProvider)
