"""Configuration management for voxrelay.

Loads configuration from ~/.config/voxrelay/config.toml.
Priority chain: CLI flags > env vars > config file.
"""

import os
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

from .cache import get_cache_dir

CONFIG_DIR = Path.home() / ".config" / "voxrelay"
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG = """\
# voxrelay configuration

[server]
# Public base URL the audio links point to (no trailing slash)
public_url = "https://example.com"

# Bind address: "127.0.0.1" = localhost only, "0.0.0.0" = all interfaces
host = "127.0.0.1"
port = 7777

[tts]
# Provider: "elevenlabs" (cloud), "system" (espeak/say, wav only)
provider = "elevenlabs"

# Voice ID for speech synthesis
voice = "nPczCjzI2devNBz1zQrb"

# Audio format: "mp3" or "pcm" for elevenlabs, "wav" for system
format = "mp3"

[cache]
# Directory holding synthesized audio, one file per text fingerprint
# audio_dir = "~/.cache/voxrelay/audio"

# Longest text (in characters) that will be synthesized
max_length = 64

# Seconds an inline-query identifier stays resolvable before a sweep may
# remove it, and seconds between sweeps
identifier_ttl = 60
sweep_interval = 600

# API keys are read from environment variables, not this file:
#   ELEVENLABS_API_KEY  - ElevenLabs provider
"""


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server configuration."""

    public_url: str
    host: str
    port: int


@dataclass(frozen=True)
class TTSConfig:
    """TTS provider configuration."""

    provider: str
    voice: str
    format: str


@dataclass(frozen=True)
class CacheConfig:
    """Audio cache and identifier index configuration."""

    audio_dir: Path
    max_length: int
    identifier_ttl: float
    sweep_interval: float


@dataclass(frozen=True)
class RelayConfig:
    """Top-level voxrelay configuration."""

    server: ServerConfig
    tts: TTSConfig
    cache: CacheConfig


_cached_config: RelayConfig | None = None


def generate_config(path: Path | None = None) -> Path:
    """Write the default config file and return its path."""
    path = path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def _fail(message: str, path: Path) -> NoReturn:
    print(message, file=sys.stderr)
    print(f"Edit {path} or delete it to regenerate.", file=sys.stderr)
    raise SystemExit(1)


def parse_config(data: dict, path: Path = CONFIG_PATH) -> RelayConfig:
    """Build a RelayConfig from parsed TOML data with env var overrides.

    Args:
        data: Parsed TOML document
        path: Config file path, used in error messages

    Returns:
        Validated RelayConfig

    Raises:
        SystemExit: If required values are missing or invalid
    """
    server = data.get("server", {})
    tts = data.get("tts", {})
    cache = data.get("cache", {})

    missing = []
    if "public_url" not in server and not os.getenv("VOXRELAY_PUBLIC_URL"):
        missing.append("server.public_url")
    if "provider" not in tts:
        missing.append("tts.provider")
    if "voice" not in tts:
        missing.append("tts.voice")

    if missing:
        _fail(f"Missing required config values: {', '.join(missing)}", path)

    audio_dir = os.getenv("VOXRELAY_AUDIO_DIR", cache.get("audio_dir", ""))

    try:
        config = RelayConfig(
            server=ServerConfig(
                public_url=os.getenv(
                    "VOXRELAY_PUBLIC_URL", server.get("public_url", "")
                ).rstrip("/"),
                host=os.getenv("VOXRELAY_HOST", server.get("host", "127.0.0.1")),
                port=int(os.getenv("VOXRELAY_PORT", server.get("port", 7777))),
            ),
            tts=TTSConfig(
                provider=os.getenv("VOXRELAY_PROVIDER", tts["provider"]),
                voice=os.getenv("VOXRELAY_VOICE", tts["voice"]),
                format=os.getenv("VOXRELAY_FORMAT", tts.get("format", "mp3")),
            ),
            cache=CacheConfig(
                audio_dir=Path(audio_dir).expanduser()
                if audio_dir
                else get_cache_dir() / "audio",
                max_length=int(
                    os.getenv("VOXRELAY_MAX_LENGTH", cache.get("max_length", 64))
                ),
                identifier_ttl=float(
                    os.getenv(
                        "VOXRELAY_IDENTIFIER_TTL", cache.get("identifier_ttl", 60)
                    )
                ),
                sweep_interval=float(
                    os.getenv(
                        "VOXRELAY_SWEEP_INTERVAL", cache.get("sweep_interval", 600)
                    )
                ),
            ),
        )
    except ValueError as e:
        _fail(f"Invalid config value: {e}", path)

    invalid = [
        name
        for name, value in (
            ("server.port", config.server.port),
            ("cache.max_length", config.cache.max_length),
            ("cache.identifier_ttl", config.cache.identifier_ttl),
            ("cache.sweep_interval", config.cache.sweep_interval),
        )
        if value <= 0
    ]
    if invalid:
        _fail(f"Config values must be positive: {', '.join(invalid)}", path)

    return config


def load_config(path: Path | None = None) -> RelayConfig:
    """Load configuration from the config file with env var overrides.

    On first run, generates the config file and exits so the user
    can review it before proceeding.

    Args:
        path: Config file to read (defaults to ~/.config/voxrelay/config.toml).
              An explicit path bypasses the process-wide cache.

    Returns:
        Loaded and validated RelayConfig.

    Raises:
        SystemExit: If config is missing (after generating) or invalid.
    """
    global _cached_config
    if path is None and _cached_config is not None:
        return _cached_config

    config_path = path or CONFIG_PATH
    if not config_path.exists():
        generate_config(config_path)
        print(
            f"No config found. Generated {config_path}, review and run again.",
            file=sys.stderr,
        )
        raise SystemExit(1)

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    config = parse_config(data, config_path)
    if path is None:
        _cached_config = config
    return config
