"""Typer CLI definition for voxrelay."""

import asyncio
import logging
from pathlib import Path

import typer

from . import config as config_module
from .cache.fingerprint import text_fingerprint
from .config import generate_config, load_config
from .inline import audio_url_for_identifier, audio_url_for_text
from .tts.errors import TTSAPIError, TTSAuthError

app = typer.Typer(help="Serve short texts as cached synthesized speech")


def configure_logging(debug: bool) -> None:
    """Configure root logging, verbose when debug is set."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (from config if omitted)"),
    port: int | None = typer.Option(None, "-p", "--port", help="Port (from config if omitted)"),
    config_file: Path | None = typer.Option(
        None, "-c", "--config", help="Config file to use instead of the default"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Run the HTTP audio server."""
    import uvicorn

    from .server.app import create_app

    configure_logging(debug)
    config = load_config(config_file)

    try:
        server_app = create_app(config)
    except (KeyError, ValueError, TTSAuthError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    uvicorn.run(
        server_app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


@app.command()
def link(
    text: str = typer.Argument(..., help="Text to link to"),
    config_file: Path | None = typer.Option(
        None, "-c", "--config", help="Config file to use instead of the default"
    ),
) -> None:
    """Print the audio URLs and identifier for a text.

    The identifier URL only resolves on a server that has observed the text.
    """
    config = load_config(config_file)
    if len(text) > config.cache.max_length:
        typer.echo(
            f"Warning: text is longer than {config.cache.max_length} characters "
            "and will be rejected",
            err=True,
        )

    identifier = text_fingerprint(text)
    typer.echo(f"identifier: {identifier}")
    typer.echo(f"literal:    {audio_url_for_text(config.server.public_url, text)}")
    typer.echo(
        f"indirect:   {audio_url_for_identifier(config.server.public_url, identifier)}"
    )


@app.command()
def voices(
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="TTS provider (from config if omitted)"
    ),
    config_file: Path | None = typer.Option(
        None, "-c", "--config", help="Config file to use instead of the default"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show verbose error messages"),
) -> None:
    """List voices offered by a provider."""
    from .providers import ProviderRegistry

    if provider is None:
        provider = load_config(config_file).tts.provider

    try:
        instance = ProviderRegistry.get_instance(provider)
        available = asyncio.run(instance.list_voices())
    except KeyError as e:
        typer.echo(f"Error: {e.args[0]}", err=True)
        raise typer.Exit(1) from None
    except (TTSAuthError, TTSAPIError, RuntimeError) as e:
        if debug:
            typer.echo(f"Debug - Failed to list voices: {e!r}", err=True)
        else:
            typer.echo(f"Error: Failed to list voices: {e}", err=True)
        raise typer.Exit(1) from None

    for voice in available:
        typer.echo(f"{voice['id']}\t{voice['name']}")


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config"),
) -> None:
    """Write the default config file."""
    if config_module.CONFIG_PATH.exists() and not force:
        typer.echo(f"{config_module.CONFIG_PATH} already exists (use --force to overwrite)")
        raise typer.Exit(1)
    path = generate_config()
    typer.echo(f"Wrote {path}")
