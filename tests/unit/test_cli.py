"""Unit tests for CLI commands using typer's test runner."""

import sys
from pathlib import Path

from typer.testing import CliRunner

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from voxrelay import config as config_module
from voxrelay.cache.fingerprint import text_fingerprint
from voxrelay.cli import app

runner = CliRunner()


def write_config(tmp_path: Path, max_length: int = 64) -> Path:
    path = tmp_path / "relay.toml"
    path.write_text(
        f"""
[server]
public_url = "https://relay.test/"

[tts]
provider = "system"
voice = "en"

[cache]
max_length = {max_length}
"""
    )
    return path


def test_link_prints_identifier_and_urls(tmp_path) -> None:
    """Test link prints the fingerprint and both audio URLs."""
    result = runner.invoke(app, ["link", "Hello", "-c", str(write_config(tmp_path))])

    assert result.exit_code == 0
    identifier = text_fingerprint("Hello")
    assert f"identifier: {identifier}" in result.stdout
    assert "https://relay.test/audio?text=SGVsbG8%3D" in result.stdout
    assert f"https://relay.test/audio?telegram={identifier}" in result.stdout


def test_link_warns_about_long_text(tmp_path) -> None:
    """Test link warns when the server would reject the text."""
    config_path = write_config(tmp_path, max_length=3)

    result = runner.invoke(app, ["link", "Hello", "-c", str(config_path)])

    assert result.exit_code == 0
    assert "longer than 3 characters" in result.output


def test_missing_config_is_generated(tmp_path) -> None:
    """Test a first run writes the default config and exits non-zero."""
    missing = tmp_path / "new" / "config.toml"

    result = runner.invoke(app, ["link", "Hello", "-c", str(missing)])

    assert result.exit_code == 1
    assert missing.exists()


def test_init_config_refuses_to_overwrite() -> None:
    """Test init-config writes once and needs --force to overwrite."""
    first = runner.invoke(app, ["init-config"])
    assert first.exit_code == 0
    assert config_module.CONFIG_PATH.read_text() == config_module.DEFAULT_CONFIG

    config_module.CONFIG_PATH.write_text("# edited\n")
    second = runner.invoke(app, ["init-config"])
    assert second.exit_code == 1
    assert config_module.CONFIG_PATH.read_text() == "# edited\n"

    forced = runner.invoke(app, ["init-config", "--force"])
    assert forced.exit_code == 0
    assert config_module.CONFIG_PATH.read_text() == config_module.DEFAULT_CONFIG


def test_voices_unknown_provider_fails() -> None:
    """Test voices reports unregistered providers."""
    result = runner.invoke(app, ["voices", "-p", "nope"])

    assert result.exit_code == 1
    assert "Provider 'nope' not found" in result.output
