"""Pytest configuration and fixtures for voxrelay tests."""

import sys
from pathlib import Path

import pytest

# Add src and tests to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from test_helpers import FakeClock, FakeProvider, make_config


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch, tmp_path) -> None:
    """Keep tests away from the user's config file and VOXRELAY_* overrides."""
    import os

    for name in list(os.environ):
        if name.startswith("VOXRELAY_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr("voxrelay.config.CONFIG_PATH", tmp_path / "config.toml")
    monkeypatch.setattr("voxrelay.config._cached_config", None)


@pytest.fixture
def audio_dir(tmp_path) -> Path:
    """Audio cache directory that does not exist yet."""
    return tmp_path / "audio"


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def relay_config(audio_dir):
    return make_config(audio_dir)
