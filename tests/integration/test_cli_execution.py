"""Integration tests for CLI execution."""

import os
import subprocess
import sys
from pathlib import Path

# Project root for running tests
PROJECT_ROOT = Path(__file__).parent.parent.parent


def test_cli_shows_help() -> None:
    """Test that CLI shows help and lists its commands."""
    cmd = [sys.executable, "-m", "voxrelay", "--help"]

    result = subprocess.run(
        cmd,
        cwd=PROJECT_ROOT,
        env={**os.environ, "PYTHONPATH": "src"},
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0
    for command in ("serve", "link", "voices", "init-config"):
        assert command in result.stdout
