"""HTTP server for voxrelay audio delivery."""

from .app import create_app

__all__ = ["create_app"]
