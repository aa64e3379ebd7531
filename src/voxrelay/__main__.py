"""Entry point for running voxrelay as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the voxrelay CLI application."""
    app()


if __name__ == "__main__":
    main()
