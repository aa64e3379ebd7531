"""Entry point for running the voxrelay audio server."""

import logging

import uvicorn

from ..config import load_config
from .app import create_app

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the audio server with the configured host and port."""
    config = load_config()
    app = create_app(config)
    logger.info(f"Listening on {config.server.host}:{config.server.port}")
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    main()
