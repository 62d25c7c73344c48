"""Entry point for running the timelapse client as a module."""

from __future__ import annotations

import logging

from timelapse_client import create_app, register_signal_handlers
from timelapse_client.config import get_config

config = get_config()

logging.basicConfig(
    level=getattr(logging, config.TIMELAPSE_LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app(config)


def main():
    """Run the development server."""
    register_signal_handlers(app)
    app.run(debug=config.DEBUG, host=config.APP_HOST, port=config.APP_PORT, threaded=True)


if __name__ == "__main__":
    main()
