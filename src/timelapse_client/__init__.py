"""Application factory for the timelapse client."""

from __future__ import annotations

import logging
import signal
import threading

from flask import Flask

from .config import Config, get_config
from .extensions import get_orchestrator, init_orchestrator
from .routes import api_bp, jobs_bp
from .transports import BaseTransport, build_transport

logger = logging.getLogger(__name__)

_shutdown_event = threading.Event()


def create_app(
    config_class: type[Config] | None = None,
    transport: BaseTransport | None = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        config_class: Configuration class, defaults to the environment-driven Config
        transport: Transport to use instead of the configured one
    """
    app = Flask(__name__, instance_relative_config=True)

    config_class = config_class or get_config()
    app.config.from_object(config_class)

    errors = config_class.validate()
    if errors:
        logger.warning("Configuration warnings: %s", errors)

    transport = transport or build_transport(config_class)
    init_orchestrator(app, transport)
    logger.info("Using %s transport", transport.name)

    app.register_blueprint(jobs_bp)
    app.register_blueprint(api_bp)

    @app.before_request
    def before_request():
        """Refuse new work once shutdown has started."""
        if _shutdown_event.is_set():
            from flask import abort

            abort(503, "Server is shutting down")

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        from flask import jsonify

        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def server_error(error):
        """Handle 500 errors."""
        from flask import jsonify

        return jsonify({"error": "Server error"}), 500

    logger.info("Application created and configured")
    return app


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Received signal %d, initiating shutdown...", signum)
    _shutdown_event.set()


def register_signal_handlers(app: Flask | None = None):
    """Register signal handlers for graceful shutdown.

    With an application, its orchestrator stops polling on shutdown.
    """

    def handler(signum, frame):
        signal_handler(signum, frame)
        if app is not None:
            with app.app_context():
                get_orchestrator().close()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def get_shutdown_event():
    """Get the shutdown event for external components."""
    return _shutdown_event
