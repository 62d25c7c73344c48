"""Orchestrator ownership for the Flask application.

The application owns exactly one orchestrator; views reach it through
``get_orchestrator`` instead of a module-level global.
"""

from __future__ import annotations

from flask import Flask, current_app

from .services.orchestrator import JobOrchestrator
from .transports.base import BaseTransport

EXTENSION_KEY = "timelapse_orchestrator"


def init_orchestrator(app: Flask, transport: BaseTransport) -> JobOrchestrator:
    """Create the application's orchestrator.

    Args:
        app: Flask application
        transport: Transport selected for this deployment

    Returns:
        The orchestrator stored on the application
    """
    orchestrator = JobOrchestrator(
        transport,
        poll_interval=app.config["TIMELAPSE_POLL_INTERVAL"],
        max_poll_attempts=app.config["TIMELAPSE_MAX_POLL_ATTEMPTS"],
    )
    app.extensions[EXTENSION_KEY] = orchestrator
    return orchestrator


def get_orchestrator() -> JobOrchestrator:
    """Get the orchestrator of the current application.

    Raises:
        RuntimeError: If called outside of an application context.
    """
    return current_app.extensions[EXTENSION_KEY]
