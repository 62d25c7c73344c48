"""API blueprint for configuration and health endpoints."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify

from ..extensions import get_orchestrator

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/config/status")
def config_status():
    """Get client configuration for the frontend UI.

    Returns:
        JSON: Response with structure:
            {
                "transport": string - "http" or "native",
                "poll_interval": float - Seconds between status polls,
                "max_poll_attempts": int - 0 when polling is unbounded,
                "api_url": string - Present for the network transport
            }
    """
    orchestrator = get_orchestrator()
    status = orchestrator.transport.describe()
    status.update(
        {
            "poll_interval": orchestrator.poll_interval,
            "max_poll_attempts": orchestrator.max_poll_attempts,
            "reports_transfer_progress": orchestrator.transport.reports_transfer_progress,
        }
    )
    return jsonify(status)


@api_bp.route("/health")
def health():
    """Report application and backend health.

    Returns:
        JSON: {"status": "ok", "backend": bool} with 200 when the backend is
        reachable, 503 otherwise. A failing health check is reported as an
        unreachable backend.
    """
    transport = get_orchestrator().transport
    try:
        backend_ok = transport.health_check()
    except Exception as e:
        logger.exception("Backend health check failed: %s", e)
        backend_ok = False

    body = {
        "status": "ok" if backend_ok else "degraded",
        "backend": backend_ok,
        "transport": transport.name,
    }
    return jsonify(body), 200 if backend_ok else 503
