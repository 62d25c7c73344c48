"""Routes package for Flask blueprints."""

from .api import api_bp
from .jobs import jobs_bp

__all__ = ["api_bp", "jobs_bp"]
