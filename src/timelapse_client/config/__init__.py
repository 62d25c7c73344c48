"""
Configuration module for the Timelapse client.

This package provides centralized configuration management with environment variable support.
"""

from .settings import (
    ALL_PHASES,
    ALL_STAGES,
    ALL_STATUSES,
    DEFAULT_FPS,
    IMAGE_CONTENT_TYPES,
    IMAGE_EXTENSIONS,
    MAX_FPS,
    MIN_FPS,
    PHASE_COMPLETED,
    PHASE_FAILED,
    PHASE_IDLE,
    PHASE_RENDERING,
    PHASE_UPLOADED,
    PHASE_UPLOADING,
    ROTATIONS,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    TERMINAL_STATUSES,
    TRANSPORT_HTTP,
    TRANSPORT_NATIVE,
    TRANSPORTS,
    UPLOAD_BUSY_PERCENT,
    VIDEO_MIME_TYPE,
    Config,
    get_config,
)

__all__ = [
    "Config",
    "get_config",
    "TRANSPORT_HTTP",
    "TRANSPORT_NATIVE",
    "TRANSPORTS",
    "PHASE_IDLE",
    "PHASE_UPLOADING",
    "PHASE_UPLOADED",
    "PHASE_RENDERING",
    "PHASE_COMPLETED",
    "PHASE_FAILED",
    "ALL_PHASES",
    "STATUS_PENDING",
    "STATUS_PROCESSING",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "ALL_STATUSES",
    "TERMINAL_STATUSES",
    "ALL_STAGES",
    "ROTATIONS",
    "MIN_FPS",
    "MAX_FPS",
    "DEFAULT_FPS",
    "IMAGE_EXTENSIONS",
    "IMAGE_CONTENT_TYPES",
    "VIDEO_MIME_TYPE",
    "UPLOAD_BUSY_PERCENT",
]
