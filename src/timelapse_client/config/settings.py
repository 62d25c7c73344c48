"""
Configuration settings for the Timelapse client.

All settings are managed through environment variables with sensible defaults.
"""

import os


class Config:
    """Centralized configuration with environment variable support."""

    # Validation Constants
    MIN_POLL_INTERVAL: float = 0.1
    MAX_POLL_INTERVAL: float = 60.0
    DEFAULT_POLL_INTERVAL: float = 2.0
    DEFAULT_REQUEST_TIMEOUT: float = 30.0

    # Transport selection
    TIMELAPSE_TRANSPORT: str = os.environ.get("TIMELAPSE_TRANSPORT", "http").lower()

    # Network transport
    TIMELAPSE_API_URL: str = os.environ.get("TIMELAPSE_API_URL", "http://localhost:8080")
    TIMELAPSE_REQUEST_TIMEOUT: float = float(
        os.environ.get("TIMELAPSE_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))
    )

    # Native transport
    TIMELAPSE_BACKEND_COMMAND: str = os.environ.get("TIMELAPSE_BACKEND_COMMAND", "timelapse-backend")

    # Polling
    TIMELAPSE_POLL_INTERVAL: float = float(
        os.environ.get("TIMELAPSE_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))
    )
    # 0 keeps polling until the backend reports a terminal status
    TIMELAPSE_MAX_POLL_ATTEMPTS: int = int(os.environ.get("TIMELAPSE_MAX_POLL_ATTEMPTS", "0"))

    # Logging
    TIMELAPSE_LOG_LEVEL: str = os.environ.get("TIMELAPSE_LOG_LEVEL", "INFO").upper()

    # Security - Flask
    SECRET_KEY: str = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key-change-in-production")

    # Flask settings
    DEBUG: bool = os.environ.get("FLASK_DEBUG", "false").lower() in ("true", "1", "yes")
    TESTING: bool = os.environ.get("FLASK_TESTING", "false").lower() in ("true", "1", "yes")

    # Application settings
    APP_HOST: str = os.environ.get("FLASK_HOST", "127.0.0.1")
    APP_PORT: int = int(os.environ.get("FLASK_PORT", "5000"))

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration and return list of errors.

        Returns empty list if configuration is valid.
        """
        errors: list[str] = []

        if not cls.SECRET_KEY or cls.SECRET_KEY == "dev-secret-key-change-in-production":
            if not cls.DEBUG:
                errors.append("FLASK_SECRET_KEY must be set in production")

        if cls.TIMELAPSE_TRANSPORT not in TRANSPORTS:
            errors.append(
                f"TIMELAPSE_TRANSPORT must be one of: {', '.join(TRANSPORTS)}"
            )

        if cls.TIMELAPSE_TRANSPORT == TRANSPORT_HTTP and not cls.TIMELAPSE_API_URL.startswith(
            ("http://", "https://")
        ):
            errors.append("TIMELAPSE_API_URL must start with http:// or https://")

        if (
            cls.TIMELAPSE_POLL_INTERVAL < cls.MIN_POLL_INTERVAL
            or cls.TIMELAPSE_POLL_INTERVAL > cls.MAX_POLL_INTERVAL
        ):
            errors.append(
                f"TIMELAPSE_POLL_INTERVAL must be between {cls.MIN_POLL_INTERVAL} and {cls.MAX_POLL_INTERVAL}"
            )

        if cls.TIMELAPSE_MAX_POLL_ATTEMPTS < 0:
            errors.append("TIMELAPSE_MAX_POLL_ATTEMPTS must be non-negative")

        if cls.TIMELAPSE_REQUEST_TIMEOUT <= 0:
            errors.append("TIMELAPSE_REQUEST_TIMEOUT must be positive")

        return errors


# Transports
TRANSPORT_HTTP: str = "http"
TRANSPORT_NATIVE: str = "native"

TRANSPORTS: list[str] = [TRANSPORT_HTTP, TRANSPORT_NATIVE]

# Client-side phases of the active job
PHASE_IDLE: str = "idle"
PHASE_UPLOADING: str = "uploading"
PHASE_UPLOADED: str = "uploaded"
PHASE_RENDERING: str = "rendering"
PHASE_COMPLETED: str = "completed"
PHASE_FAILED: str = "failed"

ALL_PHASES: list[str] = [
    PHASE_IDLE,
    PHASE_UPLOADING,
    PHASE_UPLOADED,
    PHASE_RENDERING,
    PHASE_COMPLETED,
    PHASE_FAILED,
]

# Backend job status constants
STATUS_PENDING: str = "pending"
STATUS_PROCESSING: str = "processing"
STATUS_COMPLETED: str = "completed"
STATUS_FAILED: str = "failed"

ALL_STATUSES: list[str] = [
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_COMPLETED,
    STATUS_FAILED,
]

TERMINAL_STATUSES: frozenset[str] = frozenset({STATUS_COMPLETED, STATUS_FAILED})

# Backend processing stages
STAGE_PREPARING: str = "preparing"
STAGE_ENCODING: str = "encoding"
STAGE_FINALIZING: str = "finalizing"
STAGE_COMPLETE: str = "complete"

ALL_STAGES: list[str] = [STAGE_PREPARING, STAGE_ENCODING, STAGE_FINALIZING, STAGE_COMPLETE]

# Render settings
ROTATIONS: tuple[int, ...] = (0, 90, 180, 270)
MIN_FPS: int = 1
MAX_FPS: int = 60
DEFAULT_FPS: int = 30

# Accepted input images
IMAGE_EXTENSIONS: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}
IMAGE_CONTENT_TYPES: frozenset[str] = frozenset({"image/png", "image/jpeg", "image/webp"})

VIDEO_MIME_TYPE: str = "video/mp4"

# Upload feedback for transports without incremental transfer events
UPLOAD_BUSY_PERCENT: int = 10


def get_config() -> type[Config]:
    """Get the Config class."""
    return Config
