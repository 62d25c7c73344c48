"""Models for jobs and transport payloads."""

from .base import BaseModel
from .job import Job, RenderSettings, check_rotation, normalize_fps
from .payloads import (
    ImageUpload,
    JobStatusSnapshot,
    MediaReference,
    RenderAccepted,
    UploadResult,
    guess_image_type,
    is_supported_path,
)

__all__ = [
    "BaseModel",
    "Job",
    "RenderSettings",
    "check_rotation",
    "normalize_fps",
    "ImageUpload",
    "JobStatusSnapshot",
    "MediaReference",
    "RenderAccepted",
    "UploadResult",
    "guess_image_type",
    "is_supported_path",
]
