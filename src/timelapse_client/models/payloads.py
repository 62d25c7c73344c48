"""
Transport payload models.

These models describe what goes over the wire to the rendering backend and what
comes back, independently of which transport carried it.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
from pathlib import Path
from typing import Any

from ..config.settings import (
    IMAGE_CONTENT_TYPES,
    IMAGE_EXTENSIONS,
    STATUS_PENDING,
    TERMINAL_STATUSES,
)
from .base import BaseModel


def _optional_int(value: Any) -> int | None:
    """Coerce a loosely typed backend value to int, or None when absent/unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ImageUpload(BaseModel):
    """An in-memory image frame selected for upload."""

    fields = ("filename", "content_type")

    def __init__(self, filename: str, data: bytes, content_type: str | None = None) -> None:
        super().__init__()
        self.filename = filename
        self.data = data
        self.content_type = content_type or guess_image_type(filename)

    @classmethod
    def from_path(cls, path: str | Path) -> ImageUpload:
        """Read an image file from disk."""
        path = Path(path)
        return cls(path.name, path.read_bytes())

    @property
    def is_supported(self) -> bool:
        """Whether the declared content type or extension is an accepted image kind."""
        if self.content_type in IMAGE_CONTENT_TYPES:
            return True
        return Path(self.filename).suffix.lower() in IMAGE_EXTENSIONS

    def __repr__(self) -> str:
        return f"<ImageUpload filename={self.filename!r} size={len(self.data)}>"


def guess_image_type(filename: str) -> str | None:
    """Guess the content type of an image from its extension."""
    suffix = Path(filename).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return IMAGE_EXTENSIONS[suffix]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed


def is_supported_path(path: str | Path) -> bool:
    """Whether a local path has one of the accepted image extensions."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


class UploadResult(BaseModel):
    """Backend response to a successful submission."""

    fields = ("job_id", "file_count", "filenames")

    def __init__(self, **kwargs: Any) -> None:
        super().__init__()
        self.job_id: str = kwargs.get("job_id") or ""
        self.file_count: int = _optional_int(kwargs.get("file_count")) or 0
        self.filenames: list[str] = list(kwargs.get("filenames") or [])

    def is_valid(self) -> bool:
        """A usable job has an id and at least one frame."""
        return bool(self.job_id) and self.file_count > 0


class RenderAccepted(BaseModel):
    """Backend acknowledgement of a render request."""

    fields = ("job_id", "status")

    def __init__(self, **kwargs: Any) -> None:
        super().__init__()
        self.job_id: str = kwargs.get("job_id") or ""
        self.status: str = kwargs.get("status") or STATUS_PENDING


class JobStatusSnapshot(BaseModel):
    """A single status reading for a job.

    The backend schema is partial: everything except ``status`` may be absent.
    """

    fields = ("status", "progress", "stage", "current_frame", "total_frames", "error")

    def __init__(self, **kwargs: Any) -> None:
        super().__init__()
        self.status: str = kwargs.get("status") or STATUS_PENDING
        self.progress: int | None = _optional_int(kwargs.get("progress"))
        self.stage: str | None = kwargs.get("stage")
        self.current_frame: int | None = _optional_int(kwargs.get("current_frame"))
        self.total_frames: int | None = _optional_int(kwargs.get("total_frames"))
        self.error: str | None = kwargs.get("error")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def percent(self) -> int:
        """Reported progress clamped to 0-100, defaulting to 0."""
        if self.progress is None:
            return 0
        return max(0, min(100, self.progress))


class MediaReference(BaseModel):
    """A preview frame or rendered video, either addressed by URL or carried inline."""

    fields = ("url", "mime_type")

    def __init__(
        self,
        url: str | None = None,
        data: bytes | None = None,
        mime_type: str | None = None,
    ) -> None:
        super().__init__()
        if (url is None) == (data is None):
            raise ValueError("MediaReference needs exactly one of url or data")
        self.url = url
        self.data = data
        self.mime_type = mime_type

    @classmethod
    def from_data_uri(cls, uri: str) -> MediaReference:
        """Parse a ``data:<mime>;base64,<payload>`` URI.

        Raises:
            ValueError: If the URI is not a base64 data URI
        """
        if not isinstance(uri, str) or not uri.startswith("data:"):
            raise ValueError("Expected a data URI")
        header, sep, payload = uri[5:].partition(",")
        if not sep or not header.endswith(";base64"):
            raise ValueError("Expected a base64 data URI")
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
        return cls(data=data, mime_type=header[: -len(";base64")] or None)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    @property
    def data_uri(self) -> str | None:
        if self.data is None:
            return None
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type or 'application/octet-stream'};base64,{encoded}"

    def to_dict(self, exclude: list[str] | None = None) -> dict[str, Any]:
        if self.is_inline:
            return {"mimeType": self.mime_type, "dataUri": self.data_uri}
        return {"url": self.url, "mimeType": self.mime_type}
