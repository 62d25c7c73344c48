"""
Job model for the client-side view of a render job.

This module provides the Job and RenderSettings models tracked by the orchestrator.
"""

from __future__ import annotations

from typing import Any

from ..config.settings import (
    DEFAULT_FPS,
    MAX_FPS,
    MIN_FPS,
    ROTATIONS,
    STAGE_COMPLETE,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
)
from .base import BaseModel
from .payloads import JobStatusSnapshot, UploadResult


def normalize_fps(value: Any) -> int:
    """Clamp user-entered frame rate to the accepted range.

    Unparseable or non-positive input falls back to the default frame rate.

    Args:
        value: Raw frame rate from the UI

    Returns:
        Frame rate between MIN_FPS and MAX_FPS
    """
    try:
        fps = int(value)
    except (TypeError, ValueError):
        return DEFAULT_FPS
    if fps < MIN_FPS:
        return DEFAULT_FPS
    return min(fps, MAX_FPS)


def check_rotation(rotation: int) -> int:
    """Return rotation unchanged, raising ValueError for anything but a right angle."""
    if isinstance(rotation, bool) or rotation not in ROTATIONS:
        raise ValueError(f"Rotation must be one of {ROTATIONS}, got {rotation!r}")
    return rotation


class RenderSettings(BaseModel):
    """Rotation and frame rate chosen for a render."""

    fields = ("rotation", "fps")

    def __init__(self, rotation: int = 0, fps: int = DEFAULT_FPS) -> None:
        super().__init__()
        self.rotation = check_rotation(rotation)
        self.fps = fps


class Job(BaseModel):
    """Job model representing a submitted frame sequence.

    A Job only exists after the backend accepted a submission. Its progress
    fields mirror the last applied status snapshot.
    """

    fields = (
        "job_id",
        "file_count",
        "filenames",
        "settings",
        "status",
        "progress",
        "stage",
        "current_frame",
        "total_frames",
        "error",
    )

    def __init__(self, **kwargs: Any) -> None:
        """Initialize the Job model with provided attributes.

        Args:
            **kwargs: Field values to set on the model instance.
        """
        super().__init__()
        self.job_id: str = kwargs["job_id"]
        self.file_count: int = kwargs.get("file_count", 0)
        self.filenames: list[str] = list(kwargs.get("filenames") or [])
        self.settings: RenderSettings | None = kwargs.get("settings")
        self.status: str | None = kwargs.get("status")
        self.progress: int = kwargs.get("progress", 0)
        self.stage: str | None = kwargs.get("stage")
        self.current_frame: int | None = kwargs.get("current_frame")
        self.total_frames: int | None = kwargs.get("total_frames")
        self.error: str | None = kwargs.get("error")

    @classmethod
    def from_upload(cls, result: UploadResult) -> Job:
        """Create a job from a successful submission."""
        return cls(
            job_id=result.job_id,
            file_count=result.file_count,
            filenames=result.filenames,
        )

    @property
    def middle_index(self) -> int:
        """Index of the frame shown as preview."""
        return self.file_count // 2

    def clear_render_progress(self) -> None:
        """Forget everything learned from a previous render."""
        self.status = None
        self.progress = 0
        self.stage = None
        self.current_frame = None
        self.total_frames = None
        self.error = None

    def start_render(self, settings: RenderSettings, status: str = STATUS_PENDING) -> None:
        self.clear_render_progress()
        self.settings = settings
        self.status = status

    def apply_snapshot(self, snapshot: JobStatusSnapshot) -> None:
        """Merge a status reading; progress never moves backwards.

        Args:
            snapshot: Status reading from the backend
        """
        self.status = snapshot.status
        self.progress = max(self.progress, snapshot.percent)
        if snapshot.stage is not None:
            self.stage = snapshot.stage
        if snapshot.current_frame is not None:
            self.current_frame = snapshot.current_frame
        if snapshot.total_frames is not None:
            self.total_frames = snapshot.total_frames
        if self.current_frame is not None and self.total_frames is not None:
            self.current_frame = min(self.current_frame, self.total_frames)

        if snapshot.status == STATUS_COMPLETED:
            self.mark_completed(snapshot.progress)
        elif snapshot.status == STATUS_FAILED:
            self.mark_failed(snapshot.error or "Video creation failed")

    def mark_completed(self, reported_progress: int | None = None) -> None:
        """Mark the render as completed.

        Progress reads 100 unless the backend explicitly reported a value.
        """
        self.status = STATUS_COMPLETED
        if reported_progress is None:
            self.progress = 100
        self.stage = self.stage or STAGE_COMPLETE
        self.error = None

    def mark_failed(self, error_message: str) -> None:
        """Mark the render as failed with an error message.

        Args:
            error_message: The error message describing the failure.
        """
        self.status = STATUS_FAILED
        self.error = error_message

    def __repr__(self) -> str:
        """Return a string representation of the job."""
        return f"<Job id={self.job_id} status={self.status} files={self.file_count}>"
