"""Base transport interface with common functionality."""

from __future__ import annotations

import abc
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, ClassVar

from ..models.job import check_rotation
from ..models.payloads import (
    JobStatusSnapshot,
    MediaReference,
    RenderAccepted,
    UploadResult,
)
from ..services.progress import UploadProgressReporter

logger = logging.getLogger(__name__)


class BaseTransport(abc.ABC):
    """Abstract base class for the ways of reaching the rendering backend.

    Every transport exposes the same operations so the orchestrator never
    needs to know whether it is talking to an HTTP server or a co-located
    process.
    """

    # Short identifier used in configuration and status output
    name: ClassVar[str] = ""

    # Whether submit() reports incremental transfer progress
    reports_transfer_progress: ClassVar[bool] = False

    @abc.abstractmethod
    def submit(
        self,
        images: Sequence[Any],
        progress: UploadProgressReporter | None = None,
    ) -> UploadResult:
        """Send a frame sequence to the backend and create a job.

        Args:
            images: Image resources understood by the transport
            progress: Optional reporter fed with upload progress

        Returns:
            UploadResult with job_id, file_count and filenames

        Raises:
            ValidationError: If no supported image remains after filtering
            TransportError: If the backend cannot be reached or rejects the upload
        """

    def request_render(self, job_id: str, rotation: int, fps: int) -> RenderAccepted:
        """Ask the backend to start encoding a submitted job.

        Returns as soon as the backend accepted the request. ``fps`` is passed
        through unchanged; the backend decides whether it is acceptable.

        Raises:
            ValueError: If rotation is not a right angle
            TransportError: If the job is unknown or the backend cannot be reached
        """
        check_rotation(rotation)
        return self._request_render(job_id, rotation, fps)

    @abc.abstractmethod
    def _request_render(self, job_id: str, rotation: int, fps: int) -> RenderAccepted:
        """Transport-specific render request."""

    @abc.abstractmethod
    def poll_status(self, job_id: str) -> JobStatusSnapshot:
        """Read the current status of a job without side effects.

        Raises:
            TransportError: If the job is unknown or the backend cannot be reached
        """

    def fetch_preview(self, job_id: str, frame_index: int) -> MediaReference:
        """Get one of the submitted frames.

        Raises:
            ValueError: If frame_index is negative
            TransportError: If the frame cannot be retrieved
        """
        if frame_index < 0:
            raise ValueError(f"Frame index must be non-negative, got {frame_index}")
        return self._fetch_preview(job_id, frame_index)

    @abc.abstractmethod
    def _fetch_preview(self, job_id: str, frame_index: int) -> MediaReference:
        """Transport-specific preview retrieval."""

    @abc.abstractmethod
    def fetch_artifact(self, job_id: str, cache_buster: int | None = None) -> MediaReference:
        """Get the rendered video of a completed job.

        Args:
            job_id: Job identifier
            cache_buster: Optional value that forces a fresh copy of a regenerated video

        Raises:
            TransportError: If the video is not available
        """

    def cleanup(self, job_id: str) -> bool:
        """Release backend storage held by a job.

        Returns:
            True if something was cleaned up, False if there was nothing to clean
        """
        return False

    def read_media(self, reference: MediaReference) -> bytes:
        """Return the bytes behind a media reference.

        Raises:
            TransportError: If a referenced URL cannot be fetched
        """
        if reference.data is None:
            raise NotImplementedError(f"{self.name} transport cannot dereference URLs")
        return reference.data

    def save_artifact(self, job_id: str, destination: str | Path | None = None) -> Path | None:
        """Write the rendered video of a job to disk.

        Args:
            job_id: Job identifier
            destination: Target file path

        Returns:
            Path written, or None if no destination was chosen
        """
        if destination is None:
            return None
        destination = Path(destination)
        data = self.read_media(self.fetch_artifact(job_id))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
        logger.info("Saved video for job %s to %s (%d bytes)", job_id, destination, len(data))
        return destination

    def health_check(self) -> bool:
        """Whether the backend is currently reachable."""
        return True

    def describe(self) -> dict[str, Any]:
        """Transport details for status output."""
        return {"transport": self.name}
