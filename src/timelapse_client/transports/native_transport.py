"""Native transport: command invocation on a co-located render process."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ..config.settings import VIDEO_MIME_TYPE
from ..errors import BridgeError, TransportError, ValidationError
from ..models.payloads import (
    ImageUpload,
    JobStatusSnapshot,
    MediaReference,
    RenderAccepted,
    UploadResult,
    is_supported_path,
)
from ..services.progress import UploadProgressReporter
from .base import BaseTransport
from .bridge import Bridge
from .dialogs import DialogProvider, PresetDialogs

logger = logging.getLogger(__name__)


class NativeTransport(BaseTransport):
    """Transport calling backend commands through a synchronous bridge.

    There is no shared HTTP server, so previews and videos come back inline as
    data URIs. Input files are chosen and the video saved through a dialog
    provider.
    """

    name = "native"
    reports_transfer_progress = False

    def __init__(self, bridge: Bridge, dialogs: DialogProvider | None = None) -> None:
        """Initialize the transport.

        Args:
            bridge: Command bridge to the backend process
            dialogs: File picker and save dialog provider
        """
        self.bridge = bridge
        self.dialogs = dialogs or PresetDialogs()

    def _invoke(self, command: str, **args: Any) -> Any:
        try:
            return self.bridge.invoke(command, args)
        except BridgeError as e:
            logger.warning("Backend command %s failed: %s", command, e.reason)
            raise

    def _invoke_dict(self, command: str, **args: Any) -> dict[str, Any]:
        result = self._invoke(command, **args)
        if not isinstance(result, dict):
            raise TransportError(f"Unexpected result from {command}: {result!r}"[:500])
        return result

    def _media(self, command: str, **args: Any) -> MediaReference:
        result = self._invoke(command, **args)
        try:
            return MediaReference.from_data_uri(result)
        except ValueError as e:
            raise TransportError(f"Invalid media returned by {command}: {e}") from e

    def select_images(self) -> list[Path]:
        """Open the file picker.

        Returns:
            Selected paths, empty if the user cancelled
        """
        return self.dialogs.pick_images()

    def submit(
        self,
        images: Sequence[str | Path | ImageUpload],
        progress: UploadProgressReporter | None = None,
    ) -> UploadResult:
        paths = []
        for image in images:
            if isinstance(image, ImageUpload):
                raise ValidationError(
                    "The native backend reads files from disk; select image paths instead"
                )
            if is_supported_path(image):
                paths.append(str(image))
            else:
                logger.debug("Skipping unsupported file %s", image)

        if not paths:
            raise ValidationError("No valid image files found. Select PNG, JPEG or WebP images.")

        if progress:
            progress.begin()

        logger.info("Submitting %d files to the local backend", len(paths))
        result = UploadResult.from_dict(self._invoke_dict("upload_images", paths=paths))
        if not result.is_valid():
            raise TransportError("Invalid response from upload")

        if progress:
            progress.complete()

        logger.info("Upload accepted as job %s with %d files", result.job_id, result.file_count)
        return result

    def _request_render(self, job_id: str, rotation: int, fps: int) -> RenderAccepted:
        result = self._invoke_dict("create_timelapse", jobId=job_id, fps=fps, rotation=rotation)
        return RenderAccepted.from_dict(result)

    def poll_status(self, job_id: str) -> JobStatusSnapshot:
        result = self._invoke_dict("get_job_status", jobId=job_id)
        if "status" not in result:
            raise TransportError(f"Status result for job {job_id} has no status field")
        return JobStatusSnapshot.from_dict(result)

    def _fetch_preview(self, job_id: str, frame_index: int) -> MediaReference:
        return self._media("get_preview", jobId=job_id, index=frame_index)

    def fetch_artifact(self, job_id: str, cache_buster: int | None = None) -> MediaReference:
        # inline payloads are always fresh
        reference = self._media("get_video_data", jobId=job_id)
        if reference.mime_type is None:
            reference.mime_type = VIDEO_MIME_TYPE
        return reference

    def save_artifact(self, job_id: str, destination: str | Path | None = None) -> Path | None:
        """Copy the rendered video to a user-chosen location.

        Without a destination the save dialog is opened with a default file name.
        """
        if destination is None:
            destination = self.dialogs.choose_save_path(f"timelapse_{job_id}.mp4")
            if destination is None:
                logger.info("Save cancelled for job %s", job_id)
                return None

        destination = Path(destination)
        self._invoke("save_video", jobId=job_id, savePath=str(destination))
        logger.info("Saved video for job %s to %s", job_id, destination)
        return destination

    def cleanup(self, job_id: str) -> bool:
        return bool(self._invoke("cleanup_job", jobId=job_id))

    def health_check(self) -> bool:
        return self.bridge.is_available()

    def describe(self) -> dict[str, Any]:
        return {"transport": self.name, "bridge": self.bridge.__class__.__name__}
