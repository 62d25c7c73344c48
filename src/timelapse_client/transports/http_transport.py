"""Network transport: multipart upload plus REST polling against the render server."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..config.settings import VIDEO_MIME_TYPE
from ..errors import TransportError, ValidationError
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

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "files"
CHUNK_SIZE = 64 * 1024
ERROR_DETAIL_LIMIT = 500


class MultipartBody:
    """Iterable multipart/form-data body that reports bytes as they are sent."""

    def __init__(
        self,
        uploads: Sequence[ImageUpload],
        progress: UploadProgressReporter | None = None,
        boundary: str | None = None,
    ) -> None:
        self.boundary = boundary or f"----timelapse{uuid.uuid4().hex}"
        self.progress = progress
        self._parts = list(self._build_parts(uploads))
        self.length = sum(len(part) for part in self._parts)

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def _build_parts(self, uploads: Sequence[ImageUpload]) -> Iterator[bytes]:
        for upload in uploads:
            filename = upload.filename.replace("\\", "\\\\").replace('"', '\\"')
            header = (
                f"--{self.boundary}\r\n"
                f'Content-Disposition: form-data; name="{UPLOAD_FIELD}"; filename="{filename}"\r\n'
                f"Content-Type: {upload.content_type or 'application/octet-stream'}\r\n\r\n"
            )
            yield header.encode("utf-8")
            yield upload.data
            yield b"\r\n"
        yield f"--{self.boundary}--\r\n".encode("ascii")

    def __iter__(self) -> Iterator[bytes]:
        sent = 0
        for part in self._parts:
            for start in range(0, len(part), CHUNK_SIZE):
                chunk = part[start : start + CHUNK_SIZE]
                yield chunk
                sent += len(chunk)
                if self.progress:
                    self.progress.update(sent, self.length)


def _error_detail(body: bytes) -> str:
    """Extract a readable message from an error response body."""
    text = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text)
    except ValueError:
        return text[:ERROR_DETAIL_LIMIT]
    if isinstance(payload, dict):
        detail = payload.get("error") or payload.get("message")
        if detail:
            return str(detail)[:ERROR_DETAIL_LIMIT]
    return json.dumps(payload)[:ERROR_DETAIL_LIMIT]


class HttpTransport(BaseTransport):
    """Transport speaking to the render server's REST API.

    Previews and videos are returned as URLs the UI loads lazily; the video URL
    can carry a cache buster so a regenerated video is not served from cache.
    """

    name = "http"
    reports_transfer_progress = True

    def __init__(self, base_url: str, timeout: float = 30.0) -> None:
        """Initialize the transport.

        Args:
            base_url: Root URL of the render server, e.g. http://localhost:8080
            timeout: Timeout in seconds for every call except uploads
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _send(
        self,
        request: Request,
        action: str,
        timeout: float | None,
    ) -> tuple[bytes, str]:
        """Send a request and return the body and content type.

        Raises:
            TransportError: On connection failures and non-2xx responses
        """
        try:
            with urlopen(request, timeout=timeout) as response:
                return response.read(), response.headers.get("Content-Type", "")
        except HTTPError as e:
            detail = _error_detail(e.read() or b"") or e.reason or "Unknown error"
            logger.warning("%s failed with HTTP %d: %s", action, e.code, detail)
            raise TransportError(
                f"{action} failed (HTTP {e.code}): {detail}", status_code=e.code
            ) from e
        except (URLError, OSError) as e:
            logger.error("Cannot reach backend at %s: %s", self.base_url, e)
            raise TransportError(
                f"Cannot connect to backend at {self.base_url}. Make sure the backend is running.",
                reachable=False,
            ) from e

    def _json(
        self,
        method: str,
        path: str,
        action: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        data = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = Request(self.url_for(path), data=data, headers=headers, method=method)
        body, _ = self._send(request, action, self.timeout)
        return self._decode(body)

    @staticmethod
    def _decode(body: bytes) -> dict[str, Any]:
        text = body.decode("utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON response from server: {text[:ERROR_DETAIL_LIMIT]}"
            ) from e
        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected response from server: {text[:ERROR_DETAIL_LIMIT]}")
        return payload

    @staticmethod
    def _collect_uploads(images: Sequence[ImageUpload | str | Path]) -> list[ImageUpload]:
        uploads = []
        for image in images:
            if not isinstance(image, ImageUpload):
                if not is_supported_path(image):
                    logger.debug("Skipping unsupported file %s", image)
                    continue
                try:
                    image = ImageUpload.from_path(image)
                except OSError as e:
                    logger.warning("Skipping unreadable file %s: %s", image, e)
                    continue
            if not image.is_supported:
                logger.debug("Skipping unsupported file %s (%s)", image.filename, image.content_type)
                continue
            uploads.append(image)
        return uploads

    def submit(
        self,
        images: Sequence[ImageUpload | str | Path],
        progress: UploadProgressReporter | None = None,
    ) -> UploadResult:
        uploads = self._collect_uploads(images)
        if not uploads:
            raise ValidationError("No valid image files found. Select PNG, JPEG or WebP images.")

        body = MultipartBody(uploads, progress)
        request = Request(
            self.url_for("/api/upload"),
            data=body,
            headers={
                "Content-Type": body.content_type,
                "Content-Length": str(body.length),
                "Accept": "application/json",
            },
            method="POST",
        )

        logger.info("Uploading %d files (%d bytes) to %s", len(uploads), body.length, self.base_url)
        try:
            # large uploads get no client-side timeout
            raw, _ = self._send(request, "Upload", timeout=None)
        except TransportError as e:
            if e.status_code == 400:
                raise ValidationError(str(e)) from e
            raise

        result = UploadResult.from_dict(self._decode(raw))
        if not result.is_valid():
            raise TransportError("Invalid response from upload")
        if progress:
            progress.complete()

        logger.info("Upload accepted as job %s with %d files", result.job_id, result.file_count)
        return result

    def _request_render(self, job_id: str, rotation: int, fps: int) -> RenderAccepted:
        payload = self._json(
            "POST",
            "/api/create-timelapse",
            "Create timelapse",
            {"jobId": job_id, "rotation": rotation, "fps": fps},
        )
        return RenderAccepted.from_dict(payload)

    def poll_status(self, job_id: str) -> JobStatusSnapshot:
        payload = self._json("GET", f"/api/job-status/{quote(job_id, safe='')}", "Get job status")
        if "status" not in payload:
            raise TransportError(f"Status response for job {job_id} has no status field")
        return JobStatusSnapshot.from_dict(payload)

    def _fetch_preview(self, job_id: str, frame_index: int) -> MediaReference:
        return MediaReference(url=self.url_for(f"/api/preview/{quote(job_id, safe='')}/{frame_index}"))

    def fetch_artifact(self, job_id: str, cache_buster: int | None = None) -> MediaReference:
        url = self.url_for(f"/api/download/{quote(job_id, safe='')}")
        if cache_buster:
            url = f"{url}?t={cache_buster}"
        return MediaReference(url=url, mime_type=VIDEO_MIME_TYPE)

    def read_media(self, reference: MediaReference) -> bytes:
        if reference.data is not None:
            return reference.data
        body, _ = self._send(Request(reference.url, method="GET"), "Download", timeout=None)
        return body

    def health_check(self) -> bool:
        try:
            self._send(Request(self.url_for("/health"), method="GET"), "Health check", self.timeout)
        except TransportError:
            return False
        return True

    def describe(self) -> dict[str, Any]:
        return {"transport": self.name, "api_url": self.base_url}
