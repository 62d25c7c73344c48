"""Shared pytest fixtures."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from timelapse_client.config import Config
from timelapse_client.errors import TransportError, ValidationError
from timelapse_client.models.payloads import (
    ImageUpload,
    JobStatusSnapshot,
    MediaReference,
    RenderAccepted,
    UploadResult,
    is_supported_path,
)
from timelapse_client.services import ExecutorAdapter, JobOrchestrator
from timelapse_client.transports import BaseTransport


class TestConfig(Config):
    """Configuration used by the application fixtures."""

    __test__ = False

    TESTING = True
    SECRET_KEY = "test-secret-key"
    TIMELAPSE_TRANSPORT = "http"
    TIMELAPSE_POLL_INTERVAL = 0.01
    TIMELAPSE_MAX_POLL_ATTEMPTS = 0


class RecordingExecutor(ExecutorAdapter):
    """Executor remembering every thread it started."""

    def __init__(self) -> None:
        self.threads: list[threading.Thread] = []

    def submit_job(self, func, *args, name=None):
        thread = super().submit_job(func, *args, name=name)
        self.threads.append(thread)
        return thread

    def join_all(self, timeout: float = 2.0) -> None:
        for thread in self.threads:
            thread.join(timeout)


class FakeTransport(BaseTransport):
    """In-memory backend with scripted status readings.

    ``statuses`` is consumed one reading per poll; the last reading repeats.
    Setting ``poll_gate`` holds every poll until the event is set.
    """

    name = "fake"
    reports_transfer_progress = True

    def __init__(self) -> None:
        self.jobs: dict[str, list[str]] = {}
        self.statuses: list[dict] = [{"status": "completed", "progress": 100}]
        self.render_requests: list[tuple[str, int, int]] = []
        self.previews: list[tuple[str, int]] = []
        self.cleaned: list[str] = []
        self.poll_calls: list[str] = []
        self.submit_error: Exception | None = None
        self.render_error: Exception | None = None
        self.poll_error: Exception | None = None
        self.poll_gate: threading.Event | None = None
        self.poll_entered = threading.Event()
        self.video = b"\x00\x00\x00\x18ftypmp42"
        self._counter = 0

    def submit(self, images, progress=None):
        if self.submit_error:
            raise self.submit_error
        names = []
        for image in images:
            name = image.filename if isinstance(image, ImageUpload) else Path(image).name
            if is_supported_path(name):
                names.append(name)
        if not names:
            raise ValidationError("No valid image files found. Select PNG, JPEG or WebP images.")

        if progress:
            progress.update(1, 2)
            progress.complete()

        self._counter += 1
        job_id = f"job-{self._counter}"
        self.jobs[job_id] = names
        return UploadResult(job_id=job_id, file_count=len(names), filenames=names)

    def _request_render(self, job_id, rotation, fps):
        if self.render_error:
            raise self.render_error
        if job_id not in self.jobs:
            raise TransportError("Create timelapse failed (HTTP 404): Job not found", status_code=404)
        self.render_requests.append((job_id, rotation, fps))
        return RenderAccepted(job_id=job_id, status="processing")

    def poll_status(self, job_id):
        self.poll_calls.append(job_id)
        if self.poll_error:
            raise self.poll_error
        if job_id not in self.jobs:
            raise TransportError("Get job status failed (HTTP 404): Job not found", status_code=404)
        reading = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if self.poll_gate is not None:
            self.poll_entered.set()
            self.poll_gate.wait(5)
        return JobStatusSnapshot.from_dict(reading)

    def _fetch_preview(self, job_id, frame_index):
        self.previews.append((job_id, frame_index))
        return MediaReference(url=f"http://backend/api/preview/{job_id}/{frame_index}")

    def fetch_artifact(self, job_id, cache_buster=None):
        return MediaReference(data=self.video, mime_type="video/mp4")

    def cleanup(self, job_id):
        self.cleaned.append(job_id)
        return self.jobs.pop(job_id, None) is not None


# ============================================================================
# Orchestrator Fixtures
# ============================================================================


@pytest.fixture
def fake_transport() -> FakeTransport:
    """In-memory transport."""
    return FakeTransport()


@pytest.fixture
def executor() -> RecordingExecutor:
    """Executor whose polling threads can be joined."""
    return RecordingExecutor()


@pytest.fixture
def orchestrator(fake_transport, executor):
    """Orchestrator polling the fake transport every 10 ms."""
    orchestrator = JobOrchestrator(fake_transport, poll_interval=0.01, executor=executor)
    yield orchestrator
    orchestrator.close()
    if fake_transport.poll_gate is not None:
        fake_transport.poll_gate.set()
    executor.join_all()


@pytest.fixture
def frames() -> list[str]:
    """Five frame file names."""
    return [f"frame_{i:03d}.png" for i in range(5)]


@pytest.fixture
def image_files(tmp_path: Path) -> list[Path]:
    """Three small image files on disk plus one unsupported file."""
    paths = []
    for name in ("a.png", "b.jpg", "c.webp"):
        path = tmp_path / name
        path.write_bytes(b"\x89PNG\r\n\x1a\n" + name.encode() * 100)
        paths.append(path)
    notes = tmp_path / "notes.txt"
    notes.write_text("not an image")
    paths.append(notes)
    return paths


# ============================================================================
# Flask App Fixtures
# ============================================================================


@pytest.fixture
def config_class() -> type[Config]:
    """Configuration class for test applications."""
    return TestConfig


@pytest.fixture
def app(config_class, fake_transport):
    """Create Flask app for testing backed by the fake transport."""
    from timelapse_client import create_app
    from timelapse_client.extensions import EXTENSION_KEY

    app = create_app(config_class, transport=fake_transport)

    yield app

    app.extensions[EXTENSION_KEY].close()
    if fake_transport.poll_gate is not None:
        fake_transport.poll_gate.set()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def app_orchestrator(app) -> JobOrchestrator:
    """The orchestrator owned by the test application."""
    from timelapse_client.extensions import EXTENSION_KEY

    return app.extensions[EXTENSION_KEY]
