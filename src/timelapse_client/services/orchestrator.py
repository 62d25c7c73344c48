"""Job orchestrator owning the lifecycle of the job currently on screen.

This service sequences submission, render requests, status polling and
artifact retrieval against whichever transport it was given, and turns
transport failures into phase transitions the UI can display.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..config.settings import (
    PHASE_COMPLETED,
    PHASE_FAILED,
    PHASE_IDLE,
    PHASE_RENDERING,
    PHASE_UPLOADED,
    PHASE_UPLOADING,
    STATUS_COMPLETED,
    STATUS_FAILED,
)
from ..errors import (
    BackendError,
    InvalidStateTransitionError,
    StaleResultError,
    TimelapseError,
    TransportError,
    ValidationError,
)
from ..models.job import Job, RenderSettings
from ..models.payloads import JobStatusSnapshot, MediaReference
from .executor_adapter import ExecutorAdapter
from .poller import StatusPoller
from .progress import UploadProgressReporter

if TYPE_CHECKING:
    from ..transports.base import BaseTransport

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]

# Phases from which each operation may start
_SUBMIT_FROM = {PHASE_IDLE, PHASE_UPLOADED, PHASE_COMPLETED, PHASE_FAILED}
_RENDER_FROM = {PHASE_UPLOADED, PHASE_FAILED}
_ADJUST_FROM = {PHASE_COMPLETED, PHASE_FAILED}
_PREVIEW_FROM = {PHASE_UPLOADED, PHASE_RENDERING, PHASE_COMPLETED, PHASE_FAILED}


class JobOrchestrator:
    """Drives one job at a time through upload, render and download.

    Phases: idle -> uploading -> uploaded -> rendering -> completed, with
    failed reachable from rendering and idle reachable from anywhere through
    ``reset``. Only the orchestrator mutates the job.

    Every polling scope gets a generation number. Results tagged with an older
    generation, or with a tick sequence not newer than the last applied one,
    are discarded, so a reset or a new submission can never be overwritten by
    a slow response for the previous job.
    """

    def __init__(
        self,
        transport: BaseTransport,
        poll_interval: float = 2.0,
        max_poll_attempts: int = 0,
        executor: ExecutorAdapter | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            transport: Transport used to reach the backend
            poll_interval: Seconds between status polls
            max_poll_attempts: Fail the job after this many polls; 0 polls until terminal
            executor: Adapter used to start polling threads
        """
        self.transport = transport
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.executor = executor or ExecutorAdapter()

        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._phase = PHASE_IDLE
        self._job: Job | None = None
        self._settings = RenderSettings()
        self._upload_progress = 0
        self._failure: TimelapseError | None = None
        self._error_phase: str | None = None
        self._cache_buster: int | None = None
        self._generation = 0
        self._last_sequence = 0
        self._poller: StatusPoller | None = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def phase(self) -> str:
        return self._phase

    @property
    def job(self) -> Job | None:
        return self._job

    @property
    def settings(self) -> RenderSettings:
        return self._settings

    @property
    def upload_progress(self) -> int:
        return self._upload_progress

    @property
    def failure(self) -> TimelapseError | None:
        """The error behind the current error message, if any."""
        return self._failure

    @property
    def error(self) -> str | None:
        return str(self._failure) if self._failure else None

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def snapshot(self) -> dict[str, Any]:
        """Current state as a JSON-serializable dictionary."""
        with self._lock:
            return {
                "phase": self._phase,
                "job": self._job.to_dict() if self._job else None,
                "settings": self._settings.to_dict(),
                "uploadProgress": self._upload_progress,
                "error": self.error,
                "errorPhase": self._error_phase,
                "cacheBuster": self._cache_buster,
                "polling": self.is_polling,
            }

    def add_listener(self, listener: Listener) -> None:
        """Register a callback receiving the state snapshot after every change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    # ------------------------------------------------------------------
    # Internal bookkeeping (callers hold the lock)
    # ------------------------------------------------------------------

    def _require(self, allowed: set[str], operation: str) -> None:
        if self._phase not in allowed:
            raise InvalidStateTransitionError(self._phase, operation)

    def _record_failure(self, failure: TimelapseError | None, phase: str | None = None) -> None:
        self._failure = failure
        self._error_phase = phase if failure else None

    def _new_scope(self) -> int:
        """Invalidate every outstanding result and return the new generation."""
        if self._poller is not None:
            self._poller.stop()
            self._poller = None
        self._generation += 1
        self._last_sequence = 0
        return self._generation

    def _check_current(self, generation: int, sequence: int | None = None) -> None:
        job_id = self._job.job_id if self._job else None
        if generation != self._generation:
            raise StaleResultError(job_id, generation)
        if sequence is not None:
            if sequence <= self._last_sequence:
                raise StaleResultError(job_id, generation)
            self._last_sequence = sequence

    def _discard_job(self) -> str | None:
        """Forget the current job and return its id for cleanup."""
        job_id = self._job.job_id if self._job else None
        self._new_scope()
        self._job = None
        self._cache_buster = None
        self._upload_progress = 0
        self._record_failure(None)
        return job_id

    def _cleanup_quietly(self, job_id: str | None) -> bool:
        if not job_id:
            return False
        try:
            cleaned = self.transport.cleanup(job_id)
        except TimelapseError as e:
            logger.warning("Cleanup of job %s failed: %s", job_id, e)
            return False
        logger.info("Cleanup of job %s: %s", job_id, "done" if cleaned else "nothing to clean")
        return cleaned

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, images: Sequence[Any]) -> Job | None:
        """Upload a frame sequence and create a new job.

        A job that is uploaded, completed or failed is superseded. Any upload failure returns the orchestrator to idle
        with the error recorded; unexpected errors are reported as transport
        errors.

        Args:
            images: Image resources understood by the transport

        Returns:
            The new job, or None if the submission failed or was cancelled

        Raises:
            InvalidStateTransitionError: If an upload or render is in progress
        """
        with self._lock:
            self._require(_SUBMIT_FROM, "submit images")
            previous_job_id = self._discard_job()
            generation = self._generation
            self._phase = PHASE_UPLOADING

        self._cleanup_quietly(previous_job_id)
        self._notify()

        reporter = UploadProgressReporter(partial(self._on_upload_progress, generation))
        try:
            result = self.transport.submit(images, reporter)
        except Exception as e:
            if not isinstance(e, (ValidationError, TransportError)):
                logger.exception("Unexpected error while uploading")
                e = TransportError(f"Upload failed: {e}")
            with self._lock:
                if generation != self._generation:
                    logger.debug("Dropping upload error for cancelled submission: %s", e)
                    return None
                logger.warning("Upload failed: %s", e)
                self._phase = PHASE_IDLE
                self._upload_progress = 0
                self._record_failure(e, PHASE_UPLOADING)
            self._notify()
            return None

        with self._lock:
            if generation != self._generation:
                stale_job_id = result.job_id
                job = None
            else:
                job = Job.from_upload(result)
                self._job = job
                self._phase = PHASE_UPLOADED
                self._upload_progress = 100

        if job is None:
            logger.info("Submission was cancelled; discarding job %s", stale_job_id)
            self._cleanup_quietly(stale_job_id)
            return None

        logger.info("Job %s uploaded with %d frames", job.job_id, job.file_count)
        self._notify()
        return job

    def _on_upload_progress(self, generation: int, percent: int) -> None:
        with self._lock:
            if generation != self._generation or self._phase != PHASE_UPLOADING:
                return
            self._upload_progress = percent
        self._notify()

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(self, index: int | None = None) -> MediaReference | None:
        """Get a frame of the current job, the middle one by default.

        Returns:
            Media reference, or None if the backend could not provide it

        Raises:
            InvalidStateTransitionError: If no job has been uploaded
            ValueError: If index is outside the submitted frames
        """
        with self._lock:
            self._require(_PREVIEW_FROM, "preview frames")
            job = self._job
            generation = self._generation

        if index is None:
            index = job.middle_index
        if not 0 <= index < job.file_count:
            raise ValueError(f"Frame index {index} out of range for {job.file_count} frames")

        try:
            return self.transport.fetch_preview(job.job_id, index)
        except TransportError as e:
            logger.warning("Preview %d of job %s failed: %s", index, job.job_id, e)
            with self._lock:
                if generation == self._generation:
                    self._record_failure(e, self._phase)
            self._notify()
            return None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def start_render(self, rotation: int | None = None, fps: int | None = None) -> bool:
        """Request a render with the given settings and start polling.

        Missing settings keep their current values. A failed request moves the
        job to failed with the settings preserved for a retry.

        Returns:
            True if the backend accepted the render

        Raises:
            InvalidStateTransitionError: If there is no uploaded job to render
            ValueError: If rotation is not a right angle
        """
        with self._lock:
            self._require(_RENDER_FROM, "start a render")
            settings = RenderSettings(
                rotation=self._settings.rotation if rotation is None else rotation,
                fps=self._settings.fps if fps is None else fps,
            )
            self._settings = settings
            job = self._job
            generation = self._new_scope()
            job.start_render(settings)
            self._cache_buster = None
            self._record_failure(None)
            self._phase = PHASE_RENDERING

        logger.info(
            "Requesting render of job %s (rotation=%d, fps=%d)",
            job.job_id,
            settings.rotation,
            settings.fps,
        )
        self._notify()

        try:
            accepted = self.transport.request_render(job.job_id, settings.rotation, settings.fps)
        except TransportError as e:
            with self._lock:
                if generation != self._generation:
                    return False
                logger.warning("Render request for job %s failed: %s", job.job_id, e)
                job.mark_failed(str(e))
                self._record_failure(e, PHASE_RENDERING)
                self._phase = PHASE_FAILED
            self._notify()
            return False

        with self._lock:
            if generation != self._generation:
                return False
            job.status = accepted.status
            self._poller = StatusPoller(
                job.job_id,
                self.transport.poll_status,
                on_snapshot=partial(self._apply_snapshot, generation),
                on_error=partial(self._apply_poll_error, generation),
                on_exhausted=partial(self._apply_poll_exhausted, generation),
                interval=self.poll_interval,
                max_attempts=self.max_poll_attempts,
                executor=self.executor,
            )
            self._poller.start()

        self._notify()
        return True

    def _apply_snapshot(self, generation: int, sequence: int, snapshot: JobStatusSnapshot) -> None:
        with self._lock:
            self._check_current(generation, sequence)
            if self._phase != PHASE_RENDERING:
                raise StaleResultError(self._job.job_id if self._job else None, generation)

            job = self._job
            job.apply_snapshot(snapshot)
            if snapshot.status == STATUS_COMPLETED:
                self._phase = PHASE_COMPLETED
                self._cache_buster = int(time.time() * 1000)
                logger.info("Job %s completed", job.job_id)
            elif snapshot.status == STATUS_FAILED:
                self._phase = PHASE_FAILED
                self._record_failure(BackendError(job.job_id, job.error), PHASE_RENDERING)
                logger.warning("Job %s failed: %s", job.job_id, job.error)
            else:
                logger.debug("Job %s at %d%% (%s)", job.job_id, job.progress, job.stage)
        self._notify()

    def _apply_poll_error(self, generation: int, sequence: int, error: Exception) -> None:
        with self._lock:
            self._check_current(generation, sequence)
            if self._phase != PHASE_RENDERING:
                raise StaleResultError(self._job.job_id if self._job else None, generation)
            if not isinstance(error, TransportError):
                error = TransportError(f"Failed to get job status: {error}")
            self._job.mark_failed(str(error))
            self._record_failure(error, PHASE_RENDERING)
            self._phase = PHASE_FAILED
        self._notify()

    def _apply_poll_exhausted(self, generation: int, attempts: int) -> None:
        with self._lock:
            self._check_current(generation)
            if self._phase != PHASE_RENDERING:
                return
            job = self._job
            message = f"Gave up waiting for the render after {attempts} status checks"
            job.mark_failed(message)
            self._record_failure(BackendError(job.job_id, message), PHASE_RENDERING)
            self._phase = PHASE_FAILED
        self._notify()

    def wait_for_render(self, timeout: float | None = None) -> bool:
        """Block until polling ends.

        Returns:
            True if no poller is running anymore
        """
        poller = self._poller
        if poller is None:
            return True
        return poller.join(timeout)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def artifact(self) -> MediaReference | None:
        """Get the rendered video of the completed job.

        Returns:
            Media reference, or None if the backend could not provide it

        Raises:
            InvalidStateTransitionError: If the job has not completed
        """
        with self._lock:
            self._require({PHASE_COMPLETED}, "fetch the video")
            job_id = self._job.job_id
            cache_buster = self._cache_buster
            generation = self._generation

        try:
            return self.transport.fetch_artifact(job_id, cache_buster)
        except TransportError as e:
            logger.warning("Fetching video of job %s failed: %s", job_id, e)
            with self._lock:
                if generation == self._generation:
                    self._record_failure(e, PHASE_COMPLETED)
            self._notify()
            return None

    def read_artifact(self) -> bytes | None:
        """Get the bytes of the rendered video."""
        generation = self._generation
        reference = self.artifact()
        if reference is None:
            return None
        try:
            return self.transport.read_media(reference)
        except TransportError as e:
            logger.warning("Reading video failed: %s", e)
            with self._lock:
                if generation == self._generation:
                    self._record_failure(e, PHASE_COMPLETED)
            self._notify()
            return None

    def save_artifact(self, destination: str | Path | None = None) -> Path | None:
        """Write the rendered video to disk.

        Returns:
            Path written, or None if cancelled or failed
        """
        with self._lock:
            self._require({PHASE_COMPLETED}, "save the video")
            job_id = self._job.job_id
            self._record_failure(None)

        try:
            return self.transport.save_artifact(job_id, destination)
        except (TransportError, OSError) as e:
            logger.warning("Saving video of job %s failed: %s", job_id, e)
            if not isinstance(e, TransportError):
                e = TransportError(f"Failed to save video: {e}")
            with self._lock:
                self._record_failure(e, PHASE_COMPLETED)
            self._notify()
            return None

    # ------------------------------------------------------------------
    # Leaving a job
    # ------------------------------------------------------------------

    def adjust(self) -> None:
        """Go back to the settings of a finished job without uploading again.

        Raises:
            InvalidStateTransitionError: If the job is not completed or failed
        """
        with self._lock:
            self._require(_ADJUST_FROM, "adjust settings")
            self._new_scope()
            self._job.clear_render_progress()
            self._cache_buster = None
            self._record_failure(None)
            self._phase = PHASE_UPLOADED
        self._notify()

    def reset(self) -> bool:
        """Abandon the current job and return to idle.

        Polling stops immediately and the backend is asked to clean up the
        abandoned job; cleanup failures are logged and ignored.

        Returns:
            True if the backend cleaned something up
        """
        with self._lock:
            job_id = self._discard_job()
            self._settings = RenderSettings()
            self._phase = PHASE_IDLE

        if job_id:
            logger.info("Reset; abandoning job %s", job_id)
        self._notify()
        return self._cleanup_quietly(job_id)

    def close(self, timeout: float | None = 1.0) -> None:
        """Stop polling, for application shutdown."""
        with self._lock:
            poller = self._poller
            self._new_scope()
        if poller is not None:
            poller.join(timeout)
