"""Cancellable status polling for a rendering job."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ..errors import StaleResultError
from ..models.payloads import JobStatusSnapshot
from .executor_adapter import ExecutorAdapter

logger = logging.getLogger(__name__)


class StatusPoller:
    """Polls a job's status on a fixed interval until told to stop.

    The first poll happens immediately. Ticks run one after another on a single
    background thread, so two polls for the same job are never in flight at
    once. Polling ends when a terminal status arrives, when a poll raises, when
    the attempt limit is reached, or when ``stop`` is called. A result that
    arrives after ``stop`` is dropped.

    Each tick carries a sequence number, passed to the callbacks, so the
    receiver can refuse out-of-order results.

    Usable as a context manager: polling starts on enter and is stopped on exit.
    """

    def __init__(
        self,
        job_id: str,
        poll: Callable[[str], JobStatusSnapshot],
        on_snapshot: Callable[[int, JobStatusSnapshot], None],
        on_error: Callable[[int, Exception], None],
        interval: float = 2.0,
        max_attempts: int = 0,
        on_exhausted: Callable[[int], None] | None = None,
        executor: ExecutorAdapter | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            job_id: Job to poll
            poll: Function reading one status snapshot
            on_snapshot: Receives (sequence, snapshot) for every applied tick
            on_error: Receives (sequence, exception) when a poll fails
            interval: Seconds between the end of one tick and the next
            max_attempts: Stop after this many polls; 0 means no limit
            on_exhausted: Receives the attempt count when max_attempts is reached
            executor: Adapter used to start the background thread
        """
        self.job_id = job_id
        self.interval = interval
        self.max_attempts = max_attempts
        self._poll = poll
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._on_exhausted = on_exhausted
        self._executor = executor or ExecutorAdapter()
        self._stop_event = threading.Event()
        self._finished = threading.Event()
        self._thread: threading.Thread | None = None
        self.attempts = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._finished.is_set()

    def start(self) -> StatusPoller:
        if self._thread is not None:
            raise RuntimeError(f"Poller for job {self.job_id} already started")
        self._thread = self._executor.submit_job(self._run, name=f"poll-{self.job_id}")
        return self

    def stop(self) -> None:
        """Cancel all future ticks; an in-flight tick's result will be dropped."""
        if not self._stop_event.is_set():
            logger.debug("Stopping status polling for job %s", self.job_id)
            self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the polling thread to finish.

        Returns:
            True if polling has finished
        """
        if self._thread is None:
            return True
        return self._finished.wait(timeout)

    def __enter__(self) -> StatusPoller:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                if not self._tick():
                    return
                self._stop_event.wait(self.interval)
        except StaleResultError as e:
            logger.debug("%s", e)
        except Exception:
            logger.exception("Unexpected error while polling job %s", self.job_id)
        finally:
            self._stop_event.set()
            self._finished.set()

    def _tick(self) -> bool:
        """Run one poll. Returns True if polling should continue."""
        self.attempts += 1
        sequence = self.attempts

        try:
            snapshot = self._poll(self.job_id)
        except Exception as e:
            if self._stop_event.is_set():
                logger.debug("Ignoring poll error for cancelled job %s: %s", self.job_id, e)
                return False
            logger.warning("Status poll %d for job %s failed: %s", sequence, self.job_id, e)
            self._on_error(sequence, e)
            return False

        if self._stop_event.is_set():
            logger.debug("Dropping status for job %s received after cancellation", self.job_id)
            return False

        self._on_snapshot(sequence, snapshot)

        if snapshot.is_terminal:
            logger.info("Job %s reached terminal status %s", self.job_id, snapshot.status)
            return False

        if self.max_attempts and sequence >= self.max_attempts:
            logger.warning("Giving up on job %s after %d status checks", self.job_id, sequence)
            if self._on_exhausted:
                self._on_exhausted(sequence)
            return False

        return True
