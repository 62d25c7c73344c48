"""Upload progress reporting."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ..config.settings import UPLOAD_BUSY_PERCENT

logger = logging.getLogger(__name__)


class UploadProgressReporter:
    """Turns raw transfer counters into a monotonic 0-100 percentage.

    One reporter covers a single submission. Transports with incremental
    transfer events call ``update``; transports that upload in one atomic call
    use ``begin``/``complete`` so the UI sees a busy value instead of a stall
    at 0%.
    """

    def __init__(self, callback: Callable[[int], None] | None = None) -> None:
        """Initialize the reporter.

        Args:
            callback: Optional callback receiving each new percentage
        """
        self.callback = callback
        self._percent = 0
        self._lock = threading.Lock()

    @property
    def percent(self) -> int:
        return self._percent

    def update(self, bytes_sent: int, bytes_total: int) -> int:
        """Record a transfer event.

        Args:
            bytes_sent: Bytes transferred so far
            bytes_total: Total bytes of the request body

        Returns:
            Current percentage
        """
        if bytes_total <= 0:
            # length not computable
            return self._percent
        percent = round(bytes_sent / bytes_total * 100)
        return self._emit(percent)

    def begin(self) -> int:
        """Signal that an operation without transfer events has started."""
        return self._emit(UPLOAD_BUSY_PERCENT)

    def complete(self) -> int:
        return self._emit(100)

    def _emit(self, percent: int) -> int:
        percent = max(0, min(100, percent))
        with self._lock:
            if percent <= self._percent:
                return self._percent
            self._percent = percent

        if self.callback:
            try:
                self.callback(percent)
            except Exception as e:
                logger.warning("Upload progress callback failed: %s", e)
        return percent
