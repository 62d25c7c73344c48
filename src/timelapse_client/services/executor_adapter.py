"""Task execution adapter for background work."""

from __future__ import annotations

from collections.abc import Callable
from threading import Thread
from typing import Any


class ExecutorAdapter:
    """Execution adapter for background task submission."""

    def submit_job(self, func: Callable[..., Any], *args: Any, name: str | None = None) -> Thread:
        """Run func(*args) on a daemon thread and return the started thread."""
        thread = Thread(target=func, args=args, name=name, daemon=True)
        thread.start()
        return thread
