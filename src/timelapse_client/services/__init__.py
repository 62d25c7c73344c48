"""Services package for job orchestration.

This package provides the orchestrator that sequences work against the
render backend, together with the polling and progress helpers it relies on.
"""

from .executor_adapter import ExecutorAdapter
from .orchestrator import JobOrchestrator
from .poller import StatusPoller
from .progress import UploadProgressReporter

__all__ = [
    "ExecutorAdapter",
    "JobOrchestrator",
    "StatusPoller",
    "UploadProgressReporter",
]
