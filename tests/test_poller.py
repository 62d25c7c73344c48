"""Tests for the status poller."""

from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from timelapse_client.errors import TransportError
from timelapse_client.models.payloads import JobStatusSnapshot


def _readings(*statuses):
    """Poll function returning the given statuses in order, repeating the last."""
    queue = [JobStatusSnapshot(status=s, progress=i * 10) for i, s in enumerate(statuses)]

    def poll(job_id):
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return poll


class TestStatusPoller:
    """Test cases for StatusPoller."""

    def test_polls_until_terminal_status(self):
        """Test that polling stops at the first terminal reading."""
        from timelapse_client.services import StatusPoller

        on_snapshot = Mock()
        on_error = Mock()
        poller = StatusPoller(
            "job-1",
            _readings("pending", "processing", "completed"),
            on_snapshot=on_snapshot,
            on_error=on_error,
            interval=0.01,
        ).start()

        assert poller.join(2.0)
        assert [c.args[0] for c in on_snapshot.call_args_list] == [1, 2, 3]
        assert on_snapshot.call_args_list[-1].args[1].status == "completed"
        on_error.assert_not_called()
        assert poller.stopped
        assert not poller.running

    def test_poll_error_stops_polling(self):
        """Test that a failing poll is reported once and ends polling."""
        from timelapse_client.services import StatusPoller

        error = TransportError("Get job status failed (HTTP 404): Job not found", status_code=404)
        poll = Mock(side_effect=error)
        on_error = Mock()
        poller = StatusPoller("job-1", poll, on_snapshot=Mock(), on_error=on_error, interval=0.01)

        poller.start()

        assert poller.join(2.0)
        on_error.assert_called_once_with(1, error)
        assert poll.call_count == 1

    def test_attempt_limit(self):
        """Test that polling gives up after max_attempts non-terminal readings."""
        from timelapse_client.services import StatusPoller

        on_exhausted = Mock()
        poller = StatusPoller(
            "job-1",
            _readings("processing"),
            on_snapshot=Mock(),
            on_error=Mock(),
            interval=0.01,
            max_attempts=3,
            on_exhausted=on_exhausted,
        ).start()

        assert poller.join(2.0)
        on_exhausted.assert_called_once_with(3)
        assert poller.attempts == 3

    def test_result_after_stop_is_dropped(self):
        """Test that a reading arriving after stop never reaches the callback."""
        from timelapse_client.services import StatusPoller

        entered = threading.Event()
        release = threading.Event()

        def slow_poll(job_id):
            entered.set()
            release.wait(2.0)
            return JobStatusSnapshot(status="completed", progress=100)

        on_snapshot = Mock()
        poller = StatusPoller("job-1", slow_poll, on_snapshot=on_snapshot, on_error=Mock()).start()
        assert entered.wait(2.0)

        poller.stop()
        release.set()

        assert poller.join(2.0)
        on_snapshot.assert_not_called()

    def test_stop_cancels_future_ticks(self):
        """Test that stop prevents the next scheduled poll."""
        from timelapse_client.services import StatusPoller

        poll = Mock(return_value=JobStatusSnapshot(status="processing"))
        on_snapshot = Mock(side_effect=lambda seq, snap: poller.stop())
        poller = StatusPoller("job-1", poll, on_snapshot=on_snapshot, on_error=Mock(), interval=5)

        poller.start()

        assert poller.join(2.0)
        assert poll.call_count == 1

    def test_start_twice(self):
        """Test that a poller cannot be restarted."""
        from timelapse_client.services import StatusPoller

        poller = StatusPoller("job-1", _readings("completed"), on_snapshot=Mock(), on_error=Mock())
        poller.start()

        with pytest.raises(RuntimeError):
            poller.start()
        poller.join(2.0)

    def test_context_manager_stops_on_exit(self):
        """Test that leaving the with block stops polling."""
        from timelapse_client.services import StatusPoller

        with StatusPoller(
            "job-1", _readings("processing"), on_snapshot=Mock(), on_error=Mock(), interval=0.01
        ) as poller:
            assert not poller.stopped

        assert poller.stopped
        assert poller.join(2.0)

    def test_join_before_start(self):
        """Test that joining an unstarted poller returns immediately."""
        from timelapse_client.services import StatusPoller

        poller = StatusPoller("job-1", _readings("completed"), on_snapshot=Mock(), on_error=Mock())

        assert poller.join(0) is True
        assert not poller.running

    def test_uses_executor_adapter(self):
        """Test that the polling thread is started through the executor."""
        from timelapse_client.services import ExecutorAdapter, StatusPoller

        executor = Mock(wraps=ExecutorAdapter())
        poller = StatusPoller(
            "job-9", _readings("completed"), on_snapshot=Mock(), on_error=Mock(), executor=executor
        ).start()

        poller.join(2.0)
        executor.submit_job.assert_called_once()
        assert executor.submit_job.call_args.kwargs["name"] == "poll-job-9"
