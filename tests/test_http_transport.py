"""Tests for the HTTP transport against a local fake render server."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from flask import Flask, Response, jsonify, request
from werkzeug.serving import make_server

from timelapse_client.errors import TransportError, ValidationError
from timelapse_client.models.payloads import ImageUpload, MediaReference
from timelapse_client.services import UploadProgressReporter
from timelapse_client.transports import HttpTransport, MultipartBody
from timelapse_client.transports.http_transport import _error_detail

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" * 10


def build_backend():
    """Fake render server speaking the upload/render/status API."""
    backend = Flask("fake_render_server")
    state = {"jobs": {}, "renders": [], "reject_upload": False}

    @backend.route("/api/upload", methods=["POST"])
    def upload():
        files = request.files.getlist("files")
        if state["reject_upload"] or not files:
            return jsonify({"error": "No valid image files found"}), 400
        job_id = f"job-{len(state['jobs']) + 1}"
        state["jobs"][job_id] = {f.filename: f.read() for f in files}
        return jsonify({"jobId": job_id, "fileCount": len(files), "filenames": [f.filename for f in files]})

    @backend.route("/api/create-timelapse", methods=["POST"])
    def create_timelapse():
        payload = request.get_json()
        if payload["jobId"] not in state["jobs"]:
            return jsonify({"error": "Job not found"}), 404
        state["renders"].append(payload)
        return jsonify({"jobId": payload["jobId"], "status": "processing"})

    @backend.route("/api/job-status/<job_id>")
    def job_status(job_id):
        if job_id not in state["jobs"]:
            return jsonify({"error": "Job not found"}), 404
        if job_id == "broken":
            return "Internal Server Error", 500
        return jsonify(
            {"status": "processing", "progress": 45, "stage": "encoding", "currentFrame": 9, "totalFrames": 20}
        )

    @backend.route("/api/download/<job_id>")
    def download(job_id):
        if job_id not in state["jobs"]:
            return jsonify({"error": "Video not found"}), 404
        return Response(VIDEO_BYTES, mimetype="video/mp4")

    @backend.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return backend, state


@pytest.fixture
def backend_server():
    """Serve the fake render server on a free local port."""
    backend, state = build_backend()
    server = make_server("127.0.0.1", 0, backend, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_port}", state

    server.shutdown()
    thread.join(5)


@pytest.fixture
def transport(backend_server):
    url, _ = backend_server
    return HttpTransport(url, timeout=5)


@pytest.fixture
def backend_state(backend_server):
    return backend_server[1]


class TestMultipartBody:
    """Test cases for the streamed upload body."""

    def test_length_matches_streamed_bytes(self):
        uploads = [ImageUpload("a.png", b"x" * 200_000), ImageUpload("b.png", b"y" * 10)]
        body = MultipartBody(uploads, boundary="test-boundary")

        data = b"".join(body)

        assert len(data) == body.length
        assert body.content_type == "multipart/form-data; boundary=test-boundary"
        assert b'name="files"; filename="a.png"' in data
        assert data.endswith(b"--test-boundary--\r\n")

    def test_progress_events(self):
        """Test that chunked sending reports monotonic progress up to 100%."""
        callback = Mock()
        body = MultipartBody(
            [ImageUpload("a.png", b"x" * 300_000)], UploadProgressReporter(callback)
        )

        list(body)

        reported = [c.args[0] for c in callback.call_args_list]
        assert len(reported) > 1
        assert reported == sorted(reported)
        assert reported[-1] == 100


class TestHttpTransport:
    """Test cases for HttpTransport."""

    def test_submit_uploads_supported_files(self, transport, backend_state, image_files):
        """Test that paths are read, filtered and uploaded with progress."""
        callback = Mock()

        result = transport.submit(image_files, UploadProgressReporter(callback))

        assert result.job_id == "job-1"
        assert result.file_count == 3
        assert result.filenames == ["a.png", "b.jpg", "c.webp"]
        assert set(backend_state["jobs"]["job-1"]) == {"a.png", "b.jpg", "c.webp"}
        assert backend_state["jobs"]["job-1"]["a.png"] == image_files[0].read_bytes()
        assert callback.call_args_list[-1].args[0] == 100

    def test_submit_without_supported_files(self, transport, backend_state):
        """Test that nothing is sent when no image remains."""
        with pytest.raises(ValidationError):
            transport.submit([ImageUpload("notes.txt", b"text")])

        assert backend_state["jobs"] == {}

    def test_unsupported_paths_are_never_read(self, transport, backend_state, image_files):
        """Test that files are filtered by extension before their contents are loaded."""
        real_read = Path.read_bytes
        read = []

        def spy(path):
            read.append(path.name)
            return real_read(path)

        with patch.object(Path, "read_bytes", spy):
            result = transport.submit(image_files)

        assert result.file_count == 3
        assert "notes.txt" not in read
        assert sorted(read) == ["a.png", "b.jpg", "c.webp"]

    def test_only_unsupported_paths(self, transport, backend_state, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("not an image")

        with patch.object(Path, "read_bytes", side_effect=AssertionError("file was read")):
            with pytest.raises(ValidationError):
                transport.submit([notes])

        assert backend_state["jobs"] == {}

    def test_submit_rejected_by_backend(self, transport, backend_state):
        """Test that an HTTP 400 from the upload is a validation error."""
        backend_state["reject_upload"] = True

        with pytest.raises(ValidationError, match="No valid image files found"):
            transport.submit([ImageUpload("a.png", b"png")])

    def test_request_render(self, transport, backend_state):
        job = transport.submit([ImageUpload("a.png", b"png")])

        accepted = transport.request_render(job.job_id, 90, 24)

        assert accepted.status == "processing"
        assert backend_state["renders"] == [{"jobId": job.job_id, "rotation": 90, "fps": 24}]

    def test_request_render_unknown_job(self, transport):
        """Test that a 404 surfaces the backend's message and status code."""
        with pytest.raises(TransportError) as exc_info:
            transport.request_render("missing", 0, 30)

        assert exc_info.value.status_code == 404
        assert exc_info.value.reachable
        assert "Job not found" in str(exc_info.value)

    def test_request_render_invalid_rotation(self, transport, backend_state):
        with pytest.raises(ValueError):
            transport.request_render("job-1", 45, 30)

        assert backend_state["renders"] == []

    def test_poll_status(self, transport):
        """Test that camelCase status fields are parsed."""
        job = transport.submit([ImageUpload("a.png", b"png")])

        snapshot = transport.poll_status(job.job_id)

        assert snapshot.status == "processing"
        assert snapshot.progress == 45
        assert snapshot.current_frame == 9
        assert snapshot.total_frames == 20

    def test_poll_status_server_error(self, transport, backend_state):
        """Test that a plain text error body is carried into the message."""
        backend_state["jobs"]["broken"] = {}

        with pytest.raises(TransportError, match="HTTP 500"):
            transport.poll_status("broken")

    def test_preview_and_artifact_urls(self, transport, backend_server):
        url, _ = backend_server

        preview = transport.fetch_preview("job-1", 2)
        video = transport.fetch_artifact("job-1", cache_buster=1700000000000)

        assert preview.url == f"{url}/api/preview/job-1/2"
        assert video.url == f"{url}/api/download/job-1?t=1700000000000"
        assert video.mime_type == "video/mp4"
        with pytest.raises(ValueError):
            transport.fetch_preview("job-1", -1)

    def test_read_and_save_artifact(self, transport, tmp_path):
        """Test downloading the rendered video to a file."""
        job = transport.submit([ImageUpload("a.png", b"png")])

        assert transport.read_media(transport.fetch_artifact(job.job_id)) == VIDEO_BYTES

        saved = transport.save_artifact(job.job_id, tmp_path / "video.mp4")
        assert saved.read_bytes() == VIDEO_BYTES
        assert transport.save_artifact(job.job_id) is None

    def test_read_inline_media(self, transport):
        assert transport.read_media(MediaReference(data=b"abc")) == b"abc"

    def test_cleanup_not_supported(self, transport):
        assert transport.cleanup("job-1") is False

    def test_health_check(self, transport):
        assert transport.health_check() is True
        assert transport.describe()["transport"] == "http"


class TestUnreachableBackend:
    """Test cases for a backend that is not running."""

    @pytest.fixture
    def transport(self):
        return HttpTransport("http://127.0.0.1:1", timeout=2)

    def test_connection_refused(self, transport):
        with pytest.raises(TransportError) as exc_info:
            transport.poll_status("job-1")

        assert not exc_info.value.reachable
        assert str(exc_info.value) == (
            "Cannot connect to backend at http://127.0.0.1:1. Make sure the backend is running."
        )

    def test_upload_connection_refused(self, transport):
        with pytest.raises(TransportError, match="Cannot connect to backend"):
            transport.submit([ImageUpload("a.png", b"png")])

    def test_health_check(self, transport):
        assert transport.health_check() is False


class TestErrorDetail:
    """Test cases for error body extraction."""

    def test_json_error_field(self):
        assert _error_detail(b'{"error": "Job not found"}') == "Job not found"

    def test_json_message_field(self):
        assert _error_detail(b'{"message": "Bad fps"}') == "Bad fps"

    def test_text_is_truncated(self):
        assert len(_error_detail(b"x" * 2000)) == 500
