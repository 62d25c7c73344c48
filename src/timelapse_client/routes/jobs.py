"""Jobs blueprint exposing the orchestrator to the browser UI."""

from __future__ import annotations

import logging

from flask import Blueprint, Response, jsonify, request

from ..config.settings import VIDEO_MIME_TYPE
from ..errors import InvalidStateTransitionError, ValidationError
from ..extensions import get_orchestrator
from ..models.job import normalize_fps
from ..models.payloads import ImageUpload

logger = logging.getLogger(__name__)

jobs_bp = Blueprint("jobs", __name__)


def _error(message: str | None, status: int):
    """Build an error response carrying the current orchestrator state."""
    return (
        jsonify({"error": message or "Unknown error", "state": get_orchestrator().snapshot()}),
        status,
    )


def _failure_status() -> int:
    """HTTP status matching the orchestrator's last failure."""
    failure = get_orchestrator().failure
    if isinstance(failure, ValidationError):
        return 400
    if failure is None:
        return 409
    return 502


def _upload_response(job):
    return jsonify({"jobId": job.job_id, "fileCount": job.file_count, "filenames": job.filenames})


@jobs_bp.errorhandler(InvalidStateTransitionError)
def invalid_state(error: InvalidStateTransitionError):
    return _error(str(error), 409)


@jobs_bp.route("/api/state")
def state():
    """Get the orchestrator state for UI polling.

    Returns:
        JSON: phase, job, settings, uploadProgress, error, errorPhase,
        cacheBuster and polling flag
    """
    return jsonify(get_orchestrator().snapshot())


@jobs_bp.route("/api/upload", methods=["POST"])
def upload():
    """Submit frames as a new job.

    Accepts multipart ``files`` (network transport) or a JSON body
    ``{"paths": [...]}`` (native transport).

    Returns:
        JSON: jobId, fileCount, filenames on success
        400 if no supported image was selected, 502 if the backend failed,
        409 if an upload or render is already running
    """
    files = request.files.getlist("files")
    if files:
        images = [
            ImageUpload(f.filename or "upload", f.read(), f.mimetype or None) for f in files
        ]
    else:
        payload = request.get_json(silent=True) or {}
        images = payload.get("paths") or []
        if not isinstance(images, list) or not all(isinstance(p, str) for p in images):
            return _error("paths must be a list of file paths", 400)

    if not images:
        return _error("No files selected", 400)

    orchestrator = get_orchestrator()
    job = orchestrator.submit(images)
    if job is None:
        return _error(orchestrator.error or "Submission was cancelled", _failure_status())

    return _upload_response(job)


@jobs_bp.route("/api/select-images", methods=["POST"])
def select_images():
    """Open the native file picker and submit the selection.

    Returns:
        JSON: upload result, or {"cancelled": true} if nothing was picked
        400 if the transport has no file picker
    """
    orchestrator = get_orchestrator()
    picker = getattr(orchestrator.transport, "select_images", None)
    if picker is None:
        return _error("File picker is not available for this transport", 400)

    paths = picker()
    if not paths:
        return jsonify({"cancelled": True})

    job = orchestrator.submit(paths)
    if job is None:
        return _error(orchestrator.error or "Submission was cancelled", _failure_status())
    return _upload_response(job)


@jobs_bp.route("/api/preview")
def preview():
    """Get a preview frame of the current job.

    Query Parameters:
        index: Frame index, defaults to the middle frame

    Returns:
        JSON: {"url": ...} or {"dataUri": ...} with mimeType
    """
    index = request.args.get("index", type=int)
    orchestrator = get_orchestrator()
    try:
        reference = orchestrator.preview(index)
    except ValueError as e:
        return _error(str(e), 400)

    if reference is None:
        return _error(orchestrator.error, 502)
    return jsonify(reference.to_dict())


@jobs_bp.route("/api/render", methods=["POST"])
def render():
    """Start rendering the current job.

    JSON Parameters:
        rotation: 0, 90, 180 or 270 (defaults to the current setting)
        fps: Frame rate, clamped to 1-60 with 30 as fallback

    Returns:
        JSON: orchestrator state with 202, 400 for an invalid rotation,
        502 if the backend refused the request, 409 if the job was reset
        while the request was in flight
    """
    payload = request.get_json(silent=True) or {}
    rotation = payload.get("rotation")
    fps = payload.get("fps")

    try:
        rotation = None if rotation is None else int(rotation)
    except (TypeError, ValueError):
        return _error(f"Invalid rotation: {rotation!r}", 400)

    orchestrator = get_orchestrator()
    try:
        accepted = orchestrator.start_render(
            rotation=rotation,
            fps=None if fps is None else normalize_fps(fps),
        )
    except ValueError as e:
        return _error(str(e), 400)

    if not accepted:
        if orchestrator.error is None:
            return _error("Render was cancelled", 409)
        return _error(orchestrator.error, 502)
    return jsonify(orchestrator.snapshot()), 202


@jobs_bp.route("/api/video")
def video():
    """Get a reference to the rendered video.

    Returns:
        JSON: video reference, 409 unless the job has completed
    """
    orchestrator = get_orchestrator()
    reference = orchestrator.artifact()
    if reference is None:
        return _error(orchestrator.error, 502)
    return jsonify(reference.to_dict())


@jobs_bp.route("/api/video/content")
def video_content():
    """Stream the rendered video bytes."""
    orchestrator = get_orchestrator()
    data = orchestrator.read_artifact()
    if data is None:
        return _error(orchestrator.error, 502)

    job_id = orchestrator.job.job_id
    return Response(
        data,
        mimetype=VIDEO_MIME_TYPE,
        headers={
            "Content-Disposition": f'inline; filename="timelapse_{job_id}.mp4"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )


@jobs_bp.route("/api/video/save", methods=["POST"])
def save_video():
    """Save the rendered video.

    JSON Parameters:
        path: Optional destination; without it the transport asks the user

    Returns:
        JSON: {"path": ...} or {"cancelled": true}
    """
    payload = request.get_json(silent=True) or {}
    orchestrator = get_orchestrator()
    saved = orchestrator.save_artifact(payload.get("path"))
    if saved is None:
        if orchestrator.error:
            return _error(orchestrator.error, 502)
        return jsonify({"cancelled": True})
    return jsonify({"path": str(saved)})


@jobs_bp.route("/api/adjust", methods=["POST"])
def adjust():
    """Return to the settings of a finished job."""
    orchestrator = get_orchestrator()
    orchestrator.adjust()
    return jsonify(orchestrator.snapshot())


@jobs_bp.route("/api/reset", methods=["POST"])
def reset():
    """Abandon the current job and start over."""
    orchestrator = get_orchestrator()
    cleaned = orchestrator.reset()
    return jsonify({"cleaned": cleaned, "state": orchestrator.snapshot()})
