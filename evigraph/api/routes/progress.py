"""Progress polling API route."""

from flask import Blueprint, jsonify

from ..app import get_services

bp = Blueprint("progress", __name__)


@bp.route("", methods=["GET"])
@bp.route("/", methods=["GET"])
@bp.route("/<path:job_id>", methods=["GET"])
def get_progress(job_id=None):
    """
    Get progress for a graph build job.

    Returns:
        200: {jobId, progress, status, phase}
        400: No job id given
        404: Unknown or expired job
    """
    if not job_id or not job_id.strip():
        return jsonify({"error": "Job ID is required"}), 400

    state = get_services().tracker.get_progress(job_id)
    if state is None:
        return jsonify({"error": "Job not found"}), 404

    return jsonify(state.to_dict())
