"""Health check API route."""

from flask import Blueprint, jsonify

from evigraph import __version__

from ..app import get_services

bp = Blueprint("health", __name__)


@bp.route("", methods=["GET"])
def health():
    """Liveness check with the number of tracked jobs."""
    return jsonify(
        {
            "status": "ok",
            "service": "evigraph",
            "version": __version__,
            "activeJobs": get_services().tracker.active_job_count(),
        }
    )
