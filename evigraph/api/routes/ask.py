"""Question answering API route."""

import logging
import time
import uuid

from flask import Blueprint, current_app, jsonify, request

from evigraph.core.errors import ValidationError

from ..app import get_services, run_async

logger = logging.getLogger(__name__)

bp = Blueprint("ask", __name__)


@bp.route("", methods=["POST"])
def ask():
    """
    Answer a question and build its evidence graph.

    Request body:
        {
            "question": "What causes auroras?",
            "densityLevel": "medium",   (optional: low, medium, high, auto)
            "jobId": "client-chosen-id" (optional, for progress polling)
        }

    Returns:
        200: {jobId, question, answer, densityLevel, densityConfig,
              evidence_graph: {nodes, edges}, meta: {latencyMs, timings, warnings}}
        400: Missing or empty question, or a body that is not a JSON object
        500: Build failed
    """
    started = time.perf_counter()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    question = data.get("question")
    if not isinstance(question, str) or not question.strip():
        return (
            jsonify(
                {
                    "error": 'Missing or invalid "question" field',
                    "message": 'Request must include a non-empty string "question" field',
                }
            ),
            400,
        )

    job_id = data.get("jobId")
    if not isinstance(job_id, str) or not job_id.strip():
        job_id = str(uuid.uuid4())
    density_level = data.get("densityLevel") or current_app.config.get("EVIGRAPH_DEFAULT_DENSITY")

    services = get_services()
    services.tracker.create_job(job_id)
    logger.info("Processing question for job %s: %s", job_id, question[:100])

    try:
        result = run_async(services.assembler.build(question, job_id=job_id, density_level=density_level))
    except ValidationError as e:
        return jsonify({"error": "Invalid input", "message": e.message}), 400
    except Exception as e:
        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.error("Ask failed for job %s: %s", job_id, e)
        return jsonify({"error": "Graph build failed", "message": str(e), "meta": {"latencyMs": latency_ms}}), 500

    body = result.to_dict()
    body["meta"]["latencyMs"] = int((time.perf_counter() - started) * 1000)
    return jsonify(body)
