"""Incremental expansion API routes."""

import logging
import time

from flask import Blueprint, jsonify, request

from evigraph.core.errors import InvalidInputError
from evigraph.services.expansion import EMPTY, validate_source_input

from ..app import get_services, run_async

logger = logging.getLogger(__name__)

bp = Blueprint("expand", __name__)


def _invalid_input_response(e: InvalidInputError):
    if e.reason == EMPTY:
        return (
            jsonify({"error": f"Empty {e.field}", "message": f'The "{e.field}" field cannot be empty'}),
            400,
        )
    return (
        jsonify(
            {
                "error": f'Missing or invalid "{e.field}" field',
                "message": f'Request must include a string "{e.field}" field',
            }
        ),
        400,
    )


@bp.route("/source", methods=["POST"])
def expand_source():
    """
    Extract supporting concepts from one source.

    Request body:
        {
            "title": "Source title",
            "url": "https://...",
            "content": "Full text content...",
            "densityLevel": "medium",     (optional)
            "sourceId": "src-3",          (optional, returns nodes/edges anchored here)
            "blockIds": ["ans-1"],        (optional, blocks citing the source)
            "existingIds": ["src-3::..."] (optional, ids the client already has)
        }

    Returns:
        200: {concepts, nodes?, edges?, meta: {latencyMs, densityLevel, sourceTitle, sourceUrl}}
        400: Missing, non-string or empty field
        500: {error, message, meta: {latencyMs}} when extraction fails
    """
    started = time.perf_counter()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    try:
        source = validate_source_input(data)
    except InvalidInputError as e:
        return _invalid_input_response(e)

    source_id = data.get("sourceId")
    block_ids = [b for b in data.get("blockIds") or [] if isinstance(b, str)]
    existing_ids = [i for i in data.get("existingIds") or [] if isinstance(i, str)]
    logger.info("Processing expansion request for source: %s", source.title)

    try:
        result = run_async(
            get_services().expansion.expand_source(
                source,
                density_level=data.get("densityLevel"),
                source_node_id=source_id if isinstance(source_id, str) and source_id else None,
                parent_block_ids=block_ids,
                existing_ids=existing_ids,
            )
        )
    except InvalidInputError as e:
        return _invalid_input_response(e)
    except Exception as e:
        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.error("Concept extraction failed after %dms: %s", latency_ms, e)
        return (
            jsonify({"error": "Concept extraction failed", "message": str(e), "meta": {"latencyMs": latency_ms}}),
            500,
        )

    body = result.to_dict()
    body["meta"]["latencyMs"] = int((time.perf_counter() - started) * 1000)
    logger.info("Extracted %d concepts in %dms", len(result.concepts), body["meta"]["latencyMs"])
    return jsonify(body)


@bp.route("/reasoning", methods=["POST"])
def expand_reasoning():
    """
    Expand the reasoning behind an answer block.

    Request body:
        {"title": "Block title", "text": "Block text"}

    Returns:
        200: {expandedText, meta}
        400: Missing or empty text
        500: {error, message, meta: {latencyMs}}
    """
    started = time.perf_counter()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    try:
        expansion = run_async(get_services().expansion.expand_block(data.get("title", ""), data.get("text")))
    except InvalidInputError as e:
        return _invalid_input_response(e)
    except Exception as e:
        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.error("Reasoning expansion failed after %dms: %s", latency_ms, e)
        return (
            jsonify({"error": "Reasoning expansion failed", "message": str(e), "meta": {"latencyMs": latency_ms}}),
            500,
        )

    return jsonify(expansion.to_dict())
