"""Error handling middleware."""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from evigraph.core.errors import CollaboratorError, ConfigurationError, EvigraphError, ValidationError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register JSON error handlers with Flask app."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error": "Invalid input", "message": e.message, "details": e.details}), 400

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(e):
        logger.error("Configuration error: %s", e.message)
        return jsonify({"error": "Configuration error", "message": e.message}), 500

    @app.errorhandler(CollaboratorError)
    def handle_collaborator_error(e):
        logger.error("Collaborator %s failed: %s", e.collaborator, e.message)
        return jsonify({"error": "Collaborator failed", "message": e.message}), 500

    @app.errorhandler(EvigraphError)
    def handle_evigraph_error(e):
        logger.error("Unhandled %s: %s", e.error_code, e.message)
        return jsonify({"error": e.error_code, "message": e.message}), 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({"error": e.name, "message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.error("Unhandled exception: %s", e)
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
