"""
Flask API for Evigraph - matches the graph client's API expectations.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from flask import Flask, current_app
from flask_cors import CORS

from evigraph.config import AppConfig, load_config
from evigraph.core.progress import ProgressTracker
from evigraph.providers import create_collaborators
from evigraph.services import ExpansionService, GraphAssembler

from .middleware.errors import register_error_handlers

logger = logging.getLogger(__name__)

EXTENSION_KEY = "evigraph"


@dataclass
class Services:
    """Request-independent objects shared by all routes."""

    assembler: GraphAssembler
    expansion: ExpansionService
    tracker: ProgressTracker


def run_async(coro):
    """Run async function in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def build_services(config: AppConfig) -> Services:
    """Wire production collaborators, tracker and services, and start the sweep thread."""
    tracker = ProgressTracker(
        sweep_interval=config.progress.sweep_interval,
        retention=config.progress.retention,
    )
    collaborators = create_collaborators(config)
    max_calls = config.pipeline.max_concurrent_calls
    services = Services(
        assembler=GraphAssembler(collaborators, tracker, max_calls),
        expansion=ExpansionService(collaborators.concepts, collaborators.reasoning, max_calls),
        tracker=tracker,
    )
    tracker.start()
    return services


def get_services() -> Services:
    """Services registered on the current app."""
    return current_app.extensions[EXTENSION_KEY]


def create_app(config: Optional[AppConfig] = None, services: Optional[Services] = None) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Application configuration (defaults to the environment)
        services: Prebuilt services; built from config when omitted

    Returns:
        Configured Flask app with routes under /api
    """
    config = config or load_config()

    app = Flask(__name__)
    app.config["EVIGRAPH_DEFAULT_DENSITY"] = config.pipeline.default_density
    CORS(app, origins=config.api.cors_origins)

    app.extensions[EXTENSION_KEY] = services or build_services(config)

    from .routes import ask, expand, health, progress

    app.register_blueprint(ask.bp, url_prefix="/api/ask")
    app.register_blueprint(expand.bp, url_prefix="/api/expand")
    app.register_blueprint(progress.bp, url_prefix="/api/progress")
    app.register_blueprint(health.bp, url_prefix="/api/health")

    register_error_handlers(app)
    logger.info("Evigraph API ready (CORS origins: %s)", ", ".join(config.api.cors_origins))
    return app
