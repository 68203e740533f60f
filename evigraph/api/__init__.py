"""
Evigraph REST API module.

Provides the endpoints consumed by the graph client.
"""

from .app import Services, build_services, create_app, run_async

__all__ = ["Services", "build_services", "create_app", "run_async"]
