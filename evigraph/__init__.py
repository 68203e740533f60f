"""Evigraph package exports.

Keep package import lightweight by lazily importing heavy modules.
"""

from typing import TYPE_CHECKING, Any

__version__ = "0.3.0"

if TYPE_CHECKING:
    from .config import AppConfig
    from .services import ExpansionService, GraphAssembler

__all__ = ["AppConfig", "GraphAssembler", "ExpansionService", "create_app", "create_collaborators"]


def __getattr__(name: str) -> Any:
    """Lazily resolve top-level exports."""
    if name == "AppConfig":
        from .config import AppConfig

        return AppConfig

    if name in {"GraphAssembler", "ExpansionService"}:
        from . import services

        return getattr(services, name)

    if name == "create_app":
        from .api import create_app

        return create_app

    if name == "create_collaborators":
        from .providers import create_collaborators

        return create_collaborators

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
