"""API route modules."""

from . import ask, expand, health, progress

__all__ = ["ask", "expand", "health", "progress"]
