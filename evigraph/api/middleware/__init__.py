"""API middleware modules."""

from . import errors

__all__ = ["errors"]
