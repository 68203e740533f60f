"""Core exception hierarchy for Evigraph.

All Evigraph exceptions inherit from EvigraphError, enabling both specific
and broad exception handling.

Exception Hierarchy:
    EvigraphError (base)
    ├── ConfigurationError - Missing credentials or bad settings
    │   ├── MissingConfigError
    │   └── InvalidConfigError
    ├── ValidationError - Malformed request input
    │   └── InvalidInputError
    ├── CollaboratorError - External call failed or returned garbage
    │   ├── CollaboratorTimeoutError
    │   ├── CollaboratorRateLimitError
    │   └── MalformedResponseError
    └── GraphIntegrityError - Evidence graph invariant violated
"""

from typing import Any, Dict, Optional


class EvigraphError(Exception):
    """Base exception for all Evigraph errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "MISSING_CONFIG")
        details: Optional dict with additional context
    """

    error_code: str = "EVIGRAPH_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dict for API responses."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Configuration Errors
class ConfigurationError(EvigraphError):
    """Base class for configuration errors."""

    error_code = "CONFIG_ERROR"


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    error_code = "MISSING_CONFIG"

    def __init__(self, config_key: str, source: str = "environment"):
        super().__init__(
            f"{config_key} not configured. Set it in the {source}.",
            details={"config_key": config_key, "source": source},
        )


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    error_code = "INVALID_CONFIG"

    def __init__(self, config_key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for '{config_key}': {reason}",
            details={"config_key": config_key, "value": str(value), "reason": reason},
        )


# Validation Errors
class ValidationError(EvigraphError):
    """Base class for validation errors."""

    error_code = "VALIDATION_ERROR"


class InvalidInputError(ValidationError):
    """User input is invalid."""

    error_code = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid input for '{field}': {reason}",
            details={"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


# Collaborator Errors
class CollaboratorError(EvigraphError):
    """An external collaborator (search, LLM, embedding) failed."""

    error_code = "COLLABORATOR_ERROR"

    def __init__(
        self,
        message: str,
        collaborator: str = "unknown",
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = {"collaborator": collaborator}
        merged.update(details or {})
        super().__init__(message, details=merged)
        self.collaborator = collaborator
        self.original_error = original_error


class CollaboratorTimeoutError(CollaboratorError):
    """Collaborator call timed out."""

    error_code = "COLLABORATOR_TIMEOUT"

    def __init__(self, collaborator: str, timeout_seconds: float):
        super().__init__(
            f"{collaborator} call timed out after {timeout_seconds}s.",
            collaborator=collaborator,
            details={"timeout_seconds": timeout_seconds},
        )


class CollaboratorRateLimitError(CollaboratorError):
    """Collaborator rate limit exceeded."""

    error_code = "COLLABORATOR_RATE_LIMIT"

    def __init__(self, collaborator: str, retry_after: Optional[int] = None):
        msg = f"{collaborator} rate limit exceeded."
        if retry_after:
            msg += f" Retry after {retry_after} seconds."
        super().__init__(msg, collaborator=collaborator, details={"retry_after": retry_after})


class MalformedResponseError(CollaboratorError):
    """Collaborator returned data that could not be used."""

    error_code = "MALFORMED_RESPONSE"

    def __init__(self, collaborator: str, reason: str):
        super().__init__(
            f"Malformed response from {collaborator}: {reason}",
            collaborator=collaborator,
            details={"reason": reason},
        )


class GraphIntegrityError(EvigraphError):
    """An operation would break an evidence graph invariant."""

    error_code = "GRAPH_INTEGRITY"
