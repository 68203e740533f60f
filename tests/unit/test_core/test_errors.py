"""Tests for core error hierarchy."""

import pytest

from evigraph.core.errors import (
    CollaboratorError,
    CollaboratorRateLimitError,
    CollaboratorTimeoutError,
    ConfigurationError,
    EvigraphError,
    GraphIntegrityError,
    InvalidConfigError,
    InvalidInputError,
    MalformedResponseError,
    MissingConfigError,
    ValidationError,
)


class TestErrorHierarchy:
    """Test exception inheritance."""

    def test_all_errors_inherit_from_evigraph_error(self):
        errors = [
            ConfigurationError("test"),
            MissingConfigError("EXA_API_KEY"),
            InvalidConfigError("timeout", -1, "must be positive"),
            ValidationError("test"),
            InvalidInputError("content", "cannot be empty"),
            CollaboratorError("test"),
            CollaboratorTimeoutError("exa", 15),
            CollaboratorRateLimitError("openai"),
            MalformedResponseError("openai", "not JSON"),
            GraphIntegrityError("duplicate node"),
        ]
        for error in errors:
            assert isinstance(error, EvigraphError)

    @pytest.mark.parametrize(
        "error,parent",
        [
            (MissingConfigError("KEY"), ConfigurationError),
            (InvalidInputError("title", "missing"), ValidationError),
            (CollaboratorTimeoutError("exa", 15), CollaboratorError),
            (MalformedResponseError("openai", "bad"), CollaboratorError),
        ],
    )
    def test_subclassing(self, error, parent):
        assert isinstance(error, parent)


class TestErrorDetails:
    def test_missing_config_message(self):
        error = MissingConfigError("EXA_API_KEY")
        assert error.message == "EXA_API_KEY not configured. Set it in the environment."
        assert error.error_code == "MISSING_CONFIG"
        assert error.details == {"config_key": "EXA_API_KEY", "source": "environment"}

    def test_invalid_input_fields(self):
        error = InvalidInputError("content", "cannot be empty")
        assert error.field == "content"
        assert error.reason == "cannot be empty"

    def test_collaborator_details(self):
        cause = RuntimeError("boom")
        error = CollaboratorError("search failed", collaborator="exa", original_error=cause)
        assert error.collaborator == "exa"
        assert error.original_error is cause
        assert error.details == {"collaborator": "exa"}

    def test_rate_limit_retry_after(self):
        assert "Retry after 30 seconds" in CollaboratorRateLimitError("openai", retry_after=30).message

    def test_to_dict(self):
        data = CollaboratorTimeoutError("exa", 15).to_dict()
        assert data["error"] is True
        assert data["error_code"] == "COLLABORATOR_TIMEOUT"
        assert data["details"]["timeout_seconds"] == 15
