"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from evigraph.config import AppConfig, PipelineConfig, SearchConfig, load_config
from evigraph.core import constants
from evigraph.core.errors import InvalidConfigError


def test_defaults(monkeypatch):
    for key in ("OPENAI_API_KEY", "EXA_API_KEY", "BRAVE_API_KEY", "TAVILY_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    config = AppConfig()
    assert config.provider.openai_api_key is None
    assert config.search.backend == "exa"
    assert config.pipeline.default_density == "medium"
    assert config.pipeline.max_concurrent_calls == 5
    assert config.progress.retention == 300
    assert "http://localhost:5173" in config.api.cors_origins


def test_from_env(mock_env, monkeypatch):
    monkeypatch.setenv("EVIGRAPH_DEFAULT_DENSITY", "high")
    monkeypatch.setenv("EVIGRAPH_MAX_CONCURRENT_CALLS", "3")
    monkeypatch.setenv("EVIGRAPH_PORT", "9000")
    monkeypatch.setenv("EVIGRAPH_CORS_ORIGINS", "https://a.example, https://b.example")

    config = load_config()

    assert config.provider.openai_api_key == "sk-test-key"
    assert config.search.exa_api_key == "exa-test-key"
    assert config.pipeline.default_density == "high"
    assert config.pipeline.max_concurrent_calls == 3
    assert config.api.port == 9000
    assert config.api.cors_origins == ["https://a.example", "https://b.example"]
    assert config.debug is True


def test_keys_fall_back_to_environment(monkeypatch):
    monkeypatch.setenv("BRAVE_API_KEY", "brave-key")
    assert SearchConfig(backend="brave").brave_api_key == "brave-key"


def test_invalid_backend_rejected():
    with pytest.raises(ValidationError):
        SearchConfig(backend="bing")


def test_concurrency_must_be_positive():
    with pytest.raises(ValidationError):
        PipelineConfig(max_concurrent_calls=0)


def test_numeric_settings_share_constants(mock_env, monkeypatch):
    monkeypatch.setenv("EVIGRAPH_PROGRESS_RETENTION", "900")
    monkeypatch.setenv("EVIGRAPH_SEARCH_TIMEOUT", "7")

    config = load_config()

    assert config.progress.retention == 900
    assert config.search.timeout == 7
    assert constants.PROGRESS_RETENTION == 900
    assert AppConfig().progress.retention == 900


@pytest.mark.parametrize(
    "key, value",
    [
        ("EVIGRAPH_MAX_CONCURRENT_CALLS", "five"),
        ("EVIGRAPH_PROGRESS_RETENTION", "-1"),
        ("EVIGRAPH_REQUEST_TIMEOUT", "soon"),
        ("EVIGRAPH_PORT", "http"),
    ],
)
def test_invalid_numbers_raise_invalid_config(mock_env, monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(InvalidConfigError) as exc:
        load_config()
    assert exc.value.details["config_key"] == key
