"""Configuration management for Evigraph."""

import logging
import os
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from evigraph.core import constants
from evigraph.core.density import DEFAULT_DENSITY

# Load .env file
load_dotenv()


class ProviderConfig(BaseModel):
    """Configuration for the OpenAI-backed collaborators (answer, concepts, embeddings, reasoning)."""

    model_config = ConfigDict(validate_default=True)

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_base_url: Optional[str] = Field(default=None, description="Custom OpenAI base URL")
    openai_organization: Optional[str] = Field(default=None, description="OpenAI organization ID")

    answer_model: str = Field(default="gpt-4o-mini", description="Model for answer generation")
    concept_model: str = Field(default="gpt-4o-mini", description="Model for concept extraction")
    reasoning_model: str = Field(default="gpt-4o-mini", description="Model for reasoning expansion")
    embedding_model: str = Field(default="text-embedding-3-small", description="Embedding model")

    request_timeout: float = Field(
        default_factory=lambda: constants.REQUEST_TIMEOUT, description="Per-call timeout (seconds)"
    )

    @model_validator(mode="after")
    def validate_api_keys(self) -> "ProviderConfig":
        """Fill the API key from the environment when not given."""
        if not self.openai_api_key:
            self.openai_api_key = os.getenv("OPENAI_API_KEY")
        return self


class SearchConfig(BaseModel):
    """Configuration for the web search collaborator."""

    backend: Literal["exa", "brave", "tavily"] = Field(default="exa", description="Search backend")
    exa_api_key: Optional[str] = Field(default=None, description="Exa API key")
    brave_api_key: Optional[str] = Field(default=None, description="Brave Search API key")
    tavily_api_key: Optional[str] = Field(default=None, description="Tavily API key")
    timeout: int = Field(default_factory=lambda: constants.SEARCH_TIMEOUT, description="HTTP timeout (seconds)")

    @model_validator(mode="after")
    def validate_api_keys(self) -> "SearchConfig":
        """Fill backend keys from the environment when not given."""
        self.exa_api_key = self.exa_api_key or os.getenv("EXA_API_KEY")
        self.brave_api_key = self.brave_api_key or os.getenv("BRAVE_API_KEY")
        self.tavily_api_key = self.tavily_api_key or os.getenv("TAVILY_API_KEY")
        return self


class PipelineConfig(BaseModel):
    """Configuration for graph assembly."""

    default_density: str = Field(default=DEFAULT_DENSITY.value, description="Density when a request names none")
    max_concurrent_calls: int = Field(
        default_factory=lambda: constants.MAX_CONCURRENT_CALLS,
        description="Concurrent extraction/embedding calls per stage",
    )

    @field_validator("max_concurrent_calls")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent_calls must be at least 1")
        return v


class ProgressConfig(BaseModel):
    """Configuration for the progress tracker sweep."""

    sweep_interval: float = Field(
        default_factory=lambda: float(constants.PROGRESS_SWEEP_INTERVAL), description="Seconds between sweeps"
    )
    retention: float = Field(
        default_factory=lambda: float(constants.PROGRESS_RETENTION), description="Idle seconds before a job is removed"
    )


class ApiConfig(BaseModel):
    """Configuration for the HTTP API."""

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8000, description="Bind port")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:5174", "http://localhost:3000"],
        description="Allowed frontend origins",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Load configuration from environment variables.

        Environment variable mapping:
        - OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_ORGANIZATION
        - EVIGRAPH_ANSWER_MODEL, EVIGRAPH_CONCEPT_MODEL, EVIGRAPH_REASONING_MODEL,
          EVIGRAPH_EMBEDDING_MODEL
        - EVIGRAPH_SEARCH_BACKEND: exa, brave or tavily
        - EXA_API_KEY, BRAVE_API_KEY, TAVILY_API_KEY
        - EVIGRAPH_DEFAULT_DENSITY, EVIGRAPH_MAX_CONCURRENT_CALLS
        - EVIGRAPH_PROGRESS_SWEEP_INTERVAL, EVIGRAPH_PROGRESS_RETENTION
        - EVIGRAPH_HOST, EVIGRAPH_PORT, EVIGRAPH_CORS_ORIGINS (comma separated)
        - EVIGRAPH_DEBUG, EVIGRAPH_LOG_LEVEL

        Numeric EVIGRAPH_* tunables are parsed once by constants.load_config().

        Raises:
            InvalidConfigError: If a numeric variable is not a valid number
        """
        constants.load_config()

        provider = ProviderConfig(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
            openai_organization=os.getenv("OPENAI_ORGANIZATION"),
            answer_model=os.getenv("EVIGRAPH_ANSWER_MODEL", "gpt-4o-mini"),
            concept_model=os.getenv("EVIGRAPH_CONCEPT_MODEL", "gpt-4o-mini"),
            reasoning_model=os.getenv("EVIGRAPH_REASONING_MODEL", "gpt-4o-mini"),
            embedding_model=os.getenv("EVIGRAPH_EMBEDDING_MODEL", "text-embedding-3-small"),
            request_timeout=constants.REQUEST_TIMEOUT,
        )

        search = SearchConfig(
            backend=os.getenv("EVIGRAPH_SEARCH_BACKEND", "exa"),
            exa_api_key=os.getenv("EXA_API_KEY"),
            brave_api_key=os.getenv("BRAVE_API_KEY"),
            tavily_api_key=os.getenv("TAVILY_API_KEY"),
            timeout=constants.SEARCH_TIMEOUT,
        )

        pipeline = PipelineConfig(
            default_density=os.getenv("EVIGRAPH_DEFAULT_DENSITY", DEFAULT_DENSITY.value),
            max_concurrent_calls=constants.MAX_CONCURRENT_CALLS,
        )

        progress = ProgressConfig(
            sweep_interval=constants.PROGRESS_SWEEP_INTERVAL,
            retention=constants.PROGRESS_RETENTION,
        )

        api = ApiConfig(host=os.getenv("EVIGRAPH_HOST", "127.0.0.1"), port=constants.get_env_int("EVIGRAPH_PORT", 8000))
        origins = os.getenv("EVIGRAPH_CORS_ORIGINS")
        if origins:
            api.cors_origins = [origin.strip() for origin in origins.split(",") if origin.strip()]

        return cls(
            provider=provider,
            search=search,
            pipeline=pipeline,
            progress=progress,
            api=api,
            debug=os.getenv("EVIGRAPH_DEBUG", "false").lower() == "true",
            log_level=os.getenv("EVIGRAPH_LOG_LEVEL", "INFO"),
        )


def load_config() -> AppConfig:
    """Load application configuration from the environment."""
    return AppConfig.from_env()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI and server entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
