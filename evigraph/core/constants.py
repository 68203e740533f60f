"""Central configuration constants for Evigraph.

Tunable limits used across the pipeline. Constants can be overridden via
environment variables using the EVIGRAPH_* prefix convention.

Usage:
    from evigraph.core import constants

    constants.load_config()
    semaphore = asyncio.Semaphore(constants.MAX_CONCURRENT_CALLS)

Environment Variables:
    EVIGRAPH_MAX_CONCURRENT_CALLS - Concurrent collaborator calls per stage (default: 5)
    EVIGRAPH_COLLABORATOR_MAX_RETRIES - Attempts per collaborator call (default: 3)
    EVIGRAPH_COLLABORATOR_RETRY_DELAY - Base backoff delay in seconds (default: 1.0)
    EVIGRAPH_SEARCH_TIMEOUT - Search HTTP timeout in seconds (default: 15)
    EVIGRAPH_REQUEST_TIMEOUT - LLM and embedding call timeout in seconds (default: 60)
    EVIGRAPH_PROGRESS_SWEEP_INTERVAL - Seconds between progress sweeps (default: 60)
    EVIGRAPH_PROGRESS_RETENTION - Idle seconds before a job is swept (default: 300)
    EVIGRAPH_SOURCE_CONTENT_MAX_CHARS - Source text sent for extraction (default: 2000)
    EVIGRAPH_EMBED_TEXT_MAX_CHARS - Node text sent for embedding (default: 8000)
"""

import os

from evigraph.core.errors import InvalidConfigError

# =============================================================================
# Collaborator Fan-out
# =============================================================================

# Maximum concurrent extraction / embedding calls within one stage
MAX_CONCURRENT_CALLS: int = 5

# Retries for transient collaborator failures (rate limit, connection, timeout)
COLLABORATOR_MAX_RETRIES: int = 3

# Base delay in seconds for exponential backoff between retries
COLLABORATOR_RETRY_DELAY: float = 1.0

# HTTP timeout for search backends (seconds)
SEARCH_TIMEOUT: int = 15

# Per-request timeout for LLM and embedding calls (seconds)
REQUEST_TIMEOUT: float = 60.0

# =============================================================================
# Progress Tracking
# =============================================================================

# Seconds between expiry sweeps
PROGRESS_SWEEP_INTERVAL: int = 60

# Idle seconds after which a job is removed (5 sweep intervals)
PROGRESS_RETENTION: int = 300

# =============================================================================
# Text Budgets
# =============================================================================

# Characters of source content handed to the concept extractor
SOURCE_CONTENT_MAX_CHARS: int = 2000

# Characters of node text handed to the embedding collaborator
EMBED_TEXT_MAX_CHARS: int = 8000

# Characters of block text shown as a node label
LABEL_MAX_CHARS: int = 80


# =============================================================================
# Helper Functions for Environment Variable Loading
# =============================================================================


def get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable with validation.

    Raises:
        InvalidConfigError: If value is not a valid non-negative integer
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        result = int(value)
    except ValueError:
        raise InvalidConfigError(key, value, "must be an integer")
    if result < 0:
        raise InvalidConfigError(key, value, "must be non-negative")
    return result


def get_env_float(key: str, default: float) -> float:
    """Get float from environment variable with validation.

    Raises:
        InvalidConfigError: If value is not a valid non-negative number
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        result = float(value)
    except ValueError:
        raise InvalidConfigError(key, value, "must be a number")
    if result < 0:
        raise InvalidConfigError(key, value, "must be non-negative")
    return result


def load_config() -> None:
    """Load constants with environment variable overrides.

    Invalid values raise InvalidConfigError.
    """
    global MAX_CONCURRENT_CALLS, COLLABORATOR_MAX_RETRIES, COLLABORATOR_RETRY_DELAY
    global SEARCH_TIMEOUT, REQUEST_TIMEOUT, PROGRESS_SWEEP_INTERVAL, PROGRESS_RETENTION
    global SOURCE_CONTENT_MAX_CHARS, EMBED_TEXT_MAX_CHARS

    MAX_CONCURRENT_CALLS = get_env_int("EVIGRAPH_MAX_CONCURRENT_CALLS", 5)
    if MAX_CONCURRENT_CALLS == 0:
        raise InvalidConfigError("EVIGRAPH_MAX_CONCURRENT_CALLS", 0, "must be at least 1")
    COLLABORATOR_MAX_RETRIES = get_env_int("EVIGRAPH_COLLABORATOR_MAX_RETRIES", 3)
    COLLABORATOR_RETRY_DELAY = get_env_float("EVIGRAPH_COLLABORATOR_RETRY_DELAY", 1.0)
    SEARCH_TIMEOUT = get_env_int("EVIGRAPH_SEARCH_TIMEOUT", 15)
    REQUEST_TIMEOUT = get_env_float("EVIGRAPH_REQUEST_TIMEOUT", 60.0)
    PROGRESS_SWEEP_INTERVAL = get_env_int("EVIGRAPH_PROGRESS_SWEEP_INTERVAL", 60)
    PROGRESS_RETENTION = get_env_int("EVIGRAPH_PROGRESS_RETENTION", 300)
    SOURCE_CONTENT_MAX_CHARS = get_env_int("EVIGRAPH_SOURCE_CONTENT_MAX_CHARS", 2000)
    EMBED_TEXT_MAX_CHARS = get_env_int("EVIGRAPH_EMBED_TEXT_MAX_CHARS", 8000)
