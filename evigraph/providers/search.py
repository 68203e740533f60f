"""Web search collaborators.

Supports:
- Exa (default, returns page text)
- Brave Search API
- Tavily

All backends return Source records with ids src-1..src-n in rank order and
scores in [0, 1]. Backends that report no relevance score get a rank-based
one.
"""

import asyncio
import logging
import math
from abc import abstractmethod
from typing import Any, Dict, List, Optional

import requests

from evigraph.core import constants
from evigraph.core.contracts import Source
from evigraph.core.errors import (
    CollaboratorError,
    CollaboratorRateLimitError,
    CollaboratorTimeoutError,
    MalformedResponseError,
    MissingConfigError,
)

from .base import SearchProvider

logger = logging.getLogger(__name__)


def _score(value: Any, index: int, total: int) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return min(1.0, max(0.0, float(value)))
    return round(1.0 - index / max(total, 1), 4)


class HttpSearchProvider(SearchProvider):
    """Shared request handling for HTTP search backends."""

    api_key_env: str = ""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[int] = None):
        self.api_key = api_key
        self.timeout = timeout or constants.SEARCH_TIMEOUT

    async def search(self, query: str, count: int) -> List[Source]:
        if not self.api_key:
            raise MissingConfigError(self.api_key_env)

        try:
            items = await asyncio.to_thread(self._fetch, query, count)
        except requests.JSONDecodeError as e:
            raise MalformedResponseError(self.name, f"response is not valid JSON: {e}") from e
        except requests.Timeout as e:
            raise CollaboratorTimeoutError(self.name, self.timeout) from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                raise CollaboratorRateLimitError(self.name) from e
            raise CollaboratorError(
                f"{self.name} search failed with HTTP {status}", collaborator=self.name, original_error=e
            ) from e
        except requests.RequestException as e:
            raise CollaboratorError(f"{self.name} search failed: {e}", collaborator=self.name, original_error=e) from e
        except ValueError as e:
            raise MalformedResponseError(self.name, f"response is not valid JSON: {e}") from e

        sources = self._to_sources(items[:count])
        logger.info("%s returned %d sources for query: %s", self.name, len(sources), query[:80])
        return sources

    @abstractmethod
    def _fetch(self, query: str, count: int) -> List[Dict[str, Any]]:
        """Blocking HTTP call returning raw result items."""

    @abstractmethod
    def _convert(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Map a raw item to Source keyword arguments (without id/score)."""

    def _to_sources(self, items: List[Any]) -> List[Source]:
        sources: List[Source] = []
        valid = [item for item in items if isinstance(item, dict) and item.get("url")]
        if len(valid) < len(items):
            logger.warning("Skipping %d %s results without a URL", len(items) - len(valid), self.name)

        for index, item in enumerate(valid):
            fields = self._convert(item)
            sources.append(
                Source(
                    id=f"src-{index + 1}",
                    title=fields.get("title") or item["url"],
                    url=item["url"],
                    snippet=fields.get("snippet") or "",
                    score=_score(item.get("score"), index, len(valid)),
                    full_text=fields.get("full_text"),
                    author=fields.get("author"),
                    published_date=fields.get("published_date"),
                )
            )
        return sources


class ExaSearchProvider(HttpSearchProvider):
    """Search using the Exa API with page text contents."""

    name = "exa"
    api_key_env = "EXA_API_KEY"
    url = "https://api.exa.ai/search"

    def _fetch(self, query: str, count: int) -> List[Dict[str, Any]]:
        headers = {"x-api-key": self.api_key, "Content-Type": "application/json"}
        payload = {"query": query, "numResults": count, "contents": {"text": True}}

        response = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json().get("results", [])

    def _convert(self, item: Dict[str, Any]) -> Dict[str, Any]:
        text = item.get("text") or None
        highlights = item.get("highlights") or []
        snippet = highlights[0] if highlights else (text or "")[:300]
        return {
            "title": item.get("title"),
            "snippet": snippet,
            "full_text": text,
            "author": item.get("author"),
            "published_date": item.get("publishedDate"),
        }


class BraveSearchProvider(HttpSearchProvider):
    """Search using Brave Search API."""

    name = "brave"
    api_key_env = "BRAVE_API_KEY"
    url = "https://api.search.brave.com/res/v1/web/search"

    def _fetch(self, query: str, count: int) -> List[Dict[str, Any]]:
        headers = {"Accept": "application/json", "X-Subscription-Token": self.api_key}
        params = {"q": query, "count": count}

        response = requests.get(self.url, headers=headers, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json().get("web", {}).get("results", [])

    def _convert(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "title": item.get("title"),
            "snippet": item.get("description"),
            "published_date": item.get("page_age"),
        }


class TavilySearchProvider(HttpSearchProvider):
    """Search using Tavily API."""

    name = "tavily"
    api_key_env = "TAVILY_API_KEY"
    url = "https://api.tavily.com/search"

    def _fetch(self, query: str, count: int) -> List[Dict[str, Any]]:
        payload = {"api_key": self.api_key, "query": query, "max_results": count, "include_raw_content": True}

        response = requests.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json().get("results", [])

    def _convert(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "title": item.get("title"),
            "snippet": item.get("content"),
            "full_text": item.get("raw_content") or None,
            "published_date": item.get("published_date"),
        }


SEARCH_BACKENDS = {
    "exa": ExaSearchProvider,
    "brave": BraveSearchProvider,
    "tavily": TavilySearchProvider,
}
