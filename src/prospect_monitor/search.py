"""Web search adapter backed by the Brave Search API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .config import MonitorSettings
from .errors import ConfigurationError, UpstreamError, ValidationError
from .http_client import HTTPClient
from .logging_config import get_logger
from .models import SearchResponse, SearchResult

logger = get_logger("search")

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
RESULT_COUNT = 10

# Fixed search policy: past week, English, US.
SEARCH_POLICY_PARAMS: Dict[str, str] = {
    "count": str(RESULT_COUNT),
    "freshness": "pw",
    "text_decorations": "false",
    "search_lang": "en",
    "country": "US",
}


class BraveSearchProvider:
    """Runs recent-news web searches and normalizes the hits."""

    provider_name = "Brave"

    def __init__(
        self,
        settings: MonitorSettings,
        http_client: Optional[HTTPClient] = None,
    ) -> None:
        self.api_key = settings.brave_api_key
        self.http_client = http_client or HTTPClient(
            self.provider_name,
            timeout_seconds=settings.search_timeout_seconds,
        )

    async def search(self, query: Any) -> SearchResponse:
        """Search the web for ``query`` within the fixed freshness window.

        Raises:
            ValidationError: If the query is missing or blank
            ConfigurationError: If no Brave API key is configured
            UpstreamError: If the search API answers with a non-success status
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query parameter is required")
        if not self.api_key:
            raise ConfigurationError("Brave API key not configured")

        logger.info(f"Searching Brave for: {query}")
        response = await self.http_client.get(
            BRAVE_SEARCH_URL,
            params={"q": query, **SEARCH_POLICY_PARAMS},
            headers={
                "Accept": "application/json",
                "Accept-Encoding": "gzip",
                "X-Subscription-Token": self.api_key,
            },
        )

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamError(
                "Brave API returned a non-JSON response",
                provider=self.provider_name,
                status_code=response.status_code,
                body=response.text,
            )

        results = self.normalize_results(payload)
        logger.info(f"Brave returned {len(results)} results for: {query}")
        return SearchResponse(query=query, results=tuple(results))

    @staticmethod
    def normalize_results(payload: Any) -> List[SearchResult]:
        """Extract up to ``RESULT_COUNT`` hits from a Brave response body."""
        if not isinstance(payload, dict):
            return []
        web = payload.get("web")
        if not isinstance(web, dict):
            return []
        raw_results = web.get("results")
        if not isinstance(raw_results, list):
            return []
        return [
            SearchResult.from_upstream(raw)
            for raw in raw_results[:RESULT_COUNT]
            if isinstance(raw, dict)
        ]
