"""Shared fakes for prospect monitor tests."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest

from src.prospect_monitor.config import MonitorSettings
from src.prospect_monitor.http_client import HTTPClient
from src.prospect_monitor.models import AnalysisVerdict, SearchResponse, SearchResult

FIXTURES = Path(__file__).parent / "fixtures"


def load_json(name: str) -> Dict[str, Any]:
    with open(FIXTURES / name, "r", encoding="utf-8") as handle:
        return json.load(handle)


def text_message(text: str) -> SimpleNamespace:
    """Shape of an Anthropic Messages API response with one text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


class FakeMessages:
    def __init__(self, client: "FakeAnthropicClient") -> None:
        self._client = client

    async def create(self, **kwargs: Any) -> Any:
        self._client.calls.append(kwargs)
        if self._client.error is not None:
            raise self._client.error
        return self._client.response


class FakeAnthropicClient:
    """Stands in for anthropic.AsyncAnthropic."""

    def __init__(self, response: Any = None, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.messages = FakeMessages(self)


class FakeSearchProvider:
    """Returns canned results and records queries."""

    def __init__(self, results: Optional[List[SearchResult]] = None, errors: Optional[Dict[str, Exception]] = None):
        self.results = results if results is not None else [
            SearchResult(title="Acme raises Series B", url="https://news.example.com/acme", description="Funding news"),
        ]
        self.errors = errors or {}
        self.queries: List[str] = []

    async def search(self, query: str) -> SearchResponse:
        self.queries.append(query)
        for prospect, error in self.errors.items():
            if f'"{prospect}"' in query:
                raise error
        return SearchResponse(query=query, results=tuple(self.results))


class FakeAnalysisProvider:
    """Returns a verdict per prospect; ``news_for`` lists prospects with news."""

    def __init__(self, news_for: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.news_for = set(news_for or [])
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def analyze(self, prospect: str, keywords: List[str], search_results: List[SearchResult]) -> AnalysisVerdict:
        self.calls.append({"prospect": prospect, "keywords": keywords, "search_results": search_results})
        if self.error is not None:
            raise self.error
        has_news = prospect in self.news_for
        return AnalysisVerdict(
            company=prospect,
            has_news=has_news,
            summary=f"{prospect} news" if has_news else "No relevant news found",
            news_type="funding" if has_news else "other",
            urgency="high" if has_news else "low",
            alert_message=f"🚀 {prospect} raised money" if has_news else "",
            source_url="https://news.example.com/acme" if has_news else None,
            confidence="high" if has_news else "medium",
        )


@pytest.fixture
def settings() -> MonitorSettings:
    return MonitorSettings(
        brave_api_key="test-brave-key",
        anthropic_api_key="test-anthropic-key",
        batch_delay_seconds=0.0,
        query_year="2025",
    )


@pytest.fixture
def unconfigured_settings() -> MonitorSettings:
    return MonitorSettings(query_year="2025", batch_delay_seconds=0.0)


def mock_http_client(handler: Any, provider: str = "Brave") -> HTTPClient:
    return HTTPClient(provider, timeout_seconds=5.0, transport=httpx.MockTransport(handler))
