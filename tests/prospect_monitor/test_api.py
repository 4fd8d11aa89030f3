"""Tests for the HTTP service."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import (
    FakeAnalysisProvider,
    FakeAnthropicClient,
    FakeSearchProvider,
    load_json,
    mock_http_client,
    text_message,
)
from src.prospect_monitor import api
from src.prospect_monitor.analysis import AnthropicAnalysisProvider
from src.prospect_monitor.api import create_app
from src.prospect_monitor.errors import UpstreamError, UpstreamTimeoutError
from src.prospect_monitor.search import BraveSearchProvider


@pytest.fixture
def brave_calls():
    return []


@pytest.fixture
def anthropic_client():
    return FakeAnthropicClient(response=text_message(json.dumps(load_json("analysis_verdict.json"))))


@pytest.fixture
def client(settings, brave_calls, anthropic_client):
    def handler(request: httpx.Request) -> httpx.Response:
        brave_calls.append(request)
        return httpx.Response(200, json=load_json("brave_search_response.json"))

    app = create_app(
        settings,
        search_provider=BraveSearchProvider(settings, http_client=mock_http_client(handler)),
        analysis_provider=AnthropicAnalysisProvider(settings, client=anthropic_client),
    )
    return TestClient(app)


def test_health_reports_credentials(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["credentialsConfigured"] == {"search": True, "analysis": True}
    assert body["timestamp"].endswith("Z")


def test_health_without_credentials(unconfigured_settings):
    client = TestClient(create_app(unconfigured_settings))

    body = client.get("/api/health").json()

    assert body["credentialsConfigured"] == {"search": False, "analysis": False}


def test_info_and_root(client):
    info = client.get("/api").json()
    assert "POST /api/monitor-all-prospects" in info["endpoints"]
    assert client.get("/").json()["status"] == "running"


def test_web_search(client, brave_calls):
    response = client.post("/api/web-search", json={"query": '"Acme Corp" funding'})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["query"] == '"Acme Corp" funding'
    assert body["total"] == 10
    assert body["results"][2]["title"] == "No title"
    assert len(brave_calls) == 1


@pytest.mark.parametrize("payload", [{}, {"query": ""}, None])
def test_web_search_requires_query(client, brave_calls, payload):
    response = client.post("/api/web-search", json=payload)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "validation_error",
        "message": "Query parameter is required",
    }
    assert brave_calls == []


def test_web_search_missing_credential(unconfigured_settings):
    client = TestClient(create_app(unconfigured_settings))

    response = client.post("/api/web-search", json={"query": "Acme"})

    assert response.status_code == 500
    assert response.json()["error"] == "configuration_error"


def test_analyze_prospect(client):
    response = client.post(
        "/api/analyze-prospect",
        json={
            "prospect": "Acme Corp",
            "keywords": ["funding"],
            "searchResults": [{"title": "Acme", "url": "https://example.com/acme"}],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["analysis"]["hasNews"] is True
    assert body["analysis"]["newsType"] == "funding"


def test_analyze_prospect_fallback_is_success(client, anthropic_client):
    anthropic_client.response = text_message("Sorry, I cannot help with that.")

    response = client.post(
        "/api/analyze-prospect",
        json={
            "prospect": "Acme Corp",
            "keywords": ["funding"],
            "searchResults": [{"title": "Acme", "url": "https://example.com/acme"}],
        },
    )

    assert response.status_code == 200
    analysis = response.json()["analysis"]
    assert analysis["hasNews"] is False
    assert analysis["confidence"] == "low"
    assert analysis["sourceUrl"] == "https://example.com/acme"


def test_analyze_prospect_missing_fields(client, anthropic_client):
    response = client.post("/api/analyze-prospect", json={"prospect": "Acme Corp"})

    assert response.status_code == 400
    assert response.json()["message"] == "Missing required parameters"
    assert anthropic_client.calls == []


def test_monitor_prospect(settings):
    app = create_app(
        settings,
        search_provider=FakeSearchProvider(),
        analysis_provider=FakeAnalysisProvider(news_for=["Acme Corp"]),
    )
    client = TestClient(app)

    response = client.post(
        "/api/monitor-prospect",
        json={"prospect": "Acme Corp", "keywords": ["funding", "launch", "hiring", "partnership", "ipo"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["prospect"] == "Acme Corp"
    assert body["metadata"]["searchQuery"] == '"Acme Corp" (funding OR launch OR hiring OR partnership) 2025'
    assert body["analysis"]["hasNews"] is True


@pytest.mark.parametrize(
    "error, status",
    [
        (UpstreamError("Brave API error: 503 Service Unavailable", provider="Brave", status_code=503), 502),
        (UpstreamTimeoutError("Brave request timed out", provider="Brave"), 504),
    ],
)
def test_monitor_prospect_upstream_failure(settings, error, status):
    app = create_app(
        settings,
        search_provider=FakeSearchProvider(errors={"Acme Corp": error}),
        analysis_provider=FakeAnalysisProvider(),
    )
    client = TestClient(app)

    response = client.post("/api/monitor-prospect", json={"prospect": "Acme Corp", "keywords": ["funding"]})

    assert response.status_code == status
    body = response.json()
    assert body["success"] is False
    assert body["message"].startswith("Search failed: ")
    assert body["provider"] == "Brave"


def test_monitor_all_prospects_continues_after_failure(settings):
    app = create_app(
        settings,
        search_provider=FakeSearchProvider(
            errors={"Globex": UpstreamError("Brave API error: 500", provider="Brave", status_code=500)}
        ),
        analysis_provider=FakeAnalysisProvider(news_for=["Initech"]),
    )
    client = TestClient(app)

    response = client.post(
        "/api/monitor-all-prospects",
        json={"prospects": ["Acme Corp", "Globex", "Initech"], "keywords": ["funding"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [r["success"] for r in body["results"]] == [True, False, True]
    assert body["results"][1] == {
        "success": False,
        "prospect": "Globex",
        "error": "Search failed: Brave API error: 500",
    }
    assert body["summary"] == {"total": 3, "successful": 2, "failed": 1, "withNews": 1}


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"keywords": ["funding"]}, "Prospects array is required"),
        ({"prospects": [], "keywords": ["funding"]}, "Prospects array is required"),
        ({"prospects": ["Acme"], "keywords": []}, "Keywords array is required"),
    ],
)
def test_monitor_all_prospects_validation(client, payload, message):
    response = client.post("/api/monitor-all-prospects", json=payload)

    assert response.status_code == 400
    assert response.json()["message"] == message


def test_unknown_route_returns_envelope(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "not_found",
        "message": "Route GET /api/nope not found",
    }


def test_non_object_body_is_validation_error(client):
    response = client.post("/api/web-search", json=["Acme"])

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_monitor_prospect_with_mistyped_search_hit(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"web": {"results": [{"profile": "oops"}]}})

    app = create_app(
        settings,
        search_provider=BraveSearchProvider(settings, http_client=mock_http_client(handler)),
        analysis_provider=FakeAnalysisProvider(),
    )
    client = TestClient(app)

    response = client.post("/api/monitor-prospect", json={"prospect": "Acme Corp", "keywords": ["funding"]})

    assert response.status_code == 200
    body = response.json()
    assert body["searchResults"][0]["title"] == "No title"
    assert body["searchResults"][0]["favicon"] is None


def test_analyze_prospect_fallback_with_mistyped_result(client, anthropic_client):
    anthropic_client.response = text_message("not json")

    response = client.post(
        "/api/analyze-prospect",
        json={"prospect": "Acme Corp", "keywords": ["funding"], "searchResults": [{"url": 123}]},
    )

    assert response.status_code == 200
    assert response.json()["analysis"]["sourceUrl"] is None


def test_startup_warns_about_missing_credentials(unconfigured_settings, monkeypatch):
    checked = []
    monkeypatch.setattr(api, "warn_missing_credentials", checked.append)

    with TestClient(create_app(unconfigured_settings)) as client:
        assert client.get("/api/health").status_code == 200

    assert checked == [unconfigured_settings]
