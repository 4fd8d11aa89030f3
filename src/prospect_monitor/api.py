"""HTTP service exposing search, analysis and monitoring as JSON endpoints."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .analysis import AnthropicAnalysisProvider
from .config import MonitorSettings
from .errors import (
    ConfigurationError,
    ProspectMonitorError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from .logging_config import get_logger, setup_logging
from .monitor import BatchMonitor, ProspectMonitor, utc_timestamp
from .search import BraveSearchProvider

logger = get_logger("api")

PROJECT_NAME = "Prospect Monitor API"
DEFAULT_PORT = 3001

ENDPOINTS = [
    "GET /api/health",
    "POST /api/web-search",
    "POST /api/analyze-prospect",
    "POST /api/monitor-prospect",
    "POST /api/monitor-all-prospects",
]


# Every field is optional so that missing input is reported through the
# ValidationError envelope instead of FastAPI's default 422 payload.
class SearchRequest(BaseModel):
    query: Optional[Any] = None


class AnalyzeRequest(BaseModel):
    prospect: Optional[Any] = None
    keywords: Optional[Any] = None
    searchResults: Optional[Any] = None


class MonitorRequest(BaseModel):
    prospect: Optional[Any] = None
    keywords: Optional[Any] = None


class BatchMonitorRequest(BaseModel):
    prospects: Optional[Any] = None
    keywords: Optional[Any] = None


def status_code_for(error: ProspectMonitorError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, UpstreamTimeoutError):
        return 504
    if isinstance(error, UpstreamError):
        return 502
    return 500


def warn_missing_credentials(settings: MonitorSettings) -> None:
    configured = settings.credentials_configured()
    if not configured["search"]:
        logger.warning("BRAVE_API_KEY not set - web search will not work")
    if not configured["analysis"]:
        logger.warning("ANTHROPIC_API_KEY not set - analysis will not work")


def create_app(
    settings: Optional[MonitorSettings] = None,
    *,
    search_provider: Optional[BraveSearchProvider] = None,
    analysis_provider: Optional[AnthropicAnalysisProvider] = None,
    batch_monitor: Optional[BatchMonitor] = None,
) -> FastAPI:
    """Build the FastAPI application around explicitly constructed adapters."""
    settings = settings or MonitorSettings.from_env()
    search_provider = search_provider or BraveSearchProvider(settings)
    analysis_provider = analysis_provider or AnthropicAnalysisProvider(settings)
    monitor = ProspectMonitor(settings, search_provider, analysis_provider)
    batch_monitor = batch_monitor or BatchMonitor(monitor, settings.batch_delay_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"{PROJECT_NAME} {settings.version} starting ({settings.environment})")
        warn_missing_credentials(settings)
        yield

    app = FastAPI(title=PROJECT_NAME, version=settings.version, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_origin_regex=r"https://.*\.vercel\.app",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProspectMonitorError)
    async def handle_monitor_error(request: Request, exc: ProspectMonitorError) -> JSONResponse:
        if isinstance(exc, (ConfigurationError, UpstreamError)):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError("Request body must be a JSON object")
        return JSONResponse(status_code=400, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = f"Route {request.method} {request.url.path} not found"
            error = "not_found"
        else:
            message = str(exc.detail)
            error = "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": error, "message": message},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        message = str(exc) if settings.environment == "development" else "Something went wrong"
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "internal_error", "message": message},
        )

    @app.get("/")
    async def root() -> dict:
        return {
            "message": "Prospect Monitor Backend API",
            "status": "running",
            "timestamp": utc_timestamp(),
        }

    @app.get("/api")
    async def api_info() -> dict:
        return {
            "name": PROJECT_NAME,
            "version": settings.version,
            "endpoints": ENDPOINTS,
        }

    @app.get("/api/health")
    async def health() -> dict:
        """Report configuration without touching any upstream provider."""
        return {
            "status": "healthy",
            "timestamp": utc_timestamp(),
            "credentialsConfigured": settings.credentials_configured(),
            "environment": settings.environment,
            "version": settings.version,
        }

    @app.post("/api/web-search")
    async def web_search(body: Optional[SearchRequest] = None) -> dict:
        body = body or SearchRequest()
        response = await search_provider.search(body.query)
        return {"success": True, **response.to_dict()}

    @app.post("/api/analyze-prospect")
    async def analyze_prospect(body: Optional[AnalyzeRequest] = None) -> dict:
        body = body or AnalyzeRequest()
        verdict = await analysis_provider.analyze(body.prospect, body.keywords, body.searchResults)
        return {"success": True, "analysis": verdict.to_dict()}

    @app.post("/api/monitor-prospect")
    async def monitor_prospect(body: Optional[MonitorRequest] = None) -> dict:
        body = body or MonitorRequest()
        result = await monitor.monitor_one(body.prospect, body.keywords)
        return result.to_dict()

    @app.post("/api/monitor-all-prospects")
    async def monitor_all_prospects(body: Optional[BatchMonitorRequest] = None) -> dict:
        body = body or BatchMonitorRequest()
        result = await batch_monitor.monitor_batch(body.prospects, body.keywords)
        return result.to_dict()

    return app


def main() -> None:
    """Serve the API with uvicorn."""
    load_dotenv()
    setup_logging()
    settings = MonitorSettings.from_env()
    port = int(os.environ.get("PORT", DEFAULT_PORT))

    logger.info(f"Backend server starting on port {port}")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
