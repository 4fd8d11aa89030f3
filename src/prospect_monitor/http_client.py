"""HTTP client with timeout support for upstream providers."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .config import VERSION
from .errors import UpstreamError, UpstreamTimeoutError
from .logging_config import get_logger

logger = get_logger("http_client")


class HTTPClient:
    """httpx wrapper that maps transport failures onto the monitor's error taxonomy.

    Requests are sent once; a non-2xx status, a timeout, or a connection
    failure raises immediately.
    """

    def __init__(
        self,
        provider: str,
        *,
        timeout_seconds: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.provider = provider
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=timeout_seconds,
            write=10.0,
            pool=5.0,
        )
        self.headers = {
            "User-Agent": f"Prospect-Monitor/{VERSION}",
            **(headers or {}),
        }
        self.transport = transport

    async def get(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        return await self.request("GET", url, headers=headers, params=params)

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> httpx.Response:
        merged_headers = {**self.headers, **(headers or {})}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers=merged_headers,
                    params=params,
                    json=json,
                )
            except httpx.TimeoutException as exc:
                logger.error("Request %s %s to %s timed out: %s", method, url, self.provider, exc)
                raise UpstreamTimeoutError(
                    f"{self.provider} request timed out",
                    provider=self.provider,
                )
            except httpx.RequestError as exc:
                logger.error("Request %s %s to %s failed: %s", method, url, self.provider, exc)
                raise UpstreamError(
                    f"{self.provider} request failed: {exc}",
                    provider=self.provider,
                )

        if response.is_success:
            return response

        logger.error(
            "Request %s %s failed with status %s: %s",
            method,
            url,
            response.status_code,
            response.text[:500],
        )
        raise UpstreamError(
            f"{self.provider} API error: {response.status_code} {response.reason_phrase}".rstrip(),
            provider=self.provider,
            status_code=response.status_code,
            body=response.text,
        )
