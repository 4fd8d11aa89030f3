"""Error taxonomy shared by the adapters, monitors and the HTTP service."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ProspectMonitorError(Exception):
    """Base class for every error the monitor surfaces to its callers."""

    code = "monitor_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Uniform failure envelope."""
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
        }


class ValidationError(ProspectMonitorError):
    """Missing or malformed caller input."""

    code = "validation_error"


class ConfigurationError(ProspectMonitorError):
    """A required credential or setting is missing or invalid."""

    code = "configuration_error"


class UpstreamError(ProspectMonitorError):
    """An external provider returned a non-success response or was unreachable."""

    code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["provider"] = self.provider
        if self.status_code is not None:
            payload["statusCode"] = self.status_code
        return payload


class UpstreamTimeoutError(UpstreamError):
    """An external provider did not answer within the configured timeout."""

    code = "upstream_timeout"


class ParseError(ProspectMonitorError):
    """Model output could not be decoded into a verdict.

    Only raised inside the analysis adapter; callers receive a fallback verdict.
    """

    code = "parse_error"


def wrap_error(error: ProspectMonitorError, prefix: str) -> ProspectMonitorError:
    """Return a copy of ``error`` of the same class with ``prefix`` on its message."""
    message = f"{prefix}: {error.message}"
    if isinstance(error, UpstreamError):
        return type(error)(
            message,
            provider=error.provider,
            status_code=error.status_code,
            body=error.body,
        )
    return type(error)(message)
