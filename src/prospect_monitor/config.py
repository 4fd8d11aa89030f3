"""Configuration loader for the prospect monitor.

Settings are resolved once at process start (environment first, then an
optional YAML file) and handed to each adapter explicitly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .errors import ConfigurationError, ValidationError

DEFAULT_MODEL = "claude-sonnet-4-20250514"
VERSION = "1.0.0"

_FLOAT_ENV = {
    "search_timeout_seconds": "PROSPECT_MONITOR_SEARCH_TIMEOUT",
    "analysis_timeout_seconds": "PROSPECT_MONITOR_ANALYSIS_TIMEOUT",
    "batch_delay_seconds": "PROSPECT_MONITOR_BATCH_DELAY",
}


def _parse_float(name: str, value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Setting '{name}' must be a number, got {value!r}")
    if parsed < 0:
        raise ConfigurationError(f"Setting '{name}' must not be negative, got {value!r}")
    return parsed


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class MonitorSettings:
    """Process-wide settings for the monitor."""

    brave_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = DEFAULT_MODEL
    search_timeout_seconds: float = 30.0
    analysis_timeout_seconds: float = 60.0
    batch_delay_seconds: float = 1.0
    query_year: Optional[str] = None
    environment: str = "development"
    version: str = VERSION

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MonitorSettings":
        """Load settings from environment variables."""
        env = os.environ if environ is None else environ

        numeric: Dict[str, float] = {}
        for name, variable in _FLOAT_ENV.items():
            raw = env.get(variable)
            if raw is not None and raw.strip():
                numeric[name] = _parse_float(name, raw)

        return cls(
            brave_api_key=_blank_to_none(env.get("BRAVE_API_KEY")),
            anthropic_api_key=_blank_to_none(env.get("ANTHROPIC_API_KEY")),
            anthropic_model=_blank_to_none(env.get("PROSPECT_MONITOR_MODEL")) or DEFAULT_MODEL,
            query_year=_blank_to_none(env.get("PROSPECT_MONITOR_QUERY_YEAR")),
            environment=_blank_to_none(env.get("ENVIRONMENT")) or "development",
            **numeric,
        )

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "MonitorSettings":
        """Load settings from the environment, overlaid with a YAML file's ``settings`` mapping."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Settings file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}

        return cls.from_env(environ).merged(data.get("settings", {}))

    def merged(self, overrides: Mapping[str, Any]) -> "MonitorSettings":
        """Return a copy with ``overrides`` applied; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key in _FLOAT_ENV:
                values[key] = _parse_float(key, value)
            elif value is None:
                values[key] = None
            else:
                values[key] = str(value)
        return replace(self, **values)

    def credentials_configured(self) -> Dict[str, bool]:
        return {
            "search": bool(self.brave_api_key),
            "analysis": bool(self.anthropic_api_key),
        }

    def resolve_query_year(self, now: Optional[datetime] = None) -> str:
        """Year token appended to search queries."""
        if self.query_year:
            return self.query_year
        now = now or datetime.now(timezone.utc)
        return str(now.year)


def require_string_list(value: Any, name: str) -> List[str]:
    """Validate a non-empty list of non-empty strings."""
    if not isinstance(value, (list, tuple)) or not value:
        raise ValidationError(f"{name} array is required")
    cleaned = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"{name} must contain only non-empty strings")
        cleaned.append(item.strip())
    return cleaned


@dataclass
class WatchList:
    """Prospects and keywords monitored by a batch run."""

    prospects: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WatchList":
        return cls(
            prospects=require_string_list(data.get("prospects"), "Prospects"),
            keywords=require_string_list(data.get("keywords"), "Keywords"),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "WatchList":
        """Load a watch list from a YAML or JSON file."""
        watchlist_path = Path(path)
        if not watchlist_path.exists():
            raise ConfigurationError(f"Watch list not found: {watchlist_path}")

        with open(watchlist_path, "r", encoding="utf-8") as handle:
            if watchlist_path.suffix.lower() == ".json":
                data = json.load(handle)
            else:
                data = yaml.safe_load(handle) or {}

        if not isinstance(data, Mapping):
            raise ValidationError(f"Watch list {watchlist_path} must be a mapping")
        return cls.from_dict(data)
