"""Prospect Monitor package namespace."""

from importlib import import_module
from typing import Any

__all__ = [
    "MonitorSettings",
    "WatchList",
    "BraveSearchProvider",
    "AnthropicAnalysisProvider",
    "ProspectMonitor",
    "BatchMonitor",
    "build_search_query",
    "AlertDigestBuilder",
    "DigestConfig",
    "create_app",
]


def __getattr__(name: str) -> Any:
    if name in ("MonitorSettings", "WatchList"):
        module = import_module("src.prospect_monitor.config")
        return getattr(module, name)
    elif name == "BraveSearchProvider":
        module = import_module("src.prospect_monitor.search")
        return getattr(module, name)
    elif name == "AnthropicAnalysisProvider":
        module = import_module("src.prospect_monitor.analysis")
        return getattr(module, name)
    elif name in ("ProspectMonitor", "BatchMonitor", "build_search_query"):
        module = import_module("src.prospect_monitor.monitor")
        return getattr(module, name)
    elif name in ("AlertDigestBuilder", "DigestConfig"):
        module = import_module("src.prospect_monitor.digest")
        return getattr(module, name)
    elif name == "create_app":
        module = import_module("src.prospect_monitor.api")
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
