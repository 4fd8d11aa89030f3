"""Data models for the prospect monitor.

The dataclasses here are the in-process shapes; ``to_dict`` produces the
camelCase payloads returned by the HTTP service and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ParseError

NEWS_TYPES = ("funding", "executive", "acquisition", "partnership", "expansion", "other")
URGENCY_LEVELS = ("high", "medium", "low")
CONFIDENCE_LEVELS = ("high", "medium", "low")

FALLBACK_SUMMARY = "Unable to analyze search results properly"


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


@dataclass(frozen=True)
class SearchResult:
    """A single normalized web hit."""

    title: str = "No title"
    url: str = ""
    description: str = "No description"
    published: str = "Recent"
    favicon: Optional[str] = None

    @classmethod
    def from_upstream(cls, raw: Mapping[str, Any]) -> "SearchResult":
        """Normalize a raw search API hit, substituting defaults for missing or mistyped fields."""
        profile = raw.get("profile")
        if not isinstance(profile, Mapping):
            profile = {}
        return cls(
            title=_text(raw.get("title"), "No title"),
            url=_text(raw.get("url"), ""),
            description=_text(raw.get("description"), "No description"),
            published=_text(raw.get("age"), "Recent"),
            favicon=_text(profile.get("img"), "") or None,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchResult":
        """Build from the camelCase payload a caller sends back to the service."""
        return cls(
            title=_text(data.get("title"), "No title"),
            url=_text(data.get("url"), ""),
            description=_text(data.get("description"), "No description"),
            published=_text(data.get("published"), "Recent"),
            favicon=_text(data.get("favicon"), "") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "published": self.published,
            "favicon": self.favicon,
        }


@dataclass(frozen=True)
class SearchResponse:
    """Normalized results of one search call."""

    query: str
    results: Tuple[SearchResult, ...] = ()

    @property
    def total(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [result.to_dict() for result in self.results],
            "total": self.total,
        }


def _normalize_choice(value: Any, choices: Sequence[str], default: str) -> str:
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in choices:
            return candidate
    return default


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class AnalysisVerdict:
    """Structured classification of a prospect's recent news."""

    company: str
    has_news: bool
    summary: str = "No relevant news found"
    news_type: str = "other"
    urgency: str = "low"
    alert_message: str = ""
    source_url: Optional[str] = None
    confidence: str = "low"

    @classmethod
    def from_dict(cls, data: Any) -> "AnalysisVerdict":
        """Validate a decoded model payload.

        ``company`` must be a non-empty string and ``hasNews`` a real boolean;
        enum fields are normalized, unknown values falling back to ``other`` or
        ``low``.

        Raises:
            ParseError: If the payload does not satisfy the verdict schema
        """
        if not isinstance(data, Mapping):
            raise ParseError("Analysis response is not a JSON object")

        company = data.get("company")
        if not isinstance(company, str) or not company.strip():
            raise ParseError("Analysis response is missing 'company'")

        has_news = data.get("hasNews")
        if not isinstance(has_news, bool):
            raise ParseError("Analysis response field 'hasNews' is not a boolean")

        summary = data.get("summary")
        alert_message = data.get("alertMessage", data.get("slackMessage"))

        return cls(
            company=company.strip(),
            has_news=has_news,
            summary=summary if isinstance(summary, str) and summary else "No relevant news found",
            news_type=_normalize_choice(data.get("newsType"), NEWS_TYPES, "other"),
            urgency=_normalize_choice(data.get("urgency"), URGENCY_LEVELS, "low"),
            alert_message=alert_message if isinstance(alert_message, str) else "",
            source_url=_optional_str(data.get("sourceUrl")),
            confidence=_normalize_choice(data.get("confidence"), CONFIDENCE_LEVELS, "low"),
        )

    @classmethod
    def fallback(
        cls,
        prospect: str,
        search_results: Sequence[SearchResult],
    ) -> "AnalysisVerdict":
        """Low-confidence verdict used when the model output cannot be decoded."""
        source_url = search_results[0].url if search_results else None
        return cls(
            company=prospect,
            has_news=False,
            summary=FALLBACK_SUMMARY,
            news_type="other",
            urgency="low",
            alert_message=f"ℹ️ Unable to analyze news for {prospect} - manual review needed",
            source_url=_optional_str(source_url),
            confidence="low",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company": self.company,
            "hasNews": self.has_news,
            "summary": self.summary,
            "newsType": self.news_type,
            "urgency": self.urgency,
            "alertMessage": self.alert_message,
            "sourceUrl": self.source_url,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class VerdictDecoding:
    """Outcome of decoding model output: either ``decoded`` or ``fallback``."""

    DECODED = "decoded"
    FALLBACK = "fallback"

    kind: str
    verdict: AnalysisVerdict
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.kind == self.FALLBACK


@dataclass
class MonitorResult:
    """Search and analysis outcome for one prospect in one run."""

    prospect: str
    search_results: List[SearchResult]
    analysis: AnalysisVerdict
    search_query: str
    timestamp: str
    total_results: int = 0
    success: bool = field(default=True, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "prospect": self.prospect,
            "searchResults": [result.to_dict() for result in self.search_results],
            "analysis": self.analysis.to_dict(),
            "metadata": {
                "searchQuery": self.search_query,
                "totalResults": self.total_results,
                "timestamp": self.timestamp,
            },
        }


@dataclass
class FailureRecord:
    """A prospect that could not be monitored during a batch run."""

    prospect: str
    error: str
    success: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "prospect": self.prospect,
            "error": self.error,
        }


ProspectOutcome = Union[MonitorResult, FailureRecord]


@dataclass
class BatchSummary:
    """Aggregate counts derived from one batch run."""

    total: int
    successful: int
    failed: int
    with_news: int

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ProspectOutcome]) -> "BatchSummary":
        successful = [o for o in outcomes if isinstance(o, MonitorResult)]
        return cls(
            total=len(outcomes),
            successful=len(successful),
            failed=len(outcomes) - len(successful),
            with_news=sum(1 for o in successful if o.analysis.has_news),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "withNews": self.with_news,
        }


@dataclass
class BatchResult:
    """Ordered per-prospect outcomes of a batch run plus their summary."""

    outcomes: List[ProspectOutcome]
    summary: BatchSummary
    cancelled: bool = False

    def exit_code(self) -> int:
        """Return appropriate exit code based on run status."""
        if self.summary.failed:
            return 2
        return 0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": True,
            "results": [outcome.to_dict() for outcome in self.outcomes],
            "summary": self.summary.to_dict(),
        }
        if self.cancelled:
            payload["cancelled"] = True
        return payload
