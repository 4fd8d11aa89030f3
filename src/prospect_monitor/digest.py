"""Alert digest builder for batch monitoring runs.

Organizes a batch result into prospects with news (ordered by urgency),
prospects without news, and failed prospects, then renders plaintext or
Slack-flavoured markdown with Jinja2 templates.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jinja2 import Environment, FileSystemLoader

from .models import URGENCY_LEVELS, BatchResult, FailureRecord, MonitorResult

DEFAULT_TITLE = "Prospect News Digest"

DIGEST_FORMATS = {
    "text": "digest.txt.j2",
    "markdown": "digest.md.j2",
}


@dataclass
class DigestConfig:
    """Configuration for digest rendering."""

    title: str = DEFAULT_TITLE

    @classmethod
    def from_env(cls) -> "DigestConfig":
        """Load configuration from environment variables."""
        return cls(title=os.environ.get("PROSPECT_MONITOR_DIGEST_TITLE", DEFAULT_TITLE))


class AlertDigestBuilder:
    """Builds alert digests from batch monitoring results."""

    def __init__(
        self,
        config: Optional[DigestConfig] = None,
        template_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self.config = config or DigestConfig()

        if template_dir is None:
            template_dir = Path(__file__).parent / "templates"
        else:
            template_dir = Path(template_dir)

        self.template_dir = template_dir
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def build_digest(
        self,
        batch: BatchResult,
        *,
        generated_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Build the digest data structure for a batch run."""
        with_news: List[MonitorResult] = []
        without_news: List[MonitorResult] = []
        failures: List[FailureRecord] = []

        for outcome in batch.outcomes:
            if isinstance(outcome, FailureRecord):
                failures.append(outcome)
            elif outcome.analysis.has_news:
                with_news.append(outcome)
            else:
                without_news.append(outcome)

        # sorted() is stable, so input order is kept within an urgency tier
        with_news = sorted(with_news, key=lambda r: URGENCY_LEVELS.index(r.analysis.urgency))

        generated_at = generated_at or datetime.now(timezone.utc)
        return {
            "title": self.config.title,
            "summary": batch.summary.to_dict(),
            "cancelled": batch.cancelled,
            "alerts": [self._format_alert(result) for result in with_news],
            "quiet_prospects": [result.prospect for result in without_news],
            "failures": [failure.to_dict() for failure in failures],
            "generated_at": generated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        }

    def _format_alert(self, result: MonitorResult) -> Dict[str, Any]:
        verdict = result.analysis
        return {
            "prospect": result.prospect,
            "message": verdict.alert_message or verdict.summary,
            "summary": verdict.summary,
            "news_type": verdict.news_type,
            "urgency": verdict.urgency,
            "confidence": verdict.confidence,
            "source_url": verdict.source_url,
        }

    def render(self, digest_data: Dict[str, Any], output_format: str = "text") -> str:
        """Render digest data in ``text`` or ``markdown`` format."""
        template_name = DIGEST_FORMATS.get(output_format)
        if template_name is None:
            raise ValueError(f"Unknown digest format: {output_format}")
        return self.jinja_env.get_template(template_name).render(**digest_data)

    def render_text(self, digest_data: Dict[str, Any]) -> str:
        return self.render(digest_data, "text")

    def render_markdown(self, digest_data: Dict[str, Any]) -> str:
        return self.render(digest_data, "markdown")
