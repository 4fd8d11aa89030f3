"""News analysis adapter backed by the Anthropic Messages API.

The model is asked for a JSON verdict. Its reply is decoded in two stages
(JSON, then verdict schema); when either stage fails the adapter returns a
low-confidence fallback verdict instead of an error.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import anthropic
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .config import MonitorSettings
from .errors import (
    ConfigurationError,
    ParseError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from .logging_config import get_logger
from .models import NEWS_TYPES, AnalysisVerdict, SearchResult, VerdictDecoding

logger = get_logger("analysis")

MAX_OUTPUT_TOKENS = 1500
MAX_PROMPT_RESULTS = 8
PROMPT_TEMPLATE = "analysis_prompt.txt.j2"
TEMPLATE_DIR = Path(__file__).parent / "templates"

NEWS_EMOJIS = {
    "funding": "🚀",
    "executive": "👔",
    "partnership": "🤝",
    "acquisition": "💼",
    "expansion": "🌍",
}

_FENCE_OPEN = re.compile(r"```json\n?")
_FENCE_ANY = re.compile(r"```\n?")


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers wrapped around a JSON reply."""
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_ANY.sub("", text)
    return text.strip()


def _decode_json(text: str) -> Any:
    try:
        return json.loads(strip_code_fences(text))
    except ValueError as exc:
        raise ParseError(f"Analysis response is not valid JSON: {exc}")


def decode_verdict(
    text: Optional[str],
    prospect: str,
    search_results: Sequence[SearchResult],
) -> VerdictDecoding:
    """Decode model output into a verdict, or build the fallback verdict.

    Args:
        text: Raw text of the model reply (None when the reply had no text block)
        prospect: Prospect the analysis was requested for
        search_results: Results the model was shown; the first one supplies the
            fallback ``sourceUrl``

    Returns:
        VerdictDecoding tagged ``decoded`` or ``fallback``
    """
    try:
        if text is None:
            raise ParseError("Analysis response contained no text block")
        verdict = AnalysisVerdict.from_dict(_decode_json(text))
    except ParseError as exc:
        logger.warning(f"Falling back to default verdict for {prospect}: {exc.message}")
        logger.debug(f"Raw analysis response for {prospect}: {text!r}")
        return VerdictDecoding(
            kind=VerdictDecoding.FALLBACK,
            verdict=AnalysisVerdict.fallback(prospect, search_results),
            error=exc.message,
        )
    return VerdictDecoding(kind=VerdictDecoding.DECODED, verdict=verdict)


def coerce_search_results(value: Any) -> List[SearchResult]:
    """Accept SearchResult objects or the dict payloads a caller echoes back."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError("searchResults must be an array")
    results = []
    for item in value:
        if isinstance(item, SearchResult):
            results.append(item)
        elif isinstance(item, Mapping):
            results.append(SearchResult.from_dict(item))
        else:
            raise ValidationError("searchResults must contain objects")
    return results


class AnthropicAnalysisProvider:
    """Classifies search results for a prospect with a Claude model."""

    provider_name = "Anthropic"

    def __init__(
        self,
        settings: MonitorSettings,
        client: Optional[Any] = None,
    ) -> None:
        self.api_key = settings.anthropic_api_key
        self.model = settings.anthropic_model
        self.timeout_seconds = settings.analysis_timeout_seconds
        self._client = client
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def build_prompt(
        self,
        prospect: str,
        keywords: Sequence[str],
        search_results: Sequence[SearchResult],
    ) -> str:
        """Render the analysis prompt for at most ``MAX_PROMPT_RESULTS`` results."""
        results_json = json.dumps(
            [result.to_dict() for result in search_results[:MAX_PROMPT_RESULTS]],
            indent=2,
            ensure_ascii=False,
        )
        template = self.jinja_env.get_template(PROMPT_TEMPLATE)
        return template.render(
            prospect=prospect,
            results_json=results_json,
            keywords=list(keywords),
            news_types=NEWS_TYPES,
            news_emojis=NEWS_EMOJIS,
        )

    async def analyze(
        self,
        prospect: Any,
        keywords: Any,
        search_results: Any,
    ) -> AnalysisVerdict:
        """Return the verdict for ``prospect``; malformed model output yields the fallback."""
        decoding = await self.analyze_detailed(prospect, keywords, search_results)
        return decoding.verdict

    async def analyze_detailed(
        self,
        prospect: Any,
        keywords: Any,
        search_results: Any,
    ) -> VerdictDecoding:
        """Like ``analyze`` but reports whether the verdict was decoded or a fallback.

        Raises:
            ValidationError: If any of the three inputs is missing
            ConfigurationError: If no Anthropic API key is configured
            UpstreamError: If the Messages API call fails
        """
        if not isinstance(prospect, str) or not prospect.strip() or keywords is None or search_results is None:
            raise ValidationError("Missing required parameters")
        if not isinstance(keywords, (list, tuple)) or not all(isinstance(k, str) for k in keywords):
            raise ValidationError("keywords must be an array of strings")
        results = coerce_search_results(search_results)

        if not self.api_key:
            raise ConfigurationError("Anthropic API key not configured")

        prospect = prospect.strip()
        prompt = self.build_prompt(prospect, keywords, results)

        logger.info(f"Analyzing {len(results)} search results for {prospect}")
        text = await self._complete(prompt)
        decoding = decode_verdict(text, prospect, results)
        logger.info(
            f"Analysis for {prospect}: {decoding.kind}, "
            f"hasNews={decoding.verdict.has_news}, confidence={decoding.verdict.confidence}"
        )
        return decoding

    async def _complete(self, prompt: str) -> Optional[str]:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=MAX_OUTPUT_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError:
            logger.error("Anthropic request timed out")
            raise UpstreamTimeoutError(
                "Claude API request timed out",
                provider=self.provider_name,
            )
        except anthropic.APIStatusError as exc:
            logger.error(f"Anthropic API error {exc.status_code}: {exc.message}")
            raise UpstreamError(
                f"Claude API error: {exc.status_code} - {exc.message}",
                provider=self.provider_name,
                status_code=exc.status_code,
                body=exc.response.text,
            )
        except anthropic.APIConnectionError as exc:
            logger.error(f"Anthropic connection error: {exc}")
            raise UpstreamError(
                f"Claude API request failed: {exc}",
                provider=self.provider_name,
            )

        return self._extract_text(response)

    @staticmethod
    def _extract_text(response: Any) -> Optional[str]:
        """Return the first text block of a Messages API response."""
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "text":
                return block.text
        return None
