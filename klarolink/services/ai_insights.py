"""
AI Feedback Insights.

Uses Claude to turn a business's recent submissions into a structured report:
sentiment split, key themes, urgent issues, highlights and recommendations.

Reports are cached per business and reused while the submission signature
(count plus newest submission time) is unchanged and the TTL has not expired.

Standalone usage:
    from klarolink.services.ai_insights import get_insights_generator
    generator = get_insights_generator()
    result = await generator.get_insights(business, submissions)
"""

import json
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import anthropic
import structlog
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from klarolink.config.settings import Settings, get_settings
from klarolink.core.exceptions import (
    AIInsightsParseError,
    AIInsightsUnavailableError,
    ConfigurationError,
)
from klarolink.models.schemas import Business, FeedbackSubmission

logger = structlog.get_logger(__name__)

MAX_PROMPT_DATA_CHARS = 18000


# =============================================================================
# Models
# =============================================================================


class AIInsightsResult(BaseModel):
    """Generated report plus cache metadata."""
    insights: dict[str, Any] = Field(..., description="Structured analysis returned by the model")
    generated_at: datetime = Field(..., description="When the report was generated")
    submission_count: int = Field(..., description="Submissions the report is based on")
    cached: bool = Field(default=False, description="Served from cache")


@dataclass
class _CacheEntry:
    result: AIInsightsResult
    signature: str
    expires_at: float


# =============================================================================
# System Prompt
# =============================================================================

SYSTEM_PROMPT = """You are a senior customer experience analyst. You receive customer feedback
submitted through a business's feedback page and produce an actionable analysis.

Return ONLY valid JSON with this structure:
{
  "sentiment": {
    "overall": "positive|neutral|negative",
    "positive_pct": 0-100,
    "neutral_pct": 0-100,
    "negative_pct": 0-100,
    "summary": "One or two sentences",
    "confidence_score": 0-100
  },
  "key_themes": [
    {"theme": "...", "mentions": 0, "sentiment": "positive|neutral|negative",
     "impact": "high|medium|low", "examples": ["2-3 short customer quotes"]}
  ],
  "urgent_issues": [
    {"issue": "...", "severity": "critical|high|medium", "affected_customers": 0,
     "suggested_action": "...", "timeframe": "immediate|1-2 weeks|1 month"}
  ],
  "positive_highlights": [
    {"highlight": "...", "frequency": 0, "amplification_strategy": "..."}
  ],
  "recommendations": [
    {"category": "operations|service|product|marketing|training", "action": "...",
     "priority": "high|medium|low", "effort": "low|medium|high", "expected_impact": "..."}
  ],
  "conclusion": {"strength": "...", "needs_improvement": "...", "action": "..."}
}

RULES:
- Be specific to the data. Avoid generic platitudes.
- If ratings exist, use them for the sentiment percentages. Otherwise infer from text.
- Group similar topics into themes.
- No markdown, no explanation outside the JSON object."""


def submission_signature(submissions: Sequence[FeedbackSubmission]) -> str:
    """``count:latest_submitted_at`` for newest-first submissions."""
    if not submissions:
        return "0:0"
    return f"{len(submissions)}:{submissions[0].submitted_at.isoformat()}"


# =============================================================================
# Generator
# =============================================================================


class FeedbackInsightsGenerator:
    """
    Generates AI feedback reports using Claude.

    Model calls go through the async Anthropic client; retry backoff awaits
    instead of sleeping the event loop.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        self.settings = settings or get_settings()
        if client is None:
            if not self.settings.anthropic_api_key:
                raise ConfigurationError(
                    "AI insights require an Anthropic API key",
                    config_key="ANTHROPIC_API_KEY",
                )
            client = anthropic.AsyncAnthropic(
                api_key=self.settings.anthropic_api_key.get_secret_value()
            )
        self.client = client
        self.model = self.settings.ai_insights_model
        self._cache: dict[int, _CacheEntry] = {}

    def _build_user_message(
        self, business: Business, submissions: Sequence[FeedbackSubmission]
    ) -> str:
        compact = [
            {"submitted_at": s.submitted_at.isoformat(), "data": s.submission_data}
            for s in submissions
        ]
        data = json.dumps(compact, default=str)[:MAX_PROMPT_DATA_CHARS]
        return "\n".join([
            f"Business: {business.name}",
            f"Submissions: {len(submissions)}",
            "Feedback (ISO dates; each data object maps field id to answer):",
            data,
        ])

    def _parse_response(self, text: str) -> dict[str, Any]:
        """Parse JSON from Claude's response."""
        text = text.strip()

        # Strip markdown code fences if present
        if text.startswith("```"):
            lines = text.split("\n")
            if lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines)

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            match = re.search(r"\{[\s\S]*\}", text)
            if match:
                try:
                    return json.loads(match.group())
                except json.JSONDecodeError as e:
                    raise AIInsightsParseError(
                        "Could not parse JSON from response", {"preview": text[:200]}
                    ) from e
            raise AIInsightsParseError(
                "Could not parse JSON from response", {"preview": text[:200]}
            )

    @retry(
        retry=retry_if_exception_type(AIInsightsUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _call_model(self, user_message: str) -> str:
        try:
            raw = await self.client.messages.create(
                model=self.model,
                max_tokens=2048,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": user_message}],
            )
        except (
            anthropic.APIConnectionError,
            anthropic.RateLimitError,
            anthropic.InternalServerError,
        ) as e:
            logger.warning("ai_insights_model_unavailable", error=str(e))
            raise AIInsightsUnavailableError("AI model temporarily unavailable") from e
        return raw.content[0].text

    async def get_insights(
        self,
        business: Business,
        submissions: Sequence[FeedbackSubmission],
        force: bool = False,
    ) -> AIInsightsResult:
        """
        Get the AI report for a business, generating it when the cache is stale.

        Args:
            business: The business being analysed.
            submissions: Its submissions, newest first.
            force: Skip the cache and regenerate.

        Returns:
            The report, flagged ``cached=True`` when served from cache.
        """
        submissions = list(submissions)[: self.settings.ai_insights_max_submissions]
        signature = submission_signature(submissions)
        now = time.time()

        cached = self._cache.get(business.id)
        if not force and cached and cached.signature == signature and cached.expires_at > now:
            logger.info("ai_insights_cache_hit", business_id=business.id)
            return cached.result.model_copy(update={"cached": True})

        logger.info(
            "ai_insights_generating",
            business_id=business.id,
            submission_count=len(submissions),
        )
        text = await self._call_model(self._build_user_message(business, submissions))
        result = AIInsightsResult(
            insights=self._parse_response(text),
            generated_at=datetime.now(timezone.utc),
            submission_count=len(submissions),
        )

        self._cache[business.id] = _CacheEntry(
            result=result,
            signature=signature,
            expires_at=now + self.settings.ai_insights_cache_ttl_seconds,
        )
        return result

    def clear_cache(self, business_id: Optional[int] = None) -> None:
        if business_id is None:
            self._cache.clear()
        else:
            self._cache.pop(business_id, None)


# =============================================================================
# Singleton
# =============================================================================

_generator_instance: Optional[FeedbackInsightsGenerator] = None


def get_insights_generator() -> FeedbackInsightsGenerator:
    """Get or create the singleton FeedbackInsightsGenerator."""
    global _generator_instance
    if _generator_instance is None:
        _generator_instance = FeedbackInsightsGenerator()
    return _generator_instance


def set_insights_generator(generator: FeedbackInsightsGenerator) -> None:
    """Install a specific generator (tests)."""
    global _generator_instance
    _generator_instance = generator


def reset_insights_generator() -> None:
    """Reset the singleton (for testing)."""
    global _generator_instance
    _generator_instance = None
