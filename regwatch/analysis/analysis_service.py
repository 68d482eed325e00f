"""
AnalysisService: turns a detected change into a structured analysis result.

The service bounds the content sent to the language model, invokes it under a
timeout, and normalizes whatever comes back. It never raises: any failure
degrades to a placeholder result flagged for human review, so a lost
annotation never costs the record that a change happened.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from ..database.models import Source
from .models import AnalysisContext, AnalysisOutcome, DegradedAnalysis
from .normalization import parse_analysis_response

logger = logging.getLogger(__name__)

NEW_CONTENT_LIMIT = 15000
PREVIOUS_CONTENT_LIMIT = 10000

SYSTEM_PROMPT = (
    "You are an expert regulatory analyst specializing in cosmetics law. "
    "Extract key changes clearly and concisely."
)


def build_analysis_context(source: Source, previous_content: str, new_content: str) -> AnalysisContext:
    """Truncate both contents to their prefixes and attach source metadata."""
    previous_content = previous_content or ""
    return AnalysisContext(
        source_name=source.name,
        source_url=source.url,
        previous_content=previous_content[:PREVIOUS_CONTENT_LIMIT],
        new_content=new_content[:NEW_CONTENT_LIMIT],
        previous_length=len(previous_content),
        new_length=len(new_content)
    )


def build_analysis_prompt(context: AnalysisContext) -> str:
    """Create the user prompt for one change analysis."""
    if context.previous_content:
        previous_section = f"PREVIOUS CONTENT (for comparison):\n{context.previous_content}"
    else:
        previous_section = "No previous content available (first fetch)."

    return f"""You are analyzing a change to a cosmetics regulatory source.

Source: {context.source_name}
URL: {context.source_url}

Your task: Analyze what changed and extract key information.

Previous content length: {context.previous_length} characters
New content length: {context.new_length} characters

NEW CONTENT:
{context.new_content}

{previous_section}

Analyze the change and respond in JSON format with these fields:
{{
  "summary": "Plain English summary (2-3 sentences) of what changed and why it matters",
  "tags": ["array", "of", "relevant", "tags"],
  "status": "draft|proposal|final|guidance|unknown",
  "effectiveDate": "YYYY-MM-DD or null",
  "needsReview": true,
  "whoAffected": "Brief note on who this impacts (manufacturers, indie brands, retailers, etc.)"
}}

Tags are short labels such as "labeling", "ingredient-ban" or "reporting-deadline".
Set needsReview to true if the change is high-impact, uncertain, or requires expert review.

Focus on regulatory substance: new requirements, deadline changes, banned ingredients, labeling rules, reporting criteria.
Ignore minor formatting, typo fixes, or navigation changes unless they indicate something substantive."""


class AnalysisService:
    """
    Invokes the analysis client and normalizes its output.

    Any object exposing ``async complete(system_prompt, user_prompt) -> str``
    can serve as the client.
    """

    def __init__(self, client: Any, timeout_seconds: float = 60):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.analysis_stats = {
            "total_analyses": 0,
            "degraded_analyses": 0,
            "avg_processing_time_ms": 0
        }

    async def analyze(self, source: Source, previous_content: Optional[str], new_content: str) -> AnalysisOutcome:
        """
        Analyze one detected change.

        Args:
            source: Source whose content changed
            previous_content: Content of the comparison snapshot (empty on first observation)
            new_content: Newly fetched content

        Returns:
            ParsedAnalysis, or DegradedAnalysis when the call failed, timed out,
            or produced an unusable body
        """
        start_time = time.time()
        context = build_analysis_context(source, previous_content or "", new_content)
        prompt = build_analysis_prompt(context)

        try:
            raw = await asyncio.wait_for(
                self.client.complete(SYSTEM_PROMPT, prompt),
                timeout=self.timeout_seconds
            )
            outcome = parse_analysis_response(raw)
        except asyncio.TimeoutError:
            logger.error(f"Analysis for {source.name} timed out after {self.timeout_seconds}s")
            outcome = DegradedAnalysis(reason=f"Analysis timed out after {self.timeout_seconds}s")
        except Exception as e:
            logger.error(f"LLM analysis error for {source.name}: {e}")
            outcome = DegradedAnalysis(reason=str(e) or e.__class__.__name__)

        self._update_stats(outcome, int((time.time() - start_time) * 1000))

        if isinstance(outcome, DegradedAnalysis):
            logger.warning(f"Analysis degraded for {source.name}: {outcome.reason}")
        else:
            logger.info(f"Analysis completed for {source.name}: status={outcome.result.status.value}, "
                        f"needs_review={outcome.result.needs_review}")
        return outcome

    def _update_stats(self, outcome: AnalysisOutcome, processing_time_ms: int) -> None:
        stats = self.analysis_stats
        stats["total_analyses"] += 1
        if isinstance(outcome, DegradedAnalysis):
            stats["degraded_analyses"] += 1
        total = stats["total_analyses"]
        stats["avg_processing_time_ms"] = int(
            (stats["avg_processing_time_ms"] * (total - 1) + processing_time_ms) / total
        )

    def get_analysis_stats(self) -> Dict[str, Any]:
        """Return a copy of the running analysis statistics."""
        return dict(self.analysis_stats)
