"""
Normalization of analysis service responses.

The service is asked for a JSON object but nothing about its answer is
trusted: each field is validated on its own and replaced by its default when
missing or malformed, so one bad field never discards the others.
"""

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from .models import (
    AnalysisOutcome, AnalysisResult, DegradedAnalysis, DocumentStatus, ParsedAnalysis,
    DEFAULT_SUMMARY
)

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 64


def _field(payload: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in payload:
            return payload[name]
    return None


def _normalize_summary(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_SUMMARY


def _normalize_tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    tags: List[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        tag = item.strip()
        if tag and len(tag) <= MAX_TAG_LENGTH and tag not in tags:
            tags.append(tag)
    return tags


def _normalize_status(value: Any) -> DocumentStatus:
    if isinstance(value, str):
        try:
            return DocumentStatus(value.strip().lower())
        except ValueError:
            pass
    return DocumentStatus.UNKNOWN


def _normalize_effective_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _normalize_who_affected(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_analysis(payload: Dict[str, Any]) -> AnalysisResult:
    """
    Fill an AnalysisResult from a decoded response object.

    Args:
        payload: Decoded JSON object from the analysis service

    Returns:
        AnalysisResult with every missing or invalid field defaulted.
        ``needs_review`` is only cleared by an explicit boolean false.
    """
    return AnalysisResult(
        summary=_normalize_summary(_field(payload, "summary")),
        tags=_normalize_tags(_field(payload, "tags")),
        status=_normalize_status(_field(payload, "status")),
        effective_date=_normalize_effective_date(_field(payload, "effectiveDate", "effective_date")),
        needs_review=_field(payload, "needsReview", "needs_review") is not False,
        who_affected=_normalize_who_affected(_field(payload, "whoAffected", "who_affected"))
    )


def parse_analysis_response(text: Optional[str]) -> AnalysisOutcome:
    """
    Decode a raw response body into a tagged analysis outcome.

    Returns:
        ParsedAnalysis when the body is a JSON object, DegradedAnalysis otherwise
    """
    if not text or not text.strip():
        return DegradedAnalysis(reason="Empty analysis response")

    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Analysis response is not valid JSON: {e}")
        return DegradedAnalysis(reason=f"Invalid JSON in analysis response: {e}")

    if not isinstance(payload, dict):
        return DegradedAnalysis(reason=f"Analysis response is a {type(payload).__name__}, expected an object")

    return ParsedAnalysis(result=normalize_analysis(payload))
