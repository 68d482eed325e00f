"""
Pydantic models for change analysis requests and results.
"""

from datetime import date
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

DEFAULT_SUMMARY = "Change detected, analysis incomplete"
FAILED_SUMMARY = "Change detected. LLM analysis failed - manual review required."
ANALYSIS_ERROR_TAG = "analysis-error"


class DocumentStatus(str, Enum):
    """Regulatory status of the analyzed document."""
    DRAFT = "draft"
    PROPOSAL = "proposal"
    FINAL = "final"
    GUIDANCE = "guidance"
    UNKNOWN = "unknown"


class AnalysisContext(BaseModel):
    """Bounded input sent to the analysis service for one detected change."""

    source_name: str = Field(..., description="Display name of the source")
    source_url: str = Field(..., description="URL of the source")
    previous_content: str = Field(default="", description="Prefix of the previous content")
    new_content: str = Field(..., description="Prefix of the new content")
    previous_length: int = Field(..., ge=0, description="Length of the untruncated previous content")
    new_length: int = Field(..., ge=0, description="Length of the untruncated new content")


class AnalysisResult(BaseModel):
    """Canonical analysis result persisted on a change event."""

    summary: str = Field(default=DEFAULT_SUMMARY, min_length=1, description="Plain English summary of the change")
    tags: List[str] = Field(default_factory=list, description="Short labels such as 'labeling'")
    status: DocumentStatus = Field(default=DocumentStatus.UNKNOWN, description="Document status classification")
    effective_date: Optional[date] = Field(None, description="When the change takes effect, if stated")
    needs_review: bool = Field(default=True, description="Whether a human should review the change")
    who_affected: Optional[str] = Field(None, description="Who the change impacts")


class ParsedAnalysis(BaseModel):
    """The service answered with a JSON object; fields were normalized."""

    kind: Literal["parsed"] = "parsed"
    result: AnalysisResult


class DegradedAnalysis(BaseModel):
    """The service failed or answered unusably; the result is a placeholder."""

    kind: Literal["degraded"] = "degraded"
    reason: str
    result: AnalysisResult = Field(default_factory=lambda: failed_analysis_result())


AnalysisOutcome = Union[ParsedAnalysis, DegradedAnalysis]


def failed_analysis_result() -> AnalysisResult:
    """Placeholder result used whenever the analysis service cannot be used."""
    return AnalysisResult(
        summary=FAILED_SUMMARY,
        tags=[ANALYSIS_ERROR_TAG],
        status=DocumentStatus.UNKNOWN,
        effective_date=None,
        needs_review=True
    )
