"""
Change analysis package for regulatory document monitoring.

This package builds bounded analysis requests, calls the language model, and
normalizes its answers into canonical results.
"""

from .models import (
    AnalysisContext,
    AnalysisResult,
    AnalysisOutcome,
    ParsedAnalysis,
    DegradedAnalysis,
    DocumentStatus,
    failed_analysis_result,
)
from .normalization import normalize_analysis, parse_analysis_response
from .analysis_service import AnalysisService, build_analysis_context, build_analysis_prompt
from .llm_client import OpenAIAnalysisClient, AnalysisUnavailableError

__all__ = [
    "AnalysisContext",
    "AnalysisResult",
    "AnalysisOutcome",
    "ParsedAnalysis",
    "DegradedAnalysis",
    "DocumentStatus",
    "failed_analysis_result",
    "normalize_analysis",
    "parse_analysis_response",
    "AnalysisService",
    "build_analysis_context",
    "build_analysis_prompt",
    "OpenAIAnalysisClient",
    "AnalysisUnavailableError",
]
