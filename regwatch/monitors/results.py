"""
Result types for the per-source monitoring pipeline.

Each pipeline step reports its failure mode as a distinct type: the fetcher
returns one of the ``FetchOutcome`` variants, store adapters raise
``StoreError``, and the run coordinator folds everything into ``SourceResult``
entries of a ``RunReport``.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class FetchSuccess:
    """Response received with a status code in the success range."""
    content: bytes
    http_status: int


@dataclass(frozen=True)
class HttpFailure:
    """Response received but the status code is outside the success range."""
    http_status: int

    @property
    def error_message(self) -> str:
        return f"HTTP {self.http_status}"


@dataclass(frozen=True)
class TransportFailure:
    """No response obtained (connection error, DNS failure, timeout)."""
    error_message: str


FetchOutcome = Union[FetchSuccess, HttpFailure, TransportFailure]


class StoreError(Exception):
    """Raised when a snapshot or change event cannot be persisted or read."""


class SourceStatus(str, Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    ERROR = "error"


class SourceResult(BaseModel):
    """Outcome of one source's pipeline run, as reported to the trigger."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(..., description="Display name of the source")
    status: Literal["unchanged", "changed", "error"]
    summary: Optional[str] = Field(None, description="Analysis summary for changed sources")
    error: Optional[str] = Field(None, description="Error message for failed sources")
    http_status: Optional[int] = Field(None, alias="httpStatus", description="HTTP status of a failed fetch")

    @classmethod
    def unchanged(cls, source: str) -> "SourceResult":
        return cls(source=source, status=SourceStatus.UNCHANGED.value)

    @classmethod
    def changed(cls, source: str, summary: str) -> "SourceResult":
        return cls(source=source, status=SourceStatus.CHANGED.value, summary=summary)

    @classmethod
    def failed(cls, source: str, error: str, http_status: Optional[int] = None) -> "SourceResult":
        return cls(source=source, status=SourceStatus.ERROR.value, error=error, http_status=http_status)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RunReport(BaseModel):
    """JSON-serializable report of one monitoring run."""

    success: bool
    timestamp: Optional[datetime] = None
    results: Optional[List[SourceResult]] = None
    error: Optional[str] = None

    @classmethod
    def completed(cls, results: List[SourceResult]) -> "RunReport":
        return cls(success=True, timestamp=datetime.now(timezone.utc), results=results)

    @classmethod
    def failed(cls, error: str) -> "RunReport":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
