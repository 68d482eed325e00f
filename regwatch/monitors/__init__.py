"""Change-detection pipeline: fetch, fingerprint, compare, record."""

from .results import (
    FetchOutcome, FetchSuccess, HttpFailure, TransportFailure,
    StoreError, SourceResult, RunReport
)
from .fingerprint import fingerprint
from .change_detector import ChangeDecision, detect_change
from .fetcher import PageFetcher
from .snapshot_store import SnapshotStore
from .event_recorder import EventRecorder
from .regulatory_monitor import RegulatoryMonitor, build_monitor

__all__ = [
    "FetchOutcome",
    "FetchSuccess",
    "HttpFailure",
    "TransportFailure",
    "StoreError",
    "SourceResult",
    "RunReport",
    "fingerprint",
    "ChangeDecision",
    "detect_change",
    "PageFetcher",
    "SnapshotStore",
    "EventRecorder",
    "RegulatoryMonitor",
    "build_monitor",
]
