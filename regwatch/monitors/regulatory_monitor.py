"""
Regulatory Monitoring Service

This module runs the change-detection pipeline over every active source:
fetch the page, fingerprint it, record the snapshot, compare against the last
successful snapshot and, when the content changed, analyze and record a change
event. Each source is processed in isolation so one failing source never
prevents the others from being checked.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..analysis.analysis_service import AnalysisService
from ..analysis.llm_client import OpenAIAnalysisClient
from ..analysis.models import DegradedAnalysis
from ..database.connection import session_scope
from ..database.models import Snapshot, Source, FETCH_SUCCESS
from ..utils.config_loader import MonitorSettings
from .change_detector import ChangeDecision, detect_change
from .event_recorder import EventRecorder
from .fetcher import PageFetcher
from .fingerprint import fingerprint
from .results import (
    HttpFailure, TransportFailure, RunReport, SourceResult, StoreError
)
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class RegulatoryMonitor:
    """
    Coordinates one monitoring run over all active sources.

    Features:
    - Per-source isolation of fetch, store and analysis failures
    - Optional bounded concurrency across sources
    - Ordered run report, one entry per source
    """

    def __init__(self,
                 session_factory: sessionmaker,
                 analysis_service: AnalysisService,
                 fetcher_factory: Optional[Callable[[], Any]] = None,
                 snapshot_store: Optional[SnapshotStore] = None,
                 event_recorder: Optional[EventRecorder] = None,
                 max_concurrency: int = 1):
        """
        Initialize the monitor.

        Args:
            session_factory: Session factory for the store
            analysis_service: Analysis invoker used on detected changes
            fetcher_factory: Callable returning an async context manager that
                yields an object with ``async fetch(url)``
            snapshot_store: Snapshot adapter (defaults to one on session_factory)
            event_recorder: Event recorder (defaults to one on session_factory)
            max_concurrency: Number of sources processed at once
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.session_factory = session_factory
        self.analysis_service = analysis_service
        self.fetcher_factory = fetcher_factory or PageFetcher
        self.snapshot_store = snapshot_store or SnapshotStore(session_factory)
        self.event_recorder = event_recorder or EventRecorder(session_factory)
        self.max_concurrency = max_concurrency

    def list_active_sources(self) -> List[Source]:
        """
        Read all active sources ordered by id.

        Raises:
            StoreError: If the source list cannot be read
        """
        try:
            with session_scope(self.session_factory) as db:
                return db.query(Source).filter(Source.is_active.is_(True)).order_by(Source.id).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list active sources: {e}") from e

    async def run(self) -> RunReport:
        """
        Run the pipeline once over every active source.

        Returns:
            Completed report with one result per source, or a failure report
            if the run could not start
        """
        logger.info("Starting regulatory monitoring run...")

        try:
            sources = self.list_active_sources()
        except StoreError as e:
            logger.error(f"Monitor error: {e}")
            return RunReport.failed(str(e))

        logger.info(f"Checking {len(sources)} active sources")

        try:
            async with self.fetcher_factory() as fetcher:
                if self.max_concurrency == 1:
                    results = []
                    for source in sources:
                        results.append(await self.check_source(source, fetcher))
                else:
                    semaphore = asyncio.Semaphore(self.max_concurrency)

                    async def bounded_check(source: Source) -> SourceResult:
                        async with semaphore:
                            return await self.check_source(source, fetcher)

                    results = list(await asyncio.gather(*(bounded_check(s) for s in sources)))
        except Exception as e:
            logger.error(f"Monitor error: {e}", exc_info=True)
            return RunReport.failed(str(e) or e.__class__.__name__)

        changed = sum(1 for r in results if r.status == "changed")
        errors = sum(1 for r in results if r.status == "error")
        logger.info(f"Monitoring run completed: {len(results)} sources, {changed} changed, {errors} errors")
        return RunReport.completed(results)

    async def check_source(self, source: Source, fetcher: Any) -> SourceResult:
        """
        Run the per-source pipeline and contain its failures.

        Args:
            source: Source to check
            fetcher: Open fetcher

        Returns:
            SourceResult describing the outcome
        """
        logger.info(f"Checking source: {source.name}")

        # One snapshot per fetch attempt; set once a snapshot write has been attempted
        snapshot_attempted = False
        http_status: Optional[int] = None

        try:
            outcome = await fetcher.fetch(source.url)

            if isinstance(outcome, HttpFailure):
                http_status = outcome.http_status
                snapshot_attempted = True
                self.snapshot_store.record_failure(source.id, outcome.error_message, outcome.http_status)
                return SourceResult.failed(source.name, outcome.error_message, outcome.http_status)

            if isinstance(outcome, TransportFailure):
                snapshot_attempted = True
                self.snapshot_store.record_failure(source.id, outcome.error_message)
                return SourceResult.failed(source.name, outcome.error_message)

            new_fingerprint = fingerprint(outcome.content)
            previous = self.snapshot_store.get_latest_successful(source.id)

            snapshot_attempted = True
            snapshot = self.snapshot_store.record(
                source.id, outcome.content, new_fingerprint, FETCH_SUCCESS, outcome.http_status
            )

            return await self._process_content(source, previous, snapshot)

        except StoreError as e:
            logger.error(f"Store error checking {source.name}: {e}")
            return SourceResult.failed(source.name, str(e), http_status)
        except Exception as e:
            logger.error(f"Error checking {source.name}: {e}", exc_info=True)
            message = str(e) or e.__class__.__name__
            if not snapshot_attempted:
                try:
                    self.snapshot_store.record_failure(source.id, message)
                except StoreError as store_error:
                    logger.error(f"Could not record failed attempt for {source.name}: {store_error}")
            return SourceResult.failed(source.name, message, http_status)

    async def _process_content(self, source: Source, previous: Optional[Snapshot],
                               snapshot: Snapshot) -> SourceResult:
        decision = detect_change(previous, snapshot.content_hash)
        if not decision.is_change:
            logger.info(f"No change detected for {source.name}")
            return SourceResult.unchanged(source.name)

        if decision is ChangeDecision.FIRST_OBSERVATION:
            logger.info(f"First observation for {source.name}, running baseline analysis...")
            previous = None
        else:
            logger.info(f"Change detected for {source.name}! Running analysis...")

        analysis = await self.analysis_service.analyze(
            source,
            previous.raw_content if previous else "",
            snapshot.raw_content
        )
        if isinstance(analysis, DegradedAnalysis):
            logger.warning(f"Recording change for {source.name} without analysis: {analysis.reason}")

        self.event_recorder.record(
            source,
            previous.id if previous else None,
            snapshot.id,
            analysis.result
        )
        return SourceResult.changed(source.name, analysis.result.summary)


def build_monitor(settings: MonitorSettings, session_factory: sessionmaker) -> RegulatoryMonitor:
    """Wire a monitor from settings with the OpenAI client and aiohttp fetcher."""
    client = OpenAIAnalysisClient(
        api_key=settings.openai_api_key,
        model_name=settings.openai_model,
        timeout=settings.analysis_timeout_seconds,
        base_url=settings.openai_base_url
    )
    analysis_service = AnalysisService(client, timeout_seconds=settings.analysis_timeout_seconds)

    def fetcher_factory() -> PageFetcher:
        return PageFetcher(user_agent=settings.user_agent, timeout=settings.fetch_timeout_seconds)

    return RegulatoryMonitor(
        session_factory=session_factory,
        analysis_service=analysis_service,
        fetcher_factory=fetcher_factory,
        max_concurrency=settings.max_concurrency
    )
