import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..analysis.models import AnalysisResult
from ..database.connection import session_scope
from ..database.models import ChangeEvent, Source
from .results import StoreError

logger = logging.getLogger(__name__)


class EventRecorder:
    """Persists change events linking before/after snapshots to an analysis result."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(self,
               source: Source,
               before_snapshot_id: Optional[int],
               after_snapshot_id: int,
               analysis_result: AnalysisResult) -> ChangeEvent:
        """
        Create the change event for one detected transition.

        Raises:
            StoreError: If the event could not be written, including a second
                event for the same after-snapshot
        """
        event = ChangeEvent(
            source_id=source.id,
            snapshot_before_id=before_snapshot_id,
            snapshot_after_id=after_snapshot_id,
            change_summary=analysis_result.summary,
            tags=list(analysis_result.tags),
            status=analysis_result.status.value,
            effective_date=analysis_result.effective_date,
            needs_review=analysis_result.needs_review,
            detected_at=datetime.now(timezone.utc).replace(tzinfo=None)
        )
        try:
            with session_scope(self.session_factory) as db:
                db.add(event)
                db.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to record change event for {source.name}: {e}") from e

        logger.info(f"Recorded change event {event.id} for {source.name} "
                    f"(snapshots {before_snapshot_id} -> {after_snapshot_id})")
        return event
