import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..database.connection import session_scope
from ..database.models import Snapshot, FETCH_SUCCESS, FETCH_ERROR
from .results import StoreError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Append-only access to the per-source fetch history."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_latest(self, source_id: int) -> Optional[Snapshot]:
        """Most recent snapshot for the source regardless of outcome, or None."""
        return self._latest(source_id, successful_only=False)

    def get_latest_successful(self, source_id: int) -> Optional[Snapshot]:
        """Most recent successful snapshot, used as the comparison basis."""
        return self._latest(source_id, successful_only=True)

    def _latest(self, source_id: int, successful_only: bool) -> Optional[Snapshot]:
        try:
            with session_scope(self.session_factory) as db:
                query = db.query(Snapshot).filter(Snapshot.source_id == source_id)
                if successful_only:
                    query = query.filter(Snapshot.fetch_status == FETCH_SUCCESS)
                return query.order_by(Snapshot.fetched_at.desc(), Snapshot.id.desc()).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read latest snapshot for source {source_id}: {e}") from e

    def record(self,
               source_id: int,
               content: bytes,
               fingerprint: str,
               outcome: str,
               http_status: Optional[int] = None,
               error_message: Optional[str] = None) -> Snapshot:
        """
        Append a new immutable snapshot.

        Args:
            source_id: Owning source
            content: Raw fetched bytes (empty on failure)
            fingerprint: Content fingerprint (empty on failure)
            outcome: 'success' or 'error'
            http_status: HTTP status code, if a response was received
            error_message: Failure description, if any

        Returns:
            The persisted snapshot with its id populated

        Raises:
            StoreError: If the snapshot could not be written
        """
        if outcome not in (FETCH_SUCCESS, FETCH_ERROR):
            raise ValueError(f"Invalid fetch outcome: {outcome}")

        snapshot = Snapshot(
            source_id=source_id,
            raw_content=content.decode("utf-8", errors="replace"),
            content_hash=fingerprint,
            fetch_status=outcome,
            http_status=http_status,
            error_message=error_message,
            fetched_at=datetime.now(timezone.utc).replace(tzinfo=None)
        )
        try:
            with session_scope(self.session_factory) as db:
                db.add(snapshot)
                db.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to record snapshot for source {source_id}: {e}") from e

        logger.debug(f"Recorded {outcome} snapshot {snapshot.id} for source {source_id}")
        return snapshot

    def record_failure(self,
                       source_id: int,
                       error_message: str,
                       http_status: Optional[int] = None) -> Snapshot:
        """Record an error snapshot with empty content and fingerprint."""
        return self.record(source_id, b"", "", FETCH_ERROR, http_status, error_message)
