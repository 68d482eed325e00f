"""
Review API for detected change events.

Lists change events for the review dashboard and lets a reviewer mark an
event as reviewed. These are the only mutations of change events after the
pipeline creates them.
"""

import logging
from datetime import date, datetime, timezone
from typing import Generator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session, joinedload

from ..database.connection import session_scope
from ..database.models import ChangeEvent, Source

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["review"])


class SourceResponse(BaseModel):
    id: int
    name: str
    url: str
    source_type: str


class ChangeEventResponse(BaseModel):
    id: int
    source_id: int
    source_name: str
    source_url: str
    snapshot_before_id: Optional[int]
    snapshot_after_id: int
    change_summary: str
    tags: List[str]
    status: str
    effective_date: Optional[date]
    needs_review: bool
    reviewed_at: Optional[datetime]
    detected_at: datetime


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Yield a session bound to the application's store."""
    with session_scope(request.app.state.session_factory) as db:
        yield db


def _to_response(event: ChangeEvent) -> ChangeEventResponse:
    return ChangeEventResponse(
        id=event.id,
        source_id=event.source_id,
        source_name=event.source.name,
        source_url=event.source.url,
        snapshot_before_id=event.snapshot_before_id,
        snapshot_after_id=event.snapshot_after_id,
        change_summary=event.change_summary,
        tags=event.tags or [],
        status=event.status,
        effective_date=event.effective_date,
        needs_review=event.needs_review,
        reviewed_at=event.reviewed_at,
        detected_at=event.detected_at
    )


@router.get("/sources", response_model=List[SourceResponse])
def list_sources(db: Session = Depends(get_db_session)):
    """Get all active sources."""
    sources = db.query(Source).filter(Source.is_active.is_(True)).order_by(Source.name).all()
    return [
        SourceResponse(id=s.id, name=s.name, url=s.url, source_type=s.source_type)
        for s in sources
    ]


@router.get("/changes", response_model=List[ChangeEventResponse])
def list_changes(
    source_id: Optional[int] = Query(None, description="Only events for this source"),
    review: str = Query("all", pattern="^(all|pending|reviewed)$", description="Review state filter"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db_session)
):
    """Get change events, newest first."""
    query = db.query(ChangeEvent).options(joinedload(ChangeEvent.source))

    if source_id is not None:
        query = query.filter(ChangeEvent.source_id == source_id)

    if review == "pending":
        query = query.filter(ChangeEvent.needs_review.is_(True), ChangeEvent.reviewed_at.is_(None))
    elif review == "reviewed":
        query = query.filter(ChangeEvent.reviewed_at.isnot(None))

    events = query.order_by(ChangeEvent.detected_at.desc(), ChangeEvent.id.desc()).limit(limit).all()
    return [_to_response(event) for event in events]


@router.post("/changes/{change_id}/review", response_model=ChangeEventResponse)
def mark_reviewed(change_id: int, db: Session = Depends(get_db_session)):
    """Mark a change event as reviewed."""
    event = db.query(ChangeEvent).options(joinedload(ChangeEvent.source)).filter(
        ChangeEvent.id == change_id
    ).first()
    if not event:
        raise HTTPException(status_code=404, detail="Change event not found")

    event.reviewed_at = datetime.now(timezone.utc).replace(tzinfo=None)
    event.needs_review = False
    db.commit()

    logger.info(f"Change event {change_id} marked as reviewed")
    return _to_response(event)
