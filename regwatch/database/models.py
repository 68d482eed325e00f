from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Text, Boolean, ForeignKey, JSON, Index
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

FETCH_SUCCESS = "success"
FETCH_ERROR = "error"


class Source(Base):
    """Model for a monitored regulatory document endpoint."""
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    url = Column(String(1000), nullable=False)
    source_type = Column(String(50), nullable=False, default="agency")  # 'federal', 'state', 'agency', 'industry'
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now())

    # Relationships
    snapshots = relationship("Snapshot", back_populates="source", order_by="Snapshot.fetched_at")
    change_events = relationship("ChangeEvent", back_populates="source")

    def __repr__(self) -> str:
        return f"<Source id={self.id} name={self.name!r}>"


class Snapshot(Base):
    """Immutable record of one fetch attempt for one source."""
    __tablename__ = "snapshots"
    __table_args__ = (
        Index("ix_snapshots_source_fetched", "source_id", "fetched_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, ForeignKey("sources.id"), nullable=False)
    raw_content = Column(Text, nullable=False, default="")
    content_hash = Column(String(64), nullable=False, default="")  # SHA256 hex, empty on failure
    fetch_status = Column(String(20), nullable=False)  # 'success', 'error'
    http_status = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    fetched_at = Column(DateTime, nullable=False, default=func.now())

    # Relationships
    source = relationship("Source", back_populates="snapshots")

    @property
    def is_success(self) -> bool:
        return self.fetch_status == FETCH_SUCCESS


class ChangeEvent(Base):
    """Model for a detected and analyzed content transition."""
    __tablename__ = "change_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, ForeignKey("sources.id"), nullable=False)
    snapshot_before_id = Column(Integer, ForeignKey("snapshots.id"), nullable=True)
    snapshot_after_id = Column(Integer, ForeignKey("snapshots.id"), nullable=False, unique=True)
    change_summary = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="unknown")  # draft, proposal, final, guidance, unknown
    effective_date = Column(Date, nullable=True)
    needs_review = Column(Boolean, nullable=False, default=True)
    reviewed_at = Column(DateTime, nullable=True)  # set by the review surface only
    detected_at = Column(DateTime, nullable=False, default=func.now())

    # Relationships
    source = relationship("Source", back_populates="change_events")
    snapshot_before = relationship("Snapshot", foreign_keys=[snapshot_before_id])
    snapshot_after = relationship("Snapshot", foreign_keys=[snapshot_after_id])
