"""
PES Inspection Engine - SQLAlchemy ORM Models
Document-style tables backing the inspection store adapter
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON, Index
from ..database import Base


class InspectionDB(Base):
    """
    One inspection document.

    The full camelCase document lives in `document`; the indexed columns are
    copies kept for list queries (zone/status filters, lineage lookups).
    """
    __tablename__ = "inspections"

    id = Column(String(64), primary_key=True)
    zone = Column(String(50), nullable=True, index=True)
    status = Column(String(80), nullable=True, index=True)
    reprogrammed_from_id = Column(String(64), nullable=True)

    document = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ChangeHistoryDB(Base):
    """Append-only change history. Rows are never updated or deleted."""
    __tablename__ = "inspection_history"

    id = Column(String(36), primary_key=True)  # UUID
    inspection_id = Column(String(64), nullable=False)
    sequence = Column(Integer, nullable=False, default=0)  # append order per inspection
    timestamp = Column(DateTime(timezone=True), nullable=False)
    user_id = Column(String(64), nullable=False)
    username = Column(String(100), nullable=False)

    # Format: [{"field": "...", "oldValue": "...", "newValue": "..."}]
    changes = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_inspection_history_inspection_ts", "inspection_id", "timestamp", "sequence"),
    )
