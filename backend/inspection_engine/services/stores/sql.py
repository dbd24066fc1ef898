"""
SQLAlchemy-backed store and history store.

Inspections are kept as whole camelCase documents in a JSON column, so merge
writes behave like the document store the engine was designed against:
last writer wins, no row locking.
"""
import logging
from datetime import timezone
from typing import Any, Iterator, Mapping, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.db_models import InspectionDB, ChangeHistoryDB
from ...models.domain import ChangeHistoryEntry, FieldChange, InspectionRecord
from .contracts import RecordQuery, to_document_patch

logger = logging.getLogger(__name__)


class SqlInspectionStore:
    """Store contract over the `inspections` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, record_id: str) -> Optional[InspectionRecord]:
        row = self.db.get(InspectionDB, record_id)
        if row is None:
            return None
        return InspectionRecord.from_document(dict(row.document))

    def put(self, record_id: str, record: Union[InspectionRecord, Mapping[str, Any]], merge: bool = False) -> None:
        patch = to_document_patch(record)
        patch["id"] = record_id

        row = self.db.get(InspectionDB, record_id)
        if row is None:
            row = InspectionDB(id=record_id, document=patch)
            self.db.add(row)
        elif merge:
            document = dict(row.document)
            document.update(patch)
            # Reassign so the JSON column is flagged dirty
            row.document = document
        else:
            row.document = patch

        row.zone = row.document.get("zone")
        row.status = row.document.get("status")
        row.reprogrammed_from_id = row.document.get("reprogrammedFromId")
        self.db.commit()

    def subscribe(self, query: Optional[RecordQuery] = None) -> Iterator[InspectionRecord]:
        """Current snapshot of matching records, ordered by id."""
        rows = self.db.query(InspectionDB).order_by(InspectionDB.id).all()
        for row in rows:
            record = InspectionRecord.from_document(dict(row.document))
            if query is None or query(record):
                yield record


class SqlHistoryStore:
    """HistoryStore contract over the append-only `inspection_history` table."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, inspection_id: str, entry: ChangeHistoryEntry) -> None:
        last = (
            self.db.query(func.max(ChangeHistoryDB.sequence))
            .filter(ChangeHistoryDB.inspection_id == inspection_id)
            .scalar()
        )
        row = ChangeHistoryDB(
            id=entry.id,
            inspection_id=inspection_id,
            sequence=0 if last is None else last + 1,
            timestamp=entry.timestamp,
            user_id=entry.user_id,
            username=entry.username,
            changes=[change.to_document() for change in entry.changes],
        )
        self.db.add(row)
        self.db.commit()

    def list_descending(self, inspection_id: str) -> Iterator[ChangeHistoryEntry]:
        rows = (
            self.db.query(ChangeHistoryDB)
            .filter(ChangeHistoryDB.inspection_id == inspection_id)
            .order_by(ChangeHistoryDB.timestamp.desc(), ChangeHistoryDB.sequence.desc())
            .all()
        )
        for row in rows:
            timestamp = row.timestamp
            # SQLite drops tzinfo; timestamps are written in UTC
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            yield ChangeHistoryEntry(
                id=row.id,
                inspection_id=row.inspection_id,
                timestamp=timestamp,
                user_id=row.user_id,
                username=row.username,
                changes=tuple(
                    FieldChange(c["field"], c.get("oldValue", ""), c.get("newValue", ""))
                    for c in row.changes or []
                ),
            )
