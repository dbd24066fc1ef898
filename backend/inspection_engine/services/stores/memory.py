"""
In-process collaborators.

Used by the tests and by single-process deployments. The store keeps
documents, not record objects, so every read returns a fresh snapshot that
later edits cannot alias.
"""
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from ...models.domain import ChangeHistoryEntry, InspectionRecord
from .contracts import RecordQuery, to_document_patch

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Document store with last-writer-wins merge semantics."""

    def __init__(self, records: Optional[List[InspectionRecord]] = None):
        self._documents: Dict[str, Dict[str, Any]] = {}
        for record in records or []:
            self.put(record.id, record)

    def get(self, record_id: str) -> Optional[InspectionRecord]:
        doc = self._documents.get(record_id)
        if doc is None:
            return None
        return InspectionRecord.from_document(copy.deepcopy(doc))

    def put(self, record_id: str, record: Union[InspectionRecord, Mapping[str, Any]], merge: bool = False) -> None:
        doc = to_document_patch(record)
        doc["id"] = record_id
        if merge and record_id in self._documents:
            self._documents[record_id].update(doc)
        else:
            self._documents[record_id] = doc

    def subscribe(self, query: Optional[RecordQuery] = None) -> Iterator[InspectionRecord]:
        """Current snapshot of matching records."""
        for record_id in list(self._documents):
            record = self.get(record_id)
            if query is None or query(record):
                yield record

    def __len__(self) -> int:
        return len(self._documents)


class InMemoryHistoryStore:
    """Append-only history per inspection."""

    def __init__(self):
        self._entries: Dict[str, List[ChangeHistoryEntry]] = {}

    def append(self, inspection_id: str, entry: ChangeHistoryEntry) -> None:
        self._entries.setdefault(inspection_id, []).append(entry)

    def list_descending(self, inspection_id: str) -> Iterator[ChangeHistoryEntry]:
        # Append position breaks ties between entries stamped at the same instant
        entries = list(enumerate(self._entries.get(inspection_id, [])))
        entries.sort(key=lambda item: (item[1].timestamp, item[0]), reverse=True)
        return iter(entry for _, entry in entries)


class SystemClock:
    """Wall clock, UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to an instant; `advance` moves it forward."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, delta) -> datetime:
        self.instant = self.instant + delta
        return self.instant


class LoggingNotifier:
    """Default notifier: writes the notification to the log."""

    def notify(self, recipient: str, message: str, link: str) -> None:
        logger.info(f"Notification for {recipient}: {message} ({link})")


class RecordingNotifier:
    """Keeps notifications in memory for inspection."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str]] = []

    def notify(self, recipient: str, message: str, link: str) -> None:
        self.sent.append((recipient, message, link))
