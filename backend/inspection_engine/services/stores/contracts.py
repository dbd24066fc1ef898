"""
Collaborator contracts consumed by the workflow engine.

The engine only depends on these protocols; concrete stores live beside them.
"""
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Protocol, Union

from ...models.domain import (
    ChangeHistoryEntry,
    InspectionRecord,
    DOCUMENT_KEYS,
    canonical_field,
    enum_value,
)

RecordQuery = Callable[[InspectionRecord], bool]


class Store(Protocol):
    def get(self, record_id: str) -> Optional[InspectionRecord]: ...

    def put(self, record_id: str, record: Union[InspectionRecord, Mapping[str, Any]], merge: bool = False) -> None: ...

    def subscribe(self, query: Optional[RecordQuery] = None) -> Iterator[InspectionRecord]: ...


class HistoryStore(Protocol):
    def append(self, inspection_id: str, entry: ChangeHistoryEntry) -> None: ...

    def list_descending(self, inspection_id: str) -> Iterator[ChangeHistoryEntry]: ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class Notifier(Protocol):
    def notify(self, recipient: str, message: str, link: str) -> None: ...


def to_document_patch(data: Union[InspectionRecord, Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Stored (camelCase) form of a full record or a partial patch.

    Raises:
        ValueError: patch names a field the record does not have
    """
    if isinstance(data, InspectionRecord):
        return data.to_document()
    doc = {}
    for key, value in data.items():
        name = canonical_field(key)
        if name is None:
            raise ValueError(f"Unknown inspection field: {key}")
        value = enum_value(value)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        doc[DOCUMENT_KEYS[name]] = value
    return doc
