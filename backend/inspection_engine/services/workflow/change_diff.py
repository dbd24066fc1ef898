"""
Change Diff & Audit Logger

Core Principles:
1. History records what landed. It never decides and is never edited.
2. Diffs are taken against the last server snapshot, before the write.
3. Only fields whose rendered value changed are recorded.
4. An empty diff writes nothing.

Changes inside an entry follow the record's field declaration order, and
entries are listed newest first.
"""
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ...models.domain import (
    ChangeHistoryEntry,
    FieldChange,
    InspectionRecord,
    User,
    FIELD_LABELS,
    FIELD_ORDER,
    DATE_FIELDS,
    DATETIME_FIELDS,
    BOOL_FIELDS,
    canonical_field,
    coerce_bool,
    coerce_date,
    coerce_datetime,
)
from ..errors import InfrastructureError

logger = logging.getLogger(__name__)

Snapshot = Union[InspectionRecord, Mapping[str, Any], None]

EMPTY_VALUE_LABEL = "Vacío"

_FIELD_POSITION = {name: index for index, name in enumerate(FIELD_ORDER)}


# =============================================================================
# RENDERING
# =============================================================================

def render_value(field: str, value: Any) -> str:
    """String form of a field value used for comparison and display."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    if field in DATE_FIELDS:
        try:
            return coerce_date(value).isoformat() if value != "" else ""
        except (TypeError, ValueError):
            return str(value)
    if field in DATETIME_FIELDS:
        try:
            return coerce_datetime(value).isoformat() if value != "" else ""
        except (TypeError, ValueError):
            return str(value)
    if field in BOOL_FIELDS:
        try:
            value = coerce_bool(value)
        except ValueError:
            return str(value)
        if value is None:
            return ""
    if isinstance(value, bool):
        return "Si" if value else "No"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _as_mapping(snapshot: Snapshot) -> Dict[str, Any]:
    if snapshot is None:
        return {}
    if isinstance(snapshot, InspectionRecord):
        return {name: getattr(snapshot, name) for name in FIELD_ORDER}
    data = {}
    for key, value in snapshot.items():
        name = canonical_field(key)
        if name is not None:
            data[name] = value
    return data


# =============================================================================
# DIFF
# =============================================================================

def diff(old_snapshot: Snapshot, new_snapshot: Snapshot) -> List[FieldChange]:
    """
    Field-level differences between two snapshots.

    Snapshots may be records or mappings keyed by attribute or stored
    (camelCase) names; a missing key counts as empty. Dates compare by
    calendar day.

    Returns:
        Changes in field declaration order
    """
    old = _as_mapping(old_snapshot)
    new = _as_mapping(new_snapshot)
    changes = []
    for name in FIELD_ORDER:
        if name not in old and name not in new:
            continue
        old_value = render_value(name, old.get(name))
        new_value = render_value(name, new.get(name))
        if old_value != new_value:
            changes.append(FieldChange(field=name, old_value=old_value, new_value=new_value))
    return changes


def order_changes(changes: Sequence[FieldChange]) -> List[FieldChange]:
    """Sort changes into field declaration order (unknown fields last)."""
    return sorted(changes, key=lambda change: _FIELD_POSITION.get(change.field, len(FIELD_ORDER)))


def render_entry(entry: ChangeHistoryEntry) -> List[Dict[str, str]]:
    """Labelled rows for a history viewer, empty values shown as 'Vacío'."""
    return [
        {
            "field": change.field,
            "label": FIELD_LABELS.get(change.field, change.field),
            "old": change.old_value or EMPTY_VALUE_LABEL,
            "new": change.new_value or EMPTY_VALUE_LABEL,
        }
        for change in order_changes(entry.changes)
    ]


# =============================================================================
# AUDIT LOGGER
# =============================================================================

class AuditLogger:
    """
    Writes change history through the history store.

    Timestamps come from the injected clock, never from the caller.
    """

    def __init__(self, history_store, clock):
        self.history_store = history_store
        self.clock = clock

    def record_history(
        self,
        inspection_id: str,
        acting_user: User,
        changes: Sequence[FieldChange],
    ) -> Optional[ChangeHistoryEntry]:
        """
        Persist one history entry for `changes`.

        Returns:
            The entry written, or None when there was nothing to record
        """
        if not changes:
            return None

        try:
            timestamp = self.clock.now()
        except Exception as e:
            raise InfrastructureError(f"Clock unavailable: {e}") from e

        entry = ChangeHistoryEntry(
            inspection_id=inspection_id,
            timestamp=timestamp,
            user_id=acting_user.id,
            username=acting_user.username,
            changes=tuple(order_changes(changes)),
        )
        try:
            self.history_store.append(inspection_id, entry)
        except Exception as e:
            logger.error(f"History append failed for {inspection_id}: {e}")
            raise InfrastructureError(f"History store unavailable: {e}") from e

        logger.info(f"Recorded {len(entry.changes)} change(s) on {inspection_id} by {acting_user.username}")
        return entry

    def list_history(self, inspection_id: str) -> List[ChangeHistoryEntry]:
        """History of an inspection, newest first."""
        try:
            return list(self.history_store.list_descending(inspection_id))
        except Exception as e:
            raise InfrastructureError(f"History store unavailable: {e}") from e
