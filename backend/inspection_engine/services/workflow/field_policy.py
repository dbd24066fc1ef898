"""
Field Access Policy

Decides, per field, whether an actor may edit an inspection right now.
Rules are fixed business policy and are evaluated in priority order; the
first rule that matches decides.

The consuming forms call this on every keystroke, so it must stay cheap,
deterministic and free of I/O. It never raises: unknown roles, modes and
field names are simply not editable.
"""
import re
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterable, Optional

from ...config import get_settings
from ...models.domain import (
    InspectionRecord,
    InspectionStatus,
    Mode,
    Role,
    FIELD_ORDER,
    ADDRESS_DETAIL_FIELDS,
    SYSTEM_MANAGED_FIELDS,
    VIEW_ONLY_ROLES,
    as_role,
    canonical_field,
    enum_value,
    is_closed_status,
    is_reprogrammed_status,
)
from ..errors import FieldNotEditable


# =============================================================================
# POLICY TABLES (HARD-LOCKED)
# =============================================================================

# A collaborator cannot reassign itself or pick an inspector
COLLABORATOR_LOCKED_FIELDS = frozenset({"collaborator_company", "inspector"})

FIELD_ROLE_ALLOW_LISTS = {
    "status": frozenset({Role.ADMIN, Role.SOPORTE, Role.CALIDAD, Role.GESTOR}),
    "inspector": frozenset({Role.ADMIN, Role.CALIDAD}),
    "gestor": frozenset({Role.ADMIN, Role.SOPORTE}),
    "collaborator_company": frozenset({Role.GESTOR, Role.ADMIN, Role.SOPORTE}),
    "policy_number": frozenset({Role.COLABORADOR, Role.GESTOR, Role.SOPORTE, Role.ADMIN}),
    "case_number": frozenset({Role.COLABORADOR, Role.GESTOR, Role.SOPORTE, Role.ADMIN}),
}

# Fields a collaborator may only touch ahead of the edit cutoff
TIME_GATED_FIELDS = frozenset({
    "request_date", "scheduled_time", "street", "number", "municipality", "neighborhood",
})

_TIME_OF_DAY = re.compile(r"^\s*(\d{1,2}):(\d{2})")


# =============================================================================
# SCHEDULE HELPERS
# =============================================================================

def scheduled_start(scheduled_time: Optional[str]) -> time:
    """
    Start of the visit window.

    "9:00 - 13:00" -> 09:00, "14:30" -> 14:30. Open windows ("Abierto") and
    anything unparsable start at midnight.
    """
    if not scheduled_time:
        return time(0, 0)
    match = _TIME_OF_DAY.match(str(scheduled_time))
    if not match:
        return time(0, 0)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return time(0, 0)
    return time(hour, minute)


def scheduled_instant(record: Optional[InspectionRecord], tzinfo=None) -> Optional[datetime]:
    """Scheduled date-time of the visit, None when the record has no date."""
    if record is None or record.request_date is None:
        return None
    return datetime.combine(record.request_date, scheduled_start(record.scheduled_time), tzinfo=tzinfo)


def edit_cutoff(
    record: Optional[InspectionRecord],
    tzinfo=None,
    cutoff_hours: Optional[int] = None,
) -> Optional[datetime]:
    """Last instant (exclusive) at which a collaborator may still reschedule."""
    instant = scheduled_instant(record, tzinfo)
    if instant is None:
        return None
    if cutoff_hours is None:
        cutoff_hours = get_settings().edit_cutoff_hours
    return instant - timedelta(hours=cutoff_hours)


def _before_cutoff(record: Optional[InspectionRecord], now: Optional[datetime], cutoff_hours: Optional[int]) -> bool:
    if record is None or record.request_date is None:
        return True
    if now is None:
        return False
    cutoff = edit_cutoff(record, now.tzinfo, cutoff_hours)
    return now < cutoff


def _as_mode(value: Any) -> Optional[Mode]:
    try:
        return Mode(enum_value(value))
    except ValueError:
        return None


# =============================================================================
# POLICY
# =============================================================================

def can_edit_field(
    field: str,
    role: Any,
    mode: Any,
    record: Optional[InspectionRecord] = None,
    now: Optional[datetime] = None,
    cutoff_hours: Optional[int] = None,
) -> bool:
    """
    Whether `role` may edit `field` of `record` in `mode` at instant `now`.

    Args:
        field: Attribute name (snake_case) or its stored camelCase key
        role: Acting role (enum member or stored label)
        mode: NEW, EDIT or VIEW
        record: Current record; absent when creating
        now: Evaluation instant, used by the collaborator edit cutoff
        cutoff_hours: Override of the configured cutoff

    Returns:
        True if the field is editable
    """
    mode = _as_mode(mode)
    if mode is None or mode == Mode.VIEW:
        return False

    role = as_role(role)
    name = canonical_field(field) if isinstance(field, str) else None
    if role is None or name is None:
        return False
    if role in VIEW_ONLY_ROLES:
        return False
    # Lineage and audit stamps are written by the engine only
    if name in SYSTEM_MANAGED_FIELDS:
        return False

    status = record.status if record is not None else None
    is_admin = role == Role.ADMIN

    if status is not None and is_reprogrammed_status(status) and not is_admin:
        return False
    if status == InspectionStatus.CONECTADA.value and not is_admin:
        return False
    if role == Role.COLABORADOR and name in COLLABORATOR_LOCKED_FIELDS:
        return False
    # Closed records are frozen
    if status is not None and is_closed_status(status) and not is_admin:
        return False
    # Collaborators change status only through the cancel action
    if role == Role.COLABORADOR and name == "status":
        return False
    # Support validates the job but does not relocate it
    if role == Role.SOPORTE and name in ADDRESS_DETAIL_FIELDS:
        return False

    allowed = FIELD_ROLE_ALLOW_LISTS.get(name)
    if allowed is not None and role not in allowed:
        if not (name == "gestor" and role == Role.COLABORADOR and mode == Mode.NEW):
            return False

    if name in TIME_GATED_FIELDS and role == Role.COLABORADOR:
        return _before_cutoff(record, now, cutoff_hours)

    return True


def editable_fields(
    role: Any,
    mode: Any,
    record: Optional[InspectionRecord] = None,
    now: Optional[datetime] = None,
    cutoff_hours: Optional[int] = None,
) -> Dict[str, bool]:
    """Editability of every record field, in declaration order."""
    return {
        name: can_edit_field(name, role, mode, record, now, cutoff_hours)
        for name in FIELD_ORDER
    }


def ensure_fields_editable(
    fields: Iterable[str],
    role: Any,
    mode: Any,
    record: Optional[InspectionRecord] = None,
    now: Optional[datetime] = None,
    cutoff_hours: Optional[int] = None,
) -> None:
    """
    Reject the whole operation if any submitted field is not editable.

    Raises:
        FieldNotEditable: for the first offending field
    """
    status = record.status if record is not None else None
    for name in fields:
        if not can_edit_field(name, role, mode, record, now, cutoff_hours):
            raise FieldNotEditable(canonical_field(name) or name, role, status)
