"""
Status Transition Validator

Decides whether an actor may move an inspection from one status to another.

Nominal flow:
    REGISTRADA → CONFIRMADA POR GE → PROGRAMADA → EN PROCESO
    → {APROBADA, NO APROBADA, RECHAZADA, CONECTADA, PENDIENTE CORRECCION}

CANCELADA is reachable from any non-closed status. "{status} - REPROGRAMADA"
is only ever written by the reprogramming engine, never chosen here.
The same role allow-list governs both editing the status field and the set
of values offered for it.
"""
from typing import Any, List, Optional, Tuple

from ...models.domain import (
    InspectionRecord,
    InspectionStatus,
    Role,
    as_role,
    enum_value,
    is_closed_status,
    is_reprogrammed_status,
)
from ..errors import IllegalTransition, MissingRequiredField
from .field_policy import FIELD_ROLE_ALLOW_LISTS


# =============================================================================
# STATE CONFIGURATION
# =============================================================================

STATUS_FLOW = [
    InspectionStatus.REGISTRADA,
    InspectionStatus.CONFIRMADA_POR_GE,
    InspectionStatus.PROGRAMADA,
    InspectionStatus.EN_PROCESO,
]

OUTCOME_STATUSES = frozenset({
    InspectionStatus.APROBADA.value,
    InspectionStatus.NO_APROBADA.value,
    InspectionStatus.RECHAZADA.value,
    InspectionStatus.CONECTADA.value,
    InspectionStatus.PENDIENTE_CORRECCION.value,
})

# Status required field -> attribute that must be non-empty
REQUIRED_FOR_STATUS = {
    InspectionStatus.PROGRAMADA.value: "inspector",
    InspectionStatus.RECHAZADA.value: "rejection_reason",
}

ALL_STATUSES = [status for status in InspectionStatus]


def _status_value(status: Any) -> Optional[str]:
    value = enum_value(status)
    return value if isinstance(value, str) else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def allowed_statuses(role: Any, current: Any = None) -> List[str]:
    """
    Status values offered to `role` for a record currently in `current`.

    Status-editing roles get every base status. A collaborator may only keep
    the current status or cancel. Everyone else keeps the current status.
    """
    role = as_role(role)
    current = _status_value(current)
    if role is not None and role in FIELD_ROLE_ALLOW_LISTS["status"]:
        return [status.value for status in ALL_STATUSES]

    options = [current] if current else []
    if role == Role.COLABORADOR and InspectionStatus.CANCELADA.value not in options:
        options.append(InspectionStatus.CANCELADA.value)
    return options


def is_forward_transition(from_status: Any, to_status: Any) -> bool:
    """True if the move follows the nominal flow (a step forward or an outcome)."""
    from_value, to_value = _status_value(from_status), _status_value(to_status)
    flow = [status.value for status in STATUS_FLOW]
    if from_value not in flow:
        return False
    if to_value in OUTCOME_STATUSES or to_value == InspectionStatus.CANCELADA.value:
        return True
    if to_value not in flow:
        return False
    return flow.index(to_value) > flow.index(from_value)


def validate_transition(
    role: Any,
    from_status: Any,
    to_status: Any,
    record: Optional[InspectionRecord] = None,
) -> InspectionStatus:
    """
    Validate a status change.

    Args:
        role: Acting role
        from_status: Current (server) status
        to_status: Proposed status
        record: Record carrying the supporting data (inspector, rejection
            reason) as it will look after the edit

    Returns:
        The resulting status

    Raises:
        IllegalTransition: destination not offered to the role, a closed
            record, a reprogrammed record or a reprogrammed status
        MissingRequiredField: destination needs data the record lacks
    """
    from_value = _status_value(from_status)
    to_value = _status_value(to_status)
    actor = as_role(role)

    if from_value is not None and is_reprogrammed_status(from_value) and to_value != from_value:
        raise IllegalTransition(from_value, to_value, role, "inspection has been reprogrammed")
    if to_value is None or is_reprogrammed_status(to_value):
        raise IllegalTransition(from_value, to_value, role, "reserved for reprogramming")
    try:
        target = InspectionStatus(to_value)
    except ValueError:
        raise IllegalTransition(from_value, to_value, role, "unknown status")

    if to_value == from_value:
        return target

    if from_value is not None and is_closed_status(from_value) and actor != Role.ADMIN:
        raise IllegalTransition(from_value, to_value, role, "inspection is closed")

    if to_value not in allowed_statuses(actor, from_value):
        raise IllegalTransition(from_value, to_value, role)

    ensure_status_requirements(to_value, record)
    return target


def ensure_status_requirements(status: Any, record: Optional[InspectionRecord]) -> None:
    """
    Check the data a status depends on, whether or not the status moved.

    Raises:
        MissingRequiredField: the record lacks the field its status requires
    """
    required = REQUIRED_FOR_STATUS.get(_status_value(status))
    if required is not None and (record is None or _is_blank(getattr(record, required))):
        raise MissingRequiredField(required)


def can_transition(
    role: Any,
    from_status: Any,
    to_status: Any,
    record: Optional[InspectionRecord] = None,
) -> Tuple[bool, str]:
    """
    Check if a status transition is allowed.

    Returns (allowed, reason)
    """
    try:
        validate_transition(role, from_status, to_status, record)
    except (IllegalTransition, MissingRequiredField) as e:
        return False, e.message
    return True, "Transition allowed"
