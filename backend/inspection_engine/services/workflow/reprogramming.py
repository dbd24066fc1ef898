"""
Reprogramming Engine

Closes out an unsuccessful or cancelled inspection and opens a linked
successor. The original is never rewritten in place: it is parked in
"{status} - REPROGRAMADA" and points at its successor, which points back.

Write ordering: the new record is written first and the original is patched
only after that write succeeded, so a failure leaves the original untouched
and the operation safe to retry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from ...models.domain import (
    CreationChannel,
    InspectionRecord,
    InspectionStatus,
    ProgrammingType,
    User,
    is_reprogrammed_status,
    reprogrammed_status,
)
from ..errors import NotReprogrammable
from .identifiers import generate_inspection_id, is_salesforce_id

logger = logging.getLogger(__name__)


REPROGRAMMABLE_STATUSES = frozenset({
    InspectionStatus.CANCELADA.value,
    InspectionStatus.NO_APROBADA.value,
    InspectionStatus.RECHAZADA.value,
})

# Workflow state that does not carry over to the successor
RESET_ON_REPROGRAM = {
    "inspector": None,
    "rejection_reason": None,
    "last_modified_by": None,
    "last_modified_at": None,
    "reprogrammed_to_id": None,
    "connection_date": None,
    "data_confirmed": False,
    "support_observations": None,
    "rejection_type": None,
    "rejection_reason_detail": None,
}


@dataclass(frozen=True)
class ReprogramResult:
    """
    Both write intents of a reprogram.

    closed_record_patch: merge patch for the original id
    new_record: successor record to create
    """
    original_id: str
    closed_record_patch: Dict[str, Any]
    new_record: InspectionRecord


def check_reprogrammable(record: InspectionRecord) -> None:
    """
    Raises:
        NotReprogrammable: if the record is not eligible
    """
    if is_reprogrammed_status(record.status) or record.reprogrammed_to_id:
        raise NotReprogrammable("inspection has already been reprogrammed")
    if record.status not in REPROGRAMMABLE_STATUSES:
        raise NotReprogrammable(f"status {record.status} is not reprogrammable")
    if is_salesforce_id(record.id) or is_salesforce_id(record.reprogrammed_from_id):
        raise NotReprogrammable("Salesforce imports cannot be reprogrammed")


def is_reprogrammable(record: InspectionRecord) -> bool:
    try:
        check_reprogrammable(record)
    except NotReprogrammable:
        return False
    return True


def reprogram(existing: InspectionRecord, acting_user: User, now: datetime) -> ReprogramResult:
    """
    Build the successor record and the closing patch for the original.

    Args:
        existing: Record to close out
        acting_user: User performing the reprogram
        now: Current instant (stamps the successor's creation)

    Returns:
        ReprogramResult with both write intents; nothing is persisted here

    Raises:
        NotReprogrammable: if the record is not eligible
    """
    check_reprogrammable(existing)

    new_id = generate_inspection_id(CreationChannel.REPROGRAMMED, now)
    while new_id == existing.id:
        new_id = generate_inspection_id(CreationChannel.REPROGRAMMED, now)

    new_record = existing.copy_with(
        id=new_id,
        status=InspectionStatus.REGISTRADA.value,
        programming_type=ProgrammingType.REPROGRAMACION.value,
        created_at=now,
        created_by=acting_user.username,
        reprogrammed_from_id=existing.id,
        **RESET_ON_REPROGRAM,
    )

    closed_record_patch = {
        "status": reprogrammed_status(existing.status),
        "reprogrammed_to_id": new_id,
        "last_modified_by": acting_user.username,
        "last_modified_at": now,
    }

    logger.info(f"Reprogram planned: {existing.id} ({existing.status}) -> {new_id}")
    return ReprogramResult(
        original_id=existing.id,
        closed_record_patch=closed_record_patch,
        new_record=new_record,
    )


def apply_reprogram(result: ReprogramResult, store) -> None:
    """
    Persist a reprogram in the safe order.

    The original is patched only after the successor write returned. Any
    exception from the first write propagates before the original is touched.
    """
    store.put(result.new_record.id, result.new_record, merge=False)
    store.put(result.original_id, result.closed_record_patch, merge=True)
    logger.info(f"Reprogram applied: {result.original_id} -> {result.new_record.id}")
