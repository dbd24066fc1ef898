"""
Notification decisions.

The engine decides who should hear about a new or reprogrammed inspection;
delivery belongs to the Notifier collaborator.
"""
from dataclasses import dataclass
from typing import Iterable, List

from ...models.domain import InspectionRecord, Role, User, as_role


# Roles that pick up newly registered work in their zone
NOTIFIED_ROLES = frozenset({Role.COORDINADOR_SSPP, Role.CALIDAD})


@dataclass(frozen=True)
class NotificationIntent:
    recipient: str
    message: str
    link: str


def record_link(record_id: str) -> str:
    return f"/records?id={record_id}"


def recipients_for(record: InspectionRecord, users: Iterable[User]) -> List[User]:
    """Active coordinators and quality users covering the record's zone."""
    return [
        user for user in users
        if as_role(user.role) in NOTIFIED_ROLES
        and user.is_active
        and user.covers_zone(record.zone)
    ]


def creation_notifications(record: InspectionRecord, users: Iterable[User]) -> List[NotificationIntent]:
    message = f"Nueva inspección {record.id} registrada en {record.zone or 'sin zona'} con estatus {record.status}."
    return [
        NotificationIntent(recipient=user.username, message=message, link=record_link(record.id))
        for user in recipients_for(record, users)
    ]


def reprogram_notifications(
    original_id: str,
    new_record: InspectionRecord,
    users: Iterable[User],
) -> List[NotificationIntent]:
    message = f"La inspección {original_id} fue reprogramada como {new_record.id} en {new_record.zone or 'sin zona'}."
    return [
        NotificationIntent(recipient=user.username, message=message, link=record_link(new_record.id))
        for user in recipients_for(new_record, users)
    ]
