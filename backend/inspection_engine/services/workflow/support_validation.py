"""
Support Validation Sub-workflow

Back-office resolution of an inspection. Exactly one outcome is allowed:

- connected: connection date recorded and data confirmed  -> CONECTADA
- rejected:  rejection type and reason detail recorded    -> PENDIENTE CORRECCION

The two are checked together as one validation; supplying both or neither
is ambiguous and rejected.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ...models.domain import (
    InspectionRecord,
    InspectionStatus,
    Role,
    as_role,
)
from ..errors import AmbiguousResolution, IllegalTransition

logger = logging.getLogger(__name__)


SUPPORT_VALIDATION_ROLES = frozenset({Role.SOPORTE, Role.ADMIN})

SUPPORT_VALIDATION_STATUSES = frozenset({
    InspectionStatus.PROGRAMADA.value,
    InspectionStatus.EN_PROCESO.value,
    InspectionStatus.APROBADA.value,
    InspectionStatus.NO_APROBADA.value,
    InspectionStatus.FALTA_INFORMACION.value,
    InspectionStatus.CONECTADA.value,
})


class SupportValidationInput(BaseModel):
    """Values captured by the support validation form."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connection_date: Optional[date] = None
    data_confirmed: bool = False
    rejection_type: Optional[str] = None
    rejection_reason_detail: Optional[str] = None
    support_observations: Optional[str] = None

    @field_validator("connection_date", mode="before")
    @classmethod
    def blank_date_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("rejection_type", "rejection_reason_detail", "support_observations")
    @classmethod
    def blank_text_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def is_connection(self) -> bool:
        return self.connection_date is not None and self.data_confirmed is True

    @property
    def is_rejection(self) -> bool:
        return self.rejection_type is not None and self.rejection_reason_detail is not None


@dataclass(frozen=True)
class SupportResolution:
    """Resulting status and the merge patch that records it."""
    status: InspectionStatus
    patch: Dict[str, Any]


def ensure_support_validation_allowed(role: Any, record: InspectionRecord) -> None:
    """
    Raises:
        IllegalTransition: role or record status cannot enter support validation
    """
    actor = as_role(role)
    if actor not in SUPPORT_VALIDATION_ROLES:
        raise IllegalTransition(record.status, "validación de soporte", role, "role cannot validate")
    if record.status not in SUPPORT_VALIDATION_STATUSES:
        raise IllegalTransition(record.status, "validación de soporte", role, "status cannot be validated")


def resolve_support_validation(data: SupportValidationInput) -> SupportResolution:
    """
    Derive the outcome of a support validation.

    Returns:
        SupportResolution with CONECTADA or PENDIENTE CORRECCION

    Raises:
        AmbiguousResolution: both outcomes or neither were supplied
    """
    if data.is_connection == data.is_rejection:
        raise AmbiguousResolution()

    if data.is_connection:
        status = InspectionStatus.CONECTADA
        patch = {
            "connection_date": data.connection_date,
            "data_confirmed": True,
            "rejection_type": None,
            "rejection_reason_detail": None,
        }
    else:
        status = InspectionStatus.PENDIENTE_CORRECCION
        patch = {
            "connection_date": None,
            "data_confirmed": False,
            "rejection_type": data.rejection_type,
            "rejection_reason_detail": data.rejection_reason_detail,
        }

    patch["status"] = status.value
    if "support_observations" in data.model_fields_set:
        patch["support_observations"] = data.support_observations
    logger.info(f"Support validation resolved to {status.value}")
    return SupportResolution(status=status, patch=patch)
