"""
PES Inspection Engine - Domain Models

These dataclasses are the only record shapes the workflow engine reasons about.
Enum values are the display strings persisted in the document store, so a record
read back from the store compares equal to the enum members.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from dateutil.parser import isoparse


# =============================================================================
# ENUMS
# =============================================================================

class Role(str, Enum):
    """Fixed role set. Values are the labels stored on user documents."""
    ADMIN = "Administrador"
    COLABORADOR = "Empresa Colaboradora"
    GESTOR = "Gestor de Expansión"
    CALIDAD = "Empresa de Control de Calidad"
    SOPORTE = "Soporte a Procesos"
    COORDINADOR_SSPP = "Coordinador SSPP"
    CANALES = "Canales"
    VISUAL = "Visual User"


class Zone(str, Enum):
    ZONA_NORTE = "Zona Norte"
    ZONA_CENTRO = "Zona Centro"
    BAJIO_NORTE = "Bajio Norte"
    BAJIO_SUR = "Bajio Sur"
    TODAS = "Todas las zonas"


class Mode(str, Enum):
    """Form mode the caller is evaluating edit permissions for."""
    NEW = "NEW"
    EDIT = "EDIT"
    VIEW = "VIEW"


class InspectionStatus(str, Enum):
    """Base workflow statuses. Reprogrammed variants are derived strings."""
    REGISTRADA = "REGISTRADA"
    CONFIRMADA_POR_GE = "CONFIRMADA POR GE"
    PROGRAMADA = "PROGRAMADA"
    EN_PROCESO = "EN PROCESO"
    PENDIENTE_INFORMAR_DATOS = "PENDIENTE INFORMAR DATOS"
    FALTA_INFORMACION = "FALTA INFORMACION"
    APROBADA = "APROBADA"
    NO_APROBADA = "NO APROBADA"
    RECHAZADA = "RECHAZADA"
    CANCELADA = "CANCELADA"
    CONECTADA = "CONECTADA"
    PENDIENTE_CORRECCION = "PENDIENTE CORRECCION"


class CreationChannel(str, Enum):
    """How a record entered the system. Encoded in the id prefix."""
    INDIVIDUAL = "individual"
    MASSIVE = "massive"
    SPECIAL = "special"
    REPROGRAMMED = "reprogrammed"
    SALESFORCE = "salesforce"


class ProgrammingType(str, Enum):
    SALESFORCE = "SALESFORCE"
    PARRILLA = "PARRILLA"
    REPROGRAMACION = "REPROGRAMACION"
    ESPONTANEA = "ESPONTANEA"
    PEC = "PEC"


class UserStatus(str, Enum):
    ACTIVO = "Activo"
    INACTIVO = "Inactivo"


# =============================================================================
# STATUS GROUPS
# =============================================================================

REPROGRAMMED_SUFFIX = " - REPROGRAMADA"

CLOSED_STATUSES = frozenset({
    InspectionStatus.APROBADA.value,
    InspectionStatus.NO_APROBADA.value,
    InspectionStatus.RECHAZADA.value,
    InspectionStatus.CANCELADA.value,
    InspectionStatus.CONECTADA.value,
})

# Roles that can only look at records
VIEW_ONLY_ROLES = frozenset({Role.CANALES, Role.VISUAL})

MODIFY_ROLES = frozenset({
    Role.ADMIN, Role.SOPORTE, Role.GESTOR, Role.COLABORADOR, Role.CALIDAD,
})


def enum_value(value: Any) -> Any:
    """Plain value of an enum member, passthrough otherwise."""
    return value.value if isinstance(value, Enum) else value


def as_role(value: Any) -> Optional[Role]:
    """Role member for an enum or its stored label; None for anything else."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def reprogrammed_status(status: Any) -> str:
    """Status string a superseded record is parked in."""
    return f"{enum_value(status)}{REPROGRAMMED_SUFFIX}"


def is_reprogrammed_status(status: Any) -> bool:
    return isinstance(enum_value(status), str) and enum_value(status).endswith(REPROGRAMMED_SUFFIX)


def is_closed_status(status: Any) -> bool:
    value = enum_value(status)
    return value in CLOSED_STATUSES or is_reprogrammed_status(value)


def initial_status_for(role: Role) -> InspectionStatus:
    """Status a new record starts in, by creating role."""
    if role == Role.GESTOR:
        return InspectionStatus.CONFIRMADA_POR_GE
    return InspectionStatus.REGISTRADA


# =============================================================================
# INSPECTION RECORD
# =============================================================================

@dataclass
class InspectionRecord:
    """
    Central inspection entity.

    Attribute declaration order is the display order of change history.
    `status` is kept as a plain string because reprogrammed records carry a
    derived value ("NO APROBADA - REPROGRAMADA") outside the enum.
    """
    # Identity
    id: str
    zone: Optional[str] = None

    # Location
    municipality: Optional[str] = None
    neighborhood: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    portal: Optional[str] = None
    stairwell: Optional[str] = None
    floor: Optional[str] = None
    door: Optional[str] = None
    sector: Optional[str] = None

    # Classification
    inspection_type: Optional[str] = None
    programming_type: Optional[str] = None
    mdd_type: Optional[str] = None
    market: Optional[str] = None
    offer: Optional[str] = None

    # Assignment
    collaborator_company: Optional[str] = None
    installer: Optional[str] = None
    gestor: Optional[str] = None
    inspector: Optional[str] = None

    # Case data
    policy_number: Optional[str] = None
    case_number: Optional[str] = None

    # Scheduling
    request_date: Optional[date] = None
    scheduled_time: Optional[str] = None

    # Workflow
    status: str = InspectionStatus.REGISTRADA.value
    rejection_reason: Optional[str] = None
    observations: Optional[str] = None

    # Provenance / lineage
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None
    reprogrammed_from_id: Optional[str] = None
    reprogrammed_to_id: Optional[str] = None

    # Support validation
    connection_date: Optional[date] = None
    data_confirmed: bool = False
    support_observations: Optional[str] = None
    rejection_type: Optional[str] = None
    rejection_reason_detail: Optional[str] = None

    def __post_init__(self):
        self.status = enum_value(self.status)
        self.zone = enum_value(self.zone)
        self.programming_type = enum_value(self.programming_type)
        for name in DATE_FIELDS:
            setattr(self, name, coerce_date(getattr(self, name)))
        for name in DATETIME_FIELDS:
            setattr(self, name, coerce_datetime(getattr(self, name)))
        self.data_confirmed = bool(self.data_confirmed)

    @property
    def creation_channel(self) -> Optional[CreationChannel]:
        from ..services.workflow.identifiers import channel_for_id
        return channel_for_id(self.id)

    @property
    def is_closed(self) -> bool:
        return is_closed_status(self.status)

    def copy_with(self, **changes) -> "InspectionRecord":
        """Return a new record with `changes` applied (record is not mutated)."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(changes)
        return InspectionRecord(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_document(self) -> Dict[str, Any]:
        """camelCase document as persisted in the store."""
        doc = {}
        for name in FIELD_ORDER:
            value = getattr(self, name)
            if isinstance(value, (date, datetime)):
                value = value.isoformat()
            doc[DOCUMENT_KEYS[name]] = value
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "InspectionRecord":
        """Build a record from a stored document, ignoring unknown keys."""
        data = {}
        for key, value in doc.items():
            name = canonical_field(key)
            if name is not None:
                data[name] = value
        if "id" not in data:
            raise ValueError("Inspection document has no id")
        return cls(**data)


FIELD_ORDER: Tuple[str, ...] = tuple(f.name for f in fields(InspectionRecord))

DATE_FIELDS = frozenset({"request_date", "connection_date"})
DATETIME_FIELDS = frozenset({"created_at", "last_modified_at"})
BOOL_FIELDS = frozenset({"data_confirmed"})

# Keys whose stored name is not the plain camelCase of the attribute
_DOCUMENT_KEY_OVERRIDES = {
    "collaborator_company": "assignedCollaboratorCompany",
    "mdd_type": "mddType",
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


DOCUMENT_KEYS: Dict[str, str] = {
    name: _DOCUMENT_KEY_OVERRIDES.get(name, _camel(name)) for name in FIELD_ORDER
}

_FIELD_ALIASES: Dict[str, str] = {key: name for name, key in DOCUMENT_KEYS.items()}


def canonical_field(name: str) -> Optional[str]:
    """Attribute name for a snake_case or camelCase field name; None if unknown."""
    if name in DOCUMENT_KEYS:
        return name
    return _FIELD_ALIASES.get(name)


FIELD_LABELS: Dict[str, str] = {
    "id": "ID",
    "zone": "Zona",
    "municipality": "Municipio",
    "neighborhood": "Colonia",
    "street": "Calle",
    "number": "Número",
    "portal": "Portal",
    "stairwell": "Escalera",
    "floor": "Piso",
    "door": "Puerta",
    "sector": "Sector",
    "inspection_type": "Tipo de Inspección",
    "programming_type": "Tipo de Programación",
    "mdd_type": "Tipo de MDD",
    "market": "Mercado",
    "offer": "Oferta/Campaña",
    "collaborator_company": "Empresa Colaboradora",
    "installer": "Instalador",
    "gestor": "Gestor",
    "inspector": "Inspector",
    "policy_number": "Póliza",
    "case_number": "Caso (AT)",
    "request_date": "Fecha de Programación",
    "scheduled_time": "Horario de Programación",
    "status": "Estatus",
    "rejection_reason": "Motivo de Rechazo",
    "observations": "Observaciones",
    "created_at": "Fecha de Creación",
    "created_by": "Creado por",
    "last_modified_by": "Modificado por",
    "last_modified_at": "Fecha de Modificación",
    "reprogrammed_from_id": "Reprogramada desde",
    "reprogrammed_to_id": "Reprogramada a",
    "connection_date": "Fecha de Conexión",
    "data_confirmed": "Datos Confirmados",
    "support_observations": "Observaciones de Soporte",
    "rejection_type": "Tipo de Rechazo",
    "rejection_reason_detail": "Motivo de Rechazo (Detalle)",
}


def coerce_date(value: Any) -> Optional[date]:
    """Accept date, datetime or ISO string; blank becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return isoparse(str(value)).date()


def coerce_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return isoparse(str(value))


_TRUE_STRINGS = frozenset({"true", "1", "si", "sí", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


def coerce_bool(value: Any) -> Optional[bool]:
    """Accept bool or its common string forms ("true", "false", "Si", "No")."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


# =============================================================================
# USERS
# =============================================================================

@dataclass(frozen=True)
class User:
    """External identity, consumed read-only."""
    id: str
    name: str
    username: str
    role: Role
    zone: str = Zone.TODAS.value
    status: str = UserStatus.ACTIVO.value

    @property
    def is_active(self) -> bool:
        return enum_value(self.status) == UserStatus.ACTIVO.value

    def covers_zone(self, zone: Optional[str]) -> bool:
        """True if this user works the given zone (or all zones)."""
        mine = enum_value(self.zone)
        return mine == Zone.TODAS.value or mine == enum_value(zone)


# =============================================================================
# CHANGE HISTORY
# =============================================================================

@dataclass(frozen=True)
class FieldChange:
    """One rendered field difference."""
    field: str
    old_value: str
    new_value: str

    def to_document(self) -> Dict[str, str]:
        return {"field": self.field, "oldValue": self.old_value, "newValue": self.new_value}


@dataclass(frozen=True)
class ChangeHistoryEntry:
    """Append-only audit entry owned by an inspection."""
    inspection_id: str
    timestamp: datetime
    user_id: str
    username: str
    changes: Tuple[FieldChange, ...]
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "inspectionId": self.inspection_id,
            "timestamp": self.timestamp.isoformat(),
            "userId": self.user_id,
            "username": self.username,
            "changes": [change.to_document() for change in self.changes],
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ChangeHistoryEntry":
        return cls(
            id=doc["id"],
            inspection_id=doc["inspectionId"],
            timestamp=coerce_datetime(doc["timestamp"]),
            user_id=doc.get("userId", ""),
            username=doc.get("username", ""),
            changes=tuple(
                FieldChange(c["field"], c.get("oldValue", ""), c.get("newValue", ""))
                for c in doc.get("changes", [])
            ),
        )


# Export groups used by callers that build forms
ADDRESS_DETAIL_FIELDS = frozenset({
    "municipality", "neighborhood", "street", "number",
    "portal", "stairwell", "floor", "door",
})

SYSTEM_MANAGED_FIELDS = frozenset({
    "id", "created_at", "created_by", "last_modified_by", "last_modified_at",
    "reprogrammed_from_id", "reprogrammed_to_id",
})

SUPPORT_VALIDATION_FIELDS: List[str] = [
    "connection_date", "data_confirmed", "support_observations",
    "rejection_type", "rejection_reason_detail",
]
