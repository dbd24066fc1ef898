"""PES Inspection Engine - Data Models"""
from .domain import (
    # Enums
    Role, Zone, Mode, InspectionStatus, CreationChannel, ProgrammingType, UserStatus,
    # Status groups and helpers
    CLOSED_STATUSES, REPROGRAMMED_SUFFIX, VIEW_ONLY_ROLES, MODIFY_ROLES,
    as_role, enum_value, reprogrammed_status, is_reprogrammed_status, is_closed_status,
    initial_status_for,
    # Records
    InspectionRecord, FIELD_ORDER, FIELD_LABELS, DOCUMENT_KEYS, canonical_field,
    DATE_FIELDS, DATETIME_FIELDS, BOOL_FIELDS,
    ADDRESS_DETAIL_FIELDS, SYSTEM_MANAGED_FIELDS, SUPPORT_VALIDATION_FIELDS,
    # Users and history
    User, FieldChange, ChangeHistoryEntry,
)

__all__ = [
    "Role", "Zone", "Mode", "InspectionStatus", "CreationChannel", "ProgrammingType", "UserStatus",
    "CLOSED_STATUSES", "REPROGRAMMED_SUFFIX", "VIEW_ONLY_ROLES", "MODIFY_ROLES",
    "as_role", "enum_value", "reprogrammed_status", "is_reprogrammed_status", "is_closed_status",
    "initial_status_for",
    "InspectionRecord", "FIELD_ORDER", "FIELD_LABELS", "DOCUMENT_KEYS", "canonical_field",
    "DATE_FIELDS", "DATETIME_FIELDS", "BOOL_FIELDS",
    "ADDRESS_DETAIL_FIELDS", "SYSTEM_MANAGED_FIELDS", "SUPPORT_VALIDATION_FIELDS",
    "User", "FieldChange", "ChangeHistoryEntry",
]
