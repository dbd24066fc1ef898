"""
Inspection Workflow

Lifecycle rules for PES inspections:
- Field access policy (who may edit what, when)
- Status transitions
- Change diff and audit history
- Reprogramming of unsuccessful inspections
- Support validation
"""

from .identifiers import (
    ID_PREFIXES,
    generate_inspection_id,
    channel_for_id,
    is_salesforce_id,
)

from .field_policy import (
    COLLABORATOR_LOCKED_FIELDS,
    FIELD_ROLE_ALLOW_LISTS,
    TIME_GATED_FIELDS,
    can_edit_field,
    editable_fields,
    ensure_fields_editable,
    edit_cutoff,
    scheduled_instant,
)

from .transitions import (
    STATUS_FLOW,
    REQUIRED_FOR_STATUS,
    allowed_statuses,
    is_forward_transition,
    validate_transition,
    ensure_status_requirements,
    can_transition,
)

from .change_diff import (
    AuditLogger,
    diff,
    render_value,
    render_entry,
)

from .reprogramming import (
    REPROGRAMMABLE_STATUSES,
    ReprogramResult,
    check_reprogrammable,
    is_reprogrammable,
    reprogram,
    apply_reprogram,
)

from .support_validation import (
    SUPPORT_VALIDATION_ROLES,
    SUPPORT_VALIDATION_STATUSES,
    SupportValidationInput,
    SupportResolution,
    ensure_support_validation_allowed,
    resolve_support_validation,
)

from .notifications import (
    NotificationIntent,
    creation_notifications,
    reprogram_notifications,
)

from .inspection_service import InspectionService


__all__ = [
    # Identifiers
    "ID_PREFIXES",
    "generate_inspection_id",
    "channel_for_id",
    "is_salesforce_id",
    # Field policy
    "COLLABORATOR_LOCKED_FIELDS",
    "FIELD_ROLE_ALLOW_LISTS",
    "TIME_GATED_FIELDS",
    "can_edit_field",
    "editable_fields",
    "ensure_fields_editable",
    "edit_cutoff",
    "scheduled_instant",
    # Transitions
    "STATUS_FLOW",
    "REQUIRED_FOR_STATUS",
    "allowed_statuses",
    "is_forward_transition",
    "validate_transition",
    "ensure_status_requirements",
    "can_transition",
    # Diff & audit
    "AuditLogger",
    "diff",
    "render_value",
    "render_entry",
    # Reprogramming
    "REPROGRAMMABLE_STATUSES",
    "ReprogramResult",
    "check_reprogrammable",
    "is_reprogrammable",
    "reprogram",
    "apply_reprogram",
    # Support validation
    "SUPPORT_VALIDATION_ROLES",
    "SUPPORT_VALIDATION_STATUSES",
    "SupportValidationInput",
    "SupportResolution",
    "ensure_support_validation_allowed",
    "resolve_support_validation",
    # Notifications
    "NotificationIntent",
    "creation_notifications",
    "reprogram_notifications",
    # Orchestration
    "InspectionService",
]
