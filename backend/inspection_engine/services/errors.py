"""
Workflow Errors

Business errors are user-facing and recoverable: the caller surfaces them and
nothing has been written. InfrastructureError is the separate, process-level
category for an unavailable store or clock.
"""
from typing import Any, Optional

from ..models.domain import enum_value


class InspectionWorkflowError(Exception):
    """Base class for every business-rule rejection."""
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class MissingRequiredField(InspectionWorkflowError):
    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str):
        super().__init__(f"Field '{field}' is required for this operation", field=field)


class InvalidFieldValue(InspectionWorkflowError):
    code = "INVALID_FIELD_VALUE"

    def __init__(self, field: str, detail: str):
        super().__init__(f"Invalid value for '{field}': {detail}", field=field)


class FieldNotEditable(InspectionWorkflowError):
    code = "FIELD_NOT_EDITABLE"

    def __init__(self, field: str, role: Any, status: Any):
        self.role = enum_value(role)
        self.status = enum_value(status)
        super().__init__(
            f"Field '{field}' is not editable by {self.role} while status is {self.status}",
            field=field,
        )


class IllegalTransition(InspectionWorkflowError):
    code = "ILLEGAL_TRANSITION"

    def __init__(self, from_status: Any, to_status: Any, role: Any, reason: Optional[str] = None):
        self.from_status = enum_value(from_status)
        self.to_status = enum_value(to_status)
        self.role = enum_value(role)
        message = f"{self.role} cannot move an inspection from {self.from_status} to {self.to_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, field="status")


class AmbiguousResolution(InspectionWorkflowError):
    code = "AMBIGUOUS_RESOLUTION"

    def __init__(self, detail: str = "Provide either a connection (date and confirmation) or a rejection (type and reason), not both"):
        super().__init__(detail)


class NotReprogrammable(InspectionWorkflowError):
    code = "NOT_REPROGRAMMABLE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Inspection cannot be reprogrammed: {reason}")


class RecordNotFound(InspectionWorkflowError):
    code = "RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Inspection {record_id} not found")


class InfrastructureError(Exception):
    """Raised when a store, history store or clock collaborator fails."""
    pass
