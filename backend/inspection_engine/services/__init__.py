"""PES Inspection Engine - Services"""
from .errors import (
    InspectionWorkflowError,
    MissingRequiredField,
    InvalidFieldValue,
    FieldNotEditable,
    IllegalTransition,
    AmbiguousResolution,
    NotReprogrammable,
    RecordNotFound,
    InfrastructureError,
)

__all__ = [
    "InspectionWorkflowError",
    "MissingRequiredField",
    "InvalidFieldValue",
    "FieldNotEditable",
    "IllegalTransition",
    "AmbiguousResolution",
    "NotReprogrammable",
    "RecordNotFound",
    "InfrastructureError",
]
