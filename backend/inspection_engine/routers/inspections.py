"""
PES Inspection Engine - Inspections API Router

Thin HTTP surface over InspectionService. The acting user is resolved from
X-User-* headers set by the authentication gateway in front of this service.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.domain import CreationChannel, Mode, Role, User, Zone, as_role
from ..services.errors import (
    IllegalTransition,
    InfrastructureError,
    InspectionWorkflowError,
    NotReprogrammable,
    RecordNotFound,
)
from ..services.stores import LoggingNotifier, SqlHistoryStore, SqlInspectionStore, SystemClock
from ..services.workflow import InspectionService, SupportValidationInput, render_entry


router = APIRouter(prefix="/inspections", tags=["inspections"])


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_inspection_service(db: Session = Depends(get_db)) -> InspectionService:
    """Service wired to the SQL stores of the current request session."""
    return InspectionService(
        store=SqlInspectionStore(db),
        history_store=SqlHistoryStore(db),
        clock=SystemClock(),
        notifier=LoggingNotifier(),
    )


def _parse_role(value: str) -> Optional[Role]:
    # Headers are latin-1, so the enum name is accepted next to the label
    role = as_role(value)
    if role is None:
        role = Role.__members__.get(value.strip().upper())
    return role


def get_acting_user(
    x_user_id: str = Header(...),
    x_user_role: str = Header(...),
    x_user_name: Optional[str] = Header(None),
    x_user_username: Optional[str] = Header(None),
    x_user_zone: Optional[str] = Header(None),
) -> User:
    """Acting user from the gateway headers."""
    role = _parse_role(x_user_role)
    if role is None:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_user_role}")
    return User(
        id=x_user_id,
        name=x_user_name or x_user_username or x_user_id,
        username=x_user_username or x_user_id,
        role=role,
        zone=x_user_zone or Zone.TODAS.value,
    )


def _http_error(e: Exception) -> HTTPException:
    """Map a workflow or infrastructure error to its HTTP status."""
    if isinstance(e, InfrastructureError):
        return HTTPException(status_code=503, detail={"code": "UNAVAILABLE", "message": str(e), "field": None})
    if isinstance(e, RecordNotFound):
        return HTTPException(status_code=404, detail=e.to_dict())
    if isinstance(e, (IllegalTransition, NotReprogrammable)):
        return HTTPException(status_code=409, detail=e.to_dict())
    return HTTPException(status_code=422, detail=e.to_dict())


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class InspectionCreateRequest(BaseModel):
    """Request model for registering one inspection."""
    channel: str = CreationChannel.INDIVIDUAL.value  # individual, special, salesforce
    data: Dict[str, Any]


class InspectionBatchRequest(BaseModel):
    """Massive request: common fields plus one to four detail rows."""
    common: Dict[str, Any]
    inspections: List[Dict[str, Any]]


class InspectionUpdateRequest(BaseModel):
    """Fields to change, keyed by attribute or stored name."""
    changes: Dict[str, Any]


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class ReprogramResponse(BaseModel):
    original_id: str
    new_id: str
    original_status: str
    new_record: Dict[str, Any]


class EditableFieldsResponse(BaseModel):
    mode: str
    record_id: Optional[str]
    fields: Dict[str, bool]


class HistoryResponse(BaseModel):
    inspection_id: str
    entries: List[Dict[str, Any]]
    total: int


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("", status_code=201)
async def create_inspection(
    request: InspectionCreateRequest,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    """Register a new inspection through an individual, special or import channel."""
    try:
        channel = CreationChannel(request.channel)
    except ValueError:
        valid = [c.value for c in CreationChannel]
        raise HTTPException(status_code=422, detail=f"Invalid channel. Must be one of: {valid}")

    try:
        record = service.create(user, request.data, channel)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return record.to_document()


@router.post("/batch", status_code=201)
async def create_inspection_batch(
    request: InspectionBatchRequest,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    """Register a massive request of up to four inspections."""
    try:
        records = service.create_batch(user, request.common, request.inspections)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return {"inspections": [record.to_document() for record in records], "total": len(records)}


@router.get("")
async def list_inspections(
    zone: Optional[str] = None,
    status: Optional[str] = None,
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    """List inspections, optionally filtered by zone and status."""
    def matches(record) -> bool:
        if zone and zone != Zone.TODAS.value and record.zone != zone:
            return False
        return not status or record.status == status

    try:
        records = service.list_inspections(matches)
    except InfrastructureError as e:
        raise _http_error(e)
    return {"inspections": [record.to_document() for record in records], "total": len(records)}


@router.get("/editable-fields", response_model=EditableFieldsResponse)
async def get_editable_fields(
    mode: Mode = Query(Mode.EDIT),
    record_id: Optional[str] = None,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
):
    """Per-field editability for the acting user's form."""
    try:
        fields = service.editable_fields(user, mode, record_id)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return EditableFieldsResponse(mode=mode.value, record_id=record_id, fields=fields)


@router.get("/{record_id}")
async def get_inspection(
    record_id: str,
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    try:
        record = service.get(record_id)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return record.to_document()


@router.patch("/{record_id}")
async def update_inspection(
    record_id: str,
    request: InspectionUpdateRequest,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    """
    Edit an inspection. Any non-editable field rejects the whole request.
    """
    try:
        record = service.update(user, record_id, request.changes)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return record.to_document()


@router.post("/{record_id}/cancel")
async def cancel_inspection(
    record_id: str,
    request: Optional[CancelRequest] = None,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    reason = request.reason if request else None
    try:
        record = service.cancel(user, record_id, reason)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return record.to_document()


@router.post("/{record_id}/reprogram", response_model=ReprogramResponse, status_code=201)
async def reprogram_inspection(
    record_id: str,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
):
    """Close out a cancelled or failed inspection and open its successor."""
    try:
        result = service.reprogram(user, record_id)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return ReprogramResponse(
        original_id=result.original_id,
        new_id=result.new_record.id,
        original_status=result.closed_record_patch["status"],
        new_record=result.new_record.to_document(),
    )


@router.post("/{record_id}/support-validation")
async def validate_support(
    record_id: str,
    request: SupportValidationInput,
    user: User = Depends(get_acting_user),
    service: InspectionService = Depends(get_inspection_service),
) -> Dict[str, Any]:
    """Resolve an inspection as connected or pending correction."""
    try:
        record = service.validate_support(user, record_id, request)
    except (InspectionWorkflowError, InfrastructureError) as e:
        raise _http_error(e)
    return record.to_document()


@router.get("/{record_id}/history", response_model=HistoryResponse)
async def get_inspection_history(
    record_id: str,
    service: InspectionService = Depends(get_inspection_service),
):
    """Change history, newest first."""
    try:
        entries = service.history(record_id)
    except InfrastructureError as e:
        raise _http_error(e)

    documents = []
    for entry in entries:
        document = entry.to_document()
        document["rows"] = render_entry(entry)
        documents.append(document)
    return HistoryResponse(inspection_id=record_id, entries=documents, total=len(documents))
