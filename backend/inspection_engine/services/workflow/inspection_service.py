"""
Inspection Service

Main orchestration service for the inspection lifecycle.
Coordinates the field policy, transition validator, change diff/audit
logger, reprogramming engine and support validation.

Control flow of an edit:
1. Load the server snapshot
2. Ask the policy which submitted fields may change (all or nothing)
3. Validate the status transition, or the current status's required data
4. Diff against the server snapshot BEFORE writing
5. Write the merge patch, then append the history entry

Every call receives the acting user explicitly; nothing here reads ambient
"current user" or wall-clock state.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ...config import get_settings
from ...models.domain import (
    ChangeHistoryEntry,
    CreationChannel,
    InspectionRecord,
    InspectionStatus,
    Mode,
    User,
    Zone,
    MODIFY_ROLES,
    as_role,
    canonical_field,
    enum_value,
    initial_status_for,
)
from ..errors import (
    FieldNotEditable,
    IllegalTransition,
    InfrastructureError,
    InvalidFieldValue,
    NotReprogrammable,
    RecordNotFound,
)
from .change_diff import AuditLogger, diff, render_value
from .field_policy import editable_fields, ensure_fields_editable
from .identifiers import generate_inspection_id
from .notifications import NotificationIntent, creation_notifications, reprogram_notifications
from .reprogramming import ReprogramResult, apply_reprogram, reprogram
from .support_validation import (
    SupportValidationInput,
    ensure_support_validation_allowed,
    resolve_support_validation,
)
from .transitions import ensure_status_requirements, validate_transition

logger = logging.getLogger(__name__)


# Fields that vary per row of a massive request
BATCH_DETAIL_FIELDS = frozenset({
    "policy_number", "case_number", "portal", "stairwell", "floor", "door",
})


# =============================================================================
# INSPECTION SERVICE
# =============================================================================

class InspectionService:
    """
    Lifecycle operations over an inspection store.

    Collaborators:
    - store: Store contract (get/put/subscribe)
    - history_store: HistoryStore contract (append/list_descending)
    - clock: Clock contract; the only source of "now"
    - notifier: optional Notifier; failures never fail the operation
    - user_directory: optional callable returning users to notify
    """

    MAX_BATCH_SIZE = 4

    def __init__(
        self,
        store,
        history_store,
        clock,
        notifier=None,
        user_directory: Optional[Callable[[], Iterable[User]]] = None,
        cutoff_hours: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock
        self.notifier = notifier
        self.user_directory = user_directory
        self.cutoff_hours = cutoff_hours if cutoff_hours is not None else get_settings().edit_cutoff_hours
        self.audit = AuditLogger(history_store, clock)

    # =========================================================================
    # COLLABORATOR ACCESS
    # =========================================================================

    def _now(self) -> datetime:
        try:
            return self.clock.now()
        except Exception as e:
            raise InfrastructureError(f"Clock unavailable: {e}") from e

    def _find(self, record_id: str) -> Optional[InspectionRecord]:
        try:
            return self.store.get(record_id)
        except Exception as e:
            raise InfrastructureError(f"Store unavailable reading {record_id}: {e}") from e

    def _load(self, record_id: str) -> InspectionRecord:
        record = self._find(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    def _write(self, record_id: str, data, merge: bool) -> None:
        try:
            self.store.put(record_id, data, merge=merge)
        except Exception as e:
            logger.error(f"Store write failed for {record_id}: {e}")
            raise InfrastructureError(f"Store unavailable writing {record_id}: {e}") from e

    def _notify(self, intents: List[NotificationIntent]) -> None:
        if self.notifier is None:
            return
        for intent in intents:
            try:
                self.notifier.notify(intent.recipient, intent.message, intent.link)
            except Exception as e:
                # Fire-and-forget delivery
                logger.warning(f"Notification to {intent.recipient} failed: {e}")

    def _users(self) -> List[User]:
        if self.user_directory is None:
            return []
        return list(self.user_directory())

    # =========================================================================
    # INPUT NORMALISATION
    # =========================================================================

    @staticmethod
    def _canonical_changes(data: Mapping[str, Any], role, status) -> Dict[str, Any]:
        """Map submitted keys to attribute names; unknown keys are not editable."""
        changes = {}
        for key, value in data.items():
            name = canonical_field(key)
            if name is None:
                raise FieldNotEditable(key, role, status)
            changes[name] = value
        return changes

    @staticmethod
    def _apply(record: InspectionRecord, changes: Mapping[str, Any]) -> InspectionRecord:
        try:
            return record.copy_with(**changes)
        except (TypeError, ValueError, OverflowError) as e:
            field = next(iter(changes), "record")
            for name, value in changes.items():
                try:
                    record.copy_with(**{name: value})
                except (TypeError, ValueError, OverflowError):
                    field = name
                    break
            raise InvalidFieldValue(field, str(e)) from e

    @staticmethod
    def _changed_fields(record: InspectionRecord, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Drop submitted values that render the same as the stored ones."""
        return {
            name: value for name, value in changes.items()
            if render_value(name, value) != render_value(name, getattr(record, name))
        }

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, record_id: str) -> InspectionRecord:
        return self._load(record_id)

    def editable_fields(self, user: User, mode: Mode, record_id: Optional[str] = None) -> Dict[str, bool]:
        """Per-field editability for a form opened by `user`."""
        record = self._load(record_id) if record_id else None
        return editable_fields(user.role, mode, record, self._now(), self.cutoff_hours)

    def history(self, record_id: str) -> List[ChangeHistoryEntry]:
        """Change history, newest first."""
        return self.audit.list_history(record_id)

    def list_inspections(self, query=None) -> List[InspectionRecord]:
        try:
            return list(self.store.subscribe(query))
        except Exception as e:
            raise InfrastructureError(f"Store unavailable listing inspections: {e}") from e

    # =========================================================================
    # CREATE
    # =========================================================================

    def _build_new(
        self,
        user: User,
        data: Mapping[str, Any],
        channel: CreationChannel,
        now: datetime,
    ) -> InspectionRecord:
        role = as_role(user.role)
        initial = initial_status_for(role) if role is not None else InspectionStatus.REGISTRADA

        if role not in MODIFY_ROLES:
            raise IllegalTransition(None, initial, user.role, "role cannot register inspections")
        if CreationChannel(channel) == CreationChannel.REPROGRAMMED:
            raise NotReprogrammable("reprogrammed inspections are created by the reprogram action")

        changes = self._canonical_changes(data, user.role, None)
        submitted_status = changes.pop("status", None)
        for name in ("id", "created_at", "created_by"):
            changes.pop(name, None)
        changes = {name: value for name, value in changes.items() if value not in (None, "")}

        ensure_fields_editable(changes, user.role, Mode.NEW, None, now, self.cutoff_hours)

        record = self._apply(
            InspectionRecord(id="", status=initial.value),
            changes,
        )
        if submitted_status not in (None, "", initial.value):
            ensure_fields_editable(["status"], user.role, Mode.NEW, None, now, self.cutoff_hours)
            status = validate_transition(user.role, initial, submitted_status, record)
            record = record.copy_with(status=status.value)

        if not record.zone:
            zone = enum_value(user.zone)
            if zone == Zone.TODAS.value:
                zone = get_settings().default_zone
            record = record.copy_with(zone=zone)

        return record.copy_with(
            id=generate_inspection_id(channel, now),
            created_at=now,
            created_by=user.username,
        )

    def create(
        self,
        user: User,
        data: Mapping[str, Any],
        channel: CreationChannel = CreationChannel.INDIVIDUAL,
    ) -> InspectionRecord:
        """
        Register a new inspection.

        The initial status comes from the creating role; a different submitted
        status must be a legal transition from it.
        """
        now = self._now()
        record = self._build_new(user, data, channel, now)
        self._write(record.id, record, merge=False)
        logger.info(f"Inspection {record.id} created by {user.username} with status {record.status}")

        self._notify(creation_notifications(record, self._users()))
        return record

    def create_batch(
        self,
        user: User,
        common: Mapping[str, Any],
        details: Sequence[Mapping[str, Any]],
    ) -> List[InspectionRecord]:
        """
        Register a massive request: up to four inspections sharing the
        common fields, each with its own policy/case/sub-address details.

        All rows are validated before anything is written.
        """
        if not details:
            raise InvalidFieldValue("inspections", "at least one inspection is required")
        if len(details) > self.MAX_BATCH_SIZE:
            raise InvalidFieldValue("inspections", f"at most {self.MAX_BATCH_SIZE} inspections per request")

        now = self._now()
        records = []
        for detail in details:
            row = self._canonical_changes(detail, user.role, None)
            extra = set(row) - BATCH_DETAIL_FIELDS
            if extra:
                raise InvalidFieldValue(sorted(extra)[0], "not a per-inspection field")
            merged = dict(self._canonical_changes(common, user.role, None))
            merged.update(row)
            records.append(self._build_new(user, merged, CreationChannel.MASSIVE, now))

        for record in records:
            self._write(record.id, record, merge=False)
        logger.info(f"Massive request by {user.username}: {len(records)} inspection(s) created")

        users = self._users()
        for record in records:
            self._notify(creation_notifications(record, users))
        return records

    # =========================================================================
    # UPDATE
    # =========================================================================

    def update(self, user: User, record_id: str, data: Mapping[str, Any]) -> InspectionRecord:
        """
        Apply an edit to an existing inspection.

        Raises:
            FieldNotEditable: any submitted change is not allowed (nothing written)
            IllegalTransition / MissingRequiredField: status change rejected
        """
        record = self._load(record_id)
        now = self._now()

        changes = self._canonical_changes(data, user.role, record.status)
        changes = self._changed_fields(record, changes)
        if not changes:
            return record

        try:
            ensure_fields_editable(changes, user.role, Mode.EDIT, record, now, self.cutoff_hours)
        except FieldNotEditable as e:
            logger.warning(f"Edit rejected on {record_id} for {user.username}: {e.message}")
            raise

        candidate = self._apply(record, changes)
        if candidate.status != record.status:
            validate_transition(user.role, record.status, candidate.status, candidate)
        else:
            ensure_status_requirements(candidate.status, candidate)

        field_changes = diff(record, candidate)
        if not field_changes:
            return record

        patch = {change.field: getattr(candidate, change.field) for change in field_changes}
        patch["last_modified_by"] = user.username
        patch["last_modified_at"] = now
        self._write(record_id, patch, merge=True)
        self.audit.record_history(record_id, user, field_changes)

        return candidate.copy_with(last_modified_by=user.username, last_modified_at=now)

    def cancel(self, user: User, record_id: str, reason: Optional[str] = None) -> InspectionRecord:
        """
        Explicit cancel action.

        The only way a collaborator changes status. Allowed from any
        non-closed status. A reason is appended to the observations.
        """
        record = self._load(record_id)
        now = self._now()

        if as_role(user.role) not in MODIFY_ROLES:
            raise IllegalTransition(record.status, InspectionStatus.CANCELADA, user.role, "role cannot cancel")
        if record.is_closed:
            raise IllegalTransition(record.status, InspectionStatus.CANCELADA, user.role, "inspection is closed")
        validate_transition(user.role, record.status, InspectionStatus.CANCELADA, record)

        changes = {"status": InspectionStatus.CANCELADA.value}
        if reason and reason.strip():
            note = f"Cancelada: {reason.strip()}"
            changes["observations"] = f"{record.observations}\n{note}" if record.observations else note

        candidate = record.copy_with(**changes)
        field_changes = diff(record, candidate)
        patch = dict(changes)
        patch["last_modified_by"] = user.username
        patch["last_modified_at"] = now
        self._write(record_id, patch, merge=True)
        self.audit.record_history(record_id, user, field_changes)
        logger.info(f"Inspection {record_id} cancelled by {user.username}")

        return candidate.copy_with(last_modified_by=user.username, last_modified_at=now)

    # =========================================================================
    # REPROGRAM
    # =========================================================================

    def reprogram(self, user: User, record_id: str) -> ReprogramResult:
        """
        Close out `record_id` and open its successor.

        The successor is written first; the original is patched only after
        that write succeeded.
        """
        record = self._load(record_id)
        if as_role(user.role) not in MODIFY_ROLES:
            raise NotReprogrammable(f"{user.role} cannot reprogram inspections")

        now = self._now()
        result = reprogram(record, user, now)

        try:
            apply_reprogram(result, self.store)
        except Exception as e:
            logger.error(f"Reprogram of {record_id} failed: {e}")
            raise InfrastructureError(f"Store unavailable reprogramming {record_id}: {e}") from e

        closed = record.copy_with(
            status=result.closed_record_patch["status"],
            reprogrammed_to_id=result.closed_record_patch["reprogrammed_to_id"],
        )
        self.audit.record_history(record_id, user, diff(record, closed))
        self._notify(reprogram_notifications(record_id, result.new_record, self._users()))
        return result

    # =========================================================================
    # SUPPORT VALIDATION
    # =========================================================================

    def validate_support(
        self,
        user: User,
        record_id: str,
        payload: Union[SupportValidationInput, Mapping[str, Any]],
    ) -> InspectionRecord:
        """Resolve a record as CONECTADA or PENDIENTE CORRECCION."""
        record = self._load(record_id)
        ensure_support_validation_allowed(user.role, record)

        if isinstance(payload, SupportValidationInput):
            data = payload
        else:
            try:
                data = SupportValidationInput.model_validate(payload)
            except ValidationError as e:
                error = e.errors()[0]
                field = str(error["loc"][0]) if error.get("loc") else "support_validation"
                raise InvalidFieldValue(canonical_field(field) or field, error.get("msg", "invalid")) from e

        now = self._now()
        resolution = resolve_support_validation(data)
        candidate = record.copy_with(**resolution.patch)
        field_changes = diff(record, candidate)

        patch = dict(resolution.patch)
        patch["last_modified_by"] = user.username
        patch["last_modified_at"] = now
        self._write(record_id, patch, merge=True)
        self.audit.record_history(record_id, user, field_changes)
        logger.info(f"Support validation on {record_id} by {user.username}: {resolution.status.value}")

        return candidate.copy_with(last_modified_by=user.username, last_modified_at=now)


__all__ = ["InspectionService", "BATCH_DETAIL_FIELDS"]
