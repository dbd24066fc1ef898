"""
Change Diff & Audit Logger Tests

Tests verify:
1. diff(x, x) is empty
2. Changes come out in field declaration order
3. Values compare by their rendered form
4. The audit logger writes nothing for an empty diff
5. History is listed newest first
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

from inspection_engine.models.domain import ChangeHistoryEntry, FieldChange, Role
from inspection_engine.services.errors import InfrastructureError
from inspection_engine.services.stores import FixedClock, InMemoryHistoryStore
from inspection_engine.services.workflow.change_diff import (
    AuditLogger,
    diff,
    render_entry,
    render_value,
)


class TestDiff:
    """Tests for diff()."""

    def test_identical_snapshots(self, make_record):
        record = make_record()
        assert diff(record, record) == []
        assert diff(record, record.copy_with()) == []

    def test_changes_follow_declaration_order(self, make_record):
        old = make_record()
        new = old.copy_with(status="PROGRAMADA", inspector="Luis", zone="Zona Centro")
        assert [change.field for change in diff(old, new)] == ["zone", "inspector", "status"]

    def test_rendered_values(self, make_record):
        old = make_record(data_confirmed=False)
        new = old.copy_with(data_confirmed=True, request_date=date(2026, 3, 10))
        changes = {change.field: change for change in diff(old, new)}
        assert changes["request_date"] == FieldChange("request_date", "2026-03-03", "2026-03-10")
        assert changes["data_confirmed"] == FieldChange("data_confirmed", "No", "Si")

    def test_same_day_in_other_form_is_not_a_change(self):
        old = {"requestDate": date(2026, 3, 3)}
        new = {"request_date": "2026-03-03"}
        assert diff(old, new) == []

    def test_boolean_given_as_text_is_not_a_change(self):
        assert diff({"dataConfirmed": "false"}, {"data_confirmed": False}) == []
        assert diff({"dataConfirmed": "true"}, {"data_confirmed": True}) == []
        assert diff({"dataConfirmed": "false"}, {"data_confirmed": True}) == [
            FieldChange("data_confirmed", "No", "Si")
        ]
        assert render_value("data_confirmed", "") == ""

    def test_none_and_empty_string_are_equal(self):
        assert diff({"observations": None}, {"observations": ""}) == []

    def test_stored_keys_are_mapped(self):
        changes = diff({"assignedCollaboratorCompany": "A"}, {"assignedCollaboratorCompany": "B"})
        assert changes == [FieldChange("collaborator_company", "A", "B")]

    def test_missing_key_counts_as_empty(self):
        assert diff(None, {"inspector": "Luis"}) == [FieldChange("inspector", "", "Luis")]

    def test_render_value_enum(self):
        assert render_value("zone", Role.ADMIN) == "Administrador"
        assert render_value("observations", None) == ""


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_empty_diff_writes_nothing(self, make_user, fixed_now):
        history_store = MagicMock()
        logger = AuditLogger(history_store, FixedClock(fixed_now))

        assert logger.record_history("INSP-1", make_user(Role.GESTOR), []) is None
        history_store.append.assert_not_called()

    def test_entry_is_stamped_by_clock(self, make_user, fixed_now):
        history_store = InMemoryHistoryStore()
        logger = AuditLogger(history_store, FixedClock(fixed_now))
        user = make_user(Role.GESTOR)

        entry = logger.record_history("INSP-1", user, [FieldChange("status", "REGISTRADA", "PROGRAMADA")])

        assert entry.timestamp == fixed_now
        assert entry.username == "gestor"
        assert entry.user_id == user.id
        assert logger.list_history("INSP-1") == [entry]

    def test_changes_are_sorted(self, make_user, fixed_now):
        logger = AuditLogger(InMemoryHistoryStore(), FixedClock(fixed_now))
        entry = logger.record_history("INSP-1", make_user(Role.ADMIN), [
            FieldChange("status", "A", "B"),
            FieldChange("zone", "Zona Norte", "Zona Centro"),
        ])
        assert [change.field for change in entry.changes] == ["zone", "status"]

    def test_newest_first(self, make_user, fixed_now):
        clock = FixedClock(fixed_now)
        logger = AuditLogger(InMemoryHistoryStore(), clock)
        user = make_user(Role.ADMIN)

        first = logger.record_history("INSP-1", user, [FieldChange("observations", "", "uno")])
        clock.advance(timedelta(minutes=5))
        second = logger.record_history("INSP-1", user, [FieldChange("observations", "uno", "dos")])

        assert [entry.id for entry in logger.list_history("INSP-1")] == [second.id, first.id]
        assert logger.list_history("INSP-2") == []

    def test_same_instant_keeps_append_order_newest_first(self, make_user, fixed_now):
        logger = AuditLogger(InMemoryHistoryStore(), FixedClock(fixed_now))
        user = make_user(Role.ADMIN)

        first = logger.record_history("INSP-1", user, [FieldChange("observations", "", "uno")])
        second = logger.record_history("INSP-1", user, [FieldChange("observations", "uno", "dos")])
        third = logger.record_history("INSP-1", user, [FieldChange("observations", "dos", "tres")])

        assert [entry.id for entry in logger.list_history("INSP-1")] == [third.id, second.id, first.id]

    def test_store_failure_is_infrastructure_error(self, make_user, fixed_now):
        history_store = MagicMock()
        history_store.append.side_effect = ConnectionError("down")
        logger = AuditLogger(history_store, FixedClock(fixed_now))

        with pytest.raises(InfrastructureError):
            logger.record_history("INSP-1", make_user(Role.ADMIN), [FieldChange("observations", "", "x")])


class TestRenderEntry:

    def test_empty_values_shown_as_vacio(self, fixed_now):
        entry = ChangeHistoryEntry(
            inspection_id="INSP-1",
            timestamp=fixed_now,
            user_id="u1",
            username="calidad",
            changes=(FieldChange("inspector", "", "Luis"),),
        )
        rows = render_entry(entry)
        assert rows == [{"field": "inspector", "label": "Inspector", "old": "Vacío", "new": "Luis"}]

    def test_entry_document_shape(self, fixed_now):
        entry = ChangeHistoryEntry(
            inspection_id="INSP-1",
            timestamp=fixed_now,
            user_id="u1",
            username="calidad",
            changes=(FieldChange("status", "REGISTRADA", "PROGRAMADA"),),
        )
        doc = entry.to_document()
        assert doc["inspectionId"] == "INSP-1"
        assert doc["changes"] == [{"field": "status", "oldValue": "REGISTRADA", "newValue": "PROGRAMADA"}]
        assert ChangeHistoryEntry.from_document(doc) == entry
