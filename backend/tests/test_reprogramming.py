"""
Reprogramming Engine Tests

Tests verify:
1. Eligibility (status set, already reprogrammed, Salesforce lineage)
2. Successor record shape and lineage links
3. Write ordering: the original is untouched if the first write fails
"""

import pytest
from unittest.mock import MagicMock

from inspection_engine.models.domain import InspectionStatus, Role
from inspection_engine.services.errors import NotReprogrammable
from inspection_engine.services.stores import InMemoryStore
from inspection_engine.services.workflow.reprogramming import (
    apply_reprogram,
    check_reprogrammable,
    is_reprogrammable,
    reprogram,
)


class FailingSuccessorStore(InMemoryStore):
    """Store whose create-write fails; merge patches still succeed."""

    def put(self, record_id, record, merge=False):
        if not merge:
            raise ConnectionError("store unavailable")
        super().put(record_id, record, merge=merge)


class TestEligibility:
    """Tests for check_reprogrammable."""

    @pytest.mark.parametrize("status", ["CANCELADA", "NO APROBADA", "RECHAZADA"])
    def test_eligible_statuses(self, make_record, status):
        assert is_reprogrammable(make_record(status=status)) is True

    @pytest.mark.parametrize("status", ["REGISTRADA", "PROGRAMADA", "APROBADA", "CONECTADA"])
    def test_ineligible_statuses(self, make_record, status):
        with pytest.raises(NotReprogrammable):
            check_reprogrammable(make_record(status=status))

    def test_already_reprogrammed(self, make_record):
        assert is_reprogrammable(make_record(status="NO APROBADA - REPROGRAMADA")) is False
        assert is_reprogrammable(make_record(status="CANCELADA", reprogrammed_to_id="INSP-RP-1-X")) is False

    def test_salesforce_lineage(self, make_record):
        assert is_reprogrammable(make_record(id="SF-00012345", status="CANCELADA")) is False
        record = make_record(id="INSP-RP-1700000000000-AAAA1111", status="CANCELADA", reprogrammed_from_id="SF-00012345")
        assert is_reprogrammable(record) is False


class TestReprogram:
    """Tests for reprogram()."""

    def test_not_approved_record(self, make_record, make_user, fixed_now):
        existing = make_record(status="NO APROBADA", inspector="Luis", rejection_reason="x")
        user = make_user(Role.GESTOR, "gestor_norte")

        result = reprogram(existing, user, fixed_now)

        assert result.original_id == existing.id
        assert result.closed_record_patch["status"] == "NO APROBADA - REPROGRAMADA"
        assert result.closed_record_patch["reprogrammed_to_id"] == result.new_record.id
        assert result.closed_record_patch["last_modified_by"] == "gestor_norte"

        new = result.new_record
        assert new.id.startswith("INSP-RP-")
        assert new.id != existing.id
        assert new.status == InspectionStatus.REGISTRADA.value
        assert new.programming_type == "REPROGRAMACION"
        assert new.reprogrammed_from_id == existing.id
        assert new.created_at == fixed_now
        assert new.created_by == "gestor_norte"
        assert new.inspector is None
        assert new.rejection_reason is None
        assert new.street == existing.street
        assert new.policy_number == existing.policy_number

    def test_existing_record_not_mutated(self, make_record, make_user, fixed_now):
        existing = make_record(status="CANCELADA")
        reprogram(existing, make_user(Role.ADMIN), fixed_now)
        assert existing.status == "CANCELADA"
        assert existing.reprogrammed_to_id is None

    def test_programada_is_not_reprogrammable(self, make_record, make_user, fixed_now):
        with pytest.raises(NotReprogrammable):
            reprogram(make_record(status="PROGRAMADA"), make_user(Role.ADMIN), fixed_now)


class TestApplyReprogram:
    """Tests for write ordering."""

    def test_successor_written_first(self, make_record, make_user, fixed_now):
        result = reprogram(make_record(status="CANCELADA"), make_user(Role.ADMIN), fixed_now)
        store = MagicMock()

        apply_reprogram(result, store)

        first, second = store.put.call_args_list
        assert first.args[0] == result.new_record.id
        assert first.kwargs["merge"] is False
        assert second.args[0] == result.original_id
        assert second.kwargs["merge"] is True

    def test_failed_first_write_leaves_original(self, make_record, make_user, fixed_now):
        existing = make_record(status="RECHAZADA", rejection_reason="Fuga")
        store = FailingSuccessorStore([])
        InMemoryStore.put(store, existing.id, existing)
        result = reprogram(existing, make_user(Role.ADMIN), fixed_now)

        with pytest.raises(ConnectionError):
            apply_reprogram(result, store)

        original = store.get(existing.id)
        assert original.status == "RECHAZADA"
        assert original.reprogrammed_to_id is None
        assert store.get(result.new_record.id) is None

    def test_links_in_store(self, make_record, make_user, fixed_now):
        existing = make_record(status="CANCELADA")
        store = InMemoryStore([existing])
        result = reprogram(existing, make_user(Role.ADMIN), fixed_now)

        apply_reprogram(result, store)

        original = store.get(existing.id)
        successor = store.get(result.new_record.id)
        assert original.status == "CANCELADA - REPROGRAMADA"
        assert original.reprogrammed_to_id == successor.id
        assert successor.reprogrammed_from_id == original.id
        assert original.street == existing.street
