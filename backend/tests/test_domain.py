"""
Domain Model & Identifier Tests
"""

import pytest
from datetime import date, datetime, timezone

from inspection_engine.models.domain import (
    CreationChannel,
    InspectionRecord,
    MODIFY_ROLES,
    Role,
    User,
    Zone,
    as_role,
    canonical_field,
    initial_status_for,
    is_closed_status,
    is_reprogrammed_status,
    reprogrammed_status,
)
from inspection_engine.services.workflow.identifiers import (
    channel_for_id,
    generate_inspection_id,
    is_salesforce_id,
)


class TestIdentifiers:
    """Tests for id generation and channel decoding."""

    @pytest.mark.parametrize("channel,prefix", [
        (CreationChannel.INDIVIDUAL, "INSP-PI-"),
        (CreationChannel.MASSIVE, "INSP-IM-"),
        (CreationChannel.SPECIAL, "INSP-ES-"),
        (CreationChannel.REPROGRAMMED, "INSP-RP-"),
        (CreationChannel.SALESFORCE, "SF-"),
    ])
    def test_prefix_encodes_channel(self, fixed_now, channel, prefix):
        record_id = generate_inspection_id(channel, fixed_now)
        assert record_id.startswith(prefix)
        assert channel_for_id(record_id) == channel

    def test_millis_and_suffix(self, fixed_now):
        record_id = generate_inspection_id(CreationChannel.INDIVIDUAL, fixed_now)
        millis, suffix = record_id[len("INSP-PI-"):].split("-")
        assert int(millis) == int(fixed_now.timestamp() * 1000)
        assert len(suffix) == 8

    def test_unique(self, fixed_now):
        ids = {generate_inspection_id(CreationChannel.MASSIVE, fixed_now) for _ in range(200)}
        assert len(ids) == 200

    def test_legacy_ids(self):
        assert channel_for_id("abc123") is None
        assert channel_for_id(None) is None
        assert is_salesforce_id("SF-0001") is True
        assert is_salesforce_id("INSP-PI-1-X") is False


class TestStatusHelpers:

    def test_reprogrammed_status(self):
        assert reprogrammed_status("NO APROBADA") == "NO APROBADA - REPROGRAMADA"
        assert is_reprogrammed_status("CANCELADA - REPROGRAMADA") is True
        assert is_reprogrammed_status("CANCELADA") is False
        assert is_reprogrammed_status(None) is False

    def test_closed_statuses(self):
        for status in ("APROBADA", "NO APROBADA", "RECHAZADA", "CANCELADA", "CONECTADA", "RECHAZADA - REPROGRAMADA"):
            assert is_closed_status(status) is True
        for status in ("REGISTRADA", "PROGRAMADA", "PENDIENTE CORRECCION"):
            assert is_closed_status(status) is False

    def test_initial_status_by_role(self):
        assert initial_status_for(Role.GESTOR).value == "CONFIRMADA POR GE"
        assert initial_status_for(Role.COLABORADOR).value == "REGISTRADA"


class TestRoles:

    def test_labels_resolve_to_members(self):
        assert as_role("Administrador") is Role.ADMIN
        assert as_role(Role.SOPORTE) is Role.SOPORTE
        assert as_role("ADMIN") is None
        assert as_role("Empresa Colaboradora") in MODIFY_ROLES

    def test_user_zone_coverage(self, make_user):
        everywhere = make_user(Role.CALIDAD)
        north = make_user(Role.CALIDAD, zone=Zone.ZONA_NORTE.value)
        assert everywhere.covers_zone("Bajio Sur") is True
        assert north.covers_zone("Zona Norte") is True
        assert north.covers_zone("Zona Centro") is False


class TestInspectionRecord:

    def test_document_uses_stored_keys(self, make_record):
        doc = make_record().to_document()
        assert doc["assignedCollaboratorCompany"] == "Instalaciones del Norte"
        assert doc["requestDate"] == "2026-03-03"
        assert doc["createdAt"] == "2026-03-01T09:00:00+00:00"
        assert "collaborator_company" not in doc

    def test_from_document(self, make_record):
        record = make_record()
        doc = record.to_document()
        doc["legacyField"] = "ignored"
        assert InspectionRecord.from_document(doc) == record

    def test_from_document_requires_id(self):
        with pytest.raises(ValueError):
            InspectionRecord.from_document({"status": "REGISTRADA"})

    def test_values_are_normalised(self):
        record = InspectionRecord(
            id="INSP-PI-1-X",
            zone=Zone.BAJIO_SUR,
            request_date="2026-03-03T00:00:00",
            created_at="2026-03-01T09:00:00+00:00",
        )
        assert record.zone == "Bajio Sur"
        assert record.request_date == date(2026, 3, 3)
        assert record.created_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert record.creation_channel == CreationChannel.INDIVIDUAL

    def test_canonical_field(self):
        assert canonical_field("mddType") == "mdd_type"
        assert canonical_field("policy_number") == "policy_number"
        assert canonical_field("nope") is None
