"""
Support Validation Tests

Exactly one of connection or rejection must be supplied.
"""

import pytest
from datetime import date

from inspection_engine.models.domain import InspectionStatus, Role
from inspection_engine.services.errors import AmbiguousResolution, IllegalTransition
from inspection_engine.services.workflow.support_validation import (
    SupportValidationInput,
    ensure_support_validation_allowed,
    resolve_support_validation,
)


class TestResolveSupportValidation:
    """Tests for resolve_support_validation."""

    def test_connection(self):
        data = SupportValidationInput.model_validate({
            "connectionDate": "2026-03-05",
            "dataConfirmed": True,
            "supportObservations": "Medidor instalado",
        })
        resolution = resolve_support_validation(data)

        assert resolution.status == InspectionStatus.CONECTADA
        assert resolution.patch["status"] == "CONECTADA"
        assert resolution.patch["connection_date"] == date(2026, 3, 5)
        assert resolution.patch["data_confirmed"] is True
        assert resolution.patch["rejection_type"] is None
        assert resolution.patch["support_observations"] == "Medidor instalado"

    def test_rejection(self):
        data = SupportValidationInput.model_validate({
            "rejectionType": "Documentación",
            "rejectionReasonDetail": "Falta fotografía del medidor",
        })
        resolution = resolve_support_validation(data)

        assert resolution.status == InspectionStatus.PENDIENTE_CORRECCION
        assert resolution.patch["status"] == "PENDIENTE CORRECCION"
        assert resolution.patch["connection_date"] is None
        assert resolution.patch["data_confirmed"] is False
        assert resolution.patch["rejection_reason_detail"] == "Falta fotografía del medidor"
        assert "support_observations" not in resolution.patch

    def test_both_outcomes_is_ambiguous(self):
        data = SupportValidationInput.model_validate({
            "connectionDate": "2026-03-05",
            "dataConfirmed": True,
            "rejectionType": "Documentación",
            "rejectionReasonDetail": "Falta fotografía",
        })
        with pytest.raises(AmbiguousResolution):
            resolve_support_validation(data)

    def test_neither_outcome_is_ambiguous(self):
        with pytest.raises(AmbiguousResolution):
            resolve_support_validation(SupportValidationInput())

    def test_partial_outcomes_are_ambiguous(self):
        # Date without confirmation, type without detail
        data = SupportValidationInput.model_validate({
            "connectionDate": "2026-03-05",
            "rejectionType": "Documentación",
        })
        with pytest.raises(AmbiguousResolution):
            resolve_support_validation(data)

    def test_blank_values_are_empty(self):
        data = SupportValidationInput.model_validate({
            "connectionDate": "",
            "rejectionType": "  ",
            "rejectionReasonDetail": "Detalle",
        })
        assert data.connection_date is None
        assert data.rejection_type is None
        assert data.is_rejection is False

    def test_attribute_names_accepted(self):
        data = SupportValidationInput(connection_date=date(2026, 3, 5), data_confirmed=True)
        assert data.is_connection is True


class TestSupportValidationGate:
    """Who may validate, and from which statuses."""

    def test_support_and_admin(self, make_record):
        record = make_record(status="EN PROCESO")
        ensure_support_validation_allowed(Role.SOPORTE, record)
        ensure_support_validation_allowed(Role.ADMIN, record)

    @pytest.mark.parametrize("role", [Role.GESTOR, Role.CALIDAD, Role.COLABORADOR, Role.VISUAL])
    def test_other_roles_rejected(self, make_record, role):
        with pytest.raises(IllegalTransition):
            ensure_support_validation_allowed(role, make_record(status="EN PROCESO"))

    @pytest.mark.parametrize("status", ["REGISTRADA", "CANCELADA", "NO APROBADA - REPROGRAMADA"])
    def test_statuses_outside_validation(self, make_record, status):
        with pytest.raises(IllegalTransition):
            ensure_support_validation_allowed(Role.SOPORTE, make_record(status=status))
