"""Shared fixtures for the inspection engine tests."""
import pytest
from datetime import date, datetime, timezone

from inspection_engine.models.domain import InspectionRecord, Role, User, Zone
from inspection_engine.services.stores import (
    FixedClock,
    InMemoryHistoryStore,
    InMemoryStore,
    RecordingNotifier,
)
from inspection_engine.services.workflow import InspectionService


@pytest.fixture
def fixed_now():
    """Fixed UTC instant: the afternoon before the sample visit."""
    return datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_user():
    def _make(role, username=None, zone=Zone.TODAS.value, status="Activo"):
        role = Role(role)
        username = username or role.name.lower()
        return User(id=f"uid-{username}", name=username.title(), username=username, role=role, zone=zone, status=status)
    return _make


@pytest.fixture
def make_record():
    def _make(**overrides):
        data = dict(
            id="INSP-PI-1767225600000-ABCDEFGH",
            zone=Zone.ZONA_NORTE.value,
            municipality="Monterrey",
            neighborhood="Centro",
            street="Av. Juárez",
            number="120",
            inspection_type="PES",
            collaborator_company="Instalaciones del Norte",
            gestor="gestor",
            policy_number="POL-001",
            request_date=date(2026, 3, 3),
            scheduled_time="9:00 - 13:00",
            status="REGISTRADA",
            created_at=datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
            created_by="gestor",
        )
        data.update(overrides)
        return InspectionRecord(**data)
    return _make


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def clock(fixed_now):
    return FixedClock(fixed_now)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def directory(make_user):
    """Users the service notifies from."""
    return [
        make_user(Role.COORDINADOR_SSPP, "coord_norte", zone=Zone.ZONA_NORTE.value),
        make_user(Role.CALIDAD, "calidad_centro", zone=Zone.ZONA_CENTRO.value),
        make_user(Role.CALIDAD, "calidad_todas", zone=Zone.TODAS.value),
        make_user(Role.COORDINADOR_SSPP, "coord_inactivo", zone=Zone.TODAS.value, status="Inactivo"),
        make_user(Role.GESTOR, "gestor_norte", zone=Zone.ZONA_NORTE.value),
    ]


@pytest.fixture
def service(store, history_store, clock, notifier, directory):
    return InspectionService(
        store=store,
        history_store=history_store,
        clock=clock,
        notifier=notifier,
        user_directory=lambda: directory,
        cutoff_hours=18,
    )
