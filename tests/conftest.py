from __future__ import annotations

import os
import sys
from typing import Any, Callable, Dict, List

import pytest
import sqlalchemy as sa
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

# Ensure the repository root is on sys.path so tests can import the package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from clinic_alerts import repository  # noqa: E402
from clinic_alerts.clearance import resolve_status  # noqa: E402
from clinic_alerts.config import get_client_settings  # noqa: E402
from clinic_alerts.db import get_connection  # noqa: E402
from clinic_alerts.db.config import get_database_settings  # noqa: E402
from clinic_alerts.db.models import metadata  # noqa: E402
from clinic_alerts.errors import RequestFailedError  # noqa: E402
from clinic_alerts.handlers import AlertActions  # noqa: E402
from clinic_alerts.models import (  # noqa: E402
    DosingHold,
    FacilityAlert,
    HoldStatus,
    PatientPrecaution,
)
from clinic_alerts.seed import DEMO_PATIENTS  # noqa: E402
from clinic_alerts.store import AlertStore  # noqa: E402


_NAMES = {p['id']: f"{p['first_name']} {p['last_name']}" for p in DEMO_PATIENTS}


class FakeAlertsClient:
    """In-memory collaborator that records every call.

    Created holds and precautions come back without the patient name, the
    way a bare insert would; the list endpoints join it in.  Set
    ``failures[method]`` to make a method raise.
    """

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.hooks: Dict[str, Callable[[], None]] = {}
        self.holds: List[DosingHold] = []
        self.precautions: List[PatientPrecaution] = []
        self.facility_alerts: List[FacilityAlert] = []
        self._next_id = 100

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        hook = self.hooks.pop(name, None)
        if hook is not None:
            hook()
        if name in self.failures:
            raise self.failures[name]

    def _id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    @staticmethod
    def _named(record):
        return record.model_copy(update={'patient_name': _NAMES.get(record.patient_id, 'Unknown')})

    def _find(self, items: List[Any], record_id: str, label: str) -> int:
        for index, item in enumerate(items):
            if item.id == record_id:
                return index
        raise RequestFailedError(f'{label} not found', status_code=404)

    # holds
    def list_holds(self) -> List[DosingHold]:
        self._call('list_holds')
        return [self._named(hold) for hold in self.holds]

    def create_hold(self, payload: Dict[str, Any]) -> DosingHold:
        self._call('create_hold', payload)
        hold = DosingHold.model_validate({**payload, 'id': self._id(), 'status': 'active'})
        self.holds.insert(0, hold)
        return hold

    def update_hold(self, hold_id: str, payload: Dict[str, Any]) -> DosingHold:
        self._call('update_hold', hold_id, payload)
        index = self._find(self.holds, hold_id, 'Hold')
        hold = self.holds[index]
        changes: Dict[str, Any] = {}
        if payload.get('cleared_by'):
            cleared = [*hold.cleared_by, payload['cleared_by']]
            changes['cleared_by'] = cleared
            changes['status'] = resolve_status(hold.requires_clearance_from, cleared, hold.status)
        if payload.get('status'):
            changes['status'] = HoldStatus(payload['status'])
        if 'notes' in payload:
            changes['notes'] = payload['notes']
        hold = hold.model_copy(update=changes)
        self.holds[index] = hold
        return self._named(hold)

    # precautions
    def list_precautions(self) -> List[PatientPrecaution]:
        self._call('list_precautions')
        return [self._named(item) for item in self.precautions]

    def create_precaution(self, payload: Dict[str, Any]) -> PatientPrecaution:
        self._call('create_precaution', payload)
        precaution = PatientPrecaution.model_validate({**payload, 'id': self._id()})
        self.precautions.insert(0, precaution)
        return precaution

    # facility alerts
    def list_facility_alerts(self) -> List[FacilityAlert]:
        self._call('list_facility_alerts')
        return list(self.facility_alerts)

    def create_facility_alert(self, payload: Dict[str, Any]) -> FacilityAlert:
        self._call('create_facility_alert', payload)
        alert = FacilityAlert.model_validate({**payload, 'id': self._id()})
        self.facility_alerts.insert(0, alert)
        return alert

    def update_facility_alert(self, alert_id: str, payload: Dict[str, Any]) -> FacilityAlert:
        self._call('update_facility_alert', alert_id, payload)
        index = self._find(self.facility_alerts, alert_id, 'Alert')
        current = self.facility_alerts[index]
        alert = FacilityAlert.model_validate(
            {**payload, 'id': current.id, 'created_by': current.created_by, 'is_active': current.is_active}
        )
        self.facility_alerts[index] = alert
        return alert

    def dismiss_facility_alert(self, alert_id: str) -> FacilityAlert:
        self._call('dismiss_facility_alert', alert_id)
        index = self._find(self.facility_alerts, alert_id, 'Alert')
        alert = self.facility_alerts[index].model_copy(update={'is_active': False})
        self.facility_alerts[index] = alert
        return alert

    def list_patients(self) -> List[Dict[str, Any]]:
        self._call('list_patients')
        return [dict(p) for p in DEMO_PATIENTS]


@pytest.fixture(autouse=True)
def _reset_settings(monkeypatch):
    for name in (
        'CLINIC_ALERTS_OFFLINE_SEED',
        'CLINIC_ALERTS_ACTOR_NAME',
        'CLINIC_ALERTS_ACTOR_ROLE',
        'CLINIC_ALERTS_API_KEY',
    ):
        monkeypatch.delenv(name, raising=False)
    get_client_settings.cache_clear()
    get_database_settings.cache_clear()
    yield
    get_client_settings.cache_clear()
    get_database_settings.cache_clear()


@pytest.fixture
def fake_client() -> FakeAlertsClient:
    return FakeAlertsClient()


@pytest.fixture
def store(fake_client) -> AlertStore:
    return AlertStore(fake_client, offline_seed=False)


@pytest.fixture
def actions(store, fake_client) -> AlertActions:
    return AlertActions(store, fake_client, actor_name='Dr. Test', actor_role='Physician')


@pytest.fixture
def engine():
    eng = sa.create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    metadata.create_all(eng)
    with eng.begin() as conn:
        for patient in DEMO_PATIENTS:
            repository.upsert_patient(conn, patient)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def api_client(engine):
    from clinic_alerts import main

    def _override():
        with engine.begin() as conn:
            yield conn

    main.app.dependency_overrides[get_connection] = _override
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.pop(get_connection, None)


def make_hold(**overrides: Any) -> DosingHold:
    data: Dict[str, Any] = {
        'id': 'h1',
        'patient_id': 'P001',
        'patient_name': 'John Smith',
        'reason': 'Missed counseling',
        'requires_clearance_from': ['Counselor'],
        'cleared_by': [],
        'status': 'active',
        'severity': 'high',
    }
    data.update(overrides)
    return DosingHold.model_validate(data)


@pytest.fixture
def hold_factory() -> Callable[..., DosingHold]:
    return make_hold

