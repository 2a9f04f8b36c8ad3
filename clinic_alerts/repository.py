"""SQL access for the alerts service.

All helpers take an open SQLAlchemy :class:`~sqlalchemy.engine.Connection`
so the HTTP handlers control the transaction and tests can pass an in-memory
engine.  Hold, precaution and clinical alert rows are joined to ``patients``
to fill in the display name and MRN.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from clinic_alerts.catalog import precaution_style
from clinic_alerts.clearance import resolve_status
from clinic_alerts.db.models import (
    clinical_alerts,
    dosing_holds,
    facility_alerts,
    patient_precautions,
    patients,
)
from clinic_alerts.models import (
    ClinicalAlert,
    ClinicalAlertCreate,
    ClinicalAlertStatus,
    DosingHold,
    FacilityAlert,
    FacilityAlertInput,
    HoldCreate,
    HoldStatus,
    HoldUpdate,
    Patient,
    PatientPrecaution,
    PrecautionCreate,
)
from clinic_alerts.time_utils import ensure_utc, utc_now


def _new_id() -> str:
    return uuid.uuid4().hex


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def _patient_name(row: Mapping[str, Any]) -> str:
    if row.get("first_name") is None and row.get("last_name") is None:
        return "Unknown"
    name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
    return name or "Unknown"


def _patient_columns():
    return (
        patients.c.first_name.label("first_name"),
        patients.c.last_name.label("last_name"),
        patients.c.mrn.label("mrn"),
    )


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------


def list_patients(conn: Connection) -> List[Patient]:
    rows = conn.execute(
        sa.select(patients).order_by(patients.c.last_name, patients.c.first_name)
    ).mappings()
    return [Patient.model_validate(dict(row)) for row in rows]


def upsert_patient(conn: Connection, data: Mapping[str, Any]) -> None:
    values = {
        "id": str(data["id"]),
        "first_name": data.get("first_name") or "",
        "last_name": data.get("last_name") or "",
        "mrn": data.get("mrn"),
    }
    exists = conn.execute(
        sa.select(patients.c.id).where(patients.c.id == values["id"])
    ).first()
    if exists:
        conn.execute(patients.update().where(patients.c.id == values["id"]).values(**values))
    else:
        conn.execute(patients.insert().values(**values))


# ---------------------------------------------------------------------------
# Dosing holds
# ---------------------------------------------------------------------------


def _hold_from_row(row: Mapping[str, Any]) -> DosingHold:
    data = dict(row)
    data["patient_name"] = _patient_name(row)
    for key in ("created_at", "updated_at", "cleared_at"):
        data[key] = _utc(data.get(key))
    return DosingHold.model_validate(data)


def _holds_query():
    return sa.select(dosing_holds, *_patient_columns()).select_from(
        dosing_holds.outerjoin(patients, dosing_holds.c.patient_id == patients.c.id)
    )


def list_holds(
    conn: Connection,
    *,
    status: Optional[HoldStatus] = None,
    limit: Optional[int] = None,
) -> List[DosingHold]:
    query = _holds_query().order_by(dosing_holds.c.created_at.desc())
    if status is not None:
        query = query.where(dosing_holds.c.status == status.value)
    if limit is not None:
        query = query.limit(limit)
    return [_hold_from_row(row) for row in conn.execute(query).mappings()]


def get_hold(conn: Connection, hold_id: str) -> Optional[DosingHold]:
    row = conn.execute(_holds_query().where(dosing_holds.c.id == str(hold_id))).mappings().first()
    return _hold_from_row(row) if row else None


def create_hold(
    conn: Connection,
    data: HoldCreate,
    *,
    created_by: str,
    created_by_role: str,
    now: Optional[datetime] = None,
) -> DosingHold:
    hold_id = _new_id()
    conn.execute(
        dosing_holds.insert().values(
            id=hold_id,
            patient_id=data.patient_id,
            hold_type=data.hold_type.value,
            reason=data.reason,
            created_by=created_by,
            created_by_role=created_by_role,
            requires_clearance_from=[role.value for role in data.requires_clearance_from],
            cleared_by=[],
            status=HoldStatus.ACTIVE.value,
            severity=data.severity.value,
            notes=data.notes,
            created_at=now or utc_now(),
        )
    )
    return get_hold(conn, hold_id)


def update_hold(
    conn: Connection,
    hold_id: str,
    update: HoldUpdate,
    *,
    now: Optional[datetime] = None,
) -> Optional[DosingHold]:
    """Append a clearance and/or set status and notes.

    Appending a clearance moves an ``active`` hold to ``cleared`` once every
    required role is matched.  An explicit ``status`` in the same update wins.
    """

    current = get_hold(conn, hold_id)
    if current is None:
        return None
    now = now or utc_now()
    values: Dict[str, Any] = {"updated_at": now}
    status = current.status
    if update.cleared_by is not None:
        cleared_by = [*current.cleared_by, update.cleared_by]
        values["cleared_by"] = cleared_by
        status = resolve_status(current.requires_clearance_from, cleared_by, current.status)
    if update.status is not None:
        status = update.status
    if status != current.status:
        values["status"] = status.value
        if status == HoldStatus.CLEARED:
            values["cleared_at"] = now
    if update.notes is not None:
        values["notes"] = update.notes
    conn.execute(dosing_holds.update().where(dosing_holds.c.id == current.id).values(**values))
    return get_hold(conn, current.id)


# ---------------------------------------------------------------------------
# Precautions
# ---------------------------------------------------------------------------


def _precaution_from_row(row: Mapping[str, Any]) -> PatientPrecaution:
    data = dict(row)
    data["patient_name"] = _patient_name(row)
    for key in ("created_at", "updated_at"):
        data[key] = _utc(data.get(key))
    return PatientPrecaution.model_validate(data)


def _precautions_query():
    return sa.select(patient_precautions, *_patient_columns()).select_from(
        patient_precautions.outerjoin(
            patients, patient_precautions.c.patient_id == patients.c.id
        )
    )


def list_precautions(
    conn: Connection,
    *,
    active_only: bool = False,
    limit: Optional[int] = None,
) -> List[PatientPrecaution]:
    query = _precautions_query().order_by(patient_precautions.c.created_at.desc())
    if active_only:
        query = query.where(patient_precautions.c.is_active.is_(True))
    if limit is not None:
        query = query.limit(limit)
    return [_precaution_from_row(row) for row in conn.execute(query).mappings()]


def get_precaution(conn: Connection, precaution_id: str) -> Optional[PatientPrecaution]:
    row = (
        conn.execute(_precautions_query().where(patient_precautions.c.id == str(precaution_id)))
        .mappings()
        .first()
    )
    return _precaution_from_row(row) if row else None


def create_precaution(
    conn: Connection,
    data: PrecautionCreate,
    *,
    created_by: str,
    now: Optional[datetime] = None,
) -> PatientPrecaution:
    now = now or utc_now()
    icon, color = precaution_style(data.precaution_type, data.icon, data.color)
    precaution_id = _new_id()
    conn.execute(
        patient_precautions.insert().values(
            id=precaution_id,
            patient_id=data.patient_id,
            precaution_type=data.precaution_type,
            custom_text=data.custom_text,
            icon=icon,
            color=color,
            created_by=created_by,
            is_active=True,
            show_on_chart=data.show_on_chart,
            created_at=now,
            updated_at=now,
        )
    )
    return get_precaution(conn, precaution_id)


# ---------------------------------------------------------------------------
# Facility alerts
# ---------------------------------------------------------------------------


def _facility_from_row(row: Mapping[str, Any]) -> FacilityAlert:
    data = dict(row)
    for key in ("created_at", "updated_at"):
        data[key] = _utc(data.get(key))
    return FacilityAlert.model_validate(data)


def list_facility_alerts(
    conn: Connection,
    *,
    active_only: bool = False,
    limit: Optional[int] = None,
) -> List[FacilityAlert]:
    query = sa.select(facility_alerts).order_by(facility_alerts.c.created_at.desc())
    if active_only:
        query = query.where(facility_alerts.c.is_active.is_(True))
    if limit is not None:
        query = query.limit(limit)
    return [_facility_from_row(row) for row in conn.execute(query).mappings()]


def get_facility_alert(conn: Connection, alert_id: str) -> Optional[FacilityAlert]:
    row = (
        conn.execute(sa.select(facility_alerts).where(facility_alerts.c.id == str(alert_id)))
        .mappings()
        .first()
    )
    return _facility_from_row(row) if row else None


def create_facility_alert(
    conn: Connection,
    data: FacilityAlertInput,
    *,
    created_by: str,
    now: Optional[datetime] = None,
) -> FacilityAlert:
    alert_id = _new_id()
    conn.execute(
        facility_alerts.insert().values(
            id=alert_id,
            alert_type=data.alert_type.value,
            message=data.message,
            priority=data.priority.value,
            affected_areas=list(data.affected_areas),
            created_by=created_by,
            is_active=True,
            created_at=now or utc_now(),
        )
    )
    return get_facility_alert(conn, alert_id)


def replace_facility_alert(
    conn: Connection,
    alert_id: str,
    data: FacilityAlertInput,
    *,
    now: Optional[datetime] = None,
) -> Optional[FacilityAlert]:
    """Overwrite the editable fields; creator and timestamps are kept."""

    result = conn.execute(
        facility_alerts.update()
        .where(facility_alerts.c.id == str(alert_id))
        .values(
            alert_type=data.alert_type.value,
            message=data.message,
            priority=data.priority.value,
            affected_areas=list(data.affected_areas),
            updated_at=now or utc_now(),
        )
    )
    if result.rowcount == 0:
        return None
    return get_facility_alert(conn, alert_id)


def set_facility_alert_active(
    conn: Connection,
    alert_id: str,
    active: bool,
    *,
    now: Optional[datetime] = None,
) -> Optional[FacilityAlert]:
    result = conn.execute(
        facility_alerts.update()
        .where(facility_alerts.c.id == str(alert_id))
        .values(is_active=active, updated_at=now or utc_now())
    )
    if result.rowcount == 0:
        return None
    return get_facility_alert(conn, alert_id)


# ---------------------------------------------------------------------------
# Clinical alerts
# ---------------------------------------------------------------------------


def _clinical_from_row(row: Mapping[str, Any]) -> ClinicalAlert:
    data = dict(row)
    data["patient_name"] = _patient_name(row) if data.get("patient_id") else None
    for key in ("created_at", "acknowledged_at"):
        data[key] = _utc(data.get(key))
    return ClinicalAlert.model_validate(data)


def _clinical_query():
    return sa.select(clinical_alerts, *_patient_columns()).select_from(
        clinical_alerts.outerjoin(patients, clinical_alerts.c.patient_id == patients.c.id)
    )


def list_clinical_alerts(
    conn: Connection,
    *,
    patient_id: Optional[str] = None,
    acknowledged: Optional[bool] = None,
    limit: Optional[int] = None,
) -> List[ClinicalAlert]:
    """Newest first.  ``acknowledged=False`` keeps only ``active`` alerts."""

    query = _clinical_query().order_by(clinical_alerts.c.created_at.desc())
    if patient_id is not None:
        query = query.where(clinical_alerts.c.patient_id == str(patient_id))
    if acknowledged is False:
        query = query.where(clinical_alerts.c.status == ClinicalAlertStatus.ACTIVE.value)
    elif acknowledged is True:
        query = query.where(clinical_alerts.c.status != ClinicalAlertStatus.ACTIVE.value)
    if limit is not None:
        query = query.limit(limit)
    return [_clinical_from_row(row) for row in conn.execute(query).mappings()]


def get_clinical_alert(conn: Connection, alert_id: str) -> Optional[ClinicalAlert]:
    row = (
        conn.execute(_clinical_query().where(clinical_alerts.c.id == str(alert_id)))
        .mappings()
        .first()
    )
    return _clinical_from_row(row) if row else None


def create_clinical_alert(
    conn: Connection,
    data: ClinicalAlertCreate,
    *,
    now: Optional[datetime] = None,
) -> ClinicalAlert:
    alert_id = _new_id()
    conn.execute(
        clinical_alerts.insert().values(
            id=alert_id,
            patient_id=data.patient_id,
            alert_type=data.alert_type,
            severity=data.severity.value,
            alert_message=data.alert_message,
            triggered_by=data.triggered_by,
            status=ClinicalAlertStatus.ACTIVE.value,
            created_at=now or utc_now(),
        )
    )
    return get_clinical_alert(conn, alert_id)


__all__ = [
    "list_patients",
    "upsert_patient",
    "list_holds",
    "get_hold",
    "create_hold",
    "update_hold",
    "list_precautions",
    "get_precaution",
    "create_precaution",
    "list_facility_alerts",
    "get_facility_alert",
    "create_facility_alert",
    "replace_facility_alert",
    "set_facility_alert_active",
    "list_clinical_alerts",
    "get_clinical_alert",
    "create_clinical_alert",
]
