"""Illustrative records for demos and offline use.

These are never substituted for live data unless offline seeding is switched
on (``CLINIC_ALERTS_OFFLINE_SEED=1``), and ``scripts/bootstrap_database.py``
uses :data:`DEMO_PATIENTS` to populate a fresh database.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from clinic_alerts.models import DosingHold, FacilityAlert, PatientPrecaution
from clinic_alerts.time_utils import utc_now

DEMO_PATIENTS: List[Dict[str, str]] = [
    {"id": "P001", "first_name": "John", "last_name": "Smith", "mrn": "MRN-001234"},
    {"id": "P002", "first_name": "Maria", "last_name": "Garcia", "mrn": "MRN-001235"},
    {"id": "P003", "first_name": "Robert", "last_name": "Johnson", "mrn": "MRN-001236"},
    {"id": "P004", "first_name": "Susan", "last_name": "Williams", "mrn": "MRN-001237"},
    {"id": "P005", "first_name": "James", "last_name": "Brown", "mrn": "MRN-001238"},
]


def demo_holds(now: Optional[datetime] = None) -> List[DosingHold]:
    now = now or utc_now()
    return [
        DosingHold(
            id="1",
            patient_id="P001",
            patient_name="John Smith",
            mrn="MRN-001234",
            hold_type="counselor",
            reason="Missed 3 consecutive counseling sessions",
            created_by="Dr. Sarah Johnson",
            created_by_role="Physician",
            created_at=now,
            requires_clearance_from=["Counselor"],
            cleared_by=[],
            status="active",
            notes="Patient has not attended counseling since 11/15. Must see counselor before next dose.",
            severity="high",
        ),
        DosingHold(
            id="2",
            patient_id="P002",
            patient_name="Maria Garcia",
            mrn="MRN-001235",
            hold_type="nurse",
            reason="Suspected intoxication at last visit",
            created_by="RN Lisa Chen",
            created_by_role="Nurse",
            created_at=now - timedelta(days=1),
            requires_clearance_from=["Nurse", "Physician"],
            cleared_by=["RN Lisa Chen (Nurse)"],
            status="active",
            notes="Requires nurse assessment and physician clearance.",
            severity="critical",
        ),
        DosingHold(
            id="3",
            patient_id="P003",
            patient_name="Robert Johnson",
            mrn="MRN-001236",
            hold_type="compliance",
            reason="Positive drug screen - non-prescribed benzodiazepines",
            created_by="System",
            created_by_role="Automated",
            created_at=now - timedelta(days=2),
            requires_clearance_from=["Counselor", "Physician"],
            cleared_by=[],
            status="active",
            notes="Treatment plan review required.",
            severity="high",
        ),
    ]


def demo_precautions(now: Optional[datetime] = None) -> List[PatientPrecaution]:
    now = now or utc_now()
    return [
        PatientPrecaution(
            id="1",
            patient_id="P001",
            patient_name="John Smith",
            mrn="MRN-001234",
            precaution_type="water_off",
            custom_text="Patient water service disconnected - offer water at each visit",
            icon="Droplets",
            color="#3b82f6",
            created_by="Case Manager Amy",
            created_at=now,
            updated_at=now,
        ),
        PatientPrecaution(
            id="2",
            patient_id="P004",
            patient_name="Susan Williams",
            mrn="MRN-001237",
            precaution_type="needs_assistance",
            custom_text="Requires wheelchair assistance from parking lot to dosing window",
            icon="UserCheck",
            color="#8b5cf6",
            created_by="RN Lisa Chen",
            created_at=now,
            updated_at=now,
        ),
        PatientPrecaution(
            id="3",
            patient_id="P005",
            patient_name="James Brown",
            mrn="MRN-001238",
            precaution_type="fall_risk",
            custom_text="High fall risk - recent hip replacement surgery. Assist with seating.",
            icon="AlertTriangle",
            color="#ef4444",
            created_by="Dr. Sarah Johnson",
            created_at=now,
            updated_at=now,
        ),
    ]


def demo_facility_alerts(now: Optional[datetime] = None) -> List[FacilityAlert]:
    now = now or utc_now()
    return [
        FacilityAlert(
            id="1",
            alert_type="maintenance",
            message="Water main repair scheduled - limited restroom access 8am-12pm",
            priority="medium",
            affected_areas=["Lobby", "Waiting Room"],
            created_by="Facility Manager",
            created_at=now,
        ),
        FacilityAlert(
            id="2",
            alert_type="safety",
            message="Ice advisory - salt walkways and assist patients as needed",
            priority="high",
            affected_areas=["Parking Lot", "Entrance"],
            created_by="Safety Officer",
            created_at=now,
        ),
    ]


__all__ = ["DEMO_PATIENTS", "demo_holds", "demo_precautions", "demo_facility_alerts"]
