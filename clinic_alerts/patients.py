"""Patient directory lookups used to populate patient pickers.

The directory is read-only.  Rows may come from the reference service
(``first_name``/``last_name``) or from an EHR-style API using camelCase keys,
so each row is normalised into a :class:`~clinic_alerts.models.Patient`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from clinic_alerts.client import AlertsApiClient
from clinic_alerts.models import Patient


logger = structlog.get_logger(__name__)


def normalize_patient(data: Mapping[str, Any]) -> Optional[Patient]:
    """Coerce a remote payload into a :class:`Patient`, or ``None`` without an id."""

    patient_id = data.get("id") or data.get("patientId") or data.get("patient_id")
    if patient_id in (None, ""):
        return None
    first = data.get("first_name") or data.get("firstName") or data.get("givenName") or ""
    last = data.get("last_name") or data.get("lastName") or data.get("familyName") or ""
    mrn = data.get("mrn") or data.get("medical_record_number") or None
    return Patient(id=str(patient_id), first_name=str(first), last_name=str(last), mrn=mrn)


def normalize_patients(rows: Iterable[Mapping[str, Any]]) -> List[Patient]:
    patients: List[Patient] = []
    for row in rows:
        patient = normalize_patient(row)
        if patient is None:
            logger.debug("patient_row_skipped", keys=sorted(row.keys()))
            continue
        patients.append(patient)
    return sorted(patients, key=lambda p: (p.last_name.lower(), p.first_name.lower(), p.id))


class PatientDirectory:
    """Caches the patient list fetched from the collaborator."""

    def __init__(self, client: AlertsApiClient) -> None:
        self._client = client
        self._patients: List[Patient] = []
        self._by_id: Dict[str, Patient] = {}

    @property
    def patients(self) -> List[Patient]:
        return list(self._patients)

    def refresh(self) -> List[Patient]:
        """Reload the directory; errors propagate and keep the cached list."""

        patients = normalize_patients(self._client.list_patients())
        self._patients = patients
        self._by_id = {patient.id: patient for patient in patients}
        logger.info("patient_directory_loaded", count=len(patients))
        return self.patients

    def get(self, patient_id: str) -> Optional[Patient]:
        return self._by_id.get(str(patient_id))

    def choices(self) -> List[Dict[str, str]]:
        """Return ``{"value", "label"}`` pairs such as ``John Smith (MRN-001234)``."""

        return [{"value": patient.id, "label": patient.label} for patient in self._patients]


__all__ = ["PatientDirectory", "normalize_patient", "normalize_patients"]
