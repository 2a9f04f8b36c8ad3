"""Pydantic models for dosing holds, precautions, facility and clinical alerts.

Record models mirror what the collaborator returns and are tolerant of legacy
rows: missing lists, null columns, numeric ids and free-text clearance
labels.  Input models are strict: they carry the required-field rules enforced
before a request is sent, and the service reuses them as request bodies.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class HoldType(str, Enum):
    COUNSELOR = "counselor"
    NURSE = "nurse"
    DOCTOR = "doctor"
    COMPLIANCE = "compliance"


class HoldStatus(str, Enum):
    ACTIVE = "active"
    CLEARED = "cleared"
    EXPIRED = "expired"


class ClinicalAlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class FacilityAlertType(str, Enum):
    MAINTENANCE = "maintenance"
    SAFETY = "safety"
    WEATHER = "weather"
    STAFFING = "staffing"
    EQUIPMENT = "equipment"
    SECURITY = "security"
    GENERAL = "general"


class Role(str, Enum):
    """Staff roles that can be required to clear a dosing hold."""

    COUNSELOR = "Counselor"
    NURSE = "Nurse"
    PHYSICIAN = "Physician"
    CASE_MANAGER = "Case Manager"
    PROGRAM_DIRECTOR = "Program Director"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the role named by ``value`` ignoring case, or ``None``."""

        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("_", " ")
        for role in cls:
            if text in (role.value.lower(), role.name.lower().replace("_", " ")):
                return role
        return None


def _blank_to_list(value: Any) -> Any:
    if value is None or value == "":
        return []
    return value


def _require_text(value: Any, label: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError(f"{label} is required")
    return text


# ---------------------------------------------------------------------------
# Records returned by the collaborator
# ---------------------------------------------------------------------------


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("id", "patient_id", "mrn", mode="before", check_fields=False)
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)

    # Nullable columns come back as null; use the field default instead.
    @field_validator(
        "hold_type",
        "reason",
        "created_by",
        "created_by_role",
        "status",
        "severity",
        "icon",
        "color",
        "is_active",
        "show_on_chart",
        "alert_type",
        "message",
        "priority",
        "triggered_by",
        "alert_message",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class DosingHold(_Record):
    id: str
    patient_id: str
    patient_name: str = "Unknown"
    mrn: Optional[str] = None
    hold_type: HoldType = HoldType.COUNSELOR
    reason: str = ""
    created_by: str = "System"
    created_by_role: str = "Provider"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cleared_at: Optional[datetime] = None
    requires_clearance_from: List[str] = Field(default_factory=list)
    cleared_by: List[str] = Field(default_factory=list)
    status: HoldStatus = HoldStatus.ACTIVE
    notes: Optional[str] = None
    severity: Severity = Severity.MEDIUM

    @field_validator("requires_clearance_from", "cleared_by", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _blank_to_list(value)

    @field_validator("patient_name", mode="before")
    @classmethod
    def _unknown_patient(cls, value: Any) -> Any:
        return value or "Unknown"


class PatientPrecaution(_Record):
    id: str
    patient_id: str
    patient_name: str = "Unknown"
    mrn: Optional[str] = None
    precaution_type: str
    custom_text: str = ""
    icon: str = "FileText"
    color: str = "#64748b"
    created_by: str = "System"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_active: bool = True
    show_on_chart: bool = True

    @field_validator("patient_name", mode="before")
    @classmethod
    def _unknown_patient(cls, value: Any) -> Any:
        return value or "Unknown"

    @field_validator("custom_text", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return value or ""


class FacilityAlert(_Record):
    id: str
    alert_type: FacilityAlertType = FacilityAlertType.GENERAL
    message: str = ""
    priority: Severity = Severity.MEDIUM
    affected_areas: List[str] = Field(default_factory=list)
    created_by: str = "System"
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("affected_areas", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> Any:
        return _blank_to_list(value)


class ClinicalAlert(_Record):
    """A patient-scoped alert raised by staff or an automated check."""

    id: str
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    alert_type: str = "general"
    severity: Severity = Severity.MEDIUM
    alert_message: str = ""
    triggered_by: str = "manual"
    status: ClinicalAlertStatus = ClinicalAlertStatus.ACTIVE
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_acknowledged(self) -> bool:
        return self.status is not ClinicalAlertStatus.ACTIVE


class Patient(_Record):
    id: str
    first_name: str = ""
    last_name: str = ""
    mrn: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name.strip(), self.last_name.strip()) if part]
        if parts:
            return " ".join(parts)
        return self.mrn or f"Patient {self.id}"

    @property
    def label(self) -> str:
        if self.mrn:
            return f"{self.display_name} ({self.mrn})"
        return self.display_name


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class HoldCreate(BaseModel):
    patient_id: str
    reason: str
    hold_type: HoldType = HoldType.COUNSELOR
    requires_clearance_from: List[Role] = Field(default_factory=list)
    notes: str = ""
    severity: Severity = Severity.MEDIUM
    created_by: Optional[str] = None
    created_by_role: Optional[str] = None

    @field_validator("patient_id", mode="before")
    @classmethod
    def _patient(cls, value: Any) -> str:
        return _require_text(value, "Patient")

    @field_validator("reason", mode="before")
    @classmethod
    def _reason(cls, value: Any) -> str:
        return _require_text(value, "Reason")

    @field_validator("requires_clearance_from", mode="before")
    @classmethod
    def _roles(cls, value: Any) -> List[Role]:
        roles: List[Role] = []
        for item in _blank_to_list(value):
            role = Role.parse(item)
            if role is None:
                raise ValueError(f"Unknown clearance role: {item!r}")
            if role not in roles:
                roles.append(role)
        return roles

    @field_validator("notes", mode="before")
    @classmethod
    def _notes(cls, value: Any) -> Any:
        return value or ""


class HoldUpdate(BaseModel):
    cleared_by: Optional[str] = None
    status: Optional[HoldStatus] = None
    notes: Optional[str] = None

    @field_validator("cleared_by", mode="before")
    @classmethod
    def _label(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return _require_text(value, "Clearance")


class PrecautionCreate(BaseModel):
    patient_id: str
    precaution_type: str
    custom_text: str = ""
    show_on_chart: bool = True
    icon: Optional[str] = None
    color: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("patient_id", mode="before")
    @classmethod
    def _patient(cls, value: Any) -> str:
        return _require_text(value, "Patient")

    @field_validator("precaution_type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> str:
        return _require_text(value, "Precaution type")

    @field_validator("custom_text", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return value or ""


class FacilityAlertInput(BaseModel):
    alert_type: FacilityAlertType
    message: str
    priority: Severity = Severity.MEDIUM
    affected_areas: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None

    @field_validator("alert_type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> Any:
        text = _require_text(value, "Alert type")
        return text.lower()

    @field_validator("message", mode="before")
    @classmethod
    def _message(cls, value: Any) -> str:
        return _require_text(value, "Message")

    @field_validator("affected_areas", mode="before")
    @classmethod
    def _areas(cls, value: Any) -> List[str]:
        areas: List[str] = []
        for item in _blank_to_list(value):
            text = str(item).strip()
            if text and text not in areas:
                areas.append(text)
        return areas


class FacilityAlertPatch(BaseModel):
    is_active: bool = False


# Clients post either the column names or the shorter UI names.
_CLINICAL_ALERT_ALIASES = (
    ("patient_id", "patientId"),
    ("alert_message", "message"),
    ("alert_type", "type"),
    ("severity", "priority"),
    ("triggered_by", "source"),
)


class ClinicalAlertCreate(BaseModel):
    patient_id: str
    alert_message: str
    alert_type: str = "general"
    severity: Severity = Severity.MEDIUM
    triggered_by: str = "manual"

    @model_validator(mode="before")
    @classmethod
    def _aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        merged: Dict[str, Any] = dict(data)
        for field, alias in _CLINICAL_ALERT_ALIASES:
            if not merged.get(field) and merged.get(alias):
                merged[field] = merged[alias]
            merged.pop(alias, None)
        merged.setdefault("patient_id", None)
        merged.setdefault("alert_message", None)
        return merged

    @field_validator("patient_id", mode="before")
    @classmethod
    def _patient(cls, value: Any) -> str:
        return _require_text(value, "Patient ID")

    @field_validator("alert_message", mode="before")
    @classmethod
    def _message(cls, value: Any) -> str:
        return _require_text(value, "Alert message")

    @field_validator("alert_type", "triggered_by", mode="before")
    @classmethod
    def _labels(cls, value: Any, info: ValidationInfo) -> Any:
        text = str(value).strip() if value is not None else ""
        return text or cls.model_fields[info.field_name].default

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value: Any) -> Any:
        if value is None or value == "":
            return Severity.MEDIUM
        if isinstance(value, Severity):
            return value
        return str(value).strip().lower()


__all__ = [
    "Severity",
    "HoldType",
    "HoldStatus",
    "FacilityAlertType",
    "ClinicalAlertStatus",
    "Role",
    "DosingHold",
    "PatientPrecaution",
    "FacilityAlert",
    "ClinicalAlert",
    "Patient",
    "HoldCreate",
    "HoldUpdate",
    "PrecautionCreate",
    "FacilityAlertInput",
    "FacilityAlertPatch",
    "ClinicalAlertCreate",
]
