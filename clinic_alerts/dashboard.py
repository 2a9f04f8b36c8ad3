"""Combined alert feed for the staff dashboard.

Clinical alerts, active dosing holds, active precautions and active facility
alerts are flattened into one newest-first list of feed items.  The same helpers back
the ``GET /api/clinical-alerts`` endpoint and can be run against an
:class:`~clinic_alerts.store.AlertStore` on the client side.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from clinic_alerts.models import (
    ClinicalAlert,
    DosingHold,
    FacilityAlert,
    HoldStatus,
    PatientPrecaution,
    Severity,
)
from clinic_alerts.time_utils import ensure_utc, format_time_ago, isoformat_z

DEFAULT_FEED_LIMIT = 50

_PRIORITY_BY_SEVERITY = {
    "critical": "high",
    "high": "high",
    "medium": "medium",
    "low": "low",
}

_VARIANT_BY_SEVERITY = {
    "critical": "destructive",
    "high": "destructive",
    "medium": "warning",
    "low": "info",
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _severity_text(severity: Any) -> str:
    if isinstance(severity, Severity):
        return severity.value
    return str(severity or "")


def severity_to_priority(severity: Any) -> str:
    return _PRIORITY_BY_SEVERITY.get(_severity_text(severity), "medium")


def severity_to_variant(severity: Any) -> str:
    return _VARIANT_BY_SEVERITY.get(_severity_text(severity), "default")


def _patient_label(name: Optional[str]) -> str:
    if not name or name == "Unknown":
        return "Unknown Patient"
    return name


def _item(
    *,
    item_id: str,
    alert_type: str,
    patient: str,
    patient_id: Optional[str],
    message: str,
    severity: Any,
    created_at: Optional[datetime],
    now: Optional[datetime],
    acknowledged: bool = False,
) -> Dict[str, Any]:
    return {
        "id": item_id,
        "alertType": alert_type,
        "patient": patient,
        "patientId": patient_id,
        "message": message or "No message",
        "priority": severity_to_priority(severity),
        "type": severity_to_variant(severity),
        "time": format_time_ago(created_at, now=now),
        "isAcknowledged": acknowledged,
        "createdAt": isoformat_z(created_at),
        "_sort": ensure_utc(created_at) if created_at else _EPOCH,
    }


def build_alert_feed(
    holds: Iterable[DosingHold],
    precautions: Iterable[PatientPrecaution],
    facility_alerts: Iterable[FacilityAlert],
    clinical_alerts: Iterable[ClinicalAlert] = (),
    *,
    limit: int = DEFAULT_FEED_LIMIT,
    patient_id: Optional[str] = None,
    priority: Optional[str] = None,
    acknowledged: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Return feed items from every source, newest first.

    Holds, precautions and facility alerts contribute only while active and
    are never acknowledged.  Clinical alerts contribute in any status and
    count as acknowledged once they leave ``active``.

    ``patient_id`` drops facility alerts and other patients' items;
    ``priority`` filters on the mapped feed priority (``all`` disables it);
    ``acknowledged`` keeps only items in that state.
    """

    items: List[Dict[str, Any]] = []
    for alert in clinical_alerts:
        items.append(
            _item(
                item_id=alert.id,
                alert_type=alert.alert_type,
                patient=(
                    _patient_label(alert.patient_name) if alert.patient_id else "Facility Alert"
                ),
                patient_id=alert.patient_id,
                message=alert.alert_message,
                severity=alert.severity,
                created_at=alert.created_at,
                now=now,
                acknowledged=alert.is_acknowledged,
            )
        )
    for hold in holds:
        if hold.status != HoldStatus.ACTIVE:
            continue
        items.append(
            _item(
                item_id=f"hold_{hold.id}",
                alert_type="dosing_hold",
                patient=_patient_label(hold.patient_name),
                patient_id=hold.patient_id,
                message=f"Dosing Hold: {hold.reason}",
                severity=hold.severity,
                created_at=hold.created_at,
                now=now,
            )
        )
    for precaution in precautions:
        if not precaution.is_active:
            continue
        items.append(
            _item(
                item_id=f"precaution_{precaution.id}",
                alert_type="patient_precaution",
                patient=_patient_label(precaution.patient_name),
                patient_id=precaution.patient_id,
                message=precaution.custom_text
                or f"Patient Precaution: {precaution.precaution_type}",
                severity="medium",
                created_at=precaution.created_at,
                now=now,
            )
        )
    for alert in facility_alerts:
        if not alert.is_active:
            continue
        items.append(
            _item(
                item_id=f"facility_{alert.id}",
                alert_type=alert.alert_type.value,
                patient="Facility Alert",
                patient_id=None,
                message=alert.message,
                severity=alert.priority,
                created_at=alert.created_at,
                now=now,
            )
        )

    if patient_id:
        items = [item for item in items if item["patientId"] == str(patient_id)]
    if priority and priority != "all":
        items = [item for item in items if item["priority"] == priority]
    if acknowledged is not None:
        items = [item for item in items if item["isAcknowledged"] is acknowledged]

    items.sort(key=lambda item: item["_sort"], reverse=True)
    feed = items[: max(0, limit)]
    for item in feed:
        item.pop("_sort")
    return feed


def summarize_feed(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Return priority counts and the unacknowledged total for ``items``."""

    counts = {"high": 0, "medium": 0, "low": 0}
    for item in items:
        if item["priority"] in counts:
            counts[item["priority"]] += 1
    return {
        "total": len(items),
        "countByPriority": counts,
        "unacknowledged": sum(1 for item in items if not item["isAcknowledged"]),
    }


def store_summary(store) -> Dict[str, int]:
    """Return the headline counters shown above the alert lists."""

    active_holds = store.active_holds()
    return {
        "activeHolds": len(active_holds),
        "criticalHolds": sum(1 for hold in active_holds if hold.severity == Severity.CRITICAL),
        "activePrecautions": len(store.active_precautions()),
        "activeFacilityAlerts": len(store.active_facility_alerts()),
    }


__all__ = [
    "DEFAULT_FEED_LIMIT",
    "build_alert_feed",
    "summarize_feed",
    "store_summary",
    "severity_to_priority",
    "severity_to_variant",
]
