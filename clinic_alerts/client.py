"""HTTP client for the clinical alerts collaborator.

Every method issues one JSON request and returns validated records.  Any
failure (network error, non-2xx status, malformed body) is raised as
:class:`~clinic_alerts.errors.RequestFailedError` carrying the collaborator's
``error`` message when it supplied one.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, urljoin

import requests
import structlog
from prometheus_client import Counter
from pydantic import ValidationError

from clinic_alerts.config import ClientSettings, get_client_settings
from clinic_alerts.errors import RequestFailedError
from clinic_alerts.models import DosingHold, FacilityAlert, PatientPrecaution


logger = structlog.get_logger(__name__)

COLLABORATOR_FAILURES = Counter(
    "clinic_alerts_collaborator_failures_total",
    "Collaborator calls that failed or returned an error status",
    ("reason",),
)

HOLDS_PATH = "/api/clinical-alerts/holds"
PRECAUTIONS_PATH = "/api/clinical-alerts/precautions"
FACILITY_PATH = "/api/clinical-alerts/facility"
PATIENTS_PATH = "/api/patients"

_ERROR_MESSAGE_KEYS = ("error", "message", "detail")


def _error_message(response: requests.Response) -> Optional[str]:
    """Extract a readable message from an error response, if any."""

    try:
        payload = response.json()
    except ValueError:
        text = (response.text or "").strip()
        return text or None
    if isinstance(payload, Mapping):
        for key in _ERROR_MESSAGE_KEYS:
            value = payload.get(key)
            if isinstance(value, Mapping):
                value = value.get("message")
            if value not in (None, ""):
                return str(value)
    return None


class AlertsApiClient:
    """Thin wrapper around a :class:`requests.Session`."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or get_client_settings()
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return urljoin(self.settings.api_url.rstrip("/") + "/", path.lstrip("/"))

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = self._url(path)
        try:
            response = self._session.request(
                method,
                url,
                json=json,
                headers=self.settings.headers(),
                timeout=self.settings.timeout,
            )
        except requests.exceptions.RequestException as exc:
            COLLABORATOR_FAILURES.labels(reason="network_failure").inc()
            logger.warning("collaborator_unreachable", method=method, url=url, error=str(exc))
            raise RequestFailedError() from exc

        if not response.ok:
            COLLABORATOR_FAILURES.labels(reason="error_status").inc()
            message = _error_message(response)
            logger.warning(
                "collaborator_request_failed",
                method=method,
                url=url,
                status=response.status_code,
                error=message,
            )
            raise RequestFailedError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            COLLABORATOR_FAILURES.labels(reason="invalid_body").inc()
            raise RequestFailedError("Invalid response from server", status_code=response.status_code) from exc
        if not isinstance(payload, dict):
            COLLABORATOR_FAILURES.labels(reason="invalid_body").inc()
            raise RequestFailedError("Invalid response from server", status_code=response.status_code)
        return payload

    def _records(self, payload: Mapping[str, Any], key: str, model):
        items = payload.get(key) or []
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as exc:
            COLLABORATOR_FAILURES.labels(reason="invalid_body").inc()
            raise RequestFailedError("Invalid response from server") from exc

    def _record(self, payload: Mapping[str, Any], key: str, model):
        item = payload.get(key)
        if not isinstance(item, Mapping):
            COLLABORATOR_FAILURES.labels(reason="invalid_body").inc()
            raise RequestFailedError("Invalid response from server")
        try:
            return model.model_validate(item)
        except ValidationError as exc:
            COLLABORATOR_FAILURES.labels(reason="invalid_body").inc()
            raise RequestFailedError("Invalid response from server") from exc

    # ------------------------------------------------------------------
    # Dosing holds
    # ------------------------------------------------------------------
    def list_holds(self) -> List[DosingHold]:
        return self._records(self._request("GET", HOLDS_PATH), "holds", DosingHold)

    def create_hold(self, payload: Mapping[str, Any]) -> DosingHold:
        return self._record(self._request("POST", HOLDS_PATH, json=payload), "hold", DosingHold)

    def update_hold(self, hold_id: str, payload: Mapping[str, Any]) -> DosingHold:
        path = f"{HOLDS_PATH}/{quote(str(hold_id), safe='')}"
        return self._record(self._request("PUT", path, json=payload), "hold", DosingHold)

    # ------------------------------------------------------------------
    # Precautions
    # ------------------------------------------------------------------
    def list_precautions(self) -> List[PatientPrecaution]:
        payload = self._request("GET", PRECAUTIONS_PATH)
        return self._records(payload, "precautions", PatientPrecaution)

    def create_precaution(self, payload: Mapping[str, Any]) -> PatientPrecaution:
        response = self._request("POST", PRECAUTIONS_PATH, json=payload)
        return self._record(response, "precaution", PatientPrecaution)

    # ------------------------------------------------------------------
    # Facility alerts
    # ------------------------------------------------------------------
    def list_facility_alerts(self) -> List[FacilityAlert]:
        return self._records(self._request("GET", FACILITY_PATH), "alerts", FacilityAlert)

    def create_facility_alert(self, payload: Mapping[str, Any]) -> FacilityAlert:
        response = self._request("POST", FACILITY_PATH, json=payload)
        return self._record(response, "alert", FacilityAlert)

    def dismiss_facility_alert(self, alert_id: str) -> FacilityAlert:
        path = f"{FACILITY_PATH}/{quote(str(alert_id), safe='')}"
        response = self._request("PATCH", path, json={"is_active": False})
        return self._record(response, "alert", FacilityAlert)

    def update_facility_alert(self, alert_id: str, payload: Mapping[str, Any]) -> FacilityAlert:
        path = f"{FACILITY_PATH}/{quote(str(alert_id), safe='')}"
        response = self._request("PUT", path, json=payload)
        return self._record(response, "alert", FacilityAlert)

    # ------------------------------------------------------------------
    # Patient directory
    # ------------------------------------------------------------------
    def list_patients(self) -> List[Dict[str, Any]]:
        """Return raw patient rows; :mod:`clinic_alerts.patients` normalises them."""

        payload = self._request("GET", PATIENTS_PATH)
        items = payload.get("patients") or []
        return [dict(item) for item in items if isinstance(item, Mapping)]


__all__ = ["AlertsApiClient", "COLLABORATOR_FAILURES"]
