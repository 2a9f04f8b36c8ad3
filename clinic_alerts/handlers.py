"""Create, clear, dismiss and edit operations on the alert collections.

Each operation validates its input before contacting the collaborator and
returns the authoritative record.  Validation problems raise
:class:`~clinic_alerts.errors.AlertValidationError`; collaborator failures
raise :class:`~clinic_alerts.errors.RequestFailedError`.  Neither path touches
the store.

Holds and precautions are refreshed from the collaborator after a successful
mutation because the patient's display name is joined server-side.  Facility
alerts have no such join, so the returned record is merged by id.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from clinic_alerts.catalog import precaution_style
from clinic_alerts.clearance import format_clearance, roles_in_label
from clinic_alerts.config import get_client_settings
from clinic_alerts.errors import AlertValidationError, describe_validation_errors
from clinic_alerts.models import (
    DosingHold,
    FacilityAlert,
    FacilityAlertInput,
    HoldCreate,
    HoldStatus,
    HoldUpdate,
    PatientPrecaution,
    PrecautionCreate,
    Role,
)
from clinic_alerts.store import FACILITY_ALERTS, HOLDS, PRECAUTIONS, AlertStore


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_input(model: Type[ModelT], data: Union[ModelT, Mapping[str, Any], None]) -> ModelT:
    """Return ``data`` as ``model`` or raise :class:`AlertValidationError`."""

    if isinstance(data, model):
        return data
    try:
        return model.model_validate(dict(data or {}))
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False)
        raise AlertValidationError(describe_validation_errors(errors), errors) from exc


def _require_id(value: Any, label: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise AlertValidationError(f"{label} is required")
    return text


class AlertActions:
    """Mutation handlers bound to a store and its collaborator client."""

    def __init__(
        self,
        store: AlertStore,
        client: Any,
        *,
        actor_name: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> None:
        settings = get_client_settings()
        self.store = store
        self._client = client
        self.actor_name = actor_name or settings.actor_name
        self.actor_role = actor_role or settings.actor_role

    def _refresh(self, collection: str, record: Any) -> Any:
        result = self.store.reload(collection)
        # Stale results are not merged; a newer reload already replaced the collection.
        if not result.ok:
            logger.warning(
                "post_mutation_reload_incomplete",
                collection=collection,
                record_id=record.id,
                error=result.error.message if result.error else None,
            )
            self.store.merge(collection, record)
        return self.store.find(collection, record.id) or record

    # ------------------------------------------------------------------
    # Dosing holds
    # ------------------------------------------------------------------
    def create_hold(self, data: Union[HoldCreate, Mapping[str, Any]]) -> DosingHold:
        hold = validate_input(HoldCreate, data)
        payload = hold.model_dump(mode="json")
        payload["created_by"] = hold.created_by or self.actor_name
        payload["created_by_role"] = hold.created_by_role or self.actor_role
        payload["cleared_by"] = []
        created = self._client.create_hold(payload)
        logger.info(
            "hold_created",
            hold_id=created.id,
            patient_id=created.patient_id,
            severity=created.severity.value,
        )
        return self._refresh(HOLDS, created)

    def clear_hold(self, hold_id: str, cleared_by: str) -> DosingHold:
        hold_id = _require_id(hold_id, "Hold")
        cleared_by = _require_id(cleared_by, "Clearance")
        update = validate_input(HoldUpdate, {"cleared_by": cleared_by})
        updated = self._client.update_hold(hold_id, {"cleared_by": update.cleared_by})
        logger.info(
            "hold_clearance_recorded",
            hold_id=hold_id,
            roles=sorted(role.value for role in roles_in_label(update.cleared_by)),
            status=updated.status.value,
        )
        return self._refresh(HOLDS, updated)

    def clear_hold_as(self, hold_id: str, role: Union[Role, str]) -> DosingHold:
        """Clear ``hold_id`` as the configured actor acting in ``role``."""

        parsed = Role.parse(role)
        if parsed is None:
            raise AlertValidationError(f"Unknown clearance role: {role!r}")
        return self.clear_hold(hold_id, format_clearance(self.actor_name, parsed))

    def update_hold(
        self,
        hold_id: str,
        *,
        status: Optional[Union[HoldStatus, str]] = None,
        notes: Optional[str] = None,
    ) -> DosingHold:
        """Set a hold's status (e.g. ``expired``) or notes."""

        hold_id = _require_id(hold_id, "Hold")
        update = validate_input(HoldUpdate, {"status": status, "notes": notes})
        payload = update.model_dump(mode="json", exclude_none=True)
        if not payload:
            raise AlertValidationError("No fields to update")
        updated = self._client.update_hold(hold_id, payload)
        logger.info("hold_updated", hold_id=hold_id, fields=sorted(payload))
        return self._refresh(HOLDS, updated)

    # ------------------------------------------------------------------
    # Precautions
    # ------------------------------------------------------------------
    def create_precaution(
        self, data: Union[PrecautionCreate, Mapping[str, Any]]
    ) -> PatientPrecaution:
        precaution = validate_input(PrecautionCreate, data)
        icon, color = precaution_style(
            precaution.precaution_type, precaution.icon, precaution.color
        )
        payload = precaution.model_dump(mode="json")
        payload.update(
            icon=icon,
            color=color,
            created_by=precaution.created_by or self.actor_name,
        )
        created = self._client.create_precaution(payload)
        logger.info(
            "precaution_created",
            precaution_id=created.id,
            patient_id=created.patient_id,
            precaution_type=created.precaution_type,
        )
        return self._refresh(PRECAUTIONS, created)

    # ------------------------------------------------------------------
    # Facility alerts
    # ------------------------------------------------------------------
    def _facility_payload(self, alert: FacilityAlertInput) -> Dict[str, Any]:
        payload = alert.model_dump(mode="json")
        payload["created_by"] = alert.created_by or self.actor_name
        return payload

    def create_facility_alert(
        self, data: Union[FacilityAlertInput, Mapping[str, Any]]
    ) -> FacilityAlert:
        alert = validate_input(FacilityAlertInput, data)
        created = self._client.create_facility_alert(self._facility_payload(alert))
        logger.info("facility_alert_created", alert_id=created.id, priority=created.priority.value)
        return self.store.merge(FACILITY_ALERTS, created)

    def update_facility_alert(
        self, alert_id: str, data: Union[FacilityAlertInput, Mapping[str, Any]]
    ) -> FacilityAlert:
        alert_id = _require_id(alert_id, "Alert")
        alert = validate_input(FacilityAlertInput, data)
        updated = self._client.update_facility_alert(alert_id, self._facility_payload(alert))
        logger.info("facility_alert_updated", alert_id=updated.id, priority=updated.priority.value)
        return self.store.merge(FACILITY_ALERTS, updated)

    def dismiss_facility_alert(self, alert_id: str) -> FacilityAlert:
        alert_id = _require_id(alert_id, "Alert")
        dismissed = self._client.dismiss_facility_alert(alert_id)
        logger.info("facility_alert_dismissed", alert_id=dismissed.id)
        return self.store.merge(FACILITY_ALERTS, dismissed)


__all__ = ["AlertActions", "validate_input"]
