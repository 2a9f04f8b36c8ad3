"""In-memory store for dosing holds, precautions and facility alerts.

The store owns the three collections and their loading flags.  Reloads are
explicit and return a :class:`FetchResult`; a failed reload keeps whatever was
loaded before so the caller can decide between stale data, an empty state or
an error banner.  Each collection carries a generation counter so a slow
response from an older reload never overwrites a newer one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

import structlog

from clinic_alerts import seed
from clinic_alerts.config import get_client_settings
from clinic_alerts.errors import RequestFailedError
from clinic_alerts.models import DosingHold, FacilityAlert, HoldStatus, PatientPrecaution


logger = structlog.get_logger(__name__)

HOLDS = "holds"
PRECAUTIONS = "precautions"
FACILITY_ALERTS = "facility_alerts"
COLLECTIONS = (HOLDS, PRECAUTIONS, FACILITY_ALERTS)

_FETCHERS = {
    HOLDS: "list_holds",
    PRECAUTIONS: "list_precautions",
    FACILITY_ALERTS: "list_facility_alerts",
}

_SEEDS: Dict[str, Callable[[], List[Any]]] = {
    HOLDS: seed.demo_holds,
    PRECAUTIONS: seed.demo_precautions,
    FACILITY_ALERTS: seed.demo_facility_alerts,
}


@dataclass
class FetchResult:
    """Outcome of reloading one collection."""

    collection: str
    items: List[Any] = field(default_factory=list)
    error: Optional[RequestFailedError] = None
    seeded: bool = False
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class AlertStore:
    """Holds the three alert collections fetched from the collaborator."""

    def __init__(self, client: Any, *, offline_seed: Optional[bool] = None) -> None:
        self._client = client
        if offline_seed is None:
            offline_seed = get_client_settings().offline_seed
        self._offline_seed = offline_seed
        self._items: Dict[str, List[Any]] = {name: [] for name in COLLECTIONS}
        self.loading: Dict[str, bool] = {name: False for name in COLLECTIONS}
        self._issued: Dict[str, int] = {name: 0 for name in COLLECTIONS}
        self._applied: Dict[str, int] = {name: 0 for name in COLLECTIONS}
        self._lock = Lock()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def holds(self) -> List[DosingHold]:
        return list(self._items[HOLDS])

    @property
    def precautions(self) -> List[PatientPrecaution]:
        return list(self._items[PRECAUTIONS])

    @property
    def facility_alerts(self) -> List[FacilityAlert]:
        return list(self._items[FACILITY_ALERTS])

    def items(self, collection: str) -> List[Any]:
        return list(self._items[collection])

    def find(self, collection: str, record_id: str) -> Optional[Any]:
        for record in self._items[collection]:
            if record.id == str(record_id):
                return record
        return None

    def get_hold(self, hold_id: str) -> Optional[DosingHold]:
        return self.find(HOLDS, hold_id)

    def active_holds(self) -> List[DosingHold]:
        return [hold for hold in self._items[HOLDS] if hold.status == HoldStatus.ACTIVE]

    def active_precautions(self) -> List[PatientPrecaution]:
        return [item for item in self._items[PRECAUTIONS] if item.is_active]

    def active_facility_alerts(self) -> List[FacilityAlert]:
        return [alert for alert in self._items[FACILITY_ALERTS] if alert.is_active]

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Return a JSON-ready copy of every collection."""

        return {
            name: [record.model_dump(mode="json") for record in self._items[name]]
            for name in COLLECTIONS
        }

    # ------------------------------------------------------------------
    # Reloading
    # ------------------------------------------------------------------
    def reload(self, collection: str) -> FetchResult:
        """Fetch ``collection`` from the collaborator and apply it if current."""

        fetch = getattr(self._client, _FETCHERS[collection])
        with self._lock:
            self._issued[collection] += 1
            generation = self._issued[collection]
            self.loading[collection] = True

        result = FetchResult(collection=collection)
        try:
            result.items = list(fetch())
        except RequestFailedError as exc:
            result.error = exc
            logger.warning("collection_reload_failed", collection=collection, error=exc.message)
            if self._offline_seed:
                result.items = _SEEDS[collection]()
                result.seeded = True
                logger.info("collection_seeded", collection=collection, count=len(result.items))

        with self._lock:
            if generation == self._issued[collection]:
                self.loading[collection] = False
            if generation <= self._applied[collection]:
                result.stale = True
                logger.info("collection_reload_superseded", collection=collection, generation=generation)
                return result
            if result.ok or result.seeded:
                self._items[collection] = list(result.items)
                self._applied[collection] = generation
        return result

    def reload_holds(self) -> FetchResult:
        return self.reload(HOLDS)

    def reload_precautions(self) -> FetchResult:
        return self.reload(PRECAUTIONS)

    def reload_facility_alerts(self) -> FetchResult:
        return self.reload(FACILITY_ALERTS)

    def reload_all(self) -> Dict[str, FetchResult]:
        """Reload every collection; one failure does not stop the others."""

        return {name: self.reload(name) for name in COLLECTIONS}

    # ------------------------------------------------------------------
    # Local reconciliation
    # ------------------------------------------------------------------
    def merge(self, collection: str, record: Any) -> Any:
        """Replace the record with the same id, or prepend it when new."""

        with self._lock:
            items = self._items[collection]
            for index, existing in enumerate(items):
                if existing.id == record.id:
                    items[index] = record
                    break
            else:
                items.insert(0, record)
        return record


__all__ = [
    "AlertStore",
    "FetchResult",
    "HOLDS",
    "PRECAUTIONS",
    "FACILITY_ALERTS",
    "COLLECTIONS",
]
