"""Reference HTTP service for holds, precautions, facility and clinical alerts.

Run with ``uvicorn clinic_alerts.main:app``.  Request bodies reuse the input
models from :mod:`clinic_alerts.models`; errors are returned as
``{"error": "<message>"}`` so the client can surface them verbatim.
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import structlog
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, generate_latest
from sqlalchemy.engine import Connection
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog.contextvars import bind_contextvars, unbind_contextvars

from clinic_alerts import repository
from clinic_alerts.dashboard import DEFAULT_FEED_LIMIT, build_alert_feed, summarize_feed
from clinic_alerts.db import get_connection, get_engine, initialise_schema
from clinic_alerts.errors import describe_validation_errors
from clinic_alerts.logging_config import configure_logging
from clinic_alerts.models import (
    ClinicalAlertCreate,
    FacilityAlertInput,
    FacilityAlertPatch,
    HoldCreate,
    HoldStatus,
    HoldUpdate,
    PrecautionCreate,
)

load_dotenv()
configure_logging()

logger = structlog.get_logger(__name__)

MUTATIONS = Counter(
    "clinic_alerts_mutations_total",
    "Alert records created or changed through the API",
    ("entity", "action"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - exercised by uvicorn
    logger.info("lifespan_startup")
    initialise_schema(get_engine())
    start_ts = time.time()
    try:
        yield
    finally:
        logger.info("lifespan_shutdown_complete", uptime=time.time() - start_ts)


app = FastAPI(title="Clinic Alerts API", lifespan=lifespan)


@app.middleware("http")
async def inject_trace_id(request: Request, call_next):
    """Attach or propagate a trace identifier for each request."""

    trace_id = request.headers.get("x-trace-id") or uuid.uuid4().hex
    bind_contextvars(trace_id=trace_id, path=request.url.path, method=request.method)
    response = None
    try:
        response = await call_next(request)
        return response
    except Exception:
        logger.exception("request_failed")
        raise
    finally:
        if response is not None:
            response.headers["X-Trace-Id"] = trace_id
        unbind_contextvars("trace_id", "path", "method")


# Registered on Starlette's base class so unknown routes and methods are covered.
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=dict(exc.headers or {}),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = describe_validation_errors(list(exc.errors()))
    logger.info("request_validation_failed", error=message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def _dump(record) -> Dict[str, Any]:
    return record.model_dump(mode="json")


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics", response_model=None)
def metrics() -> Response:
    return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------


@app.get("/api/patients")
def list_patients(conn: Connection = Depends(get_connection)):
    return {"patients": [_dump(p) for p in repository.list_patients(conn)]}


# ---------------------------------------------------------------------------
# Dosing holds
# ---------------------------------------------------------------------------


@app.get("/api/clinical-alerts/holds")
def list_holds(
    status_filter: Optional[HoldStatus] = Query(None, alias="status"),
    conn: Connection = Depends(get_connection),
):
    holds = repository.list_holds(conn, status=status_filter)
    return {"holds": [_dump(hold) for hold in holds]}


@app.post("/api/clinical-alerts/holds", status_code=status.HTTP_201_CREATED)
def create_hold(body: HoldCreate, conn: Connection = Depends(get_connection)):
    hold = repository.create_hold(
        conn,
        body,
        created_by=body.created_by or "System",
        created_by_role=body.created_by_role or "Provider",
    )
    MUTATIONS.labels(entity="hold", action="create").inc()
    logger.info("hold_created", hold_id=hold.id, patient_id=hold.patient_id)
    return {"hold": _dump(hold)}


@app.put("/api/clinical-alerts/holds/{hold_id}")
def update_hold(hold_id: str, body: HoldUpdate, conn: Connection = Depends(get_connection)):
    if body.cleared_by is None and body.status is None and body.notes is None:
        raise HTTPException(status_code=400, detail="No fields to update")
    hold = repository.update_hold(conn, hold_id, body)
    if hold is None:
        raise HTTPException(status_code=404, detail="Hold not found")
    action = "clear" if body.cleared_by is not None else "update"
    MUTATIONS.labels(entity="hold", action=action).inc()
    logger.info("hold_updated", hold_id=hold.id, status=hold.status.value, action=action)
    return {"hold": _dump(hold)}


# ---------------------------------------------------------------------------
# Precautions
# ---------------------------------------------------------------------------


@app.get("/api/clinical-alerts/precautions")
def list_precautions(
    active: bool = Query(False),
    conn: Connection = Depends(get_connection),
):
    precautions = repository.list_precautions(conn, active_only=active)
    return {"precautions": [_dump(item) for item in precautions]}


@app.post("/api/clinical-alerts/precautions", status_code=status.HTTP_201_CREATED)
def create_precaution(body: PrecautionCreate, conn: Connection = Depends(get_connection)):
    precaution = repository.create_precaution(conn, body, created_by=body.created_by or "System")
    MUTATIONS.labels(entity="precaution", action="create").inc()
    logger.info(
        "precaution_created",
        precaution_id=precaution.id,
        precaution_type=precaution.precaution_type,
    )
    return {"precaution": _dump(precaution)}


# ---------------------------------------------------------------------------
# Facility alerts
# ---------------------------------------------------------------------------


@app.get("/api/clinical-alerts/facility")
def list_facility_alerts(
    active: bool = Query(False),
    conn: Connection = Depends(get_connection),
):
    alerts = repository.list_facility_alerts(conn, active_only=active)
    return {"alerts": [_dump(alert) for alert in alerts]}


@app.post("/api/clinical-alerts/facility", status_code=status.HTTP_201_CREATED)
def create_facility_alert(body: FacilityAlertInput, conn: Connection = Depends(get_connection)):
    alert = repository.create_facility_alert(conn, body, created_by=body.created_by or "System")
    MUTATIONS.labels(entity="facility_alert", action="create").inc()
    logger.info("facility_alert_created", alert_id=alert.id, priority=alert.priority.value)
    return {"alert": _dump(alert)}


@app.patch("/api/clinical-alerts/facility/{alert_id}")
def dismiss_facility_alert(
    alert_id: str,
    body: Optional[FacilityAlertPatch] = None,
    conn: Connection = Depends(get_connection),
):
    active = body.is_active if body is not None else False
    alert = repository.set_facility_alert_active(conn, alert_id, active)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    action = "reactivate" if active else "dismiss"
    MUTATIONS.labels(entity="facility_alert", action=action).inc()
    logger.info("facility_alert_state_changed", alert_id=alert.id, is_active=active)
    return {"alert": _dump(alert)}


@app.put("/api/clinical-alerts/facility/{alert_id}")
def update_facility_alert(
    alert_id: str,
    body: FacilityAlertInput,
    conn: Connection = Depends(get_connection),
):
    alert = repository.replace_facility_alert(conn, alert_id, body)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    MUTATIONS.labels(entity="facility_alert", action="update").inc()
    logger.info("facility_alert_updated", alert_id=alert.id, priority=alert.priority.value)
    return {"alert": _dump(alert)}


# ---------------------------------------------------------------------------
# Combined feed
# ---------------------------------------------------------------------------


@app.get("/api/clinical-alerts")
def alert_feed(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    priority: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_FEED_LIMIT, ge=1, le=500),
    acknowledged: Optional[bool] = Query(None),
    summary: bool = Query(False),
    conn: Connection = Depends(get_connection),
):
    items = build_alert_feed(
        repository.list_holds(conn, status=HoldStatus.ACTIVE, limit=limit),
        repository.list_precautions(conn, active_only=True, limit=limit),
        repository.list_facility_alerts(conn, active_only=True, limit=limit),
        repository.list_clinical_alerts(
            conn, patient_id=patient_id, acknowledged=acknowledged, limit=limit
        ),
        limit=limit,
        patient_id=patient_id,
        priority=priority,
        acknowledged=acknowledged,
    )
    counts = summarize_feed(items)
    payload: Dict[str, Any] = {"alerts": items, "total": counts["total"]}
    if summary:
        payload["countByPriority"] = counts["countByPriority"]
        payload["unacknowledged"] = counts["unacknowledged"]
    else:
        payload["count"] = {"total": counts["total"], "unacknowledged": counts["unacknowledged"]}
    return payload


@app.post("/api/clinical-alerts", status_code=status.HTTP_201_CREATED)
def create_clinical_alert(
    body: ClinicalAlertCreate, conn: Connection = Depends(get_connection)
):
    alert = repository.create_clinical_alert(conn, body)
    MUTATIONS.labels(entity="clinical_alert", action="create").inc()
    logger.info(
        "clinical_alert_created",
        alert_id=alert.id,
        patient_id=alert.patient_id,
        severity=alert.severity.value,
    )
    return {"alert": _dump(alert)}


__all__ = ["app", "MUTATIONS"]
