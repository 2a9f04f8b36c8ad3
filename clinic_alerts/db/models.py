"""SQLAlchemy table metadata for the alerts service."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

patients = sa.Table(
    "patients",
    metadata,
    sa.Column("id", sa.String, primary_key=True),
    sa.Column("first_name", sa.String, nullable=False, server_default=sa.text("''")),
    sa.Column("last_name", sa.String, nullable=False, server_default=sa.text("''")),
    sa.Column("mrn", sa.String, nullable=True),
)
sa.Index("idx_patients_last_first", patients.c.last_name, patients.c.first_name)

dosing_holds = sa.Table(
    "dosing_holds",
    metadata,
    sa.Column("id", sa.String, primary_key=True),
    sa.Column("patient_id", sa.String, sa.ForeignKey("patients.id"), nullable=False),
    sa.Column("hold_type", sa.String, nullable=False),
    sa.Column("reason", sa.Text, nullable=False),
    sa.Column("created_by", sa.String, nullable=False),
    sa.Column("created_by_role", sa.String, nullable=False),
    sa.Column("requires_clearance_from", sa.JSON, nullable=False),
    sa.Column("cleared_by", sa.JSON, nullable=False),
    sa.Column("status", sa.String, nullable=False, server_default=sa.text("'active'")),
    sa.Column("severity", sa.String, nullable=False, server_default=sa.text("'medium'")),
    sa.Column("notes", sa.Text, nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("cleared_at", sa.DateTime(timezone=True), nullable=True),
)
sa.Index("idx_dosing_holds_patient", dosing_holds.c.patient_id)
sa.Index("idx_dosing_holds_status", dosing_holds.c.status)

patient_precautions = sa.Table(
    "patient_precautions",
    metadata,
    sa.Column("id", sa.String, primary_key=True),
    sa.Column("patient_id", sa.String, sa.ForeignKey("patients.id"), nullable=False),
    sa.Column("precaution_type", sa.String, nullable=False),
    sa.Column("custom_text", sa.Text, nullable=True),
    sa.Column("icon", sa.String, nullable=False),
    sa.Column("color", sa.String, nullable=False),
    sa.Column("created_by", sa.String, nullable=False),
    sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("show_on_chart", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
)
sa.Index("idx_patient_precautions_patient", patient_precautions.c.patient_id)

facility_alerts = sa.Table(
    "facility_alerts",
    metadata,
    sa.Column("id", sa.String, primary_key=True),
    sa.Column("alert_type", sa.String, nullable=False),
    sa.Column("message", sa.Text, nullable=False),
    sa.Column("priority", sa.String, nullable=False, server_default=sa.text("'medium'")),
    sa.Column("affected_areas", sa.JSON, nullable=False),
    sa.Column("created_by", sa.String, nullable=False),
    sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
)
sa.Index("idx_facility_alerts_active", facility_alerts.c.is_active)

clinical_alerts = sa.Table(
    "clinical_alerts",
    metadata,
    sa.Column("id", sa.String, primary_key=True),
    sa.Column("patient_id", sa.String, sa.ForeignKey("patients.id"), nullable=True),
    sa.Column("alert_type", sa.String, nullable=False, server_default=sa.text("'general'")),
    sa.Column("severity", sa.String, nullable=False, server_default=sa.text("'medium'")),
    sa.Column("alert_message", sa.Text, nullable=False),
    sa.Column("triggered_by", sa.String, nullable=False, server_default=sa.text("'manual'")),
    sa.Column("status", sa.String, nullable=False, server_default=sa.text("'active'")),
    sa.Column("acknowledged_by", sa.String, nullable=True),
    sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)
sa.Index("idx_clinical_alerts_patient", clinical_alerts.c.patient_id)
sa.Index("idx_clinical_alerts_status", clinical_alerts.c.status)


__all__ = [
    "metadata",
    "patients",
    "dosing_holds",
    "patient_precautions",
    "facility_alerts",
    "clinical_alerts",
]
