"""Initial schema for accidents, dispatch records and notifications.

Revision ID: e1a7c3d90b24
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "e1a7c3d90b24"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "accidents",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("report_number", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("location_address", sa.String(length=255), nullable=False),
        sa.Column("weather_conditions", sa.String(length=100), nullable=True),
        sa.Column("road_conditions", sa.String(length=100), nullable=True),
        sa.Column("number_of_vehicles", sa.Integer(), nullable=False),
        sa.Column("number_of_injuries", sa.Integer(), nullable=False),
        sa.Column("number_of_fatalities", sa.Integer(), nullable=False),
        sa.Column("reported_by_id", sa.String(length=64), nullable=False),
        sa.Column("assigned_officer_id", sa.String(length=64), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.UniqueConstraint("report_number"),
        if_not_exists=True,
    )
    op.create_index("ix_accidents_severity", "accidents", ["severity"], if_not_exists=True)
    op.create_index("ix_accidents_status", "accidents", ["status"], if_not_exists=True)
    op.create_index(
        "ix_accidents_assigned_officer_id",
        "accidents",
        ["assigned_officer_id"],
        if_not_exists=True,
    )
    op.create_index(
        "idx_accidents_cursor",
        "accidents",
        [sa.text("created_at DESC"), sa.text("id DESC")],
        if_not_exists=True,
    )
    op.create_index(
        "idx_accidents_lat_lng", "accidents", ["latitude", "longitude"], if_not_exists=True
    )

    op.create_table(
        "emergency_services",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "accident_id",
            sa.String(length=36),
            sa.ForeignKey("accidents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("service_provider", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=50), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responder_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        if_not_exists=True,
    )
    op.create_index(
        "ix_emergency_services_accident_id",
        "emergency_services",
        ["accident_id"],
        if_not_exists=True,
    )
    op.create_index(
        "ix_emergency_services_status", "emergency_services", ["status"], if_not_exists=True
    )
    op.create_index(
        "ix_emergency_services_responder_id",
        "emergency_services",
        ["responder_id"],
        if_not_exists=True,
    )
    op.create_index(
        "idx_emergency_services_accident_seq",
        "emergency_services",
        ["accident_id", "sequence"],
        if_not_exists=True,
    )
    op.create_index(
        "ix_emergency_services_dispatched_at",
        "emergency_services",
        ["dispatched_at"],
        if_not_exists=True,
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=10), nullable=False),
        sa.Column(
            "accident_id",
            sa.String(length=36),
            sa.ForeignKey("accidents.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        if_not_exists=True,
    )
    op.create_index(
        "ix_notifications_user_id", "notifications", ["user_id"], if_not_exists=True
    )
    op.create_index(
        "ix_notifications_accident_id", "notifications", ["accident_id"], if_not_exists=True
    )


def downgrade() -> None:
    op.drop_table("notifications", if_exists=True)
    op.drop_table("emergency_services", if_exists=True)
    op.drop_table("accidents", if_exists=True)
