"""Doctor schedules, overrides, blocks, slot configuration and appointments."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_availability_schema"
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text("(datetime('now'))")


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "working_days" not in existing_tables:
        op.create_table(
            "working_days",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("day", sa.Text(), nullable=False),
            sa.Column("start_time", sa.Text(), nullable=False),
            sa.Column("end_time", sa.Text(), nullable=False),
            sa.Column("is_available", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.Text(), nullable=False, server_default=NOW),
            sa.UniqueConstraint("doctor_id", "day"),
        )

    if "schedule_sessions" not in existing_tables:
        op.create_table(
            "schedule_sessions",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column(
                "working_day_id",
                sa.Text(),
                sa.ForeignKey("working_days.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("start_time", sa.Text(), nullable=False),
            sa.Column("end_time", sa.Text(), nullable=False),
            sa.Column("session_type", sa.Text(), nullable=False, server_default="CLINIC"),
            sa.Column("max_patients", sa.Integer(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
        )

    if "availability_breaks" not in existing_tables:
        op.create_table(
            "availability_breaks",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column(
                "working_day_id",
                sa.Text(),
                sa.ForeignKey("working_days.id", ondelete="CASCADE"),
                nullable=True,
            ),
            sa.Column("day_of_week", sa.Text(), nullable=True),
            sa.Column("start_time", sa.Text(), nullable=False),
            sa.Column("end_time", sa.Text(), nullable=False),
            sa.Column("reason", sa.Text(), nullable=True),
        )

    if "availability_templates" not in existing_tables:
        op.create_table(
            "availability_templates",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("name", sa.Text(), nullable=False, server_default="Standard"),
            sa.Column("is_active", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.Text(), nullable=False, server_default=NOW),
        )

    if "availability_template_slots" not in existing_tables:
        op.create_table(
            "availability_template_slots",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column(
                "template_id",
                sa.Text(),
                sa.ForeignKey("availability_templates.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("day_of_week", sa.Integer(), nullable=False),
            sa.Column("start_time", sa.Text(), nullable=False),
            sa.Column("end_time", sa.Text(), nullable=False),
            sa.Column("slot_type", sa.Text(), nullable=True),
            sa.CheckConstraint("day_of_week BETWEEN 0 AND 6"),
        )

    if "availability_overrides" not in existing_tables:
        op.create_table(
            "availability_overrides",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("start_date", sa.Text(), nullable=False),
            sa.Column("end_date", sa.Text(), nullable=False),
            sa.Column("start_time", sa.Text(), nullable=True),
            sa.Column("end_time", sa.Text(), nullable=True),
            sa.Column("is_blocked", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("created_at", sa.Text(), nullable=False, server_default=NOW),
        )
        op.create_index(
            "idx_overrides_doctor_dates",
            "availability_overrides",
            ["doctor_id", "start_date", "end_date"],
        )

    if "schedule_blocks" not in existing_tables:
        op.create_table(
            "schedule_blocks",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("start_date", sa.Text(), nullable=False),
            sa.Column("end_date", sa.Text(), nullable=False),
            sa.Column("start_time", sa.Text(), nullable=True),
            sa.Column("end_time", sa.Text(), nullable=True),
            sa.Column("block_type", sa.Text(), nullable=False, server_default="OTHER"),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("created_by", sa.Text(), nullable=True),
            sa.Column("created_at", sa.Text(), nullable=False, server_default=NOW),
        )
        op.create_index(
            "idx_blocks_doctor_dates",
            "schedule_blocks",
            ["doctor_id", "start_date", "end_date"],
        )

    if "slot_configurations" not in existing_tables:
        op.create_table(
            "slot_configurations",
            sa.Column("doctor_id", sa.Text(), primary_key=True),
            sa.Column("default_duration", sa.Integer(), nullable=False),
            sa.Column("buffer_time", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("slot_interval", sa.Integer(), nullable=False),
            sa.Column("updated_at", sa.Text(), nullable=False, server_default=NOW),
        )

    if "appointments" not in existing_tables:
        op.create_table(
            "appointments",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("doctor_id", sa.Text(), nullable=False),
            sa.Column("patient_name", sa.Text(), nullable=True),
            sa.Column("appointment_date", sa.Text(), nullable=False),
            sa.Column("time", sa.Text(), nullable=False),
            sa.Column("duration_minutes", sa.Integer(), nullable=True),
            sa.Column("status", sa.Text(), nullable=False, server_default="SCHEDULED"),
            sa.Column("created_at", sa.Text(), nullable=False, server_default=NOW),
            sa.Column("updated_at", sa.Text(), nullable=False, server_default=NOW),
            sa.CheckConstraint("status IN ('PENDING','SCHEDULED','CANCELLED','COMPLETED')"),
        )
        op.create_index("idx_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"])


def downgrade() -> None:
    op.drop_index("idx_appointments_doctor_date", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("slot_configurations")
    op.drop_index("idx_blocks_doctor_dates", table_name="schedule_blocks")
    op.drop_table("schedule_blocks")
    op.drop_index("idx_overrides_doctor_dates", table_name="availability_overrides")
    op.drop_table("availability_overrides")
    op.drop_table("availability_template_slots")
    op.drop_table("availability_templates")
    op.drop_table("availability_breaks")
    op.drop_table("schedule_sessions")
    op.drop_table("working_days")
