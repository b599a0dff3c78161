"""Initial schema for clinic booking."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_APPOINTMENT = sa.text("status != 'CANCELLED'")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    tables = set(sa.inspect(bind).get_table_names())

    if "users" not in tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("email", sa.String(255), nullable=False, unique=True),
            sa.Column("password_hash", sa.Text(), nullable=False),
            sa.Column("first_name", sa.String(50), nullable=False),
            sa.Column("last_name", sa.String(50), nullable=False),
            sa.Column("phone", sa.String(50), nullable=True),
            sa.Column("role", sa.String(32), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
            *_timestamps(),
        )

    if "doctors" not in tables:
        op.create_table(
            "doctors",
            sa.Column("id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("specialization", sa.String(32), nullable=False),
            sa.Column("education", sa.Text(), nullable=True),
            sa.Column("experience", sa.Text(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            *_timestamps(),
        )

    if "patients" not in tables:
        op.create_table(
            "patients",
            sa.Column("id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("address", sa.Text(), nullable=True),
            *_timestamps(),
        )

    if "time_slots" not in tables:
        op.create_table(
            "time_slots",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column(
                "doctor_id",
                sa.String(36),
                sa.ForeignKey("doctors.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("start_time", sa.DateTime(), nullable=False),
            sa.Column("end_time", sa.DateTime(), nullable=False),
            sa.Column("status", sa.String(32), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("doctor_id", "start_time", name="uq_time_slots_doctor_start"),
        )
        op.create_index(
            "idx_time_slots_doctor_status_start", "time_slots", ["doctor_id", "status", "start_time"]
        )

    if "appointments" not in tables:
        op.create_table(
            "appointments",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False),
            sa.Column("doctor_id", sa.String(36), sa.ForeignKey("doctors.id"), nullable=False),
            sa.Column("time_slot_id", sa.String(36), sa.ForeignKey("time_slots.id"), nullable=False),
            sa.Column("status", sa.String(32), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index(
            "uq_appointments_active_slot",
            "appointments",
            ["time_slot_id"],
            unique=True,
            sqlite_where=ACTIVE_APPOINTMENT,
            postgresql_where=ACTIVE_APPOINTMENT,
        )
        op.create_index("idx_appointments_doctor", "appointments", ["doctor_id"])
        op.create_index("idx_appointments_patient", "appointments", ["patient_id"])

    if "audit_log" not in tables:
        op.create_table(
            "audit_log",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("actor_user_id", sa.String(36), nullable=True),
            sa.Column("action", sa.String(100), nullable=False),
            sa.Column("entity", sa.String(50), nullable=True),
            sa.Column("entity_id", sa.String(36), nullable=True),
            sa.Column("ts", sa.String(40), nullable=False),
            sa.Column("result", sa.String(20), nullable=False),
            sa.Column("meta_json_redacted", sa.Text(), nullable=False),
        )
        op.create_index("idx_audit_log_ts", "audit_log", ["ts"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("time_slots")
    op.drop_table("patients")
    op.drop_table("doctors")
    op.drop_table("users")
