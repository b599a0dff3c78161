"""SQLAlchemy models for accounts, doctors, patients, slots and appointments."""

from __future__ import annotations

import enum
from datetime import datetime

from flask_login import UserMixin
from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Boolean,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from werkzeug.security import check_password_hash, generate_password_hash


class UserRole(str, enum.Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class Specialization(str, enum.Enum):
    THERAPIST = "THERAPIST"
    CARDIOLOGIST = "CARDIOLOGIST"
    NEUROLOGIST = "NEUROLOGIST"
    PEDIATRICIAN = "PEDIATRICIAN"
    SURGEON = "SURGEON"
    DENTIST = "DENTIST"
    OPHTHALMOLOGIST = "OPHTHALMOLOGIST"
    DERMATOLOGIST = "DERMATOLOGIST"
    PSYCHIATRIST = "PSYCHIATRIST"
    ENDOCRINOLOGIST = "ENDOCRINOLOGIST"


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    UNAVAILABLE = "UNAVAILABLE"


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


def _enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Stored as plain strings with a CHECK constraint so SQLite and Postgres agree.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
        length=32,
    )


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.now,
        onupdate=datetime.now,
        server_default=func.current_timestamp(),
    )


class User(Base, TimestampMixin, UserMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        _enum(UserRole, "user_role"), nullable=False, default=UserRole.PATIENT
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles


class Doctor(Base, TimestampMixin):
    """Doctor profile; shares its primary key with the owning account."""

    __tablename__ = "doctors"

    id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    specialization: Mapped[Specialization] = mapped_column(
        _enum(Specialization, "doctor_specialization"), nullable=False
    )
    education: Mapped[str | None] = mapped_column(Text, nullable=True)
    experience: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship(User, lazy="joined")
    time_slots: Mapped[list["TimeSlot"]] = relationship(
        "TimeSlot",
        back_populates="doctor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Patient(Base, TimestampMixin):
    """Patient profile; shares its primary key with the owning account."""

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship(User, lazy="joined")


class TimeSlot(Base, TimestampMixin):
    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("doctor_id", "start_time", name="uq_time_slots_doctor_start"),
        Index("idx_time_slots_doctor_status_start", "doctor_id", "status", "start_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    doctor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False
    )
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[SlotStatus] = mapped_column(
        _enum(SlotStatus, "slot_status"), nullable=False, default=SlotStatus.AVAILABLE
    )

    doctor: Mapped[Doctor] = relationship(Doctor, back_populates="time_slots")


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"
    __table_args__ = (
        # A slot backs at most one live appointment; cancelled rows are history.
        Index(
            "uq_appointments_active_slot",
            "time_slot_id",
            unique=True,
            sqlite_where=text("status != 'CANCELLED'"),
            postgresql_where=text("status != 'CANCELLED'"),
        ),
        Index("idx_appointments_doctor", "doctor_id"),
        Index("idx_appointments_patient", "patient_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    patient_id: Mapped[str] = mapped_column(String(36), ForeignKey("patients.id"), nullable=False)
    doctor_id: Mapped[str] = mapped_column(String(36), ForeignKey("doctors.id"), nullable=False)
    time_slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("time_slots.id"), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        _enum(AppointmentStatus, "appointment_status"),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    patient: Mapped[Patient] = relationship(Patient, lazy="joined")
    doctor: Mapped[Doctor] = relationship(Doctor, lazy="joined")
    time_slot: Mapped[TimeSlot] = relationship(TimeSlot, lazy="joined")

    @property
    def holds_slot(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class AuditEvent(Base):
    __tablename__ = "audit_log"
    __table_args__ = (Index("idx_audit_log_ts", "ts"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity: Mapped[str | None] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    ts: Mapped[str] = mapped_column(String(40), nullable=False)
    result: Mapped[str] = mapped_column(String(20), nullable=False, default="ok")
    meta_json_redacted: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
