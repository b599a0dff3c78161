"""Time-slot generation and availability store."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
import uuid
from typing import Callable, Iterable, Sequence

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_booking.models import Doctor, SlotStatus, TimeSlot
from clinic_booking.services.database import unit_of_work
from clinic_booking.services.errors import Conflict, NotFound, ValidationFailed


SLOT_MINUTES = 30
# Morning and afternoon surgery hours, [start_hour, end_hour).
WORKING_BLOCKS: tuple[tuple[int, int], ...] = ((8, 12), (14, 18))
SLOTS_PER_DAY = sum((end - start) * 60 // SLOT_MINUTES for start, end in WORKING_BLOCKS)
MAX_GENERATE_DAYS = 90
WEEKEND = {5, 6}


def day_start(value: date | datetime) -> datetime:
    """Truncate a date or datetime to local midnight."""

    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def parse_day(raw: str) -> date:
    """Parse `YYYY-MM-DD` or a full ISO-8601 timestamp into a calendar date."""

    text = (raw or "").strip()
    if not text:
        raise ValidationFailed("Date parameter is required")
    return parse_timestamp(text).date()


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 value into a naive clinic-local datetime."""

    text = (raw or "").strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationFailed(f"Invalid date: {text}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _format_clock(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def daily_slot_times(day: date | datetime) -> list[tuple[datetime, datetime]]:
    """Return the (start, end) pairs of the fixed daily schedule."""

    midnight = day_start(day)
    step = timedelta(minutes=SLOT_MINUTES)
    pairs: list[tuple[datetime, datetime]] = []
    for start_hour, end_hour in WORKING_BLOCKS:
        cursor = midnight + timedelta(hours=start_hour)
        block_end = midnight + timedelta(hours=end_hour)
        while cursor < block_end:
            pairs.append((cursor, cursor + step))
            cursor += step
    return pairs


def serialize_slot(slot: TimeSlot) -> dict[str, object]:
    return {
        "id": slot.id,
        "doctorId": slot.doctor_id,
        "startTime": slot.start_time.isoformat(),
        "endTime": slot.end_time.isoformat(),
        "status": slot.status.value,
        "formattedStartTime": _format_clock(slot.start_time),
        "formattedEndTime": _format_clock(slot.end_time),
    }


def slots_by_hour(slots: Sequence[dict[str, object]]) -> dict[str, list[dict[str, object]]]:
    """Group serialized slots by their starting hour (`"8"`, `"14"`, ...)."""

    blocks: dict[str, list[dict[str, object]]] = {}
    for slot in slots:
        hour = str(int(str(slot["formattedStartTime"])[:2]))
        blocks.setdefault(hour, []).append(slot)
    return blocks


class SlotStore:
    """Query and status operations on time slots."""

    def __init__(self, session: Session, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.session = session
        self.clock = clock

    def _day_query(self, doctor_id: str, day: date | datetime):
        start = day_start(day)
        return (
            select(TimeSlot)
            .where(
                TimeSlot.doctor_id == doctor_id,
                TimeSlot.start_time >= start,
                TimeSlot.start_time < start + timedelta(days=1),
            )
            .order_by(TimeSlot.start_time.asc())
        )

    def by_doctor_and_date(self, doctor_id: str, day: date | datetime) -> list[TimeSlot]:
        return list(self.session.scalars(self._day_query(doctor_id, day)))

    def available_by_doctor_and_date(self, doctor_id: str, day: date | datetime) -> list[TimeSlot]:
        stmt = self._day_query(doctor_id, day).where(TimeSlot.status == SlotStatus.AVAILABLE)
        return list(self.session.scalars(stmt))

    def upcoming_by_doctor(self, doctor_id: str) -> list[TimeSlot]:
        stmt = (
            select(TimeSlot)
            .where(TimeSlot.doctor_id == doctor_id, TimeSlot.start_time >= self.clock())
            .order_by(TimeSlot.start_time.asc())
        )
        return list(self.session.scalars(stmt))

    def by_id(self, slot_id: str, *, for_update: bool = False) -> TimeSlot | None:
        stmt = select(TimeSlot).where(TimeSlot.id == slot_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).one_or_none()

    def doctor_ids_for(self, slot_ids: Iterable[str]) -> dict[str, str]:
        ids = list(slot_ids)
        if not ids:
            return {}
        rows = self.session.execute(
            select(TimeSlot.id, TimeSlot.doctor_id).where(TimeSlot.id.in_(ids))
        )
        return {slot_id: doctor_id for slot_id, doctor_id in rows}

    def set_status(self, slot_id: str, status: SlotStatus) -> TimeSlot:
        """Move a slot between AVAILABLE and UNAVAILABLE.

        BOOKED is owned by the booking engine: it can neither be requested
        here nor overwritten.
        """

        with unit_of_work(self.session):
            slot = self.by_id(slot_id, for_update=True)
            if slot is None:
                raise NotFound(f"Time slot with ID {slot_id} not found")
            if status == SlotStatus.BOOKED:
                raise Conflict("Time slots can only be booked through an appointment")
            if slot.status == SlotStatus.BOOKED:
                raise Conflict("Time slot is booked; cancel the appointment instead")
            slot.status = status
        current_app.logger.info("Time slot %s set to %s", slot_id, status.value)
        return slot

    def mark_many_unavailable(self, slot_ids: Sequence[str]) -> list[TimeSlot]:
        """Block every listed slot that is still AVAILABLE; skip the rest."""

        updated: list[TimeSlot] = []
        with unit_of_work(self.session):
            for slot_id in dict.fromkeys(slot_ids):
                result = self.session.execute(
                    update(TimeSlot)
                    .where(TimeSlot.id == slot_id, TimeSlot.status == SlotStatus.AVAILABLE)
                    .values(status=SlotStatus.UNAVAILABLE)
                )
                if result.rowcount:
                    slot = self.by_id(slot_id)
                    if slot is not None:
                        updated.append(slot)
        skipped = len(set(slot_ids)) - len(updated)
        current_app.logger.info(
            "Marked %d time slot(s) unavailable, skipped %d", len(updated), skipped
        )
        return updated


class SlotGenerator:
    """Create the fixed daily schedule for a doctor, once per day."""

    def __init__(self, session: Session, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.session = session
        self.clock = clock
        self.store = SlotStore(session, clock=clock)

    def _require_doctor(self, doctor_id: str) -> Doctor:
        doctor = self.session.get(Doctor, doctor_id)
        if doctor is None:
            raise NotFound("Doctor not found")
        return doctor

    def generate(self, doctor_id: str, day: date | datetime) -> list[TimeSlot]:
        """Return the doctor's slots for `day`, creating them on first request."""

        try:
            with unit_of_work(self.session):
                self._require_doctor(doctor_id)
                existing = self.store.by_doctor_and_date(doctor_id, day)
                if existing:
                    return existing
                slots = [
                    TimeSlot(
                        id=str(uuid.uuid4()),
                        doctor_id=doctor_id,
                        start_time=start,
                        end_time=end,
                        status=SlotStatus.AVAILABLE,
                    )
                    for start, end in daily_slot_times(day)
                ]
                self.session.add_all(slots)
                self.session.flush()
        except IntegrityError:
            # Another request generated the same day first; serve its slots.
            current_app.logger.info(
                "Concurrent slot generation for doctor %s on %s", doctor_id, day_start(day).date()
            )
            return self.store.by_doctor_and_date(doctor_id, day)
        current_app.logger.info(
            "Generated %d time slots for doctor %s on %s",
            len(slots),
            doctor_id,
            day_start(day).date(),
        )
        return slots

    def generate_for_days(self, doctor_id: str, days: int) -> list[TimeSlot]:
        """Generate the next `days` calendar days starting today, weekends included."""

        if days < 1 or days > MAX_GENERATE_DAYS:
            raise ValidationFailed(f"days must be between 1 and {MAX_GENERATE_DAYS}")
        today = self.clock().date()
        all_slots: list[TimeSlot] = []
        for offset in range(days):
            all_slots.extend(self.generate(doctor_id, today + timedelta(days=offset)))
        return all_slots

    def generate_weekdays(self, doctor_id: str, days: int) -> list[TimeSlot]:
        """Seeding helper: like `generate_for_days` but skips Saturday and Sunday."""

        today = self.clock().date()
        all_slots: list[TimeSlot] = []
        for offset in range(days):
            day = today + timedelta(days=offset)
            if day.weekday() in WEEKEND:
                continue
            all_slots.extend(self.generate(doctor_id, day))
        return all_slots
