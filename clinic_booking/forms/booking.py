"""Forms for slot management, booking and appointment queries."""

from __future__ import annotations

from datetime import datetime, time

from wtforms import Field, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional, ValidationError

from clinic_booking.forms import ApiForm
from clinic_booking.models import AppointmentStatus, SlotStatus
from clinic_booking.services.appointments import AppointmentFilters
from clinic_booking.services.errors import ValidationFailed
from clinic_booking.services.time_slots import MAX_GENERATE_DAYS, parse_day, parse_timestamp

SLOT_STATUS_CHOICES = [status.value for status in SlotStatus]
APPOINTMENT_STATUS_CHOICES = [status.value for status in AppointmentStatus]


class StringListField(Field):
    """Collects every value posted under one key (a JSON array or repeated field)."""

    def process_formdata(self, valuelist):
        self.data = [str(value).strip() for value in valuelist if str(value).strip()]

    def _value(self):
        return ",".join(self.data or [])


def _is_iso_timestamp(message: str):
    def check(form, field):
        if not field.data:
            return
        try:
            parse_timestamp(field.data)
        except ValidationFailed as exc:
            raise ValidationError(message) from exc

    return check


class GenerateSlotsForm(ApiForm):
    date = StringField(
        "date",
        validators=[DataRequired(message="Date is required"), _is_iso_timestamp("Date must be an ISO-8601 date")],
    )

    def day(self):
        return parse_day(self.date.data)


class GenerateDaysForm(ApiForm):
    days = IntegerField(
        "days",
        default=7,
        validators=[
            Optional(),
            NumberRange(min=1, max=MAX_GENERATE_DAYS, message=f"days must be between 1 and {MAX_GENERATE_DAYS}"),
        ],
    )

    def day_count(self) -> int:
        return self.days.data if self.days.data is not None else 7


class SlotStatusForm(ApiForm):
    status = StringField(
        "status",
        validators=[
            DataRequired(message="Status is required"),
            AnyOf(SLOT_STATUS_CHOICES, message="Status must be one of: " + ", ".join(SLOT_STATUS_CHOICES)),
        ],
    )


class BulkUnavailableForm(ApiForm):
    slotIds = StringListField("slotIds")

    def validate_slotIds(self, field):
        if not field.data:
            raise ValidationError("slotIds must be a non-empty list of time slot ids")


class BookingForm(ApiForm):
    patientId = StringField("patientId", validators=[DataRequired(message="Patient ID is required")])
    doctorId = StringField("doctorId", validators=[DataRequired(message="Doctor ID is required")])
    timeSlotId = StringField("timeSlotId", validators=[DataRequired(message="Time slot ID is required")])
    notes = TextAreaField("notes", validators=[Optional(), Length(max=2000, message="Notes are too long")])


class AppointmentStatusForm(ApiForm):
    """Status change payload.

    A CANCELLED appointment cannot move to another status; the engine answers
    400 "Cancelled appointments cannot be reopened".
    """

    status = StringField(
        "status",
        validators=[
            DataRequired(message="Status is required"),
            AnyOf(
                APPOINTMENT_STATUS_CHOICES,
                message="Status must be one of: " + ", ".join(APPOINTMENT_STATUS_CHOICES),
            ),
        ],
    )
    notes = TextAreaField("notes", validators=[Optional(), Length(max=2000, message="Notes are too long")])


class AppointmentFilterForm(ApiForm):
    """Query-string filters; bind with ``formdata=request.args``."""

    doctorId = StringField("doctorId", validators=[Optional()])
    patientId = StringField("patientId", validators=[Optional()])
    status = StringField(
        "status",
        validators=[
            Optional(),
            AnyOf(
                APPOINTMENT_STATUS_CHOICES,
                message="Status must be one of: " + ", ".join(APPOINTMENT_STATUS_CHOICES),
            ),
        ],
    )
    startDate = StringField("startDate", validators=[Optional(), _is_iso_timestamp("Invalid startDate")])
    endDate = StringField("endDate", validators=[Optional(), _is_iso_timestamp("Invalid endDate")])
    search = StringField("search", validators=[Optional(), Length(max=100)])

    @staticmethod
    def _end_of_range(raw: str) -> datetime:
        parsed = parse_timestamp(raw)
        # A bare calendar date closes the range at the end of that day.
        if len(raw.strip()) == 10:
            return datetime.combine(parsed.date(), time.max)
        return parsed

    def filters(self) -> AppointmentFilters:
        return AppointmentFilters(
            doctor_id=self.doctorId.data or None,
            patient_id=self.patientId.data or None,
            status=AppointmentStatus(self.status.data) if self.status.data else None,
            start_date=parse_timestamp(self.startDate.data) if self.startDate.data else None,
            end_date=self._end_of_range(self.endDate.data) if self.endDate.data else None,
            search=(self.search.data or "").strip() or None,
        )
