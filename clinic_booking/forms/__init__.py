"""Request validation forms for the JSON API."""

from __future__ import annotations

from flask_wtf import FlaskForm

from clinic_booking.services.errors import ValidationFailed


class ApiForm(FlaskForm):
    """FlaskForm for bearer-token JSON endpoints; CSRF does not apply."""

    class Meta:
        csrf = False

    def validated(self) -> "ApiForm":
        """Validate and return self, raising ValidationFailed with the first field error."""

        if not self.validate():
            raise ValidationFailed(first_error(self))
        return self


def first_error(form: FlaskForm) -> str:
    for field in form:
        if field.errors:
            return str(field.errors[0])
    return "Invalid request"
