"""Authentication forms."""

from __future__ import annotations

from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from clinic_booking.forms import ApiForm


class LoginForm(ApiForm):
    email = StringField("email", validators=[DataRequired(message="Email is required")])
    password = PasswordField("password", validators=[DataRequired(message="Password is required")])


class RegisterForm(ApiForm):
    email = StringField(
        "email",
        validators=[DataRequired(message="Email is required"), Regexp(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", message="Email is invalid"), Length(max=255)],
    )
    password = PasswordField(
        "password",
        validators=[
            DataRequired(message="Password is required"),
            Length(min=6, max=128, message="Password must be at least 6 characters"),
        ],
    )
    firstName = StringField(
        "firstName", validators=[DataRequired(message="First name is required"), Length(max=50)]
    )
    lastName = StringField(
        "lastName", validators=[DataRequired(message="Last name is required"), Length(max=50)]
    )
    phone = StringField("phone", validators=[Optional(), Length(max=50)])
    address = StringField("address", validators=[Optional(), Length(max=500)])
