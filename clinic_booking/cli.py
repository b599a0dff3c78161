"""Flask CLI commands for migrations, accounts, seeding and slot generation."""

from __future__ import annotations

import os
from getpass import getpass

import click
from alembic import command
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from clinic_booking.auth import issue_token
from clinic_booking.models import Specialization
from clinic_booking.services.accounts import create_admin, create_doctor, find_user_by_email
from clinic_booking.services.auto_migrate import alembic_config
from clinic_booking.services.database import get_session
from clinic_booking.services.errors import BookingError
from clinic_booking.services.seed import seed_demo
from clinic_booking.services.time_slots import SlotGenerator, parse_day


def _password(option_value: str | None) -> str:
    password = option_value or os.getenv("CLINIC_BOOTSTRAP_ADMIN_PASSWORD")
    if not password:
        password = getpass("Password: ")
    if not password:
        raise click.ClickException("Password must not be empty")
    return password


def register_cli(app) -> None:
    db_group = AppGroup("db")

    @db_group.command("upgrade")
    @with_appcontext
    def upgrade() -> None:
        cfg = alembic_config(current_app.config["SQLALCHEMY_DATABASE_URI"])
        if cfg is None:
            raise click.ClickException("alembic.ini or migrations/ not found")
        command.upgrade(cfg, "head")
        click.echo("Database upgraded to head.")

    app.cli.add_command(db_group)

    @app.cli.command("create-admin")
    @click.option("--email", required=True, help="Login email for the admin account")
    @click.option("--password", default=None, help="Defaults to CLINIC_BOOTSTRAP_ADMIN_PASSWORD or a prompt")
    @with_appcontext
    def create_admin_command(email: str, password: str | None) -> None:
        try:
            user = create_admin(get_session(), email=email, password=_password(password))
        except BookingError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Admin user '{user.email}' created with id {user.id}.")

    @app.cli.command("create-doctor")
    @click.option("--email", required=True)
    @click.option("--first-name", required=True)
    @click.option("--last-name", required=True)
    @click.option(
        "--specialization",
        required=True,
        type=click.Choice([item.value for item in Specialization], case_sensitive=False),
    )
    @click.option("--password", default=None)
    @click.option("--phone", default=None)
    @click.option("--experience", default=None)
    @click.option("--description", default=None)
    @with_appcontext
    def create_doctor_command(
        email: str,
        first_name: str,
        last_name: str,
        specialization: str,
        password: str | None,
        phone: str | None,
        experience: str | None,
        description: str | None,
    ) -> None:
        try:
            doctor = create_doctor(
                get_session(),
                email=email,
                password=_password(password),
                first_name=first_name,
                last_name=last_name,
                specialization=Specialization(specialization.upper()),
                phone=phone,
                experience=experience,
                description=description,
            )
        except BookingError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Doctor '{email}' created with id {doctor.id}.")

    @app.cli.command("seed-demo")
    @click.option("--days", default=7, show_default=True, help="Calendar days of weekday slots to create")
    @with_appcontext
    def seed_demo_command(days: int) -> None:
        report = seed_demo(get_session(), slot_days=days)
        click.echo(
            f"Seeded {report.patients} patient(s), {report.doctors} doctor(s), {report.slots} slot(s)."
        )
        if report.skipped:
            click.echo("Already present: " + ", ".join(report.skipped))

    @app.cli.command("generate-slots")
    @click.option("--doctor-id", required=True)
    @click.option("--date", "day", default=None, help="Single day (YYYY-MM-DD)")
    @click.option("--days", default=7, show_default=True, help="Days from today when --date is omitted")
    @with_appcontext
    def generate_slots_command(doctor_id: str, day: str | None, days: int) -> None:
        generator = SlotGenerator(get_session())
        try:
            if day:
                slots = generator.generate(doctor_id, parse_day(day))
            else:
                slots = generator.generate_for_days(doctor_id, days)
        except BookingError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"{len(slots)} time slot(s) ready for doctor {doctor_id}.")

    @app.cli.command("issue-token")
    @click.option("--email", required=True)
    @with_appcontext
    def issue_token_command(email: str) -> None:
        user = find_user_by_email(get_session(), email)
        if user is None:
            raise click.ClickException(f"No user with email {email}")
        click.echo(issue_token(user))
