"""Flask CLI commands for migrations and availability lookups."""

from __future__ import annotations

import json

import click
from flask.cli import AppGroup, with_appcontext
from flask import current_app

from clinic_availability.services.availability_queries import (
    AvailabilityError,
    get_available_dates,
    get_slots_for_date,
    parse_day,
)
from clinic_availability.services.migrations import run_migrations


def register_cli(app) -> None:
    db_group = AppGroup("db")

    @db_group.command("upgrade")
    @with_appcontext
    def upgrade() -> None:
        run_migrations(current_app)
        click.echo("Database upgraded to head.")

    app.cli.add_command(db_group)

    availability_group = AppGroup("availability", help="Inspect doctor availability.")

    @availability_group.command("slots")
    @click.argument("doctor_id")
    @click.argument("day")
    @click.option("--available-only", is_flag=True, help="Hide slots that are already booked.")
    @with_appcontext
    def slots(doctor_id: str, day: str, available_only: bool) -> None:
        try:
            result = get_slots_for_date(doctor_id, parse_day(day))
        except AvailabilityError as exc:
            raise click.ClickException(str(exc)) from exc
        if available_only:
            result = [slot for slot in result if slot.is_available]
        click.echo(json.dumps([slot.as_dict() for slot in result], indent=2))

    @availability_group.command("dates")
    @click.argument("doctor_id")
    @click.argument("start")
    @click.argument("end")
    @with_appcontext
    def dates(doctor_id: str, start: str, end: str) -> None:
        try:
            result = get_available_dates(doctor_id, parse_day(start, "start"), parse_day(end, "end"))
        except AvailabilityError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(json.dumps([d.isoformat() for d in result], indent=2))

    app.cli.add_command(availability_group)
