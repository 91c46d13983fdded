# booking_engine/cli.py
"""Comandos de mantenimiento: ``flask courses ...`` y ``flask discounts ...``."""

import click
from flask import Flask
from flask.cli import AppGroup

from .extensions import db
from .services.attributes import START_DATE, SqlAttributeStore
from .services.courses import (
    check_course_consistency,
    fix_inflated_holiday_counts,
    refresh_course_schedule,
)
from .services.rules import load_rule_table, seed_default_rules

courses_cli = AppGroup("courses", help="Calendario de cursos.")
discounts_cli = AppGroup("discounts", help="Reglas de descuento.")


def _course_ids(store: SqlAttributeStore, ids) -> list:
    return list(ids) if ids else store.entity_ids(START_DATE)


@courses_cli.command("check")
@click.argument("ids", nargs=-1, type=int)
def check_courses(ids):
    """Lista cursos cuyo total de sesiones no coincide con el calendario."""
    store = SqlAttributeStore()
    issues = check_course_consistency(store, _course_ids(store, ids))
    for issue in issues:
        click.echo(f"Course {issue.entity_id}: configured {issue.configured}, computed {issue.computed}")
    if not issues:
        click.echo("All courses consistent.")


@courses_cli.command("fix-holidays")
@click.argument("ids", nargs=-1, type=int)
@click.option("--dry-run", is_flag=True, help="Solo muestra los cambios.")
def fix_holidays(ids, dry_run):
    """Resta del total de sesiones los feriados que se sumaron a mano."""
    store = SqlAttributeStore()
    fixes = fix_inflated_holiday_counts(store, _course_ids(store, ids), dry_run=dry_run)
    prefix = "Would fix" if dry_run else "Fixed"
    for fix in fixes:
        click.echo(
            f"{prefix} course {fix.entity_id}: {fix.previous_sessions} -> "
            f"{fix.corrected_sessions} (holidays {fix.holidays_on_weekday})"
        )
    if not dry_run:
        db.session.commit()
    click.echo(f"{len(fixes)} course(s) {'to fix' if dry_run else 'fixed'}.")


@courses_cli.command("recompute-end-dates")
@click.argument("ids", nargs=-1, type=int)
def recompute_end_dates(ids):
    """Recalcula y guarda la fecha de término de cada curso."""
    store = SqlAttributeStore()
    unschedulable = 0
    for entity_id in _course_ids(store, ids):
        result = refresh_course_schedule(store, entity_id)
        if result is None:
            unschedulable += 1
            click.echo(f"Course {entity_id}: not schedulable")
        else:
            click.echo(f"Course {entity_id}: ends {result.end_date.isoformat()}")
    db.session.commit()
    if unschedulable:
        click.echo(f"{unschedulable} course(s) cannot be scheduled.")


@discounts_cli.command("seed-defaults")
def seed_defaults():
    """Crea las reglas de descuento por defecto que falten."""
    created = seed_default_rules()
    db.session.commit()
    if created:
        click.echo(f"Created {len(created)} discount rule(s).")
    else:
        click.echo("Default discount rules already exist.")


@discounts_cli.command("show")
def show_rules():
    """Muestra la tabla de reglas vigente."""
    table = load_rule_table()
    invalid = {rule.id for rule in table.invalid_rules()}
    for rule in table.rules:
        if rule.id in invalid:
            status = "invalid"
        elif rule.active:
            status = "active"
        else:
            status = "inactive"
        click.echo(
            f"{rule.id:<40} {rule.product_family.value:<11} "
            f"{rule.condition.value:<26} {rule.rate_percent}% {status}"
        )


def register(app: Flask) -> None:
    app.cli.add_command(courses_cli)
    app.cli.add_command(discounts_cli)
