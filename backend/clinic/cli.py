# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/clinic/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated databases).
# - python -m flask system seed-demo [--slug happy-paws] [--timezone America/Mexico_City]
#   Idempotent demo clinic: tenant, location, staff for every role, a pet,
#   and Monday-Saturday business hours with a lunch break.
#
# Booking requests:
# - python -m flask requests expire
#   Mark PENDING requests whose preferred date has passed as EXPIRED.
#
# Cash inspection:
# - python -m flask cash drawers [--tenant-id 1] [--status OPEN] [--limit 20]
#   List recent drawers with expected/final amounts and differences.

import click
from datetime import time
from flask.cli import with_appcontext

from .extensions import db
from .models import BusinessHours, CashDrawer, Location, Pet, Staff, Tenant
from .money_utils import format_cents
from .permissions import StaffRole
from .services import appointment_service
from .time_utils import is_valid_timezone


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('seed-demo')
@click.option('--name', default='Happy Paws Veterinary', help='Clinic name')
@click.option('--slug', default='happy-paws', help='Public booking slug')
@click.option('--timezone', 'tz_name', default='UTC', help='IANA timezone of the main location')
@with_appcontext
def seed_demo(name, slug, tz_name):
    """
    Create a demo clinic (safe to run repeatedly).

    Creates:
    - Tenant with public booking enabled
    - "Main" location in the given timezone
    - One staff member per role
    - One pet
    - Mon-Fri 09:00-18:00 (break 13:00-14:00), Sat 09:00-13:00, Sun closed
    """
    if not is_valid_timezone(tz_name):
        raise click.BadParameter(f"Unknown timezone '{tz_name}'", param_hint='--timezone')

    click.echo("START Seeding demo clinic...")

    tenant = db.session.query(Tenant).filter_by(slug=slug).first()
    if not tenant:
        tenant = Tenant(name=name, slug=slug, public_page_enabled=True, public_booking_enabled=True)
        db.session.add(tenant)
        db.session.commit()
        click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, slug: {tenant.slug})")
    else:
        click.echo(f"PASS Using existing tenant: {tenant.name} (ID: {tenant.id})")

    location = db.session.query(Location).filter_by(tenant_id=tenant.id, name="Main").first()
    if not location:
        location = Location(tenant_id=tenant.id, name="Main", timezone=tz_name)
        db.session.add(location)
        db.session.commit()
        click.echo(f"PASS Created location: {location.name} (ID: {location.id}, tz: {location.timezone})")

    for role in StaffRole.ALL:
        staff_name = f"Demo {role.title()}"
        if not db.session.query(Staff).filter_by(tenant_id=tenant.id, name=staff_name).first():
            db.session.add(Staff(tenant_id=tenant.id, name=staff_name, role=role))
            click.echo(f"PASS Created staff: {staff_name} ({role})")

    if not db.session.query(Pet).filter_by(tenant_id=tenant.id).first():
        db.session.add(Pet(tenant_id=tenant.id, name="Luna", species="dog", owner_name="Ana Ruiz"))
        click.echo("PASS Created pet: Luna")

    existing_days = {
        row.day_of_week
        for row in db.session.query(BusinessHours).filter_by(location_id=location.id).all()
    }
    for dow in range(7):
        if dow in existing_days:
            continue
        if dow == 0:
            row = BusinessHours(tenant_id=tenant.id, location_id=location.id, day_of_week=0, is_open=False)
        elif dow == 6:
            row = BusinessHours(
                tenant_id=tenant.id, location_id=location.id, day_of_week=6,
                open_time=time(9, 0), close_time=time(13, 0),
            )
        else:
            row = BusinessHours(
                tenant_id=tenant.id, location_id=location.id, day_of_week=dow,
                open_time=time(9, 0), close_time=time(18, 0),
                break_start=time(13, 0), break_end=time(14, 0),
            )
        db.session.add(row)

    db.session.commit()
    click.echo("PASS Demo clinic ready.")


@click.group('requests')
def requests_group():
    """Booking request maintenance."""


@requests_group.command('expire')
@with_appcontext
def expire_requests_cli():
    """
    Expire PENDING requests whose preferred date is in the past.

    Example:
        flask requests expire
    """
    expired = appointment_service.expire_stale_requests()
    click.echo(f"PASS Expired {expired} booking request(s).")


@click.group('cash')
def cash_group():
    """Cash drawer inspection."""


@cash_group.command('drawers')
@click.option('--tenant-id', type=int, help='Filter by tenant ID')
@click.option('--status', type=click.Choice(['OPEN', 'CLOSED']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max drawers to show')
@with_appcontext
def list_drawers_cli(tenant_id, status, limit):
    """
    List cash drawers.

    Example:
        flask cash drawers
        flask cash drawers --status OPEN
    """
    query = db.session.query(CashDrawer)
    if tenant_id:
        query = query.filter_by(tenant_id=tenant_id)
    if status:
        query = query.filter_by(status=status)

    drawers = query.order_by(CashDrawer.opened_at.desc()).limit(limit).all()

    if not drawers:
        click.echo("No drawers found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<5} {'Tenant':<7} {'Location':<9} {'Status':<8} {'Opened':<20} "
               f"{'Initial':>10} {'Expected':>10} {'Final':>10} {'Diff':>10}")
    click.echo("="*110)

    for drawer in drawers:
        click.echo(
            f"{drawer.id:<5} {drawer.tenant_id:<7} {drawer.location_id:<9} {drawer.status:<8} "
            f"{str(drawer.opened_at)[:19]:<20} "
            f"{format_cents(drawer.initial_amount_cents):>10} "
            f"{format_cents(drawer.expected_amount_cents) or '-':>10} "
            f"{format_cents(drawer.final_amount_cents) or '-':>10} "
            f"{format_cents(drawer.difference_cents) or '-':>10}"
        )

    click.echo("="*110 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(requests_group)
    app.cli.add_command(cash_group)
