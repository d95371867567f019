# Overview: Flask CLI command groups for bootstrap, dealer administration and maintenance.

# backend/aura/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (idempotent). Use `flask db upgrade` for managed schemas.
# - python -m flask system check-config
#   Verify every box size has a billing price configured.
#
# Organizations and dealers:
# - python -m flask orgs create --name "Trail Outfitters" --logo-url https://... --contact-email ops@example.com
# - python -m flask orgs list
# - python -m flask dealers create --org-id 1 --code SAVE10 [--profile-id <id>] [--inactive]
# - python -m flask dealers list [--active-only]
# - python -m flask dealers deactivate SAVE10
# - python -m flask dealers activate SAVE10
#
# Profiles:
# - python -m flask profiles set-role someone@example.com admin
# - python -m flask profiles revoke-sessions someone@example.com
#
# Maintenance:
# - python -m flask maintenance cleanup --session-retention-days 30 --event-retention-days 90

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .catalog import check_price_ids
from .models.auth import VALID_ROLES
from .services import auth_service, dealer_service, maintenance_service, session_service
from .services.permission_service import log_security_event
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables ready")


@system_group.command('check-config')
@with_appcontext
def check_config():
    """Verify billing prices are configured for every box size."""
    try:
        check_price_ids(current_app.config["BOX_PRICE_IDS"])
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo("PASS Billing prices configured for all box sizes")


@click.group('orgs')
def orgs_group():
    """Organization management commands."""


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--logo-url', help='Logo shown on referral pages')
@click.option('--contact-email', help='Contact email')
@with_appcontext
def create_org_cli(name, logo_url, contact_email):
    """Create a partner organization."""
    try:
        org = dealer_service.create_organization(name, logo_url=logo_url, contact_email=contact_email)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created organization: {org.name} (ID: {org.id})")


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = dealer_service.list_organizations()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<40} {'Active':<8} {'Dealers'}")
    click.echo("="*72)

    for org in orgs:
        active_str = "Yes" if org.is_active else "No"
        click.echo(f"{org.id:<5} {org.name:<40} {active_str:<8} {len(org.dealers)}")

    click.echo("="*72 + "\n")


@click.group('dealers')
def dealers_group():
    """Dealer and referral code commands."""


@dealers_group.command('create')
@click.option('--org-id', type=int, required=True, help='Organization ID')
@click.option('--code', required=True, help='Referral code (case-sensitive)')
@click.option('--profile-id', help='Profile of the dealer user (optional)')
@click.option('--inactive', is_flag=True, help='Create the dealer deactivated')
@with_appcontext
def create_dealer_cli(org_id, code, profile_id, inactive):
    """Create a dealer with a referral code."""
    try:
        dealer = dealer_service.create_dealer(
            organization_id=org_id,
            referral_code=code,
            profile_id=profile_id,
            is_active=not inactive,
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created dealer {dealer.referral_code} (ID: {dealer.id}, Org: {dealer.organization_id})")


@dealers_group.command('list')
@click.option('--active-only', is_flag=True, help='Only active dealers')
@with_appcontext
def list_dealers_cli(active_only):
    """List dealers with their organization."""
    dealers = dealer_service.list_dealers(active=True if active_only else None)

    if not dealers:
        click.echo("No dealers found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Code':<20} {'Organization':<35} {'Active'}")
    click.echo("="*72)
    for dealer in dealers:
        org_name = dealer.organization.name if dealer.organization else "-"
        click.echo(f"{dealer.id:<5} {dealer.referral_code:<20} {org_name:<35} {'Yes' if dealer.is_active else 'No'}")
    click.echo("="*72 + "\n")


def _set_active_by_code(code: str, is_active: bool):
    dealer = dealer_service.find_dealer_by_code(code)
    if not dealer:
        raise click.ClickException(f"No dealer with referral code {code}")
    dealer_service.set_dealer_active(dealer.id, is_active)
    state = "activated" if is_active else "deactivated"
    click.echo(f"PASS Dealer {code} (ID: {dealer.id}) {state}")


@dealers_group.command('deactivate')
@click.argument('code')
@with_appcontext
def deactivate_dealer_cli(code):
    """Stop attributing checkouts to a referral code."""
    _set_active_by_code(code, False)


@dealers_group.command('activate')
@click.argument('code')
@with_appcontext
def activate_dealer_cli(code):
    """Resume attribution for a referral code."""
    _set_active_by_code(code, True)


@click.group('profiles')
def profiles_group():
    """Profile role and session commands."""


def _profile_or_fail(email: str):
    profile = auth_service.find_profile_by_email(email)
    if not profile:
        raise click.ClickException(f"No profile with email {email} (the user must log in once first)")
    return profile


@profiles_group.command('set-role')
@click.argument('email')
@click.argument('role', type=click.Choice(list(VALID_ROLES)))
@with_appcontext
def set_role_cli(email, role):
    """Change a profile's role."""
    profile = _profile_or_fail(email)
    previous = profile.role
    auth_service.set_role(profile.id, role)
    log_security_event(
        profile_id=profile.id,
        event_type="ROLE_CHANGED",
        success=True,
        action="CLI",
        reason=f"{previous} -> {role}",
    )
    click.echo(f"PASS {email}: {previous} -> {role}")


@profiles_group.command('revoke-sessions')
@click.argument('email')
@with_appcontext
def revoke_sessions_cli(email):
    """Sign a profile out everywhere."""
    profile = _profile_or_fail(email)
    count = session_service.revoke_all_profile_sessions(profile.id, reason="Revoked via CLI")
    click.echo(f"PASS Revoked {count} session(s) for {email}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance and retention commands."""


@maintenance_group.command('cleanup')
@click.option('--session-retention-days', type=int, default=30, show_default=True)
@click.option('--event-retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_cli(session_retention_days, event_retention_days):
    """Delete old expired/revoked sessions and old security events."""
    result = maintenance_service.run_cleanup(
        session_retention_days=session_retention_days,
        event_retention_days=event_retention_days,
    )
    click.echo(f"PASS Deleted {result['sessions']} session(s), {result['security_events']} security event(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(dealers_group)
    app.cli.add_command(profiles_group)
    app.cli.add_command(maintenance_group)
