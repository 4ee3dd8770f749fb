# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retaildesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@retaildesk.local]
#   Create tables (if missing) and an admin user. Idempotent.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users and roles:
# - python -m flask users list
# - python -m flask users create --username sam --email sam@example.com --password "Password123!" --role employee
# - python -m flask roles assign sam@example.com employee
# - python -m flask roles remove sam@example.com employee
#
# Catalog:
# - python -m flask catalog low-stock
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, UserRole
from .permissions import ROLE_ADMIN, ROLE_PERMISSIONS
from .services import catalog_service, permission_service, session_service
from .services.auth_service import create_user, get_user_by_email, PasswordValidationError
from .validation import ValidationError, ConflictError


DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', show_default=True)
@click.option('--admin-email', default='admin@retaildesk.local', show_default=True)
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Initial admin password')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Initialize RetailDesk: create tables and the first admin account.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing RetailDesk...")
    db.create_all()
    click.echo("PASS Tables ready")

    has_admin = db.session.query(UserRole).filter_by(role=ROLE_ADMIN).first()
    if has_admin:
        click.echo("WARN  An admin already exists, skipping admin creation")
        return

    try:
        user = create_user(
            username=admin_username,
            email=admin_email,
            password=admin_password,
            full_name="Administrator",
            roles=[ROLE_ADMIN],
        )
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(f"Failed to create admin: {e}")

    click.echo(f"PASS Created admin: {user.username} ({user.email})")
    if admin_password == DEFAULT_ADMIN_PASSWORD:
        click.echo("SECURITY Default password in use - change it before going live!")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--full-name', default=None)
@click.option('--role', type=click.Choice(sorted(ROLE_PERMISSIONS)), default='employee', show_default=True)
@with_appcontext
def create_user_cli(username, email, password, full_name, role):
    """Create a user with one role."""
    try:
        user = create_user(username=username, email=email, password=password, full_name=full_name, roles=[role])
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        raise SystemExit(1)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with roles and active status."""
    users = db.session.query(User).order_by(User.username).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<32} {'Active':<8} {'Roles'}")
    click.echo("=" * 80)
    for user in users:
        roles = ", ".join(permission_service.get_user_roles(user.id)) or "-"
        active_str = "yes" if user.is_active else "no"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<32} {active_str:<8} {roles}")
    click.echo("=" * 80 + "\n")


# =============================================================================
# ROLES
# =============================================================================

@click.group('roles')
def roles_group():
    """Role assignment commands."""


@roles_group.command('assign')
@click.argument('email')
@click.argument('role')
@with_appcontext
def assign_role_cli(email, role):
    try:
        permission_service.assign_role_by_email(email, role, actor_user_id=None)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Assigned '{role}' to {email}")


@roles_group.command('remove')
@click.argument('email')
@click.argument('role')
@with_appcontext
def remove_role_cli(email, role):
    user = get_user_by_email(email)
    assignment = (
        db.session.query(UserRole).filter_by(user_id=user.id, role=role).first()
        if user else None
    )
    if assignment is None:
        raise click.ClickException(f"{email} does not have role '{role}'")
    try:
        permission_service.remove_role_assignment(assignment.id, actor_user_id=None)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Removed '{role}' from {email}")


# =============================================================================
# CATALOG
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """Print items at or below their reorder level."""
    items = catalog_service.get_low_stock_items()
    if not items:
        click.echo("PASS No items are low on stock.")
        return

    click.echo(f"{'Code':<16} {'Name':<40} {'Qty':>5} {'Reorder':>8}")
    for item in items:
        reorder = item.reorder_level if item.reorder_level is not None else "-"
        click.echo(f"{item.item_code:<16} {item.item_name[:40]:<40} {item.quantity:>5} {reorder:>8}")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance and retention commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired/revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(roles_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(maintenance_group)
