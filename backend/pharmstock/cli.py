# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pharmstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and one default user per role.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role "Medical Rep"]
#   List all users with roles and active status.
# - python -m flask users create --username admin --full-name "Admin" --password "Password123!" --role Admin
#   Create a user (prompts if options are omitted).
#
# Stock inspection:
# - python -m flask stock low [--threshold 25]
#   List items at or below the low-stock threshold.
# - python -m flask stock expiring [--days 30]
#   List items expiring within the window (already expired included).

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import StockTrackerError
from .extensions import db
from .models import User
from .permissions import ALL_ROLES, Role
from .services import auth_service, stock_service
from .services.auth_service import PasswordValidationError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = (
    ("ceo", "Default CEO", Role.CEO),
    ("admin", "Default Admin", Role.ADMIN),
    ("marketer", "Default Marketer", Role.MARKETER),
    ("sales", "Default Sales Manager", Role.SALES_MANAGER),
    ("stock", "Default Stock Manager", Role.STOCK_MANAGER),
    ("rep", "Default Medical Rep", Role.MEDICAL_REP),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default=DEFAULT_PASSWORD, show_default=True, help='Password for the default users')
@with_appcontext
def init_system(password):
    """
    Initialize PharmStock: schema plus one default user per role.

    Safe to run repeatedly; existing usernames are skipped.

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing PharmStock...")

    db.create_all()
    click.echo("PASS Schema ready")

    click.echo("\nUSERS Creating default users...")
    for username, full_name, role in DEFAULT_USERS:
        if db.session.query(User.id).filter_by(username=username).first() is not None:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            auth_service.create_user(
                username=username,
                password=password,
                full_name=full_name,
                role=role,
            )
        except PasswordValidationError as e:
            raise click.ClickException(f"Password validation failed: {e.message}")
        click.echo(f"PASS Created user: {username} with role '{role}'")

    click.echo("\nDONE PharmStock initialized.")
    click.echo("Default users share the password given by --password. CHANGE IN PRODUCTION!")


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

    current_app.logger.warning("Database reset via CLI")
    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ALL_ROLES), prompt=True, help='Role')
@click.option('--department', default=None, help='Department')
@with_appcontext
def create_user_cli(username, full_name, password, role, department):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.create_user(
            username=username,
            password=password,
            full_name=full_name,
            role=role,
            department=department,
        )
    except StockTrackerError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@click.option('--role', type=click.Choice(ALL_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    users = auth_service.list_users_by_role(role) if role else auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Full name':<30} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.full_name:<30} {active_str:<8} {user.role}")

    click.echo("="*90 + "\n")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


def _echo_stock_items(items):
    click.echo(f"{'ID':<5} {'Unique #':<16} {'Name':<30} {'Qty':>8}  {'Expires'}")
    for item in items:
        expires = item.expiry_date.date().isoformat() if item.expiry_date else "-"
        click.echo(f"{item.id:<5} {item.unique_number:<16} {item.name[:30]:<30} {item.quantity:>8}  {expires}")


@stock_group.command('low')
@click.option('--threshold', type=int, help='Low-stock threshold (defaults to LOW_STOCK_THRESHOLD)')
@with_appcontext
def low_stock_cli(threshold):
    """List items whose quantity is at or below the threshold."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    try:
        items = stock_service.list_low_stock_items(threshold)
    except StockTrackerError as e:
        raise click.ClickException(e.message)

    if not items:
        click.echo(f"No items at or below {threshold} units.")
        return
    _echo_stock_items(items)


@stock_group.command('expiring')
@click.option('--days', type=int, help='Expiry window in days (defaults to EXPIRY_WINDOW_DAYS)')
@with_appcontext
def expiring_stock_cli(days):
    """List items expiring within the window."""
    if days is None:
        days = current_app.config["EXPIRY_WINDOW_DAYS"]
    try:
        items = stock_service.list_expiring_stock_items(days)
    except StockTrackerError as e:
        raise click.ClickException(e.message)

    if not items:
        click.echo(f"No items expiring within {days} days.")
        return
    _echo_stock_items(items)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
