# Overview: Flask CLI command groups for bootstrap, inspection, and ledger checks.

# backend/kardex/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin --admin-password "secret1"]
#   Idempotent bootstrap: creates tables, seeds the fixed warehouses and optionally a manager.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username ana --name "Ana" --password "secret1" --role seller
#   Create a user (prompts if options are omitted).
#
# Ledger checks:
# - python -m flask ledger check [--product-id 7]
#   Rebuild every Kardex and report trails that do not close at the ledger quantity.

import click
from flask.cli import with_appcontext

from .errors import ConflictError, LedgerInconsistencyError, ValidationError
from .extensions import db
from .models import FIXED_WAREHOUSES, Product, User, Warehouse
from .models.auth import ROLE_MANAGER, ROLES
from .services.auth_service import create_user
from .services.kardex_service import reconstruct


def seed_warehouses() -> int:
    """Insert the fixed warehouses that are missing. Returns how many were created."""
    created = 0
    for warehouse_id, code, name in FIXED_WAREHOUSES:
        if db.session.get(Warehouse, warehouse_id) is None:
            db.session.add(Warehouse(id=warehouse_id, code=code, name=name))
            created += 1
    db.session.commit()
    return created


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default=None, help='Create a manager account with this username')
@click.option('--admin-password', default=None, help='Password for the manager account')
@with_appcontext
def init_system(admin_username, admin_password):
    """
    Initialize the stock system: schema, warehouses and (optionally) a manager.

    Safe to run more than once.
    """
    click.echo("START Initializing stock system...")

    db.create_all()
    created = seed_warehouses()
    click.echo(f"PASS Warehouses ready ({created} created)")

    if admin_username:
        if not admin_password:
            raise click.UsageError("--admin-password is required with --admin-username")
        if db.session.query(User).filter_by(username=admin_username).first():
            click.echo(f"SKIP User '{admin_username}' already exists")
        else:
            try:
                create_user(admin_username, admin_password, name=admin_username, role=ROLE_MANAGER)
            except ValidationError as e:
                raise click.ClickException(e.message)
            click.echo(f"PASS Created manager '{admin_username}'")

    click.echo("DONE System initialized")


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
    seed_warehouses()

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, name, password, role):
    """Create a new user. Password must be at least 6 characters."""
    try:
        user = create_user(username, password, name=name, role=role)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created user '{user.username}' (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<10} {'Active'}")
    click.echo("="*70)
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {user.role:<10} {'yes' if user.is_active else 'no'}")


@click.group('ledger')
def ledger_group():
    """Stock ledger consistency checks."""


@ledger_group.command('check')
@click.option('--product-id', type=int, default=None, help='Check a single product')
@with_appcontext
def check_ledger(product_id):
    """
    Rebuild the Kardex of every product in every warehouse and report
    trails that do not close at the ledger quantity. Exits 1 on mismatch.
    """
    query = db.session.query(Product.id).order_by(Product.id.asc())
    if product_id is not None:
        query = query.filter(Product.id == product_id)
    product_ids = [row.id for row in query.all()]

    failures = 0
    for pid in product_ids:
        for warehouse_id, code, _name in FIXED_WAREHOUSES:
            try:
                reconstruct(pid, warehouse_id)
            except LedgerInconsistencyError as e:
                failures += 1
                click.echo(
                    f"FAIL product {pid} in {code}: movements sum to {e.expected}, "
                    f"ledger holds {e.actual}"
                )

    if failures:
        raise click.exceptions.Exit(1)
    click.echo(f"PASS {len(product_ids)} product(s) checked, every Kardex closes")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
