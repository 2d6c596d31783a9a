# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "stockledger:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use "flask db upgrade" for migration-managed databases).
# - python -m flask system seed-demo [--password "Password123!"]
#   Idempotent demo data: locations, supplier, category, products, users, opening purchases.
#
# Stock ledger maintenance:
# - python -m flask stock verify
#   Compare every stock row with the sum of its movements (exit 1 on mismatch).
# - python -m flask stock rebuild --yes
#   Re-derive stock rows from the movement log.
#
# Users / locations:
# - python -m flask users create --username alice --password "Password123!" --role MANAGER
# - python -m flask locations list

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Location, Product, Supplier
from .models.users import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER, USER_ROLES
from .services import location_service, purchase_service, stock_service, user_service
from .validation import ConflictError, NotFoundError, ValidationError

DOMAIN_ERRORS = (ValidationError, NotFoundError, ConflictError)


def _fail(message: str) -> None:
    db.session.rollback()
    click.echo(f"FAIL {message}")
    raise click.exceptions.Exit(1)


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed-demo')
@click.option('--password', default='Password123!', show_default=True, help='Password for seeded users')
@with_appcontext
def seed_demo(password):
    """
    Seed a small demo data set. Safe to run repeatedly.

    Creates:
    - Locations: Warehouse, Bar
    - Supplier: Demo Beverages
    - Category: Spirits, with three products
    - Users: admin / manager / cashier
    - One opening purchase per product into the Warehouse
    """
    click.echo("START Seeding demo data...")

    def ensure(model, lookup: dict, **values):
        row = db.session.query(model).filter_by(**lookup).first()
        if row is not None:
            click.echo(f"WARN  {model.__name__} {lookup} already exists, skipping...")
            return row, False
        row = model(**lookup, **values)
        db.session.add(row)
        db.session.flush()
        click.echo(f"PASS Created {model.__name__}: {lookup}")
        return row, True

    try:
        warehouse, _ = ensure(Location, {"name": "Warehouse"}, address="1 Dock Road")
        ensure(Location, {"name": "Bar"}, address="Main floor")
        supplier, _ = ensure(Supplier, {"name": "Demo Beverages"}, email="orders@demo-beverages.example")
        spirits, _ = ensure(Category, {"name": "Spirits"}, description="Bottled spirits")

        users = {}
        for username, role in (("admin", ROLE_ADMIN), ("manager", ROLE_MANAGER), ("cashier", ROLE_CASHIER)):
            existing = user_service.get_user_by_username(username)
            if existing is not None:
                click.echo(f"WARN  User '{username}' already exists, skipping...")
                users[username] = existing
                continue
            users[username] = user_service.create_user(username=username, password=password, role=role)
            click.echo(f"PASS Created user: {username} ({role})")

        opening = (
            ("Vodka 70cl", "5000000000011", 24, 1150),
            ("Gin 70cl", "5000000000028", 18, 1490),
            ("Tonic Water 200ml", "5000000000035", 96, 45),
        )
        for name, barcode, quantity, unit_cost_cents in opening:
            product, created = ensure(Product, {"name": name}, barcode=barcode, unit="bottle", category_id=spirits.id)
            if not created:
                continue
            purchase_service.record_purchase(
                product_id=product.id,
                supplier_id=supplier.id,
                location_id=warehouse.id,
                quantity=quantity,
                unit_cost_cents=unit_cost_cents,
                user_id=users["manager"].id,
            )
            click.echo(f"PASS Opening stock: {quantity} x {name} at {warehouse.name}")

        db.session.commit()
    except DOMAIN_ERRORS as e:
        _fail(f"Seeding failed: {e}")

    click.echo("DONE Demo data ready")


@click.group('stock')
def stock_group():
    """Stock ledger maintenance commands."""


@stock_group.command('verify')
@with_appcontext
def verify_stock():
    """Report stock rows whose quantity differs from their movement sum."""
    mismatches = stock_service.verify_ledger()
    if not mismatches:
        click.echo("PASS Stock ledger is consistent with the movement log")
        return

    for m in mismatches:
        stock_qty = "missing" if m.stock_quantity is None else m.stock_quantity
        click.echo(
            f"FAIL product={m.product_id} location={m.location_id} "
            f"stock={stock_qty} movements={m.movement_total}"
        )
    click.echo(f"FAIL {len(mismatches)} mismatch(es) found. Run 'flask stock rebuild --yes' to repair.")
    raise click.exceptions.Exit(1)


@stock_group.command('rebuild')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def rebuild_stock(yes):
    """Re-derive stock quantities from the movement log."""
    if not yes:
        click.confirm("WARN This overwrites stock quantities from the movement log. Continue?", abort=True)

    fixed = stock_service.rebuild_stock_from_movements()
    db.session.commit()
    click.echo(f"PASS Rebuilt {fixed} stock row(s)")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option(
    '--role',
    type=click.Choice(list(USER_ROLES), case_sensitive=False),
    default=ROLE_CASHIER,
    show_default=True,
    help='Role',
)
@with_appcontext
def create_user_cli(username, password, role):
    """
    Create a user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = user_service.create_user(username=username, password=password, role=role)
        db.session.commit()
    except DOMAIN_ERRORS as e:
        _fail(f"Failed to create user: {e}")

    click.echo(f"PASS Created user: {user.username} with role '{user.role}' (ID: {user.id})")


@click.group('locations')
def locations_group():
    """Location inspection commands."""


@locations_group.command('list')
@with_appcontext
def list_locations_cli():
    """List locations with their stock row counts."""
    locations = location_service.list_locations()
    if not locations:
        click.echo("No locations found")
        return

    click.echo(f"{'ID':<38} {'Name':<30} {'Stock rows':>10}")
    for location in locations:
        rows = len(stock_service.list_stock(location_id=location.id))
        click.echo(f"{str(location.id):<38} {location.name:<30} {rows:>10}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(users_group)
    app.cli.add_command(locations_group)
