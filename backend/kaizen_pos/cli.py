# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/kaizen_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "kaizen_pos:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent; existing data is kept).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--company "Kaizen Cafe"]
#   List users with role and active status.
# - python -m flask users create --name "Ana" --email ana@kaizen.local --password "Password123!" --role cashier
#   Create a user (prompts if options are omitted).
#
# Inventory inspection:
# - python -m flask inventory low-stock [--company "Kaizen Cafe"]
#   List active products at or below their low-stock threshold.
# - python -m flask inventory audit
#   Verify stored stock, history and transaction arithmetic. Exits 1 on findings.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, StockAdjustment, Transaction
from .models.auth import USER_ROLES
from .money import apply_rate_bps
from .services import inventory_service, users_service
from .services.users_service import PasswordValidationError
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--company', 'company_name', default='Unknown', help='Company (tenant) name')
@with_appcontext
def create_user_cli(name, email, password, role, company_name):
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
        user = users_service.create_user(
            name=name,
            email=email,
            password=password,
            role=role,
            company_name=company_name,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        raise SystemExit(1)
    except (ConflictError, ValidationError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}' (ID: {user.id})")
    click.echo(f"     Company: {user.company_name}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--company', 'company_name', default=None, help='Filter by company name')
@with_appcontext
def list_users(company_name):
    """List all users with their roles."""
    users = users_service.list_users(company_name)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Company':<20} {'Active':<8} {'Role'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.name:<20} {user.email:<30} {user.company_name:<20} {active_str:<8} {user.role}"
        )

    click.echo("="*100 + "\n")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@click.option('--company', 'company_name', default=None, help='Filter by company name')
@with_appcontext
def low_stock(company_name):
    """List active products at or below their low-stock threshold."""
    products = inventory_service.list_low_stock(company_name)

    if not products:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'ID':<5} {'SKU':<20} {'Name':<30} {'Stock':>6} {'Alert':>6}")
    for p in products:
        click.echo(f"{p.id:<5} {p.sku:<20} {p.name[:30]:<30} {p.stock:>6} {p.low_stock_alert:>6}")


def collect_audit_findings() -> list[str]:
    """
    Re-check stored data against the stock and money invariants.

    Returns human-readable findings; an empty list means the data is consistent.
    """
    findings = []

    for p in db.session.query(Product).filter(Product.stock < 0).all():
        findings.append(f"Product {p.id} ({p.sku}) has negative stock {p.stock}")

    for adj in db.session.query(StockAdjustment).order_by(StockAdjustment.id).all():
        expected = inventory_service.compute_new_stock(adj.type, adj.previous_stock, adj.quantity)
        if adj.new_stock != expected:
            findings.append(
                f"Stock adjustment {adj.id} ({adj.type}) records {adj.previous_stock} -> {adj.new_stock}, "
                f"expected {expected}"
            )

    for txn in db.session.query(Transaction).order_by(Transaction.id).all():
        label = txn.receipt_number or f"transaction {txn.id}"
        if not txn.receipt_number:
            findings.append(f"Transaction {txn.id} has no receipt number")
        if not txn.lines:
            findings.append(f"{label} has no lines")
        line_sum = sum(line.line_total_cents for line in txn.lines)
        if line_sum != txn.subtotal_cents:
            findings.append(f"{label} subtotal {txn.subtotal_cents} != sum of lines {line_sum}")
        for line in txn.lines:
            if line.line_total_cents != line.unit_price_cents * line.quantity:
                findings.append(f"{label} line {line.line_number} total does not equal price x quantity")
        expected_vat = apply_rate_bps(txn.subtotal_cents - txn.discount_cents, txn.vat_rate_bps)
        if txn.vat_cents != expected_vat:
            findings.append(f"{label} vat {txn.vat_cents} != {expected_vat}")
        if txn.total_cents != txn.subtotal_cents - txn.discount_cents + txn.vat_cents:
            findings.append(f"{label} total does not equal subtotal - discount + vat")
        if txn.payment_method == "Cash" and txn.cash_received_cents - txn.total_cents != txn.change_cents:
            findings.append(f"{label} change does not equal cash received - total")
        if txn.payment_method != "Cash" and (txn.cash_received_cents or txn.change_cents):
            findings.append(f"{label} records cash tender on a {txn.payment_method} payment")

    return findings


@inventory_group.command('audit')
@with_appcontext
def audit():
    """Verify stock, history and transaction arithmetic. Exits 1 on findings."""
    findings = collect_audit_findings()
    if not findings:
        click.echo("PASS No inconsistencies found.")
        return

    for finding in findings:
        click.echo(f"FAIL {finding}")
    click.echo(f"\n{len(findings)} finding(s).")
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
