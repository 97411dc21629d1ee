# Overview: Flask CLI command groups for bootstrap, sequence inspection and due balances.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db [--branch "Main" --branch-code MAIN]
#   Create tables (idempotent) and optionally a first branch.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Order numbers:
# - python -m flask sequence show
#   Print the last order number handed out.
# - python -m flask sequence next
#   Allocate and print the next order number.
#
# Due balances:
# - python -m flask due summary [--customer-id 7] [--branch-id 1]
#   Print outstanding balances and credit.
# - python -m flask due audit [--customer-id 7]
#   Rebuild balances from allocations; exits 1 when anything disagrees.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch
from .money import format_cents
from .services import sequence_service, due_summary_service
from .validation import LedgerError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@click.option('--branch', 'branch_name', default=None, help='Create a first branch with this name')
@click.option('--branch-code', default='MAIN', help='Code for the first branch')
@with_appcontext
def init_db(branch_name, branch_code):
    """Create all tables and, optionally, a first branch."""
    db.create_all()
    click.echo("PASS Schema created")

    if branch_name:
        branch = db.session.query(Branch).filter_by(code=branch_code).first()
        if branch:
            click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")
        else:
            branch = Branch(name=branch_name, code=branch_code, is_active=True)
            db.session.add(branch)
            db.session.commit()
            click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}, Code: {branch.code})")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the order number counter.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('sequence')
def sequence_group():
    """Order number counter commands."""


@sequence_group.command('show')
@with_appcontext
def sequence_show():
    current = sequence_service.current_order_number()
    if current is None:
        click.echo("No order numbers allocated yet")
    else:
        click.echo(f"Last order number: {current}")


@sequence_group.command('next')
@with_appcontext
def sequence_next():
    """Allocate an order number outside of an order (voided tickets, tests)."""
    click.echo(sequence_service.next_order_number())


@click.group('due')
def due_group():
    """Customer due balance commands."""


def _echo_summary(name: str, summary: dict) -> None:
    click.echo(
        f"{name:<30} orders={summary['orders_count']:<4} "
        f"due={format_cents(summary['total_due_cents']):>10} "
        f"paid={format_cents(summary['total_paid_cents']):>10} "
        f"balance={format_cents(summary['balance_cents']):>10} "
        f"credit={format_cents(summary['credit_cents']):>10}"
    )


@due_group.command('summary')
@click.option('--customer-id', type=int, default=None)
@click.option('--branch-id', type=int, default=None)
@with_appcontext
def due_summary(customer_id, branch_id):
    if customer_id is not None:
        try:
            summary = due_summary_service.get_customer_due_summary(customer_id)
        except LedgerError as e:
            raise click.ClickException(str(e))
        _echo_summary(f"customer {customer_id}", summary)
        return

    rows = due_summary_service.get_all_customers_due_summary(branch_id)
    if not rows:
        click.echo("No customers with outstanding dues or credit")
        return
    for row in rows:
        _echo_summary(row["customer"]["name"], row)


@due_group.command('audit')
@click.option('--customer-id', type=int, default=None)
@with_appcontext
def due_audit(customer_id):
    """Compare stored paid/unapplied amounts with the allocation history."""
    if customer_id is not None:
        try:
            found = due_summary_service.audit_customer_ledger(customer_id)
        except LedgerError as e:
            raise click.ClickException(str(e))
        results = {customer_id: found} if found else {}
    else:
        results = due_summary_service.audit_all_customers()

    if not results:
        click.echo("PASS Ledger consistent")
        return

    for cid, discrepancies in results.items():
        for d in discrepancies:
            click.echo(f"FAIL customer {cid}: {d}")
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sequence_group)
    app.cli.add_command(due_group)
