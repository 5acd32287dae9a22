# Overview: Flask CLI command groups for tenants, alerts, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Company management (MULTI-TENANT):
# - python -m flask companies list
#   List all companies with product and order counts.
# - python -m flask companies create --name "Acme Ltda" --document "12345678000199"
#   Create a new company (tenant).
# - python -m flask companies deactivate --company-id 2
#   Block a company; its requests are answered with 401.
#
# Alerts:
# - python -m flask alerts refresh-low-stock --company-id 1
#   Run the low-stock scan now (deduplicated, same as after a sale).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Order, Product
from .services import alert_service


@click.group('system')
def system_group():
    """System maintenance commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask companies create' to add a tenant.")


# =============================================================================
# Companies
# =============================================================================

@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = db.session.query(Company).order_by(Company.id.asc()).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Document':<18} {'Active':<8} {'Products':<9} {'Orders'}")
    click.echo("="*80)

    for company in companies:
        product_count = db.session.query(Product).filter_by(company_id=company.id).count()
        order_count = db.session.query(Order).filter_by(company_id=company.id).count()
        active_str = "Yes" if company.is_active else "No"

        click.echo(
            f"{company.id:<5} {company.name:<30} {company.document or '-':<18} "
            f"{active_str:<8} {product_count:<9} {order_count}"
        )

    click.echo("="*80 + "\n")


@companies_group.command('create')
@click.option('--name', required=True, help='Company name')
@click.option('--document', default=None, help='Tax id (unique, optional)')
@with_appcontext
def create_company_cli(name, document):
    """Create a new company (tenant)."""
    if document:
        existing = db.session.query(Company).filter_by(document=document).first()
        if existing:
            click.echo(f"FAIL Company with document '{document}' already exists")
            return

    company = Company(name=name, document=document, is_active=True)
    db.session.add(company)
    db.session.commit()

    click.echo(f"PASS Created company: {company.name} (ID: {company.id})")


@companies_group.command('deactivate')
@click.option('--company-id', type=int, required=True, help='Company ID')
@with_appcontext
def deactivate_company_cli(company_id):
    """Deactivate a company; its API requests are rejected afterwards."""
    company = db.session.get(Company, company_id)
    if company is None:
        click.echo(f"FAIL Company {company_id} not found")
        return

    company.is_active = False
    db.session.commit()
    click.echo(f"PASS Deactivated company: {company.name} (ID: {company.id})")


# =============================================================================
# Alerts
# =============================================================================

@click.group('alerts')
def alerts_group():
    """Alert maintenance commands."""


@alerts_group.command('refresh-low-stock')
@click.option('--company-id', type=int, required=True, help='Company ID')
@with_appcontext
def refresh_low_stock_cli(company_id):
    """Create missing LOW_STOCK alerts for one company."""
    company = db.session.get(Company, company_id)
    if company is None:
        click.echo(f"FAIL Company {company_id} not found")
        return

    created = alert_service.refresh_low_stock_alerts(company_id)
    click.echo(f"PASS Created {len(created)} low-stock alert(s) for {company.name}")
    for alert in created:
        click.echo(f"  - {alert.title}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)  # Multi-tenant company management
    app.cli.add_command(alerts_group)
