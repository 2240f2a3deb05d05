from datetime import date

import click

from .services.contracts import expire_due_contracts
from .services.invoices import generate_monthly_invoices


def _parse_day(value):
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="--today")


def register_cli(app):
    @app.cli.command("expire-contracts")
    @click.option("--today", default=None, help="Reference date (YYYY-MM-DD), defaults to today.")
    def expire_contracts(today):
        expired = expire_due_contracts(_parse_day(today))
        click.echo(f"expired={len(expired)}")

    @app.cli.command("generate-invoices")
    @click.option("--today", default=None, help="Billing date (YYYY-MM-DD), defaults to today.")
    def generate_invoices(today):
        created = generate_monthly_invoices(_parse_day(today))
        click.echo(f"created={len(created)}")
