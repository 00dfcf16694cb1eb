from datetime import datetime, timedelta

import click
from flask import current_app
from flask.cli import AppGroup

from cashflow.services.category import create_default_categories
from cashflow.services.currency import get_currency_service
from cashflow.services.projection import calculate_projected_amount
from cashflow.services.recurring_transaction import (
    get_upcoming_recurring_transactions,
    process_due_transactions,
)
from cashflow.services.due_date import describe_frequency

recurring_cli = AppGroup("recurring", help="Recurring transaction maintenance.")


@recurring_cli.command("process")
@click.option(
    "--as-of",
    type=click.DateTime(),
    default=None,
    help="Process occurrences due on or before this time (default: now).",
)
def process_command(as_of):
    """Generate all due occurrences."""
    as_of = as_of or datetime.now()
    processed_count, errors = process_due_transactions(as_of, get_currency_service())

    click.echo(f"Processed {processed_count} occurrences as of {as_of.isoformat()}")
    for error in errors:
        click.echo(
            f"  {error['recurring_transaction_id']} at {error['occurrence_date']}: "
            f"{error['error_type']}: {error['error']}",
            err=True,
        )
    if errors:
        raise SystemExit(1)


@recurring_cli.command("upcoming")
@click.option("--days", type=click.IntRange(min=0), default=None)
def upcoming_command(days):
    """List active items due within the next DAYS days."""
    if days is None:
        days = current_app.config["UPCOMING_DEFAULT_DAYS"]

    items = get_upcoming_recurring_transactions(days)
    if not items:
        click.echo(f"Nothing due in the next {days} days")
        return

    for item in items:
        click.echo(
            f"{item.next_due_date:%Y-%m-%d %H:%M}  {item.type.value:<7}  "
            f"{item.amount} {item.currency}  "
            f"{describe_frequency(item.frequency, item.frequency_value)}  "
            f"{item.description or ''}"
        )


@recurring_cli.command("project")
@click.option("--start", type=click.DateTime(), default=None)
@click.option("--end", type=click.DateTime(), default=None)
def project_command(start, end):
    """Print the projected net USD amount between START and END."""
    start = start or datetime.now()
    end = end or start + timedelta(days=current_app.config["UPCOMING_DEFAULT_DAYS"])
    if end < start:
        raise click.BadParameter("end must not be before start", param_hint="--end")

    net_usd = calculate_projected_amount(start, end, get_currency_service())
    click.echo(f"Projected net from {start:%Y-%m-%d} to {end:%Y-%m-%d}: {net_usd} USD")


@recurring_cli.command("seed-categories")
def seed_categories_command():
    """Create the default categories that do not exist yet."""
    created = create_default_categories()
    click.echo(f"Created {created} categories")


def register_commands(app):
    app.cli.add_command(recurring_cli)
