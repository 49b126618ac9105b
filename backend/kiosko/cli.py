# Overview: Flask CLI command groups for bootstrap and drawer inspection.

# backend/kiosko/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to kiosko (PowerShell: $env:FLASK_APP="kiosko").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create missing tables and seed default settings (idempotent).
# - python -m flask system set-tax-rate 8
#   Set the business tax rate (percent).
#
# Cash register inspection:
# - python -m flask registers current
#   Show the open drawer session with live totals.
# - python -m flask registers history --limit 20
#   List recent drawer sessions with totals and close results.

import click
from flask.cli import with_appcontext

from .extensions import db
from .money import from_cents


def _fmt(cents):
    if cents is None:
        return "-"
    return f"{from_cents(cents):.2f}"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_cli():
    """
    Create tables and seed default settings.

    Example:
        flask system init
    """
    from . import models  # noqa: F401
    from .services import settings_service

    db.create_all()
    created = settings_service.seed_default_settings()
    click.echo(f"PASS Database ready ({created} default settings created)")


@system_group.command('set-tax-rate', context_settings={'ignore_unknown_options': True})
@click.argument('rate')
@with_appcontext
def set_tax_rate_cli(rate):
    """
    Set the tax percent applied at checkout.

    Example:
        flask system set-tax-rate 8
    """
    from .money import to_decimal
    from .services import settings_service

    try:
        value = to_decimal(rate)
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")
        raise SystemExit(1)
    if value < 0:
        click.echo("FAIL Error: tax rate cannot be negative")
        raise SystemExit(1)

    settings_service.set_setting(settings_service.TAX_RATE_KEY, str(value))
    click.echo(f"PASS Tax rate set to {value}%")


@click.group('registers')
def registers_group():
    """Cash drawer inspection commands."""


@registers_group.command('current')
@with_appcontext
def current_cli():
    """
    Show the open drawer session.

    Example:
        flask registers current
    """
    from .services import cash_register_service

    current = cash_register_service.get_current_register()
    if not current:
        click.echo("No cash register session is open.")
        return

    click.echo(f"Session {current['id']} opened at {current['opened_at']}")
    click.echo(f"   Opening:   {_fmt(current['opening_amount_cents'])}")
    click.echo(f"   Cash:      {_fmt(current['cash_sales_cents'])}")
    click.echo(f"   Card:      {_fmt(current['card_sales_cents'])}")
    click.echo(f"   Transfer:  {_fmt(current['transfer_sales_cents'])}")
    click.echo(f"   Income:    {_fmt(current['income_cents'])}")
    click.echo(f"   Expense:   {_fmt(current['expense_cents'])}")
    click.echo(f"   Expected:  {_fmt(current['expected_amount_cents'])}")
    click.echo(f"   Sales:     {current['sales_count']}")


@registers_group.command('history')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def history_cli(limit):
    """
    List recent drawer sessions.

    Example:
        flask registers history
        flask registers history --limit 5
    """
    from .services import cash_register_service

    sessions = cash_register_service.get_register_history(limit=limit)
    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Status':<8} {'Opened':<22} {'Sales':<7} {'Expected':>12} {'Counted':>12} {'Diff':>10}")
    click.echo("="*100)
    for s in sessions:
        click.echo(
            f"{s['id']:<5} {s['status']:<8} {s['opened_at']:<22} {s['sales_count']:<7} "
            f"{_fmt(s['expected_amount_cents']):>12} {_fmt(s['closing_amount_cents']):>12} "
            f"{_fmt(s['difference_cents']):>10}"
        )
    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(registers_group)
