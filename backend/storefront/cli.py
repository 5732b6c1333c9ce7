# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to storefront (PowerShell: $env:FLASK_APP="storefront").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and seeds order/transaction statuses.
#
# Staff users:
# - python -m flask users list
#   List all staff users.
# - python -m flask users create --first-name Admin --last-name User --email admin@example.com --password "Password123!"
#   Create a staff user (prompts if options are omitted).
#
# Tokens:
# - python -m flask tokens cleanup
#   Delete expired authentication tokens.

import click
from flask.cli import with_appcontext

from .errors import StorefrontError
from .extensions import db
from .models import Status, TransactionStatus
from .services import auth_service, token_service
from .services.auth_service import PasswordValidationError


ORDER_STATUSES = [
    (1, "Cleared"),
    (2, "Refunded"),
    (3, "Cancelled"),
]

TRANSACTION_STATUSES = [
    (1, "Pending"),
    (2, "Cleared"),
    (3, "Declined"),
    (4, "Refunded"),
    (5, "Partially refunded"),
]


def seed_statuses() -> int:
    """Insert missing status rows. Returns count created."""
    created = 0
    for model, rows in ((Status, ORDER_STATUSES), (TransactionStatus, TRANSACTION_STATUSES)):
        for status_id, name in rows:
            if db.session.get(model, status_id) is None:
                db.session.add(model(id=status_id, name=name))
                created += 1
    db.session.commit()
    return created


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed lookup data."""
    db.create_all()
    created = seed_statuses()
    click.echo(f"PASS Tables ready, {created} status rows created")


@click.group('users')
def users_group():
    """Staff user commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all staff users."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Email'}")
    click.echo("="*80)

    for user in users:
        click.echo(f"{user.id:<5} {user.full_name:<30} {user.email}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_cli(first_name, last_name, email, password):
    """Create a staff user."""
    try:
        user = auth_service.create_user(first_name, last_name, email, password)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))
    except StorefrontError as e:
        raise click.ClickException(f"Failed to create user: {e}")

    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@click.group('tokens')
def tokens_group():
    """Authentication token maintenance."""


@tokens_group.command('cleanup')
@with_appcontext
def cleanup_tokens():
    """Delete expired tokens."""
    deleted = token_service.cleanup_expired_tokens()
    click.echo(f"PASS Deleted {deleted} expired tokens")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(tokens_group)
