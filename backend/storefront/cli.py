# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --first-name Neo --last-name Mokoena --mobile-number +26772000001
# - python -m flask users token 1
#   Issue an API bearer token for user 1 (printed once).
# - python -m flask users verification-code +26772000001
#   Generate a mobile verification code.
# - python -m flask users deactivate 1
#   Deactivate user 1 and revoke their tokens.
#
# Stores:
# - python -m flask stores create --name "Main Street" --currency BWP
# - python -m flask stores add-member 1 2 --role Admin
#
# Orders:
# - python -m flask orders create --store-id 1 --customer-id 2 --total-cents 10000 --friend-id 3
# - python -m flask orders show 1
#   Ledger summary, transactions and events.
# - python -m flask orders recompute 1
#   Rewrite the ledger fields from the order's transactions.

import click
from flask.cli import with_appcontext

from .errors import StorefrontError
from .extensions import db
from .services import account_service, audit_service, mobile_verification_service, order_service, session_service
from .services import settlement_service
from .services.concurrency import run_with_retry


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables (use 'flask db upgrade' once migrations exist)."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--mobile-number', prompt=True, help='Mobile number (unique)')
@with_appcontext
def create_user_cli(first_name, last_name, mobile_number):
    """Create a user."""
    try:
        user = account_service.create_user(first_name, last_name, mobile_number)
        click.echo(f"PASS Created user {user.id}: {user.name} ({user.mobile_number})")
    except account_service.AccountError as e:
        click.echo(f"FAIL Failed to create user: {e}")


@users_group.command('token')
@click.argument('user_id', type=int)
@with_appcontext
def create_token_cli(user_id):
    """Issue an API token for a user."""
    try:
        token, plaintext = session_service.create_token(user_id)
        click.echo(f"PASS Token for user {user_id} (expires {token.to_dict()['expires_at']}):")
        click.echo(plaintext)
    except StorefrontError as e:
        click.echo(f"FAIL {e.message}")


@users_group.command('verification-code')
@click.argument('mobile_number')
@with_appcontext
def verification_code_cli(mobile_number):
    """Generate a mobile verification code."""
    code = mobile_verification_service.generate_code(mobile_number)
    click.echo(f"PASS Verification code for {mobile_number}: {code}")


@users_group.command('deactivate')
@click.argument('user_id', type=int)
@with_appcontext
def deactivate_user_cli(user_id):
    """Deactivate a user and revoke their API tokens."""
    try:
        revoked = account_service.deactivate_user(user_id)
        click.echo(f"PASS Deactivated user {user_id} (revoked {revoked} token(s))")
    except StorefrontError as e:
        click.echo(f"FAIL {e.message}")


# =============================================================================
# STORES
# =============================================================================

@click.group('stores')
def stores_group():
    """Store management commands."""


@stores_group.command('create')
@click.option('--name', prompt=True, help='Store name')
@click.option('--currency', default=None, help='ISO currency code (defaults to DEFAULT_CURRENCY)')
@with_appcontext
def create_store_cli(name, currency):
    try:
        store = account_service.create_store(name, currency)
        click.echo(f"PASS Created store {store.id}: {store.name} ({store.currency})")
    except ValueError as e:
        click.echo(f"FAIL Failed to create store: {e}")


@stores_group.command('add-member')
@click.argument('store_id', type=int)
@click.argument('user_id', type=int)
@click.option('--role', default='Team Member', type=click.Choice(['Creator', 'Admin', 'Team Member']))
@click.option('--pending', is_flag=True, help='Invite without joining (no order access yet)')
@with_appcontext
def add_member_cli(store_id, user_id, role, pending):
    try:
        membership = account_service.add_team_member(store_id, user_id, role=role, has_joined=not pending)
        state = "joined" if membership.has_joined else "invited"
        click.echo(f"PASS User {user_id} {state} store {store_id} as {membership.role}")
    except StorefrontError as e:
        click.echo(f"FAIL {e.message}")


# =============================================================================
# ORDERS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order inspection and repair commands."""


@orders_group.command('create')
@click.option('--store-id', type=int, required=True)
@click.option('--customer-id', type=int, required=True)
@click.option('--total-cents', type=int, required=True)
@click.option('--currency', default=None)
@click.option('--friend-id', 'friend_ids', type=int, multiple=True)
@click.option('--friends-cannot-collect', is_flag=True)
@with_appcontext
def create_order_cli(store_id, customer_id, total_cents, currency, friend_ids, friends_cannot_collect):
    try:
        order = order_service.create_order(
            store_id,
            customer_id,
            total_cents,
            currency=currency,
            friend_user_ids=friend_ids,
            friends_can_collect=not friends_cannot_collect,
        )
        click.echo(f"PASS Created order {order.id} (#{order.number}) for {order.grand_total}")
    except (StorefrontError, ValueError) as e:
        click.echo(f"FAIL Failed to create order: {e}")


@orders_group.command('show')
@click.argument('order_id', type=int)
@with_appcontext
def show_order_cli(order_id):
    """Print an order's ledger, transactions and events."""
    try:
        summary = settlement_service.get_payment_summary(order_id)
    except StorefrontError as e:
        click.echo(f"FAIL {e.message}")
        return

    order = settlement_service.get_order(order_id)
    click.echo(f"Order {order.id} #{order.number}  status={order.status}  payment_status={order.payment_status}")
    click.echo(
        f"  total={order.grand_total}  paid={summary['amount_paid_cents']} ({summary['amount_paid_percentage']}%)"
        f"  pending={summary['amount_pending_cents']} ({summary['amount_pending_percentage']}%)"
        f"  outstanding={summary['amount_outstanding_cents']} ({summary['amount_outstanding_percentage']}%)"
    )

    click.echo("Transactions:")
    for t in settlement_service.list_order_transactions(order_id):
        flag = " [cancelled]" if t.is_cancelled else ""
        click.echo(f"  {t.id:<6} {t.payment_status:<16} {t.amount}  payer={t.paid_by_user_id}{flag}")

    click.echo("Events:")
    for event in audit_service.list_order_events(order_id):
        click.echo(f"  {event.to_dict()['occurred_at']}  {event.event_type}  actor={event.actor_user_id}")


@orders_group.command('recompute')
@click.argument('order_id', type=int)
@with_appcontext
def recompute_order_cli(order_id):
    """Rewrite an order's ledger fields from its transactions."""
    def _op():
        order = settlement_service.load_order_for_update(order_id)
        balance = settlement_service.recompute_order_balance(order)
        db.session.commit()
        return order, balance

    try:
        order, balance = run_with_retry(_op)
    except StorefrontError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(
        f"PASS Order {order.id}: paid={balance.amount_paid} pending={balance.amount_pending} "
        f"outstanding={balance.amount_outstanding} status={order.payment_status}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(orders_group)
