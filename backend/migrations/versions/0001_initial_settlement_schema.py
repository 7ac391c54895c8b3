"""initial settlement schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the storefront settlement schema:
- stores / users / store_memberships: tenants, people and store teams
- api_tokens / mobile_verifications: bearer tokens and generic mobile codes
- orders: ledger fields derived from transactions, collection snapshot
- order_collection_associations: who may collect an order, active codes
- transactions: polymorphic-owner payments with a single initiator
- order_events: append-only audit trail
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def upgrade():
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=64), nullable=False),
        sa.Column('last_name', sa.String(length=64), nullable=False),
        sa.Column('mobile_number', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_mobile_number', 'users', ['mobile_number'], unique=True)

    op.create_table(
        'store_memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('has_joined', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'user_id', name='uq_store_memberships_store_user'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_store_memberships_store_id', 'store_memberships', ['store_id'])
    op.create_index('ix_store_memberships_user_id', 'store_memberships', ['user_id'])

    op.create_table(
        'api_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_api_tokens_user_id', 'api_tokens', ['user_id'])
    op.create_index('ix_api_tokens_token_hash', 'api_tokens', ['token_hash'], unique=True)

    # Codes are deliberately not unique: two numbers may hold the same code
    op.create_table(
        'mobile_verifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mobile_number', sa.String(length=20), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_mobile_verifications_mobile_number', 'mobile_verifications', ['mobile_number'], unique=True)
    op.create_index('ix_mobile_verifications_code', 'mobile_verifications', ['code'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('customer_user_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('cancellation_reason', sa.String(length=255), nullable=True),

        # Ledger (derived from transactions)
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('grand_total_cents', sa.Integer(), nullable=False),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False),
        sa.Column('amount_pending_cents', sa.Integer(), nullable=False),
        sa.Column('amount_outstanding_cents', sa.Integer(), nullable=False),
        sa.Column('amount_paid_percentage', sa.Integer(), nullable=False),
        sa.Column('amount_pending_percentage', sa.Integer(), nullable=False),
        sa.Column('amount_outstanding_percentage', sa.Integer(), nullable=False),
        sa.Column('payment_status', sa.String(length=32), nullable=False),

        # Collection snapshot
        sa.Column('collection_verified', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('collection_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('collection_verified_by_user_id', sa.Integer(), nullable=True),
        sa.Column('collection_verified_by_user_first_name', sa.String(length=64), nullable=True),
        sa.Column('collection_verified_by_user_last_name', sa.String(length=64), nullable=True),
        sa.Column('collection_by_user_id', sa.Integer(), nullable=True),
        sa.Column('collection_by_user_first_name', sa.String(length=64), nullable=True),
        sa.Column('collection_by_user_last_name', sa.String(length=64), nullable=True),

        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['customer_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['collection_verified_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['collection_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'number', name='uq_orders_store_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_store_id', 'orders', ['store_id'])
    op.create_index('ix_orders_customer_user_id', 'orders', ['customer_user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_index('ix_orders_store_status_created', 'orders', ['store_id', 'status', 'created_at'])

    op.create_table(
        'order_collection_associations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('can_collect', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('collection_code', sa.String(length=6), nullable=True),
        sa.Column('collection_qr_code', sa.String(length=512), nullable=True),
        sa.Column('collection_code_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'user_id', name='uq_order_collection_order_user'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_collection_associations_order_id', 'order_collection_associations', ['order_id'])
    op.create_index('ix_order_collection_associations_user_id', 'order_collection_associations', ['user_id'])
    op.create_index('ix_order_collection_order_code', 'order_collection_associations', ['order_id', 'collection_code'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('owner_type', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('percentage', sa.Integer(), nullable=False),
        sa.Column('payment_status', sa.String(length=32), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=255), nullable=True),
        sa.Column('paid_by_user_id', sa.Integer(), nullable=False),
        sa.Column('requested_by_user_id', sa.Integer(), nullable=True),
        sa.Column('verified_by_user_id', sa.Integer(), nullable=True),
        sa.Column('verified_by', sa.String(length=16), nullable=False),
        sa.Column('payment_link_url', sa.String(length=512), nullable=True),
        sa.Column('provider_reference', sa.String(length=128), nullable=True),
        sa.Column('provider_metadata', sa.JSON(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.CheckConstraint(
            '(requested_by_user_id IS NULL) <> (verified_by_user_id IS NULL)',
            name='ck_transactions_single_initiator'
        ),
        sa.CheckConstraint('amount_cents >= 0', name='ck_transactions_amount_non_negative'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['paid_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['requested_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['verified_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_store_id', 'transactions', ['store_id'])
    op.create_index('ix_transactions_payment_status', 'transactions', ['payment_status'])
    op.create_index('ix_transactions_is_cancelled', 'transactions', ['is_cancelled'])
    op.create_index('ix_transactions_paid_by_user_id', 'transactions', ['paid_by_user_id'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])
    op.create_index('ix_transactions_owner', 'transactions', ['owner_type', 'owner_id'])
    op.create_index(
        'ix_transactions_owner_payer_status', 'transactions',
        ['owner_type', 'owner_id', 'paid_by_user_id', 'payment_status']
    )

    # Plain order_id (no FK) so the trail survives order deletion
    op.create_table(
        'order_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_events_order_id', 'order_events', ['order_id'])
    op.create_index('ix_order_events_store_id', 'order_events', ['store_id'])
    op.create_index('ix_order_events_event_type', 'order_events', ['event_type'])
    op.create_index('ix_order_events_order_occurred', 'order_events', ['order_id', 'occurred_at'])


def downgrade():
    op.drop_table('order_events')
    op.drop_table('transactions')
    op.drop_table('order_collection_associations')
    op.drop_table('orders')
    op.drop_table('mobile_verifications')
    op.drop_table('api_tokens')
    op.drop_table('store_memberships')
    op.drop_table('users')
    op.drop_table('stores')
