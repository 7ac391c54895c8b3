"""order number sequences, proof of payment, verification throttling

Revision ID: 0002_sequences_proofs
Revises: 0001_initial
Create Date: 2026-10-18 12:00:00.000000

- order_number_sequences: per-store counter so order numbers are never reused
  (seeded from the highest existing number per store)
- transactions.proof_of_payment_url: receipt for payments confirmed by hand
- verification_attempts: failed mobile code checks, for lockout
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_sequences_proofs'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def upgrade():
    op.create_table(
        'order_number_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', name='uq_order_number_sequences_store'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_number_sequences_store_id', 'order_number_sequences', ['store_id'])

    op.execute(
        "INSERT INTO order_number_sequences (store_id, next_number) "
        "SELECT store_id, MAX(CAST(number AS INTEGER)) + 1 FROM orders GROUP BY store_id"
    )

    op.add_column('transactions',
        sa.Column('proof_of_payment_url', sa.String(length=512), nullable=True))

    op.create_table(
        'verification_attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mobile_number', sa.String(length=20), nullable=False),
        sa.Column('checked_by_user_id', sa.Integer(), nullable=True),
        sa.Column('succeeded', sa.Boolean(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['checked_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(
        'ix_verification_attempts_number_time', 'verification_attempts', ['mobile_number', 'occurred_at']
    )


def downgrade():
    op.drop_table('verification_attempts')
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.drop_column('proof_of_payment_url')
    op.drop_table('order_number_sequences')
