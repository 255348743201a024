"""Create ledger tables

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.DECIMAL(precision=12, scale=2)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('referral_code', sa.String(length=20), nullable=False),
        sa.Column('referred_by', sa.String(length=20), nullable=True),
        sa.Column('total_referrals', sa.Integer(), nullable=False),
        sa.Column('account_status', sa.String(length=20), nullable=False),
        sa.Column('pending_earnings', MONEY, nullable=False),
        sa.Column('available_balance', MONEY, nullable=False),
        sa.Column('total_earned', MONEY, nullable=False),
        sa.Column('total_withdrawn', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'available_balance >= 0',
            name='check_user_available_balance_non_negative'
        ),
        sa.CheckConstraint(
            'pending_earnings >= 0',
            name='check_user_pending_earnings_non_negative'
        ),
        sa.CheckConstraint(
            'total_earned >= 0', name='check_user_total_earned_non_negative'
        ),
        sa.CheckConstraint(
            'total_withdrawn >= 0',
            name='check_user_total_withdrawn_non_negative'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(
        'ix_users_phone_number', 'users', ['phone_number'], unique=True
    )
    op.create_index(
        'ix_users_referral_code', 'users', ['referral_code'], unique=True
    )
    op.create_index(
        'ix_users_referred_by', 'users', ['referred_by'], unique=False
    )
    op.create_index(
        'ix_users_account_status', 'users', ['account_status'], unique=False
    )

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('earnings_amount', MONEY, nullable=False),
        sa.Column('earnings_status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'level BETWEEN 1 AND 3', name='check_referral_level'
        ),
        sa.CheckConstraint(
            'earnings_amount > 0', name='check_referral_amount_positive'
        ),
        sa.ForeignKeyConstraint(
            ['referrer_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['referred_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'referrer_id', 'referred_id',
            name='uq_referrals_referrer_referred'
        )
    )
    op.create_index(
        'ix_referrals_referrer_id', 'referrals', ['referrer_id'], unique=False
    )
    op.create_index(
        'idx_referrals_referred_status', 'referrals',
        ['referred_id', 'earnings_status'], unique=False
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('correlation_key', sa.String(length=100), nullable=False),
        sa.Column('external_reference', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'amount > 0', name='check_transaction_amount_positive'
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_transactions_user_id', 'transactions', ['user_id'], unique=False
    )
    op.create_index(
        'idx_transactions_correlation', 'transactions',
        ['correlation_key', 'type'], unique=False
    )
    op.create_index(
        'idx_transactions_user_type_status', 'transactions',
        ['user_id', 'type', 'status'], unique=False
    )

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('mpesa_number', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('admin_id', sa.String(length=100), nullable=True),
        sa.Column(
            'mpesa_transaction_code', sa.String(length=100), nullable=True
        ),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'amount > 0', name='check_withdrawal_amount_positive'
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_withdrawal_requests_user_id', 'withdrawal_requests',
        ['user_id'], unique=False
    )
    op.create_index(
        'ix_withdrawal_requests_status', 'withdrawal_requests',
        ['status'], unique=False
    )
    op.create_index(
        'idx_withdrawal_requests_user_status', 'withdrawal_requests',
        ['user_id', 'status'], unique=False
    )


def downgrade() -> None:
    op.drop_index(
        'idx_withdrawal_requests_user_status',
        table_name='withdrawal_requests'
    )
    op.drop_index(
        'ix_withdrawal_requests_status', table_name='withdrawal_requests'
    )
    op.drop_index(
        'ix_withdrawal_requests_user_id', table_name='withdrawal_requests'
    )
    op.drop_table('withdrawal_requests')
    op.drop_index(
        'idx_transactions_user_type_status', table_name='transactions'
    )
    op.drop_index('idx_transactions_correlation', table_name='transactions')
    op.drop_index('ix_transactions_user_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('idx_referrals_referred_status', table_name='referrals')
    op.drop_index('ix_referrals_referrer_id', table_name='referrals')
    op.drop_table('referrals')
    op.drop_index('ix_users_account_status', table_name='users')
    op.drop_index('ix_users_referred_by', table_name='users')
    op.drop_index('ix_users_referral_code', table_name='users')
    op.drop_index('ix_users_phone_number', table_name='users')
    op.drop_table('users')
