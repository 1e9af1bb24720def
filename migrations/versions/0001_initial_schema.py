"""initial schema: couples, ledger, feed, moods, change log

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    cols = [sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade() -> None:
    op.create_table(
        'couples',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('invite_code', sa.String(16), nullable=False, unique=True),
        sa.Column('couple_name', sa.String(255), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('couple_photo_url', sa.Text(), nullable=True),
        sa.Column('partner_1_nickname', sa.String(100), nullable=True),
        sa.Column('partner_2_nickname', sa.String(100), nullable=True),
        sa.Column('world_theme', sa.String(32), nullable=False, server_default='blush'),
        *_timestamps(updated=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('couple_id', sa.String(36), sa.ForeignKey('couples.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index('ix_users_couple_id', 'users', ['couple_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('couple_id', sa.String(36), sa.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('payer', sa.String(16), nullable=False),
        sa.Column('type', sa.String(16), nullable=False, server_default='EXPENSE'),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
    )
    op.create_index('ix_transactions_couple_id', 'transactions', ['couple_id'])
    op.create_index('ix_transactions_couple_date', 'transactions', ['couple_id', 'transaction_date'])

    op.create_table(
        'budgets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('couple_id', sa.String(36), sa.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month', sa.String(7), nullable=False),
        sa.Column('monthly_total', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('his_budget', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('hers_budget', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('shared_budget', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('couple_id', 'month', name='uq_budget_couple_month'),
    )
    op.create_index('ix_budgets_couple_id', 'budgets', ['couple_id'])

    op.create_table(
        'savings_goals',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('couple_id', sa.String(36), sa.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target_amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('current_amount', sa.Numeric(precision=20, scale=2), nullable=False, server_default='0'),
        sa.Column('icon', sa.String(50), nullable=False, server_default='Target'),
        sa.Column('color', sa.String(50), nullable=False, server_default='purple'),
        sa.Column('deadline', sa.Date(), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_savings_goals_couple_id', 'savings_goals', ['couple_id'])

    op.create_table(
        'posts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('couple_id', sa.String(36), sa.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_posts_couple_id', 'posts', ['couple_id'])
    op.create_index('ix_posts_created_at', 'posts', ['created_at'])

    op.create_table(
        'daily_moods',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('couple_id', sa.String(36), sa.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False),
        sa.Column('mood_date', sa.Date(), nullable=False),
        sa.Column('mood_emoji', sa.String(16), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint('user_id', 'mood_date', name='uq_daily_mood_user_date'),
    )
    op.create_index('ix_daily_moods_couple_id', 'daily_moods', ['couple_id'])

    op.create_table(
        'event_log',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('couple_id', sa.String(36), nullable=False),
        sa.Column('actor_user_id', sa.String(36), nullable=True),
        sa.Column('event_type', sa.String(128), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=True),
        sa.Column('payload_json', postgresql.JSONB(), nullable=False),
        sa.Column('occurred_at', sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index('ix_event_log_couple_id', 'event_log', ['couple_id'])
    op.create_index('ix_event_log_event_type', 'event_log', ['event_type'])
    op.create_index('ix_event_log_occurred_at', 'event_log', ['occurred_at'])


def downgrade() -> None:
    op.drop_table('event_log')
    op.drop_table('daily_moods')
    op.drop_table('posts')
    op.drop_table('savings_goals')
    op.drop_table('budgets')
    op.drop_table('transactions')
    op.drop_table('users')
    op.drop_table('couples')
