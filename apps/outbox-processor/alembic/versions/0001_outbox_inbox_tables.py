"""Outbox, inbox and module tables

Revision ID: 0001_outbox_inbox
Revises:
Create Date: 2026-10-18

Creates:
- outbox_messages: relational outbox records
- inbox_messages: per-consumer idempotency ledger
- user_profiles: Users module profiles
- workouts_latest_user_metrics: Workouts module metric snapshot
"""

from alembic import op
import sqlalchemy as sa

revision = '0001_outbox_inbox'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # =========================================================================
    # OUTBOX
    # =========================================================================

    op.create_table(
        'outbox_messages',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.String(36), nullable=False),
        sa.Column('event_type', sa.String(255), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_processed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_poisoned', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_error', sa.String(1000), nullable=True),
        sa.Column('correlation_id', sa.String(36), nullable=True),
        sa.Column('trace_id', sa.String(36), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_outbox_messages_event_id', 'outbox_messages', ['event_id'])
    op.create_index('ix_outbox_messages_is_processed_created_at', 'outbox_messages', ['is_processed', 'created_at'])
    op.create_index('ix_outbox_messages_event_type', 'outbox_messages', ['event_type'])

    # =========================================================================
    # INBOX
    # =========================================================================

    op.create_table(
        'inbox_messages',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.String(36), nullable=False),
        sa.Column('consumer', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), server_default='processing', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('consumer', 'event_id', name='uq_inbox_messages_consumer_event_id'),
    )
    op.create_index(
        'ix_inbox_messages_consumer_status_created_at', 'inbox_messages', ['consumer', 'status', 'created_at']
    )

    # =========================================================================
    # MODULE TABLES
    # =========================================================================

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('gender', sa.String(32), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('unit_preference', sa.String(16), server_default='metric', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'workouts_latest_user_metrics',
        sa.Column('user_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('user_metric_id', sa.String(64), nullable=False),
        sa.Column('metric_date', sa.Date(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('height', sa.Float(), nullable=True),
        sa.Column('bmi', sa.Float(), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('event_id', sa.String(36), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )


def downgrade():
    op.drop_table('workouts_latest_user_metrics')
    op.drop_table('user_profiles')
    op.drop_index('ix_inbox_messages_consumer_status_created_at', table_name='inbox_messages')
    op.drop_table('inbox_messages')
    op.drop_index('ix_outbox_messages_event_type', table_name='outbox_messages')
    op.drop_index('ix_outbox_messages_is_processed_created_at', table_name='outbox_messages')
    op.drop_index('ix_outbox_messages_event_id', table_name='outbox_messages')
    op.drop_table('outbox_messages')
