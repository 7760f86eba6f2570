"""Initial schema - messages, risk events

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19 00:00:00.000000

Creates the CRISISLINE database schema:
- messages: Inbound and outbound SMS with delivery status
- risk_events: Append-only log of detected risk conditions
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'messages',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('direction', sa.String(10), nullable=False),
        sa.Column('counterparty_address', sa.String(32), nullable=False),
        sa.Column('local_address', sa.String(32), nullable=True),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('crisis_flag', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(10), nullable=False),
        sa.Column('external_message_id', sa.String(64), nullable=True),
        sa.Column('failure_reason', sa.String(255), nullable=True),
        sa.Column('escalation_id', sa.String(40), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_counterparty_address', 'messages', ['counterparty_address'])
    op.create_index('ix_messages_crisis_flag', 'messages', ['crisis_flag'])
    op.create_index('ix_messages_status', 'messages', ['status'])
    op.create_index('ix_messages_external_message_id', 'messages', ['external_message_id'], unique=True)
    op.create_index('ix_messages_escalation_id', 'messages', ['escalation_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])

    op.create_table(
        'risk_events',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('source_type', sa.String(20), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('raw_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('risk_level', sa.Integer(), nullable=False),
        sa.Column('indicators_matched', sa.JSON(), nullable=False),
        sa.Column('reply_address', sa.String(32), nullable=True),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_risk_events_subject_id', 'risk_events', ['subject_id'])
    op.create_index('ix_risk_events_risk_level', 'risk_events', ['risk_level'])
    op.create_index('ix_risk_events_detected_at', 'risk_events', ['detected_at'])


def downgrade() -> None:
    op.drop_table('risk_events')
    op.drop_table('messages')
