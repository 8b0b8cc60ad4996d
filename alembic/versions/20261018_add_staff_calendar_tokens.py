"""Add staff_calendar_tokens table for calendar token storage

Revision ID: 3f7a1c2d9b04
Revises:
Create Date: 2026-10-18

Each staff member can have one token blob per calendar provider
(google, outlook). Disconnecting soft-deletes the row and clears the blob.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f7a1c2d9b04'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('staff_calendar_tokens',
        sa.Column('staff_id', sa.String(length=255), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('token_json', sa.Text(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('token_expiry', sa.DateTime(timezone=True), nullable=True),
        sa.Column('connected', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('staff_calendar_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_staff_calendar_tokens_staff_id', ['staff_id'], unique=False)
        batch_op.create_index('ix_staff_calendar_tokens_staff_provider', ['staff_id', 'provider'], unique=True)


def downgrade() -> None:
    with op.batch_alter_table('staff_calendar_tokens', schema=None) as batch_op:
        batch_op.drop_index('ix_staff_calendar_tokens_staff_provider')
        batch_op.drop_index('ix_staff_calendar_tokens_staff_id')
    op.drop_table('staff_calendar_tokens')
