"""Create refresh_tokens table

Revision ID: 002_create_refresh_tokens
Revises: 001_create_users
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '002_create_refresh_tokens'
down_revision: Union[str, None] = '001_create_users'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'refresh_tokens',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('created_by_ip', sa.String(45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_by_ip', sa.String(45), nullable=True),
        sa.Column('revoked_reason', sa.String(50), nullable=True),
        sa.Column('replaced_by_token_id', postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index('ix_refresh_tokens_user_id', 'refresh_tokens', ['user_id'])
    op.create_index('ix_refresh_tokens_token_hash', 'refresh_tokens', ['token_hash'], unique=True)
    # Partial index: only live tokens are looked up by hash on refresh
    op.create_index(
        'ix_refresh_tokens_live_hash',
        'refresh_tokens',
        ['token_hash'],
        postgresql_where=sa.text('revoked_at IS NULL'),
    )
    op.create_index('ix_refresh_tokens_revoked_expires', 'refresh_tokens', ['revoked_at', 'expires_at'])


def downgrade() -> None:
    op.drop_index('ix_refresh_tokens_revoked_expires', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_live_hash', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_token_hash', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_user_id', table_name='refresh_tokens')
    op.drop_table('refresh_tokens')
