"""initial garden schema: channels, blocks, connections

Revision ID: 20260116_initial_schema
Revises:
Create Date: 2026-01-16 00:00:00

Skips tables and indexes that already exist, so stores created before
Alembic tracked them can be stamped forward by simply upgrading.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260116_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _existing_indexes(inspector, table: str) -> set:
    return {ix['name'] for ix in inspector.get_indexes(table)}


def upgrade() -> None:
    """Upgrade schema."""
    inspector = sa.inspect(op.get_bind())
    tables = set(inspector.get_table_names())

    if 'channels' not in tables:
        op.create_table(
            'channels',
            sa.Column('id', sa.Text(), primary_key=True, nullable=False),
            sa.Column('title', sa.Text(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            # ISO 8601 UTC text
            sa.Column('created_at', sa.Text(), nullable=False),
            sa.Column('updated_at', sa.Text(), nullable=False),
        )
    if 'idx_channels_created_at' not in _existing_indexes(sa.inspect(op.get_bind()), 'channels'):
        op.create_index('idx_channels_created_at', 'channels', [sa.text('created_at DESC')], unique=False)

    if 'blocks' not in tables:
        op.create_table(
            'blocks',
            sa.Column('id', sa.Text(), primary_key=True, nullable=False),
            sa.Column('content_type', sa.Text(), nullable=False),
            sa.Column('content_json', sa.Text(), nullable=False),
            sa.Column('created_at', sa.Text(), nullable=False),
            sa.Column('updated_at', sa.Text(), nullable=False),
        )
    if 'idx_blocks_created_at' not in _existing_indexes(sa.inspect(op.get_bind()), 'blocks'):
        op.create_index('idx_blocks_created_at', 'blocks', [sa.text('created_at DESC')], unique=False)

    if 'connections' not in tables:
        op.create_table(
            'connections',
            sa.Column('block_id', sa.Text(), sa.ForeignKey('blocks.id', ondelete='CASCADE'), nullable=False),
            sa.Column('channel_id', sa.Text(), sa.ForeignKey('channels.id', ondelete='CASCADE'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('connected_at', sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint('block_id', 'channel_id'),
        )
    connection_indexes = _existing_indexes(sa.inspect(op.get_bind()), 'connections')
    if 'idx_connections_channel_position' not in connection_indexes:
        op.create_index('idx_connections_channel_position', 'connections', ['channel_id', 'position'], unique=False)
    if 'idx_connections_block' not in connection_indexes:
        op.create_index('idx_connections_block', 'connections', ['block_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP INDEX IF EXISTS idx_connections_block")
    op.execute("DROP INDEX IF EXISTS idx_connections_channel_position")
    op.execute("DROP TABLE IF EXISTS connections")
    op.execute("DROP INDEX IF EXISTS idx_blocks_created_at")
    op.execute("DROP TABLE IF EXISTS blocks")
    op.execute("DROP INDEX IF EXISTS idx_channels_created_at")
    op.execute("DROP TABLE IF EXISTS channels")
