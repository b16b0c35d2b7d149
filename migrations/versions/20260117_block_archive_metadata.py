"""add archive metadata columns to blocks

Revision ID: 20260117_block_archive_metadata
Revises: 20260116_initial_schema
Create Date: 2026-01-17 00:00:00

Additive only: five nullable text columns. Columns already present are
left alone.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260117_block_archive_metadata'
down_revision: Union[str, None] = '20260116_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ARCHIVE_COLUMNS = ('source_url', 'source_title', 'creator', 'original_date', 'notes')


def _block_columns() -> set:
    return {c['name'] for c in sa.inspect(op.get_bind()).get_columns('blocks')}


def upgrade() -> None:
    """Upgrade schema."""
    existing = _block_columns()
    for name in ARCHIVE_COLUMNS:
        if name not in existing:
            op.add_column('blocks', sa.Column(name, sa.Text(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    # Plain ALTER TABLE ... DROP COLUMN (SQLite 3.35+). Batch mode would
    # recreate blocks and cascade-delete every connection.
    existing = _block_columns()
    for name in reversed(ARCHIVE_COLUMNS):
        if name in existing:
            op.drop_column('blocks', name)
