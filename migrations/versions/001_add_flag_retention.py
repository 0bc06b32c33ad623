"""Add flag retention: flaggings, per-type policies, global config.

Changes:
- Create flaggings table (user flag records, read and deleted by retention)
- Create flag_retention_settings table, one row per flag type
- Create flag_retention_config table for admin-editable global defaults

Revision ID: 001_add_flag_retention
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_add_flag_retention'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create flag retention tables."""

    # -------------------------------------------------------------------------
    # 1. flaggings
    # -------------------------------------------------------------------------
    print("  Creating flaggings table...")

    op.create_table(
        'flaggings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('flag_type_id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    # Expiry scans filter by type and age; user clears by owner and type
    op.create_index('ix_flaggings_type_created', 'flaggings', ['flag_type_id', 'created_at'], unique=False)
    op.create_index('ix_flaggings_owner_type', 'flaggings', ['owner_id', 'flag_type_id'], unique=False)

    print("  Created flaggings table with 2 indexes")

    # -------------------------------------------------------------------------
    # 2. flag_retention_settings
    # -------------------------------------------------------------------------
    print("  Creating flag_retention_settings table...")

    op.create_table(
        'flag_retention_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('flag_type_id', sa.String(length=64), nullable=False),
        sa.Column('retention_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('auto_clear', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('flag_type_id', name='uq_flag_retention_settings_flag_type_id'),
    )
    op.create_index(
        'ix_flag_retention_settings_auto_clear', 'flag_retention_settings', ['auto_clear'], unique=False
    )

    print("  Created flag_retention_settings table")

    # -------------------------------------------------------------------------
    # 3. flag_retention_config
    # -------------------------------------------------------------------------
    print("  Creating flag_retention_config table...")

    op.create_table(
        'flag_retention_config',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('key'),
    )

    print("  Created flag_retention_config table")
    print("  Migration complete!")


def downgrade() -> None:
    """Drop flag retention tables."""

    print("  Dropping flag_retention_config table...")
    op.drop_table('flag_retention_config')

    print("  Dropping flag_retention_settings table...")
    op.drop_index('ix_flag_retention_settings_auto_clear', table_name='flag_retention_settings')
    op.drop_table('flag_retention_settings')

    print("  Dropping flaggings table...")
    op.drop_index('ix_flaggings_owner_type', table_name='flaggings')
    op.drop_index('ix_flaggings_type_created', table_name='flaggings')
    op.drop_table('flaggings')

    print("  Downgrade complete!")
