"""add_pool_initialize_deploy_hash

Revision ID: 2026_10_20_090000
Revises: 2026_10_19_120000
Create Date: 2026-10-20 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '2026_10_20_090000'
down_revision: Union[str, Sequence[str], None] = '2026_10_19_120000'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('pools', sa.Column('initialize_deploy_hash', sa.String(length=80), nullable=True))
    op.create_index('ix_pools_initialize_deploy_hash', 'pools', ['initialize_deploy_hash'])


def downgrade() -> None:
    op.drop_index('ix_pools_initialize_deploy_hash', table_name='pools')
    op.drop_column('pools', 'initialize_deploy_hash')
