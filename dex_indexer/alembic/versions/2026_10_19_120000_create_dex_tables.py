"""create_dex_tables

Revision ID: 2026_10_19_120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '2026_10_19_120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'pools',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token0', sa.String(length=80), nullable=False),
        sa.Column('token1', sa.String(length=80), nullable=False),
        sa.Column('fee', sa.Integer(), nullable=False),
        sa.Column('tick_spacing', sa.Integer(), nullable=False),
        sa.Column('pool_address', sa.String(length=80), nullable=False),
        sa.Column('sqrt_price_x96', sa.Text(), nullable=True),
        sa.Column('tick', sa.Integer(), nullable=True),
        sa.Column('initialized', sa.Boolean(), nullable=False),
        sa.Column('deploy_hash', sa.String(length=80), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token0', 'token1', 'fee', name='uq_pools_token0_token1_fee'),
    )
    op.create_index('ix_pools_token0', 'pools', ['token0'])
    op.create_index('ix_pools_token1', 'pools', ['token1'])
    op.create_index('ix_pools_pool_address', 'pools', ['pool_address'])

    op.create_table(
        'liquidity_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.String(length=10), nullable=False),
        sa.Column('pool_id', sa.Integer(), nullable=False),
        sa.Column('sender', sa.String(length=80), nullable=False),
        sa.Column('owner', sa.String(length=80), nullable=False),
        sa.Column('tick_lower', sa.Integer(), nullable=False),
        sa.Column('tick_upper', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Text(), nullable=False),
        sa.Column('amount0', sa.Text(), nullable=False),
        sa.Column('amount1', sa.Text(), nullable=False),
        sa.Column('deploy_hash', sa.String(length=80), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['pool_id'], ['pools.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_liquidity_events_pool_ts', 'liquidity_events', ['pool_id', 'timestamp'])
    op.create_index('ix_liquidity_events_owner', 'liquidity_events', ['owner'])
    op.create_index('ix_liquidity_events_event_type', 'liquidity_events', ['event_type'])
    op.create_index('ix_liquidity_events_deploy_hash', 'liquidity_events', ['deploy_hash'])

    op.create_table(
        'collect_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('pool_id', sa.Integer(), nullable=False),
        sa.Column('owner', sa.String(length=80), nullable=False),
        sa.Column('recipient', sa.String(length=80), nullable=False),
        sa.Column('tick_lower', sa.Integer(), nullable=False),
        sa.Column('tick_upper', sa.Integer(), nullable=False),
        sa.Column('amount0', sa.Text(), nullable=False),
        sa.Column('amount1', sa.Text(), nullable=False),
        sa.Column('deploy_hash', sa.String(length=80), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['pool_id'], ['pools.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_collect_events_pool_ts', 'collect_events', ['pool_id', 'timestamp'])
    op.create_index('ix_collect_events_owner', 'collect_events', ['owner'])
    op.create_index('ix_collect_events_recipient', 'collect_events', ['recipient'])
    op.create_index('ix_collect_events_deploy_hash', 'collect_events', ['deploy_hash'])

    op.create_table(
        'token_transfers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_address', sa.String(length=80), nullable=False),
        sa.Column('from_address', sa.String(length=80), nullable=True),
        sa.Column('to_address', sa.String(length=80), nullable=False),
        sa.Column('amount', sa.Text(), nullable=False),
        sa.Column('deploy_hash', sa.String(length=80), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_token_transfers_token_ts', 'token_transfers', ['token_address', 'timestamp'])
    op.create_index('ix_token_transfers_from', 'token_transfers', ['from_address'])
    op.create_index('ix_token_transfers_to', 'token_transfers', ['to_address'])
    op.create_index('ix_token_transfers_deploy_hash', 'token_transfers', ['deploy_hash'])

    op.create_table(
        'token_approvals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_address', sa.String(length=80), nullable=False),
        sa.Column('owner', sa.String(length=80), nullable=False),
        sa.Column('spender', sa.String(length=80), nullable=False),
        sa.Column('amount', sa.Text(), nullable=False),
        sa.Column('deploy_hash', sa.String(length=80), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_token_approvals_key', 'token_approvals', ['token_address', 'owner', 'spender'])
    op.create_index('ix_token_approvals_spender', 'token_approvals', ['spender'])
    op.create_index('ix_token_approvals_deploy_hash', 'token_approvals', ['deploy_hash'])

    op.create_table(
        'positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_id', sa.String(length=80), nullable=False),
        sa.Column('pool_id', sa.Integer(), nullable=False),
        sa.Column('owner', sa.String(length=80), nullable=False),
        sa.Column('tick_lower', sa.Integer(), nullable=False),
        sa.Column('tick_upper', sa.Integer(), nullable=False),
        sa.Column('liquidity', sa.Text(), nullable=False),
        sa.Column('deploy_hash', sa.String(length=80), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['pool_id'], ['pools.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_id'),
    )
    op.create_index('ix_positions_owner', 'positions', ['owner'])
    op.create_index('ix_positions_pool_id', 'positions', ['pool_id'])


def downgrade() -> None:
    op.drop_table('positions')
    op.drop_table('token_approvals')
    op.drop_table('token_transfers')
    op.drop_table('collect_events')
    op.drop_table('liquidity_events')
    op.drop_table('pools')
