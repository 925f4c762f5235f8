"""add_ai_investor_summary

Per-investor AI context rows.

Changes:
- Create ai_investor_summary, one row per (org_id, investor_id)

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, Sequence[str], None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    """Create the investor summary table."""
    op.create_table(
        'ai_investor_summary',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('investor_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('as_of_date', sa.Date(), nullable=False),
        sa.Column('mandate_summary', sa.Text(), nullable=False),
        sa.Column('preferred_areas', JSON, nullable=True),
        sa.Column('property_types', JSON, nullable=True),
        sa.Column('yield_target_pct', sa.Float(), nullable=True),
        sa.Column('budget_min', sa.Float(), nullable=True),
        sa.Column('budget_max', sa.Float(), nullable=True),
        sa.Column('budget_range', sa.String(length=100), nullable=False),
        sa.Column('risk_tolerance', sa.String(length=20), nullable=False),
        sa.Column('portfolio_summary', sa.Text(), nullable=False),
        sa.Column('holdings_count', sa.Integer(), nullable=False),
        sa.Column('portfolio_value', sa.Float(), nullable=False),
        sa.Column('annual_rental', sa.Float(), nullable=False),
        sa.Column('avg_yield_pct', sa.Float(), nullable=True),
        sa.Column('occupancy_pct', sa.Float(), nullable=True),
        sa.Column('active_signals_count', sa.Integer(), nullable=False),
        sa.Column('new_signals_count', sa.Integer(), nullable=False),
        sa.Column('top_holdings', JSON, nullable=True),
        sa.Column('summary_text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'investor_id', name='uq_ai_investor_summary_key')
    )
    op.create_index('idx_ai_investor_summary_org', 'ai_investor_summary', ['org_id'], unique=False)


def downgrade() -> None:
    """Drop the investor summary table."""
    op.drop_index('idx_ai_investor_summary_org', table_name='ai_investor_summary')
    op.drop_table('ai_investor_summary')
