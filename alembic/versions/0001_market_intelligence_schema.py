"""market_intelligence_schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps(updated: bool = True) -> list:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]
    if updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False)
        )
    return columns


def upgrade() -> None:
    # Snapshot inputs
    op.create_table(
        'market_metric_snapshot',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False, comment='DLD, Ejari or derived'),
        sa.Column('metric', sa.String(length=50), nullable=False),
        sa.Column('geo_type', sa.String(length=30), nullable=False),
        sa.Column('geo_id', sa.String(length=100), nullable=False),
        sa.Column('geo_name', sa.String(length=255), nullable=True),
        sa.Column('segment', sa.String(length=50), nullable=False),
        sa.Column('timeframe', sa.String(length=10), nullable=False),
        sa.Column('window_start', sa.Date(), nullable=True),
        sa.Column('window_end', sa.Date(), nullable=False),
        sa.Column('value', sa.Numeric(precision=16, scale=4), nullable=False),
        sa.Column('sample_size', sa.Integer(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'org_id', 'source', 'metric', 'geo_type', 'geo_id', 'segment', 'timeframe', 'window_end',
            name='uq_market_metric_snapshot_key'
        )
    )
    op.create_index('idx_market_metric_snapshot_org', 'market_metric_snapshot', ['org_id'], unique=False)
    op.create_index('idx_market_metric_snapshot_window', 'market_metric_snapshot', ['window_end'], unique=False)

    op.create_table(
        'portal_listing_snapshot',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('portal', sa.String(length=50), nullable=False),
        sa.Column('geo_type', sa.String(length=30), nullable=False),
        sa.Column('geo_id', sa.String(length=100), nullable=False),
        sa.Column('geo_name', sa.String(length=255), nullable=True),
        sa.Column('segment', sa.String(length=50), nullable=False),
        sa.Column('timeframe', sa.String(length=10), nullable=False),
        sa.Column('as_of_date', sa.Date(), nullable=False),
        sa.Column('active_listings', sa.Integer(), nullable=False),
        sa.Column('price_cuts_count', sa.Integer(), nullable=False),
        sa.Column('stale_listings_count', sa.Integer(), nullable=False),
        sa.Column('median_asking_price_psf', sa.Numeric(precision=14, scale=2), nullable=True, comment='Median asking price per sqft across active listings'),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'org_id', 'portal', 'geo_type', 'geo_id', 'segment', 'timeframe', 'as_of_date',
            name='uq_portal_listing_snapshot_key'
        )
    )
    op.create_index('idx_portal_listing_snapshot_org', 'portal_listing_snapshot', ['org_id'], unique=False)
    op.create_index('idx_portal_listing_snapshot_date', 'portal_listing_snapshot', ['as_of_date'], unique=False)

    # CRM inputs
    op.create_table(
        'listings',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('area', sa.String(length=255), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('price', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('size', sa.Numeric(precision=10, scale=2), nullable=True, comment='Size in sqft'),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('readiness', sa.String(length=50), nullable=True),
        sa.Column('trust_score', sa.Float(), nullable=True),
        sa.Column('roi', sa.Float(), nullable=True, comment='Expected gross yield in percent'),
        sa.Column('source_type', sa.String(length=20), nullable=True, comment='official or portal'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_listings_tenant', 'listings', ['tenant_id'], unique=False)
    op.create_index('idx_listings_area', 'listings', ['area'], unique=False)

    op.create_table(
        'investors',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('mandate', JSON, nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_investors_tenant', 'investors', ['tenant_id'], unique=False)

    op.create_table(
        'holdings',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('investor_id', sa.String(length=64), nullable=False),
        sa.Column('listing_id', sa.String(length=64), nullable=False),
        sa.Column('purchase_price', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('current_value', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('monthly_rent', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('occupancy_rate', sa.Float(), nullable=True, comment='0..1'),
        sa.Column('annual_expenses', sa.Numeric(precision=12, scale=2), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['investor_id'], ['investors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('investor_id', 'listing_id', name='uq_holdings_investor_listing')
    )

    op.create_table(
        'shortlists',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('investor_id', sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'shortlist_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('shortlist_id', sa.String(length=64), nullable=False),
        sa.Column('listing_id', sa.String(length=64), nullable=False),
        sa.Column('match_score', sa.Float(), nullable=True),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['shortlist_id'], ['shortlists.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shortlist_id', 'listing_id', name='uq_shortlist_items_listing')
    )

    op.create_table(
        'memos',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('listing_id', sa.String(length=64), nullable=False),
        sa.Column('investor_id', sa.String(length=64), nullable=False),
        sa.Column('state', sa.String(length=30), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'deal_rooms',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('property_id', sa.String(length=64), nullable=False),
        sa.Column('investor_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    # Engine outputs
    op.create_table(
        'market_signal',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('source_type', sa.String(length=20), nullable=False, comment='official or portal'),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('type', sa.String(length=40), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('geo_type', sa.String(length=30), nullable=False),
        sa.Column('geo_id', sa.String(length=100), nullable=False),
        sa.Column('geo_name', sa.String(length=255), nullable=True),
        sa.Column('segment', sa.String(length=50), nullable=False),
        sa.Column('metric', sa.String(length=50), nullable=False),
        sa.Column('timeframe', sa.String(length=10), nullable=False),
        sa.Column('current_value', sa.Float(), nullable=False),
        sa.Column('prev_value', sa.Float(), nullable=True),
        sa.Column('delta_value', sa.Float(), nullable=True),
        sa.Column('delta_pct', sa.Float(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('evidence', JSON, nullable=True),
        sa.Column('signal_key', sa.String(length=64), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('acknowledged_by', sa.String(length=64), nullable=True),
        sa.Column('dismissed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dismissed_by', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'signal_key', name='uq_market_signal_org_key')
    )
    op.create_index('idx_market_signal_org', 'market_signal', ['org_id'], unique=False)
    op.create_index('idx_market_signal_status', 'market_signal', ['status'], unique=False)
    op.create_index('idx_market_signal_geo', 'market_signal', ['geo_id'], unique=False)

    op.create_table(
        'market_signal_target',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('signal_id', sa.String(length=64), nullable=False),
        sa.Column('investor_id', sa.String(length=64), nullable=False),
        sa.Column('relevance_score', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('reason', JSON, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['signal_id'], ['market_signal.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'signal_id', 'investor_id', name='uq_market_signal_target_key')
    )
    op.create_index('idx_market_signal_target_investor', 'market_signal_target', ['investor_id'], unique=False)

    op.create_table(
        'ai_market_summary',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('geo_id', sa.String(length=100), nullable=False),
        sa.Column('geo_name', sa.String(length=255), nullable=True),
        sa.Column('segment', sa.String(length=50), nullable=False),
        sa.Column('as_of_date', sa.Date(), nullable=False),
        sa.Column('median_dld_price', sa.Float(), nullable=True),
        sa.Column('median_price_per_sqft', sa.Float(), nullable=True),
        sa.Column('median_rent_annual', sa.Float(), nullable=True),
        sa.Column('gross_yield_pct', sa.Float(), nullable=True),
        sa.Column('active_listings_count', sa.Integer(), nullable=False),
        sa.Column('price_cut_rate_pct', sa.Float(), nullable=True),
        sa.Column('stale_listings_count', sa.Integer(), nullable=False),
        sa.Column('sample_size_sales', sa.Integer(), nullable=True),
        sa.Column('sample_size_rentals', sa.Integer(), nullable=True),
        sa.Column('sample_size_listings', sa.Integer(), nullable=True),
        sa.Column('summary_text', sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'geo_id', 'segment', 'as_of_date', name='uq_ai_market_summary_key')
    )
    op.create_index('idx_ai_market_summary_org_date', 'ai_market_summary', ['org_id', 'as_of_date'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_ai_market_summary_org_date', table_name='ai_market_summary')
    op.drop_table('ai_market_summary')
    op.drop_index('idx_market_signal_target_investor', table_name='market_signal_target')
    op.drop_table('market_signal_target')
    op.drop_index('idx_market_signal_geo', table_name='market_signal')
    op.drop_index('idx_market_signal_status', table_name='market_signal')
    op.drop_index('idx_market_signal_org', table_name='market_signal')
    op.drop_table('market_signal')
    op.drop_table('deal_rooms')
    op.drop_table('memos')
    op.drop_table('shortlist_items')
    op.drop_table('shortlists')
    op.drop_table('holdings')
    op.drop_index('idx_investors_tenant', table_name='investors')
    op.drop_table('investors')
    op.drop_index('idx_listings_area', table_name='listings')
    op.drop_index('idx_listings_tenant', table_name='listings')
    op.drop_table('listings')
    op.drop_index('idx_portal_listing_snapshot_date', table_name='portal_listing_snapshot')
    op.drop_index('idx_portal_listing_snapshot_org', table_name='portal_listing_snapshot')
    op.drop_table('portal_listing_snapshot')
    op.drop_index('idx_market_metric_snapshot_window', table_name='market_metric_snapshot')
    op.drop_index('idx_market_metric_snapshot_org', table_name='market_metric_snapshot')
    op.drop_table('market_metric_snapshot')
