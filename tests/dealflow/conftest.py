"""
Shared fixtures for the dealflow tests.

The database is a file-backed SQLite per test so concurrent lookups (one
session per worker thread) see the same tables.
"""
from datetime import date

import pytest

from src.dealflow.db.base import Base
from src.dealflow.db.models import (
    Holding,
    Investor,
    Listing,
    MarketMetricSnapshot,
    PortalListingSnapshot,
)
from src.dealflow.db.session import build_engine, build_session_factory
from src.dealflow.services.datastore import DataStore

ORG = "org-1"


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'dealflow.db'}")
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def store(session_factory):
    return DataStore(session_factory, max_workers=4, query_timeout=10)


@pytest.fixture
def seeded_market(session_factory):
    """Two quarters of official metrics and two days of portal counts for JVC 1BR."""
    db = session_factory()
    db.add_all([
        MarketMetricSnapshot(
            org_id=ORG, source="DLD", metric="median_price_psf", geo_id="jvc",
            geo_name="Jumeirah Village Circle", segment="1BR", timeframe="QoQ",
            window_end=date(2025, 3, 31), value=1000, sample_size=40,
        ),
        MarketMetricSnapshot(
            org_id=ORG, source="DLD", metric="median_price_psf", geo_id="jvc",
            geo_name="Jumeirah Village Circle", segment="1BR", timeframe="QoQ",
            window_end=date(2025, 6, 30), value=1150, sample_size=45,
        ),
        MarketMetricSnapshot(
            org_id=ORG, source="DLD", metric="gross_yield", geo_id="jvc",
            geo_name="Jumeirah Village Circle", segment="1BR", timeframe="QoQ",
            window_end=date(2025, 6, 30), value=0.072, sample_size=30,
        ),
        PortalListingSnapshot(
            org_id=ORG, portal="Bayut", geo_id="jvc", geo_name="Jumeirah Village Circle",
            segment="1BR", as_of_date=date(2025, 6, 23), active_listings=100,
            price_cuts_count=10, stale_listings_count=8, median_asking_price_psf=1180,
        ),
        PortalListingSnapshot(
            org_id=ORG, portal="Bayut", geo_id="jvc", geo_name="Jumeirah Village Circle",
            segment="1BR", as_of_date=date(2025, 6, 30), active_listings=130,
            price_cuts_count=12, stale_listings_count=9, median_asking_price_psf=1200,
        ),
    ])
    db.commit()
    db.close()
    return ORG


@pytest.fixture
def seeded_crm(session_factory):
    """One investor focused on JVC apartments, with listings and one holding."""
    db = session_factory()
    investor = Investor(
        id="inv-1",
        tenant_id=ORG,
        name="Aisha Capital",
        status="active",
        mandate={
            "propertyTypes": ["apartment"],
            "preferredAreas": ["JVC"],
            "minInvestment": 800_000,
            "maxInvestment": 2_000_000,
            "yieldTarget": "6-8%",
        },
    )
    db.add(investor)
    db.add_all([
        Listing(
            id="lst-1", tenant_id=ORG, title="1BR in JVC", area="Jumeirah Village Circle",
            type="apartment", price=1_200_000, bedrooms=1, trust_score=90, roi=8.5,
            readiness="READY_FOR_MEMO", source_type="official",
        ),
        Listing(
            id="lst-2", tenant_id=ORG, title="Villa on the Palm", area="Palm Jumeirah",
            type="villa", price=15_000_000, bedrooms=5, trust_score=80, roi=4.0,
        ),
        Listing(
            id="lst-3", tenant_id=ORG, title="Owned JVC studio", area="JVC",
            type="apartment", price=700_000, bedrooms=0,
        ),
        Listing(
            id="lst-other", tenant_id="org-2", title="Other tenant", area="JVC",
            type="apartment", price=1_000_000,
        ),
    ])
    db.add(Holding(
        id="hold-1", investor_id="inv-1", listing_id="lst-3",
        purchase_price=650_000, current_value=700_000, monthly_rent=4_500, occupancy_rate=1.0,
    ))
    db.commit()
    db.close()
    return ORG
