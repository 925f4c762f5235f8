"""
SQLAlchemy ORM Models

Contract tables shared with the ingestion collaborators (snapshots), the CRM
(listings, investors, holdings, shortlists, memos, deal rooms) and the tables
the engine writes (market signals, signal targets, AI market and investor
summaries).
"""
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String, Integer, Numeric, Float, Date, DateTime, Text,
    ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.dealflow.db.base import Base, CreatedAtMixin, TimestampMixin, JSONType


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Snapshot inputs (owned by ingestion, read-only to the engine)
# ---------------------------------------------------------------------------

class MarketMetricSnapshot(Base, CreatedAtMixin):
    """Official (DLD/Ejari) aggregated metric per geo/segment/window."""
    __tablename__ = "market_metric_snapshot"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="DLD", comment="DLD, Ejari or derived")
    metric: Mapped[str] = mapped_column(String(50), nullable=False)
    geo_type: Mapped[str] = mapped_column(String(30), nullable=False, default="area")
    geo_id: Mapped[str] = mapped_column(String(100), nullable=False)
    geo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    segment: Mapped[str] = mapped_column(String(50), nullable=False)
    timeframe: Mapped[str] = mapped_column(String(10), nullable=False, default="QoQ")
    window_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    window_end: Mapped[date] = mapped_column(Date, nullable=False)
    value: Mapped[float] = mapped_column(Numeric(16, 4), nullable=False)
    sample_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "org_id", "source", "metric", "geo_type", "geo_id", "segment", "timeframe", "window_end",
            name="uq_market_metric_snapshot_key"
        ),
        Index("idx_market_metric_snapshot_org", "org_id"),
        Index("idx_market_metric_snapshot_window", "window_end"),
    )

    def __repr__(self) -> str:
        return f"<MarketMetricSnapshot(geo={self.geo_id}, metric={self.metric}, value={self.value})>"


class PortalListingSnapshot(Base, CreatedAtMixin):
    """Daily portal inventory counts per geo/segment."""
    __tablename__ = "portal_listing_snapshot"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    portal: Mapped[str] = mapped_column(String(50), nullable=False, default="Bayut")
    geo_type: Mapped[str] = mapped_column(String(30), nullable=False, default="area")
    geo_id: Mapped[str] = mapped_column(String(100), nullable=False)
    geo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    segment: Mapped[str] = mapped_column(String(50), nullable=False)
    timeframe: Mapped[str] = mapped_column(String(10), nullable=False, default="WoW")
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    active_listings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_cuts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stale_listings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    median_asking_price_psf: Mapped[Optional[float]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Median asking price per sqft across active listings"
    )

    __table_args__ = (
        UniqueConstraint(
            "org_id", "portal", "geo_type", "geo_id", "segment", "timeframe", "as_of_date",
            name="uq_portal_listing_snapshot_key"
        ),
        Index("idx_portal_listing_snapshot_org", "org_id"),
        Index("idx_portal_listing_snapshot_date", "as_of_date"),
    )

    def __repr__(self) -> str:
        return f"<PortalListingSnapshot(geo={self.geo_id}, as_of={self.as_of_date}, active={self.active_listings})>"


# ---------------------------------------------------------------------------
# CRM inputs (read-only to the engine)
# ---------------------------------------------------------------------------

class Listing(Base, TimestampMixin):
    """Property candidate available to a tenant."""
    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    area: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Numeric(14, 2), nullable=True)
    size: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True, comment="Size in sqft")
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, default="available")
    readiness: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    trust_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    roi: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Expected gross yield in percent")
    source_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="official or portal")

    __table_args__ = (
        Index("idx_listings_tenant", "tenant_id"),
        Index("idx_listings_area", "area"),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, area={self.area}, price={self.price})>"


class Investor(Base, TimestampMixin):
    """Investor with a loosely-typed mandate document."""
    __tablename__ = "investors"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="active")
    mandate: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    holdings: Mapped[list["Holding"]] = relationship(
        "Holding",
        back_populates="investor",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_investors_tenant", "tenant_id"),
    )

    def __repr__(self) -> str:
        return f"<Investor(id={self.id}, name={self.name})>"


class Holding(Base, TimestampMixin):
    """Property owned by an investor."""
    __tablename__ = "holdings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    investor_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("investors.id", ondelete="CASCADE"),
        nullable=False
    )
    listing_id: Mapped[str] = mapped_column(String(64), nullable=False)
    purchase_price: Mapped[Optional[float]] = mapped_column(Numeric(14, 2), nullable=True)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    current_value: Mapped[Optional[float]] = mapped_column(Numeric(14, 2), nullable=True)
    monthly_rent: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)
    occupancy_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="0..1")
    annual_expenses: Mapped[Optional[float]] = mapped_column(Numeric(12, 2), nullable=True)

    investor: Mapped["Investor"] = relationship("Investor", back_populates="holdings")

    __table_args__ = (
        UniqueConstraint("investor_id", "listing_id", name="uq_holdings_investor_listing"),
    )

    def __repr__(self) -> str:
        return f"<Holding(investor={self.investor_id}, listing={self.listing_id})>"


class Shortlist(Base, TimestampMixin):
    """Investor shortlist header."""
    __tablename__ = "shortlists"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    investor_id: Mapped[str] = mapped_column(String(64), nullable=False)

    items: Mapped[list["ShortlistItem"]] = relationship(
        "ShortlistItem",
        back_populates="shortlist",
        cascade="all, delete-orphan"
    )


class ShortlistItem(Base):
    """Listing placed on a shortlist with its match score."""
    __tablename__ = "shortlist_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shortlist_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("shortlists.id", ondelete="CASCADE"),
        nullable=False
    )
    listing_id: Mapped[str] = mapped_column(String(64), nullable=False)
    match_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    added_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    shortlist: Mapped["Shortlist"] = relationship("Shortlist", back_populates="items")

    __table_args__ = (
        UniqueConstraint("shortlist_id", "listing_id", name="uq_shortlist_items_listing"),
    )


class Memo(Base, TimestampMixin):
    """Investment memo for a listing/investor pair."""
    __tablename__ = "memos"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    listing_id: Mapped[str] = mapped_column(String(64), nullable=False)
    investor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    state: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")


class DealRoom(Base, TimestampMixin):
    """Active deal room for a property/investor pair."""
    __tablename__ = "deal_rooms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    property_id: Mapped[str] = mapped_column(String(64), nullable=False)
    investor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="open")


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------

class MarketSignal(Base, TimestampMixin):
    """
    Detected market signal.

    Insert-only except for the triage fields (status and its timestamps).
    """
    __tablename__ = "market_signal"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False, comment="official or portal")
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    geo_type: Mapped[str] = mapped_column(String(30), nullable=False, default="area")
    geo_id: Mapped[str] = mapped_column(String(100), nullable=False)
    geo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    segment: Mapped[str] = mapped_column(String(50), nullable=False)
    metric: Mapped[str] = mapped_column(String(50), nullable=False)
    timeframe: Mapped[str] = mapped_column(String(10), nullable=False)
    current_value: Mapped[float] = mapped_column(Float, nullable=False)
    prev_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delta_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delta_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    evidence: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    signal_key: Mapped[str] = mapped_column(String(64), nullable=False)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    dismissed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    targets: Mapped[list["MarketSignalTarget"]] = relationship(
        "MarketSignalTarget",
        back_populates="signal",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("org_id", "signal_key", name="uq_market_signal_org_key"),
        Index("idx_market_signal_org", "org_id"),
        Index("idx_market_signal_status", "status"),
        Index("idx_market_signal_geo", "geo_id"),
    )

    def __repr__(self) -> str:
        return f"<MarketSignal(id={self.id}, type={self.type}, geo={self.geo_id}, status={self.status})>"


class MarketSignalTarget(Base, TimestampMixin):
    """Mapping of a market signal to an investor mandate."""
    __tablename__ = "market_signal_target"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    signal_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("market_signal.id", ondelete="CASCADE"),
        nullable=False
    )
    investor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    relevance_score: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    reason: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    signal: Mapped["MarketSignal"] = relationship("MarketSignal", back_populates="targets")

    __table_args__ = (
        UniqueConstraint("org_id", "signal_id", "investor_id", name="uq_market_signal_target_key"),
        Index("idx_market_signal_target_investor", "investor_id"),
    )


class AIMarketSummary(Base, TimestampMixin):
    """Compact per-geo market summary safe to hand to AI context."""
    __tablename__ = "ai_market_summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    geo_id: Mapped[str] = mapped_column(String(100), nullable=False)
    geo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    segment: Mapped[str] = mapped_column(String(50), nullable=False)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    median_dld_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    median_price_per_sqft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    median_rent_annual: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    gross_yield_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active_listings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_cut_rate_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    stale_listings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sample_size_sales: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sample_size_rentals: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sample_size_listings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    summary_text: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("org_id", "geo_id", "segment", "as_of_date", name="uq_ai_market_summary_key"),
        Index("idx_ai_market_summary_org_date", "org_id", "as_of_date"),
    )

    def __repr__(self) -> str:
        return f"<AIMarketSummary(geo={self.geo_id}, segment={self.segment}, as_of={self.as_of_date})>"


class AIInvestorSummary(Base, TimestampMixin):
    """Compact per-investor context (mandate, portfolio, signal activity) safe to hand to AI context."""
    __tablename__ = "ai_investor_summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    investor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    mandate_summary: Mapped[str] = mapped_column(Text, nullable=False)
    preferred_areas: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    property_types: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    yield_target_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    budget_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    budget_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    budget_range: Mapped[str] = mapped_column(String(100), nullable=False, default="Flexible")
    risk_tolerance: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    portfolio_summary: Mapped[str] = mapped_column(Text, nullable=False)
    holdings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    portfolio_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    annual_rental: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_yield_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    occupancy_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active_signals_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_signals_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    top_holdings: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    summary_text: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("org_id", "investor_id", name="uq_ai_investor_summary_key"),
        Index("idx_ai_investor_summary_org", "org_id"),
    )

    def __repr__(self) -> str:
        return f"<AIInvestorSummary(investor={self.investor_id}, as_of={self.as_of_date})>"
