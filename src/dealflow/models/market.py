"""
Market Data Models

Pydantic models for metric snapshots and market signals as the engine sees them.
"""
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class MetricName(str, Enum):
    """Metrics carried by snapshot rows."""
    MEDIAN_PRICE_PSF = "median_price_psf"
    MEDIAN_RENT_ANNUAL = "median_rent_annual"
    GROSS_YIELD = "gross_yield"
    ACTIVE_LISTINGS = "active_listings"
    PRICE_CUTS_COUNT = "price_cuts_count"
    STALE_LISTINGS_COUNT = "stale_listings_count"


# Official metrics merged per geo/segment; portal counts are carried separately
TRUTH_METRICS = (
    MetricName.MEDIAN_PRICE_PSF,
    MetricName.MEDIAN_RENT_ANNUAL,
    MetricName.GROSS_YIELD,
)
PORTAL_METRICS = (
    MetricName.ACTIVE_LISTINGS,
    MetricName.PRICE_CUTS_COUNT,
    MetricName.STALE_LISTINGS_COUNT,
)


def yield_to_pct(value: Optional[float]) -> Optional[float]:
    """Gross yield snapshots are fractions (0.072); values above 1 are already percent."""
    if value is None:
        return None
    return value * 100 if abs(value) <= 1 else value


class SourceType(str, Enum):
    OFFICIAL = "official"
    PORTAL = "portal"


class SignalType(str, Enum):
    PRICE_CHANGE = "price_change"
    RENT_CHANGE = "rent_change"
    YIELD_OPPORTUNITY = "yield_opportunity"
    SUPPLY_SPIKE = "supply_spike"
    DISCOUNTING_SPIKE = "discounting_spike"
    STALENESS_RISE = "staleness_rise"
    RISK_FLAG = "risk_flag"


class Severity(str, Enum):
    INFO = "info"
    WATCH = "watch"
    URGENT = "urgent"


class SignalStatus(str, Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"
    ROUTED = "routed"


class Trend(str, Enum):
    RISING = "rising"
    STABLE = "stable"
    FALLING = "falling"


class MetricSnapshot(BaseModel):
    """
    One metric value for a geo/segment over a window.

    Immutable; produced by the ingestion collaborator.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    geo_id: str = Field(..., description="Geo identifier (area slug)")
    geo_name: Optional[str] = Field(None, description="Display name of the geo")
    segment: str = Field(..., description="Segment, e.g. 2BR, Villa, Office")
    metric: MetricName
    value: float
    sample_size: Optional[int] = Field(None, ge=0)
    window_end: date
    source: str = Field("DLD", description="DLD, Ejari, portal name or derived")
    source_type: SourceType = SourceType.OFFICIAL
    geo_type: str = "area"
    timeframe: str = "QoQ"
    snapshot_id: Optional[int] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.geo_id, self.segment)

    @classmethod
    def from_row(cls, row: Any) -> "MetricSnapshot":
        """Build a snapshot from a ``MarketMetricSnapshot`` ORM row."""
        return cls(
            geo_id=row.geo_id,
            geo_name=row.geo_name,
            segment=row.segment,
            metric=MetricName(row.metric),
            value=float(row.value),
            sample_size=row.sample_size,
            window_end=row.window_end,
            source=row.source or "DLD",
            source_type=SourceType.OFFICIAL,
            geo_type=row.geo_type or "area",
            timeframe=row.timeframe or "QoQ",
            snapshot_id=row.id,
        )


class PortalSnapshot(BaseModel):
    """Portal inventory counts for a geo/segment on one day."""
    model_config = ConfigDict(frozen=True)

    geo_id: str
    geo_name: Optional[str] = None
    segment: str
    as_of_date: date
    active_listings: int = 0
    price_cuts_count: int = 0
    stale_listings_count: int = 0
    median_asking_price_psf: Optional[float] = None
    portal: str = "Bayut"
    geo_type: str = "area"
    timeframe: str = "WoW"
    snapshot_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Any) -> "PortalSnapshot":
        """Build a snapshot from a ``PortalListingSnapshot`` ORM row."""
        return cls(
            geo_id=row.geo_id,
            geo_name=row.geo_name,
            segment=row.segment,
            as_of_date=row.as_of_date,
            active_listings=row.active_listings or 0,
            price_cuts_count=row.price_cuts_count or 0,
            stale_listings_count=row.stale_listings_count or 0,
            median_asking_price_psf=(
                float(row.median_asking_price_psf) if row.median_asking_price_psf is not None else None
            ),
            portal=row.portal or "Bayut",
            geo_type=row.geo_type or "area",
            timeframe=row.timeframe or "WoW",
            snapshot_id=row.id,
        )

    def to_metric_snapshots(self) -> list[MetricSnapshot]:
        """Unpivot the inventory counts into one MetricSnapshot per metric."""
        values = {
            MetricName.ACTIVE_LISTINGS: self.active_listings,
            MetricName.PRICE_CUTS_COUNT: self.price_cuts_count,
            MetricName.STALE_LISTINGS_COUNT: self.stale_listings_count,
        }
        return [
            MetricSnapshot(
                geo_id=self.geo_id,
                geo_name=self.geo_name,
                segment=self.segment,
                metric=metric,
                value=float(value or 0),
                sample_size=self.active_listings,
                window_end=self.as_of_date,
                source=self.portal,
                source_type=SourceType.PORTAL,
                geo_type=self.geo_type,
                timeframe=self.timeframe,
                snapshot_id=self.snapshot_id,
            )
            for metric, value in values.items()
        ]


class MarketSignalView(BaseModel):
    """Read model of a stored market signal used during opportunity scoring."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    severity: str = Severity.INFO.value
    status: str = SignalStatus.NEW.value
    source_type: str = SourceType.OFFICIAL.value
    geo_id: str
    geo_name: Optional[str] = None
    segment: Optional[str] = None
    metric: Optional[str] = None
    current_value: float = 0.0
    delta_pct: Optional[float] = None
    confidence_score: Optional[float] = None
    evidence: Optional[Dict[str, Any]] = None

    @property
    def listing_id(self) -> Optional[str]:
        """Listing referenced directly by the signal evidence, if any."""
        if not self.evidence:
            return None
        listing_id = self.evidence.get("listing_id")
        return str(listing_id) if listing_id else None

    @property
    def is_dismissed(self) -> bool:
        return self.status == SignalStatus.DISMISSED.value
