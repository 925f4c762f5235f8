"""
AI Market Summary Compilation

Rolls latest official metrics and portal inventory up into one compact,
template-built summary row per geo/segment/day. The text is bounded so it can
be handed to AI context without pulling raw snapshot data.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from config.settings import settings
from src.dealflow.models.market import MetricName, MetricSnapshot, PortalSnapshot, Trend, yield_to_pct
from src.dealflow.pipelines.metric_aggregation import AggregatedMetrics, InventoryPair, MetricAggregator
from src.dealflow.pipelines.signal_detection import classify_trend, compute_delta
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

DEVIATION_BAND = 0.10


def format_price(value: float) -> str:
    """AED 1.2M at or above one million, AED 950,000 below."""
    if value >= 1_000_000:
        return f"AED {value / 1_000_000:.1f}M"
    return f"AED {int(round(value)):,}"


def build_summary_text(
    geo_name: str,
    segment: str,
    median_price: Optional[float] = None,
    price_vs_truth: Optional[float] = None,
    active_listings: Optional[int] = None,
    gross_yield_pct: Optional[float] = None,
    price_trend: Optional[Trend] = None,
    supply_trend: Optional[Trend] = None,
) -> str:
    """
    Compose the summary sentence from fixed clauses.

    Clauses for missing values are left out; clause order never changes.
    """
    opening = f"{geo_name} {segment} market:"
    parts = []

    if median_price:
        parts.append(f"median price {format_price(median_price)}")

    if price_vs_truth is not None:
        pct = f"{abs(price_vs_truth * 100):.0f}"
        if price_vs_truth > DEVIATION_BAND:
            parts.append(f"asking prices {pct}% above market")
        elif price_vs_truth < -DEVIATION_BAND:
            parts.append(f"asking prices {pct}% below market")
        else:
            parts.append("asking prices aligned with market")

    if active_listings:
        parts.append(f"{active_listings} active listings")

    if gross_yield_pct:
        parts.append(f"{gross_yield_pct:.1f}% gross yield")

    if price_trend:
        parts.append(f"prices {price_trend.value}")
    if supply_trend:
        parts.append(f"supply {supply_trend.value}")

    if not parts:
        return f"{opening} no recent data."
    return f"{opening} {'. '.join(parts)}."


@dataclass
class MarketSummary:
    """One ai_market_summary row before it is stored."""
    geo_id: str
    segment: str
    geo_name: str
    summary_text: str
    median_dld_price: Optional[float] = None
    median_price_per_sqft: Optional[float] = None
    median_rent_annual: Optional[float] = None
    gross_yield_pct: Optional[float] = None
    active_listings_count: int = 0
    price_cut_rate_pct: Optional[float] = None
    stale_listings_count: int = 0
    sample_size_sales: Optional[int] = None
    sample_size_rentals: Optional[int] = None
    sample_size_listings: Optional[int] = None
    trends: Dict[str, Optional[str]] = field(default_factory=dict)

    def to_row(self) -> Dict[str, Any]:
        return {
            "geo_id": self.geo_id,
            "geo_name": self.geo_name,
            "segment": self.segment,
            "median_dld_price": self.median_dld_price,
            "median_price_per_sqft": self.median_price_per_sqft,
            "median_rent_annual": self.median_rent_annual,
            "gross_yield_pct": self.gross_yield_pct,
            "active_listings_count": self.active_listings_count,
            "price_cut_rate_pct": self.price_cut_rate_pct,
            "stale_listings_count": self.stale_listings_count,
            "sample_size_sales": self.sample_size_sales,
            "sample_size_rentals": self.sample_size_rentals,
            "sample_size_listings": self.sample_size_listings,
            "summary_text": self.summary_text,
        }


class SummaryCompiler:
    """
    Builds MarketSummary rows from snapshots.

    median_dld_price is estimated as price per sqft times a reference unit
    size. Price-cut rate is price cuts over active listings, None when there
    are no active listings.
    """

    def __init__(
        self,
        reference_size_sqft: float = settings.summary_reference_size_sqft,
        max_chars: int = settings.summary_max_chars,
        trend_threshold: float = settings.trend_threshold_pct,
        aggregator: Optional[MetricAggregator] = None,
    ):
        self.reference_size_sqft = reference_size_sqft
        self.max_chars = max_chars
        self.trend_threshold = trend_threshold
        self.aggregator = aggregator or MetricAggregator()

    def compile(
        self,
        truth_snapshots: Sequence[MetricSnapshot],
        portal_snapshots: Sequence[PortalSnapshot],
    ) -> List[MarketSummary]:
        """
        Compile one summary per geo/segment present in either source.

        Args:
            truth_snapshots: Official metric snapshots of one tenant
            portal_snapshots: Portal inventory snapshots of the same tenant

        Returns:
            Summaries ordered by geo_id, segment
        """
        truth = {record.key: record for record in self.aggregator.latest(truth_snapshots)}
        inventory = self.aggregator.inventory(portal_snapshots)
        price_trends = self._price_trends(truth_snapshots)

        keys = sorted(set(truth) | set(inventory))
        summaries = [
            self._summarize(key, truth.get(key), inventory.get(key), price_trends.get(key))
            for key in keys
        ]
        logger.info("market_summaries_compiled", count=len(summaries))
        return summaries

    def _price_trends(self, snapshots: Sequence[MetricSnapshot]) -> Dict[tuple, Optional[Trend]]:
        price_rows = [s for s in snapshots if s.metric == MetricName.MEDIAN_PRICE_PSF]
        trends: Dict[tuple, Optional[Trend]] = {}
        for pair in self.aggregator.pairs(price_rows):
            if pair.key in trends or pair.prior is None:
                continue
            trends[pair.key] = classify_trend(
                compute_delta(pair.current.value, pair.prior.value), self.trend_threshold
            )
        return trends

    def _summarize(
        self,
        key: tuple,
        truth: Optional[AggregatedMetrics],
        inventory: Optional[InventoryPair],
        price_trend: Optional[Trend],
    ) -> MarketSummary:
        geo_id, segment = key
        portal = inventory.current if inventory else None

        geo_name = (truth.geo_name if truth else None) or (portal.geo_name if portal else None) or geo_id
        price_psf = truth.median_price_psf if truth else None
        median_price = price_psf * self.reference_size_sqft if price_psf else None
        gross_yield_pct = yield_to_pct(truth.gross_yield) if truth else None
        if gross_yield_pct is not None:
            gross_yield_pct = round(gross_yield_pct, 2)

        price_vs_truth = None
        if portal and portal.median_asking_price_psf and price_psf:
            price_vs_truth = (portal.median_asking_price_psf - price_psf) / price_psf

        active = portal.active_listings if portal else 0
        price_cut_rate = None
        if portal and active > 0:
            price_cut_rate = round(portal.price_cuts_count / active * 100, 2)

        supply_trend = None
        if inventory and inventory.prior:
            supply_trend = classify_trend(
                compute_delta(inventory.current.active_listings, inventory.prior.active_listings),
                self.trend_threshold,
            )

        text = build_summary_text(
            geo_name=geo_name,
            segment=segment,
            median_price=median_price,
            price_vs_truth=price_vs_truth,
            active_listings=active or None,
            gross_yield_pct=gross_yield_pct,
            price_trend=price_trend,
            supply_trend=supply_trend,
        )
        if len(text) > self.max_chars:
            text = text[: self.max_chars - 3].rstrip() + "..."

        return MarketSummary(
            geo_id=geo_id,
            segment=segment,
            geo_name=geo_name,
            summary_text=text,
            median_dld_price=median_price,
            median_price_per_sqft=price_psf,
            median_rent_annual=truth.median_rent_annual if truth else None,
            gross_yield_pct=gross_yield_pct,
            active_listings_count=active,
            price_cut_rate_pct=price_cut_rate,
            stale_listings_count=portal.stale_listings_count if portal else 0,
            sample_size_sales=truth.sample_size_sales if truth else None,
            sample_size_rentals=truth.sample_size_rentals if truth else None,
            sample_size_listings=portal.active_listings if portal else None,
            trends={
                "price": price_trend.value if price_trend else None,
                "supply": supply_trend.value if supply_trend else None,
            },
        )
