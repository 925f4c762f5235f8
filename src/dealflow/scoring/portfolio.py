"""
Portfolio Snapshot

Holding-level income and yield math plus the per-area counts used for
concentration risk.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from src.dealflow.models.listing import HoldingRecord
from src.dealflow.transformers.geo_normalizer import GeoNormalizer


def annual_gross_rent(holding: HoldingRecord) -> float:
    occupancy = holding.occupancy_rate if holding.occupancy_rate is not None else 1.0
    return (holding.monthly_rent or 0.0) * 12 * occupancy


def annual_net_rent(holding: HoldingRecord) -> float:
    return annual_gross_rent(holding) - (holding.annual_expenses or 0.0)


def yield_pct(holding: HoldingRecord) -> Optional[float]:
    """Net yield on current value in percent; None without a current value."""
    if not holding.current_value:
        return None
    return annual_net_rent(holding) / holding.current_value * 100


def appreciation_pct(holding: HoldingRecord) -> Optional[float]:
    if not holding.purchase_price or holding.current_value is None:
        return None
    return (holding.current_value - holding.purchase_price) / holding.purchase_price * 100


@dataclass
class PortfolioSnapshot:
    """
    Aggregate view of an investor's holdings.

    Attributes:
        property_count: Number of holdings
        total_value: Sum of current values
        total_purchase_cost: Sum of purchase prices
        total_annual_rental: Net annual rent (occupancy-adjusted, after expenses)
        avg_yield_pct: Mean net yield across holdings with a current value
        occupancy_pct: Mean occupancy in percent
        appreciation_pct: Value change over purchase cost in percent
        area_counts: Holdings per normalized area
    """
    property_count: int = 0
    total_value: float = 0.0
    total_purchase_cost: float = 0.0
    total_annual_rental: float = 0.0
    avg_yield_pct: float = 0.0
    occupancy_pct: float = 0.0
    appreciation_pct: float = 0.0
    area_counts: Dict[str, int] = field(default_factory=dict)
    owned_ids: List[str] = field(default_factory=list)

    def holdings_in_area(self, area: Optional[str], normalizer: Optional[GeoNormalizer] = None) -> int:
        normalizer = normalizer or GeoNormalizer()
        return self.area_counts.get(normalizer.normalize(area), 0)


def build_portfolio_snapshot(
    holdings: Sequence[HoldingRecord],
    normalizer: Optional[GeoNormalizer] = None,
) -> PortfolioSnapshot:
    """
    Summarize holdings.

    Args:
        holdings: Holdings of one investor
        normalizer: Area normalizer used for the per-area counts

    Returns:
        PortfolioSnapshot (all zeros for an empty portfolio)
    """
    normalizer = normalizer or GeoNormalizer()
    snapshot = PortfolioSnapshot(property_count=len(holdings))
    if not holdings:
        return snapshot

    snapshot.owned_ids = [h.property_id for h in holdings]
    snapshot.total_value = sum(h.current_value or 0.0 for h in holdings)
    snapshot.total_purchase_cost = sum(h.purchase_price or 0.0 for h in holdings)
    snapshot.total_annual_rental = sum(annual_net_rent(h) for h in holdings)

    yields = [y for y in (yield_pct(h) for h in holdings) if y is not None]
    snapshot.avg_yield_pct = sum(yields) / len(yields) if yields else 0.0

    occupancies = [h.occupancy_rate for h in holdings if h.occupancy_rate is not None]
    snapshot.occupancy_pct = sum(occupancies) / len(occupancies) * 100 if occupancies else 0.0

    if snapshot.total_purchase_cost > 0:
        snapshot.appreciation_pct = (
            (snapshot.total_value - snapshot.total_purchase_cost) / snapshot.total_purchase_cost * 100
        )

    for holding in holdings:
        key = normalizer.normalize(holding.area)
        if key:
            snapshot.area_counts[key] = snapshot.area_counts.get(key, 0) + 1

    return snapshot
