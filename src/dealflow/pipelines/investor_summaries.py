"""
AI Investor Summary Compilation

Rolls an investor's mandate, portfolio and signal activity into one compact
row so AI context never needs the raw mandate document or holdings.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.settings import settings
from src.dealflow.models.listing import HoldingRecord
from src.dealflow.models.mandate import Mandate
from src.dealflow.pipelines.summaries import format_price
from src.dealflow.scoring.portfolio import build_portfolio_snapshot, yield_pct
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

MAX_LISTED_AREAS = 3
TOP_HOLDINGS = 5


def format_budget(value: float) -> str:
    """AED 1.2M, AED 800K or AED 950."""
    if value >= 1_000_000:
        return f"AED {value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"AED {value / 1_000:.0f}K"
    return f"AED {value:.0f}"


def format_budget_range(budget_min: Optional[float], budget_max: Optional[float]) -> str:
    if budget_min is not None and budget_max is not None:
        return f"{format_budget(budget_min)} - {format_budget(budget_max)}"
    if budget_min is not None:
        return f"From {format_budget(budget_min)}"
    if budget_max is not None:
        return f"Up to {format_budget(budget_max)}"
    return "Flexible"


def build_mandate_summary(mandate: Mandate) -> str:
    """
    Describe a mandate in one sentence.

    Clauses: property types, areas (first three, or "open to all areas"),
    yield target, budget range and a non-default risk tolerance.
    """
    parts = []

    if mandate.property_types:
        parts.append(f"Looking for {'/'.join(mandate.property_types)}")

    areas = mandate.preferred_areas
    if areas:
        listed = ", ".join(areas[:MAX_LISTED_AREAS])
        parts.append(f"in {listed}{'...' if len(areas) > MAX_LISTED_AREAS else ''}")
    elif mandate.open:
        parts.append("open to all areas")

    yield_target = mandate.yield_target_pct
    if yield_target:
        parts.append(f"{yield_target:.0f}%+ yield target")

    budget_range = format_budget_range(mandate.min_investment, mandate.max_investment)
    if budget_range != "Flexible":
        parts.append(budget_range)

    if mandate.risk_tolerance != "medium":
        parts.append(f"{mandate.risk_tolerance} risk tolerance")

    if not parts:
        return "No specific mandate defined."
    return ", ".join(parts) + "."


def build_portfolio_summary(holdings: Sequence[HoldingRecord]) -> str:
    if not holdings:
        return "No current holdings."

    snapshot = build_portfolio_snapshot(holdings)
    noun = "property" if snapshot.property_count == 1 else "properties"
    parts = [f"Owns {snapshot.property_count} {noun}"]

    if snapshot.total_value > 0:
        parts.append(f"worth {format_price(snapshot.total_value)}")
    if any(h.current_value for h in holdings):
        parts.append(f"avg yield {snapshot.avg_yield_pct:.1f}%")
    if any(h.occupancy_rate is not None for h in holdings):
        parts.append(f"{snapshot.occupancy_pct:.0f}% occupancy")

    return ", ".join(parts) + "."


@dataclass
class InvestorSummaryInput:
    """Everything the compiler needs about one investor."""
    investor_id: str
    name: Optional[str] = None
    mandate: Optional[Mandate] = None
    holdings: List[HoldingRecord] = field(default_factory=list)
    active_signals: int = 0
    new_signals: int = 0


@dataclass
class InvestorSummary:
    """One ai_investor_summary row before it is stored."""
    investor_id: str
    name: Optional[str]
    mandate_summary: str
    portfolio_summary: str
    summary_text: str
    preferred_areas: List[str] = field(default_factory=list)
    property_types: List[str] = field(default_factory=list)
    yield_target_pct: Optional[float] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    budget_range: str = "Flexible"
    risk_tolerance: str = "medium"
    holdings_count: int = 0
    portfolio_value: float = 0.0
    annual_rental: float = 0.0
    avg_yield_pct: Optional[float] = None
    occupancy_pct: Optional[float] = None
    active_signals_count: int = 0
    new_signals_count: int = 0
    top_holdings: Optional[List[Dict[str, Any]]] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "investor_id": self.investor_id,
            "name": self.name,
            "mandate_summary": self.mandate_summary,
            "preferred_areas": self.preferred_areas,
            "property_types": self.property_types,
            "yield_target_pct": self.yield_target_pct,
            "budget_min": self.budget_min,
            "budget_max": self.budget_max,
            "budget_range": self.budget_range,
            "risk_tolerance": self.risk_tolerance,
            "portfolio_summary": self.portfolio_summary,
            "holdings_count": self.holdings_count,
            "portfolio_value": self.portfolio_value,
            "annual_rental": self.annual_rental,
            "avg_yield_pct": self.avg_yield_pct,
            "occupancy_pct": self.occupancy_pct,
            "active_signals_count": self.active_signals_count,
            "new_signals_count": self.new_signals_count,
            "top_holdings": self.top_holdings,
            "summary_text": self.summary_text,
        }


class InvestorSummaryCompiler:
    """
    Builds InvestorSummary rows.

    Portfolio figures come from the same snapshot math the counterfactual
    engine uses (net, occupancy-adjusted rent). Yield and occupancy stay None
    when no holding carries the underlying value.
    """

    def __init__(self, max_chars: int = settings.summary_max_chars, top_holdings: int = TOP_HOLDINGS):
        self.max_chars = max_chars
        self.top_holdings = top_holdings

    def compile(self, investors: Sequence[InvestorSummaryInput]) -> List[InvestorSummary]:
        summaries = [self._summarize(investor) for investor in sorted(investors, key=lambda i: i.investor_id)]
        logger.info("investor_summaries_compiled", count=len(summaries))
        return summaries

    def _summarize(self, investor: InvestorSummaryInput) -> InvestorSummary:
        mandate = investor.mandate or Mandate()
        holdings = investor.holdings
        snapshot = build_portfolio_snapshot(holdings)

        has_yield = any(h.current_value for h in holdings)
        has_occupancy = any(h.occupancy_rate is not None for h in holdings)

        mandate_summary = build_mandate_summary(mandate)
        portfolio_summary = build_portfolio_summary(holdings)
        text = f"{mandate_summary} {portfolio_summary} {self._signals_clause(investor)}"
        if len(text) > self.max_chars:
            text = text[: self.max_chars - 3].rstrip() + "..."

        return InvestorSummary(
            investor_id=investor.investor_id,
            name=investor.name,
            mandate_summary=mandate_summary,
            portfolio_summary=portfolio_summary,
            summary_text=text,
            preferred_areas=list(mandate.preferred_areas),
            property_types=list(mandate.property_types),
            yield_target_pct=mandate.yield_target_pct,
            budget_min=mandate.min_investment,
            budget_max=mandate.max_investment,
            budget_range=format_budget_range(mandate.min_investment, mandate.max_investment),
            risk_tolerance=mandate.risk_tolerance,
            holdings_count=snapshot.property_count,
            portfolio_value=snapshot.total_value,
            annual_rental=snapshot.total_annual_rental,
            avg_yield_pct=round(snapshot.avg_yield_pct, 2) if has_yield else None,
            occupancy_pct=round(snapshot.occupancy_pct, 2) if has_occupancy else None,
            active_signals_count=investor.active_signals,
            new_signals_count=investor.new_signals,
            top_holdings=self._top_holdings(holdings),
        )

    def _top_holdings(self, holdings: Sequence[HoldingRecord]) -> Optional[List[Dict[str, Any]]]:
        valued = sorted(
            (h for h in holdings if h.current_value),
            key=lambda h: (-h.current_value, h.id),
        )[: self.top_holdings]
        if not valued:
            return None
        return [
            {
                "id": h.id,
                "property_id": h.property_id,
                "value": h.current_value,
                "yield_pct": round(yield_pct(h), 2),
            }
            for h in valued
        ]

    @staticmethod
    def _signals_clause(investor: InvestorSummaryInput) -> str:
        if not investor.active_signals:
            return "No active market signals."
        noun = "signal" if investor.active_signals == 1 else "signals"
        return f"{investor.active_signals} active market {noun} ({investor.new_signals} new)."
