"""
Signal-to-Investor Mapping

Scores how relevant each market signal is to each investor mandate and keeps
the pairs above the minimum relevance.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.settings import settings
from src.dealflow.models.mandate import Mandate
from src.dealflow.models.market import MarketSignalView, SignalType, yield_to_pct
from src.dealflow.transformers.geo_normalizer import GeoNormalizer
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

RISKY_SIGNAL_TYPES = {
    SignalType.RISK_FLAG.value,
    SignalType.DISCOUNTING_SPIKE.value,
    SignalType.SUPPLY_SPIKE.value,
    SignalType.STALENESS_RISE.value,
}


def is_price_related(metric: Optional[str]) -> bool:
    m = (metric or "").lower()
    return "price" in m or "ask" in m or "psf" in m


@dataclass
class InvestorProfile:
    """Investor mandate plus the areas the investor already holds property in."""
    investor_id: str
    mandate: Optional[Mandate] = None
    holding_areas: List[str] = field(default_factory=list)


@dataclass
class SignalTarget:
    """Relevance of one signal for one investor."""
    signal_id: str
    investor_id: str
    relevance_score: float
    reason: Dict[str, Any]

    def to_row(self, org_id: str) -> Dict[str, Any]:
        return {
            "org_id": org_id,
            "signal_id": self.signal_id,
            "investor_id": self.investor_id,
            "relevance_score": self.relevance_score,
            "status": "new",
            "reason": self.reason,
        }


@dataclass
class MappingResult:
    targets: List[SignalTarget] = field(default_factory=list)
    skipped: int = 0


class SignalTargetMapper:
    """
    Maps signals to investors.

    Scoring per (signal, investor):
    - yield_opportunity needs a numeric yield target; signal yield >= target: +yield weight, else skip
    - area match: +area weight; open mandate: +open weight
    - price-related metric with both budget bounds: +budget weight when within; otherwise +soft weight
    - investor already holds property in the signal area: +exposure weight
    - risky signal types are capped for low risk tolerance
    Scores below the minimum are skipped.
    """

    def __init__(
        self,
        min_score: float = settings.mapping_min_score,
        area_match: float = settings.mapping_area_match,
        area_open: float = settings.mapping_area_open,
        budget_match: float = settings.mapping_budget_match,
        budget_soft: float = settings.mapping_budget_soft,
        yield_match: float = settings.mapping_yield_match,
        portfolio_exposure: float = settings.mapping_portfolio_exposure,
        low_risk_cap: float = settings.mapping_low_risk_cap,
        normalizer: Optional[GeoNormalizer] = None,
    ):
        self.min_score = min_score
        self.area_match = area_match
        self.area_open = area_open
        self.budget_match = budget_match
        self.budget_soft = budget_soft
        self.yield_match = yield_match
        self.portfolio_exposure = portfolio_exposure
        self.low_risk_cap = low_risk_cap
        self.normalizer = normalizer or GeoNormalizer()

    @property
    def thresholds(self) -> Dict[str, float]:
        return {
            "min_score": self.min_score,
            "area_match": self.area_match,
            "area_open": self.area_open,
            "budget_match": self.budget_match,
            "budget_soft": self.budget_soft,
            "yield_match": self.yield_match,
            "portfolio_exposure": self.portfolio_exposure,
            "low_risk_cap": self.low_risk_cap,
        }

    def map_signals(
        self,
        signals: Sequence[MarketSignalView],
        investors: Sequence[InvestorProfile],
    ) -> MappingResult:
        """
        Score every non-dismissed signal against every investor.

        Args:
            signals: Stored signals of one tenant
            investors: Active investors of the same tenant

        Returns:
            MappingResult with kept targets and the number of skipped pairs
        """
        result = MappingResult()
        for signal in signals:
            if signal.is_dismissed:
                continue
            for investor in investors:
                target = self.score(signal, investor)
                if target is None:
                    result.skipped += 1
                else:
                    result.targets.append(target)

        logger.info(
            "signals_mapped",
            signals=len(signals),
            investors=len(investors),
            targets=len(result.targets),
            skipped=result.skipped
        )
        return result

    def _geo_matches(self, signal: MarketSignalView, areas: Sequence[str]) -> bool:
        return (
            self.normalizer.matches_any(signal.geo_id, areas)
            or self.normalizer.matches_any(signal.geo_name, areas)
        )

    def score(self, signal: MarketSignalView, investor: InvestorProfile) -> Optional[SignalTarget]:
        mandate = investor.mandate or Mandate()
        score = 0.0
        matched: List[str] = []
        details: Dict[str, Any] = {}

        if signal.type == SignalType.YIELD_OPPORTUNITY.value:
            target = mandate.yield_target_pct
            signal_yield = yield_to_pct(signal.current_value)
            if target is None or signal_yield is None or signal_yield < target:
                return None
            score += self.yield_match
            matched.append("yield")
            details["yield"] = {"yield_target": target, "signal_yield": signal_yield}

        if mandate.preferred_areas and self._geo_matches(signal, mandate.preferred_areas):
            score += self.area_match
            matched.append("area")
            details["area"] = {"matched_geo_id": signal.geo_id}
        elif mandate.is_open:
            score += self.area_open
            matched.append("area_open")
            details["area"] = {"open": True}
        else:
            details["area"] = {"open": False, "preferred_areas": list(mandate.preferred_areas)}

        price_related = is_price_related(signal.metric)
        budget_min, budget_max = mandate.min_investment, mandate.max_investment
        if not price_related or budget_min is None or budget_max is None:
            score += self.budget_soft
            matched.append("budget_soft")
            details["budget"] = {"applied": "soft", "price_related": price_related}
        else:
            within = budget_min <= signal.current_value <= budget_max
            details["budget"] = {
                "applied": "hard",
                "budget_min": budget_min,
                "budget_max": budget_max,
                "within": within,
            }
            if within:
                score += self.budget_match
                matched.append("budget")

        if investor.holding_areas and self._geo_matches(signal, investor.holding_areas):
            score += self.portfolio_exposure
            matched.append("portfolio_exposure")
            details["portfolio_exposure"] = {"geo_id": signal.geo_id}

        if signal.type in RISKY_SIGNAL_TYPES and mandate.risk_tolerance == "low":
            score = min(score, self.low_risk_cap)
            details["risk_note"] = "low_risk_tolerance_cap_applied"

        score = round(min(max(score, 0.0), 1.0), 4)
        if score < self.min_score:
            return None

        return SignalTarget(
            signal_id=signal.id,
            investor_id=investor.investor_id,
            relevance_score=score,
            reason={"matched": matched, "details": details, "thresholds_used": self.thresholds},
        )
