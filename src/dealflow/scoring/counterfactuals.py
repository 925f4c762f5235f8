"""
Counterfactual Engine

Runs the fixed-order constraint checks on every candidate of one investor and
splits them into recommended properties and counterfactuals: strong
candidates that miss only one or two constraints, with the reasons and what
would have to change.

Candidate strength uses its own scale, separate from mandate fit:
    strength = 0.55 * (trust_score or 60) + 3.5 * (roi or 7) + 10 if the type matches
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.settings import settings
from src.dealflow.models.listing import (
    HoldingRecord,
    ListingCandidate,
    READINESS_NEEDS_VERIFICATION,
    READINESS_READY_FOR_MEMO,
    TrustPolicy,
)
from src.dealflow.models.mandate import Mandate
from src.dealflow.scoring.mandate_matcher import MandateMatcher
from src.dealflow.scoring.portfolio import PortfolioSnapshot, build_portfolio_snapshot
from src.dealflow.transformers.geo_normalizer import GeoNormalizer
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TRUST_SCORE = 60
DEFAULT_ROI = 7
TYPE_BONUS = 10

# Violations that still allow a recommendation
NON_DISQUALIFYING = {"under_budget_min"}
SOFT_CODES = {"area_mismatch", "type_mismatch", "liquidity_risk"}


@dataclass
class ViolatedConstraint:
    key: str
    expected: Any
    actual: Any
    gap: Optional[float] = None


@dataclass
class CandidateEvaluation:
    """
    Constraint check outcome for one candidate.

    Attributes:
        violations: Fixed-order constraint codes (budget, yield, trust, verification, concentration)
        soft_codes: Area/type mismatch and liquidity codes
    """
    listing: ListingCandidate
    score: int
    reasons: List[str]
    violations: List[str] = field(default_factory=list)
    soft_codes: List[str] = field(default_factory=list)
    reason_labels: List[str] = field(default_factory=list)
    violated_constraints: List[ViolatedConstraint] = field(default_factory=list)
    what_would_change: List[str] = field(default_factory=list)

    @property
    def reason_codes(self) -> List[str]:
        return self.violations + self.soft_codes

    @property
    def disqualified(self) -> bool:
        return any(code not in NON_DISQUALIFYING for code in self.violations)


@dataclass
class RecommendedProperty:
    """Candidate that cleared every check; non-disqualifying codes (under_budget_min) stay attached."""
    property_id: str
    title: str
    score: int
    reasons: List[str]
    mandate_match: int = 0
    reason_codes: List[str] = field(default_factory=list)
    reason_labels: List[str] = field(default_factory=list)


@dataclass
class Counterfactual:
    property_id: str
    title: str
    score: int
    reason_codes: List[str]
    reason_labels: List[str]
    violated_constraints: List[ViolatedConstraint]
    details: str
    what_would_change_my_mind: Optional[List[str]] = None


@dataclass
class RecommendationBundle:
    recommended: List[RecommendedProperty] = field(default_factory=list)
    counterfactuals: List[Counterfactual] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CounterfactualEngine:
    """
    Splits candidates into recommended and counterfactual lists.

    Checks, in order, all accumulated:
    1. over_budget: price above max investment
    2. under_budget_min: price below min investment (reported, not disqualifying)
    3. yield_below_target: roi below the mandate yield target
    4. low_trust_score: trust score below the policy minimum
    5. needs_verification: policy requires verification and the listing needs it
    6. concentration_risk: investor already holds the max number of assets in the area
    Area/type mismatch and liquidity risk are soft codes outside the 1-2 gate.
    """

    def __init__(
        self,
        recommended_cap: int = settings.recommended_cap,
        counterfactual_cap: int = settings.counterfactual_cap,
        min_score: float = settings.counterfactual_min_score,
        concentration_max: int = settings.concentration_max_holdings,
        default_yield_target: Optional[float] = settings.default_yield_target,
        normalizer: Optional[GeoNormalizer] = None,
        matcher: Optional[MandateMatcher] = None,
    ):
        self.recommended_cap = recommended_cap
        self.counterfactual_cap = counterfactual_cap
        self.min_score = min_score
        self.concentration_max = concentration_max
        self.default_yield_target = default_yield_target
        self.normalizer = normalizer or GeoNormalizer()
        self.matcher = matcher or MandateMatcher(self.normalizer)

    def strength(self, listing: ListingCandidate, mandate: Optional[Mandate]) -> tuple:
        """
        Candidate strength and its reasons.

        Returns:
            (rounded score, up to three reasons)
        """
        trust = listing.trust_score if listing.trust_score is not None else DEFAULT_TRUST_SCORE
        roi = listing.roi if listing.roi is not None else DEFAULT_ROI
        type_match = bool(mandate and self.normalizer.contained_in(listing.type, mandate.property_types))
        area_match = bool(mandate and self.normalizer.matches_any(listing.area, mandate.preferred_areas))

        score = trust * 0.55 + roi * 3.5 + (TYPE_BONUS if type_match else 0)

        reasons = []
        if listing.trust_score and listing.trust_score >= 85:
            reasons.append("High trust score")
        if listing.roi and listing.roi >= 9:
            reasons.append("Strong yield")
        if area_match:
            reasons.append(f"Matches preferred area ({listing.area})")
        if type_match:
            reasons.append(f"Matches mandate type ({listing.type})")
        return int(round(score)), reasons[:3]

    def evaluate(
        self,
        listing: ListingCandidate,
        mandate: Optional[Mandate],
        portfolio: PortfolioSnapshot,
        trust_policy: TrustPolicy,
    ) -> CandidateEvaluation:
        score, reasons = self.strength(listing, mandate)
        result = CandidateEvaluation(listing=listing, score=score, reasons=reasons)
        mandate = mandate or Mandate()
        price = listing.price

        if price is not None and mandate.max_investment is not None and price > mandate.max_investment:
            overage = price - mandate.max_investment
            self._violate(
                result, "over_budget",
                f"Over budget by AED {overage / 1000:.0f}k",
                ViolatedConstraint("budget_max", mandate.max_investment, price, gap=overage),
                f"If price < AED {mandate.max_investment / 1_000_000:.1f}M",
            )
        elif price is not None and mandate.min_investment is not None and price < mandate.min_investment:
            self._violate(
                result, "under_budget_min",
                "Below minimum investment threshold",
                ViolatedConstraint("budget_min", mandate.min_investment, price, gap=mandate.min_investment - price),
                f"If price >= AED {mandate.min_investment / 1_000_000:.1f}M",
            )

        yield_target = mandate.yield_target_pct
        if yield_target is None:
            yield_target = self.default_yield_target
        if yield_target is not None and listing.roi and listing.roi < yield_target:
            gap = yield_target - listing.roi
            self._violate(
                result, "yield_below_target",
                f"Yield below target by {gap:.1f}%",
                ViolatedConstraint("yield_target", yield_target, listing.roi, gap=round(gap, 4)),
                f"If yield >= {yield_target:g}%",
            )

        if listing.trust_score and listing.trust_score < trust_policy.min_trust_score:
            self._violate(
                result, "low_trust_score",
                f"Trust score below threshold ({listing.trust_score:g} < {trust_policy.min_trust_score:g})",
                ViolatedConstraint(
                    "trust_score", trust_policy.min_trust_score, listing.trust_score,
                    gap=trust_policy.min_trust_score - listing.trust_score,
                ),
                f"If trust score >= {trust_policy.min_trust_score:g}",
            )

        if trust_policy.require_verification and listing.readiness_status == READINESS_NEEDS_VERIFICATION:
            self._violate(
                result, "needs_verification",
                "Needs verification: portal source",
                ViolatedConstraint("readiness_status", READINESS_READY_FOR_MEMO, listing.readiness_status),
                "If trust verified",
            )

        area_count = portfolio.holdings_in_area(listing.area, self.normalizer)
        if area_count >= self.concentration_max:
            self._violate(
                result, "concentration_risk",
                f"Concentration risk: already {area_count} assets in {listing.area}",
                ViolatedConstraint("area_concentration", f"< {self.concentration_max}", area_count),
                f"If fewer than {self.concentration_max} assets were held in {listing.area}",
            )

        if mandate.preferred_areas and not self.normalizer.matches_any(listing.area, mandate.preferred_areas):
            result.soft_codes.append("area_mismatch")
            result.reason_labels.append(f"Not in preferred area ({listing.area})")

        if mandate.property_types and not self.normalizer.contained_in(listing.type, mandate.property_types):
            result.soft_codes.append("type_mismatch")
            result.reason_labels.append(f"Not preferred type ({listing.type})")

        if listing.source_type == "portal" and not listing.trust_score:
            result.soft_codes.append("liquidity_risk")
            result.reason_labels.append("Liquidity risk: limited comps in last 6 months")

        return result

    def _violate(
        self,
        result: CandidateEvaluation,
        code: str,
        label: str,
        constraint: ViolatedConstraint,
        hint: Optional[str],
    ) -> None:
        result.violations.append(code)
        result.reason_labels.append(label)
        result.violated_constraints.append(constraint)
        if hint:
            result.what_would_change.append(hint)

    def build(
        self,
        candidates: Sequence[ListingCandidate],
        mandate: Optional[Mandate],
        holdings: Sequence[HoldingRecord] = (),
        trust_policy: Optional[TrustPolicy] = None,
    ) -> RecommendationBundle:
        """
        Build the recommendation bundle for one investor.

        Args:
            candidates: Listings to evaluate (owned ones are skipped)
            mandate: Investor mandate
            holdings: Investor holdings (ownership and concentration)
            trust_policy: Minimum trust requirements

        Returns:
            RecommendationBundle with capped, non-overlapping lists
        """
        trust_policy = trust_policy or TrustPolicy(
            min_trust_score=settings.trust_min_score,
            require_verification=settings.trust_require_verification,
        )
        portfolio = build_portfolio_snapshot(holdings, self.normalizer)
        owned = set(portfolio.owned_ids)

        evaluations = [
            self.evaluate(listing, mandate, portfolio, trust_policy)
            for listing in candidates
            if listing.id not in owned
        ]
        evaluations.sort(key=lambda e: (-e.score, e.listing.id))

        recommended: List[RecommendedProperty] = []
        counterfactuals: List[Counterfactual] = []
        for evaluation in evaluations:
            if not evaluation.disqualified and not evaluation.soft_codes:
                recommended.append(RecommendedProperty(
                    property_id=evaluation.listing.id,
                    title=evaluation.listing.title,
                    score=evaluation.score,
                    reasons=evaluation.reasons,
                    mandate_match=self.matcher.score(evaluation.listing, mandate).score,
                    reason_codes=list(evaluation.violations),
                    reason_labels=list(evaluation.reason_labels),
                ))
            elif 1 <= len(evaluation.violations) <= 2 and evaluation.score > self.min_score:
                counterfactuals.append(self._counterfactual(evaluation))

        recommended = recommended[: self.recommended_cap]
        recommended_ids = {r.property_id for r in recommended}
        counterfactuals = [
            c for c in counterfactuals if c.property_id not in recommended_ids
        ][: self.counterfactual_cap]

        logger.info(
            "recommendation_bundle_built",
            candidates=len(evaluations),
            recommended=len(recommended),
            counterfactuals=len(counterfactuals)
        )
        return RecommendationBundle(recommended=recommended, counterfactuals=counterfactuals)

    def _counterfactual(self, evaluation: CandidateEvaluation) -> Counterfactual:
        return Counterfactual(
            property_id=evaluation.listing.id,
            title=evaluation.listing.title,
            score=evaluation.score,
            reason_codes=evaluation.reason_codes,
            reason_labels=evaluation.reason_labels,
            violated_constraints=evaluation.violated_constraints,
            details=(
                f"This property scored {evaluation.score} but was excluded due to: "
                f"{', '.join(evaluation.reason_labels)}"
            ),
            what_would_change_my_mind=evaluation.what_would_change or None,
        )
