"""
Opportunity Scorer

Combines mandate fit, market signal relevance and shortlist state into one
ranked opportunity per listing for an investor, with its lifecycle stage.

combined = round(0.5 * mandate_match + 0.3 * min(signal_relevance, 100) + 0.2 * shortlist_match)
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from config.settings import settings
from src.dealflow.models.listing import HoldingRecord, ListingCandidate
from src.dealflow.models.mandate import Mandate
from src.dealflow.models.market import MarketSignalView
from src.dealflow.scoring.mandate_matcher import MandateMatcher
from src.dealflow.transformers.geo_normalizer import GeoNormalizer
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

MANDATE_WEIGHT = 0.5
SIGNAL_WEIGHT = 0.3
SHORTLIST_WEIGHT = 0.2

STAGE_HOLDING = "holding"
STAGE_DEAL = "deal"
STAGE_MEMO = "memo"
STAGE_SHORTLISTED = "shortlisted"
STAGE_RECOMMENDED = "recommended"
STAGES = (STAGE_RECOMMENDED, STAGE_SHORTLISTED, STAGE_MEMO, STAGE_DEAL, STAGE_HOLDING)


def combined_score(mandate_match: float, signal_relevance: float, shortlist_match: float) -> int:
    return int(round(
        MANDATE_WEIGHT * mandate_match
        + SIGNAL_WEIGHT * min(signal_relevance, 100)
        + SHORTLIST_WEIGHT * shortlist_match
    ))


def clamp_limit(limit: Optional[int], default: int = 50, maximum: int = 200) -> int:
    """Clamp a caller-supplied limit to [1, maximum]."""
    if limit is None:
        return default
    return max(1, min(int(limit), maximum))


@dataclass
class OpportunityScores:
    combined: int
    mandate_match: int
    signal_relevance: float
    shortlist_match: float


@dataclass
class OpportunitySources:
    mandate_reasons: List[str] = field(default_factory=list)
    shortlist: Optional[Dict[str, Any]] = None
    signals: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class OpportunityLifecycle:
    stage: str
    is_owned: bool = False
    is_shortlisted: bool = False
    is_in_deal: bool = False
    has_memo: bool = False
    is_memo_approved: bool = False


@dataclass
class Opportunity:
    """
    One listing ranked for one investor.

    Computed at request time; never stored.
    """
    listing_id: str
    investor_id: str
    title: str
    area: Optional[str]
    price: Optional[float]
    scores: OpportunityScores
    sources: OpportunitySources
    lifecycle: OpportunityLifecycle

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoringContext:
    """
    CRM and market state joined for one investor.

    Attributes:
        signal_relevance: Mapped relevance (0..1) per signal id for this investor
        shortlist_scores: Shortlist match score per listing id
        memo_states: Memo state per listing id
        deal_ids: Listing ids with an open deal room
    """
    investor_id: str
    mandate: Optional[Mandate]
    listings: Sequence[ListingCandidate]
    holdings: Sequence[HoldingRecord] = ()
    signals: Sequence[MarketSignalView] = ()
    signal_relevance: Dict[str, float] = field(default_factory=dict)
    shortlist_scores: Dict[str, float] = field(default_factory=dict)
    memo_states: Dict[str, str] = field(default_factory=dict)
    deal_ids: Set[str] = field(default_factory=set)


class OpportunityScorer:
    """
    Ranks listings for an investor.

    A listing is surfaced only when it has mandate fit, a shortlist entry, a
    relevant signal, a deal room, a memo, or (with include_owned) is owned.
    Stage resolution order: holding, deal, memo, shortlisted, recommended.
    """

    def __init__(
        self,
        matcher: Optional[MandateMatcher] = None,
        normalizer: Optional[GeoNormalizer] = None,
        default_limit: int = settings.opportunity_default_limit,
        max_limit: int = settings.opportunity_max_limit,
    ):
        self.normalizer = normalizer or GeoNormalizer()
        self.matcher = matcher or MandateMatcher(self.normalizer)
        self.default_limit = default_limit
        self.max_limit = max_limit

    def signal_score(self, signal: MarketSignalView, signal_relevance: Dict[str, float]) -> float:
        """Relevance of a signal on the 0-100 scale for this investor."""
        if signal.id in signal_relevance:
            return signal_relevance[signal.id] * 100
        return (signal.confidence_score or 0.0) * 100

    def _relevant_signals(
        self,
        listing: ListingCandidate,
        signals: Sequence[MarketSignalView],
        signal_relevance: Dict[str, float],
    ) -> List[Dict[str, Any]]:
        matched = []
        for signal in signals:
            if signal.is_dismissed:
                continue
            direct = signal.listing_id == listing.id
            by_area = bool(listing.area) and self.normalizer.matches(
                signal.geo_name or signal.geo_id, listing.area
            )
            if not (direct or by_area):
                continue
            matched.append({
                "id": signal.id,
                "type": signal.type,
                "severity": signal.severity,
                "match": "listing" if direct else "area",
                "relevance": round(self.signal_score(signal, signal_relevance), 2),
            })
        matched.sort(key=lambda s: (-s["relevance"], s["id"]))
        return matched

    def score_listing(self, listing: ListingCandidate, context: ScoringContext, owned_ids: Set[str]) -> Optional[Opportunity]:
        """
        Score one listing.

        Returns:
            Opportunity, or None when no inclusion condition holds
        """
        match = self.matcher.score(listing, context.mandate)
        signals = self._relevant_signals(listing, context.signals, context.signal_relevance)
        signal_relevance = max((s["relevance"] for s in signals), default=0.0)

        is_owned = listing.id in owned_ids
        is_shortlisted = listing.id in context.shortlist_scores
        shortlist_match = context.shortlist_scores.get(listing.id, 0.0) or 0.0
        is_in_deal = listing.id in context.deal_ids
        memo_state = context.memo_states.get(listing.id)
        has_memo = memo_state is not None

        included = (
            match.score > 0
            or is_shortlisted
            or signal_relevance > 0
            or is_in_deal
            or has_memo
            or is_owned
        )
        if not included:
            return None

        if is_owned:
            stage = STAGE_HOLDING
        elif is_in_deal:
            stage = STAGE_DEAL
        elif has_memo:
            stage = STAGE_MEMO
        elif is_shortlisted:
            stage = STAGE_SHORTLISTED
        else:
            stage = STAGE_RECOMMENDED

        return Opportunity(
            listing_id=listing.id,
            investor_id=context.investor_id,
            title=listing.title,
            area=listing.area,
            price=listing.price,
            scores=OpportunityScores(
                combined=combined_score(match.score, signal_relevance, shortlist_match),
                mandate_match=match.score,
                signal_relevance=signal_relevance,
                shortlist_match=shortlist_match,
            ),
            sources=OpportunitySources(
                mandate_reasons=list(match.reasons),
                shortlist={"match_score": shortlist_match} if is_shortlisted else None,
                signals=signals,
            ),
            lifecycle=OpportunityLifecycle(
                stage=stage,
                is_owned=is_owned,
                is_shortlisted=is_shortlisted,
                is_in_deal=is_in_deal,
                has_memo=has_memo,
                is_memo_approved=memo_state == "approved",
            ),
        )

    def rank(
        self,
        context: ScoringContext,
        include_owned: bool = False,
        limit: Optional[int] = None,
    ) -> tuple:
        """
        Score, sort and truncate every candidate listing.

        Args:
            context: Joined CRM and market state for one investor
            include_owned: Keep listings the investor already holds
            limit: Maximum items (default 50, clamped to [1, 200])

        Returns:
            (items, counts) where counts covers the full sorted set
        """
        owned_ids = {h.property_id for h in context.holdings}
        candidates: List[Opportunity] = []
        for listing in context.listings:
            if listing.id in owned_ids and not include_owned:
                continue
            opportunity = self.score_listing(listing, context, owned_ids)
            if opportunity is not None:
                candidates.append(opportunity)

        candidates.sort(key=lambda o: (-o.scores.combined, -o.scores.mandate_match, o.listing_id))
        items = candidates[: clamp_limit(limit, self.default_limit, self.max_limit)]

        counts = {"total": len(candidates), "returned": len(items)}
        for stage in STAGES:
            counts[stage] = sum(1 for o in candidates if o.lifecycle.stage == stage)

        logger.info(
            "opportunities_ranked",
            investor_id=context.investor_id,
            listings=len(context.listings),
            candidates=len(candidates),
            returned=len(items)
        )
        return items, counts
