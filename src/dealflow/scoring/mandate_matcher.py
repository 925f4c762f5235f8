"""
Mandate Matcher

Scores how well one listing fits one investor mandate on a 0-100 additive
scale. Every rule that fires appends one reason string.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from src.dealflow.models.listing import ListingCandidate
from src.dealflow.models.mandate import Mandate
from src.dealflow.transformers.geo_normalizer import GeoNormalizer
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MandateMatch:
    """
    Mandate fit with breakdown.

    Attributes:
        score: 0-100
        reasons: One entry per rule that fired, in rule order
    """
    score: int = 0
    reasons: List[str] = field(default_factory=list)


class MandateMatcher:
    """
    Additive mandate fit.

    Points:
    - Property type match: 30
    - Preferred area match: 25
    - Price within budget: 25 (10 when within 15% of the nearer bound)
    - Bedroom count preferred: 10
    - Size within range: 10
    """

    TYPE_POINTS = 30
    AREA_POINTS = 25
    BUDGET_POINTS = 25
    NEAR_BUDGET_POINTS = 10
    BEDROOM_POINTS = 10
    SIZE_POINTS = 10
    NEAR_BUDGET_BAND = 0.15
    MAX_SCORE = 100

    def __init__(self, normalizer: Optional[GeoNormalizer] = None):
        self.normalizer = normalizer or GeoNormalizer()

    def score(self, listing: ListingCandidate, mandate: Optional[Mandate]) -> MandateMatch:
        """
        Score a listing against a mandate.

        Args:
            listing: Property candidate
            mandate: Investor mandate (None scores 0)

        Returns:
            MandateMatch
        """
        if mandate is None:
            return MandateMatch()

        score = 0
        reasons: List[str] = []

        if listing.type and self.normalizer.contained_in(listing.type, mandate.property_types):
            score += self.TYPE_POINTS
            reasons.append(f"Property type matches mandate ({listing.type})")

        if listing.area and self.normalizer.matches_any(listing.area, mandate.preferred_areas):
            score += self.AREA_POINTS
            reasons.append(f"Preferred area: {listing.area}")

        budget_points, budget_reason = self._budget(listing.price, mandate)
        if budget_points:
            score += budget_points
            reasons.append(budget_reason)

        if listing.bedrooms is not None and listing.bedrooms in mandate.preferred_bedrooms:
            score += self.BEDROOM_POINTS
            reasons.append(f"{listing.bedrooms} bedrooms matches preference")

        if self._size_fits(listing.size, mandate):
            score += self.SIZE_POINTS
            reasons.append(f"Size {listing.size:,.0f} sqft within mandate range")

        result = MandateMatch(score=min(score, self.MAX_SCORE), reasons=reasons)
        logger.debug("mandate_scored", listing_id=listing.id, score=result.score)
        return result

    def _budget(self, price: Optional[float], mandate: Mandate) -> tuple:
        low, high = mandate.min_investment, mandate.max_investment
        if price is None or (low is None and high is None):
            return 0, None

        if (low is None or price >= low) and (high is None or price <= high):
            return self.BUDGET_POINTS, f"Price AED {price:,.0f} within mandate budget"

        # outside the range: only the bound on the violated side can be near
        if high is not None and price > high:
            near = high > 0 and (price - high) / high <= self.NEAR_BUDGET_BAND
        else:
            near = low > 0 and (low - price) / low <= self.NEAR_BUDGET_BAND
        if near:
            return self.NEAR_BUDGET_POINTS, "Near mandate budget range"
        return 0, None

    def _size_fits(self, size: Optional[float], mandate: Mandate) -> bool:
        if size is None or (mandate.min_size is None and mandate.max_size is None):
            return False
        if mandate.min_size is not None and size < mandate.min_size:
            return False
        if mandate.max_size is not None and size > mandate.max_size:
            return False
        return True
