"""
Tests for Mandate Matching

Additive 0-100 mandate fit with one reason per rule that fired.
"""
import itertools

import pytest

from src.dealflow.models.listing import ListingCandidate
from src.dealflow.models.mandate import Mandate
from src.dealflow.scoring.mandate_matcher import MandateMatcher

MARINA_MANDATE = {
    "propertyTypes": ["apartment"],
    "preferredAreas": ["Marina"],
    "minInvestment": 1_000_000,
    "maxInvestment": 5_000_000,
}


@pytest.fixture
def matcher():
    return MandateMatcher()


def listing(**overrides):
    data = {"id": "lst-1", "title": "Test listing", "type": "apartment", "area": "Dubai Marina", "price": 3_000_000}
    data.update(overrides)
    return ListingCandidate(**data)


class TestMandateMatcher:
    """Tests for MandateMatcher.score."""

    def test_truncated_listing_type_does_not_match_mandate_type(self, matcher):
        mandate = Mandate.from_raw(MARINA_MANDATE)

        exact = matcher.score(listing(), mandate)
        truncated = matcher.score(listing(type="apart"), mandate)

        assert exact.score - truncated.score == 30
        assert "Property type matches mandate (apart)" not in truncated.reasons

    def test_marina_apartment_within_budget(self, matcher):
        result = matcher.score(listing(), Mandate.from_raw(MARINA_MANDATE))

        assert result.score == 80
        assert result.reasons == [
            "Property type matches mandate (apartment)",
            "Preferred area: Dubai Marina",
            "Price AED 3,000,000 within mandate budget",
        ]

    def test_twenty_percent_over_budget_gets_no_budget_points(self, matcher):
        result = matcher.score(listing(price=6_000_000), Mandate.from_raw(MARINA_MANDATE))

        assert result.score == 55
        assert len(result.reasons) == 2

    @pytest.mark.parametrize("price", [5_700_000, 900_000, 850_000])
    def test_near_budget_band(self, matcher, price):
        result = matcher.score(listing(price=price), Mandate.from_raw(MARINA_MANDATE))

        assert result.score == 65
        assert result.reasons[-1] == "Near mandate budget range"

    def test_no_mandate_scores_zero(self, matcher):
        result = matcher.score(listing(), None)

        assert result.score == 0
        assert result.reasons == []

    def test_bedrooms_and_size(self, matcher):
        mandate = Mandate.from_raw({"preferredBedrooms": [2, 3], "minSize": 900})

        result = matcher.score(listing(bedrooms=2, size=1200), mandate)

        assert result.score == 20
        assert result.reasons == ["2 bedrooms matches preference", "Size 1,200 sqft within mandate range"]

    def test_size_without_bounds_or_listing_size(self, matcher):
        assert matcher.score(listing(size=1200), Mandate()).score == 0
        assert matcher.score(listing(size=None), Mandate(min_size=500)).score == 0

    def test_one_sided_budget(self, matcher):
        mandate = Mandate.from_raw({"maxInvestment": 2_000_000})

        assert matcher.score(listing(price=100_000), mandate).score == 25
        assert matcher.score(listing(price=None), mandate).score == 0

    def test_malformed_mandate_values_skip_rules(self, matcher):
        mandate = Mandate.from_raw({"minInvestment": "n/a", "maxInvestment": "lots", "propertyTypes": [None, 3]})

        assert matcher.score(listing(), mandate).score == 0

    def test_score_is_always_within_bounds(self, matcher):
        mandates = [
            None,
            Mandate(),
            Mandate.from_raw(MARINA_MANDATE),
            Mandate.from_raw({
                **MARINA_MANDATE,
                "preferredBedrooms": [0, 1, 2, 3],
                "minSize": 1,
                "maxSize": 10_000,
                "propertyTypes": ["apartment", "apart"],
            }),
        ]
        listings = [
            listing(price=p, bedrooms=b, size=s, area=a)
            for p, b, s, a in itertools.product(
                [None, 0, 950_000, 3_000_000, 6_000_000],
                [None, 1, 7],
                [None, 500, 50_000],
                [None, "Marina", "JLT"],
            )
        ]

        for mandate, candidate in itertools.product(mandates, listings):
            result = matcher.score(candidate, mandate)
            assert 0 <= result.score <= 100
