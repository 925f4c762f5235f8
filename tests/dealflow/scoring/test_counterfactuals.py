"""
Tests for the Counterfactual Engine

Recommended vs counterfactual split, fixed-order constraint checks and
output caps.
"""
import pytest

from src.dealflow.models.listing import HoldingRecord, ListingCandidate, TrustPolicy
from src.dealflow.models.mandate import Mandate
from src.dealflow.scoring.counterfactuals import CounterfactualEngine
from src.dealflow.scoring.portfolio import build_portfolio_snapshot

MARINA_MANDATE = Mandate.from_raw({
    "propertyTypes": ["apartment"],
    "preferredAreas": ["Marina"],
    "minInvestment": 1_000_000,
    "maxInvestment": 5_000_000,
})


@pytest.fixture
def engine():
    return CounterfactualEngine(
        recommended_cap=6,
        counterfactual_cap=10,
        min_score=50,
        concentration_max=2,
        default_yield_target=None,
    )


@pytest.fixture
def policy():
    return TrustPolicy(min_trust_score=70, require_verification=False)


def candidate(listing_id="lst-1", **overrides):
    data = {
        "id": listing_id,
        "title": f"Listing {listing_id}",
        "type": "apartment",
        "area": "Dubai Marina",
        "price": 3_000_000,
        "trust_score": 90,
        "roi": 8,
    }
    data.update(overrides)
    return ListingCandidate(**data)


class TestStrength:
    """Tests for the candidate strength formula."""

    def test_formula_and_reasons(self, engine):
        score, reasons = engine.strength(candidate(roi=9.5), MARINA_MANDATE)

        # 0.55 * 90 + 3.5 * 9.5 + 10
        assert score == 93
        assert reasons == ["High trust score", "Strong yield", "Matches preferred area (Dubai Marina)"]

    def test_defaults_without_trust_or_roi(self, engine):
        score, _ = engine.strength(candidate(trust_score=None, roi=None, type="villa"), MARINA_MANDATE)

        # 0.55 * 60 + 3.5 * 7
        assert score == 58


class TestBuild:
    """Tests for CounterfactualEngine.build."""

    def test_clean_candidate_is_recommended(self, engine, policy):
        bundle = engine.build([candidate()], MARINA_MANDATE, [], policy)

        assert [r.property_id for r in bundle.recommended] == ["lst-1"]
        assert bundle.recommended[0].mandate_match == 80
        assert bundle.counterfactuals == []

    def test_over_budget_becomes_counterfactual(self, engine, policy):
        bundle = engine.build([candidate(price=6_000_000)], MARINA_MANDATE, [], policy)

        assert bundle.recommended == []
        cf = bundle.counterfactuals[0]
        assert cf.reason_codes == ["over_budget"]
        constraint = cf.violated_constraints[0]
        assert constraint.key == "budget_max"
        assert constraint.expected == 5_000_000
        assert constraint.actual == 6_000_000
        assert constraint.gap == 1_000_000
        assert cf.what_would_change_my_mind == ["If price < AED 5.0M"]
        assert cf.details.startswith(f"This property scored {cf.score} but was excluded due to: Over budget")

    def test_concentration_blocks_recommendation(self, engine):
        mandate = Mandate.from_raw({"propertyTypes": ["apartment"], "preferredAreas": ["JVC"]})
        holdings = [
            HoldingRecord(id="h1", investor_id="inv-1", property_id="own-1", area="JVC"),
            HoldingRecord(id="h2", investor_id="inv-1", property_id="own-2", area="jvc"),
        ]
        listing = candidate(area="Jumeirah Village Circle", trust_score=20, roi=14)

        assert engine.strength(listing, mandate)[0] == 70

        bundle = engine.build([listing], mandate, holdings, TrustPolicy(min_trust_score=0))

        assert bundle.recommended == []
        assert bundle.counterfactuals[0].reason_codes == ["concentration_risk"]
        assert bundle.counterfactuals[0].violated_constraints[0].actual == 2

    def test_three_violations_are_excluded(self, engine, policy):
        mandate = Mandate.from_raw({**MARINA_MANDATE.model_dump(), "max_investment": 1_000_000, "yield_target": "8%"})
        listing = candidate(price=2_000_000, roi=5, trust_score=60)

        evaluation = engine.evaluate(listing, mandate, build_portfolio_snapshot([]), policy)
        bundle = engine.build([listing], mandate, [], policy)

        assert evaluation.violations == ["over_budget", "yield_below_target", "low_trust_score"]
        assert evaluation.score > 50
        assert bundle.recommended == []
        assert bundle.counterfactuals == []

    def test_weak_candidate_is_excluded(self, engine, policy):
        listing = candidate(type="office", trust_score=75, roi=1, price=6_000_000)

        bundle = engine.build([listing], MARINA_MANDATE, [], policy)

        assert bundle.counterfactuals == []

    def test_under_budget_min_does_not_disqualify(self, engine, policy):
        bundle = engine.build([candidate(price=900_000)], MARINA_MANDATE, [], policy)

        assert [r.property_id for r in bundle.recommended] == ["lst-1"]
        recommended = bundle.recommended[0]
        assert recommended.reason_codes == ["under_budget_min"]
        assert recommended.reason_labels == ["Below minimum investment threshold"]
        assert bundle.to_dict()["recommended"][0]["reason_codes"] == ["under_budget_min"]

    def test_clean_recommendation_carries_no_codes(self, engine, policy):
        bundle = engine.build([candidate()], MARINA_MANDATE, [], policy)

        assert bundle.recommended[0].reason_codes == []
        assert bundle.recommended[0].reason_labels == []

    def test_truncated_type_is_a_type_mismatch(self, engine, policy):
        bundle = engine.build([candidate(type="apart")], MARINA_MANDATE, [], policy)

        assert bundle.recommended == []
        assert engine.strength(candidate(type="apart"), MARINA_MANDATE)[0] == engine.strength(candidate(), MARINA_MANDATE)[0] - 10

    def test_soft_codes_keep_candidate_out_of_both_lists(self, engine, policy):
        bundle = engine.build([candidate(area="Business Bay")], MARINA_MANDATE, [], policy)

        assert bundle.recommended == []
        assert bundle.counterfactuals == []

    def test_soft_codes_ride_along_on_counterfactuals(self, engine, policy):
        listing = candidate(area="Business Bay", price=6_000_000, source_type="portal", trust_score=None)

        cf = engine.build([listing], MARINA_MANDATE, [], policy).counterfactuals[0]

        assert cf.reason_codes == ["over_budget", "area_mismatch", "liquidity_risk"]
        assert len(cf.violated_constraints) == 1

    def test_verification_requirement(self, engine):
        listing = candidate(readiness_status="NEEDS_VERIFICATION")
        strict = TrustPolicy(min_trust_score=70, require_verification=True)

        bundle = engine.build([listing], MARINA_MANDATE, [], strict)

        assert bundle.counterfactuals[0].reason_codes == ["needs_verification"]
        assert bundle.counterfactuals[0].what_would_change_my_mind == ["If trust verified"]

    def test_yield_gap(self, engine, policy):
        mandate = Mandate.from_raw({**MARINA_MANDATE.model_dump(), "yield_target": "7-9%"})

        cf = engine.build([candidate(roi=5.5)], mandate, [], policy).counterfactuals[0]

        assert cf.reason_codes == ["yield_below_target"]
        assert cf.violated_constraints[0].gap == pytest.approx(1.5)

    def test_owned_listings_are_skipped(self, engine, policy):
        holdings = [HoldingRecord(id="h1", investor_id="inv-1", property_id="lst-1", area="Dubai Marina")]

        bundle = engine.build([candidate()], MARINA_MANDATE, holdings, policy)

        assert bundle.recommended == []

    def test_caps_and_exclusivity(self, engine, policy):
        good = [candidate(f"good-{i:02d}", trust_score=80 + i) for i in range(10)]
        over = [candidate(f"over-{i:02d}", price=6_000_000) for i in range(15)]

        bundle = engine.build(good + over, MARINA_MANDATE, [], policy)

        recommended_ids = [r.property_id for r in bundle.recommended]
        counterfactual_ids = [c.property_id for c in bundle.counterfactuals]
        assert len(recommended_ids) == 6
        assert len(counterfactual_ids) == 10
        assert not set(recommended_ids) & set(counterfactual_ids)
        # strongest first
        assert recommended_ids[0] == "good-09"

    def test_bundle_to_dict(self, engine, policy):
        data = engine.build([candidate(price=6_000_000)], MARINA_MANDATE, [], policy).to_dict()

        assert data["counterfactuals"][0]["violated_constraints"][0]["key"] == "budget_max"
        assert data["errors"] == []
