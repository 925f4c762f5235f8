"""
Tests for Recommendation Bundles
"""
from src.dealflow.models.listing import TrustPolicy
from src.dealflow.services.recommendations import build_recommendation_bundle, get_portfolio_snapshot


class TestRecommendationBundle:
    """Tests for build_recommendation_bundle."""

    def test_splits_recommended_and_counterfactuals(self, store, seeded_crm):
        bundle = build_recommendation_bundle(seeded_crm, "inv-1", store=store)

        assert bundle.errors == []
        assert [r.property_id for r in bundle.recommended] == ["lst-1"]
        assert bundle.recommended[0].score == 89
        assert bundle.recommended[0].mandate_match == 80

        assert [c.property_id for c in bundle.counterfactuals] == ["lst-2"]
        counterfactual = bundle.counterfactuals[0]
        assert counterfactual.score == 58
        assert counterfactual.reason_codes[:2] == ["over_budget", "yield_below_target"]
        assert "area_mismatch" in counterfactual.reason_codes
        assert counterfactual.details.startswith("This property scored 58 but was excluded due to: ")

    def test_owned_listing_is_skipped(self, store, seeded_crm):
        bundle = build_recommendation_bundle(seeded_crm, "inv-1", store=store)

        ids = [r.property_id for r in bundle.recommended] + [c.property_id for c in bundle.counterfactuals]
        assert "lst-3" not in ids

    def test_strict_trust_policy(self, store, seeded_crm):
        bundle = build_recommendation_bundle(
            seeded_crm, "inv-1", trust_policy=TrustPolicy(min_trust_score=95), store=store
        )

        assert bundle.recommended == []
        assert bundle.counterfactuals[0].property_id == "lst-1"
        assert bundle.counterfactuals[0].reason_codes == ["low_trust_score"]

    def test_unknown_investor(self, store, seeded_crm):
        bundle = build_recommendation_bundle(seeded_crm, "inv-missing", store=store)

        assert bundle.errors == ["investor not found: inv-missing"]


class TestPortfolioSnapshot:
    """Tests for get_portfolio_snapshot."""

    def test_snapshot_from_holdings(self, store, seeded_crm):
        snapshot = get_portfolio_snapshot("inv-1", store=store)

        assert snapshot.property_count == 1
        assert snapshot.total_value == 700_000
        assert snapshot.total_purchase_cost == 650_000
        assert snapshot.owned_ids == ["lst-3"]

    def test_no_holdings(self, store):
        snapshot = get_portfolio_snapshot("inv-none", store=store)

        assert snapshot.property_count == 0
        assert snapshot.total_value == 0
