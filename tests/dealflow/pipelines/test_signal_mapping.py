"""
Tests for Signal-to-Investor Mapping
"""
import pytest

from src.dealflow.models.mandate import Mandate
from src.dealflow.models.market import MarketSignalView
from src.dealflow.pipelines.signal_mapping import InvestorProfile, SignalTargetMapper, is_price_related


def signal(**overrides):
    data = {
        "id": "sig-1",
        "type": "price_change",
        "geo_id": "jvc",
        "geo_name": "Jumeirah Village Circle",
        "segment": "1BR",
        "metric": "median_price_psf",
        "current_value": 1150.0,
        "confidence_score": 0.9,
    }
    data.update(overrides)
    return MarketSignalView(**data)


def investor(mandate=None, holding_areas=None, investor_id="inv-1"):
    return InvestorProfile(
        investor_id=investor_id,
        mandate=Mandate.from_raw(mandate) if mandate is not None else None,
        holding_areas=holding_areas or [],
    )


@pytest.fixture
def mapper():
    return SignalTargetMapper(
        min_score=0.35,
        area_match=0.35,
        area_open=0.15,
        budget_match=0.25,
        budget_soft=0.10,
        yield_match=0.30,
        portfolio_exposure=0.10,
        low_risk_cap=0.65,
    )


def test_is_price_related():
    assert is_price_related("median_price_psf")
    assert is_price_related("median_asking_price")
    assert not is_price_related("active_listings")
    assert not is_price_related(None)


class TestScore:
    """Tests for SignalTargetMapper.score."""

    def test_area_match_via_alias(self, mapper):
        target = mapper.score(signal(), investor({"preferredAreas": ["JVC"]}))

        # area 0.35 + soft budget (no bounds) 0.10
        assert target.relevance_score == pytest.approx(0.45)
        assert target.reason["matched"] == ["area", "budget_soft"]
        assert target.reason["thresholds_used"]["min_score"] == 0.35

    def test_open_mandate_below_minimum_is_skipped(self, mapper):
        # area_open 0.15 + soft budget 0.10 = 0.25 < 0.35
        assert mapper.score(signal(), investor({})) is None

    def test_hard_budget_applies_to_price_metrics(self, mapper):
        mandate = {"preferredAreas": ["JVC"], "minInvestment": 1000, "maxInvestment": 2000}

        target = mapper.score(signal(current_value=1500.0), investor(mandate))

        assert target.relevance_score == pytest.approx(0.60)
        assert target.reason["details"]["budget"]["within"] is True

    def test_portfolio_exposure(self, mapper):
        target = mapper.score(signal(), investor({"preferredAreas": ["JVC"]}, holding_areas=["jvc"]))

        assert target.relevance_score == pytest.approx(0.55)
        assert "portfolio_exposure" in target.reason["matched"]

    def test_yield_opportunity_needs_target(self, mapper):
        yield_signal = signal(type="yield_opportunity", metric="gross_yield", current_value=0.075)

        assert mapper.score(yield_signal, investor({"preferredAreas": ["JVC"]})) is None
        assert mapper.score(yield_signal, investor({"preferredAreas": ["JVC"], "yieldTarget": "8%"})) is None

        target = mapper.score(yield_signal, investor({"preferredAreas": ["JVC"], "yieldTarget": "7-9%"}))
        # yield 0.30 + area 0.35 + soft budget 0.10
        assert target.relevance_score == pytest.approx(0.75)
        assert target.reason["details"]["yield"]["signal_yield"] == pytest.approx(7.5)

    def test_low_risk_caps_risky_signals(self):
        mapper = SignalTargetMapper(area_match=0.6, budget_soft=0.2, portfolio_exposure=0.2, low_risk_cap=0.65)
        supply = signal(type="supply_spike", metric="active_listings", current_value=130.0)

        cautious = mapper.score(supply, investor({"preferredAreas": ["JVC"], "riskTolerance": "low"}, holding_areas=["JVC"]))
        relaxed = mapper.score(supply, investor({"preferredAreas": ["JVC"], "riskTolerance": "high"}, holding_areas=["JVC"]))

        assert cautious.relevance_score == pytest.approx(0.65)
        assert cautious.reason["details"]["risk_note"] == "low_risk_tolerance_cap_applied"
        assert relaxed.relevance_score == 1.0

    def test_score_capped_at_one(self):
        generous = SignalTargetMapper(area_match=0.9, budget_soft=0.5, min_score=0.1)

        target = generous.score(signal(), investor({"preferredAreas": ["JVC"]}))

        assert target.relevance_score == 1.0


class TestMapSignals:
    """Tests for SignalTargetMapper.map_signals."""

    def test_skips_dismissed_and_counts_skipped(self, mapper):
        signals = [signal(id="a"), signal(id="b", status="dismissed"), signal(id="c", geo_id="dubai-marina", geo_name="Dubai Marina")]
        investors = [investor({"preferredAreas": ["JVC"]}), investor({"preferredAreas": ["Business Bay"]}, investor_id="inv-2")]

        result = mapper.map_signals(signals, investors)

        assert [(t.signal_id, t.investor_id) for t in result.targets] == [("a", "inv-1")]
        assert result.skipped == 3

    def test_target_rows(self, mapper):
        target = mapper.score(signal(), investor({"preferredAreas": ["JVC"]}))
        row = target.to_row("org-1")

        assert row["org_id"] == "org-1"
        assert row["status"] == "new"
        assert row["signal_id"] == "sig-1"
