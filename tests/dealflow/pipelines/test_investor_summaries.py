"""
Tests for AI Investor Summary Compilation
"""
import pytest

from src.dealflow.models.listing import HoldingRecord
from src.dealflow.models.mandate import Mandate
from src.dealflow.pipelines.investor_summaries import (
    InvestorSummaryCompiler,
    InvestorSummaryInput,
    build_mandate_summary,
    build_portfolio_summary,
    format_budget_range,
)

JVC_MANDATE = Mandate.from_raw({
    "propertyTypes": ["apartment"],
    "preferredAreas": ["JVC"],
    "minInvestment": 800_000,
    "maxInvestment": 2_000_000,
    "yieldTarget": "6-8%",
})


def holding(holding_id, value, rent=4_500, occupancy=1.0):
    return HoldingRecord(
        id=holding_id,
        investor_id="inv-1",
        property_id=f"lst-{holding_id}",
        area="JVC",
        purchase_price=650_000,
        current_value=value,
        monthly_rent=rent,
        occupancy_rate=occupancy,
    )


@pytest.fixture
def compiler():
    return InvestorSummaryCompiler(max_chars=480, top_holdings=2)


class TestFormatting:
    """Tests for the budget and mandate clauses."""

    @pytest.mark.parametrize("low, high, expected", [
        (800_000, 2_000_000, "AED 800K - AED 2.0M"),
        (1_500_000, None, "From AED 1.5M"),
        (None, 950, "Up to AED 950"),
        (None, None, "Flexible"),
    ])
    def test_budget_range(self, low, high, expected):
        assert format_budget_range(low, high) == expected

    def test_mandate_summary(self):
        assert build_mandate_summary(JVC_MANDATE) == (
            "Looking for apartment, in JVC, 6%+ yield target, AED 800K - AED 2.0M."
        )

    def test_mandate_summary_lists_three_areas_and_risk(self):
        mandate = Mandate.from_raw({
            "preferredAreas": ["JVC", "Marina", "Downtown", "JLT"],
            "riskTolerance": "high",
        })

        assert build_mandate_summary(mandate) == "in JVC, Marina, Downtown..., high risk tolerance."

    def test_open_and_empty_mandates(self):
        assert build_mandate_summary(Mandate(open=True)) == "open to all areas."
        assert build_mandate_summary(Mandate()) == "No specific mandate defined."

    def test_portfolio_summary(self):
        assert build_portfolio_summary([]) == "No current holdings."
        assert build_portfolio_summary([holding("h1", 700_000)]) == (
            "Owns 1 property, worth AED 700,000, avg yield 7.7%, 100% occupancy."
        )


class TestInvestorSummaryCompiler:
    """Tests for InvestorSummaryCompiler."""

    def test_rolls_up_mandate_portfolio_and_signals(self, compiler):
        investor = InvestorSummaryInput(
            investor_id="inv-1",
            name="Aisha Capital",
            mandate=JVC_MANDATE,
            holdings=[holding("h1", 700_000)],
            active_signals=3,
            new_signals=2,
        )

        summary = compiler.compile([investor])[0]

        assert summary.budget_range == "AED 800K - AED 2.0M"
        assert summary.yield_target_pct == 6.0
        assert summary.holdings_count == 1
        assert summary.portfolio_value == 700_000
        assert summary.annual_rental == 54_000
        assert summary.avg_yield_pct == 7.71
        assert summary.occupancy_pct == 100.0
        assert summary.summary_text.endswith("3 active market signals (2 new).")
        assert summary.to_row()["preferred_areas"] == ["JVC"]

    def test_investor_without_mandate_or_holdings(self, compiler):
        summary = compiler.compile([InvestorSummaryInput(investor_id="inv-9")])[0]

        assert summary.summary_text == (
            "No specific mandate defined. No current holdings. No active market signals."
        )
        assert summary.avg_yield_pct is None
        assert summary.occupancy_pct is None
        assert summary.top_holdings is None

    def test_top_holdings_are_capped_and_ordered_by_value(self, compiler):
        investor = InvestorSummaryInput(
            investor_id="inv-1",
            holdings=[holding("h1", 700_000), holding("h2", 1_400_000), holding("h3", 900_000)],
        )

        top = compiler.compile([investor])[0].top_holdings

        assert [h["id"] for h in top] == ["h2", "h3"]
        assert top[0]["value"] == 1_400_000

    def test_text_is_bounded(self):
        mandate = Mandate(property_types=["apartment-" + "x" * 100] * 5)
        summary = InvestorSummaryCompiler(max_chars=120).compile(
            [InvestorSummaryInput(investor_id="inv-1", mandate=mandate)]
        )[0]

        assert len(summary.summary_text) == 120
        assert summary.summary_text.endswith("...")

    def test_sorted_by_investor(self, compiler):
        summaries = compiler.compile([InvestorSummaryInput("inv-b"), InvestorSummaryInput("inv-a")])

        assert [s.investor_id for s in summaries] == ["inv-a", "inv-b"]
