"""
Tests for Repository Pattern

Tenant-scoped reads and the conflict-safe writes for signals, targets and
summaries.
"""
from datetime import date

from src.dealflow.db.models import DealRoom, Investor, Memo, Shortlist, ShortlistItem
from src.dealflow.db.repository import (
    AIInvestorSummaryRepository,
    AIMarketSummaryRepository,
    DealRoomRepository,
    HoldingRepository,
    InvestorRepository,
    ListingRepository,
    MarketSignalRepository,
    MemoRepository,
    ShortlistRepository,
    SignalTargetRepository,
)


def signal_row(signal_id, key, org_id="org-1"):
    return {
        "id": signal_id,
        "org_id": org_id,
        "source_type": "official",
        "source": "DLD",
        "type": "price_change",
        "severity": "watch",
        "status": "new",
        "geo_type": "area",
        "geo_id": "jvc",
        "geo_name": "JVC",
        "segment": "1BR",
        "metric": "median_price_psf",
        "timeframe": "QoQ",
        "current_value": 1150.0,
        "prev_value": 1000.0,
        "delta_value": 150.0,
        "delta_pct": 0.15,
        "confidence_score": 0.9,
        "evidence": {"window_current": "2025-06-30"},
        "signal_key": key,
    }


def summary_row(geo_id, text, active=10):
    return {
        "geo_id": geo_id,
        "geo_name": geo_id.upper(),
        "segment": "1BR",
        "median_dld_price": None,
        "median_price_per_sqft": None,
        "median_rent_annual": None,
        "gross_yield_pct": None,
        "active_listings_count": active,
        "price_cut_rate_pct": None,
        "stale_listings_count": 0,
        "sample_size_sales": None,
        "sample_size_rentals": None,
        "sample_size_listings": active,
        "summary_text": text,
    }


class TestMarketSignalRepository:
    """Tests for MarketSignalRepository."""

    def test_insert_new_skips_known_keys(self, session):
        repo = MarketSignalRepository()

        first = repo.insert_new(session, "org-1", [signal_row("s1", "k1"), signal_row("s2", "k2")])
        second = repo.insert_new(session, "org-1", [signal_row("s3", "k1"), signal_row("s4", "k3"), signal_row("s5", "k3")])
        session.commit()

        assert first == 2
        assert second == 1
        assert repo.count(session) == 3
        assert repo.get_existing_keys(session, "org-1", ["k1", "k3", "missing"]) == {"k1", "k3"}

    def test_get_active_and_tenant_scope(self, session):
        repo = MarketSignalRepository()
        repo.insert_new(session, "org-1", [signal_row("s1", "k1"), signal_row("s2", "k2")])
        repo.insert_new(session, "org-2", [signal_row("s3", "k3", org_id="org-2")])
        repo.set_status(session, repo.get_by_id(session, "s2"), "dismissed", actor_id="user-1")
        session.commit()

        assert [s.id for s in repo.get_active(session, "org-1")] == ["s1"]
        assert repo.get_for_org(session, "org-1", "s3") is None
        dismissed = repo.get_for_org(session, "org-1", "s2")
        assert dismissed.dismissed_by == "user-1"
        assert dismissed.dismissed_at is not None

    def test_same_key_is_kept_per_organization(self, session):
        repo = MarketSignalRepository()

        assert repo.insert_new(session, "org-a", [signal_row("a1", "shared", org_id="org-a")]) == 1
        assert repo.insert_new(session, "org-b", [signal_row("b1", "shared", org_id="org-b")]) == 1
        assert repo.insert_new(session, "org-b", [signal_row("b2", "shared", org_id="org-b")]) == 0
        session.commit()

        assert repo.count(session) == 2
        assert repo.get_existing_keys(session, "org-a", ["shared"]) == {"shared"}
        assert repo.get_existing_keys(session, "org-c", ["shared"]) == set()


class TestSignalTargetRepository:
    """Tests for SignalTargetRepository."""

    def test_insert_new_and_dismiss(self, session):
        MarketSignalRepository().insert_new(session, "org-1", [signal_row("s1", "k1")])
        repo = SignalTargetRepository()
        rows = [
            {"org_id": "org-1", "signal_id": "s1", "investor_id": "inv-1", "relevance_score": 0.6, "status": "new", "reason": {}},
            {"org_id": "org-1", "signal_id": "s1", "investor_id": "inv-2", "relevance_score": 0.4, "status": "new", "reason": {}},
        ]

        assert repo.insert_new(session, "org-1", rows) == 2
        assert repo.insert_new(session, "org-1", rows) == 0
        assert repo.get_relevance_for_investor(session, "org-1", "inv-1") == {"s1": 0.6}
        assert repo.count_by_investor(session, "org-1") == {"inv-1": (1, 1), "inv-2": (1, 1)}
        assert repo.count_by_investor(session, "org-2") == {}

        assert repo.dismiss_for_signal(session, "s1") == 2
        assert repo.get_relevance_for_investor(session, "org-1", "inv-1") == {}
        assert repo.count_by_investor(session, "org-1") == {}


class TestAIMarketSummaryRepository:
    """Tests for summary upserts."""

    def test_upsert_many_counts_and_overwrites(self, session):
        repo = AIMarketSummaryRepository()
        as_of = date(2025, 7, 1)

        created = repo.upsert_many(session, "org-1", as_of, [summary_row("jvc", "first"), summary_row("jlt", "first")])
        updated = repo.upsert_many(session, "org-1", as_of, [summary_row("jvc", "second", active=20)])
        session.commit()
        session.expire_all()

        assert created == (2, 0)
        assert updated == (0, 1)
        rows = {r.geo_id: r for r in repo.get_for_date(session, "org-1", as_of)}
        assert len(rows) == 2
        assert rows["jvc"].summary_text == "second"
        assert rows["jvc"].active_listings_count == 20
        assert rows["jlt"].summary_text == "first"

    def test_upsert_nothing(self, session):
        assert AIMarketSummaryRepository().upsert_many(session, "org-1", date(2025, 7, 1), []) == (0, 0)


class TestAIInvestorSummaryRepository:
    """Tests for investor summary upserts."""

    def row(self, investor_id, text, value=0.0):
        return {
            "investor_id": investor_id,
            "name": investor_id.upper(),
            "mandate_summary": "No specific mandate defined.",
            "portfolio_summary": "No current holdings.",
            "portfolio_value": value,
            "preferred_areas": ["JVC"],
            "summary_text": text,
        }

    def test_one_row_per_investor(self, session):
        repo = AIInvestorSummaryRepository()

        created = repo.upsert_many(session, "org-1", date(2025, 7, 1), [self.row("inv-1", "first"), self.row("inv-2", "first")])
        updated = repo.upsert_many(session, "org-1", date(2025, 7, 2), [self.row("inv-1", "second", value=700_000)])
        other = repo.upsert_many(session, "org-2", date(2025, 7, 2), [self.row("inv-1", "other tenant")])
        session.commit()
        session.expire_all()

        assert (created, updated, other) == ((2, 0), (0, 1), (1, 0))
        rows = {r.investor_id: r for r in repo.get_for_org(session, "org-1")}
        assert rows["inv-1"].summary_text == "second"
        assert rows["inv-1"].portfolio_value == 700_000
        assert rows["inv-1"].as_of_date == date(2025, 7, 2)
        assert rows["inv-2"].preferred_areas == ["JVC"]
        assert repo.count(session) == 3


class TestCrmRepositories:
    """Tests for the CRM read repositories."""

    def test_listings_and_investors_are_tenant_scoped(self, session_factory, seeded_crm, session):
        listings = ListingRepository().get_for_tenant(session, seeded_crm)
        investors = InvestorRepository()

        assert [l.id for l in listings] == ["lst-1", "lst-2", "lst-3"]
        assert investors.get_for_tenant(session, seeded_crm, "inv-1") is not None
        assert investors.get_for_tenant(session, "org-2", "inv-1") is None

    def test_get_active_investors(self, session_factory, seeded_crm, session):
        session.add(Investor(id="inv-9", tenant_id=seeded_crm, name="Paused", status="inactive"))
        session.commit()

        assert [i.id for i in InvestorRepository().get_active(session, seeded_crm)] == ["inv-1"]

    def test_holdings_with_area(self, session_factory, seeded_crm, session):
        rows = HoldingRepository().get_with_area(session, ["inv-1"])

        assert [(h.listing_id, area) for h, area in rows] == [("lst-3", "JVC")]
        assert HoldingRepository().get_with_area(session, []) == []

    def test_shortlist_memo_and_deal_lookups(self, session):
        session.add_all([
            Shortlist(id="sl-1", tenant_id="org-1", investor_id="inv-1"),
            Shortlist(id="sl-2", tenant_id="org-1", investor_id="inv-1"),
            Memo(tenant_id="org-1", listing_id="lst-1", investor_id="inv-1", state="approved"),
            Memo(tenant_id="org-1", listing_id="lst-1", investor_id="inv-1", state="draft"),
            Memo(tenant_id="org-1", listing_id="lst-2", investor_id="inv-1", state="draft"),
            DealRoom(tenant_id="org-1", property_id="lst-1", investor_id="inv-1", status="open"),
            DealRoom(tenant_id="org-1", property_id="lst-2", investor_id="inv-1", status="closed"),
        ])
        session.flush()
        session.add_all([
            ShortlistItem(shortlist_id="sl-1", listing_id="lst-1", match_score=60),
            ShortlistItem(shortlist_id="sl-2", listing_id="lst-1", match_score=75),
            ShortlistItem(shortlist_id="sl-2", listing_id="lst-2", match_score=None),
        ])
        session.commit()

        assert ShortlistRepository().get_match_scores(session, "org-1", "inv-1") == {"lst-1": 75.0, "lst-2": 0.0}
        assert MemoRepository().get_states(session, "org-1", "inv-1") == {"lst-1": "approved", "lst-2": "draft"}
        assert DealRoomRepository().get_open_property_ids(session, "org-1", "inv-1") == {"lst-1"}
