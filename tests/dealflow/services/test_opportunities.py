"""
Tests for Opportunity Queries
"""
from src.dealflow.db.models import DealRoom, Memo, Shortlist, ShortlistItem
from src.dealflow.pipelines.signals_pipeline import run_signals_pipeline
from src.dealflow.services.datastore import DataStore
from src.dealflow.services.opportunities import compute_opportunities


class BrokenRelevanceStore(DataStore):
    def signal_relevance(self, session, org_id, investor_id):
        raise RuntimeError("signal targets unavailable")


class TestComputeOpportunities:
    """Tests for compute_opportunities."""

    def test_unknown_investor(self, store, seeded_crm):
        result = compute_opportunities(seeded_crm, "inv-missing", store=store)

        assert result.items == []
        assert result.errors == ["investor not found: inv-missing"]

    def test_investor_of_other_tenant_is_not_found(self, store, seeded_crm):
        result = compute_opportunities("org-2", "inv-1", store=store)

        assert result.errors == ["investor not found: inv-1"]

    def test_ranks_with_mandate_and_signals(self, store, seeded_market, seeded_crm):
        run_signals_pipeline(seeded_market, store=store)

        result = compute_opportunities(seeded_crm, "inv-1", store=store)

        assert result.errors == []
        assert [item.listing_id for item in result.items] == ["lst-1"]
        top = result.items[0]
        assert top.scores.mandate_match == 80
        assert top.scores.signal_relevance > 0
        assert len(top.sources.signals) == 4
        assert {s["match"] for s in top.sources.signals} == {"area"}
        assert top.lifecycle.stage == "recommended"
        assert result.counts["total"] == 1
        assert result.counts["recommended"] == 1

    def test_owned_listing_only_with_include_owned(self, store, seeded_crm):
        default = compute_opportunities(seeded_crm, "inv-1", store=store)
        with_owned = compute_opportunities(seeded_crm, "inv-1", include_owned=True, store=store)

        assert "lst-3" not in [item.listing_id for item in default.items]
        owned = next(item for item in with_owned.items if item.listing_id == "lst-3")
        assert owned.lifecycle.stage == "holding"
        assert owned.lifecycle.is_owned
        assert with_owned.counts["holding"] == 1

    def test_lifecycle_from_crm_state(self, store, session_factory, seeded_crm):
        with session_factory() as session:
            shortlist = Shortlist(id="sl-1", tenant_id=seeded_crm, investor_id="inv-1")
            shortlist.items.append(ShortlistItem(listing_id="lst-2", match_score=40))
            session.add(shortlist)
            session.add(Memo(tenant_id=seeded_crm, listing_id="lst-1", investor_id="inv-1", state="approved"))
            session.add(DealRoom(tenant_id=seeded_crm, property_id="lst-1", investor_id="inv-1", status="open"))
            session.commit()

        result = compute_opportunities(seeded_crm, "inv-1", store=store)
        by_id = {item.listing_id: item for item in result.items}

        assert by_id["lst-1"].lifecycle.stage == "deal"
        assert by_id["lst-1"].lifecycle.is_memo_approved
        assert by_id["lst-2"].lifecycle.stage == "shortlisted"
        assert by_id["lst-2"].scores.shortlist_match == 40
        assert by_id["lst-2"].scores.combined == 8

    def test_failed_lookup_degrades(self, session_factory, seeded_market, seeded_crm):
        store = BrokenRelevanceStore(session_factory, max_workers=4, query_timeout=10)
        run_signals_pipeline(seeded_market, store=DataStore(session_factory, max_workers=4, query_timeout=10))

        result = compute_opportunities(seeded_crm, "inv-1", store=store)

        assert result.errors == ["signal_relevance failed: signal targets unavailable"]
        assert [item.listing_id for item in result.items] == ["lst-1"]
        assert result.items[0].scores.mandate_match == 80

    def test_limit_is_clamped(self, store, seeded_crm):
        result = compute_opportunities(seeded_crm, "inv-1", include_owned=True, limit=0, store=store)

        assert result.counts["returned"] == 1
        assert len(result.items) == 1
