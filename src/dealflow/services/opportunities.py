"""
Opportunity Queries

Request-time ranking of listings for one investor. Independent CRM and
signal lookups run concurrently; a failed lookup degrades the result (for
example signal relevance counts as 0) instead of failing the query.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.dealflow.scoring.opportunity_scorer import STAGES, Opportunity, OpportunityScorer, ScoringContext
from src.dealflow.services.datastore import DataStore
from src.dealflow.services.lookups import Lookup
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


def empty_counts() -> Dict[str, int]:
    counts = {"total": 0, "returned": 0}
    counts.update({stage: 0 for stage in STAGES})
    return counts


@dataclass
class OpportunityQueryResult:
    investor_id: str
    items: List[Opportunity] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=empty_counts)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "investor_id": self.investor_id,
            "items": [item.to_dict() for item in self.items],
            "counts": dict(self.counts),
            "errors": list(self.errors),
        }


def compute_opportunities(
    tenant_id: str,
    investor_id: str,
    include_owned: bool = False,
    limit: Optional[int] = None,
    store: Optional[DataStore] = None,
    scorer: Optional[OpportunityScorer] = None,
) -> OpportunityQueryResult:
    """
    Rank opportunities for an investor.

    Args:
        tenant_id: Tenant identifier
        investor_id: Investor identifier
        include_owned: Keep listings the investor already holds
        limit: Maximum items (default 50, clamped to [1, 200])
        store: Data store
        scorer: Opportunity scorer

    Returns:
        OpportunityQueryResult; partial failures are listed in ``errors``
    """
    store = store or DataStore()
    scorer = scorer or OpportunityScorer()
    result = OpportunityQueryResult(investor_id=investor_id)

    try:
        with store.session() as session:
            mandate = store.investor_mandate(session, tenant_id, investor_id)

        if mandate is None:
            logger.warning("investor_not_found", tenant_id=tenant_id, investor_id=investor_id)
            result.errors.append(f"investor not found: {investor_id}")
            return result

        loaded = store.lookups([
            Lookup("listings", lambda s: store.listings(s, tenant_id), []),
            Lookup("holdings", lambda s: store.holdings(s, investor_id), []),
            Lookup("signals", lambda s: store.active_signals(s, tenant_id), []),
            Lookup("signal_relevance", lambda s: store.signal_relevance(s, tenant_id, investor_id), {}),
            Lookup("shortlist", lambda s: store.shortlist_scores(s, tenant_id, investor_id), {}),
            Lookup("memos", lambda s: store.memo_states(s, tenant_id, investor_id), {}),
            Lookup("deals", lambda s: store.open_deal_ids(s, tenant_id, investor_id), set()),
        ])
        result.errors.extend(loaded.errors)

        context = ScoringContext(
            investor_id=investor_id,
            mandate=mandate,
            listings=loaded["listings"],
            holdings=loaded["holdings"],
            signals=loaded["signals"],
            signal_relevance=loaded["signal_relevance"],
            shortlist_scores=loaded["shortlist"],
            memo_states=loaded["memos"],
            deal_ids=loaded["deals"],
        )
        result.items, result.counts = scorer.rank(context, include_owned=include_owned, limit=limit)

    except Exception as e:
        logger.error(
            "opportunity_query_failed",
            tenant_id=tenant_id,
            investor_id=investor_id,
            error=str(e),
            error_type=type(e).__name__
        )
        result.errors.append(f"opportunity scoring failed: {e}")

    return result
