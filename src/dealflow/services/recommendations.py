"""
Recommendation Bundles

Recommended properties and counterfactuals for one investor, plus the
portfolio snapshot they are judged against.
"""
from typing import Optional

from src.dealflow.models.listing import TrustPolicy
from src.dealflow.scoring.counterfactuals import CounterfactualEngine, RecommendationBundle
from src.dealflow.scoring.portfolio import PortfolioSnapshot, build_portfolio_snapshot
from src.dealflow.services.datastore import DataStore
from src.dealflow.services.lookups import Lookup
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


def build_recommendation_bundle(
    tenant_id: str,
    investor_id: str,
    trust_policy: Optional[TrustPolicy] = None,
    store: Optional[DataStore] = None,
    engine: Optional[CounterfactualEngine] = None,
) -> RecommendationBundle:
    """
    Evaluate every tenant listing against the investor's mandate and portfolio.

    Args:
        tenant_id: Tenant identifier
        investor_id: Investor identifier
        trust_policy: Trust requirements (defaults from settings)
        store: Data store
        engine: Counterfactual engine

    Returns:
        RecommendationBundle; errors are reported in ``errors``
    """
    store = store or DataStore()
    engine = engine or CounterfactualEngine()

    try:
        with store.session() as session:
            mandate = store.investor_mandate(session, tenant_id, investor_id)
        if mandate is None:
            logger.warning("investor_not_found", tenant_id=tenant_id, investor_id=investor_id)
            return RecommendationBundle(errors=[f"investor not found: {investor_id}"])

        loaded = store.lookups([
            Lookup("listings", lambda s: store.listings(s, tenant_id), []),
            Lookup("holdings", lambda s: store.holdings(s, investor_id), []),
        ])
        bundle = engine.build(loaded["listings"], mandate, loaded["holdings"], trust_policy)
        bundle.errors.extend(loaded.errors)
        return bundle

    except Exception as e:
        logger.error(
            "recommendation_bundle_failed",
            tenant_id=tenant_id,
            investor_id=investor_id,
            error=str(e),
            error_type=type(e).__name__
        )
        return RecommendationBundle(errors=[f"recommendation bundle failed: {e}"])


def get_portfolio_snapshot(investor_id: str, store: Optional[DataStore] = None) -> PortfolioSnapshot:
    """Summarize an investor's holdings."""
    store = store or DataStore()
    with store.session() as session:
        holdings = store.holdings(session, investor_id)
    snapshot = build_portfolio_snapshot(holdings)
    logger.info(
        "portfolio_snapshot_built",
        investor_id=investor_id,
        holdings=snapshot.property_count,
        total_value=snapshot.total_value
    )
    return snapshot
