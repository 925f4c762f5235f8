"""
AI Summary Pipeline

Batch entry points that compile and upsert the AI context rows for one tenant:
ai_market_summary (one row per geo/segment/day; re-running for the same day
overwrites that day's rows) and ai_investor_summary (one row per investor,
overwritten on every run).
"""
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import List, Optional

from src.dealflow.pipelines.investor_summaries import InvestorSummaryCompiler
from src.dealflow.pipelines.summaries import SummaryCompiler
from src.dealflow.services.datastore import DataStore
from src.dealflow.services.lookups import Lookup
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SummaryRunResult:
    summaries_created: int = 0
    summaries_updated: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        data = asdict(self)
        data["success"] = self.success
        return data


def compute_ai_market_summaries(
    tenant_id: str,
    as_of_date: Optional[date] = None,
    store: Optional[DataStore] = None,
    compiler: Optional[SummaryCompiler] = None,
) -> SummaryRunResult:
    """
    Compile and store market summaries for one tenant.

    Args:
        tenant_id: Tenant (org) identifier
        as_of_date: Summary date (defaults to today)
        store: Data store (defaults to the process-wide database)
        compiler: Summary compiler

    Returns:
        SummaryRunResult with created/updated counts; never raises
    """
    store = store or DataStore()
    compiler = compiler or SummaryCompiler()
    as_of_date = as_of_date or date.today()
    result = SummaryRunResult()

    logger.info("ai_summaries_started", org_id=tenant_id, as_of_date=str(as_of_date))

    try:
        loaded = store.lookups([
            Lookup("truth_snapshots", lambda s: store.metric_snapshots(s, tenant_id), []),
            Lookup("portal_snapshots", lambda s: store.portal_snapshots(s, tenant_id), []),
        ])
        result.errors.extend(loaded.errors)

        summaries = compiler.compile(loaded["truth_snapshots"], loaded["portal_snapshots"])
        if not summaries:
            logger.info("ai_summaries_no_data", org_id=tenant_id)
            return result

        with store.session() as session:
            created, updated = store.summaries_repo.upsert_many(
                session, tenant_id, as_of_date, [summary.to_row() for summary in summaries]
            )
        result.summaries_created = created
        result.summaries_updated = updated

    except Exception as e:
        logger.error(
            "ai_summaries_failed",
            org_id=tenant_id,
            error=str(e),
            error_type=type(e).__name__
        )
        result.errors.append(f"summary upsert failed: {e}")

    logger.info(
        "ai_summaries_completed",
        org_id=tenant_id,
        created=result.summaries_created,
        updated=result.summaries_updated,
        errors=len(result.errors)
    )
    return result


def compute_ai_investor_summaries(
    tenant_id: str,
    as_of_date: Optional[date] = None,
    store: Optional[DataStore] = None,
    compiler: Optional[InvestorSummaryCompiler] = None,
) -> SummaryRunResult:
    """
    Compile and store one investor summary per active investor of a tenant.

    Args:
        tenant_id: Tenant (org) identifier
        as_of_date: Compilation date stored on the rows (defaults to today)
        store: Data store (defaults to the process-wide database)
        compiler: Investor summary compiler

    Returns:
        SummaryRunResult with created/updated counts; never raises
    """
    store = store or DataStore()
    compiler = compiler or InvestorSummaryCompiler()
    as_of_date = as_of_date or date.today()
    result = SummaryRunResult()

    logger.info("ai_investor_summaries_started", org_id=tenant_id, as_of_date=str(as_of_date))

    try:
        loaded = store.lookups([
            Lookup("investors", lambda s: store.investor_summary_inputs(s, tenant_id), []),
        ])
        result.errors.extend(loaded.errors)

        summaries = compiler.compile(loaded["investors"])
        if not summaries:
            logger.info("ai_investor_summaries_no_investors", org_id=tenant_id)
            return result

        with store.session() as session:
            created, updated = store.investor_summaries_repo.upsert_many(
                session, tenant_id, as_of_date, [summary.to_row() for summary in summaries]
            )
        result.summaries_created = created
        result.summaries_updated = updated

    except Exception as e:
        logger.error(
            "ai_investor_summaries_failed",
            org_id=tenant_id,
            error=str(e),
            error_type=type(e).__name__
        )
        result.errors.append(f"investor summary upsert failed: {e}")

    logger.info(
        "ai_investor_summaries_completed",
        org_id=tenant_id,
        created=result.summaries_created,
        updated=result.summaries_updated,
        errors=len(result.errors)
    )
    return result


@dataclass
class SummariesPipelineResult:
    market: Optional[SummaryRunResult] = None
    investor: Optional[SummaryRunResult] = None

    @property
    def success(self) -> bool:
        return all(stage.success for stage in (self.market, self.investor) if stage is not None)

    @property
    def errors(self) -> List[str]:
        return [
            error
            for stage in (self.market, self.investor) if stage is not None
            for error in stage.errors
        ]

    def to_dict(self) -> dict:
        return {
            "market": self.market.to_dict() if self.market else None,
            "investor": self.investor.to_dict() if self.investor else None,
            "errors": self.errors,
            "success": self.success,
        }


def run_summaries_pipeline(
    tenant_id: str,
    as_of_date: Optional[date] = None,
    store: Optional[DataStore] = None,
    skip_market: bool = False,
    skip_investor: bool = False,
) -> SummariesPipelineResult:
    """
    Compile market summaries, then investor summaries, for one tenant.

    A failing stage does not stop the other; a skipped stage is None in the
    result.
    """
    store = store or DataStore()
    result = SummariesPipelineResult()

    if not skip_market:
        result.market = compute_ai_market_summaries(tenant_id, as_of_date=as_of_date, store=store)
    if not skip_investor:
        result.investor = compute_ai_investor_summaries(tenant_id, as_of_date=as_of_date, store=store)

    logger.info(
        "summaries_pipeline_completed",
        org_id=tenant_id,
        market_created=result.market.summaries_created if result.market else None,
        investor_created=result.investor.summaries_created if result.investor else None,
        success=result.success
    )
    return result
