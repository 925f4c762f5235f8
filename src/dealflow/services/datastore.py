"""
Data Store

Explicitly constructed access object handed to pipelines and services. It owns
the session factory and the repositories and converts ORM rows into domain
models so nothing downstream touches detached ORM state.
"""
from contextlib import contextmanager
from typing import Dict, Generator, List, Optional, Sequence, Set

from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.dealflow.db.repository import (
    AIInvestorSummaryRepository,
    AIMarketSummaryRepository,
    DealRoomRepository,
    HoldingRepository,
    InvestorRepository,
    ListingRepository,
    MarketSignalRepository,
    MemoRepository,
    MetricSnapshotRepository,
    PortalSnapshotRepository,
    ShortlistRepository,
    SignalTargetRepository,
)
from src.dealflow.db.session import get_db_session, get_session_factory
from src.dealflow.models.listing import HoldingRecord, ListingCandidate
from src.dealflow.models.mandate import Mandate
from src.dealflow.models.market import MarketSignalView, MetricSnapshot, PortalSnapshot
from src.dealflow.pipelines.investor_summaries import InvestorSummaryInput
from src.dealflow.pipelines.signal_mapping import InvestorProfile
from src.dealflow.services.lookups import Lookup, LookupResults, run_lookups
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


class DataStore:
    """
    Read/write access to the contract tables for one process (or one test).

    Usage:
        store = DataStore(build_session_factory(build_engine(url)))
        with store.session() as session:
            listings = store.listings(session, tenant_id)
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        max_workers: int = settings.lookup_max_workers,
        query_timeout: Optional[float] = settings.query_timeout_seconds,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.max_workers = max_workers
        self.query_timeout = query_timeout

        self.metric_snapshots_repo = MetricSnapshotRepository()
        self.portal_snapshots_repo = PortalSnapshotRepository()
        self.listings_repo = ListingRepository()
        self.investors_repo = InvestorRepository()
        self.holdings_repo = HoldingRepository()
        self.shortlists_repo = ShortlistRepository()
        self.memos_repo = MemoRepository()
        self.deal_rooms_repo = DealRoomRepository()
        self.signals_repo = MarketSignalRepository()
        self.targets_repo = SignalTargetRepository()
        self.summaries_repo = AIMarketSummaryRepository()
        self.investor_summaries_repo = AIInvestorSummaryRepository()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with get_db_session(self.session_factory) as session:
            yield session

    def lookups(self, lookups: Sequence[Lookup]) -> LookupResults:
        """Run independent reads concurrently with per-lookup timeouts."""
        return run_lookups(
            self.session_factory,
            lookups,
            max_workers=self.max_workers,
            timeout=self.query_timeout,
        )

    # Snapshots

    def metric_snapshots(self, session: Session, org_id: str) -> List[MetricSnapshot]:
        return [MetricSnapshot.from_row(row) for row in self.metric_snapshots_repo.get_for_org(session, org_id)]

    def portal_snapshots(self, session: Session, org_id: str) -> List[PortalSnapshot]:
        return [PortalSnapshot.from_row(row) for row in self.portal_snapshots_repo.get_for_org(session, org_id)]

    # Signals

    def active_signals(self, session: Session, org_id: str) -> List[MarketSignalView]:
        return [
            MarketSignalView.model_validate(row)
            for row in self.signals_repo.get_active(session, org_id)
        ]

    def signal_relevance(self, session: Session, org_id: str, investor_id: str) -> Dict[str, float]:
        return self.targets_repo.get_relevance_for_investor(session, org_id, investor_id)

    # CRM

    def investor_mandate(self, session: Session, tenant_id: str, investor_id: str) -> Optional[Mandate]:
        """
        Load an investor's mandate.

        Returns:
            Mandate (empty when the investor has none), or None when the
            investor does not exist for this tenant
        """
        investor = self.investors_repo.get_for_tenant(session, tenant_id, investor_id)
        if investor is None:
            return None
        return Mandate.from_raw(investor.mandate) or Mandate()

    def investor_profiles(self, session: Session, tenant_id: str) -> List[InvestorProfile]:
        """Active investors with parsed mandates and held areas."""
        investors = self.investors_repo.get_active(session, tenant_id)
        holdings = self.holdings_repo.get_with_area(session, [investor.id for investor in investors])

        areas: Dict[str, List[str]] = {}
        for holding, area in holdings:
            if area:
                areas.setdefault(holding.investor_id, []).append(area)

        return [
            InvestorProfile(
                investor_id=investor.id,
                mandate=Mandate.from_raw(investor.mandate),
                holding_areas=areas.get(investor.id, []),
            )
            for investor in investors
        ]

    def investor_summary_inputs(self, session: Session, tenant_id: str) -> List[InvestorSummaryInput]:
        """Active investors with their mandates, holdings and live signal counts."""
        investors = self.investors_repo.get_active(session, tenant_id)
        holdings: Dict[str, List[HoldingRecord]] = {}
        for holding, area in self.holdings_repo.get_with_area(session, [investor.id for investor in investors]):
            holdings.setdefault(holding.investor_id, []).append(HoldingRecord.from_row(holding, area=area))
        signal_counts = self.targets_repo.count_by_investor(session, tenant_id)

        inputs = []
        for investor in investors:
            active, new = signal_counts.get(investor.id, (0, 0))
            inputs.append(InvestorSummaryInput(
                investor_id=investor.id,
                name=investor.name,
                mandate=Mandate.from_raw(investor.mandate),
                holdings=holdings.get(investor.id, []),
                active_signals=active,
                new_signals=new,
            ))
        return inputs

    def listings(self, session: Session, tenant_id: str) -> List[ListingCandidate]:
        return [ListingCandidate.from_row(row) for row in self.listings_repo.get_for_tenant(session, tenant_id)]

    def holdings(self, session: Session, investor_id: str) -> List[HoldingRecord]:
        return [
            HoldingRecord.from_row(holding, area=area)
            for holding, area in self.holdings_repo.get_with_area(session, [investor_id])
        ]

    def shortlist_scores(self, session: Session, tenant_id: str, investor_id: str) -> Dict[str, float]:
        return self.shortlists_repo.get_match_scores(session, tenant_id, investor_id)

    def memo_states(self, session: Session, tenant_id: str, investor_id: str) -> Dict[str, str]:
        return self.memos_repo.get_states(session, tenant_id, investor_id)

    def open_deal_ids(self, session: Session, tenant_id: str, investor_id: str) -> Set[str]:
        return self.deal_rooms_repo.get_open_property_ids(session, tenant_id, investor_id)
