"""
Repository Pattern for Data Access

Provides CRUD operations and tenant-scoped queries for the contract tables.
Writes go through ``INSERT ... ON CONFLICT`` so re-running a pipeline never
duplicates rows.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Type, TypeVar

from sqlalchemy import select, update, func, and_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from src.dealflow.db.models import (
    MarketMetricSnapshot,
    PortalListingSnapshot,
    Listing,
    Investor,
    Holding,
    Shortlist,
    ShortlistItem,
    Memo,
    DealRoom,
    MarketSignal,
    MarketSignalTarget,
    AIMarketSummary,
    AIInvestorSummary,
)
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

CLOSED_DEAL_STATUSES = ("closed", "cancelled", "archived")


def insert_for(session: Session, model: Type[T]):
    """
    Dialect-specific INSERT supporting ``on_conflict_do_update``/``do_nothing``.

    Args:
        session: Database session
        model: SQLAlchemy model class

    Returns:
        Insert construct for the session's dialect
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts not supported for dialect: {dialect}")


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model
        logger.debug("repository_initialized", model=model.__name__)

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def count(self, session: Session) -> int:
        count = session.scalar(select(func.count()).select_from(self.model))
        logger.debug("repository_count", model=self.model.__name__, count=count)
        return count


class MetricSnapshotRepository(BaseRepository):
    """Repository for official metric snapshots."""

    def __init__(self):
        super().__init__(MarketMetricSnapshot)

    def get_for_org(self, session: Session, org_id: str) -> List[MarketMetricSnapshot]:
        """
        Get all metric snapshots of a tenant, latest window first.

        Args:
            session: Database session
            org_id: Tenant identifier

        Returns:
            Snapshot rows ordered by window_end descending
        """
        query = (
            select(MarketMetricSnapshot)
            .where(MarketMetricSnapshot.org_id == org_id)
            .order_by(MarketMetricSnapshot.window_end.desc(), MarketMetricSnapshot.id.desc())
        )
        return session.execute(query).scalars().all()


class PortalSnapshotRepository(BaseRepository):
    """Repository for portal inventory snapshots."""

    def __init__(self):
        super().__init__(PortalListingSnapshot)

    def get_for_org(self, session: Session, org_id: str) -> List[PortalListingSnapshot]:
        query = (
            select(PortalListingSnapshot)
            .where(PortalListingSnapshot.org_id == org_id)
            .order_by(PortalListingSnapshot.as_of_date.desc(), PortalListingSnapshot.id.desc())
        )
        return session.execute(query).scalars().all()


class ListingRepository(BaseRepository):
    """Repository for CRM listings."""

    def __init__(self):
        super().__init__(Listing)

    def get_for_tenant(self, session: Session, tenant_id: str) -> List[Listing]:
        query = select(Listing).where(Listing.tenant_id == tenant_id).order_by(Listing.id)
        return session.execute(query).scalars().all()



class InvestorRepository(BaseRepository):
    """Repository for investors and their mandates."""

    def __init__(self):
        super().__init__(Investor)

    def get_for_tenant(self, session: Session, tenant_id: str, investor_id: str) -> Optional[Investor]:
        """
        Get an investor scoped to a tenant.

        Returns:
            Investor or None when absent or owned by another tenant
        """
        query = select(Investor).where(
            and_(Investor.id == investor_id, Investor.tenant_id == tenant_id)
        )
        return session.execute(query).scalar_one_or_none()

    def get_active(self, session: Session, tenant_id: str) -> List[Investor]:
        query = (
            select(Investor)
            .where(and_(Investor.tenant_id == tenant_id, Investor.status == "active"))
            .order_by(Investor.id)
        )
        return session.execute(query).scalars().all()


class HoldingRepository(BaseRepository):
    """Repository for investor holdings."""

    def __init__(self):
        super().__init__(Holding)

    def get_with_area(
        self,
        session: Session,
        investor_ids: Iterable[str]
    ) -> List[Tuple[Holding, Optional[str]]]:
        """
        Get holdings of the given investors with the area of each held listing.

        Args:
            session: Database session
            investor_ids: Investor identifiers

        Returns:
            (holding, area) pairs; area is None when the listing row is missing
        """
        ids = list(investor_ids)
        if not ids:
            return []
        query = (
            select(Holding, Listing.area)
            .outerjoin(Listing, Listing.id == Holding.listing_id)
            .where(Holding.investor_id.in_(ids))
            .order_by(Holding.investor_id, Holding.id)
        )
        return [(row[0], row[1]) for row in session.execute(query)]


class ShortlistRepository(BaseRepository):
    """Repository for investor shortlists."""

    def __init__(self):
        super().__init__(ShortlistItem)

    def get_match_scores(self, session: Session, tenant_id: str, investor_id: str) -> Dict[str, float]:
        """
        Map listing id to shortlist match score for an investor.

        The highest score wins when a listing sits on several shortlists.
        """
        query = (
            select(ShortlistItem.listing_id, func.max(ShortlistItem.match_score))
            .join(Shortlist, Shortlist.id == ShortlistItem.shortlist_id)
            .where(and_(Shortlist.tenant_id == tenant_id, Shortlist.investor_id == investor_id))
            .group_by(ShortlistItem.listing_id)
        )
        return {
            listing_id: float(score) if score is not None else 0.0
            for listing_id, score in session.execute(query)
        }


class MemoRepository(BaseRepository):
    """Repository for investment memos."""

    def __init__(self):
        super().__init__(Memo)

    def get_states(self, session: Session, tenant_id: str, investor_id: str) -> Dict[str, str]:
        """Map listing id to memo state; an approved memo wins over others."""
        query = select(Memo.listing_id, Memo.state).where(
            and_(Memo.tenant_id == tenant_id, Memo.investor_id == investor_id)
        )
        states: Dict[str, str] = {}
        for listing_id, state in session.execute(query):
            if states.get(listing_id) != "approved":
                states[listing_id] = state
        return states


class DealRoomRepository(BaseRepository):
    """Repository for deal rooms."""

    def __init__(self):
        super().__init__(DealRoom)

    def get_open_property_ids(self, session: Session, tenant_id: str, investor_id: str) -> Set[str]:
        query = select(DealRoom.property_id).where(
            and_(
                DealRoom.tenant_id == tenant_id,
                DealRoom.investor_id == investor_id,
                DealRoom.status.notin_(CLOSED_DEAL_STATUSES),
            )
        )
        return set(session.execute(query).scalars().all())


class MarketSignalRepository(BaseRepository):
    """Repository for detected market signals."""

    def __init__(self):
        super().__init__(MarketSignal)

    def get_for_org(self, session: Session, org_id: str, signal_id: str) -> Optional[MarketSignal]:
        query = select(MarketSignal).where(
            and_(MarketSignal.id == signal_id, MarketSignal.org_id == org_id)
        )
        return session.execute(query).scalar_one_or_none()

    def get_active(self, session: Session, org_id: str) -> List[MarketSignal]:
        """Get all non-dismissed signals of a tenant, newest first."""
        query = (
            select(MarketSignal)
            .where(and_(MarketSignal.org_id == org_id, MarketSignal.status != "dismissed"))
            .order_by(MarketSignal.created_at.desc(), MarketSignal.id)
        )
        return session.execute(query).scalars().all()

    def get_existing_keys(self, session: Session, org_id: str, keys: Iterable[str]) -> Set[str]:
        keys = list(keys)
        if not keys:
            return set()
        query = select(MarketSignal.signal_key).where(
            MarketSignal.org_id == org_id,
            MarketSignal.signal_key.in_(keys)
        )
        return set(session.execute(query).scalars().all())

    def insert_new(self, session: Session, org_id: str, rows: List[Dict[str, Any]]) -> int:
        """
        Insert signals whose signal_key is not stored yet for the organization.

        Keys are unique per organization; two tenants tracking the same
        series each keep their own signal.

        Args:
            session: Database session
            org_id: Organization the rows belong to
            rows: Column dicts, each with a signal_key

        Returns:
            Number of rows actually inserted
        """
        if not rows:
            return 0

        existing = self.get_existing_keys(session, org_id, [row["signal_key"] for row in rows])
        new_rows = []
        seen = set(existing)
        for row in rows:
            if row["signal_key"] in seen:
                continue
            seen.add(row["signal_key"])
            new_rows.append(row)

        if new_rows:
            stmt = insert_for(session, MarketSignal).values(new_rows)
            stmt = stmt.on_conflict_do_nothing(index_elements=["org_id", "signal_key"])
            session.execute(stmt)
            session.flush()

        logger.info(
            "market_signals_inserted",
            org_id=org_id,
            submitted=len(rows),
            inserted=len(new_rows),
            skipped=len(rows) - len(new_rows)
        )
        return len(new_rows)

    def set_status(
        self,
        session: Session,
        signal: MarketSignal,
        status: str,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> MarketSignal:
        """Apply a triage status and its actor/timestamp columns."""
        now = now or datetime.now(timezone.utc)
        signal.status = status
        if status == "acknowledged":
            signal.acknowledged_at = now
            signal.acknowledged_by = actor_id
        elif status == "dismissed":
            signal.dismissed_at = now
            signal.dismissed_by = actor_id
        session.flush()
        return signal


class SignalTargetRepository(BaseRepository):
    """Repository for signal-to-investor mappings."""

    def __init__(self):
        super().__init__(MarketSignalTarget)

    def get_existing_pairs(self, session: Session, org_id: str, signal_ids: Iterable[str]) -> Set[Tuple[str, str]]:
        ids = list(signal_ids)
        if not ids:
            return set()
        query = select(MarketSignalTarget.signal_id, MarketSignalTarget.investor_id).where(
            and_(MarketSignalTarget.org_id == org_id, MarketSignalTarget.signal_id.in_(ids))
        )
        return {(row.signal_id, row.investor_id) for row in session.execute(query)}

    def insert_new(self, session: Session, org_id: str, rows: List[Dict[str, Any]]) -> int:
        """
        Insert mappings that do not exist yet.

        Returns:
            Number of new mappings
        """
        if not rows:
            return 0

        existing = self.get_existing_pairs(session, org_id, {row["signal_id"] for row in rows})
        new_rows = []
        for row in rows:
            pair = (row["signal_id"], row["investor_id"])
            if pair in existing:
                continue
            existing.add(pair)
            new_rows.append(row)

        if new_rows:
            stmt = insert_for(session, MarketSignalTarget).values(new_rows)
            stmt = stmt.on_conflict_do_nothing(index_elements=["org_id", "signal_id", "investor_id"])
            session.execute(stmt)
            session.flush()

        logger.info("signal_targets_inserted", org_id=org_id, inserted=len(new_rows))
        return len(new_rows)

    def count_by_investor(self, session: Session, org_id: str) -> Dict[str, Tuple[int, int]]:
        """
        Count live mappings per investor.

        Returns:
            investor_id -> (active, new); dismissed mappings are not counted
        """
        query = (
            select(MarketSignalTarget.investor_id, MarketSignalTarget.status, func.count())
            .where(and_(MarketSignalTarget.org_id == org_id, MarketSignalTarget.status != "dismissed"))
            .group_by(MarketSignalTarget.investor_id, MarketSignalTarget.status)
        )
        counts: Dict[str, Tuple[int, int]] = {}
        for investor_id, status, total in session.execute(query):
            active, new = counts.get(investor_id, (0, 0))
            counts[investor_id] = (active + total, new + (total if status == "new" else 0))
        return counts

    def get_relevance_for_investor(self, session: Session, org_id: str, investor_id: str) -> Dict[str, float]:
        """Map signal id to relevance score for the investor's live mappings."""
        query = select(MarketSignalTarget.signal_id, MarketSignalTarget.relevance_score).where(
            and_(
                MarketSignalTarget.org_id == org_id,
                MarketSignalTarget.investor_id == investor_id,
                MarketSignalTarget.status != "dismissed",
            )
        )
        return {signal_id: float(score) for signal_id, score in session.execute(query)}

    def dismiss_for_signal(self, session: Session, signal_id: str) -> int:
        stmt = (
            update(MarketSignalTarget)
            .where(and_(MarketSignalTarget.signal_id == signal_id, MarketSignalTarget.status != "dismissed"))
            .values(status="dismissed")
        )
        result = session.execute(stmt)
        session.flush()
        return result.rowcount or 0


class AIMarketSummaryRepository(BaseRepository):
    """Repository for AI market summaries."""

    KEY_COLUMNS = ("org_id", "geo_id", "segment", "as_of_date")

    def __init__(self):
        super().__init__(AIMarketSummary)

    def get_for_date(self, session: Session, org_id: str, as_of_date: date) -> List[AIMarketSummary]:
        query = (
            select(AIMarketSummary)
            .where(and_(AIMarketSummary.org_id == org_id, AIMarketSummary.as_of_date == as_of_date))
            .order_by(AIMarketSummary.geo_id, AIMarketSummary.segment)
        )
        return session.execute(query).scalars().all()

    def upsert_many(self, session: Session, org_id: str, as_of_date: date, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
        """
        Insert or overwrite summaries keyed by (org_id, geo_id, segment, as_of_date).

        Args:
            session: Database session
            org_id: Tenant identifier
            as_of_date: Summary date shared by all rows
            rows: Column dicts without org_id/as_of_date

        Returns:
            (created, updated) counts
        """
        if not rows:
            return 0, 0

        existing = {
            (summary.geo_id, summary.segment)
            for summary in self.get_for_date(session, org_id, as_of_date)
        }

        values = [{**row, "org_id": org_id, "as_of_date": as_of_date} for row in rows]
        stmt = insert_for(session, AIMarketSummary).values(values)
        update_columns = {
            column: stmt.excluded[column]
            for column in values[0].keys()
            if column not in self.KEY_COLUMNS
        }
        update_columns["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=list(self.KEY_COLUMNS),
            set_=update_columns
        )
        session.execute(stmt)
        session.flush()

        keys = {(row["geo_id"], row["segment"]) for row in rows}
        updated = len(keys & existing)
        created = len(keys) - updated
        logger.info(
            "ai_market_summaries_upserted",
            org_id=org_id,
            as_of_date=str(as_of_date),
            created=created,
            updated=updated
        )
        return created, updated


class AIInvestorSummaryRepository(BaseRepository):
    """Repository for AI investor summaries (one row per investor)."""

    KEY_COLUMNS = ("org_id", "investor_id")

    def __init__(self):
        super().__init__(AIInvestorSummary)

    def get_for_org(self, session: Session, org_id: str) -> List[AIInvestorSummary]:
        query = (
            select(AIInvestorSummary)
            .where(AIInvestorSummary.org_id == org_id)
            .order_by(AIInvestorSummary.investor_id)
        )
        return session.execute(query).scalars().all()

    def upsert_many(self, session: Session, org_id: str, as_of_date: date, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
        """
        Insert or overwrite summaries keyed by (org_id, investor_id).

        Args:
            session: Database session
            org_id: Tenant identifier
            as_of_date: Date the summaries were compiled for
            rows: Column dicts without org_id/as_of_date

        Returns:
            (created, updated) counts
        """
        if not rows:
            return 0, 0

        existing = {summary.investor_id for summary in self.get_for_org(session, org_id)}

        values = [{**row, "org_id": org_id, "as_of_date": as_of_date} for row in rows]
        stmt = insert_for(session, AIInvestorSummary).values(values)
        update_columns = {
            column: stmt.excluded[column]
            for column in values[0].keys()
            if column not in self.KEY_COLUMNS
        }
        update_columns["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=list(self.KEY_COLUMNS),
            set_=update_columns
        )
        session.execute(stmt)
        session.flush()

        keys = {row["investor_id"] for row in rows}
        updated = len(keys & existing)
        created = len(keys) - updated
        logger.info(
            "ai_investor_summaries_upserted",
            org_id=org_id,
            as_of_date=str(as_of_date),
            created=created,
            updated=updated
        )
        return created, updated
