"""
Database Package

ORM models for the contract tables, connection management and repositories.
"""
from src.dealflow.db.base import Base
from src.dealflow.db.session import (
    build_engine,
    build_session_factory,
    get_session_factory,
    get_db_session,
    health_check,
    create_all_tables,
    drop_all_tables,
)
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
)
from src.dealflow.db.repository import (
    BaseRepository,
    MetricSnapshotRepository,
    PortalSnapshotRepository,
    ListingRepository,
    InvestorRepository,
    HoldingRepository,
    ShortlistRepository,
    MemoRepository,
    DealRoomRepository,
    MarketSignalRepository,
    SignalTargetRepository,
    AIMarketSummaryRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "build_engine",
    "build_session_factory",
    "get_session_factory",
    "get_db_session",
    "health_check",
    "create_all_tables",
    "drop_all_tables",
    # Models
    "MarketMetricSnapshot",
    "PortalListingSnapshot",
    "Listing",
    "Investor",
    "Holding",
    "Shortlist",
    "ShortlistItem",
    "Memo",
    "DealRoom",
    "MarketSignal",
    "MarketSignalTarget",
    "AIMarketSummary",
    # Repositories
    "BaseRepository",
    "MetricSnapshotRepository",
    "PortalSnapshotRepository",
    "ListingRepository",
    "InvestorRepository",
    "HoldingRepository",
    "ShortlistRepository",
    "MemoRepository",
    "DealRoomRepository",
    "MarketSignalRepository",
    "SignalTargetRepository",
    "AIMarketSummaryRepository",
]
