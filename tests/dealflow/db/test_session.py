"""
Tests for Database Session Management
"""
import pytest
from sqlalchemy import exc, func, select

from src.dealflow.db.models import Investor, MarketSignalTarget
from src.dealflow.db.session import build_engine, build_session_factory, get_db_session, health_check


def investor_count(session_factory):
    with get_db_session(session_factory, read_only=True) as session:
        return session.scalar(select(func.count()).select_from(Investor))


class TestGetDbSession:
    """Tests for get_db_session."""

    def test_commits_on_success(self, session_factory):
        with get_db_session(session_factory) as session:
            session.add(Investor(id="inv-1", tenant_id="org-1", name="A"))

        assert investor_count(session_factory) == 1

    def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            with get_db_session(session_factory) as session:
                session.add(Investor(id="inv-1", tenant_id="org-1", name="A"))
                session.flush()
                raise RuntimeError("boom")

        assert investor_count(session_factory) == 0

    def test_read_only_never_commits(self, session_factory):
        with get_db_session(session_factory, read_only=True) as session:
            session.add(Investor(id="inv-1", tenant_id="org-1", name="A"))
            session.flush()

        assert investor_count(session_factory) == 0

    def test_sqlite_enforces_foreign_keys(self, session_factory):
        with pytest.raises(exc.IntegrityError):
            with get_db_session(session_factory) as session:
                session.add(MarketSignalTarget(
                    org_id="org-1", signal_id="missing", investor_id="inv-1", relevance_score=0.5
                ))


class TestHealthCheck:
    """Tests for health_check."""

    def test_reachable(self, session_factory):
        assert health_check(session_factory) is True

    def test_unreachable(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")

        assert health_check(build_session_factory(engine)) is False
