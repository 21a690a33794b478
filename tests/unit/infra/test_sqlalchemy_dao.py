"""Unit tests for the SQLAlchemy DAO adapter.

The AsyncSession is mocked; these tests pin which session calls each
outcome produces, not SQLAlchemy behaviour.
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from opcontext.domain.common.errors import CollaboratorError
from opcontext.domain.common.uow import Outcome
from opcontext.infra.db.dao import SqlAlchemyDao, SqlAlchemyDatabase


def _session() -> AsyncMock:
    return AsyncMock()


class TestSqlAlchemyDao:
    @pytest.mark.asyncio
    async def test_commit_commits_and_closes_session(self):
        session = _session()
        dao = SqlAlchemyDao(session)

        assert await dao.close(Outcome.COMMIT) is Outcome.COMMIT

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()
        session.close.assert_awaited_once()
        assert dao.is_active is False

    @pytest.mark.asyncio
    async def test_rollback_rolls_back_and_closes_session(self):
        session = _session()
        dao = SqlAlchemyDao(session)

        await dao.close(Outcome.ROLLBACK)

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_read_only_dao_never_commits(self):
        session = _session()
        dao = SqlAlchemyDao(session, read_only=True)

        await dao.close(Outcome.COMMIT)

        assert dao.is_read_only is True
        session.commit.assert_not_awaited()
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_outcome_accepts_its_string_value(self):
        session = _session()

        assert await SqlAlchemyDao(session).close("commit") is Outcome.COMMIT
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_close_is_rejected(self):
        dao = SqlAlchemyDao(_session())
        await dao.close(Outcome.COMMIT)

        with pytest.raises(CollaboratorError, match="cannot close a dao twice"):
            await dao.close(Outcome.ROLLBACK)

    @pytest.mark.asyncio
    async def test_failed_commit_still_closes_session_and_deactivates(self):
        session = _session()
        session.commit.side_effect = ConnectionError("db down")
        dao = SqlAlchemyDao(session)

        with pytest.raises(ConnectionError, match="db down"):
            await dao.close(Outcome.COMMIT)

        session.close.assert_awaited_once()
        assert dao.is_active is False

    @pytest.mark.asyncio
    async def test_session_is_unavailable_after_close(self):
        session = _session()
        dao = SqlAlchemyDao(session)
        assert dao.session is session

        await dao.close(Outcome.COMMIT)

        with pytest.raises(CollaboratorError, match="session already closed"):
            dao.session

    @pytest.mark.asyncio
    async def test_close_is_traced(self, caplog):
        dao = SqlAlchemyDao(_session())

        with caplog.at_level(logging.INFO, logger="opcontext"):
            await dao.close(Outcome.COMMIT)

        assert any(
            "[sqlalchemy-dao]: executed [commit] in" in r.getMessage()
            for r in caplog.records
        )


class TestSqlAlchemyDatabase:
    def test_each_client_gets_its_own_session(self):
        factory = MagicMock(side_effect=[_session(), _session()])
        database = SqlAlchemyDatabase(factory)

        first, second = database.get_client(), database.get_client()

        assert first.session is not second.session
        assert factory.call_count == 2

    def test_read_only_flag_is_passed_to_clients(self):
        database = SqlAlchemyDatabase(MagicMock(return_value=_session()), read_only=True)

        assert database.get_client().is_read_only is True

    def test_client_logs_through_given_logger(self):
        log = logging.getLogger("opcontext.test.dao")
        dao = SqlAlchemyDatabase(MagicMock(return_value=_session())).get_client(log)

        assert dao._log is log
