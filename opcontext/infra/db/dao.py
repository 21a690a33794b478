"""SQLAlchemy implementation of the Dao port.

One ``AsyncSession`` per operation.  The session stays usable by actions
(``context.dao.session``) until the operation closes it with COMMIT or
ROLLBACK; after that the DAO is inactive and refuses a second close.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opcontext.domain.common.errors import CollaboratorError
from opcontext.domain.common.uow import Dao, Outcome
from opcontext.domain.operation.ports import DatabaseFactory, OperationLogger
from opcontext.infra.tracing import traced

logger = logging.getLogger(__name__)

_SOURCE = "sqlalchemy-dao"


class SqlAlchemyDao(Dao):
    """Transactional data access over a single async session."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        read_only: bool = False,
        log: OperationLogger | None = None,
    ) -> None:
        self._session = session
        self._read_only = read_only
        self._log = log or logger
        self._closed = False

    @property
    def session(self) -> AsyncSession:
        if self._closed:
            raise CollaboratorError("dao", "session already closed")
        return self._session

    @property
    def is_active(self) -> bool:
        return not self._closed

    @property
    def is_read_only(self) -> bool:
        return self._read_only

    async def close(self, outcome: Outcome) -> Outcome:
        if self._closed:
            raise CollaboratorError("dao", "cannot close a dao twice")
        outcome = Outcome(outcome)
        # mark closed first: a failed commit must not leave the dao reusable
        self._closed = True
        try:
            async with traced(self._log, _SOURCE, outcome.value):
                if outcome is Outcome.COMMIT and not self._read_only:
                    await self._session.commit()
                else:
                    await self._session.rollback()
        finally:
            await self._session.close()
        return outcome


class SqlAlchemyDatabase(DatabaseFactory):
    """Hand out one SqlAlchemyDao per operation from a session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        read_only: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._read_only = read_only

    def get_client(self, logger: OperationLogger | None = None) -> SqlAlchemyDao:
        return SqlAlchemyDao(
            self._session_factory(), read_only=self._read_only, log=logger
        )
