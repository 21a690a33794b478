"""Data-access port — the transactional boundary of an operation.

The DAO is a domain concept: "everything the pipeline wrote must be
committed or rolled back together."  The concrete implementation
(SQLAlchemy async session) lives in infra/db/dao.py.
"""

from __future__ import annotations

import abc
from enum import Enum


class Outcome(str, Enum):
    """How a data-access service is closed."""

    COMMIT = "commit"
    ROLLBACK = "rollback"


class Dao(abc.ABC):
    """Abstract transactional data-access service.

    Usage by the operation::

        if dao.is_active:
            await dao.close(Outcome.COMMIT)

    A DAO must not be reused once ``close()`` has been awaited.
    """

    @property
    @abc.abstractmethod
    def is_active(self) -> bool:
        ...

    @property
    def is_read_only(self) -> bool:
        return False

    @abc.abstractmethod
    async def close(self, outcome: Outcome) -> object:
        ...
