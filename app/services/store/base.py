"""
Base Contest Store
Abstract class defining the persistence contract the lifecycle services rely on
"""
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from app.models.contest.contest import Contest, ContestStatus


class ContestStore(ABC):
    """
    Keyed document storage for contests.

    Implementations must give read-your-writes consistency within a process,
    reject a second active contest atomically in insert(), and make put() a
    conditional write on Contest.version.
    """

    store_id: str = "base"

    @abstractmethod
    async def get(self, contest_id: str) -> Optional[Contest]:
        """Fetch a contest by id, or None"""
        pass

    @abstractmethod
    async def insert(self, contest: Contest) -> Contest:
        """
        Store a new contest.

        Raises:
            ConflictError: a non-terminal contest already exists
            PersistenceError: the write failed
        """
        pass

    @abstractmethod
    async def put(self, contest: Contest) -> Contest:
        """
        Replace a stored contest if its version still matches.

        On success the contest's version is bumped in place.

        Raises:
            StaleWriteError: another writer updated the document first
            PersistenceError: the write failed
        """
        pass

    @abstractmethod
    async def list_by_status(self, statuses: Iterable[ContestStatus]) -> List[Contest]:
        """Contests whose status is in statuses, newest first"""
        pass

    @abstractmethod
    async def list_all(self) -> List[Contest]:
        """Every contest, newest first"""
        pass

    async def ping(self) -> bool:
        return True
