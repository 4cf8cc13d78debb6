"""
In-memory Contest Store
Used for tests and local runs without MongoDB
"""
import asyncio
from typing import Dict, Iterable, List, Optional

from app.core.errors import ConflictError, PersistenceError, StaleWriteError
from app.models.contest.contest import Contest, ContestStatus, ACTIVE_STATUSES
from app.services.store.base import ContestStore


class InMemoryContestStore(ContestStore):
    """Stores documents (not live objects) so callers never share state"""

    store_id = "memory"

    def __init__(self):
        self._documents: Dict[str, dict] = {}
        self._lock = asyncio.Lock()

    async def get(self, contest_id: str) -> Optional[Contest]:
        document = self._documents.get(contest_id)
        if document is None:
            return None
        return Contest.from_document(document)

    async def insert(self, contest: Contest) -> Contest:
        async with self._lock:
            if contest.is_active and self._has_active():
                raise ConflictError(
                    "An active contest already exists",
                    contest_id=contest.contest_id
                )
            if contest.contest_id in self._documents:
                raise PersistenceError(
                    f"Contest {contest.contest_id} already exists",
                    contest_id=contest.contest_id
                )
            self._documents[contest.contest_id] = contest.to_document()
            return contest

    async def put(self, contest: Contest) -> Contest:
        async with self._lock:
            current = self._documents.get(contest.contest_id)
            if current is None:
                raise PersistenceError(
                    f"Contest {contest.contest_id} does not exist",
                    contest_id=contest.contest_id
                )
            if current["version"] != contest.version:
                raise StaleWriteError(
                    f"Contest {contest.contest_id} changed since it was read "
                    f"(stored v{current['version']}, write based on v{contest.version})",
                    contest_id=contest.contest_id
                )
            contest.version += 1
            self._documents[contest.contest_id] = contest.to_document()
            return contest

    async def list_by_status(self, statuses: Iterable[ContestStatus]) -> List[Contest]:
        wanted = {ContestStatus(s).value for s in statuses}
        contests = [
            Contest.from_document(doc)
            for doc in self._documents.values()
            if doc["status"] in wanted
        ]
        return sorted(contests, key=lambda c: c.created_at, reverse=True)

    async def list_all(self) -> List[Contest]:
        contests = [Contest.from_document(doc) for doc in self._documents.values()]
        return sorted(contests, key=lambda c: c.created_at, reverse=True)

    def _has_active(self) -> bool:
        active = {s.value for s in ACTIVE_STATUSES}
        return any(doc["status"] in active for doc in self._documents.values())
