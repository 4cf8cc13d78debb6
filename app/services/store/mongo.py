"""
MongoDB Contest Store

One document per contest in the `contests` collection, keyed by contest_id.
The single-active-contest rule is enforced by a unique partial index on
`active_slot`, which is only present on non-terminal contests.
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import Any, Dict, Iterable, List, Optional

from app.core.errors import ConflictError, PersistenceError, StaleWriteError
from app.models.contest.contest import Contest, ContestStatus
from app.services.store.base import ContestStore

ACTIVE_SLOT = "active"


def contest_to_mongo(contest: Contest) -> Dict[str, Any]:
    """Serialize a contest, tagging it with the active slot while non-terminal"""
    document = contest.to_document()
    if contest.is_active:
        document["active_slot"] = ACTIVE_SLOT
    else:
        document.pop("active_slot", None)
    return document


def is_active_slot_violation(error: DuplicateKeyError) -> bool:
    details = error.details or {}
    key_pattern = details.get("keyPattern") or {}
    if "active_slot" in key_pattern:
        return True
    return "active_slot" in str(details.get("errmsg", ""))


class MongoContestStore(ContestStore):
    """Contest store backed by a motor database"""

    store_id = "mongo"

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.contests = db.contests

    @staticmethod
    async def create_indexes(db: AsyncIOMotorDatabase) -> None:
        """Create indexes the store depends on"""
        await db.contests.create_index(
            [("active_slot", ASCENDING)],
            unique=True,
            name="one_active_contest",
            partialFilterExpression={"active_slot": {"$exists": True}}
        )
        await db.contests.create_index([("status", ASCENDING), ("created_at", DESCENDING)])

    async def get(self, contest_id: str) -> Optional[Contest]:
        try:
            document = await self.contests.find_one({"_id": contest_id})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read contest {contest_id}: {str(e)}", contest_id=contest_id)
        if not document:
            return None
        return Contest.from_document(document)

    async def insert(self, contest: Contest) -> Contest:
        try:
            await self.contests.insert_one(contest_to_mongo(contest))
        except DuplicateKeyError as e:
            if is_active_slot_violation(e) or await self._blocks_active(contest):
                raise ConflictError("An active contest already exists", contest_id=contest.contest_id)
            raise PersistenceError(f"Contest {contest.contest_id} already exists", contest_id=contest.contest_id)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to insert contest {contest.contest_id}: {str(e)}", contest_id=contest.contest_id)
        return contest

    async def _blocks_active(self, contest: Contest) -> bool:
        """True when a duplicate _id collides while another contest holds the active slot"""
        if not contest.is_active:
            return False
        try:
            return await self.contests.find_one({"active_slot": ACTIVE_SLOT}, {"_id": 1}) is not None
        except PyMongoError as e:
            print(f"[WARN] Could not check active slot for {contest.contest_id}: {str(e)}")
            return False

    async def put(self, contest: Contest) -> Contest:
        expected_version = contest.version
        contest.version = expected_version + 1
        try:
            result = await self.contests.replace_one(
                {"_id": contest.contest_id, "version": expected_version},
                contest_to_mongo(contest)
            )
        except PyMongoError as e:
            contest.version = expected_version
            raise PersistenceError(f"Failed to write contest {contest.contest_id}: {str(e)}", contest_id=contest.contest_id)

        if result.matched_count == 0:
            contest.version = expected_version
            raise StaleWriteError(
                f"Contest {contest.contest_id} changed since it was read (write based on v{expected_version})",
                contest_id=contest.contest_id
            )
        return contest

    async def list_by_status(self, statuses: Iterable[ContestStatus]) -> List[Contest]:
        wanted = [ContestStatus(s).value for s in statuses]
        try:
            documents = await self.contests.find(
                {"status": {"$in": wanted}}
            ).sort("created_at", DESCENDING).to_list(length=100)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list contests: {str(e)}")
        return [Contest.from_document(doc) for doc in documents]

    async def list_all(self) -> List[Contest]:
        try:
            documents = await self.contests.find({}).sort("created_at", DESCENDING).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list contests: {str(e)}")
        return [Contest.from_document(doc) for doc in documents]

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except PyMongoError as e:
            print(f"[WARN] MongoDB ping failed: {str(e)}")
            return False
