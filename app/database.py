from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional

from app.core import config
from app.services.store import ContestStore, InMemoryContestStore, MongoContestStore


class Database:
    client: Optional[AsyncIOMotorClient] = None
    store: Optional[ContestStore] = None

    @classmethod
    async def connect_db(cls):
        """Connect the contest store (MongoDB, or memory when CONTEST_STORE=memory)"""
        if config.CONTEST_STORE == "memory":
            cls.store = InMemoryContestStore()
            print("[OK] Using in-memory contest store")
            return

        timeout_ms = int(config.settings.external_call_timeout_seconds * 1000)
        cls.client = AsyncIOMotorClient(
            config.MONGODB_URL,
            timeoutMS=timeout_ms,
            serverSelectionTimeoutMS=timeout_ms
        )
        print("[OK] Connected to MongoDB")

        # Create indexes
        await cls.create_indexes()
        cls.store = MongoContestStore(cls.get_db())

    @classmethod
    async def create_indexes(cls):
        """Create database indexes"""
        db = cls.get_db()

        try:
            await MongoContestStore.create_indexes(db)
            print("[OK] Created indexes on contests")
        except Exception as e:
            print(f"[WARN] Indexes on contests may already exist: {e}")

    @classmethod
    async def close_db(cls):
        """Close MongoDB connection"""
        if cls.client:
            cls.client.close()
            cls.client = None
            print("[OK] Disconnected from MongoDB")
        cls.store = None

    @classmethod
    def get_db(cls):
        """Get database instance"""
        if cls.client is None:
            return None
        return cls.client[config.DATABASE_NAME]

    @classmethod
    def get_store(cls) -> Optional[ContestStore]:
        """Get the contest store, or None before connect_db()"""
        return cls.store