"""
Contest persistence backends.
"""
from app.services.store.base import ContestStore
from app.services.store.memory import InMemoryContestStore
from app.services.store.mongo import MongoContestStore

__all__ = [
    "ContestStore",
    "InMemoryContestStore",
    "MongoContestStore",
]
