from typing import Optional
from fastapi import Depends, Header

from app.core import config
from app.core.errors import PersistenceError
from app.database import Database
from app.services.contest.contest import ContestService
from app.services.gateways.factory import GatewayFactory
from app.services.scheduler.contest_scheduler import ContestScheduler, create_contest_scheduler
from app.services.store.base import ContestStore


async def get_store() -> ContestStore:
    """Contest store dependency"""
    store = Database.get_store()
    if store is None:
        raise PersistenceError("Contest store is not connected")
    return store


async def get_contest_service(store: ContestStore = Depends(get_store)) -> ContestService:
    return ContestService(
        store,
        profile_gateway=GatewayFactory.get_profile_gateway(),
        settings=config.settings
    )


async def get_contest_scheduler(store: ContestStore = Depends(get_store)) -> ContestScheduler:
    return create_contest_scheduler(store)


async def is_admin(x_admin_key: Optional[str] = Header(None)) -> bool:
    """True when no ADMIN_API_KEY is configured or the X-Admin-Key header matches it"""
    if not config.ADMIN_API_KEY:
        return True
    return x_admin_key == config.ADMIN_API_KEY
