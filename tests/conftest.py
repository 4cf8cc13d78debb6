import asyncio
import pytest
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from app.core.config import LifecycleSettings
from app.core.errors import GatewayError
from app.models.contest.contest import ContestCreate
from app.models.contest.profile import ZoraProfileData
from app.services.contest.contest import ContestService
from app.services.gateways.base import (
    ChainGateway,
    ContentGateway,
    ContentSubmission,
    DepositEvent,
    ProfileGateway,
)
from app.services.scheduler.contest_scheduler import ContestScheduler, TickTracker
from app.services.store.memory import InMemoryContestStore
from app.utils.address import normalize_address

WALLET_A = normalize_address("0x" + "aa" * 20)
WALLET_B = normalize_address("0x" + "bb" * 20)
WALLET_C = normalize_address("0x" + "cc" * 20)
CONTRACT = normalize_address("0x" + "dd" * 20)

START = datetime(2025, 6, 1, 12, 0, 0)
LATEST_BLOCK = 1_000_000


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


class FakeClock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeChainGateway(ChainGateway):
    gateway_id = "fake_chain"

    def __init__(self, latest_block: int = LATEST_BLOCK):
        self.latest_block = latest_block
        self.events: Dict[str, List[DepositEvent]] = {}
        self.fail_wallets = set()
        self.fail_latest = False
        self.calls = []

    def add_deposit(self, wallet: str, tx: str, block_number: int, log_index: int = 0):
        self.events.setdefault(wallet.lower(), []).append(
            DepositEvent(creator=wallet, tx_hash=tx, block_number=block_number, log_index=log_index)
        )

    async def get_latest_block(self) -> int:
        await asyncio.sleep(0)
        if self.fail_latest:
            raise GatewayError("rpc unavailable", gateway=self.gateway_id)
        return self.latest_block

    async def get_deposit_events(self, contract_address, wallet_address, from_block, to_block="latest"):
        await asyncio.sleep(0)
        self.calls.append((contract_address, wallet_address, from_block))
        if wallet_address.lower() in self.fail_wallets:
            raise GatewayError("eth_getLogs failed", gateway=self.gateway_id)
        return [
            event for event in self.events.get(wallet_address.lower(), [])
            if event.block_number >= from_block
        ]


class FakeContentGateway(ContentGateway):
    gateway_id = "fake_content"

    def __init__(self):
        self.posts: Dict[str, ContentSubmission] = {}
        self.fail_wallets = set()
        self.calls = []
        self.lookups = []

    def add_post(self, wallet: str, timestamp: Optional[datetime] = None, url: Optional[str] = None):
        self.posts[wallet.lower()] = ContentSubmission(
            found=True,
            url=url or f"https://zora.co/coin/base:{wallet.lower()}",
            timestamp=timestamp,
            verified=True,
            content_hash=wallet.lower()
        )

    async def check_submission(self, wallet_address, contest_id, since=None, identifier=None, until=None):
        await asyncio.sleep(0)
        self.calls.append((wallet_address, contest_id, since))
        self.lookups.append((identifier, until))
        if wallet_address.lower() in self.fail_wallets:
            raise GatewayError("zora unavailable", gateway=self.gateway_id)
        return self.posts.get(wallet_address.lower(), ContentSubmission(found=False))


class FakeProfileGateway(ProfileGateway):
    gateway_id = "fake_profile"

    def __init__(self):
        self.profiles: Dict[str, ZoraProfileData] = {}
        self.fail = False
        self.calls = []

    async def fetch(self, identifier: str) -> Optional[ZoraProfileData]:
        self.calls.append(identifier)
        if self.fail:
            raise GatewayError("profile lookup failed", gateway=self.gateway_id)
        return self.profiles.get(identifier.lower())


def make_contest_create(name: str = "Alice vs Bob", wallet_one: str = WALLET_A, wallet_two: str = WALLET_B) -> ContestCreate:
    return ContestCreate(
        name=name,
        participant_one={"handle": "alice", "wallet_address": wallet_one, "zora_profile": "alice"},
        participant_two={"handle": "bob", "wallet_address": wallet_two},
        contract_address=CONTRACT
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return LifecycleSettings(content_tag="blitzdotfun")


@pytest.fixture
def store():
    return InMemoryContestStore()


@pytest.fixture
def chain():
    return FakeChainGateway()


@pytest.fixture
def content():
    return FakeContentGateway()


@pytest.fixture
def profiles():
    return FakeProfileGateway()


@pytest.fixture
def contest_service(store, profiles, settings, clock):
    return ContestService(store, profile_gateway=profiles, settings=settings, clock=clock)


@pytest.fixture
def contest_scheduler(store, chain, content, settings, clock):
    return ContestScheduler(
        store,
        chain,
        content,
        settings=settings,
        clock=clock,
        tracker=TickTracker(),
        max_tick_duration_seconds=25
    )
