"""
Base Gateways
Abstract classes for the external systems the contest lifecycle observes
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, List, Optional, TypeVar, Union
from dataclasses import dataclass
from datetime import datetime

from app.core.errors import GatewayError
from app.models.contest.profile import ZoraProfileData

T = TypeVar("T")

BlockIdentifier = Union[int, str]


@dataclass
class DepositEvent:
    """A TokensDeposited log attributed to a creator wallet"""
    creator: str
    tx_hash: str
    block_number: int
    log_index: int = 0
    coin_address: Optional[str] = None
    amount: Optional[int] = None


@dataclass
class ContentSubmission:
    """Result of looking for a participant's qualifying post"""
    found: bool
    url: Optional[str] = None
    timestamp: Optional[datetime] = None
    verified: bool = False
    content_hash: Optional[str] = None


async def call_with_timeout(awaitable: Awaitable[T], timeout: float, gateway: str) -> T:
    """
    Await an external call, bounding it by timeout.

    Timeouts and unexpected failures both surface as GatewayError.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except GatewayError:
        raise
    except asyncio.TimeoutError:
        raise GatewayError(f"{gateway} call timed out after {timeout}s", gateway=gateway)
    except Exception as e:
        raise GatewayError(f"{gateway} call failed: {str(e)}", gateway=gateway)


class ChainGateway(ABC):
    """Reads deposit events from the chain"""

    gateway_id: str = "chain"

    @abstractmethod
    async def get_latest_block(self) -> int:
        pass

    @abstractmethod
    async def get_deposit_events(
        self,
        contract_address: str,
        wallet_address: str,
        from_block: int,
        to_block: BlockIdentifier = "latest"
    ) -> List[DepositEvent]:
        """
        Deposit events for wallet_address at contract_address, oldest first.

        Raises:
            GatewayError: the RPC lookup failed
        """
        pass


class ProfileGateway(ABC):
    """Resolves a wallet or handle to profile metadata"""

    gateway_id: str = "profile"

    @abstractmethod
    async def fetch(self, identifier: str) -> Optional[ZoraProfileData]:
        """Profile data, or None when no profile exists"""
        pass


class ContentGateway(ABC):
    """Finds a participant's contest post"""

    gateway_id: str = "content"

    @abstractmethod
    async def check_submission(
        self,
        wallet_address: str,
        contest_id: str,
        since: Optional[datetime] = None,
        identifier: Optional[str] = None,
        until: Optional[datetime] = None
    ) -> ContentSubmission:
        """
        Look for the participant's earliest qualifying post made in [since, until].

        Raises:
            GatewayError: the content source could not be queried
        """
        pass


def describe_error(error: Any) -> str:
    if isinstance(error, GatewayError):
        return f"{error.gateway}: {error.message}"
    return str(error)
