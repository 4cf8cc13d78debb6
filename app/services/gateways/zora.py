"""
Zora Gateways
Profile lookups and contest post detection against the Zora public API
"""
import httpx
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.errors import GatewayError
from app.models.contest.profile import (
    CreatorCoin,
    ProfileAvatar,
    SocialAccounts,
    ZoraProfileData,
)
from app.services.gateways.base import ContentGateway, ContentSubmission, ProfileGateway

ZORA_COIN_URL = "https://zora.co/coin/base:{address}"


def _social_handle(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("username") or value.get("displayName")
    return value


def _linked_wallets(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, dict):
        value = [edge.get("node", {}) for edge in value.get("edges", [])]
    wallets = []
    for item in value:
        address = item.get("walletAddress") if isinstance(item, dict) else item
        if address:
            wallets.append(address)
    return wallets


def parse_zora_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp into naive UTC"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def map_zora_profile(profile: Dict[str, Any]) -> ZoraProfileData:
    """Map a Zora profile payload onto ZoraProfileData"""
    avatar = profile.get("avatar")
    socials = profile.get("socialAccounts")
    coin = profile.get("creatorCoin")
    public_wallet = profile.get("publicWallet") or {}

    return ZoraProfileData(
        id=profile.get("id"),
        handle=profile.get("handle"),
        display_name=profile.get("displayName"),
        bio=profile.get("bio"),
        username=profile.get("username"),
        website=profile.get("website"),
        avatar=ProfileAvatar(
            small=avatar.get("small"),
            medium=avatar.get("medium"),
            blurhash=avatar.get("blurhash")
        ) if avatar else None,
        public_wallet=public_wallet.get("walletAddress"),
        social_accounts=SocialAccounts(
            instagram=_social_handle(socials.get("instagram")),
            tiktok=_social_handle(socials.get("tiktok")),
            twitter=_social_handle(socials.get("twitter")),
            farcaster=_social_handle(socials.get("farcaster"))
        ) if socials else None,
        linked_wallets=_linked_wallets(profile.get("linkedWallets")),
        creator_coin=CreatorCoin(
            address=coin.get("address"),
            market_cap=coin.get("marketCap"),
            market_cap_delta_24h=coin.get("marketCapDelta24h")
        ) if coin else None
    )


class ZoraClient:
    """Shared HTTP plumbing for the Zora API"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["api-key"] = self.api_key
        return headers

    async def get_json(self, path: str, params: Dict[str, Any], gateway: str) -> Optional[Dict[str, Any]]:
        """GET a Zora endpoint; None on 404, GatewayError on any other failure"""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    f"{self.base_url}{path}",
                    headers=self._get_headers(),
                    params=params
                )
        except httpx.HTTPError as e:
            raise GatewayError(f"Zora request to {path} failed: {str(e)}", gateway=gateway)

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise GatewayError(
                f"Zora {path} returned HTTP {response.status_code}",
                gateway=gateway
            )
        return response.json()


class ZoraProfileGateway(ProfileGateway):
    gateway_id = "zora_profile"

    def __init__(self, client: ZoraClient):
        self.client = client

    async def fetch(self, identifier: str) -> Optional[ZoraProfileData]:
        payload = await self.client.get_json(
            "/profile",
            {"identifier": identifier},
            gateway=self.gateway_id
        )
        profile = (payload or {}).get("profile")
        if not profile:
            print(f"[WARN] No Zora profile found for identifier: {identifier}")
            return None
        return map_zora_profile(profile)


class ZoraContentGateway(ContentGateway):
    """
    Treats a coin created on Zora by the participant as their contest post.

    A post qualifies when it was created within [since, until] and its name or
    description carries the contest tag. The earliest qualifying coin wins.
    """

    gateway_id = "zora_content"

    def __init__(self, client: ZoraClient, content_tag: str = "blitzdotfun", page_size: int = 20):
        self.client = client
        self.content_tag = content_tag.lower().lstrip("#")
        self.page_size = page_size

    async def check_submission(
        self,
        wallet_address: str,
        contest_id: str,
        since: Optional[datetime] = None,
        identifier: Optional[str] = None,
        until: Optional[datetime] = None
    ) -> ContentSubmission:
        payload = await self.client.get_json(
            "/profileCoins",
            {"identifier": identifier or wallet_address, "count": self.page_size},
            gateway=self.gateway_id
        )
        profile = (payload or {}).get("profile") or {}
        edges = (profile.get("createdCoins") or {}).get("edges") or []

        # Zora lists newest first; the earliest qualifying coin is the post
        earliest = None
        earliest_at = None
        for edge in edges:
            coin = edge.get("node") or {}
            created_at = parse_zora_timestamp(coin.get("createdAt"))
            if since and (created_at is None or created_at < since):
                continue
            if until and created_at is not None and created_at > until:
                continue
            if not self._has_tag(coin):
                continue
            if earliest is None or (created_at is not None and (earliest_at is None or created_at < earliest_at)):
                earliest, earliest_at = coin, created_at

        if earliest is None:
            return ContentSubmission(found=False)

        address = earliest.get("address")
        return ContentSubmission(
            found=True,
            url=ZORA_COIN_URL.format(address=address) if address else None,
            timestamp=earliest_at,
            verified=True,
            content_hash=address
        )

    def _has_tag(self, coin: Dict[str, Any]) -> bool:
        if not self.content_tag:
            return True
        text = f"{coin.get('name') or ''} {coin.get('description') or ''}".lower()
        return self.content_tag in text
