"""
Zora Profile Models
Subset of the Zora profile payload kept on a contest participant
"""
from pydantic import BaseModel
from typing import Optional, List


class ProfileAvatar(BaseModel):
    small: Optional[str] = None
    medium: Optional[str] = None
    blurhash: Optional[str] = None


class SocialAccounts(BaseModel):
    instagram: Optional[str] = None
    tiktok: Optional[str] = None
    twitter: Optional[str] = None
    farcaster: Optional[str] = None


class CreatorCoin(BaseModel):
    address: Optional[str] = None
    market_cap: Optional[str] = None
    market_cap_delta_24h: Optional[str] = None


class ZoraProfileData(BaseModel):
    """Profile metadata fetched from Zora at contest creation"""
    id: Optional[str] = None
    handle: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    username: Optional[str] = None
    website: Optional[str] = None
    avatar: Optional[ProfileAvatar] = None
    public_wallet: Optional[str] = None
    social_accounts: Optional[SocialAccounts] = None
    linked_wallets: List[str] = []
    creator_coin: Optional[CreatorCoin] = None
