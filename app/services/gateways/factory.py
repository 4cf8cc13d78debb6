"""
Gateway Factory
Creates and caches the chain, profile and content gateway instances
"""
from typing import Dict, Optional

from app.core import config
from app.services.gateways.base import ChainGateway, ContentGateway, ProfileGateway
from app.services.gateways.chain import Web3ChainGateway
from app.services.gateways.zora import ZoraClient, ZoraContentGateway, ZoraProfileGateway


class GatewayFactory:
    """
    Factory for the gateways the lifecycle services depend on.
    Instances are cached; register_* replaces them (tests, alternative providers).
    """

    _instances: Dict[str, object] = {}

    @classmethod
    def _zora_client(cls) -> ZoraClient:
        return ZoraClient(
            base_url=config.ZORA_API_BASE_URL,
            api_key=config.ZORA_API_KEY,
            timeout=config.settings.external_call_timeout_seconds
        )

    @classmethod
    def get_chain_gateway(cls) -> ChainGateway:
        if "chain" not in cls._instances:
            cls._instances["chain"] = Web3ChainGateway(
                config.CHAIN_RPC_URL,
                request_timeout=config.settings.external_call_timeout_seconds
            )
        return cls._instances["chain"]

    @classmethod
    def get_profile_gateway(cls) -> ProfileGateway:
        if "profile" not in cls._instances:
            cls._instances["profile"] = ZoraProfileGateway(cls._zora_client())
        return cls._instances["profile"]

    @classmethod
    def get_content_gateway(cls) -> ContentGateway:
        if "content" not in cls._instances:
            cls._instances["content"] = ZoraContentGateway(
                cls._zora_client(),
                content_tag=config.settings.content_tag
            )
        return cls._instances["content"]

    @classmethod
    def register_gateways(
        cls,
        chain: Optional[ChainGateway] = None,
        profile: Optional[ProfileGateway] = None,
        content: Optional[ContentGateway] = None
    ):
        """Install specific gateway instances"""
        if chain is not None:
            cls._instances["chain"] = chain
        if profile is not None:
            cls._instances["profile"] = profile
        if content is not None:
            cls._instances["content"] = content

    @classmethod
    def clear_cache(cls):
        """Clear all cached gateway instances"""
        cls._instances.clear()
