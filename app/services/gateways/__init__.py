"""
External system gateways: chain RPC, Zora profiles, Zora content.
"""
from app.services.gateways.base import (
    ChainGateway,
    ContentGateway,
    ContentSubmission,
    DepositEvent,
    ProfileGateway,
    call_with_timeout,
)
from app.services.gateways.factory import GatewayFactory

__all__ = [
    "ChainGateway",
    "ContentGateway",
    "ContentSubmission",
    "DepositEvent",
    "ProfileGateway",
    "call_with_timeout",
    "GatewayFactory",
]
