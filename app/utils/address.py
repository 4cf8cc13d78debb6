"""
Wallet address helpers.

Wallet addresses are the join key across a contest. They are stored in
EIP-55 checksum form and always compared case-insensitively.
"""
import re
from typing import Mapping, Optional, TypeVar
from web3 import Web3

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

T = TypeVar("T")


def normalize_address(value: str) -> str:
    """Validate a hex address and return its checksum form"""
    if not isinstance(value, str):
        raise ValueError("Address must be a string")
    candidate = value.strip()
    if not ADDRESS_PATTERN.match(candidate):
        raise ValueError(f"Invalid wallet address: {value}")
    return Web3.to_checksum_address(candidate.lower())


def same_address(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return left.lower() == right.lower()


def find_by_address(records: Mapping[str, T], address: str) -> Optional[T]:
    """Look up a wallet-keyed mapping without caring about key casing"""
    if address in records:
        return records[address]
    for key, value in records.items():
        if same_address(key, address):
            return value
    return None

