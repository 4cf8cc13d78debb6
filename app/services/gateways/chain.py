"""
Web3 Chain Gateway
Reads TokensDeposited events from the battle contract over JSON-RPC
"""
import asyncio
from typing import Any, Dict, List, Optional
from hexbytes import HexBytes
from web3 import Web3

from app.core.errors import GatewayError
from app.services.gateways.base import BlockIdentifier, ChainGateway, DepositEvent

TOKENS_DEPOSITED_SIGNATURE = "TokensDeposited(address,address,uint256)"
TOKENS_DEPOSITED_TOPIC = Web3.to_hex(Web3.keccak(text=TOKENS_DEPOSITED_SIGNATURE))


def address_topic(address: str) -> str:
    """Left-pad an address to a 32-byte indexed topic"""
    return "0x" + "0" * 24 + address.lower().replace("0x", "")


def topic_to_address(topic: Any) -> str:
    raw = bytes(HexBytes(topic))
    return Web3.to_checksum_address(raw[-20:])


def decode_deposit_log(log: Dict[str, Any]) -> DepositEvent:
    """Turn a raw TokensDeposited log into a DepositEvent"""
    topics = log.get("topics") or []
    if len(topics) < 2:
        raise ValueError("TokensDeposited log is missing indexed topics")

    data = bytes(HexBytes(log.get("data") or b""))
    amount = int.from_bytes(data[:32], "big") if data else None

    return DepositEvent(
        creator=topic_to_address(topics[1]),
        coin_address=topic_to_address(topics[2]) if len(topics) > 2 else None,
        amount=amount,
        tx_hash=Web3.to_hex(HexBytes(log["transactionHash"])),
        block_number=int(log["blockNumber"]),
        log_index=int(log.get("logIndex") or 0)
    )


class Web3ChainGateway(ChainGateway):
    """
    Chain gateway over a blocking Web3 HTTP provider.

    RPC calls run in a worker thread so the event loop stays free. Wide
    ranges are scanned in chunks of max_block_range.
    """

    gateway_id = "web3"

    def __init__(self, rpc_url: str, max_block_range: int = 10_000, request_timeout: float = 10.0):
        self.rpc_url = rpc_url
        self.max_block_range = max_block_range
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))

    async def get_latest_block(self) -> int:
        try:
            return await asyncio.to_thread(lambda: int(self.w3.eth.block_number))
        except Exception as e:
            raise GatewayError(f"Failed to read latest block: {str(e)}", gateway=self.gateway_id)

    async def get_deposit_events(
        self,
        contract_address: str,
        wallet_address: str,
        from_block: int,
        to_block: BlockIdentifier = "latest"
    ) -> List[DepositEvent]:
        end_block = await self.get_latest_block() if to_block == "latest" else int(to_block)
        try:
            logs = await asyncio.to_thread(
                self._scan_logs,
                Web3.to_checksum_address(contract_address),
                wallet_address,
                max(0, int(from_block)),
                end_block
            )
        except Exception as e:
            raise GatewayError(
                f"eth_getLogs failed for {wallet_address} at {contract_address}: {str(e)}",
                gateway=self.gateway_id
            )

        events = [decode_deposit_log(log) for log in logs]
        events.sort(key=lambda event: (event.block_number, event.log_index))
        return events

    def _scan_logs(
        self,
        contract_address: str,
        wallet_address: str,
        from_block: int,
        end_block: int,
        batch_size: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        batch_size = batch_size or self.max_block_range
        topics = [TOKENS_DEPOSITED_TOPIC, address_topic(wallet_address)]
        logs: List[Dict[str, Any]] = []

        current = from_block
        while current <= end_block:
            batch_to = min(current + batch_size - 1, end_block)
            logs.extend(self.w3.eth.get_logs({
                "address": contract_address,
                "fromBlock": current,
                "toBlock": batch_to,
                "topics": topics
            }))
            current = batch_to + 1
        return logs
