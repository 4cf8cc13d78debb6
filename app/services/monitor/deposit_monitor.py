"""
Deposit Monitor
Detects participant deposits on-chain and opens the content window once both
deposits are in.
"""
import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.core.config import LifecycleSettings
from app.core.errors import GatewayError
from app.models.contest.audit import AuditTrigger
from app.models.contest.contest import Contest, ContestStatus
from app.services.gateways.base import ChainGateway, call_with_timeout, describe_error
from app.services.monitor.base import ContestCheck, ContestMonitor
from app.services.store.base import ContestStore
from app.utils.address import same_address


def estimate_from_block(
    latest_block: int,
    created_at: datetime,
    now: datetime,
    average_block_time_seconds: float = 2.0,
    margin_blocks: int = 0
) -> int:
    """
    First block to scan for a contest's deposits.

    Converts time since creation into blocks and widens the range by
    margin_blocks so block-time drift errs towards scanning earlier.
    """
    elapsed = max(0.0, (now - created_at).total_seconds())
    blocks_back = math.ceil(elapsed / average_block_time_seconds) + margin_blocks
    return max(0, latest_block - blocks_back)


class DepositMonitor(ContestMonitor):
    name = "deposits"
    log_tag = "[DEPOSITS]"
    watched_status = ContestStatus.AWAITING_DEPOSITS

    def __init__(
        self,
        store: ContestStore,
        chain_gateway: ChainGateway,
        settings: Optional[LifecycleSettings] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        super().__init__(store, settings, clock)
        self.chain_gateway = chain_gateway

    async def latest_block(self) -> int:
        return await call_with_timeout(
            self.chain_gateway.get_latest_block(),
            self.settings.external_call_timeout_seconds,
            gateway=self.chain_gateway.gateway_id
        )

    async def check_contest(self, contest: Contest, now: datetime) -> ContestCheck:
        check = ContestCheck()
        from_block = None

        for participant in contest.participants:
            record = contest.deposit_for(participant.wallet_address)
            if record.detected:
                continue

            try:
                if from_block is None:
                    latest_block = await self.latest_block()
                    from_block = estimate_from_block(
                        latest_block,
                        contest.created_at,
                        now,
                        self.settings.average_block_time_seconds,
                        self.settings.block_scan_margin
                    )
                events = await call_with_timeout(
                    self.chain_gateway.get_deposit_events(
                        contest.contract_address,
                        participant.wallet_address,
                        from_block
                    ),
                    self.settings.external_call_timeout_seconds,
                    gateway=self.chain_gateway.gateway_id
                )
            except GatewayError as e:
                print(f"[WARN] {self.log_tag} Deposit lookup failed for {participant.handle} "
                      f"in {contest.contest_id}: {describe_error(e)}")
                check.errors.append(describe_error(e))
                continue

            events = [event for event in events if same_address(event.creator, participant.wallet_address)]
            if not events:
                continue

            # Most recent deposit wins when several match
            event = max(events, key=lambda item: (item.block_number, item.log_index))
            record.detected = True
            record.timestamp = now
            record.tx_hash = event.tx_hash
            record.block_number = event.block_number
            check.detected.append(participant.handle)
            print(f"{self.log_tag} Deposit detected for {participant.handle} in {contest.contest_id} "
                  f"(tx {event.tx_hash}, block {event.block_number})")

        if contest.status == ContestStatus.AWAITING_DEPOSITS and contest.all_deposits_received():
            contest.content_deadline = now + timedelta(minutes=self.settings.content_window_minutes)
            contest.record_transition(
                ContestStatus.AWAITING_CONTENT,
                now,
                AuditTrigger.DEPOSITS_DETECTED.value,
                metadata={"content_deadline": contest.content_deadline.isoformat()}
            )
            check.transition = ContestStatus.AWAITING_CONTENT.value

        return check

    async def run_deposit_monitoring(self):
        """One pass over all awaiting_deposits contests"""
        return await self.run()
