"""
Contest Scheduler Service

Drives the contest lifecycle one tick at a time:
- Deposits: AWAITING_DEPOSITS -> AWAITING_CONTENT when both deposits land
- Content: AWAITING_CONTENT -> ACTIVE_BATTLE, or FORFEITED past the deadline
- Battles: ACTIVE_BATTLE -> COMPLETED once battle_end_time has passed

Stages run in that order and each re-reads the store, so a deposit written
in the first stage is durable before the content stage looks at the contest.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.core import config
from app.core.config import LifecycleSettings
from app.core.errors import GatewayError, PersistenceError, StaleWriteError
from app.models.contest.audit import AuditTrigger
from app.models.contest.contest import ContestStatus
from app.services.gateways.base import ChainGateway, ContentGateway, describe_error
from app.services.gateways.factory import GatewayFactory
from app.services.monitor.content_monitor import ContentMonitor
from app.services.monitor.deposit_monitor import DepositMonitor
from app.services.store.base import ContestStore


class TickTracker:
    """Tracks in-flight ticks so the scheduler can detect overruns"""

    def __init__(self):
        self.in_flight: Dict[int, datetime] = {}
        self.last_started_at: Optional[datetime] = None
        self.last_completed_at: Optional[datetime] = None
        self.last_duration_seconds: Optional[float] = None
        self.skipped: int = 0
        self._next_token = 0

    def begin(self, now: datetime) -> int:
        self._next_token += 1
        self.in_flight[self._next_token] = now
        self.last_started_at = now
        return self._next_token

    def finish(self, token: int, now: datetime) -> None:
        started_at = self.in_flight.pop(token, None)
        self.last_completed_at = now
        if started_at is not None:
            self.last_duration_seconds = (now - started_at).total_seconds()

    def oldest_in_flight_seconds(self, now: datetime) -> Optional[float]:
        if not self.in_flight:
            return None
        return (now - min(self.in_flight.values())).total_seconds()

    def is_overdue(self, now: datetime, max_duration_seconds: float) -> bool:
        age = self.oldest_in_flight_seconds(now)
        return age is not None and age > max_duration_seconds

    def snapshot(self, now: datetime) -> Dict[str, Any]:
        return {
            "in_flight": len(self.in_flight),
            "oldest_in_flight_seconds": self.oldest_in_flight_seconds(now),
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_completed_at": self.last_completed_at.isoformat() if self.last_completed_at else None,
            "last_duration_seconds": self.last_duration_seconds,
            "skipped": self.skipped
        }


# Process-wide tracker shared by scheduled and cron-triggered ticks
tick_tracker = TickTracker()


class ContestScheduler:
    """
    Lifecycle orchestrator.

    tick() is safe to call repeatedly and concurrently: every mutation is
    idempotent and written with a version check, so an overlapping tick at
    worst loses a write and retries on the next run.
    """

    def __init__(
        self,
        store: ContestStore,
        chain_gateway: ChainGateway,
        content_gateway: ContentGateway,
        settings: Optional[LifecycleSettings] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        tracker: Optional[TickTracker] = None,
        max_tick_duration_seconds: float = config.MAX_TICK_DURATION_SECONDS
    ):
        self.store = store
        self.settings = settings or LifecycleSettings()
        self.clock = clock
        self.tracker = tracker or tick_tracker
        self.max_tick_duration_seconds = max_tick_duration_seconds
        self.deposit_monitor = DepositMonitor(store, chain_gateway, self.settings, clock)
        self.content_monitor = ContentMonitor(store, content_gateway, self.settings, clock)

    async def run_deposit_monitoring(self) -> Dict[str, Any]:
        return await self.deposit_monitor.run_deposit_monitoring()

    async def run_content_monitoring(self) -> Dict[str, Any]:
        return await self.content_monitor.run_content_monitoring()

    async def complete_expired_battles(self) -> Dict[str, Any]:
        """
        Complete battles whose battle_end_time has passed.

        Conditions:
        - status = ACTIVE_BATTLE
        - battle_end_time < now
        """
        results = {
            "processed": 0,
            "completed": [],
            "errors": []
        }

        try:
            battles = await self.store.list_by_status([ContestStatus.ACTIVE_BATTLE])
        except PersistenceError as e:
            print(f"[ERROR] [LIFECYCLE] Could not list active battles: {e.message}")
            results["errors"].append({"error": e.message})
            return results

        for contest in battles:
            contest_id = contest.contest_id
            now = self.clock()

            if contest.battle_end_time is None:
                print(f"[WARN] [LIFECYCLE] Active battle {contest_id} has no battle_end_time, skipping")
                continue
            if now <= contest.battle_end_time:
                continue

            try:
                contest.record_transition(
                    ContestStatus.COMPLETED,
                    now,
                    AuditTrigger.BATTLE_ENDED.value,
                    metadata={"battle_end_time": contest.battle_end_time.isoformat()}
                )
                contest.updated_at = now
                await self.store.put(contest)

                results["completed"].append({"contest_id": contest_id, "name": contest.name})
                results["processed"] += 1
                print(f"[LIFECYCLE] Battle completed: {contest_id} ({contest.name})")

            except StaleWriteError as e:
                print(f"[WARN] [LIFECYCLE] Skipped stale write for {contest_id}: {e.message}")
                results["errors"].append({"contest_id": contest_id, "error": e.message})
            except Exception as e:
                results["errors"].append({"contest_id": contest_id, "error": str(e)})
                print(f"[ERROR] Failed to complete battle {contest_id}: {str(e)}")

        return results

    async def tick(self) -> Dict[str, Any]:
        """
        Run one lifecycle cycle: deposits, then content, then battle expiry.

        A failing stage is logged and the remaining stages still run.
        """
        started_at = self.clock()
        token = self.tracker.begin(started_at)
        results: Dict[str, Any] = {
            "started_at": started_at.isoformat(),
            "deposits": None,
            "content": None,
            "battles": None,
            "errors": []
        }

        stages = [
            ("deposits", self.run_deposit_monitoring),
            ("content", self.run_content_monitoring),
            ("battles", self.complete_expired_battles),
        ]

        try:
            for stage, runner in stages:
                try:
                    results[stage] = await runner()
                except Exception as e:
                    print(f"[ERROR] [LIFECYCLE] {stage} stage failed: {str(e)}")
                    results["errors"].append({"stage": stage, "error": str(e)})
        finally:
            finished_at = self.clock()
            self.tracker.finish(token, finished_at)
            results["duration_seconds"] = (finished_at - started_at).total_seconds()

        return results

    async def monitoring_health_check(self) -> Dict[str, Any]:
        """
        Health of the monitoring loop.

        Unhealthy when the store or chain is unreachable, a tick has overrun,
        or contests sit past a deadline the last completed tick should have
        handled.
        """
        now = self.clock()
        overdue: List[Dict[str, Any]] = []

        try:
            store_ok = await self.store.ping()
        except Exception as e:
            print(f"[ERROR] [LIFECYCLE] Store health check failed: {str(e)}")
            store_ok = False

        if store_ok:
            try:
                contests = await self.store.list_by_status([
                    ContestStatus.AWAITING_CONTENT,
                    ContestStatus.ACTIVE_BATTLE
                ])
            except PersistenceError as e:
                print(f"[ERROR] [LIFECYCLE] Health check could not list contests: {e.message}")
                contests = []
                store_ok = False

            last_completed = self.tracker.last_completed_at
            for contest in contests:
                deadline = (
                    contest.content_deadline
                    if contest.status == ContestStatus.AWAITING_CONTENT
                    else contest.battle_end_time
                )
                if deadline and last_completed and deadline < last_completed:
                    overdue.append({
                        "contest_id": contest.contest_id,
                        "status": contest.status.value,
                        "deadline": deadline.isoformat()
                    })

        try:
            latest_block = await self.deposit_monitor.latest_block()
            chain_ok = True
        except GatewayError as e:
            print(f"[WARN] [LIFECYCLE] Chain health check failed: {describe_error(e)}")
            latest_block = None
            chain_ok = False

        tick_overdue = self.tracker.is_overdue(now, self.max_tick_duration_seconds)
        healthy = store_ok and chain_ok and not overdue and not tick_overdue

        return {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": now.isoformat(),
            "services": {
                "store": store_ok,
                "chain": chain_ok,
                "deposits": store_ok and chain_ok and not tick_overdue,
                "content": store_ok and not overdue
            },
            "latest_block": latest_block,
            "overdue_contests": overdue,
            "tick": self.tracker.snapshot(now)
        }


def create_contest_scheduler(store: ContestStore) -> ContestScheduler:
    """ContestScheduler wired to the configured gateways and settings"""
    return ContestScheduler(
        store,
        GatewayFactory.get_chain_gateway(),
        GatewayFactory.get_content_gateway(),
        settings=config.settings
    )
