"""
Contest Monitor base

A monitoring pass reads every contest in one status from the store, checks
each one independently (bounded parallelism across contests, sequential
within a contest) and writes a contest back only when the check changed it.
Gateway and persistence failures are contained to the contest they hit.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.core.config import LifecycleSettings
from app.core.errors import PersistenceError, StaleWriteError
from app.models.contest.contest import Contest, ContestStatus
from app.services.store.base import ContestStore


@dataclass
class ContestCheck:
    """Outcome of checking one contest"""
    detected: List[str] = field(default_factory=list)
    transition: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.detected or self.transition)


def empty_results() -> Dict[str, Any]:
    return {
        "processed": 0,
        "detected": [],
        "transitioned": [],
        "errors": []
    }


class ContestMonitor(ABC):
    """Shared pass mechanics for the deposit and content monitors"""

    name: str = "monitor"
    log_tag: str = "[MONITOR]"
    watched_status: ContestStatus = ContestStatus.AWAITING_DEPOSITS

    def __init__(
        self,
        store: ContestStore,
        settings: Optional[LifecycleSettings] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.store = store
        self.settings = settings or LifecycleSettings()
        self.clock = clock

    @abstractmethod
    async def check_contest(self, contest: Contest, now: datetime) -> ContestCheck:
        """Check one contest, mutating it in place; the caller persists it when changed"""
        pass

    async def run(self) -> Dict[str, Any]:
        """Run one monitoring pass over all contests in watched_status"""
        results = empty_results()

        try:
            contests = await self.store.list_by_status([self.watched_status])
        except PersistenceError as e:
            print(f"[ERROR] {self.log_tag} Could not list {self.watched_status.value} contests: {e.message}")
            results["errors"].append({"error": e.message})
            return results

        if not contests:
            print(f"{self.log_tag} No {self.watched_status.value} contests to monitor")
            return results

        print(f"{self.log_tag} Monitoring {len(contests)} {self.watched_status.value} contests")

        semaphore = asyncio.Semaphore(max(1, self.settings.monitor_concurrency))

        async def guarded(contest: Contest):
            async with semaphore:
                await self._process_contest(contest, results)

        await asyncio.gather(*(guarded(contest) for contest in contests))
        return results

    async def _process_contest(self, contest: Contest, results: Dict[str, Any]) -> None:
        contest_id = contest.contest_id
        try:
            now = self.clock()
            check = await self.check_contest(contest, now)

            for error in check.errors:
                results["errors"].append({"contest_id": contest_id, "error": error})

            if check.changed:
                contest.updated_at = now
                await self.store.put(contest)

                for handle in check.detected:
                    results["detected"].append({"contest_id": contest_id, "participant": handle})
                if check.transition:
                    results["transitioned"].append({
                        "contest_id": contest_id,
                        "status": check.transition
                    })
                    print(f"{self.log_tag} Contest {contest_id} moved to {check.transition}")

            results["processed"] += 1

        except StaleWriteError as e:
            print(f"[WARN] {self.log_tag} Skipped stale write for {contest_id}, retrying next tick: {e.message}")
            results["errors"].append({"contest_id": contest_id, "error": e.message})
        except PersistenceError as e:
            print(f"[ERROR] {self.log_tag} Failed to persist contest {contest_id}: {e.message}")
            results["errors"].append({"contest_id": contest_id, "error": e.message})
        except Exception as e:
            print(f"[ERROR] {self.log_tag} Error checking contest {contest_id}: {str(e)}")
            results["errors"].append({"contest_id": contest_id, "error": str(e)})
