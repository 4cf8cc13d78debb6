import asyncio
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from app.core.config import LifecycleSettings
from app.core.errors import ConflictError, InvalidTransitionError, NotFoundError
from app.models.contest.audit import AuditTrigger, StatusChange
from app.models.contest.contest import (
    ACTIVE_STATUSES,
    Contest,
    ContestCreate,
    ContestMetrics,
    ContestStatus,
    ContentRecord,
    DepositRecord,
    Participant,
    ParticipantInput,
    is_terminal,
)
from app.models.contest.profile import ZoraProfileData
from app.services.gateways.base import ProfileGateway, call_with_timeout
from app.services.store.base import ContestStore


class ContestService:
    """Contest creation, lookup and admin operations"""

    def __init__(
        self,
        store: ContestStore,
        profile_gateway: Optional[ProfileGateway] = None,
        settings: Optional[LifecycleSettings] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.store = store
        self.profile_gateway = profile_gateway
        self.settings = settings or LifecycleSettings()
        self.clock = clock

    @staticmethod
    def generate_slug(name: str) -> str:
        """Generate URL-friendly slug from a contest name"""
        slug = name.lower()
        slug = re.sub(r'[^\w\s-]', '', slug)
        slug = re.sub(r'[-\s]+', '-', slug)
        slug = slug.strip('-')

        if len(slug) > 100:
            slug = slug[:100].rstrip('-')

        return slug or "contest"

    @classmethod
    def generate_contest_id(cls, name: str, created_at: datetime) -> str:
        millis = int((created_at - datetime(1970, 1, 1)).total_seconds() * 1000)
        return f"{cls.generate_slug(name)}-{millis}"

    async def _fetch_profile(self, participant: ParticipantInput) -> Optional[ZoraProfileData]:
        """Best-effort profile lookup; any failure leaves the profile empty"""
        if self.profile_gateway is None:
            return None

        identifier = participant.zora_profile or participant.wallet_address
        try:
            return await call_with_timeout(
                self.profile_gateway.fetch(identifier),
                self.settings.external_call_timeout_seconds,
                gateway=self.profile_gateway.gateway_id
            )
        except Exception as e:
            print(f"[WARN] Profile fetch failed for {participant.handle} ({identifier}): {str(e)}")
            return None

    async def create_contest(self, contest_data: ContestCreate) -> Contest:
        """
        Create a new contest in awaiting_deposits.

        Raises:
            ConflictError: another contest is still active. Checked up front and
                again atomically by the store on insert.
        """
        existing = await self.get_active_contest()
        if existing:
            raise ConflictError(
                f"Contest {existing.contest_id} is still {existing.status.value}",
                contest_id=existing.contest_id
            )

        profile_one, profile_two = await asyncio.gather(
            self._fetch_profile(contest_data.participant_one),
            self._fetch_profile(contest_data.participant_two)
        )

        now = self.clock()
        wallet_one = contest_data.participant_one.wallet_address
        wallet_two = contest_data.participant_two.wallet_address

        deposit_deadline = None
        if self.settings.deposit_window_minutes:
            deposit_deadline = now + timedelta(minutes=self.settings.deposit_window_minutes)

        contest = Contest(
            contest_id=self.generate_contest_id(contest_data.name, now),
            name=contest_data.name,
            status=ContestStatus.AWAITING_DEPOSITS,
            participant_one=Participant(
                **contest_data.participant_one.model_dump(),
                profile_data=profile_one
            ),
            participant_two=Participant(
                **contest_data.participant_two.model_dump(),
                profile_data=profile_two
            ),
            contract_address=contest_data.contract_address,
            created_at=now,
            updated_at=now,
            deposit_deadline=deposit_deadline,
            deposits={
                wallet_one: DepositRecord(),
                wallet_two: DepositRecord(),
            },
            content_posts={
                wallet_one: ContentRecord(),
                wallet_two: ContentRecord(),
            },
        )
        contest.history.append(
            StatusChange(
                to_status=ContestStatus.AWAITING_DEPOSITS.value,
                trigger=AuditTrigger.CREATED.value,
                at=now
            )
        )

        await self.store.insert(contest)
        print(f"[CONTEST] Created contest {contest.contest_id}: "
              f"{contest.participant_one.handle} vs {contest.participant_two.handle}")
        return contest

    async def get_active_contest(self) -> Optional[Contest]:
        """The active contest, newest first if the store somehow holds several"""
        active = await self.store.list_by_status(ACTIVE_STATUSES)
        if not active:
            return None
        return max(active, key=lambda c: c.created_at)

    async def get_contest(self, contest_id: str) -> Contest:
        contest = await self.store.get(contest_id)
        if contest is None:
            raise NotFoundError(f"Contest {contest_id} not found", contest_id=contest_id)
        return contest

    async def list_contests(self) -> List[Contest]:
        return await self.store.list_all()

    async def resolve_contest(self, contest_id: Optional[str] = None) -> Contest:
        """Contest by id, or the active contest when no id is given"""
        if contest_id:
            return await self.get_contest(contest_id)
        contest = await self.get_active_contest()
        if contest is None:
            raise NotFoundError("No active contest found")
        return contest

    async def set_status(self, contest_id: str, status: ContestStatus) -> Contest:
        """
        Admin override of a contest's status.

        Any move out of completed/forfeited is rejected. Deadlines the target
        status relies on are filled in when missing.
        """
        target = ContestStatus(status)
        contest = await self.get_contest(contest_id)

        if is_terminal(contest.status):
            raise InvalidTransitionError(
                f"Contest {contest_id} is {contest.status.value} and can no longer change status",
                contest_id=contest_id
            )
        if contest.status == target:
            return contest

        now = self.clock()
        if target == ContestStatus.AWAITING_CONTENT and contest.content_deadline is None:
            contest.content_deadline = now + timedelta(minutes=self.settings.content_window_minutes)
        if target == ContestStatus.ACTIVE_BATTLE:
            contest.battle_start_time = contest.battle_start_time or now
            if contest.battle_end_time is None:
                contest.battle_end_time = now + timedelta(hours=self.settings.battle_duration_hours)

        previous = contest.status
        contest.record_transition(target, now, AuditTrigger.ADMIN_OVERRIDE.value)
        contest.updated_at = now
        await self.store.put(contest)

        print(f"[CONTEST] Admin override: {contest_id} {previous.value} -> {target.value}")
        return contest

    async def update_metrics(
        self,
        contest_id: str,
        participant_one_votes: int,
        participant_two_votes: int
    ) -> Contest:
        """Store vote counters; lifecycle fields are untouched"""
        contest = await self.get_contest(contest_id)
        now = self.clock()
        contest.metrics = ContestMetrics(
            participant_one_votes=participant_one_votes,
            participant_two_votes=participant_two_votes,
            last_updated=now
        )
        contest.updated_at = now
        await self.store.put(contest)
        return contest

