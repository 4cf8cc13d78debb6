"""
Content Monitor
Detects contest posts during the content window. Both posts in time start
the battle; a passed deadline with any post missing forfeits the contest.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.core.config import LifecycleSettings
from app.core.errors import GatewayError
from app.models.contest.audit import AuditTrigger
from app.models.contest.contest import Contest, ContestStatus
from app.services.gateways.base import ContentGateway, call_with_timeout, describe_error
from app.services.monitor.base import ContestCheck, ContestMonitor
from app.services.store.base import ContestStore


class ContentMonitor(ContestMonitor):
    name = "content"
    log_tag = "[CONTENT]"
    watched_status = ContestStatus.AWAITING_CONTENT

    def __init__(
        self,
        store: ContestStore,
        content_gateway: ContentGateway,
        settings: Optional[LifecycleSettings] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        super().__init__(store, settings, clock)
        self.content_gateway = content_gateway

    def content_deadline_for(self, contest: Contest) -> datetime:
        if contest.content_deadline is not None:
            return contest.content_deadline
        # Admin-forced contests may lack a deadline
        return contest.created_at + timedelta(minutes=self.settings.content_window_minutes)

    async def check_contest(self, contest: Contest, now: datetime) -> ContestCheck:
        check = ContestCheck()
        deadline = self.content_deadline_for(contest)

        for participant in contest.participants:
            record = contest.content_for(participant.wallet_address)
            if record.detected:
                continue

            try:
                submission = await call_with_timeout(
                    self.content_gateway.check_submission(
                        participant.wallet_address,
                        contest.contest_id,
                        since=contest.created_at,
                        identifier=participant.zora_profile or participant.handle,
                        until=deadline
                    ),
                    self.settings.external_call_timeout_seconds,
                    gateway=self.content_gateway.gateway_id
                )
            except GatewayError as e:
                print(f"[WARN] {self.log_tag} Content lookup failed for {participant.handle} "
                      f"in {contest.contest_id}: {describe_error(e)}")
                check.errors.append(describe_error(e))
                continue

            if not submission.found:
                continue

            posted_at = submission.timestamp or now
            if posted_at > deadline:
                print(f"{self.log_tag} Ignoring late post by {participant.handle} in {contest.contest_id} "
                      f"({posted_at.isoformat()} after {deadline.isoformat()})")
                continue

            record.detected = True
            record.verified = submission.verified
            record.timestamp = posted_at
            record.zora_post_url = submission.url
            record.content_hash = submission.content_hash
            check.detected.append(participant.handle)
            print(f"{self.log_tag} Content detected for {participant.handle} in {contest.contest_id}")

        if contest.all_content_submitted():
            contest.battle_start_time = now
            contest.battle_end_time = now + timedelta(hours=self.settings.battle_duration_hours)
            contest.record_transition(
                ContestStatus.ACTIVE_BATTLE,
                now,
                AuditTrigger.CONTENT_DETECTED.value,
                metadata={"battle_end_time": contest.battle_end_time.isoformat()}
            )
            check.transition = ContestStatus.ACTIVE_BATTLE.value
        elif now > deadline:
            missing = [
                p.handle for p in contest.participants
                if not contest.content_for(p.wallet_address).detected
            ]
            contest.record_transition(
                ContestStatus.FORFEITED,
                now,
                AuditTrigger.CONTENT_DEADLINE_MISSED.value,
                metadata={"missing_content": missing}
            )
            check.transition = ContestStatus.FORFEITED.value
            print(f"[WARN] {self.log_tag} Contest {contest.contest_id} forfeited, missing content from: "
                  f"{', '.join(missing)}")

        return check

    async def run_content_monitoring(self):
        """One pass over all awaiting_content contests"""
        return await self.run()
