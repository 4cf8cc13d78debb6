"""
Contest status projections.

Pure functions from a Contest (and the current time) to the response models
served to polling and streaming clients. Nothing here touches the store.
"""
from datetime import datetime
from typing import Dict, Optional, Tuple

from app.models.contest.contest import Contest, ContestStatus, Participant
from app.models.contest.status import (
    ContentStatus,
    ContestDeadlines,
    ContestProgress,
    ContestStatusResponse,
    DepositStatus,
    LightweightStatusResponse,
    ParticipantsStatus,
    ParticipantStatus,
    UserRole,
    UserSpecificStatusResponse,
    UserStatus,
)
from app.utils.address import same_address

# (status, deposit detected, content detected) -> next action for a participant
PARTICIPANT_ACTIONS: Dict[Tuple[ContestStatus, bool, bool], str] = {
    (ContestStatus.AWAITING_DEPOSITS, False, False): "Make your deposit",
    (ContestStatus.AWAITING_DEPOSITS, True, False): "Wait for opponent to deposit",
    (ContestStatus.AWAITING_CONTENT, False, False): "Deposit required before content submission",
    (ContestStatus.AWAITING_CONTENT, True, False): "Submit your content",
    (ContestStatus.AWAITING_CONTENT, True, True): "Wait for opponent to submit content",
}

STATUS_ACTIONS: Dict[ContestStatus, str] = {
    ContestStatus.AWAITING_DEPOSITS: "Wait for both creators to deposit",
    ContestStatus.AWAITING_CONTENT: "Wait for both creators to submit content",
    ContestStatus.ACTIVE_BATTLE: "Vote and engage with the battle",
    ContestStatus.COMPLETED: "Battle completed - view results",
    ContestStatus.FORFEITED: "Contest was forfeited",
}


def next_action_for(
    status: ContestStatus,
    deposit_detected: bool = False,
    content_detected: bool = False,
    role: UserRole = UserRole.SPECTATOR
) -> str:
    status = ContestStatus(status)
    if role != UserRole.SPECTATOR:
        action = PARTICIPANT_ACTIONS.get((status, bool(deposit_detected), bool(content_detected)))
        if action:
            return action
    return STATUS_ACTIONS[status]


def phase_deadline(contest: Contest) -> Optional[datetime]:
    """Deadline that ends the contest's current phase, if any"""
    if contest.status == ContestStatus.AWAITING_DEPOSITS:
        return contest.deposit_deadline
    if contest.status == ContestStatus.AWAITING_CONTENT:
        return contest.content_deadline
    if contest.status == ContestStatus.ACTIVE_BATTLE:
        return contest.battle_end_time
    return None


def time_remaining_seconds(contest: Contest, now: Optional[datetime] = None) -> Optional[int]:
    deadline = phase_deadline(contest)
    if deadline is None:
        return None
    now = now or datetime.utcnow()
    return max(0, int((deadline - now).total_seconds()))


def _participant_status(contest: Contest, participant: Participant) -> ParticipantStatus:
    deposit = contest.deposit_for(participant.wallet_address)
    content = contest.content_for(participant.wallet_address)
    return ParticipantStatus(
        handle=participant.handle,
        wallet_address=participant.wallet_address,
        deposit_status=DepositStatus(
            detected=deposit.detected,
            timestamp=deposit.timestamp,
            tx_hash=deposit.tx_hash
        ),
        content_status=ContentStatus(
            detected=content.detected,
            verified=content.verified,
            timestamp=content.timestamp,
            zora_post_url=content.zora_post_url
        )
    )


def _status_fields(contest: Contest, now: Optional[datetime]) -> dict:
    all_deposits = contest.all_deposits_received()
    all_content = contest.all_content_submitted()
    return {
        "contest_id": contest.contest_id,
        "name": contest.name,
        "status": contest.status,
        "participants": ParticipantsStatus(
            one=_participant_status(contest, contest.participant_one),
            two=_participant_status(contest, contest.participant_two)
        ),
        "progress": ContestProgress(
            all_deposits_received=all_deposits,
            all_content_submitted=all_content,
            ready_for_battle=all_deposits and all_content
        ),
        "deadlines": ContestDeadlines(
            deposit=contest.deposit_deadline,
            content=contest.content_deadline,
            battle_start=contest.battle_start_time,
            battle_end=contest.battle_end_time
        ),
        "time_remaining_seconds": time_remaining_seconds(contest, now),
        "created_at": contest.created_at,
        "last_updated": contest.updated_at,
    }


def full_status(contest: Contest, now: Optional[datetime] = None) -> ContestStatusResponse:
    return ContestStatusResponse(**_status_fields(contest, now))


def lightweight_status(contest: Contest) -> LightweightStatusResponse:
    return LightweightStatusResponse(
        contest_id=contest.contest_id,
        status=contest.status,
        all_deposits_received=contest.all_deposits_received(),
        all_content_submitted=contest.all_content_submitted(),
        last_updated=contest.updated_at
    )


def role_for(contest: Contest, wallet_address: Optional[str]) -> UserRole:
    if same_address(contest.participant_one.wallet_address, wallet_address):
        return UserRole.PARTICIPANT_ONE
    if same_address(contest.participant_two.wallet_address, wallet_address):
        return UserRole.PARTICIPANT_TWO
    return UserRole.SPECTATOR


def user_specific_status(
    contest: Contest,
    wallet_address: Optional[str],
    now: Optional[datetime] = None
) -> UserSpecificStatusResponse:
    """
    Full status plus the caller's role and next action.

    Wallets that belong to neither participant are treated as spectators and
    get no user_status block.
    """
    role = role_for(contest, wallet_address)
    user_status = None

    if role == UserRole.SPECTATOR:
        next_action = next_action_for(contest.status, role=role)
    else:
        deposit_done = contest.deposit_for(wallet_address).detected
        content_done = contest.content_for(wallet_address).detected
        next_action = next_action_for(contest.status, deposit_done, content_done, role)
        user_status = UserStatus(
            deposit_completed=deposit_done,
            content_submitted=content_done,
            can_submit_content=(
                contest.status == ContestStatus.AWAITING_CONTENT
                and deposit_done
                and not content_done
            ),
            next_action=next_action
        )

    return UserSpecificStatusResponse(
        **_status_fields(contest, now),
        role=role,
        next_action=next_action,
        user_status=user_status
    )
