"""Tests for the status projections and the next-action table."""

import pytest
import pytest_asyncio
from datetime import timedelta

from app.models.contest.contest import ContestStatus
from app.models.contest.status import UserRole
from app.services.contest.status import (
    full_status,
    lightweight_status,
    next_action_for,
    time_remaining_seconds,
    user_specific_status,
)

from conftest import START, WALLET_A, WALLET_B, WALLET_C, make_contest_create, tx_hash


@pytest_asyncio.fixture
async def contest(contest_service):
    created = await contest_service.create_contest(make_contest_create())
    created.deposit_for(WALLET_A).detected = True
    created.deposit_for(WALLET_A).tx_hash = tx_hash(1)
    return created


# --- next_action_for ---

class TestNextAction:
    @pytest.mark.parametrize("status,deposit,content_done,expected", [
        (ContestStatus.AWAITING_DEPOSITS, False, False, "Make your deposit"),
        (ContestStatus.AWAITING_DEPOSITS, True, False, "Wait for opponent to deposit"),
        (ContestStatus.AWAITING_CONTENT, False, False, "Deposit required before content submission"),
        (ContestStatus.AWAITING_CONTENT, True, False, "Submit your content"),
        (ContestStatus.AWAITING_CONTENT, True, True, "Wait for opponent to submit content"),
        (ContestStatus.ACTIVE_BATTLE, True, True, "Vote and engage with the battle"),
        (ContestStatus.COMPLETED, True, True, "Battle completed - view results"),
        (ContestStatus.FORFEITED, True, False, "Contest was forfeited"),
    ])
    def test_participant_actions(self, status, deposit, content_done, expected):
        assert next_action_for(status, deposit, content_done, UserRole.PARTICIPANT_ONE) == expected

    def test_spectator_ignores_flags(self):
        action = next_action_for(ContestStatus.AWAITING_DEPOSITS, False, False, UserRole.SPECTATOR)
        assert action == "Wait for both creators to deposit"

    def test_accepts_raw_status_string(self):
        assert next_action_for("active_battle") == "Vote and engage with the battle"


# --- Projections ---

class TestProjections:
    @pytest.mark.asyncio
    async def test_full_status(self, contest):
        status = full_status(contest, now=START)

        assert status.status == ContestStatus.AWAITING_DEPOSITS
        assert status.participants.one.handle == "alice"
        assert status.participants.one.deposit_status.detected
        assert status.participants.one.deposit_status.tx_hash == tx_hash(1)
        assert not status.participants.two.deposit_status.detected
        assert not status.progress.all_deposits_received
        assert not status.progress.ready_for_battle
        assert status.time_remaining_seconds is None

    @pytest.mark.asyncio
    async def test_time_remaining_tracks_phase_deadline(self, contest):
        contest.status = ContestStatus.AWAITING_CONTENT
        contest.content_deadline = START + timedelta(minutes=5)

        assert time_remaining_seconds(contest, START + timedelta(minutes=2)) == 180
        assert time_remaining_seconds(contest, START + timedelta(minutes=9)) == 0

    @pytest.mark.asyncio
    async def test_lightweight_status(self, contest):
        status = lightweight_status(contest)

        assert status.contest_id == contest.contest_id
        assert status.all_deposits_received is False
        assert status.all_content_submitted is False

    @pytest.mark.asyncio
    async def test_user_status_for_participant(self, contest):
        status = user_specific_status(contest, WALLET_A.lower(), now=START)

        assert status.role == UserRole.PARTICIPANT_ONE
        assert status.next_action == "Wait for opponent to deposit"
        assert status.user_status.deposit_completed
        assert not status.user_status.can_submit_content

    @pytest.mark.asyncio
    async def test_user_status_for_second_participant(self, contest):
        status = user_specific_status(contest, WALLET_B, now=START)

        assert status.role == UserRole.PARTICIPANT_TWO
        assert status.next_action == "Make your deposit"

    @pytest.mark.asyncio
    async def test_can_submit_content_only_in_window(self, contest):
        contest.deposit_for(WALLET_B).detected = True
        contest.status = ContestStatus.AWAITING_CONTENT

        status = user_specific_status(contest, WALLET_B, now=START)

        assert status.user_status.can_submit_content
        assert status.next_action == "Submit your content"

    @pytest.mark.asyncio
    async def test_unknown_wallet_is_spectator(self, contest):
        status = user_specific_status(contest, WALLET_C, now=START)

        assert status.role == UserRole.SPECTATOR
        assert status.user_status is None
        assert status.next_action == "Wait for both creators to deposit"

    @pytest.mark.asyncio
    async def test_projection_does_not_mutate(self, contest):
        before = contest.model_dump()
        full_status(contest)
        user_specific_status(contest, WALLET_A)
        assert contest.model_dump() == before
