"""End-to-end lifecycle tests driving ContestScheduler.tick() with fake gateways."""

import asyncio
import pytest
from datetime import timedelta

from app.models.contest.contest import ALLOWED_TRANSITIONS, ContestStatus
from app.services.scheduler.contest_scheduler import TickTracker

from conftest import LATEST_BLOCK, START, WALLET_A, WALLET_B, make_contest_create, tx_hash


def status_trace(contest):
    return [change.to_status for change in contest.history]


def assert_legal_history(contest):
    for change in contest.history[1:]:
        assert ContestStatus(change.to_status) in ALLOWED_TRANSITIONS[ContestStatus(change.from_status)]


# --- Scenarios ---

class TestScenarios:
    @pytest.mark.asyncio
    async def test_full_battle(self, contest_service, contest_scheduler, chain, content, store, clock, settings):
        contest = await contest_service.create_contest(make_contest_create())
        assert contest.status == ContestStatus.AWAITING_DEPOSITS

        # A deposits
        chain.add_deposit(WALLET_A, tx_hash(1), LATEST_BLOCK - 10)
        clock.advance(seconds=30)
        await contest_scheduler.tick()
        stored = await store.get(contest.contest_id)
        assert stored.deposit_for(WALLET_A).detected
        assert stored.status == ContestStatus.AWAITING_DEPOSITS

        # B deposits
        chain.add_deposit(WALLET_B, tx_hash(2), LATEST_BLOCK - 2)
        clock.advance(seconds=30)
        await contest_scheduler.tick()
        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.AWAITING_CONTENT
        assert stored.content_deadline == clock.now + timedelta(minutes=5)

        # Both post
        content.add_post(WALLET_A)
        content.add_post(WALLET_B)
        clock.advance(minutes=1)
        await contest_scheduler.tick()
        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.ACTIVE_BATTLE
        assert stored.battle_start_time == clock.now

        # Battle ends
        clock.advance(hours=settings.battle_duration_hours, seconds=1)
        result = await contest_scheduler.tick()
        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.COMPLETED
        assert stored.completed_at == clock.now
        assert result["battles"]["completed"] == [{"contest_id": contest.contest_id, "name": "Alice vs Bob"}]

        assert status_trace(stored) == [
            "awaiting_deposits", "awaiting_content", "active_battle", "completed"
        ]
        assert_legal_history(stored)

    @pytest.mark.asyncio
    async def test_forfeit_is_final(self, contest_service, contest_scheduler, chain, content, store, clock):
        contest = await contest_service.create_contest(make_contest_create())
        chain.add_deposit(WALLET_A, tx_hash(1), LATEST_BLOCK - 10)
        chain.add_deposit(WALLET_B, tx_hash(2), LATEST_BLOCK - 5)
        await contest_scheduler.tick()

        content.add_post(WALLET_A)
        clock.advance(minutes=1)
        await contest_scheduler.tick()

        clock.advance(minutes=5)
        await contest_scheduler.tick()
        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.FORFEITED

        # B's content shows up afterwards
        content.add_post(WALLET_B, timestamp=START + timedelta(minutes=2))
        clock.advance(minutes=1)
        await contest_scheduler.tick()

        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.FORFEITED
        assert not stored.content_for(WALLET_B).detected
        assert status_trace(stored) == ["awaiting_deposits", "awaiting_content", "forfeited"]
        assert_legal_history(stored)

    @pytest.mark.asyncio
    async def test_deposits_and_content_in_one_tick(self, contest_service, contest_scheduler, chain, content, store):
        contest = await contest_service.create_contest(make_contest_create())
        chain.add_deposit(WALLET_A, tx_hash(1), LATEST_BLOCK - 10)
        chain.add_deposit(WALLET_B, tx_hash(2), LATEST_BLOCK - 5)
        content.add_post(WALLET_A)
        content.add_post(WALLET_B)

        await contest_scheduler.tick()

        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.ACTIVE_BATTLE
        assert status_trace(stored) == ["awaiting_deposits", "awaiting_content", "active_battle"]


# --- Tick properties ---

class TestTickProperties:
    @pytest.mark.asyncio
    async def test_repeated_tick_is_idempotent(self, contest_service, contest_scheduler, chain, store):
        contest = await contest_service.create_contest(make_contest_create())
        chain.add_deposit(WALLET_A, tx_hash(1), LATEST_BLOCK - 10)
        chain.add_deposit(WALLET_B, tx_hash(2), LATEST_BLOCK - 5)

        await contest_scheduler.tick()
        first = await store.get(contest.contest_id)

        result = await contest_scheduler.tick()
        second = await store.get(contest.contest_id)

        assert second.version == first.version
        assert second.history == first.history
        assert second.deposits == first.deposits
        assert result["deposits"]["transitioned"] == []
        assert result["content"]["transitioned"] == []

    @pytest.mark.asyncio
    async def test_overlapping_ticks_produce_one_trace(self, contest_service, contest_scheduler, chain, content, store):
        contest = await contest_service.create_contest(make_contest_create())
        chain.add_deposit(WALLET_A, tx_hash(1), LATEST_BLOCK - 10)
        chain.add_deposit(WALLET_B, tx_hash(2), LATEST_BLOCK - 5)
        content.add_post(WALLET_A)
        content.add_post(WALLET_B)

        results = await asyncio.gather(
            contest_scheduler.tick(),
            contest_scheduler.tick(),
            contest_scheduler.tick()
        )

        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.ACTIVE_BATTLE
        assert status_trace(stored) == ["awaiting_deposits", "awaiting_content", "active_battle"]
        assert_legal_history(stored)
        assert stored.deposit_for(WALLET_A).detected and stored.deposit_for(WALLET_B).detected
        assert stored.content_for(WALLET_A).detected and stored.content_for(WALLET_B).detected

        # Losing writers report the stale write instead of raising
        assert all(result["errors"] == [] for result in results)
        stale = [
            error
            for result in results
            for stage in ("deposits", "content")
            for error in result[stage]["errors"]
            if "changed since it was read" in error["error"]
        ]
        assert stale
        assert sum(len(result["deposits"]["transitioned"]) for result in results) == 1
        assert sum(len(result["content"]["transitioned"]) for result in results) == 1

    @pytest.mark.asyncio
    async def test_failing_stage_does_not_stop_later_stages(self, contest_service, contest_scheduler, store, clock):
        contest = await contest_service.create_contest(make_contest_create())
        await contest_service.set_status(contest.contest_id, ContestStatus.ACTIVE_BATTLE)

        async def broken():
            raise RuntimeError("boom")

        contest_scheduler.run_deposit_monitoring = broken
        clock.advance(hours=25)
        result = await contest_scheduler.tick()

        assert result["errors"] == [{"stage": "deposits", "error": "boom"}]
        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_battle_not_completed_before_end(self, contest_service, contest_scheduler, store, clock):
        contest = await contest_service.create_contest(make_contest_create())
        await contest_service.set_status(contest.contest_id, ContestStatus.ACTIVE_BATTLE)

        clock.advance(hours=23)
        result = await contest_scheduler.complete_expired_battles()

        stored = await store.get(contest.contest_id)
        assert stored.status == ContestStatus.ACTIVE_BATTLE
        assert result["processed"] == 0

    @pytest.mark.asyncio
    async def test_tick_tracker_records_completion(self, contest_scheduler, clock):
        await contest_scheduler.tick()

        snapshot = contest_scheduler.tracker.snapshot(clock.now)
        assert snapshot["in_flight"] == 0
        assert snapshot["last_completed_at"] == clock.now.isoformat()


# --- TickTracker ---

class TestTickTracker:
    def test_overdue_only_while_in_flight(self):
        tracker = TickTracker()
        token = tracker.begin(START)

        assert not tracker.is_overdue(START + timedelta(seconds=10), 25)
        assert tracker.is_overdue(START + timedelta(seconds=30), 25)

        tracker.finish(token, START + timedelta(seconds=31))
        assert not tracker.is_overdue(START + timedelta(seconds=60), 25)
        assert tracker.last_duration_seconds == 31

    def test_oldest_tick_drives_overrun(self):
        tracker = TickTracker()
        tracker.begin(START)
        tracker.begin(START + timedelta(seconds=20))

        assert tracker.oldest_in_flight_seconds(START + timedelta(seconds=30)) == 30


# --- Health check ---

class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy_when_idle(self, contest_scheduler):
        health = await contest_scheduler.monitoring_health_check()

        assert health["status"] == "healthy"
        assert health["services"] == {"store": True, "chain": True, "deposits": True, "content": True}
        assert health["latest_block"] == LATEST_BLOCK

    @pytest.mark.asyncio
    async def test_chain_outage_is_unhealthy(self, contest_scheduler, chain):
        chain.fail_latest = True

        health = await contest_scheduler.monitoring_health_check()

        assert health["status"] == "unhealthy"
        assert health["services"]["chain"] is False

    @pytest.mark.asyncio
    async def test_overdue_contest_reported(self, contest_service, contest_scheduler, store, clock):
        contest = await contest_service.create_contest(make_contest_create())
        await contest_service.set_status(contest.contest_id, ContestStatus.AWAITING_CONTENT)

        # A tick finished after the deadline without handling the contest
        contest_scheduler.tracker.finish(contest_scheduler.tracker.begin(clock.now), clock.now + timedelta(minutes=10))

        health = await contest_scheduler.monitoring_health_check()

        assert health["status"] == "unhealthy"
        assert [c["contest_id"] for c in health["overdue_contests"]] == [contest.contest_id]
