"""
APScheduler Setup for Background Jobs

Drives the contest lifecycle:
- Monitor tick: every TICK_INTERVAL_SECONDS (30s)
- Fallback tick: every FALLBACK_INTERVAL_SECONDS (2 minutes)
- Health check: every HEALTH_CHECK_INTERVAL_MINUTES (5 minutes)

Note: Jobs run with the contest store from app context.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime

from app.core import config

# Global scheduler instance
scheduler = AsyncIOScheduler()

# Job status tracking
job_status = {
    "last_run": None,
    "tick": {"runs": 0, "skipped": 0, "last_result": None},
    "fallback": {"runs": 0, "skipped": 0, "last_result": None},
    "health_check": {"runs": 0, "last_result": None}
}


def _count_transitions(result: dict) -> int:
    count = 0
    for stage in ("deposits", "content"):
        count += len((result.get(stage) or {}).get("transitioned", []))
    count += len((result.get("battles") or {}).get("completed", []))
    return count


async def _run_tick(job_key: str):
    from app.database import Database
    from app.services.scheduler.contest_scheduler import create_contest_scheduler, tick_tracker

    try:
        store = Database.get_store()
        if store is None:
            print(f"[SCHEDULER] Contest store not connected, skipping {job_key}")
            return

        now = datetime.utcnow()
        if tick_tracker.is_overdue(now, config.MAX_TICK_DURATION_SECONDS):
            # Never cancel the in-flight tick, only hold back new ones
            age = tick_tracker.oldest_in_flight_seconds(now)
            tick_tracker.skipped += 1
            job_status[job_key]["skipped"] += 1
            print(f"[ALARM] [SCHEDULER] Tick in flight for {age:.1f}s "
                  f"(limit {config.MAX_TICK_DURATION_SECONDS}s), skipping {job_key}")
            return

        result = await create_contest_scheduler(store).tick()

        job_status[job_key]["runs"] += 1
        job_status[job_key]["last_result"] = result
        job_status["last_run"] = datetime.utcnow().isoformat()

        transitions = _count_transitions(result)
        if transitions > 0:
            print(f"[SCHEDULER] {job_key}: {transitions} contests transitioned")

    except Exception as e:
        print(f"[ERROR] {job_key} job failed: {str(e)}")


async def run_contest_monitor_tick():
    """Job: Run one lifecycle tick over all active contests."""
    await _run_tick("tick")


async def run_contest_monitor_fallback():
    """Job: Backup tick in case the main tick job stalls or misfires."""
    await _run_tick("fallback")


async def run_monitoring_health_check():
    """Job: Report monitoring health."""
    from app.database import Database
    from app.services.scheduler.contest_scheduler import create_contest_scheduler

    try:
        store = Database.get_store()
        if store is None:
            print("[SCHEDULER] Contest store not connected, skipping health_check")
            return

        result = await create_contest_scheduler(store).monitoring_health_check()

        job_status["health_check"]["runs"] += 1
        job_status["health_check"]["last_result"] = result

        if result["status"] != "healthy":
            print(f"[ALARM] [SCHEDULER] Monitoring unhealthy: services={result['services']} "
                  f"overdue={len(result['overdue_contests'])}")

    except Exception as e:
        print(f"[ERROR] health_check job failed: {str(e)}")


def setup_scheduler():
    """
    Configure and setup all scheduled jobs.

    Job Schedule:
    - contest_monitor_tick: deposits, content, battle expiry
    - contest_monitor_fallback: same tick on a slower cadence
    - monitoring_health_check: store/chain reachability and overdue contests
    """
    # Clear any existing jobs
    scheduler.remove_all_jobs()

    scheduler.add_job(
        run_contest_monitor_tick,
        IntervalTrigger(seconds=config.TICK_INTERVAL_SECONDS),
        id="contest_monitor_tick",
        name="Monitor contest deposits, content and battles",
        replace_existing=True,
        max_instances=2,
        coalesce=True
    )

    scheduler.add_job(
        run_contest_monitor_fallback,
        IntervalTrigger(seconds=config.FALLBACK_INTERVAL_SECONDS),
        id="contest_monitor_fallback",
        name="Fallback contest monitor tick",
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    scheduler.add_job(
        run_monitoring_health_check,
        IntervalTrigger(minutes=config.HEALTH_CHECK_INTERVAL_MINUTES),
        id="monitoring_health_check",
        name="Contest monitoring health check",
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    print("[SCHEDULER] Contest scheduler configured with 3 jobs")


def start_scheduler():
    """Start the scheduler if not already running."""
    if not scheduler.running:
        scheduler.start()
        print("[SCHEDULER] Background scheduler started")


def stop_scheduler():
    """Stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        print("[SCHEDULER] Background scheduler stopped")


def get_scheduler_status() -> dict:
    """Get current scheduler status for monitoring."""
    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None
            }
            for job in scheduler.get_jobs()
        ],
        "job_status": job_status
    }
