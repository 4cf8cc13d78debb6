from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core import get_scheduler_status
from app.routes.dependencies import get_contest_scheduler
from app.services.scheduler.contest_scheduler import ContestScheduler
from app.utils.response import success_response, error_response

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.post("/monitor-contests")
async def monitor_contests(
    contest_scheduler: ContestScheduler = Depends(get_contest_scheduler)
):
    """Run one lifecycle tick (deposits, content, battle expiry)"""
    print("[SCHEDULER] Cron trigger: monitoring contests")
    try:
        result = await contest_scheduler.tick()
    except Exception as e:
        print(f"[ERROR] Cron tick failed: {str(e)}")
        return error_response(
            message=f"Contest monitoring failed: {str(e)}",
            status_code=500
        )

    return success_response(
        message="Contest monitoring completed successfully",
        data=result
    )


@router.post("/deposits")
async def monitor_deposits(
    contest_scheduler: ContestScheduler = Depends(get_contest_scheduler)
):
    """Run the deposit monitor on its own"""
    result = await contest_scheduler.run_deposit_monitoring()
    return success_response(message="Deposit monitoring completed", data=result)


@router.post("/content")
async def monitor_content(
    contest_scheduler: ContestScheduler = Depends(get_contest_scheduler)
):
    """Run the content monitor on its own"""
    result = await contest_scheduler.run_content_monitoring()
    return success_response(message="Content monitoring completed", data=result)


@router.get("/health")
async def monitoring_health(
    contest_scheduler: ContestScheduler = Depends(get_contest_scheduler)
):
    """Monitoring health, 503 when unhealthy"""
    health = await contest_scheduler.monitoring_health_check()
    return JSONResponse(
        content=health,
        status_code=200 if health["status"] == "healthy" else 503
    )


@router.get("/scheduler")
async def scheduler_status():
    """Background job status"""
    return success_response(
        message="Scheduler status retrieved",
        data=get_scheduler_status()
    )
