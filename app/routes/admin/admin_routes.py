from fastapi import APIRouter, Depends

from app.core.errors import ContestError
from app.models.contest.status import MetricsUpdate, StatusUpdate
from app.routes.contest.contest_routes import convert_contest_to_json
from app.routes.dependencies import get_contest_service, is_admin
from app.services.contest.contest import ContestService
from app.services.contest.status import lightweight_status
from app.utils.response import success_response, contest_error_response, unauthorized_response

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/contests/all")
async def get_all_contests(
    admin: bool = Depends(is_admin),
    contest_service: ContestService = Depends(get_contest_service)
):
    """All contests, newest first, with their lightweight status"""
    if not admin:
        return unauthorized_response("Invalid admin key")

    try:
        contests = await contest_service.list_contests()
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message="Contests retrieved successfully",
        data={
            "contests": [
                {
                    "contest": convert_contest_to_json(contest),
                    "status": lightweight_status(contest).model_dump(mode="json")
                }
                for contest in contests
            ],
            "total": len(contests)
        }
    )


@router.patch("/contests/{contest_id}/status")
async def update_contest_status(
    contest_id: str,
    update: StatusUpdate,
    admin: bool = Depends(is_admin),
    contest_service: ContestService = Depends(get_contest_service)
):
    """
    Override a contest's status.

    Contests that are completed or forfeited cannot be changed (400).
    """
    if not admin:
        return unauthorized_response("Invalid admin key")

    try:
        contest = await contest_service.set_status(contest_id, update.status)
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message=f"Contest status set to {contest.status.value}",
        data={"contest": convert_contest_to_json(contest)}
    )


@router.patch("/contests/{contest_id}/metrics")
async def update_contest_metrics(
    contest_id: str,
    update: MetricsUpdate,
    admin: bool = Depends(is_admin),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Update vote counters"""
    if not admin:
        return unauthorized_response("Invalid admin key")

    try:
        contest = await contest_service.update_metrics(
            contest_id,
            update.participant_one_votes,
            update.participant_two_votes
        )
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message="Contest metrics updated",
        data={"contest": convert_contest_to_json(contest)}
    )
