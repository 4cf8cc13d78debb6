from fastapi import APIRouter, Depends

from app.core.errors import ContestError
from app.models.contest.contest import Contest, ContestCreate
from app.routes.dependencies import get_contest_service
from app.services.contest.contest import ContestService
from app.utils.response import success_response, contest_error_response

router = APIRouter(prefix="/contests", tags=["Contests"])


def convert_contest_to_json(contest: Contest) -> dict:
    """Convert a contest to a JSON-serializable dict"""
    return contest.model_dump(mode="json")


@router.post("/create")
async def create_contest(
    contest_data: ContestCreate,
    contest_service: ContestService = Depends(get_contest_service)
):
    """
    Create a new creator battle.

    - Starts in awaiting_deposits
    - Only one contest may be active at a time (409 otherwise)
    - Zora profiles are looked up best-effort; a failed lookup does not block creation
    """
    try:
        contest = await contest_service.create_contest(contest_data)
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message="Contest created successfully",
        data={"contest": convert_contest_to_json(contest)},
        status_code=201
    )


@router.get("/active")
async def get_active_contest(
    contest_service: ContestService = Depends(get_contest_service)
):
    """Get the current active contest, if any"""
    try:
        contest = await contest_service.get_active_contest()
    except ContestError as e:
        return contest_error_response(e)

    if contest is None:
        return success_response(
            message="No active contest",
            data={"contest": None}
        )

    return success_response(
        message="Active contest retrieved successfully",
        data={"contest": convert_contest_to_json(contest)}
    )


@router.get("/{contest_id}")
async def get_contest(
    contest_id: str,
    contest_service: ContestService = Depends(get_contest_service)
):
    """Get contest details by ID"""
    try:
        contest = await contest_service.get_contest(contest_id)
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message="Contest retrieved successfully",
        data={"contest": convert_contest_to_json(contest)}
    )
