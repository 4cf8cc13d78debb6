import asyncio
import json
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from typing import Optional

from app.core import config
from app.core.errors import ContestError
from app.models.contest.contest import Contest
from app.routes.dependencies import get_contest_service
from app.services.contest.contest import ContestService
from app.services.contest.status import full_status, lightweight_status, user_specific_status
from app.utils.response import success_response, contest_error_response

router = APIRouter(prefix="/contest", tags=["Contest Status"])


def build_status(contest: Contest, user_wallet: Optional[str] = None) -> dict:
    if user_wallet:
        return user_specific_status(contest, user_wallet).model_dump(mode="json")
    return full_status(contest).model_dump(mode="json")


@router.get("/status")
async def get_contest_status(
    contest_id: Optional[str] = Query(None, alias="contestId"),
    user_wallet: Optional[str] = Query(None, alias="userWallet"),
    contest_service: ContestService = Depends(get_contest_service)
):
    """
    Full contest status for frontend polling.

    - contestId: defaults to the active contest
    - userWallet: adds the caller's role and next action
    """
    try:
        contest = await contest_service.resolve_contest(contest_id)
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message="Contest status retrieved successfully",
        data=build_status(contest, user_wallet)
    )


@router.get("/status/lightweight")
async def get_lightweight_status(
    contest_id: Optional[str] = Query(None, alias="contestId"),
    contest_service: ContestService = Depends(get_contest_service)
):
    """Minimal status for high-frequency polling"""
    try:
        contest = await contest_service.resolve_contest(contest_id)
    except ContestError as e:
        return contest_error_response(e)

    return success_response(
        message="Contest status retrieved successfully",
        data=lightweight_status(contest).model_dump(mode="json")
    )


def format_event(payload: dict, event: Optional[str] = None) -> str:
    """Format a server-sent event"""
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(payload)}")
    return "\n".join(lines) + "\n\n"


@router.get("/status/stream")
async def stream_contest_status(
    request: Request,
    contest_id: Optional[str] = Query(None, alias="contestId"),
    user_wallet: Optional[str] = Query(None, alias="userWallet"),
    contest_service: ContestService = Depends(get_contest_service)
):
    """
    Server-sent events stream of contest status.

    Pushes the status every STATUS_STREAM_INTERVAL_SECONDS until the client
    disconnects or the contest reaches a terminal status.
    """
    async def event_stream():
        while True:
            if await request.is_disconnected():
                break

            try:
                contest = await contest_service.resolve_contest(contest_id)
            except ContestError as e:
                yield format_event({"message": e.message}, event="error")
            else:
                yield format_event(build_status(contest, user_wallet))
                if not contest.is_active:
                    break

            await asyncio.sleep(config.STATUS_STREAM_INTERVAL_SECONDS)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"}
    )
