"""
Contest Status Models
Read projections returned to polling and streaming clients
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum

from app.models.contest.contest import ContestStatus


class UserRole(str, Enum):
    PARTICIPANT_ONE = "participant_one"
    PARTICIPANT_TWO = "participant_two"
    SPECTATOR = "spectator"


class DepositStatus(BaseModel):
    detected: bool
    timestamp: Optional[datetime] = None
    tx_hash: Optional[str] = None


class ContentStatus(BaseModel):
    detected: bool
    verified: bool
    timestamp: Optional[datetime] = None
    zora_post_url: Optional[str] = None


class ParticipantStatus(BaseModel):
    handle: str
    wallet_address: str
    deposit_status: DepositStatus
    content_status: ContentStatus


class ParticipantsStatus(BaseModel):
    one: ParticipantStatus
    two: ParticipantStatus


class ContestProgress(BaseModel):
    all_deposits_received: bool
    all_content_submitted: bool
    ready_for_battle: bool


class ContestDeadlines(BaseModel):
    deposit: Optional[datetime] = None
    content: Optional[datetime] = None
    battle_start: Optional[datetime] = None
    battle_end: Optional[datetime] = None


class ContestStatusResponse(BaseModel):
    """Full status for frontend polling"""
    contest_id: str
    name: str
    status: ContestStatus
    participants: ParticipantsStatus
    progress: ContestProgress
    deadlines: ContestDeadlines
    time_remaining_seconds: Optional[int] = None
    created_at: datetime
    last_updated: datetime


class LightweightStatusResponse(BaseModel):
    """Minimal status for high-frequency polling"""
    contest_id: str
    status: ContestStatus
    all_deposits_received: bool
    all_content_submitted: bool
    last_updated: datetime


class UserStatus(BaseModel):
    deposit_completed: bool
    content_submitted: bool
    can_submit_content: bool
    next_action: str


class UserSpecificStatusResponse(ContestStatusResponse):
    role: UserRole
    next_action: str
    user_status: Optional[UserStatus] = None


class StatusUpdate(BaseModel):
    """Admin status override request"""
    status: ContestStatus


class MetricsUpdate(BaseModel):
    participant_one_votes: int
    participant_two_votes: int
