from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from app.models.contest.audit import StatusChange
from app.models.contest.profile import ZoraProfileData
from app.utils.address import normalize_address, same_address, find_by_address


class ContestStatus(str, Enum):
    """
    Contest status types - State Machine

    State Transitions:
    - AWAITING_DEPOSITS -> AWAITING_CONTENT (both deposits detected on-chain)
    - AWAITING_CONTENT -> ACTIVE_BATTLE (both content posts detected)
    - AWAITING_CONTENT -> FORFEITED (content deadline passed, posts missing)
    - ACTIVE_BATTLE -> COMPLETED (battle_end_time passed)
    """
    AWAITING_DEPOSITS = "awaiting_deposits"
    AWAITING_CONTENT = "awaiting_content"
    ACTIVE_BATTLE = "active_battle"
    COMPLETED = "completed"
    FORFEITED = "forfeited"


TERMINAL_STATUSES = frozenset({ContestStatus.COMPLETED, ContestStatus.FORFEITED})
ACTIVE_STATUSES = frozenset(set(ContestStatus) - TERMINAL_STATUSES)

ALLOWED_TRANSITIONS: Dict[ContestStatus, frozenset] = {
    ContestStatus.AWAITING_DEPOSITS: frozenset({ContestStatus.AWAITING_CONTENT}),
    ContestStatus.AWAITING_CONTENT: frozenset({ContestStatus.ACTIVE_BATTLE, ContestStatus.FORFEITED}),
    ContestStatus.ACTIVE_BATTLE: frozenset({ContestStatus.COMPLETED}),
    ContestStatus.COMPLETED: frozenset(),
    ContestStatus.FORFEITED: frozenset(),
}


def is_terminal(status: ContestStatus) -> bool:
    return ContestStatus(status) in TERMINAL_STATUSES


def can_transition(current: ContestStatus, target: ContestStatus) -> bool:
    return ContestStatus(target) in ALLOWED_TRANSITIONS[ContestStatus(current)]


class ParticipantInput(BaseModel):
    """Schema for a participant in a create request"""
    handle: str = Field(..., min_length=1, max_length=100)
    wallet_address: str
    zora_profile: Optional[str] = None

    @field_validator("wallet_address")
    @classmethod
    def _checksum_wallet(cls, value: str) -> str:
        return normalize_address(value)


class ContestCreate(BaseModel):
    """Schema for creating a contest"""
    name: str = Field(..., min_length=1, max_length=200)
    participant_one: ParticipantInput
    participant_two: ParticipantInput
    contract_address: str

    @field_validator("contract_address")
    @classmethod
    def _checksum_contract(cls, value: str) -> str:
        return normalize_address(value)

    @model_validator(mode="after")
    def _distinct_participants(self) -> "ContestCreate":
        if same_address(self.participant_one.wallet_address, self.participant_two.wallet_address):
            raise ValueError("Participants must use different wallet addresses")
        return self


class Participant(BaseModel):
    """Participant stored on a contest"""
    handle: str
    wallet_address: str
    zora_profile: Optional[str] = None
    profile_data: Optional[ZoraProfileData] = None


class DetectionRecord(BaseModel):
    """Shared shape of deposit and content detections. detected is write-once."""
    detected: bool = False
    timestamp: Optional[datetime] = None


class DepositRecord(DetectionRecord):
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


class ContentRecord(DetectionRecord):
    verified: bool = False
    zora_post_url: Optional[str] = None
    content_hash: Optional[str] = None


class ContestMetrics(BaseModel):
    """Vote counters, updated outside the lifecycle state machine"""
    participant_one_votes: int = 0
    participant_two_votes: int = 0
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class Contest(BaseModel):
    """Contest aggregate stored as a single document"""
    contest_id: str
    name: str
    status: ContestStatus = ContestStatus.AWAITING_DEPOSITS
    participant_one: Participant
    participant_two: Participant
    contract_address: str

    created_at: datetime
    updated_at: datetime
    deposit_deadline: Optional[datetime] = None
    content_deadline: Optional[datetime] = None
    battle_start_time: Optional[datetime] = None
    battle_end_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    deposits: Dict[str, DepositRecord] = {}
    content_posts: Dict[str, ContentRecord] = {}
    metrics: Optional[ContestMetrics] = None

    history: List[StatusChange] = []
    version: int = 0

    @property
    def participants(self) -> List[Participant]:
        return [self.participant_one, self.participant_two]

    @property
    def is_active(self) -> bool:
        return not is_terminal(self.status)

    def deposit_for(self, wallet_address: str) -> DepositRecord:
        record = find_by_address(self.deposits, wallet_address)
        if record is None:
            raise KeyError(f"No deposit record for {wallet_address} in {self.contest_id}")
        return record

    def content_for(self, wallet_address: str) -> ContentRecord:
        record = find_by_address(self.content_posts, wallet_address)
        if record is None:
            raise KeyError(f"No content record for {wallet_address} in {self.contest_id}")
        return record

    def participant_for(self, wallet_address: str) -> Optional[Participant]:
        for participant in self.participants:
            if same_address(participant.wallet_address, wallet_address):
                return participant
        return None

    def all_deposits_received(self) -> bool:
        return all(self.deposit_for(p.wallet_address).detected for p in self.participants)

    def all_content_submitted(self) -> bool:
        return all(self.content_for(p.wallet_address).detected for p in self.participants)

    def record_transition(
        self,
        target: ContestStatus,
        now: datetime,
        trigger: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Move to target, appending to history. Callers validate the transition."""
        target = ContestStatus(target)
        self.history.append(StatusChange(
            from_status=self.status.value,
            to_status=target.value,
            trigger=trigger,
            at=now,
            metadata=metadata,
        ))
        self.status = target
        if target in TERMINAL_STATUSES:
            self.completed_at = now

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(mode="python")
        document["_id"] = self.contest_id
        document["status"] = self.status.value
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Contest":
        data = {k: v for k, v in document.items() if k not in ("_id", "active_slot")}
        return cls.model_validate(data)
