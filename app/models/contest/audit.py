from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class AuditTrigger(str, Enum):
    """What caused a status change"""
    CREATED = "created"
    DEPOSITS_DETECTED = "deposits_detected"
    CONTENT_DETECTED = "content_detected"
    CONTENT_DEADLINE_MISSED = "content_deadline_missed"
    BATTLE_ENDED = "battle_ended"
    ADMIN_OVERRIDE = "admin_override"


class StatusChange(BaseModel):
    """Status history entry kept on the contest document"""
    from_status: Optional[str] = None
    to_status: str
    trigger: str
    at: datetime
    metadata: Optional[Dict[str, Any]] = None
