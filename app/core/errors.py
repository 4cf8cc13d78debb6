"""
Contest error taxonomy.

ConflictError is the only one surfaced to end users from contest creation.
GatewayError and PersistenceError are recoverable: monitors log them per
contest and the next tick retries from current store state.
"""
from typing import Optional


class ContestError(Exception):
    """Base class for contest lifecycle errors"""

    def __init__(self, message: str, contest_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.contest_id = contest_id


class ConflictError(ContestError):
    """An active (non-terminal) contest already exists"""


class NotFoundError(ContestError):
    """Unknown contest id"""


class InvalidTransitionError(ContestError):
    """Requested status change is not allowed by the state machine"""


class GatewayError(ContestError):
    """Chain, profile or content lookup failed or timed out"""

    def __init__(self, message: str, gateway: str = "unknown", contest_id: Optional[str] = None):
        super().__init__(message, contest_id=contest_id)
        self.gateway = gateway


class PersistenceError(ContestError):
    """Store read or write failed"""


class StaleWriteError(PersistenceError):
    """Conditional write lost against a concurrent writer"""
