"""
Result objects returned by every mutation.

Mutations never raise and never navigate: they report an Outcome and the
caller (route or page) decides what to render or where to go.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class OutcomeReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    STORE = "store"


# HTTP status used by the API layer for each failure reason
REASON_STATUS = {
    OutcomeReason.UNAUTHENTICATED: 401,
    OutcomeReason.VALIDATION: 400,
    OutcomeReason.NOT_FOUND: 404,
    OutcomeReason.FORBIDDEN: 403,
    OutcomeReason.CONFLICT: 409,
    OutcomeReason.STORE: 502,
}


class Outcome(BaseModel):
    ok: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[OutcomeReason] = None

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None) -> "Outcome":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(cls, reason: OutcomeReason, error: str) -> "Outcome":
        return cls(ok=False, error=error, reason=reason)

    def http_status(self, success_status: int = 200) -> int:
        if self.ok:
            return success_status
        return REASON_STATUS.get(self.reason, 400)
