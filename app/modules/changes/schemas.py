from pydantic import BaseModel
from typing import Any, Dict, List


class ChangeEventResponse(BaseModel):
    seq: int
    topic: str
    event_type: str
    record: Dict[str, Any] = {}
    occurred_at: str


class ChangeFeedResponse(BaseModel):
    latest: int
    events: List[ChangeEventResponse] = []
