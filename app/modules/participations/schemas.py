from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.modules.competitions.schemas import CompetitionResponse


class ParticipationResponse(BaseModel):
    id: str
    user_id: str
    competition_id: str
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ParticipantEntry(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None  # only filled in for the creator or an event manager
    joined_at: Optional[datetime] = None


class JoinedCompetitionsResponse(BaseModel):
    competition_ids: List[str] = []
    competitions: List[CompetitionResponse] = []
