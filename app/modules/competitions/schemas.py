from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class CompetitionCreate(BaseModel):
    name: Optional[str] = None
    event_date: Optional[str] = None  # date-only string, stored as given
    venue: Optional[str] = None
    sport: Optional[str] = None
    description: Optional[str] = None


class CompetitionUpdate(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[str] = None
    venue: Optional[str] = None
    sport: Optional[str] = None
    is_visible: bool = True
    registration_open: bool = True


class CompetitionResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    event_date: Optional[str] = None
    venue: Optional[str] = None
    sport: Optional[str] = None
    created_by: Optional[str] = None
    is_visible: bool = True
    registration_open: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    creator_full_name: Optional[str] = None

    class Config:
        from_attributes = True


class CompetitionFilters(BaseModel):
    sport: Optional[str] = None
    organizer: Optional[str] = None
    open_only: bool = False


class CompetitionListResponse(BaseModel):
    competitions: List[CompetitionResponse]
    available_sports: List[str] = []
    available_organizers: List[str] = []
