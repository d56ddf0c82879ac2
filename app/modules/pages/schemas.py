from pydantic import BaseModel
from typing import List, Optional

from app.modules.competitions.schemas import CompetitionResponse, CompetitionFilters
from app.modules.participations.schemas import ParticipantEntry


class PageUser(BaseModel):
    id: str
    email: Optional[str] = None


class LandingPage(BaseModel):
    user: Optional[PageUser] = None
    competitions: List[CompetitionResponse] = []


class ManagerDashboardPage(BaseModel):
    user: PageUser
    competitions: List[CompetitionResponse] = []
    available_sports: List[str] = []


class AthleteDashboardPage(BaseModel):
    user: PageUser
    competitions: List[CompetitionResponse] = []
    joined_competition_ids: List[str] = []
    available_sports: List[str] = []
    available_organizers: List[str] = []
    filters: CompetitionFilters = CompetitionFilters()


class ProfilePage(BaseModel):
    user: PageUser
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    role_label: Optional[str] = None


class CompetitionsPage(BaseModel):
    user: Optional[PageUser] = None
    role: Optional[str] = None
    competitions: List[CompetitionResponse] = []
    joined_competition_ids: List[str] = []
    available_sports: List[str] = []
    available_organizers: List[str] = []
    filters: CompetitionFilters = CompetitionFilters()


class CompetitionPage(BaseModel):
    user: PageUser
    competition: CompetitionResponse
    creator_full_name: Optional[str] = None
    is_creator: bool = False
    already_joined: bool = False
    is_past_event: bool = False
    show_join_button: bool = False
    participants: List[ParticipantEntry] = []
