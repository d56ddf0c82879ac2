from fastapi import APIRouter, Depends, HTTPException, Response
from app.core.dependencies import get_store, get_events, get_session_user, require_session_user
from app.core.events import ChangeBus
from app.core.identity import SessionUser
from app.core.outcome import Outcome
from app.modules.competitions.schemas import (
    CompetitionCreate, CompetitionUpdate, CompetitionResponse, CompetitionFilters,
    CompetitionListResponse
)
from app.modules.competitions.service import CompetitionService
from app.modules.participations.schemas import ParticipantEntry
from app.modules.participations.service import ParticipationService
from typing import List, Optional

router = APIRouter(prefix="/competitions", tags=["competitions"])


def get_competition_service(
    store=Depends(get_store),
    events: ChangeBus = Depends(get_events)
) -> CompetitionService:
    return CompetitionService(store, events)


def get_participation_service(
    store=Depends(get_store),
    events: ChangeBus = Depends(get_events)
) -> ParticipationService:
    return ParticipationService(store, events)


@router.post("", response_model=Outcome)
async def create_competition(
    competition_data: CompetitionCreate,
    response: Response,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: CompetitionService = Depends(get_competition_service)
):
    """Create a competition owned by the caller"""
    outcome = service.create_competition(caller, competition_data)
    response.status_code = outcome.http_status(success_status=201)
    return outcome


@router.get("", response_model=CompetitionListResponse)
async def list_competitions(
    sport: Optional[str] = None,
    organizer: Optional[str] = None,
    open_only: bool = False,
    service: CompetitionService = Depends(get_competition_service)
):
    """List visible competitions, newest first"""
    visible = service.list_visible()
    filters = CompetitionFilters(sport=sport, organizer=organizer, open_only=open_only)
    return CompetitionListResponse(
        competitions=service.apply_filters(visible, filters),
        available_sports=service.available_sports(visible),
        available_organizers=service.available_organizers(visible),
    )


@router.get("/mine", response_model=List[CompetitionResponse])
async def list_my_competitions(
    caller: SessionUser = Depends(require_session_user),
    service: CompetitionService = Depends(get_competition_service)
):
    """Competitions created by the caller"""
    return service.list_created_by(caller.id)


@router.get("/{competition_id}", response_model=CompetitionResponse)
async def get_competition(
    competition_id: str,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: CompetitionService = Depends(get_competition_service)
):
    """Get competition by ID; hidden ones only for their creator"""
    competition = service.get_competition(competition_id)
    if competition is None:
        raise HTTPException(status_code=404, detail="Competition not found")
    if not competition.is_visible and (caller is None or caller.id != competition.created_by):
        raise HTTPException(status_code=404, detail="Competition not found")
    return competition


@router.put("/{competition_id}", response_model=Outcome)
async def update_competition(
    competition_id: str,
    competition_data: CompetitionUpdate,
    response: Response,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: CompetitionService = Depends(get_competition_service)
):
    """Update a competition the caller owns"""
    data = competition_data.model_copy(update={"id": competition_id})
    outcome = service.update_competition(caller, data)
    response.status_code = outcome.http_status()
    return outcome


@router.delete("/{competition_id}", response_model=Outcome)
async def delete_competition(
    competition_id: str,
    response: Response,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: CompetitionService = Depends(get_competition_service)
):
    """Delete a competition the caller owns"""
    outcome = service.delete_competition(caller, competition_id)
    response.status_code = outcome.http_status()
    return outcome


@router.post("/{competition_id}/join", response_model=Outcome)
async def join_competition(
    competition_id: str,
    response: Response,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: ParticipationService = Depends(get_participation_service)
):
    """Register the caller for a competition"""
    outcome = service.join_competition(caller, competition_id)
    response.status_code = outcome.http_status(success_status=201)
    return outcome


@router.get("/{competition_id}/participants", response_model=List[ParticipantEntry])
async def list_participants(
    competition_id: str,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: ParticipationService = Depends(get_participation_service)
):
    """Roster of a competition; emails only for its creator or an event manager"""
    return service.list_participants(caller, competition_id)
