from fastapi import APIRouter, Depends
from app.core.dependencies import get_store, get_events, require_session_user
from app.core.events import ChangeBus
from app.core.identity import SessionUser
from app.modules.participations.schemas import JoinedCompetitionsResponse
from app.modules.participations.service import ParticipationService

router = APIRouter(prefix="/participations", tags=["participations"])


def get_participation_service(
    store=Depends(get_store),
    events: ChangeBus = Depends(get_events)
) -> ParticipationService:
    return ParticipationService(store, events)


@router.get("/mine", response_model=JoinedCompetitionsResponse)
async def list_my_participations(
    caller: SessionUser = Depends(require_session_user),
    service: ParticipationService = Depends(get_participation_service)
):
    """Competitions the caller has joined"""
    return service.list_joined_competitions(caller.id)
