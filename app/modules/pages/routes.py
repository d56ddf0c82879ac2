from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from app.core.dependencies import get_store, get_events, get_view_cache, get_session_user
from app.core.events import ChangeBus
from app.core.identity import SessionUser
from app.core.view_cache import ViewCache
from app.modules.competitions.schemas import CompetitionFilters
from app.modules.pages.schemas import (
    LandingPage, ManagerDashboardPage, AthleteDashboardPage, ProfilePage,
    CompetitionsPage, CompetitionPage
)
from app.modules.pages.service import PageService, PageResult
from typing import Optional

# Page routes sit behind the access gate and outside /api
router = APIRouter(tags=["pages"])


def get_page_service(
    store=Depends(get_store),
    events: ChangeBus = Depends(get_events),
    view_cache: ViewCache = Depends(get_view_cache)
) -> PageService:
    return PageService(store, events, view_cache)


def render(result: PageResult):
    # Cookies rotated during session resolution are added by the gate middleware
    if result.redirect_to is not None:
        return RedirectResponse(result.redirect_to, status_code=307)
    return result.payload


@router.get("/", response_model=LandingPage)
async def landing(service: PageService = Depends(get_page_service)):
    return render(service.landing())


@router.get("/dashboard", response_model=ManagerDashboardPage)
async def manager_dashboard(
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: PageService = Depends(get_page_service)
):
    return render(service.manager_dashboard(caller))


@router.get("/dashboard/athlete", response_model=AthleteDashboardPage)
async def athlete_dashboard(
    sport: Optional[str] = None,
    organizer: Optional[str] = None,
    open_only: bool = False,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: PageService = Depends(get_page_service)
):
    filters = CompetitionFilters(sport=sport, organizer=organizer, open_only=open_only)
    return render(service.athlete_dashboard(caller, filters))


@router.get("/dashboard/profile", response_model=ProfilePage)
async def profile(
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: PageService = Depends(get_page_service)
):
    return render(service.profile(caller))


@router.get("/competitions", response_model=CompetitionsPage)
async def competitions(
    sport: Optional[str] = None,
    organizer: Optional[str] = None,
    open_only: bool = False,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: PageService = Depends(get_page_service)
):
    filters = CompetitionFilters(sport=sport, organizer=organizer, open_only=open_only)
    return render(service.competitions_list(caller, filters))


@router.get("/competition/{competition_id}", response_model=CompetitionPage)
async def competition_detail(
    competition_id: str,
    caller: Optional[SessionUser] = Depends(get_session_user),
    service: PageService = Depends(get_page_service)
):
    return render(service.competition_detail(caller, competition_id))
