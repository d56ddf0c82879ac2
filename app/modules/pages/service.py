"""
Page data loaders.

Each loader returns either the view model a page renders or the path the
page sends its caller to instead. Dashboard payloads go through the
ViewCache and are dropped whenever a write revalidates their path.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional
import logging

from app.config import routes_config
from app.core.events import ChangeBus
from app.core.identity import SessionUser
from app.core.view_cache import ViewCache
from app.modules.competitions.schemas import CompetitionFilters
from app.modules.competitions.service import CompetitionService
from app.modules.pages.schemas import (
    PageUser, LandingPage, ManagerDashboardPage, AthleteDashboardPage,
    ProfilePage, CompetitionsPage, CompetitionPage
)
from app.modules.participations.service import ParticipationService
from app.modules.users.schemas import Role
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)

MANAGER_DASHBOARD_PATH = routes_config.ROLE_HOME_PATHS[Role.EVENT_MANAGER.value]
ATHLETE_DASHBOARD_PATH = routes_config.ROLE_HOME_PATHS[Role.PARTICIPANT.value]


@dataclass
class PageResult:
    payload: Any = None
    redirect_to: Optional[str] = None


def is_past_event(event_date: Optional[str], today: Optional[date] = None) -> bool:
    """Event dates are date-only strings; anything unparsable counts as upcoming"""
    if not event_date:
        return False
    try:
        day = date.fromisoformat(str(event_date)[:10])
    except ValueError:
        return False
    return day < (today or date.today())


def _page_user(user: SessionUser) -> PageUser:
    return PageUser(id=user.id, email=user.email)


class PageService:
    def __init__(
        self,
        supabase,
        events: ChangeBus,
        view_cache: ViewCache,
        today: Callable[[], date] = date.today,
    ):
        self.users = UserService(supabase)
        self.competitions = CompetitionService(supabase, events)
        self.participations = ParticipationService(supabase, events)
        self.view_cache = view_cache
        self.today = today

    def _role_of(self, user_id: str) -> Optional[Role]:
        try:
            return self.users.get_role(user_id)
        except Exception as e:
            logger.warning(f"Role lookup failed for {user_id}: {e}")
            return None

    def landing(self) -> PageResult:
        return PageResult(payload=LandingPage(competitions=self.competitions.list_visible()))

    def manager_dashboard(self, caller: Optional[SessionUser]) -> PageResult:
        if caller is None:
            return PageResult(redirect_to=routes_config.LANDING_PATH)
        if self._role_of(caller.id) is not Role.EVENT_MANAGER:
            return PageResult(redirect_to=ATHLETE_DASHBOARD_PATH)

        cached = self.view_cache.get(MANAGER_DASHBOARD_PATH, caller.id)
        if cached is not None:
            return PageResult(payload=cached)

        competitions = self.competitions.list_created_by(caller.id)
        payload = ManagerDashboardPage(
            user=_page_user(caller),
            competitions=competitions,
            available_sports=self.competitions.available_sports(competitions),
        )
        self.view_cache.set(MANAGER_DASHBOARD_PATH, caller.id, payload)
        return PageResult(payload=payload)

    def athlete_dashboard(self, caller: Optional[SessionUser], filters: CompetitionFilters) -> PageResult:
        if caller is None:
            return PageResult(redirect_to=routes_config.LANDING_PATH)
        # An unknown role stays here; sending it back to /dashboard would bounce forever
        if self._role_of(caller.id) is Role.EVENT_MANAGER:
            return PageResult(redirect_to=MANAGER_DASHBOARD_PATH)

        variant = (filters.sport, filters.organizer, filters.open_only)
        cached = self.view_cache.get(ATHLETE_DASHBOARD_PATH, caller.id, variant)
        if cached is not None:
            return PageResult(payload=cached)

        visible = self.competitions.list_visible()
        payload = AthleteDashboardPage(
            user=_page_user(caller),
            competitions=self.competitions.apply_filters(visible, filters),
            joined_competition_ids=self.participations.joined_competition_ids(caller.id),
            available_sports=self.competitions.available_sports(visible),
            available_organizers=self.competitions.available_organizers(visible),
            filters=filters,
        )
        self.view_cache.set(ATHLETE_DASHBOARD_PATH, caller.id, payload, variant)
        return PageResult(payload=payload)

    def profile(self, caller: Optional[SessionUser]) -> PageResult:
        if caller is None:
            return PageResult(redirect_to=routes_config.LANDING_PATH)
        profile = self.users.get_profile(caller.id)
        if profile is None:
            return PageResult(payload=ProfilePage(user=_page_user(caller), email=caller.email))

        try:
            role_label = Role(profile.role).label
        except ValueError:
            role_label = None
        return PageResult(payload=ProfilePage(
            user=_page_user(caller),
            full_name=profile.full_name,
            email=profile.email or caller.email,
            role=profile.role,
            role_label=role_label,
        ))

    def competitions_list(self, caller: Optional[SessionUser], filters: CompetitionFilters) -> PageResult:
        visible = self.competitions.list_visible()
        payload = CompetitionsPage(
            competitions=self.competitions.apply_filters(visible, filters),
            available_sports=self.competitions.available_sports(visible),
            available_organizers=self.competitions.available_organizers(visible),
            filters=filters,
        )
        if caller is not None:
            role = self._role_of(caller.id)
            payload.user = _page_user(caller)
            payload.role = role.value if role else None
            payload.joined_competition_ids = self.participations.joined_competition_ids(caller.id)
        return PageResult(payload=payload)

    def competition_detail(self, caller: Optional[SessionUser], competition_id: str) -> PageResult:
        if caller is None:
            return PageResult(redirect_to=routes_config.LANDING_PATH)

        competition = self.competitions.get_competition(competition_id)
        if competition is None:
            return PageResult(redirect_to=routes_config.LANDING_PATH)

        is_creator = competition.created_by == caller.id
        if not competition.is_visible and not is_creator:
            if self._role_of(caller.id) is not Role.EVENT_MANAGER:
                return PageResult(redirect_to=routes_config.LANDING_PATH)

        already_joined = competition.id in self.participations.joined_competition_ids(caller.id)
        past = is_past_event(competition.event_date, self.today())
        return PageResult(payload=CompetitionPage(
            user=_page_user(caller),
            competition=competition,
            creator_full_name=competition.creator_full_name,
            is_creator=is_creator,
            already_joined=already_joined,
            is_past_event=past,
            show_join_button=(
                not is_creator
                and competition.registration_open
                and not already_joined
                and not past
            ),
            participants=self.participations.list_participants(caller, competition.id),
        ))
