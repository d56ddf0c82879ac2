from app.config.routes_config import COMPETITION_LIST_VIEWS, competition_detail_path
from app.core.events import ChangeBus, INSERT
from app.core.identity import SessionUser
from app.core.outcome import Outcome, OutcomeReason
from app.database.memory_store import UNIQUE_VIOLATION
from app.modules.competitions.schemas import CompetitionResponse
from app.modules.competitions.service import CompetitionService, store_error_message
from app.modules.participations.schemas import (
    ParticipationResponse, ParticipantEntry, JoinedCompetitionsResponse
)
from app.modules.users.schemas import Role
from app.modules.users.service import UserService
from typing import List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PARTICIPANTS_TOPIC = "competition_participants"

ALREADY_REGISTERED = "You are already registered for this competition"


class ParticipationService:
    def __init__(self, supabase, events: ChangeBus):
        self.supabase = supabase
        self.events = events
        self.users = UserService(supabase)
        self.competitions = CompetitionService(supabase, events)

    def join_competition(self, caller: Optional[SessionUser], competition_id: Optional[str]) -> Outcome:
        """Register the caller for a competition, at most once"""
        if caller is None:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED, "You must be logged in to join a competition")

        if competition_id is None or not str(competition_id).strip():
            return Outcome.failure(OutcomeReason.VALIDATION, "Competition ID is required")

        try:
            competition = self.supabase.table("competitions")\
                .select("id, registration_open")\
                .eq("id", competition_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error loading competition {competition_id} for join: {e}")
            return Outcome.failure(OutcomeReason.STORE, f"Failed to join competition: {store_error_message(e)}")

        if not competition or not competition.data:
            return Outcome.failure(OutcomeReason.NOT_FOUND, "Competition not found")

        if not competition.data.get("registration_open", True):
            return Outcome.failure(OutcomeReason.FORBIDDEN, "Registration is closed for this competition")

        try:
            joined = self._fetch_joined_ids(caller.id)
        except Exception as e:
            logger.error(f"Membership check for {competition_id} failed: {e}")
            return Outcome.failure(OutcomeReason.STORE, f"Failed to join competition: {store_error_message(e)}")

        if competition_id in joined:
            return Outcome.failure(OutcomeReason.CONFLICT, ALREADY_REGISTERED)

        try:
            result = self.supabase.table("competition_participants").insert({
                "user_id": caller.id,
                "competition_id": competition_id,
            }).execute()
        except Exception as e:
            # A concurrent join won the race; the unique constraint caught it
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                logger.info(f"Duplicate join of {competition_id} by {caller.id} rejected by constraint")
                return Outcome.failure(OutcomeReason.CONFLICT, ALREADY_REGISTERED)
            logger.error(f"Error joining competition {competition_id}: {e}")
            return Outcome.failure(OutcomeReason.STORE, f"Failed to join competition: {store_error_message(e)}")

        if not result.data:
            return Outcome.failure(OutcomeReason.STORE, "Failed to join competition - no data returned")

        row = result.data[0]
        logger.info(f"User {caller.id} joined competition {competition_id}")
        self.events.publish(PARTICIPANTS_TOPIC, INSERT, row)
        for path in COMPETITION_LIST_VIEWS:
            self.events.revalidate(path)
        self.events.revalidate(competition_detail_path(competition_id))
        return Outcome.success(ParticipationResponse(**row), "You successfully joined the competition!")

    def _fetch_joined_ids(self, user_id: str) -> List[str]:
        result = self.supabase.table("competition_participants")\
            .select("competition_id")\
            .eq("user_id", user_id)\
            .execute()
        return [row["competition_id"] for row in (result.data or [])]

    def joined_competition_ids(self, user_id: str) -> List[str]:
        """Ids of the competitions user_id has joined; empty on any read error"""
        try:
            return self._fetch_joined_ids(user_id)
        except Exception as e:
            logger.error(f"Error getting joined competitions for {user_id}: {e}")
            return []

    def list_joined_competitions(self, user_id: str) -> JoinedCompetitionsResponse:
        ids = self.joined_competition_ids(user_id)
        if not ids:
            return JoinedCompetitionsResponse()
        try:
            result = self.supabase.table("competitions")\
                .select("*")\
                .in_("id", ids)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        rows = result.data or []
        profiles = self.users.get_profiles(r.get("created_by") for r in rows)
        competitions = []
        for row in rows:
            creator = profiles.get(row.get("created_by"))
            competitions.append(CompetitionResponse(
                **row,
                creator_full_name=creator.full_name if creator else None,
            ))
        return JoinedCompetitionsResponse(competition_ids=ids, competitions=competitions)

    def can_see_contacts(self, caller: Optional[SessionUser], competition: CompetitionResponse) -> bool:
        """Creator of the competition, or anyone holding the event manager role"""
        if caller is None:
            return False
        if competition.created_by == caller.id:
            return True
        try:
            return self.users.get_role(caller.id) is Role.EVENT_MANAGER
        except Exception as e:
            logger.warning(f"Role lookup failed for {caller.id}: {e}")
            return False

    def list_participants(self, caller: Optional[SessionUser], competition_id: str) -> List[ParticipantEntry]:
        """Roster of a competition in join order; emails only for privileged callers"""
        competition = self.competitions.get_competition(competition_id)
        if competition is None:
            return []

        privileged = self.can_see_contacts(caller, competition)
        # Hidden competitions have no public roster
        if not competition.is_visible and not privileged:
            return []

        try:
            result = self.supabase.table("competition_participants")\
                .select("*")\
                .eq("competition_id", competition_id)\
                .order("joined_at")\
                .execute()
        except Exception as e:
            logger.error(f"Error listing participants of {competition_id}: {e}")
            return []

        rows = result.data or []
        profiles = self.users.get_profiles(r.get("user_id") for r in rows)

        roster = []
        for row in rows:
            profile = profiles.get(row.get("user_id"))
            roster.append(ParticipantEntry(
                user_id=row["user_id"],
                full_name=profile.full_name if profile else None,
                email=profile.email if (profile and privileged) else None,
                joined_at=row.get("joined_at"),
            ))
        return roster
