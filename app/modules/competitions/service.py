from app.config.routes_config import COMPETITION_LIST_VIEWS, competition_detail_path
from app.core.events import ChangeBus, INSERT, UPDATE, DELETE
from app.core.identity import SessionUser
from app.core.outcome import Outcome, OutcomeReason
from app.modules.competitions.schemas import (
    CompetitionCreate, CompetitionUpdate, CompetitionResponse, CompetitionFilters
)
from app.modules.users.service import UserService
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

COMPETITIONS_TOPIC = "competitions"

REQUIRED_FIELDS = ("name", "event_date", "venue", "sport")
OPTIONAL_UPDATE_FIELDS = {"description", "is_visible", "registration_open"}


def store_error_message(error: Exception) -> str:
    """postgrest APIError carries .message; anything else falls back to str()"""
    return getattr(error, "message", None) or str(error)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class CompetitionService:
    def __init__(self, supabase, events: ChangeBus):
        self.supabase = supabase
        self.events = events
        self.users = UserService(supabase)

    def _notify(self, event_type: str, record: Dict[str, Any]) -> None:
        """Publish the row change and mark every view showing it as stale"""
        self.events.publish(COMPETITIONS_TOPIC, event_type, record)
        for path in COMPETITION_LIST_VIEWS:
            self.events.revalidate(path)
        if record.get("id"):
            self.events.revalidate(competition_detail_path(record["id"]))

    # -- mutations ------------------------------------------------------

    def create_competition(self, caller: Optional[SessionUser], data: CompetitionCreate) -> Outcome:
        """Create a competition owned by the caller"""
        if caller is None:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED, "You must be logged in to create a competition")

        if any(_blank(getattr(data, f)) for f in REQUIRED_FIELDS):
            return Outcome.failure(OutcomeReason.VALIDATION, "All fields are required")

        sport = data.sport.strip()
        insert_data = {
            "name": data.name.strip(),
            "event_date": data.event_date,
            "description": data.description if not _blank(data.description) else f"{sport} competition",
            "venue": data.venue.strip(),
            "sport": sport,
            "created_by": caller.id,
            "is_visible": True,
            "registration_open": True,
        }
        try:
            result = self.supabase.table("competitions").insert(insert_data).execute()
        except Exception as e:
            logger.error(f"Error creating competition for {caller.id}: {e}")
            return Outcome.failure(OutcomeReason.STORE, f"Failed to create competition: {store_error_message(e)}")

        if not result.data:
            return Outcome.failure(OutcomeReason.STORE, "Failed to create competition: no data returned")

        row = result.data[0]
        logger.info(f"Competition {row.get('id')} created by {caller.id}")
        self._notify(INSERT, row)
        return Outcome.success(CompetitionResponse(**row), "Competition created successfully!")

    def update_competition(self, caller: Optional[SessionUser], data: CompetitionUpdate) -> Outcome:
        """Update a competition the caller owns; created_by is never written"""
        if caller is None:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED, "You must be logged in to update a competition")

        if _blank(data.id):
            return Outcome.failure(OutcomeReason.VALIDATION, "Competition ID is required")

        if any(_blank(getattr(data, f)) for f in REQUIRED_FIELDS):
            return Outcome.failure(OutcomeReason.VALIDATION, "All fields are required")

        # Ownership is checked here and again by the update filter below
        try:
            existing = self.supabase.table("competitions")\
                .select("id")\
                .eq("id", data.id)\
                .eq("created_by", caller.id)\
                .maybe_single()\
                .execute()
            found = bool(existing and existing.data)
        except Exception as e:
            logger.warning(f"Ownership check for competition {data.id} failed: {e}")
            found = False

        if not found:
            return Outcome.failure(
                OutcomeReason.NOT_FOUND,
                "Competition not found or you don't have permission to edit it"
            )

        update_data = {
            "name": data.name.strip(),
            "event_date": data.event_date,
            "venue": data.venue.strip(),
            "sport": data.sport.strip(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        # Columns the caller did not send keep their stored value
        update_data.update(data.model_dump(include=OPTIONAL_UPDATE_FIELDS, exclude_unset=True))
        try:
            result = self.supabase.table("competitions")\
                .update(update_data)\
                .eq("id", data.id)\
                .eq("created_by", caller.id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating competition {data.id}: {e}")
            return Outcome.failure(OutcomeReason.STORE, f"Failed to update competition: {store_error_message(e)}")

        if not result.data:
            # Row vanished between the ownership check and the update
            return Outcome.failure(
                OutcomeReason.CONFLICT,
                "No competition was updated - you may not have permission"
            )

        row = result.data[0]
        logger.info(f"Competition {data.id} updated by {caller.id}")
        self._notify(UPDATE, row)
        return Outcome.success(CompetitionResponse(**row), "Competition updated successfully!")

    def delete_competition(self, caller: Optional[SessionUser], competition_id: Optional[str]) -> Outcome:
        """Delete a competition the caller owns"""
        if caller is None:
            return Outcome.failure(OutcomeReason.UNAUTHENTICATED, "You must be logged in to delete a competition")

        if _blank(competition_id):
            return Outcome.failure(OutcomeReason.VALIDATION, "Competition ID is required")

        try:
            result = self.supabase.table("competitions")\
                .delete()\
                .eq("id", competition_id)\
                .eq("created_by", caller.id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting competition {competition_id}: {e}")
            return Outcome.failure(OutcomeReason.STORE, f"Failed to delete competition: {store_error_message(e)}")

        if not result.data:
            return Outcome.failure(
                OutcomeReason.FORBIDDEN,
                "No competition was deleted - you may not have permission"
            )

        logger.info(f"Competition {competition_id} deleted by {caller.id}")
        self._notify(DELETE, result.data[0])
        return Outcome.success({"id": competition_id}, "Competition deleted successfully!")

    # -- reads ----------------------------------------------------------

    def _with_creators(self, rows: List[Dict[str, Any]]) -> List[CompetitionResponse]:
        profiles = self.users.get_profiles(r.get("created_by") for r in rows)
        competitions = []
        for row in rows:
            creator = profiles.get(row.get("created_by"))
            competitions.append(CompetitionResponse(
                **row,
                creator_full_name=creator.full_name if creator else None,
            ))
        return competitions

    def get_competition(self, competition_id: str) -> Optional[CompetitionResponse]:
        """Get competition by ID with its creator's name, None when absent"""
        try:
            result = self.supabase.table("competitions")\
                .select("*")\
                .eq("id", competition_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.warning(f"Error getting competition {competition_id}: {e}")
            return None
        if not result or not result.data:
            return None
        return self._with_creators([result.data])[0]

    def list_created_by(self, user_id: str) -> List[CompetitionResponse]:
        """Competitions owned by user_id, newest first"""
        try:
            result = self.supabase.table("competitions")\
                .select("*")\
                .eq("created_by", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return self._with_creators(result.data or [])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_visible(self, filters: Optional[CompetitionFilters] = None) -> List[CompetitionResponse]:
        """Visible competitions, newest first, narrowed by the optional filters"""
        try:
            result = self.supabase.table("competitions")\
                .select("*")\
                .eq("is_visible", True)\
                .order("created_at", desc=True)\
                .execute()
            competitions = self._with_creators(result.data or [])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return self.apply_filters(competitions, filters)

    @staticmethod
    def apply_filters(
        competitions: List[CompetitionResponse],
        filters: Optional[CompetitionFilters]
    ) -> List[CompetitionResponse]:
        if filters is None:
            return competitions
        selected = competitions
        if filters.sport and filters.sport != "all":
            selected = [c for c in selected if (c.sport or "").lower() == filters.sport.lower()]
        if filters.organizer and filters.organizer != "all":
            selected = [c for c in selected if c.creator_full_name == filters.organizer]
        if filters.open_only:
            selected = [c for c in selected if c.registration_open]
        return selected

    @staticmethod
    def available_sports(competitions: List[CompetitionResponse]) -> List[str]:
        return sorted({c.sport for c in competitions if c.sport})

    @staticmethod
    def available_organizers(competitions: List[CompetitionResponse]) -> List[str]:
        return sorted({c.creator_full_name for c in competitions if c.creator_full_name})
