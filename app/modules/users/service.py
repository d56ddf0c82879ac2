from app.modules.users.schemas import Role, UserProfile
from typing import Dict, Iterable, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, supabase):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Get user profile by ID, None when the trigger has not written it"""
        try:
            result = self.supabase.table("users")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                return None

            return UserProfile(**result.data)
        except Exception as e:
            logger.error(f"Error getting profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_role(self, user_id: str) -> Role:
        """Role of the profile; LookupError when it is missing or not a known role"""
        result = self.supabase.table("users")\
            .select("role")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()

        if not result or not result.data:
            raise LookupError(f"No profile for user {user_id}")
        try:
            return Role(result.data.get("role"))
        except ValueError:
            raise LookupError(f"Unknown role {result.data.get('role')!r} for user {user_id}")

    def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        """Profiles keyed by id, used to attach creator names to competitions"""
        ids = sorted({u for u in user_ids if u})
        if not ids:
            return {}
        try:
            result = self.supabase.table("users")\
                .select("*")\
                .in_("id", ids)\
                .execute()
            return {row["id"]: UserProfile(**row) for row in (result.data or [])}
        except Exception as e:
            logger.error(f"Error getting user profiles: {e}")
            raise HTTPException(status_code=500, detail=str(e))
