from fastapi import APIRouter, Depends, HTTPException, status
from app.core.dependencies import get_user_service, require_session_user
from app.core.identity import SessionUser
from app.modules.users.schemas import UserProfile
from app.modules.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfile)
async def get_my_profile(
    current_user: SessionUser = Depends(require_session_user),
    service: UserService = Depends(get_user_service)
):
    """Profile of the signed-in caller"""
    profile = service.get_profile(current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile
