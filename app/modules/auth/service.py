from app.config.settings import settings
from app.core.access_gate import home_path_for
from app.core.identity import IdentityProvider, IdentityError, AuthSession, SessionUser
from app.modules.auth.schemas import (
    SignUpRequest, SignUpResponse, SignInRequest, SignInResponse,
    ForgotPasswordRequest, ResetPasswordRequest, AuthActionResponse, CurrentUserResponse
)
from app.modules.users.schemas import Role
from app.modules.users.service import UserService
from app.config import routes_config
from fastapi import HTTPException
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)

RESET_PASSWORD_PATH = "/dashboard/reset-password"


class AuthService:
    def __init__(self, identity: IdentityProvider, supabase):
        self.identity = identity
        self.users = UserService(supabase)

    def sign_up(self, sign_up_data: SignUpRequest) -> SignUpResponse:
        """Register a new account; the profile row is written from the metadata"""
        if not sign_up_data.email or not sign_up_data.password:
            raise HTTPException(status_code=400, detail="Email and password are required")

        role = Role.from_signup(sign_up_data.role)
        metadata = {
            "full_name": sign_up_data.full_name or "",
            "email": sign_up_data.email,
            "role": role.value,
        }
        try:
            user = self.identity.sign_up(sign_up_data.email, sign_up_data.password, metadata)
        except IdentityError as e:
            if e.code == "user_already_exists":
                raise HTTPException(
                    status_code=400,
                    detail="An account with this email already exists. Please sign in instead."
                )
            raise HTTPException(status_code=400, detail=e.message)
        except Exception as e:
            logger.error(f"Sign-up failed for {sign_up_data.email}: {e}")
            raise HTTPException(status_code=500, detail=f"Registration failed: {str(e)}")

        logger.info(f"User {user.id} signed up as {role.value}")
        return SignUpResponse(
            user_id=user.id,
            email=user.email or sign_up_data.email,
            role=role.value,
            message="Thanks for signing up! You can now sign in to access your dashboard.",
        )

    def sign_in(self, sign_in_data: SignInRequest) -> Tuple[SignInResponse, AuthSession]:
        """Authenticate and pick the role home page to send the caller to"""
        try:
            session = self.identity.sign_in(sign_in_data.email, sign_in_data.password)
        except IdentityError as e:
            raise HTTPException(status_code=401, detail=e.message or "Invalid email or password")
        except Exception as e:
            logger.error(f"Sign-in failed for {sign_in_data.email}: {e}")
            raise HTTPException(status_code=500, detail=f"Login failed: {str(e)}")

        try:
            role: Optional[Role] = self.users.get_role(session.user.id)
            redirect_to = home_path_for(role)
        except Exception as e:
            logger.warning(f"Role lookup after sign-in failed for {session.user.id}: {e}")
            role = None
            redirect_to = routes_config.DEFAULT_HOME_PATH

        return SignInResponse(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            user_id=session.user.id,
            email=session.user.email or sign_in_data.email,
            role=role.value if role else None,
            redirect_to=redirect_to,
        ), session

    def sign_out(self, access_token: Optional[str]) -> AuthActionResponse:
        """Revoke the session at the provider; the route clears the cookies either way"""
        if access_token:
            try:
                self.identity.sign_out(access_token)
            except Exception as e:
                logger.warning(f"Provider sign-out failed: {e}")
        return AuthActionResponse(message="Signed out", redirect_to=routes_config.LANDING_PATH)

    def forgot_password(self, request: ForgotPasswordRequest) -> AuthActionResponse:
        if not request.email:
            raise HTTPException(status_code=400, detail="Email is required")

        redirect_to = f"{settings.site_url.rstrip('/')}/auth/callback?redirect_to={RESET_PASSWORD_PATH}"
        try:
            self.identity.send_password_reset(request.email, redirect_to)
        except Exception as e:
            logger.error(f"Password reset mail failed for {request.email}: {e}")
            raise HTTPException(status_code=400, detail="Could not reset password")

        return AuthActionResponse(
            message="Check your email for a link to reset your password.",
            redirect_to=request.callback_url or None,
        )

    def reset_password(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        request: ResetPasswordRequest
    ) -> AuthActionResponse:
        if not request.password or not request.confirm_password:
            raise HTTPException(status_code=400, detail="Password and confirm password are required")

        if request.password != request.confirm_password:
            raise HTTPException(status_code=400, detail="Passwords do not match")

        if not access_token:
            raise HTTPException(status_code=401, detail="You must be logged in")

        try:
            self.identity.update_password(access_token, refresh_token, request.password)
        except Exception as e:
            logger.warning(f"Password update failed: {e}")
            raise HTTPException(status_code=400, detail="Password update failed")

        return AuthActionResponse(message="Password updated")

    def me(self, user: SessionUser) -> CurrentUserResponse:
        profile = self.users.get_profile(user.id)
        if profile is None:
            return CurrentUserResponse(id=user.id, email=user.email)
        return CurrentUserResponse(
            id=user.id,
            email=profile.email or user.email,
            full_name=profile.full_name,
            role=profile.role,
        )
