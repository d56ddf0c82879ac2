from pydantic import BaseModel, EmailStr
from typing import Optional


class SignUpRequest(BaseModel):
    # Left optional so a missing field gets the form's own message instead of a 422
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None  # "participant", "event_manager" or legacy "event_creator"


class SignUpResponse(BaseModel):
    user_id: str
    email: str
    role: str
    message: str


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class SignInResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    role: Optional[str] = None
    redirect_to: str


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None
    callback_url: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class AuthActionResponse(BaseModel):
    message: str
    redirect_to: Optional[str] = None


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
