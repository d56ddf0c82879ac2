from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class Role(str, Enum):
    PARTICIPANT = "participant"
    EVENT_MANAGER = "event_manager"

    @classmethod
    def from_signup(cls, value: Optional[str]) -> "Role":
        """Sign-up forms still send the legacy `event_creator` value for organizers"""
        if value in ("event_creator", cls.EVENT_MANAGER.value):
            return cls.EVENT_MANAGER
        return cls.PARTICIPANT

    @property
    def label(self) -> str:
        return "Event Manager" if self is Role.EVENT_MANAGER else "Participant"


class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Unknown"
