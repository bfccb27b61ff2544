# app/schemas/token.py
from enum import Enum

from pydantic import BaseModel


class UserRole(str, Enum):
    organizer = "organizer"
    participant = "participant"


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    role: UserRole = UserRole.participant
    exp: int  # Standard claim for expiration time

    model_config = {"from_attributes": True}

    @property
    def is_organizer(self) -> bool:
        return self.role == UserRole.organizer
