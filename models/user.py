from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from services.database import default_id


def utcnow():
    return datetime.now(timezone.utc)


class KycStatus(str, Enum):
    NOT_SUBMITTED = "NOT_SUBMITTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class UserProfile(BaseModel):
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, validate_default=True)

    id: str = Field(default_factory=default_id, alias="_id")
    email: EmailStr
    username: str
    password: Optional[str] = None
    display_name: Optional[str] = None
    game_id: str = ""
    country: str = "India"
    currency: str = "INR"
    wallet_balance: float = 0
    kyc_status: KycStatus = KycStatus.NOT_SUBMITTED
    role: str = "user"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("kyc_status", mode="before")
    @classmethod
    def normalize_kyc_status(cls, v):
        # Older records store lower-case values and "verified"
        if v is None:
            return KycStatus.NOT_SUBMITTED
        if isinstance(v, str):
            v = v.upper()
            if v == "VERIFIED":
                return KycStatus.APPROVED
        return v

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def player_name(self) -> str:
        return self.username or self.display_name or "Player"


class PublicProfile(BaseModel):
    id: str = Field(alias="_id")
    email: EmailStr
    username: str
    display_name: Optional[str] = None
    game_id: str = ""
    country: str
    currency: str
    wallet_balance: float
    kyc_status: KycStatus
    role: str


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=32)
    email: EmailStr
    password: str = Field(min_length=6)
    country: str = "India"
    game_id: str = ""
    display_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    game_id: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
