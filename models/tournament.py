from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.user import utcnow
from services.database import default_id


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Tournament(BaseModel):
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, validate_default=True)

    id: str = Field(default_factory=default_id, alias="_id")
    title: str
    description: str = ""
    game: str = "BGMI"
    game_mode: str = "Solo"
    type: str = "solo"
    map: str = "Erangel"
    entry_fee: float = 0
    prize_pool: float = 0
    per_kill_reward: float = 0
    currency: str = "INR"
    country: Optional[str] = None
    max_teams: int = 100
    registered_teams: int = 0
    registered_players: int = 0
    start_time: datetime
    status: TournamentStatus = TournamentStatus.UPCOMING
    room_id: str = ""
    room_password: str = ""
    rules: str = ""
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CreateTournamentRequest(BaseModel):
    title: str
    description: str = ""
    game: str = "BGMI"
    game_mode: str = "Solo"
    type: str = "solo"
    map: str = "Erangel"
    entry_fee: float = Field(default=0, ge=0)
    prize_pool: float = Field(default=0, ge=0)
    per_kill_reward: float = Field(default=0, ge=0)
    currency: str = "INR"
    country: Optional[str] = None
    max_teams: int = Field(default=100, gt=0)
    start_time: datetime
    rules: str = ""


class UpdateTournamentRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    game_mode: Optional[str] = None
    map: Optional[str] = None
    entry_fee: Optional[float] = Field(default=None, ge=0)
    prize_pool: Optional[float] = Field(default=None, ge=0)
    per_kill_reward: Optional[float] = Field(default=None, ge=0)
    max_teams: Optional[int] = Field(default=None, gt=0)
    start_time: Optional[datetime] = None
    status: Optional[TournamentStatus] = None
    room_id: Optional[str] = None
    room_password: Optional[str] = None
    rules: Optional[str] = None


class JoinTournamentRequest(BaseModel):
    teammates: List[str] = []
    game_id: Optional[str] = None


class TeamMember(BaseModel):
    username: str
    game_id: str = ""
    is_owner: bool = False


class TournamentRegistration(BaseModel):
    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    tournament_id: str
    team_name: str
    game_id: str = ""
    teammates: List[str] = []
    team_members: List[TeamMember] = []
    status: str = "registered"
    registered_at: datetime = Field(default_factory=utcnow)
    kills: int = 0
    position: Optional[int] = None
    points: int = 0
    total_prize_earned: float = 0
    result_image_url: Optional[str] = None
    result_submitted: bool = False
    result_submitted_at: Optional[datetime] = None
    result_verified: bool = False
    result_verified_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)


class UserMatch(BaseModel):
    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    tournament_id: str
    tournament_title: str
    game_mode: str = "Solo"
    type: str = "solo"
    entry_fee: float = 0
    prize_pool: float = 0
    status: str
    start_time: datetime
    registered_at: datetime = Field(default_factory=utcnow)
    kills: int = 0
    position: Optional[int] = None
    result: str = "pending"
    result_image_url: Optional[str] = None
    room_id: str = ""
    room_password: str = ""


class MatchResultRequest(BaseModel):
    screenshot: str
    kills: Optional[int] = Field(default=None, ge=0)
    position: Optional[int] = Field(default=None, ge=1)
