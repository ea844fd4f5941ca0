from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from models.user import utcnow
from services.database import default_id


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SupportTicket(BaseModel):
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, validate_default=True)

    id: str = Field(default_factory=default_id, alias="_id")
    ticket_id: str
    user_id: str
    user_email: str = ""
    username: str = "Anonymous"
    subject: str
    category: str
    priority: TicketPriority
    description: str
    status: str = "open"
    responses: List[dict] = []
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CreateTicketRequest(BaseModel):
    subject: str = Field(min_length=1)
    category: str = Field(min_length=1)
    priority: TicketPriority
    description: str = Field(min_length=1)
