from datetime import datetime

from pydantic import BaseModel, Field

from models.user import utcnow
from services.database import default_id


class Notification(BaseModel):
    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    title: str
    message: str
    type: str = "info"
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class CreateNotificationRequest(BaseModel):
    user_id: str
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: str = "info"
