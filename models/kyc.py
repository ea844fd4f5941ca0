from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.user import KycStatus, utcnow
from services.database import default_id


class KycDocument(BaseModel):
    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, validate_default=True)

    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    document_type: str
    document_number: str
    front_image_url: str
    back_image_url: str = ""
    selfie_url: str = ""
    status: KycStatus = KycStatus.PENDING
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class KycSubmission(BaseModel):
    document_type: str
    document_number: str = Field(min_length=4)
    front_image: str
    back_image: Optional[str] = None
    selfie: Optional[str] = None


class KycOverview(BaseModel):
    status: KycStatus
    can_submit: bool
    required_documents: List[str]
    documents: List[KycDocument]
