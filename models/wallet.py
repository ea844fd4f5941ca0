from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from models.user import utcnow
from services.database import default_id


class WalletTransaction(BaseModel):
    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    type: str
    amount: float
    currency: str = "INR"
    status: str = "PENDING"
    payment_method: str = "wallet"
    description: str = ""
    reference: Optional[str] = None
    processed: bool = False
    metadata: Dict = {}
    pending_deposit_id: Optional[str] = None
    pending_withdrawal_id: Optional[str] = None
    bank_details: Optional[Dict[str, str]] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserDetails(BaseModel):
    name: str
    email: str


class PendingDeposit(BaseModel):
    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    amount: float
    currency: str
    upi_ref_id: str
    status: str = "PENDING"
    user_details: UserDetails
    metadata: Dict = {}
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PendingWithdrawal(BaseModel):
    id: str = Field(default_factory=default_id, alias="_id")
    user_id: str
    amount: float
    currency: str
    status: str = "PENDING"
    user_details: UserDetails
    bank_details: Dict[str, str] = {}
    payment_method: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DepositRequest(BaseModel):
    amount: float
    payment_method: str
    upi_ref_id: Optional[str] = None


class WithdrawalRequest(BaseModel):
    amount: float
    payment_method: str
    account_number: str = ""
    account_name: str = ""
    bank_name: str = ""
    ifsc_code: Optional[str] = None
    upi_id: Optional[str] = None
    swift_code: Optional[str] = None
    routing_number: Optional[str] = None
