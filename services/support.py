import logging
import time
from typing import List

from fastapi import HTTPException
from pymongo import DESCENDING

from models.support import SupportTicket, CreateTicketRequest
from models.user import UserProfile
from services.database import get_db

logger = logging.getLogger(__name__)

BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def new_ticket_id() -> str:
    return f"ST-{to_base36(int(time.time() * 1000))}"


async def create_ticket(user: UserProfile, request: CreateTicketRequest) -> SupportTicket:
    subject = request.subject.strip()
    description = request.description.strip()
    if not subject or not description:
        raise HTTPException(status_code=400, detail="Missing required fields")

    ticket = SupportTicket(
        ticket_id=new_ticket_id(),
        user_id=user.id,
        user_email=user.email,
        username=user.username or "Anonymous",
        subject=subject,
        category=request.category.strip(),
        priority=request.priority,
        description=description,
    )
    await get_db().support_tickets.insert_one(ticket.model_dump(by_alias=True))
    logger.info("Support ticket %s opened by %s", ticket.ticket_id, user.id)
    return ticket


async def get_user_tickets(user_id: str) -> List[SupportTicket]:
    docs = await get_db().support_tickets.find({"user_id": user_id}).sort("created_at", DESCENDING).to_list(length=None)
    return [SupportTicket(**doc) for doc in docs]
