from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from models.support import CreateTicketRequest
from models.user import UserProfile
from services.auth import get_current_user
from services.support import create_ticket, get_user_tickets

router = APIRouter(prefix="/support")


@router.post("/tickets")
async def submit_ticket(request: CreateTicketRequest, user: UserProfile = Depends(get_current_user)):
    ticket = await create_ticket(user, request)
    return {
        "success": True,
        "message": "Support ticket created successfully",
        "ticket_id": ticket.ticket_id,
        "ticket": jsonable_encoder(ticket.model_dump(by_alias=True)),
    }


@router.get("/tickets")
async def my_tickets(user: UserProfile = Depends(get_current_user)):
    tickets = await get_user_tickets(user.id)
    return {"success": True, "tickets": jsonable_encoder([ticket.model_dump(by_alias=True) for ticket in tickets])}
