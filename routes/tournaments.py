from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from models.tournament import CreateTournamentRequest, UpdateTournamentRequest, JoinTournamentRequest, TournamentStatus
from models.user import UserProfile
from services.auth import get_current_user, get_admin_user
from services.tournament import list_tournaments, get_tournament, create_tournament, update_tournament, \
    delete_tournament, join_tournament, get_registration
from services.user import get_user_by_id

router = APIRouter(prefix="/tournaments")


@router.get("")
async def tournaments(status: Optional[TournamentStatus] = None, user: UserProfile = Depends(get_current_user)):
    return [tournament.model_dump(by_alias=True) for tournament in await list_tournaments(status)]


@router.get("/{tournament_id}")
async def tournament_detail(tournament_id: str, user: UserProfile = Depends(get_current_user)):
    tournament = await get_tournament(tournament_id)
    registration = await get_registration(user.id, tournament_id)
    return {
        "tournament": jsonable_encoder(tournament.model_dump(by_alias=True)),
        "registered": registration is not None,
    }


@router.post("")
async def create_tournament_endpoint(request: CreateTournamentRequest, admin: UserProfile = Depends(get_admin_user)):
    created_tournament = await create_tournament(request, owner=admin)
    return JSONResponse(status_code=201, content={"tournament": jsonable_encoder(created_tournament.model_dump(by_alias=True))})


@router.patch("/{tournament_id}")
async def update_tournament_endpoint(tournament_id: str, request: UpdateTournamentRequest,
                                     admin: UserProfile = Depends(get_admin_user)):
    tournament = await update_tournament(tournament_id, request)
    return {"tournament": jsonable_encoder(tournament.model_dump(by_alias=True))}


@router.delete("/{tournament_id}")
async def delete_tournament_endpoint(tournament_id: str, admin: UserProfile = Depends(get_admin_user)):
    await delete_tournament(tournament_id)
    return {"message": "Tournament deleted"}


@router.post("/{tournament_id}/join")
async def join_tournament_endpoint(tournament_id: str, request: JoinTournamentRequest,
                                   user: UserProfile = Depends(get_current_user)):
    registration = await join_tournament(user, tournament_id, request)
    refreshed = await get_user_by_id(user.id)
    return JSONResponse(status_code=200, content={
        "registration": jsonable_encoder(registration.model_dump(by_alias=True)),
        "wallet_balance": refreshed.wallet_balance,
    })
