from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from models.tournament import MatchResultRequest
from models.user import UserProfile
from services.auth import get_current_user
from services.match import get_user_matches, submit_match_result, cleanup_orphaned_user_matches

router = APIRouter(prefix="/matches")


@router.get("")
async def my_matches(user: UserProfile = Depends(get_current_user)):
    return jsonable_encoder(await get_user_matches(user))


@router.post("/cleanup")
async def cleanup_matches(user: UserProfile = Depends(get_current_user)):
    removed = await cleanup_orphaned_user_matches(user)
    return {"removed": removed}


@router.post("/{match_id}/result")
async def submit_result(match_id: str, request: MatchResultRequest, user: UserProfile = Depends(get_current_user)):
    registration = await submit_match_result(user, match_id, request.screenshot, request.kills, request.position)
    return {"success": True, "registration": jsonable_encoder(registration.model_dump(by_alias=True))}
