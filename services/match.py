import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException
from pymongo import DESCENDING

from models.tournament import TournamentRegistration, UserMatch
from models.user import UserProfile
from services.database import get_db
from services.storage import upload_image

logger = logging.getLogger(__name__)

PLACEMENT_POINTS = {1: 10, 2: 6, 3: 4}
TOP_TEN_POINTS = 2


def calculate_tournament_points(kills: int, position: Optional[int]) -> int:
    points = kills
    if position in PLACEMENT_POINTS:
        points += PLACEMENT_POINTS[position]
    elif position and position <= 10:
        points += TOP_TEN_POINTS
    return points


async def get_user_matches(user: UserProfile) -> List[dict]:
    """The user's joined matches, merged with live tournament and registration data."""
    db = get_db()
    docs = await db.user_matches.find({"user_id": user.id}).sort("registered_at", DESCENDING).to_list(length=None)

    matches = []
    for doc in docs:
        match = UserMatch(**doc)
        tournament = await db.tournaments.find_one({"_id": match.tournament_id}) or {}
        registration = await db.tournament_registrations.find_one(
            {"user_id": user.id, "tournament_id": match.tournament_id}
        ) or {}

        merged = match.model_dump(by_alias=True)
        merged.update({
            "status": tournament.get("status", match.status),
            "room_id": tournament.get("room_id") or match.room_id,
            "room_password": tournament.get("room_password") or match.room_password,
            "kills": registration.get("kills") or match.kills,
            "position": registration.get("position") or match.position,
            "result": "approved" if registration.get("result_submitted") and registration.get("result_verified")
            else "pending",
            "teammates": registration.get("teammates", []),
            "team_members": registration.get("team_members", []),
            "team_name": registration.get("team_name") or user.player_name,
            "result_submitted": registration.get("result_submitted", False),
            "result_verified": registration.get("result_verified", False),
            "result_image_url": registration.get("result_image_url") or match.result_image_url,
        })
        matches.append(merged)
    return matches


async def submit_match_result(user: UserProfile, match_id: str, screenshot: str,
                              kills: Optional[int] = None, position: Optional[int] = None) -> TournamentRegistration:
    """Store a result screenshot and the reported kills/position for one match.

    ``match_id`` is normally a user match id; a registration id is accepted too.
    Either way the registration is the record that ends up carrying the result.
    """
    db = get_db()
    user_match = await db.user_matches.find_one({"_id": match_id})
    if user_match:
        if user_match["user_id"] != user.id:
            raise HTTPException(status_code=403, detail="Not your match")
        registration_filter = {"user_id": user.id, "tournament_id": user_match["tournament_id"]}
    else:
        registration_filter = {"_id": match_id, "user_id": user.id}

    registration = await db.tournament_registrations.find_one(registration_filter)
    if not registration:
        raise HTTPException(status_code=404, detail="Tournament registration not found")

    image_url = await upload_image(screenshot, f"screenshots/{user.id}/{match_id}", "result")
    now = datetime.now(timezone.utc)

    result_fields = {}
    if kills is not None:
        result_fields["kills"] = kills
    if position is not None:
        result_fields["position"] = position

    if user_match:
        await db.user_matches.update_one(
            {"_id": match_id},
            {"$set": {"result_image_url": image_url, "result_submitted": True,
                      "result_submitted_at": now, "updated_at": now, **result_fields}},
        )

    await db.tournament_registrations.update_one(
        {"_id": registration["_id"]},
        {"$set": {
            "result_image_url": image_url,
            "result_submitted": True,
            "result_submitted_at": now,
            "points": calculate_tournament_points(kills or 0, position),
            "updated_at": now,
            **result_fields,
        }},
    )
    logger.info("Result submitted for registration %s by %s", registration["_id"], user.id)
    return TournamentRegistration(**await db.tournament_registrations.find_one({"_id": registration["_id"]}))


async def cleanup_orphaned_user_matches(user: UserProfile) -> int:
    db = get_db()
    orphaned = []
    async for doc in db.user_matches.find({"user_id": user.id}):
        if not await db.tournament_registrations.find_one({"user_id": user.id, "tournament_id": doc["tournament_id"]}):
            orphaned.append(doc["_id"])
    if orphaned:
        await db.user_matches.delete_many({"_id": {"$in": orphaned}})
        logger.info("Removed %d orphaned user matches for %s", len(orphaned), user.id)
    return len(orphaned)
