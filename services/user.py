import logging
import re
from datetime import datetime, timezone

from fastapi import HTTPException, status
from pymongo.errors import DuplicateKeyError

from models.user import UserProfile, ProfileUpdate
from services.database import get_db

logger = logging.getLogger(__name__)


async def get_user_by_id(user_id: str):
    user = await get_db().users.find_one({"_id": user_id})
    if user:
        return UserProfile(**user)


async def get_user_by_email(email: str):
    user = await get_db().users.find_one({"email": email})
    if user:
        return UserProfile(**user)


async def get_user(username: str):
    user = await get_db().users.find_one({"username": username})
    if user:
        return UserProfile(**user)


async def create_user(user: UserProfile) -> UserProfile:
    try:
        await get_db().users.insert_one(user.model_dump(by_alias=True, mode="python"))
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="auth/email-already-in-use",
        )
    logger.info("Registered user %s (%s)", user.username, user.id)
    return user


async def unique_username(base_username: str) -> str:
    username = base_username
    counter = 1
    while await get_db().users.find_one({"username": username}):
        username = f"{base_username}{counter}"
        counter += 1
    return username


async def get_usernames_starting_with(query: str):
    cursor = get_db().users.find(
        {"username": {"$regex": f"^{re.escape(query)}"}},
        {"_id": 1, "username": 1, "game_id": 1}
    ).limit(10)
    usernames = []
    async for user in cursor:
        usernames.append({"id": str(user["_id"]), "username": user["username"], "game_id": user.get("game_id", "")})
    return usernames


async def update_profile(target_id: str, updates: ProfileUpdate, requester: UserProfile) -> UserProfile:
    """Apply profile changes to ``target_id`` on behalf of ``requester``.

    Only the owner or an admin may edit a profile, and only an admin may change the
    country. Wallet balance, KYC status and role are not part of ProfileUpdate and
    therefore never written here.
    """
    if requester.id != target_id and not requester.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to update this user")

    changes = updates.model_dump(exclude_none=True)
    if "country" in changes and not requester.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admin can update country")
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    changes["updated_at"] = datetime.now(timezone.utc)
    result = await get_db().users.update_one({"_id": target_id}, {"$set": changes})
    if result.matched_count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await get_user_by_id(target_id)
