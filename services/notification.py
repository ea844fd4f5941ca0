import logging
from typing import List

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from models.notification import Notification
from services.database import get_db
from services.websocket import manager as websocket_manager

logger = logging.getLogger(__name__)


async def create_notification(user_id: str, title: str, message: str, type: str = "info") -> Notification:
    notification = Notification(user_id=user_id, title=title, message=message, type=type or "info")
    await get_db().notifications.insert_one(notification.model_dump(by_alias=True))
    await websocket_manager.push(user_id, {"type": "notification", "notification": jsonable_encoder(notification)})
    return notification


async def notify_quietly(user_id: str, title: str, message: str, type: str = "info"):
    """Create a notification as a side effect; failures are logged and ignored."""
    try:
        await create_notification(user_id, title, message, type)
    except (PyMongoError, RuntimeError) as error:
        logger.warning("Could not notify %s (%s): %s", user_id, title, error)


async def get_user_notifications(user_id: str) -> List[Notification]:
    docs = await get_db().notifications.find({"user_id": user_id}).sort("created_at", DESCENDING).to_list(length=None)
    return [Notification(**doc) for doc in docs]


async def mark_as_read(user_id: str, notification_id: str):
    result = await get_db().notifications.update_one(
        {"_id": notification_id, "user_id": user_id},
        {"$set": {"read": True}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Notification not found")


async def mark_all_as_read(user_id: str) -> int:
    result = await get_db().notifications.update_many(
        {"user_id": user_id, "read": False},
        {"$set": {"read": True}},
    )
    return result.modified_count
