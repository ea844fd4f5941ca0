from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from models.notification import CreateNotificationRequest
from models.user import UserProfile
from services.auth import get_current_user, get_admin_user
from services.notification import get_user_notifications, mark_as_read, mark_all_as_read, create_notification

router = APIRouter()


@router.get("/notifications")
async def notifications(user: UserProfile = Depends(get_current_user)):
    items = await get_user_notifications(user.id)
    return {
        "notifications": jsonable_encoder([item.model_dump(by_alias=True) for item in items]),
        "unread_count": sum(1 for item in items if not item.read),
    }


@router.post("/notifications/read-all")
async def read_all(user: UserProfile = Depends(get_current_user)):
    return {"updated": await mark_all_as_read(user.id)}


@router.post("/notifications/{notification_id}/read")
async def read_one(notification_id: str, user: UserProfile = Depends(get_current_user)):
    await mark_as_read(user.id, notification_id)
    return {"message": "Notification marked as read"}


@router.post("/admin/notifications")
async def admin_create_notification(request: CreateNotificationRequest, admin: UserProfile = Depends(get_admin_user)):
    notification = await create_notification(request.user_id, request.title, request.message, request.type)
    return {"message": "Notification created", "notification": jsonable_encoder(notification.model_dump(by_alias=True))}
