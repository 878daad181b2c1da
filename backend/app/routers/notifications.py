from fastapi import APIRouter, Depends, Query, status

from app.models.notification import NotificationResponse
from app.services.auth_service import get_current_user
from app.services.notification_service import (
    delete_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    notification_to_response,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def my_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user=Depends(get_current_user),
):
    docs = await list_notifications(user["_id"], limit=limit, unread_only=unread_only)
    return [notification_to_response(d) for d in docs]


@router.patch("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def read_notification(notification_id: str, user=Depends(get_current_user)):
    await mark_read(user["_id"], notification_id)


@router.post("/read-all")
async def read_all_notifications(user=Depends(get_current_user)):
    return {"updated": await mark_all_read(user["_id"])}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_notification(notification_id: str, user=Depends(get_current_user)):
    await delete_notification(user["_id"], notification_id)
