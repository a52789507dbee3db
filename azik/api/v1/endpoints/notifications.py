from fastapi import APIRouter, Depends, Path, Query
from typing import List
from pydantic import UUID4
from ....core.dependencies import Services, get_current_user, get_services
from ....schemas.base import MessageResponse
from ....schemas.notification import NotificationResponse, UnreadCount

router = APIRouter(tags=["notifications"])

@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Get the current user's notifications, newest first.
    """
    return await services.notifications.list_for_user(current_user["id"], skip=skip, limit=limit)

@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    count = await services.notifications.unread_count(current_user["id"])
    return {"count": count}

@router.put("/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Mark all of the current user's notifications as read.
    """
    updated = await services.notifications.mark_all_read(current_user["id"])
    return {"message": f"Marked {updated} notifications as read"}

@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID4 = Path(...),
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await services.notifications.mark_read(str(notification_id), current_user["id"])
