import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional
from pydantic import UUID4
from ....core.dependencies import Services, get_current_admin, get_services
from ....core.exceptions import ValidationError
from ....schemas.notification import CleanupResult
from ....schemas.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    admin: dict = Depends(get_current_admin),
    services: Services = Depends(get_services)
):
    """List every registered user. Requires the admin role."""
    return await services.users.list_users()

@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID4 = Path(...),
    admin: dict = Depends(get_current_admin),
    services: Services = Depends(get_services)
):
    """
    Delete a user and everything they own.

    Their listings (with the offers on them), their own offers, notifications
    and verification records are removed as well.
    """
    if str(user_id) == admin["id"]:
        raise ValidationError("You cannot delete your own account")
    await services.users.delete_user(str(user_id))
    logger.info("Admin %s deleted user %s", admin["id"], user_id)
    return None

@router.post("/notifications/cleanup", response_model=CleanupResult)
async def cleanup_notifications(
    hours: Optional[int] = Query(None, ge=1),
    admin: dict = Depends(get_current_admin),
    services: Services = Depends(get_services)
):
    """Delete notifications older than the retention window (default from settings)."""
    retention_hours = hours or services.settings.notification_retention_hours
    result = await services.notifications.cleanup(timedelta(hours=retention_hours))
    return {"message": f"Deleted {result['deleted_count']} notifications", **result}
