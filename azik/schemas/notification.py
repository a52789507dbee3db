from pydantic import UUID4
from typing import Optional
from datetime import datetime
from enum import Enum
from .base import APIModel

class NotificationType(str, Enum):
    NEW_OFFER = "new_offer"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_REJECTED = "offer_rejected"
    SYSTEM = "system"

class NotificationResponse(APIModel):
    id: UUID4
    user_id: UUID4
    type: NotificationType
    title: str
    message: str
    is_read: bool = False
    related_id: Optional[UUID4] = None  # offer the notification is about
    created_at: datetime

class UnreadCount(APIModel):
    count: int

class CleanupResult(APIModel):
    message: str
    deleted_count: int
    cutoff: datetime
