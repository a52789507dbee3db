from pydantic import UUID4
from typing import Optional
from datetime import datetime
from enum import Enum
from .base import APIModel

class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class OfferDecision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class OfferCreate(APIModel):
    listing_id: UUID4

class OfferUpdate(APIModel):
    status: OfferDecision

class OfferResponse(APIModel):
    id: UUID4
    listing_id: UUID4
    offerer_id: UUID4
    status: OfferStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

class OfferDetail(OfferResponse):
    """An offer joined with its listing and the other party's public profile."""
    food_name: Optional[str] = None
    quantity: Optional[int] = None
    details: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    listing_status: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None

class OfferCreated(APIModel):
    message: str
    offer_id: UUID4

class OfferResolved(APIModel):
    message: str
    offer: OfferResponse
