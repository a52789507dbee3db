from pydantic import Field, UUID4, field_validator, model_validator
from typing import Optional
from datetime import datetime, time
from enum import Enum
from .base import APIModel

class ListingStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

class ListingCreate(APIModel):
    food_name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., gt=0, strict=True)
    details: Optional[str] = Field(None, max_length=500)
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time")
    @classmethod
    def naive_whole_minutes(cls, v: time) -> time:
        if v.tzinfo is not None:
            raise ValueError("Times must not include a timezone")
        # Stored as HH:MM
        return v.replace(second=0, microsecond=0)

    @model_validator(mode="after")
    def end_after_start(self):
        # Pickup windows never cross midnight
        if self.end_time <= self.start_time:
            raise ValueError("End time must be later than start time")
        return self

class ListingResponse(APIModel):
    id: UUID4
    user_id: UUID4
    food_name: str
    quantity: int
    details: str = ""
    start_time: str
    end_time: str
    status: ListingStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    accepted_offer_id: Optional[UUID4] = None

class ListingWithOwner(ListingResponse):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    neighborhood: Optional[str] = None

class ListingCreated(APIModel):
    message: str
    listing_id: UUID4
