from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional
from pydantic import UUID4
from ....core.dependencies import Services, get_current_user, get_services
from ....schemas.listing import ListingCreate, ListingCreated, ListingStatus, ListingWithOwner
from ....schemas.offer import OfferDetail

router = APIRouter(tags=["listings"])

@router.post("", response_model=ListingCreated, status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing: ListingCreate,
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Post a new surplus-food listing.

    The pickup window is a time of day; `endTime` must be later than
    `startTime`.
    """
    new_listing = await services.listings.create_listing(current_user["id"], listing)
    return {"message": "Listing created successfully", "listing_id": new_listing["id"]}

@router.get("", response_model=List[ListingWithOwner])
async def get_listings(
    province: Optional[str] = None,
    district: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    services: Services = Depends(get_services)
):
    """
    Browse active listings, newest first.

    Each listing carries the owner's name, phone and address area. Filter by
    the owner's province and district.
    """
    return await services.listings.list_active(province=province, district=district, skip=skip, limit=limit)

@router.get("/mine", response_model=List[ListingWithOwner])
async def get_my_listings(
    status: Optional[ListingStatus] = None,
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    return await services.listings.list_mine(current_user["id"], status)

@router.get("/{listing_id}/offers", response_model=List[OfferDetail])
async def get_listing_offers(
    listing_id: UUID4 = Path(...),
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Offers made on one of your listings, with each offerer's contact details."""
    return await services.offers.list_listing_offers(str(listing_id), current_user["id"])

@router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(
    listing_id: UUID4 = Path(...),
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Delete one of your listings and every offer made on it."""
    await services.listings.delete_listing(str(listing_id), current_user["id"])
    return None
