from fastapi import APIRouter, Depends, Path, status
from typing import List
from pydantic import UUID4
from ....core.dependencies import Services, get_current_user, get_services
from ....schemas.offer import OfferCreate, OfferCreated, OfferDecision, OfferDetail, OfferResolved, OfferUpdate

router = APIRouter(tags=["offers"])

@router.post("", response_model=OfferCreated, status_code=status.HTTP_201_CREATED)
async def create_offer(
    offer: OfferCreate,
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Make an offer on someone else's active listing.

    One offer per user per listing. The listing owner is notified.
    """
    new_offer = await services.offers.create_offer(str(offer.listing_id), current_user)
    return {"message": "Offer sent successfully", "offer_id": new_offer["id"]}

@router.get("/mine", response_model=List[OfferDetail])
async def get_my_offers(
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Offers you made, with the listing and its owner's contact details."""
    return await services.offers.list_my_offers(current_user["id"])

@router.get("/received", response_model=List[OfferDetail])
async def get_received_offers(
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Offers made on any of your listings."""
    return await services.offers.list_received_offers(current_user["id"])

@router.put("/{offer_id}", response_model=OfferResolved)
async def resolve_offer(
    update: OfferUpdate,
    offer_id: UUID4 = Path(...),
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """
    Accept or reject an offer on one of your listings.

    Accepting completes the listing and rejects every other pending offer on
    it. An offer can only be resolved once.
    """
    offer = await services.offers.resolve_offer(str(offer_id), current_user["id"], update.status)
    if update.status == OfferDecision.ACCEPTED:
        message = "Offer accepted"
    else:
        message = "Offer rejected"
    return {"message": message, "offer": offer}
