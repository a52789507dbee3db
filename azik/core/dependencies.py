import logging
from dataclasses import dataclass
from typing import Any, Dict
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from .config import Settings
from .database import Database
from .security import decode_access_token, oauth2_scheme
from ..schemas.user import UserRole
from ..services.listing_service import ListingService
from ..services.location_service import LocationService
from ..services.notification_service import DeliveryDispatcher, NotificationService
from ..services.offer_service import OfferService
from ..services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    db: Database
    dispatcher: DeliveryDispatcher
    users: UserService
    listings: ListingService
    offers: OfferService
    notifications: NotificationService
    locations: LocationService


def build_services(settings: Settings, db: Database, email_sender, push_sender) -> Services:
    dispatcher = DeliveryDispatcher(email_sender, push_sender)
    notifications = NotificationService(db, dispatcher)
    listings = ListingService(db)
    return Services(
        settings=settings,
        db=db,
        dispatcher=dispatcher,
        users=UserService(db, settings, email_sender),
        listings=listings,
        offers=OfferService(db, listings, notifications),
        notifications=notifications,
        locations=LocationService(),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Resolve the bearer token to the stored user."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token, services.settings)
    except JWTError as e:
        logger.debug("Rejected session token: %s", e)
        raise credentials_exception

    user = await services.users.get_by_id(payload["sub"])
    if not user:
        raise credentials_exception
    return user


async def get_current_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    # The stored role decides, not the role claim in the token
    if current_user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
