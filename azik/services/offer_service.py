import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from ..core.database import Database, DuplicateKeyError
from ..core.exceptions import ConflictError, NotFoundError
from ..schemas.listing import ListingStatus
from ..schemas.notification import NotificationType
from ..schemas.offer import OfferDecision, OfferStatus
from .listing_service import ListingService, fetch_users
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

PARTY_FIELDS = ("first_name", "last_name", "phone", "province", "district")


def offer_detail(offer: Dict[str, Any], listing: Dict[str, Any], party: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Join an offer with its listing and the public profile of the other party."""
    party = party or {}
    return {
        **offer,
        "food_name": listing["food_name"],
        "quantity": listing["quantity"],
        "details": listing.get("details", ""),
        "start_time": listing["start_time"],
        "end_time": listing["end_time"],
        "listing_status": listing["status"],
        **{field: party.get(field) for field in PARTY_FIELDS},
    }


class OfferService:
    """
    Offers move from ``pending`` to ``accepted`` or ``rejected`` exactly once.

    Every transition is a conditional update on the current status, so two
    concurrent resolutions of the same offer cannot both succeed. Accepting an
    offer completes its listing and rejects the listing's other pending offers.
    """

    def __init__(self, db: Database, listings: ListingService, notifications: NotificationService):
        self.db = db
        self.listings = listings
        self.notifications = notifications

    async def get_offer(self, offer_id: str) -> Optional[Dict[str, Any]]:
        offer = await self.db.execute_query(
            table="exchange_offers",
            query_type="select",
            filters={"id": offer_id}
        )
        return offer[0] if offer else None

    async def create_offer(self, listing_id: str, offerer: Dict[str, Any]) -> Dict[str, Any]:
        listing = await self.listings.get_listing(listing_id)
        if not listing or listing["status"] != ListingStatus.ACTIVE.value:
            raise NotFoundError("Listing not found")

        if listing["user_id"] == offerer["id"]:
            raise ConflictError("You cannot make an offer on your own listing")

        existing_offer = await self.db.execute_query(
            table="exchange_offers",
            query_type="select",
            filters={"listing_id": listing_id, "offerer_id": offerer["id"]}
        )
        if existing_offer:
            raise ConflictError("You have already made an offer on this listing")

        now = datetime.now(timezone.utc).isoformat()
        try:
            new_offer = await self.db.execute_query(
                table="exchange_offers",
                query_type="insert",
                data={
                    "listing_id": listing_id,
                    "offerer_id": offerer["id"],
                    "status": OfferStatus.PENDING.value,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        except DuplicateKeyError:
            raise ConflictError("You have already made an offer on this listing")

        offer = new_offer[0]
        logger.info("User %s made offer %s on listing %s", offerer["id"], offer["id"], listing_id)

        await self.notifications.notify(
            listing["user_id"],
            NotificationType.NEW_OFFER,
            "New Offer",
            f"{offerer['first_name']} {offerer['last_name']} made an offer on your listing [{listing['food_name']}]",
            related_id=offer["id"],
        )
        return offer

    async def _transition(self, offer_id: str, from_status: OfferStatus, to_status: OfferStatus) -> Optional[Dict[str, Any]]:
        updated = await self.db.execute_query(
            table="exchange_offers",
            query_type="update",
            filters={"id": offer_id, "status": from_status.value},
            data={"status": to_status.value, "updated_at": datetime.now(timezone.utc).isoformat()}
        )
        return updated[0] if updated else None

    async def resolve_offer(self, offer_id: str, requester_id: str, decision: OfferDecision) -> Dict[str, Any]:
        offer = await self.get_offer(offer_id)
        if not offer:
            raise NotFoundError("Offer not found")

        # Only the listing owner may resolve; everyone else sees a missing offer
        listing = await self.listings.get_listing(offer["listing_id"])
        if not listing or listing["user_id"] != requester_id:
            raise NotFoundError("Offer not found")

        if offer["status"] != OfferStatus.PENDING.value:
            raise ConflictError("Offer has already been resolved")

        if decision == OfferDecision.ACCEPTED:
            return await self._accept(offer, listing)
        return await self._reject(offer, listing)

    async def _accept(self, offer: Dict[str, Any], listing: Dict[str, Any]) -> Dict[str, Any]:
        if listing["status"] != ListingStatus.ACTIVE.value:
            raise ConflictError("Listing is no longer active")

        accepted = await self._transition(offer["id"], OfferStatus.PENDING, OfferStatus.ACCEPTED)
        if not accepted:
            raise ConflictError("Offer has already been resolved")

        now = datetime.now(timezone.utc).isoformat()
        completed = await self.db.execute_query(
            table="food_listings",
            query_type="update",
            filters={"id": listing["id"], "status": ListingStatus.ACTIVE.value},
            data={
                "status": ListingStatus.COMPLETED.value,
                "completed_at": now,
                "accepted_offer_id": offer["id"],
            }
        )
        if not completed:
            # Another offer on this listing was accepted first
            await self._transition(offer["id"], OfferStatus.ACCEPTED, OfferStatus.REJECTED)
            await self._notify_rejected(offer, listing)
            raise ConflictError("Listing is no longer active")

        owner = await self.db.execute_query(
            table="users",
            query_type="select",
            filters={"id": listing["user_id"]}
        )
        owner_phone = owner[0]["phone"] if owner else ""
        await self.notifications.notify(
            offer["offerer_id"],
            NotificationType.OFFER_ACCEPTED,
            "Offer Accepted",
            f"Your offer on [{listing['food_name']}] was accepted. Contact the owner: {owner_phone}",
            related_id=offer["id"],
        )
        logger.info("Offer %s accepted, listing %s completed", offer["id"], listing["id"])

        await self._reject_siblings(listing, offer["id"])
        return accepted

    async def _reject_siblings(self, listing: Dict[str, Any], accepted_offer_id: str) -> None:
        siblings = await self.db.execute_query(
            table="exchange_offers",
            query_type="select",
            filters={"listing_id": listing["id"], "status": OfferStatus.PENDING.value}
        )
        for sibling in siblings:
            if sibling["id"] == accepted_offer_id:
                continue
            if await self._transition(sibling["id"], OfferStatus.PENDING, OfferStatus.REJECTED):
                await self._notify_rejected(sibling, listing)
        if siblings:
            logger.info("Rejected %d remaining offers on listing %s", len(siblings), listing["id"])

    async def _reject(self, offer: Dict[str, Any], listing: Dict[str, Any]) -> Dict[str, Any]:
        rejected = await self._transition(offer["id"], OfferStatus.PENDING, OfferStatus.REJECTED)
        if not rejected:
            raise ConflictError("Offer has already been resolved")

        await self._notify_rejected(offer, listing)
        logger.info("Offer %s rejected", offer["id"])
        return rejected

    async def _notify_rejected(self, offer: Dict[str, Any], listing: Dict[str, Any]) -> None:
        await self.notifications.notify(
            offer["offerer_id"],
            NotificationType.OFFER_REJECTED,
            "Offer Rejected",
            f"Your offer on [{listing['food_name']}] was rejected.",
            related_id=offer["id"],
        )

    async def list_my_offers(self, offerer_id: str) -> List[Dict[str, Any]]:
        """Offers the user made, with each listing and its owner's public profile."""
        offers = await self.db.execute_query(
            table="exchange_offers",
            query_type="select",
            filters={"offerer_id": offerer_id},
            order_by={"created_at": "desc"}
        )
        listing_ids = list({offer["listing_id"] for offer in offers})
        listings = {}
        if listing_ids:
            rows = await self.db.execute_query(
                table="food_listings",
                query_type="select",
                filters={"id": {"in": listing_ids}}
            )
            listings = {listing["id"]: listing for listing in rows}
        owners = await fetch_users(self.db, (listing["user_id"] for listing in listings.values()))

        return [
            offer_detail(offer, listings[offer["listing_id"]], owners.get(listings[offer["listing_id"]]["user_id"]))
            for offer in offers
            if offer["listing_id"] in listings
        ]

    async def list_received_offers(self, owner_id: str) -> List[Dict[str, Any]]:
        """Offers made on any of the owner's listings, with each offerer's public profile."""
        listings = await self.db.execute_query(
            table="food_listings",
            query_type="select",
            filters={"user_id": owner_id}
        )
        return await self._offers_on(listings)

    async def list_listing_offers(self, listing_id: str, owner_id: str) -> List[Dict[str, Any]]:
        listing = await self.listings.get_owned_listing(listing_id, owner_id)
        return await self._offers_on([listing])

    async def _offers_on(self, listings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not listings:
            return []
        by_id = {listing["id"]: listing for listing in listings}
        offers = await self.db.execute_query(
            table="exchange_offers",
            query_type="select",
            filters={"listing_id": {"in": list(by_id)}},
            order_by={"created_at": "desc"}
        )
        offerers = await fetch_users(self.db, (offer["offerer_id"] for offer in offers))
        return [
            offer_detail(offer, by_id[offer["listing_id"]], offerers.get(offer["offerer_id"]))
            for offer in offers
        ]
