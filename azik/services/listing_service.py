import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from ..core.database import Database
from ..core.exceptions import NotFoundError
from ..schemas.listing import ListingCreate, ListingStatus

logger = logging.getLogger(__name__)

OWNER_FIELDS = ("first_name", "last_name", "phone", "province", "district", "neighborhood")


async def fetch_users(db: Database, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Load several users in one query, keyed by id."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    users = await db.execute_query(
        table="users",
        query_type="select",
        filters={"id": {"in": ids}}
    )
    return {user["id"]: user for user in users}


def with_owner(listing: Dict[str, Any], owner: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    owner = owner or {}
    return {**listing, **{field: owner.get(field) for field in OWNER_FIELDS}}


class ListingService:
    def __init__(self, db: Database):
        self.db = db

    async def create_listing(self, owner_id: str, listing: ListingCreate) -> Dict[str, Any]:
        listing_data = {
            "user_id": owner_id,
            "food_name": listing.food_name,
            "quantity": listing.quantity,
            "details": listing.details or "",
            "start_time": listing.start_time.strftime("%H:%M"),
            "end_time": listing.end_time.strftime("%H:%M"),
            "status": ListingStatus.ACTIVE.value,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "completed_at": None,
            "accepted_offer_id": None,
        }
        new_listing = await self.db.execute_query(
            table="food_listings",
            query_type="insert",
            data=listing_data
        )
        logger.info("User %s created listing %s", owner_id, new_listing[0]["id"])
        return new_listing[0]

    async def get_listing(self, listing_id: str) -> Optional[Dict[str, Any]]:
        listing = await self.db.execute_query(
            table="food_listings",
            query_type="select",
            filters={"id": listing_id}
        )
        return listing[0] if listing else None

    async def get_owned_listing(self, listing_id: str, owner_id: str) -> Dict[str, Any]:
        """Return the listing if it belongs to owner_id; otherwise report it as missing."""
        listing = await self.get_listing(listing_id)
        if not listing or listing["user_id"] != owner_id:
            raise NotFoundError("Listing not found")
        return listing

    async def list_active(
        self,
        province: Optional[str] = None,
        district: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """
        Active listings, newest first, with the owner's public profile.

        Location filters apply to the owner's address, so matching owners are
        looked up first and the page is read with one ``user_id in (...)``
        query. Owners are loaded in one batched query either way.
        """
        filters: Dict[str, Any] = {"status": ListingStatus.ACTIVE.value}
        owners: Dict[str, Dict[str, Any]] = {}
        if province or district:
            owner_filters = {}
            if province:
                owner_filters["province"] = province
            if district:
                owner_filters["district"] = district
            matching_owners = await self.db.execute_query(
                table="users",
                query_type="select",
                filters=owner_filters
            )
            if not matching_owners:
                return []
            owners = {owner["id"]: owner for owner in matching_owners}
            filters["user_id"] = {"in": list(owners)}

        listings = await self.db.execute_query(
            table="food_listings",
            query_type="select",
            filters=filters,
            order_by={"created_at": "desc"},
            limit=limit,
            offset=skip
        )
        if not owners:
            owners = await fetch_users(self.db, (listing["user_id"] for listing in listings))
        return [
            with_owner(listing, owners[listing["user_id"]])
            for listing in listings
            if listing["user_id"] in owners
        ]

    async def list_mine(self, owner_id: str, status: Optional[ListingStatus] = None) -> List[Dict[str, Any]]:
        filters: Dict[str, Any] = {"user_id": owner_id}
        if status:
            filters["status"] = status.value
        listings = await self.db.execute_query(
            table="food_listings",
            query_type="select",
            filters=filters,
            order_by={"created_at": "desc"}
        )
        owner = (await fetch_users(self.db, [owner_id])).get(owner_id)
        return [with_owner(listing, owner) for listing in listings]

    async def delete_listing(self, listing_id: str, requester_id: str) -> None:
        """Delete an owned listing and every offer made on it."""
        await self.get_owned_listing(listing_id, requester_id)

        deleted_offers = await self.db.execute_query(
            table="exchange_offers",
            query_type="delete",
            filters={"listing_id": listing_id}
        )
        await self.db.execute_query(
            table="food_listings",
            query_type="delete",
            filters={"id": listing_id}
        )
        logger.info("Deleted listing %s with %d offers", listing_id, len(deleted_offers))
