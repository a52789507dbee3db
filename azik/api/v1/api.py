from fastapi import APIRouter
from .endpoints import admin, listings, locations, notifications, offers, users

def build_router(prefix: str = "/api/v1") -> APIRouter:
    router = APIRouter(prefix=prefix)

    # Include all endpoint routers
    router.include_router(users.router, prefix="/users")
    router.include_router(listings.router, prefix="/listings")
    router.include_router(offers.router, prefix="/offers")
    router.include_router(notifications.router, prefix="/notifications")
    router.include_router(locations.router, prefix="/locations")
    router.include_router(admin.router, prefix="/admin")
    return router
