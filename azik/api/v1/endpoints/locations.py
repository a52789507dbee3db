from fastapi import APIRouter, Depends
from typing import List
from ....core.dependencies import Services, get_services

router = APIRouter(tags=["locations"])

@router.get("/provinces", response_model=List[str])
async def get_provinces(services: Services = Depends(get_services)):
    return services.locations.provinces()

@router.get("/provinces/{province}/districts", response_model=List[str])
async def get_districts(province: str, services: Services = Depends(get_services)):
    """Districts of a province; empty for an unknown province."""
    return services.locations.districts(province)

@router.get("/provinces/{province}/districts/{district}/neighborhoods", response_model=List[str])
async def get_neighborhoods(province: str, district: str, services: Services = Depends(get_services)):
    return services.locations.neighborhoods(province, district)
