from fastapi import APIRouter

from solar_tracker.schemas.installation import TerritoryListResponse
from solar_tracker.services.territories import DEFAULT_TERRITORY, UTILITY_TERRITORIES


router = APIRouter()


@router.get("", response_model=TerritoryListResponse, response_model_exclude_none=True)
async def list_territories():
    """Static utility territory table, for map legends"""
    return {
        "territories": [territory.to_dict() for territory in UTILITY_TERRITORIES],
        "default": DEFAULT_TERRITORY.to_dict(),
    }
