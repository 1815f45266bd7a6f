from fastapi import APIRouter
from solar_tracker.api.endpoints import auth, installations, territories

api_router = APIRouter()


@api_router.get("", tags=["Health"])
async def api_root():
    """Simple liveness check for the API mount"""
    return {"message": "API is working!"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(installations.router, prefix="/installations", tags=["Installations"])
api_router.include_router(territories.router, prefix="/territories", tags=["Territories"])
