import logging

from fastapi import APIRouter, HTTPException, Request

from trip_planner.api.deps import get_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cities", tags=["cities"])


@router.get("/{city}")
def get_city(city: str, request: Request) -> dict:
    """Return a stored city with its places, best rated first."""
    try:
        data = get_repo(request).get_city_with_places(city)
    except Exception as e:
        logger.error(f"[city] Lookup failed for '{city}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch city data")

    if not data:
        raise HTTPException(status_code=404, detail="City not found")
    return data
