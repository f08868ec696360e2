import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from trip_planner.api.deps import get_app_settings, get_llm, get_places_service, get_repo
from trip_planner.core.generation_service import GenerationService
from trip_planner.core.itinerary_generator import ItineraryParseError
from trip_planner.core.schemas import GenerateRequest, GenerateResponse
from trip_planner.core.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generate"])


@router.post("/generate", response_model=GenerateResponse)
async def generate_trip(
    payload: GenerateRequest,
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Any:
    """
    Generate a budget breakdown, up to three stays and a day-by-day itinerary.

    Stay sourcing degrades quietly; itinerary failures return a 500 without
    any partial result.
    """
    if not (payload.destination_city or "").strip():
        raise HTTPException(status_code=400, detail="Destination city required")

    try:
        # Resolved inside the try so a misconfigured store or provider gets the same 500 body
        service = GenerationService(
            get_repo(request), get_places_service(request), get_llm(request), settings
        )
        return await service.generate(payload)
    except HTTPException:
        raise
    except ItineraryParseError as e:
        logger.error(f"[itinerary] {e}")
        raise HTTPException(status_code=500, detail="Invalid itinerary JSON")
    except Exception as e:
        logger.error(f"[generate] Unhandled error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate itinerary")
