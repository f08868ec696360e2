"""
Connectivity checks for the generative model and the Places API.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from trip_planner.api.deps import get_app_settings, get_llm, get_places_service
from trip_planner.core.llm_provider import generate_with_retry
from trip_planner.core.places_service import PlacesService
from trip_planner.core.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/llm")
async def check_llm(request: Request, settings: Settings = Depends(get_app_settings)):
    try:
        text = await generate_with_retry(
            get_llm(request),
            "Say hello in one sentence.",
            retries=settings.rate_limit_retries,
            delay_seconds=settings.rate_limit_delay_seconds,
        )
        return {"success": True, "text": text}
    except Exception as e:
        logger.error(f"[llm] Debug call failed: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)


@router.get("/places")
async def check_places(
    query: str = Query("The Oberoi Delhi", min_length=1, max_length=200),
    places: PlacesService = Depends(get_places_service),
):
    """Return the raw Places text-search payload for a query."""
    try:
        return await places.text_search_raw(query)
    except Exception as e:
        logger.error(f"[places] Debug search failed: {e}")
        return JSONResponse({"error": str(e)}, status_code=500)
