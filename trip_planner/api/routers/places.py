import logging

from fastapi import APIRouter, Depends, Query, Response

from trip_planner.api.deps import get_places_service
from trip_planner.core.places_service import PlacesService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["places"])

PHOTO_CACHE_CONTROL = "public, max-age=86400, stale-while-revalidate=604800"


@router.get("/place-photo")
async def get_place_photo(
    ref: str | None = Query(None, description="Google Places photo reference"),
    places: PlacesService = Depends(get_places_service),
) -> Response:
    """
    Proxy endpoint for Google Places photos.
    Keeps the API key server-side and returns the image bytes with cache headers.
    """
    if not ref:
        return Response("Missing ref param", status_code=400, media_type="text/plain")

    if not places.api_key:
        return Response("API key not configured", status_code=500, media_type="text/plain")

    try:
        upstream = await places.fetch_photo(ref)
    except Exception as e:
        logger.error(f"[photo] Proxy error: {e}")
        return Response("Internal error", status_code=500, media_type="text/plain")

    if not upstream.is_success:
        return Response(
            "Failed to fetch image from Google",
            status_code=upstream.status_code,
            media_type="text/plain",
        )

    return Response(
        content=upstream.content,
        media_type=upstream.headers.get("content-type", "image/jpeg"),
        headers={"Cache-Control": PHOTO_CACHE_CONTROL},
    )
