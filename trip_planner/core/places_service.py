"""
Google Places API integration for stay enrichment, city lookup and photos.
"""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from trip_planner.core.settings import Settings

logger = logging.getLogger(__name__)

PLACES_API_BASE = "https://maps.googleapis.com/maps/api/place"
MAPS_PLACE_URL = "https://www.google.com/maps/place/?q=place_id:"


class PlacesService:
    """Service for interacting with Google Places API."""

    def __init__(
        self,
        api_key: str | None,
        timeout_seconds: float = 8.0,
        photo_max_width: int = 800,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            logger.warning(
                "[places] GOOGLE_PLACES_API_KEY not set. Enrichment will return no data."
            )
        self.api_key = api_key or ""
        self.timeout_seconds = timeout_seconds
        self.photo_max_width = photo_max_width
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlacesService":
        return cls(
            api_key=settings.google_places_api_key,
            timeout_seconds=settings.places_timeout_seconds,
            photo_max_width=settings.photo_max_width,
        )

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport, **kwargs
        )

    def build_photo_url(self, photo_reference: str | None) -> str | None:
        """
        Build a direct Places photo URL from a stored photo reference.

        Returns None if either the reference or the API key is missing.
        """
        if not photo_reference or not self.api_key:
            return None

        return (
            f"{PLACES_API_BASE}/photo"
            f"?maxwidth={self.photo_max_width}"
            f"&photo_reference={quote(photo_reference, safe='')}"
            f"&key={self.api_key}"
        )

    def resolve_image_url(self, record: dict[str, Any]) -> str | None:
        """
        Pick the image URL to send to clients for a stored stay.

        A fresh URL built from photo_reference wins over the stored image_url,
        so stale rows still get a working link.
        """
        from_ref = self.build_photo_url(record.get("photo_reference"))
        if from_ref:
            return from_ref
        return record.get("image_url") or None

    async def text_search_raw(self, query: str) -> dict[str, Any]:
        """Run a text search and return the provider payload untouched."""
        async with self._client() as client:
            response = await client.get(
                f"{PLACES_API_BASE}/textsearch/json",
                params={"query": query, "key": self.api_key},
            )
            return response.json()

    async def fetch_place_details(self, query: str) -> dict[str, Any] | None:
        """
        Look up the best text-search match for a query.

        Never raises: timeouts, HTTP errors, REQUEST_DENIED and empty results
        all resolve to None.

        Returns:
            Dictionary with rating, review_count, latitude, longitude,
            google_maps_url, photo_reference, image_url and description
            (formatted address), or None.
        """
        if not self.api_key:
            logger.warning(f"[places] No API key, skipping lookup for: '{query}'")
            return None

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{PLACES_API_BASE}/textsearch/json",
                    params={"query": query, "key": self.api_key},
                )

            if not response.is_success:
                logger.warning(f"[places] HTTP {response.status_code} for: '{query}'")
                return None

            data = response.json()

            if data.get("status") == "REQUEST_DENIED":
                # Keys restricted to HTTP referrers are rejected for server-side calls
                logger.error(
                    f"[places] REQUEST_DENIED for '{query}'. "
                    f"Error: {data.get('error_message', 'n/a')}"
                )
                return None

            results = data.get("results") or []
            if not results:
                logger.warning(f"[places] No results for: '{query}'")
                return None

            result = results[0]
            location = (result.get("geometry") or {}).get("location") or {}
            photos = result.get("photos") or []
            photo_reference = photos[0].get("photo_reference") if photos else None
            place_id = result.get("place_id")

            return {
                "rating": result.get("rating"),
                "review_count": result.get("user_ratings_total"),
                "latitude": location.get("lat"),
                "longitude": location.get("lng"),
                "google_maps_url": f"{MAPS_PLACE_URL}{place_id}" if place_id else None,
                "photo_reference": photo_reference,
                "image_url": self.build_photo_url(photo_reference),
                "description": result.get("formatted_address"),
            }

        except Exception as e:
            logger.error(f"[places] Fetch error for '{query}': {e}")
            return None

    async def enrich_many(self, queries: list[str]) -> list[dict[str, Any] | None]:
        """Run one lookup per query concurrently, preserving query order."""
        if not queries:
            return []
        return list(await asyncio.gather(*(self.fetch_place_details(q) for q in queries)))

    async def fetch_photo(self, photo_reference: str) -> httpx.Response:
        """
        Fetch photo bytes for a reference, following the CDN redirect.

        Transport errors propagate to the caller.
        """
        async with self._client(follow_redirects=True) as client:
            return await client.get(
                f"{PLACES_API_BASE}/photo",
                params={
                    "maxwidth": self.photo_max_width,
                    "photo_reference": photo_reference,
                    "key": self.api_key,
                },
            )
