"""
End-to-end trip generation: budget, city, stays and itinerary.
"""

from __future__ import annotations

import logging
from typing import Any

from trip_planner.core.budget import allocate_budget
from trip_planner.core.itinerary_generator import ItineraryGenerator
from trip_planner.core.places_service import PlacesService
from trip_planner.core.repository import MongoRepo
from trip_planner.core.schemas import GenerateRequest, GenerateResponse
from trip_planner.core.settings import Settings
from trip_planner.core.stay_pipeline import StayPipeline

logger = logging.getLogger(__name__)


class GenerationService:
    def __init__(
        self,
        repo: MongoRepo,
        places: PlacesService,
        llm: Any,
        settings: Settings,
    ):
        self.repo = repo
        self.places = places
        self.settings = settings
        self.stays = StayPipeline(repo, places, llm, settings)
        self.itineraries = ItineraryGenerator(repo, llm, settings)

    async def resolve_city(self, destination: str) -> dict[str, Any]:
        """
        Find a city by exact name, creating it from Places data when missing.

        Places failures only leave coordinates and image empty.
        """
        city = self.repo.find_city_by_name(destination)
        if city:
            logger.info(f"[city] Found: {city['name']} (id={city['id']})")
            return city

        place_data = await self.places.fetch_place_details(destination) or {}
        city = self.repo.create_city(
            name=destination,
            country=self.settings.default_country,
            latitude=place_data.get("latitude"),
            longitude=place_data.get("longitude"),
            image_url=place_data.get("image_url"),
        )
        logger.info(f"[city] Created: {city['name']} (id={city['id']})")
        return city

    async def generate(self, payload: GenerateRequest) -> GenerateResponse:
        """
        Build the full trip response.

        The destination must already be validated as non-blank. Raises
        ItineraryParseError when the itinerary cannot be decoded.
        """
        destination = payload.destination_city.strip()
        budget_summary = allocate_budget(payload.total_budget or 0)

        city = await self.resolve_city(destination)
        country = city.get("country") or self.settings.default_country

        stays = await self.stays.source_stays(city, destination, payload.stay_preference)

        plan = await self.itineraries.generate(
            destination, country, payload.duration or 1, payload.selected_themes or []
        )
        self.itineraries.record_places(city, plan)

        extras = {
            key: value
            for key, value in (plan.model_extra or {}).items()
            if key not in GenerateResponse.model_fields
        }
        return GenerateResponse(
            budgetSummary=budget_summary,
            stays=stays,
            whyThisPlanWorks=plan.whyThisPlanWorks or "",
            itinerary=plan.itinerary,
            **extras,
        )
