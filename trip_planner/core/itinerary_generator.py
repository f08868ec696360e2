"""
Day-by-day itinerary generation with the generative model.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from trip_planner.core.json_payload import parse_json_payload
from trip_planner.core.llm_provider import generate_with_retry
from trip_planner.core.repository import MongoRepo
from trip_planner.core.schemas import ItineraryPlan
from trip_planner.core.settings import Settings

logger = logging.getLogger(__name__)


class ItineraryParseError(ValueError):
    """The model returned an itinerary that is not valid JSON of the expected shape."""


def build_itinerary_prompt(
    destination: str, country: str, duration: int, themes: list[str] | None = None
) -> str:
    theme_line = f"Trip themes: {', '.join(themes)}.\n" if themes else ""
    return (
        f"Generate a {duration} day travel itinerary for {destination}, {country}.\n"
        f"{theme_line}"
        "Return ONLY valid JSON. No markdown.\n\n"
        "{\n"
        '  "whyThisPlanWorks": "string",\n'
        '  "itinerary": [\n'
        "    {\n"
        '      "day": number,\n'
        '      "areaCovered": "string",\n'
        '      "activities": [\n'
        "        {\n"
        '          "title": "string",\n'
        '          "type": "attraction | restaurant | hidden_gem",\n'
        '          "timeOfDay": "Morning | Afternoon | Evening",\n'
        '          "shortDescription": "string",\n'
        '          "estimatedDuration": "string",\n'
        '          "entryFee": number,\n'
        '          "costIncludedInBudget": number\n'
        "        }\n"
        "      ],\n"
        '      "dailyEstimatedSpend": number\n'
        "    }\n"
        "  ]\n"
        "}"
    )


def parse_itinerary(raw_text: str) -> ItineraryPlan:
    """
    Decode model output into an ItineraryPlan.

    Loose field types are accepted (see ItineraryPlan). Raises ItineraryParseError
    when the text is not JSON or has no itinerary list.
    """
    try:
        payload = parse_json_payload(raw_text)
        return ItineraryPlan.model_validate(payload)
    except (ValueError, ValidationError) as e:
        raise ItineraryParseError(f"Invalid itinerary JSON: {e}") from e


class ItineraryGenerator:
    def __init__(self, repo: MongoRepo, llm: Any, settings: Settings):
        self.repo = repo
        self.llm = llm
        self.settings = settings

    async def generate(
        self,
        destination: str,
        country: str,
        duration: int = 1,
        themes: list[str] | None = None,
    ) -> ItineraryPlan:
        """Generate an itinerary; provider errors and bad JSON both propagate."""
        raw_text = await generate_with_retry(
            self.llm,
            build_itinerary_prompt(destination, country, duration, themes),
            retries=self.settings.rate_limit_retries,
            delay_seconds=self.settings.rate_limit_delay_seconds,
        )
        plan = parse_itinerary(raw_text)
        logger.info(f"[itinerary] Parsed {len(plan.itinerary)} days for {destination}")
        return plan

    def record_places(self, city: dict[str, Any], plan: ItineraryPlan) -> int:
        """
        Store itinerary activities the city does not know yet as placeholder places.

        Failures are logged and skipped. Returns the number of places created.
        """
        created = 0
        for day in plan.itinerary:
            for activity in day.activities:
                title = (activity.title or "").strip()
                if not title:
                    continue
                try:
                    if self.repo.find_place(city["id"], title):
                        continue
                    self.repo.create_place(
                        city["id"],
                        title,
                        category=activity.type,
                        latitude=city.get("latitude"),
                        longitude=city.get("longitude"),
                    )
                    created += 1
                except Exception as e:
                    logger.warning(f"[itinerary] Could not record place '{title}': {e}")
        if created:
            logger.info(f"[itinerary] Recorded {created} new places for {city['name']}")
        return created
