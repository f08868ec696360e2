import json
from typing import Any, Callable

import httpx
import mongomock
import pytest

from trip_planner.core.places_service import PlacesService
from trip_planner.core.repository import MongoRepo
from trip_planner.core.settings import Settings
from trip_planner.main import create_app

PLACES_KEY = "test-places-key"


class RateLimitError(Exception):
    status_code = 429


class ScriptedLLM:
    """Stand-in for LLMProvider that answers stay and itinerary prompts from a script."""

    def __init__(self, stays_reply: Any = None, itinerary_reply: Any = None):
        self.stays_reply = stays_reply if stays_reply is not None else stays_json([])
        self.itinerary_reply = itinerary_reply if itinerary_reply is not None else itinerary_json(1)
        self.prompts: list[str] = []

    async def chat_async(self, messages: list[dict[str, Any]], temperature: float = 1.0) -> str:
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)
        reply = self.stays_reply if "stay options" in prompt else self.itinerary_reply
        if isinstance(reply, Exception):
            raise reply
        return reply


def stays_json(stays: list[dict[str, Any]], fenced: bool = False) -> str:
    text = json.dumps({"stays": stays})
    return f"```json\n{text}\n```" if fenced else text


def itinerary_json(days: int) -> str:
    return json.dumps(
        {
            "whyThisPlanWorks": "Balanced mix of forts and food.",
            "itinerary": [
                {
                    "day": d,
                    "areaCovered": f"Area {d}",
                    "activities": [
                        {
                            "title": f"Sight {d}",
                            "type": "attraction",
                            "timeOfDay": "Morning",
                            "shortDescription": "A landmark.",
                            "estimatedDuration": "2 hours",
                            "entryFee": 200,
                            "costIncludedInBudget": 200,
                        }
                    ],
                    "dailyEstimatedSpend": 1500,
                }
                for d in range(1, days + 1)
            ],
        }
    )


def place_result(
    name: str,
    rating: float | None = 4.5,
    reviews: int | None = 1200,
    photo: str | None = "photo-ref",
    lat: float | None = 26.9,
    lng: float | None = 75.8,
) -> dict[str, Any]:
    result: dict[str, Any] = {
        "name": name,
        "place_id": f"pid-{name}",
        "formatted_address": f"{name} Road, Jaipur",
        "rating": rating,
        "user_ratings_total": reviews,
    }
    if lat is not None:
        result["geometry"] = {"location": {"lat": lat, "lng": lng}}
    if photo:
        result["photos"] = [{"photo_reference": photo}]
    return result


def places_transport(
    lookup: Callable[[str], dict[str, Any] | None],
    calls: list[str] | None = None,
) -> httpx.MockTransport:
    """Mock Places API: lookup(query) returns a result dict or None for no results."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        if request.url.path.endswith("/photo"):
            return httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"})
        result = lookup(request.url.params.get("query", ""))
        if result is None:
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
        return httpx.Response(200, json={"status": "OK", "results": [result]})

    return httpx.MockTransport(handler)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        generation_model="test:model",
        gemini_api_key="",
        google_places_api_key=PLACES_KEY,
        default_country="India",
        rate_limit_delay_seconds=0,
        rate_limit_retries=2,
    )


@pytest.fixture
def repo() -> MongoRepo:
    return MongoRepo(mongomock.MongoClient()["trip_planner_test"])


@pytest.fixture
def make_places():
    def _make(lookup=lambda q: None, calls=None, api_key=PLACES_KEY) -> PlacesService:
        return PlacesService(api_key=api_key, transport=places_transport(lookup, calls))

    return _make


@pytest.fixture
def make_app(settings, repo):
    def _make(llm: ScriptedLLM, places: PlacesService):
        return create_app(settings=settings, repo=repo, places=places, llm=llm)

    return _make
