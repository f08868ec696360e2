"""
Stay sourcing: model-proposed candidates, Places enrichment, persistence,
store fallback and popularity ranking.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from trip_planner.core.json_payload import parse_json_payload
from trip_planner.core.llm_provider import generate_with_retry
from trip_planner.core.places_service import PlacesService
from trip_planner.core.repository import MongoRepo
from trip_planner.core.schemas import StayCandidate
from trip_planner.core.settings import Settings

logger = logging.getLogger(__name__)

STAY_TYPES = ("Hotel", "Airbnb", "Luxury")
TARGET_STAY_COUNT = 3
DEFAULT_PRICE_PER_NIGHT = 3000
DEFAULT_CLEANLINESS_SCORE = 8.5

# UI labels -> stay type; anything else means no preference
STAY_PREFERENCE_TYPES = {
    "Budget Hotel": "Hotel",
    "Luxury Hotel": "Luxury",
    "Airbnb": "Airbnb",
}

# Enrichment fields merged into an existing stay when the new value is not None
MERGEABLE_FIELDS = (
    "rating",
    "review_count",
    "photo_reference",
    "description",
    "google_maps_url",
    "latitude",
    "longitude",
)


@dataclass(frozen=True)
class FallbackPass:
    """One store query used to top up a short stay list."""

    label: str
    require_image: bool
    use_preference: bool
    sort_field: str
    limit: int = 10
    only_with_preference: bool = False


FALLBACK_PASSES = (
    FallbackPass("with-image", require_image=True, use_preference=True, sort_field="rating"),
    FallbackPass("any", require_image=False, use_preference=True, sort_field="created_at"),
    FallbackPass(
        "any-type",
        require_image=False,
        use_preference=False,
        sort_field="created_at",
        only_with_preference=True,
    ),
)


def map_stay_preference(stay_preference: str | None) -> str | None:
    return STAY_PREFERENCE_TYPES.get(stay_preference or "")


def popularity_score(stay: dict[str, Any]) -> float:
    """rating x ln(reviews + 1): favours well-reviewed places over obscure ones."""
    rating = stay.get("rating") or 0
    review_count = stay.get("review_count")
    if review_count is None:
        review_count = 1
    return rating * math.log(review_count + 1)


def rank_stays(stays: list[dict[str, Any]], limit: int = TARGET_STAY_COUNT) -> list[dict[str, Any]]:
    """Deduplicate by id, sort by popularity score (descending) and truncate."""
    seen: set[str] = set()
    unique = []
    for stay in stays:
        if stay.get("id") in seen:
            continue
        seen.add(stay.get("id"))
        unique.append(stay)
    return sorted(unique, key=popularity_score, reverse=True)[:limit]


def is_complete(place_data: dict[str, Any] | None) -> bool:
    """Admission gate: a stay needs a photo reference and coordinates to be stored."""
    return bool(
        place_data
        and place_data.get("photo_reference")
        and place_data.get("latitude") is not None
    )


def build_stay_prompt(destination: str, country: str, preferred_type: str | None) -> str:
    preference_rule = f'- ALL stays MUST be type "{preferred_type}"\n' if preferred_type else ""
    return (
        "Return ONLY valid JSON. No markdown, no explanation.\n\n"
        f"Generate exactly 3 REAL stay options in {destination}, {country}.\n"
        "These must be actual hotels or accommodations that exist and are "
        "searchable on Google Maps.\n\n"
        "Rules:\n"
        '- "type" must be one of: Hotel, Airbnb, Luxury\n'
        f"{preference_rule}"
        '- "price_per_night" in realistic local currency (integer)\n'
        "- No duplicate names\n"
        "- For smaller cities use real, well-known local hotels\n\n"
        "Return ONLY:\n"
        "{\n"
        '  "stays": [\n'
        "    {\n"
        '      "name": "string",\n'
        '      "type": "Hotel | Airbnb | Luxury",\n'
        '      "area": "string",\n'
        '      "price_per_night": number\n'
        "    }\n"
        "  ]\n"
        "}"
    )


def parse_stay_candidates(raw_text: str, preferred_type: str | None) -> list[StayCandidate]:
    """
    Decode model output into valid stay candidates.

    Never raises: unparseable text, a missing/non-list "stays" field and
    malformed entries are dropped. Entries with a blank name, an unknown type
    or a type different from the active preference are filtered out.
    """
    try:
        payload = parse_json_payload(raw_text)
    except ValueError as e:
        logger.warning(f"[stays] Model output is not valid JSON: {e}")
        return []

    raw_stays = payload.get("stays") if isinstance(payload, dict) else None
    if not isinstance(raw_stays, list):
        logger.warning("[stays] Model output has no 'stays' list")
        return []

    candidates = []
    for item in raw_stays:
        if not isinstance(item, dict):
            continue
        try:
            candidate = StayCandidate.model_validate(item)
        except ValidationError:
            continue
        if not (candidate.name or "").strip():
            continue
        if candidate.type not in STAY_TYPES:
            continue
        if preferred_type and candidate.type != preferred_type:
            continue
        candidates.append(candidate)
    return candidates


class StayPipeline:
    def __init__(self, repo: MongoRepo, places: PlacesService, llm: Any, settings: Settings):
        self.repo = repo
        self.places = places
        self.llm = llm
        self.settings = settings

    async def generate_candidates(
        self, destination: str, country: str, preferred_type: str | None
    ) -> list[StayCandidate]:
        prompt = build_stay_prompt(destination, country, preferred_type)
        try:
            raw_text = await generate_with_retry(
                self.llm,
                prompt,
                retries=self.settings.rate_limit_retries,
                delay_seconds=self.settings.rate_limit_delay_seconds,
            )
        except Exception as e:
            logger.warning(f"[stays] Stay generation failed: {e}")
            return []

        candidates = parse_stay_candidates(raw_text, preferred_type)
        logger.info(f"[stays] Model proposed {len(candidates)} valid stays")
        return candidates

    def persist_enriched(
        self,
        city: dict[str, Any],
        candidates: list[StayCandidate],
        enrichment: list[dict[str, Any] | None],
    ) -> list[dict[str, Any]]:
        """Upsert complete candidates in order until TARGET_STAY_COUNT are stored."""
        stored: list[dict[str, Any]] = []
        for candidate, place_data in zip(candidates, enrichment):
            if len(stored) >= TARGET_STAY_COUNT:
                break

            if not is_complete(place_data):
                logger.warning(
                    f"[stays] Skipping '{candidate.name}', incomplete Places enrichment"
                )
                continue

            price = candidate.price_per_night
            create_data = {
                "city_id": city["id"],
                "name": candidate.name,
                "type": candidate.type,
                "area": candidate.area or "",
                "rating": place_data.get("rating"),
                "review_count": place_data.get("review_count"),
                "cleanliness_score": DEFAULT_CLEANLINESS_SCORE,
                "price_per_night": price if price is not None else DEFAULT_PRICE_PER_NIGHT,
                "latitude": place_data["latitude"],
                "longitude": place_data.get("longitude"),
                "google_maps_url": place_data.get("google_maps_url"),
                "photo_reference": place_data["photo_reference"],
                "image_url": self.places.build_photo_url(place_data["photo_reference"]),
                "description": place_data.get("description"),
            }
            update_data = {
                field: place_data[field]
                for field in MERGEABLE_FIELDS
                if place_data.get(field) is not None
            }

            stay = self.repo.upsert_stay(city["id"], candidate.name, create_data, update_data)
            if stay:
                stored.append(stay)
                logger.info(f"[stays] Saved: '{stay['name']}'")
        return stored

    def top_up_from_store(
        self,
        city_id: str,
        collected: list[dict[str, Any]],
        preferred_type: str | None,
    ) -> list[dict[str, Any]]:
        """Fill a short stay list from stored stays using FALLBACK_PASSES in order."""
        result = list(collected)
        seen_ids = {s.get("id") for s in result}

        for fallback in FALLBACK_PASSES:
            if len(result) >= TARGET_STAY_COUNT:
                break
            if fallback.only_with_preference and not preferred_type:
                continue

            rows = self.repo.find_stays(
                city_id,
                stay_type=preferred_type if fallback.use_preference else None,
                require_image=fallback.require_image,
                sort_field=fallback.sort_field,
                limit=fallback.limit,
            )
            for row in rows:
                if len(result) >= TARGET_STAY_COUNT:
                    break
                if row.get("id") not in seen_ids:
                    result.append(row)
                    seen_ids.add(row.get("id"))
        return result

    def _for_response(self, stay: dict[str, Any]) -> dict[str, Any]:
        return {**stay, "image_url": self.places.resolve_image_url(stay)}

    async def source_stays(
        self, city: dict[str, Any], destination: str, stay_preference: str | None
    ) -> list[dict[str, Any]]:
        """
        Produce up to three stays for a city.

        Model candidates are enriched with Places data in parallel, complete
        ones are stored, the store tops up any shortfall, and the result is
        ranked by popularity with image URLs resolved for clients.
        """
        preferred_type = map_stay_preference(stay_preference)
        country = city.get("country") or self.settings.default_country

        candidates = await self.generate_candidates(destination, country, preferred_type)
        enrichment = await self.places.enrich_many(
            [f"{c.name} {destination} {country}" for c in candidates]
        )

        stays = self.persist_enriched(city, candidates, enrichment)
        if len(stays) < TARGET_STAY_COUNT:
            logger.info(f"[stays] {len(stays)}/{TARGET_STAY_COUNT}, falling back to stored stays")
            stays = self.top_up_from_store(city["id"], stays, preferred_type)

        ranked = [self._for_response(s) for s in rank_stays(stays)]
        logger.info(
            f"[stays] Returning {len(ranked)}: "
            + ", ".join(f"'{s['name']}' [img: {'yes' if s['image_url'] else 'no'}]" for s in ranked)
        )
        return ranked
