from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from trip_planner.core.settings import Settings

logger = logging.getLogger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _clean(doc: dict | None) -> dict | None:
    if doc:
        doc.pop("_id", None)  # Remove MongoDB ObjectId
    return doc


class MongoRepo:
    def __init__(self, db: Database, ensure_indexes: bool = True):
        self.db = db

        # Collections
        self.cities_collection = db.cities
        self.stays_collection = db.stays
        self.places_collection = db.places

        # Native upsert on (city_id, name) is only safe once the unique index exists
        self.stay_unique_index = False
        if ensure_indexes:
            self.create_indexes()

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoRepo":
        client = MongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=5000,  # 5 second timeout
            connectTimeoutMS=10000,  # 10 second connection timeout
            socketTimeoutMS=20000,  # 20 second socket timeout
            retryWrites=True,
            retryReads=True,
        )

        connected = True
        try:
            client.admin.command("ping")
            logger.info(f"MongoDB connection successful ({settings.database_name})")
        except PyMongoError as e:
            connected = False
            logger.warning(f"MongoDB connection failed: {str(e)[:200]}")

        return cls(client[settings.database_name], ensure_indexes=connected)

    def create_indexes(self) -> None:
        try:
            self.cities_collection.create_index("name")
            self.places_collection.create_index([("city_id", ASCENDING), ("name", ASCENDING)])
            self.stays_collection.create_index(
                [("city_id", ASCENDING), ("name", ASCENDING)], unique=True
            )
            self.stay_unique_index = True
            logger.info("Database indexes created")
        except PyMongoError as index_error:
            # Typically existing duplicate stays; fall back to find-then-write upserts
            logger.warning(f"Index creation failed: {index_error}")

    # Cities
    def find_city_by_name(self, name: str) -> dict | None:
        return _clean(self.cities_collection.find_one({"name": name}))

    def create_city(
        self,
        name: str,
        country: str,
        latitude: float | None = None,
        longitude: float | None = None,
        image_url: str | None = None,
    ) -> dict:
        city_doc = {
            "id": _new_id("city"),
            "name": name,
            "country": country,
            "description": f"{name} travel destination",
            "latitude": latitude,
            "longitude": longitude,
            "image_url": image_url,
            "created_at": time.time(),
        }
        self.cities_collection.insert_one(city_doc)
        return _clean(city_doc)

    def get_city_with_places(self, name: str) -> dict | None:
        """Find a city by exact name and attach its places, best rated first."""
        city = self.find_city_by_name(name)
        if not city:
            return None
        places = self.places_collection.find({"city_id": city["id"]}).sort("rating", DESCENDING)
        city["places"] = [_clean(p) for p in places]
        return city

    # Stays
    def get_stay(self, stay_id: str) -> dict | None:
        return _clean(self.stays_collection.find_one({"id": stay_id}))

    def upsert_stay(
        self,
        city_id: str,
        name: str,
        create_data: dict[str, Any],
        update_data: dict[str, Any],
    ) -> dict | None:
        """
        Insert a stay or merge fields into the existing (city_id, name) row.

        Uses a native upsert when the unique index is present, otherwise a
        find followed by insert/update. Returns None if the write fails.
        """
        key = {"city_id": city_id, "name": name}

        if self.stay_unique_index:
            insert_only = {
                k: v
                for k, v in create_data.items()
                if k not in update_data and k not in key
            }
            insert_only.setdefault("id", _new_id("stay"))
            insert_only.setdefault("created_at", time.time())
            update: dict[str, Any] = {"$setOnInsert": insert_only}
            if update_data:
                update["$set"] = update_data
            try:
                return _clean(
                    self.stays_collection.find_one_and_update(
                        key,
                        update,
                        upsert=True,
                        return_document=ReturnDocument.AFTER,
                    )
                )
            except PyMongoError as e:
                logger.warning(f"[stays] Native upsert failed for '{name}': {e}")

        try:
            existing = self.stays_collection.find_one(key)
            if existing:
                if update_data:
                    self.stays_collection.update_one(
                        {"_id": existing["_id"]}, {"$set": update_data}
                    )
                return self.get_stay(existing["id"])

            stay_doc = {**create_data, **key}
            stay_doc.setdefault("id", _new_id("stay"))
            stay_doc.setdefault("created_at", time.time())
            self.stays_collection.insert_one(stay_doc)
            return _clean(stay_doc)
        except PyMongoError as e:
            logger.error(f"[stays] DB save failed for '{name}': {e}")
            return None

    def find_stays(
        self,
        city_id: str,
        stay_type: str | None = None,
        require_image: bool = False,
        sort_field: str = "created_at",
        limit: int = 10,
    ) -> list[dict]:
        """Stays for a city, newest or best first depending on sort_field."""
        query: dict[str, Any] = {"city_id": city_id}
        if stay_type:
            query["type"] = stay_type
        if require_image:
            query["image_url"] = {"$ne": None}
        cursor = self.stays_collection.find(query).sort(sort_field, DESCENDING).limit(limit)
        return [_clean(s) for s in cursor]

    # Places
    def find_place(self, city_id: str, name: str) -> dict | None:
        return _clean(self.places_collection.find_one({"city_id": city_id, "name": name}))

    def create_place(
        self,
        city_id: str,
        name: str,
        category: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> dict:
        """Create a place with placeholder rating/cost pending enrichment."""
        place_doc = {
            "id": _new_id("place"),
            "city_id": city_id,
            "name": name,
            "category": category,
            "rating": 0.0,
            "average_cost": 0,
            "latitude": latitude,
            "longitude": longitude,
            "enriched": False,
            "created_at": time.time(),
        }
        self.places_collection.insert_one(place_doc)
        return _clean(place_doc)
