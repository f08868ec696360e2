import mongomock
import pytest

from trip_planner.core.repository import MongoRepo


def stay_data(city_id: str, name: str, **overrides):
    data = {
        "city_id": city_id,
        "name": name,
        "type": "Hotel",
        "area": "C-Scheme",
        "rating": 4.2,
        "review_count": 300,
        "photo_reference": "ref-1",
        "latitude": 26.9,
        "longitude": 75.8,
        "description": "Old address",
        "google_maps_url": None,
    }
    data.update(overrides)
    return data


@pytest.fixture(params=[True, False], ids=["native-upsert", "manual-upsert"])
def any_repo(request) -> MongoRepo:
    return MongoRepo(mongomock.MongoClient()["repo_test"], ensure_indexes=request.param)


def test_create_and_find_city(repo):
    city = repo.create_city("Jaipur", "India", latitude=26.9, longitude=75.8)
    assert city["id"].startswith("city_")
    assert city["description"] == "Jaipur travel destination"

    found = repo.find_city_by_name("Jaipur")
    assert found["id"] == city["id"]
    assert "_id" not in found
    assert repo.find_city_by_name("jaipur") is None


def test_upsert_twice_keeps_one_row(any_repo):
    city = any_repo.create_city("Jaipur", "India")
    first = any_repo.upsert_stay(
        city["id"], "Hotel Pearl", stay_data(city["id"], "Hotel Pearl"), {"rating": 4.2}
    )
    second = any_repo.upsert_stay(
        city["id"],
        "Hotel Pearl",
        stay_data(city["id"], "Hotel Pearl", rating=4.6),
        {"rating": 4.6, "review_count": 410},
    )

    assert first["id"] == second["id"]
    assert any_repo.stays_collection.count_documents({"city_id": city["id"]}) == 1
    assert second["rating"] == 4.6
    assert second["review_count"] == 410


def test_upsert_only_merges_given_fields(any_repo):
    city = any_repo.create_city("Jaipur", "India")
    any_repo.upsert_stay(
        city["id"], "Hotel Pearl", stay_data(city["id"], "Hotel Pearl"), {"rating": 4.2}
    )
    updated = any_repo.upsert_stay(
        city["id"],
        "Hotel Pearl",
        stay_data(city["id"], "Hotel Pearl", description=None, area="Elsewhere"),
        {"latitude": 27.0},
    )

    assert updated["latitude"] == 27.0
    assert updated["description"] == "Old address"
    assert updated["area"] == "C-Scheme"
    assert updated["rating"] == 4.2


def test_same_name_in_other_city_is_separate(any_repo):
    jaipur = any_repo.create_city("Jaipur", "India")
    udaipur = any_repo.create_city("Udaipur", "India")
    a = any_repo.upsert_stay(jaipur["id"], "Taj", stay_data(jaipur["id"], "Taj"), {})
    b = any_repo.upsert_stay(udaipur["id"], "Taj", stay_data(udaipur["id"], "Taj"), {})
    assert a["id"] != b["id"]


def test_find_stays_filters_and_sorts(repo):
    city = repo.create_city("Jaipur", "India")
    repo.stays_collection.insert_many(
        [
            {"id": "s1", "city_id": city["id"], "name": "A", "type": "Hotel",
             "rating": 3.9, "image_url": "img-a", "created_at": 1},
            {"id": "s2", "city_id": city["id"], "name": "B", "type": "Hotel",
             "rating": 4.8, "image_url": None, "created_at": 3},
            {"id": "s3", "city_id": city["id"], "name": "C", "type": "Luxury",
             "rating": 4.5, "image_url": "img-c", "created_at": 2},
            {"id": "s4", "city_id": "other", "name": "D", "type": "Hotel",
             "rating": 5.0, "image_url": "img-d", "created_at": 4},
        ]
    )

    with_image = repo.find_stays(city["id"], require_image=True, sort_field="rating")
    assert [s["id"] for s in with_image] == ["s3", "s1"]

    hotels = repo.find_stays(city["id"], stay_type="Hotel")
    assert [s["id"] for s in hotels] == ["s2", "s1"]

    newest = repo.find_stays(city["id"], limit=2)
    assert [s["id"] for s in newest] == ["s2", "s3"]


def test_city_with_places_sorted_by_rating(repo):
    city = repo.create_city("Jaipur", "India")
    low = repo.create_place(city["id"], "Step well", category="hidden_gem")
    repo.places_collection.update_one({"id": low["id"]}, {"$set": {"rating": 3.1}})
    high = repo.create_place(city["id"], "Amber Fort", category="attraction")
    repo.places_collection.update_one({"id": high["id"]}, {"$set": {"rating": 4.9}})

    data = repo.get_city_with_places("Jaipur")
    assert [p["name"] for p in data["places"]] == ["Amber Fort", "Step well"]
    assert repo.get_city_with_places("Atlantis") is None


def test_create_place_placeholders(repo):
    place = repo.create_place("city_x", "Hawa Mahal", category="attraction", latitude=1.0, longitude=2.0)
    assert place["rating"] == 0.0
    assert place["average_cost"] == 0
    assert place["enriched"] is False
    assert repo.find_place("city_x", "Hawa Mahal")["id"] == place["id"]
