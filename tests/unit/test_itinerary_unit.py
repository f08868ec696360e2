import json

import pytest

from trip_planner.core.itinerary_generator import ItineraryParseError, parse_itinerary


def test_parse_itinerary_accepts_numbers_in_text_fields():
    raw = json.dumps(
        {
            "whyThisPlanWorks": "Short hops between sights.",
            "itinerary": [
                {
                    "day": "1",
                    "areaCovered": 7,
                    "activities": [
                        {"title": 42, "estimatedDuration": 2, "entryFee": "Free"},
                    ],
                    "dailyEstimatedSpend": 900,
                }
            ],
        }
    )

    plan = parse_itinerary(raw)

    activity = plan.itinerary[0].activities[0]
    assert activity.title == "42"
    assert activity.estimatedDuration == "2"
    assert activity.entryFee == "Free"
    assert plan.itinerary[0].areaCovered == "7"


def test_parse_itinerary_keeps_extra_keys_and_null_activities():
    raw = '```json\n{"itinerary": [{"day": 1, "activities": null}], "packingTips": ["hat"]}\n```'

    plan = parse_itinerary(raw)

    assert plan.itinerary[0].activities == []
    assert plan.model_extra == {"packingTips": ["hat"]}


@pytest.mark.parametrize("raw", ["Day 1: visit the fort", '{"whyThisPlanWorks": "x"}', "[1, 2]"])
def test_parse_itinerary_rejects_unusable_output(raw):
    with pytest.raises(ItineraryParseError):
        parse_itinerary(raw)
