from datetime import datetime, timedelta, timezone

import pytest

from globetrotter.errors import Conflict, Forbidden, NotFound, ValidationFailed
from globetrotter.models.trip import (
    ActivityInput,
    BudgetSummaryInput,
    CityInput,
    ItineraryDayInput,
    QuickAddRequest,
    SaveActivityRequest,
    TripCreate,
    TripUpdate,
    parse_command,
)

OWNER = "usr_owner"
STRANGER = "usr_stranger"
PARIS = CityInput(id="paris-france", name="Paris", country="France")
EIFFEL = {"id": "eiffel", "name": "Eiffel Tower", "city": "Paris", "category": "Sightseeing",
          "cost": "High", "duration": "1–3 hrs"}


@pytest.fixture
def trip(trip_service):
    command = TripCreate(name="Paris week", startDate="2025-06-10", endDate="2025-06-16",
                         budget={"amount": 2400, "currency": "USD"})
    return trip_service.create_trip(OWNER, command)


def test_create_add_city_and_duplicate(trip_service, fs, trip):
    stored = fs.get_trip(trip.id)
    assert stored["budget"] == {"amount": 2400, "currency": "USD"}
    assert stored["userId"] == OWNER

    updated = trip_service.add_city(trip.id, OWNER, PARIS)
    assert len(updated.cities) == 1

    with pytest.raises(Conflict):
        trip_service.add_city(trip.id, OWNER, PARIS)
    assert len(fs.get_trip(trip.id)["selectedCities"]) == 1


def test_add_activity_then_reject_unknown_category(trip_service, fs, trip):
    trip_service.add_city(trip.id, OWNER, PARIS)
    updated = trip_service.add_activity(trip.id, OWNER, "paris-france", ActivityInput(**EIFFEL))
    assert [a["id"] for a in updated.cities[0]["activities"]] == ["eiffel"]

    with pytest.raises(ValidationFailed):
        bad = parse_command(ActivityInput, {**EIFFEL, "id": "bungee", "category": "Extreme"})
        trip_service.add_activity(trip.id, OWNER, "paris-france", bad)
    assert len(fs.get_trip(trip.id)["selectedCities"][0]["activities"]) == 1


def test_duplicate_activity_leaves_count_unchanged(trip_service, fs, trip):
    trip_service.add_city(trip.id, OWNER, PARIS)
    trip_service.add_activity(trip.id, OWNER, "paris-france", ActivityInput(**EIFFEL))
    with pytest.raises(Conflict):
        trip_service.add_activity(trip.id, OWNER, "paris-france", ActivityInput(**EIFFEL))
    assert len(fs.get_trip(trip.id)["selectedCities"][0]["activities"]) == 1


def test_negative_budget_bucket_is_stored_as_zero(trip_service, fs, trip):
    trip_service.upsert_budget_summary(trip.id, OWNER, BudgetSummaryInput(transport=-50, stay=300))
    summary = fs.get_trip(trip.id)["budgetSummary"]
    assert summary["transport"] == 0
    assert summary["total"] == 300


def test_non_finite_budget_bucket_is_stored_as_zero(trip_service, fs, trip):
    summary = parse_command(BudgetSummaryInput, {"transport": "inf", "stay": float("nan"), "meals": 80})
    trip_service.upsert_budget_summary(trip.id, OWNER, summary)
    stored = fs.get_trip(trip.id)["budgetSummary"]
    assert stored["transport"] == 0
    assert stored["stay"] == 0
    assert stored["total"] == 80


def test_infinite_trip_budget_is_rejected():
    with pytest.raises(ValidationFailed) as exc:
        parse_command(TripCreate, {"name": "Endless", "startDate": "2030-01-01", "endDate": "2030-01-02",
                                   "budget": {"amount": "inf"}})
    assert exc.value.errors[0]["field"] == "budget.amount"


def seed_legacy_duplicates(fs, trip):
    doc = fs.get_trip(trip.id)
    doc["selectedCities"] = [
        {"id": "paris-france", "name": "Paris", "country": "France", "activities": [
            {**EIFFEL, "name": "Eiffel Tower"},
            {**EIFFEL, "name": "Eiffel Tower (copy)"},
            {**EIFFEL, "id": "louvre", "name": "Louvre"},
        ]},
        {"id": "paris-france", "name": "Paris (copy)", "country": "France", "activities": []},
        {"id": "rome-italy", "name": "Rome", "country": "Italy", "activities": []},
    ]
    fs.save_trip(trip.id, doc)


def test_adding_activity_cleans_up_stored_duplicates(trip_service, fs, trip):
    seed_legacy_duplicates(fs, trip)
    trip_service.add_activity(trip.id, OWNER, "paris-france", ActivityInput(**{**EIFFEL, "id": "orsay"}))

    cities = fs.get_trip(trip.id)["selectedCities"]
    assert [c["id"] for c in cities] == ["paris-france", "rome-italy"]
    assert cities[0]["name"] == "Paris"
    assert [a["id"] for a in cities[0]["activities"]] == ["eiffel", "louvre", "orsay"]
    assert cities[0]["activities"][0]["name"] == "Eiffel Tower"


def test_removing_activity_cleans_up_stored_duplicates(trip_service, fs, trip):
    seed_legacy_duplicates(fs, trip)
    trip_service.remove_activity(trip.id, OWNER, "paris-france", "louvre")

    cities = fs.get_trip(trip.id)["selectedCities"]
    assert [c["id"] for c in cities] == ["paris-france", "rome-italy"]
    assert [a["name"] for a in cities[0]["activities"]] == ["Eiffel Tower"]


def test_invalid_date_update_leaves_document_unchanged(trip_service, fs, trip):
    before = fs.get_trip(trip.id)
    with pytest.raises(ValidationFailed):
        trip_service.update_trip(trip.id, OWNER, TripUpdate(startDate="2025-07-01"))
    assert fs.get_trip(trip.id) == before


def test_removing_absent_city_succeeds(trip_service, fs, trip):
    trip_service.add_city(trip.id, OWNER, PARIS)
    trip_service.remove_city(trip.id, OWNER, "paris-france")
    result = trip_service.remove_city(trip.id, OWNER, "paris-france")
    assert result.cities == []
    assert fs.get_trip(trip.id)["selectedCities"] == []


def test_removing_absent_activity_fails(trip_service, trip):
    trip_service.add_city(trip.id, OWNER, PARIS)
    with pytest.raises(NotFound) as exc:
        trip_service.remove_activity(trip.id, OWNER, "paris-france", "eiffel")
    assert exc.value.entity == "activity"


@pytest.mark.parametrize("mutation", [
    lambda s, t: s.add_city(t, STRANGER, PARIS),
    lambda s, t: s.remove_city(t, STRANGER, "paris-france"),
    lambda s, t: s.add_activity(t, STRANGER, "paris-france", ActivityInput(**EIFFEL)),
    lambda s, t: s.remove_activity(t, STRANGER, "paris-france", "eiffel"),
    lambda s, t: s.upsert_itinerary(t, STRANGER, [ItineraryDayInput(id="d1", date="2025-06-10")]),
    lambda s, t: s.upsert_budget_summary(t, STRANGER, BudgetSummaryInput(transport=1)),
    lambda s, t: s.update_trip(t, STRANGER, TripUpdate(name="Hijacked")),
    lambda s, t: s.delete_trip(t, STRANGER),
])
def test_non_owner_is_forbidden(trip_service, fs, trip, mutation):
    trip_service.add_city(trip.id, OWNER, PARIS)
    trip_service.add_activity(trip.id, OWNER, "paris-france", ActivityInput(**EIFFEL))
    before = fs.get_trip(trip.id)
    with pytest.raises(Forbidden):
        mutation(trip_service, trip.id)
    assert fs.get_trip(trip.id) == before


def test_missing_trip_is_not_found(trip_service):
    with pytest.raises(NotFound):
        trip_service.add_city("trip_missing", OWNER, PARIS)


def test_private_trip_hidden_from_others(trip_service, trip):
    assert trip_service.get_trip(trip.id, OWNER).id == trip.id
    with pytest.raises(Forbidden):
        trip_service.get_trip(trip.id, STRANGER)
    with pytest.raises(Forbidden):
        trip_service.get_trip(trip.id, None)


def test_public_trip_readable_anonymously(trip_service, trip):
    trip_service.update_trip(trip.id, OWNER, TripUpdate(isPublic=True))
    assert trip_service.get_trip(trip.id, None).id == trip.id
    assert trip_service.list_public_trips()["pagination"]["totalTrips"] == 1


def test_list_filters_sorts_and_pages(trip_service):
    for i, status in enumerate(["planning", "active", "planning"]):
        trip_service.create_trip(OWNER, TripCreate(
            name=f"Trip number {i}", startDate=f"2030-0{i + 1}-01", endDate=f"2030-0{i + 1}-05", status=status,
        ))
    page = trip_service.list_trips(OWNER, page=1, limit=2, sort_by="startDate", sort_order="asc")
    assert [t.data["name"] for t in page["items"]] == ["Trip number 0", "Trip number 1"]
    assert page["pagination"] == {
        "currentPage": 1, "totalPages": 2, "totalTrips": 3, "hasNextPage": True, "hasPrevPage": False,
    }
    planning = trip_service.list_trips(OWNER, status="planning")
    assert planning["pagination"]["totalTrips"] == 2


def test_search_matches_name_description_and_tags(trip_service):
    trip_service.create_trip(OWNER, TripCreate(name="Alps hike", startDate="2030-01-01", endDate="2030-01-05",
                                               tags=["mountains"]))
    trip_service.create_trip(OWNER, TripCreate(name="Beach time", startDate="2030-02-01", endDate="2030-02-05",
                                               description="Sun and SAND"))
    assert trip_service.search_trips(OWNER, "MOUNT")["pagination"]["totalTrips"] == 1
    assert trip_service.search_trips(OWNER, "sand")["items"][0].data["name"] == "Beach time"
    assert trip_service.search_trips(STRANGER, "alps")["items"] == []


def test_upcoming_excludes_past_and_cancelled(trip_service):
    now = datetime.now(timezone.utc)
    soon = trip_service.create_trip(OWNER, TripCreate(name="Soon trip", startDate=now + timedelta(days=3),
                                                      endDate=now + timedelta(days=5)))
    trip_service.create_trip(OWNER, TripCreate(name="Cancelled trip", startDate=now + timedelta(days=4),
                                               endDate=now + timedelta(days=6), status="cancelled"))
    trip_service.create_trip(OWNER, TripCreate(name="Old trip", startDate=now - timedelta(days=30),
                                               endDate=now - timedelta(days=20)))
    assert [t.id for t in trip_service.list_upcoming_trips(OWNER)] == [soon.id]


def test_update_status(trip_service, fs, trip):
    trip_service.update_status(trip.id, OWNER, "completed")
    assert fs.get_trip(trip.id)["status"] == "completed"
    with pytest.raises(ValidationFailed):
        trip_service.update_status(trip.id, OWNER, "archived")


def test_delete_trip(trip_service, fs, trip):
    trip_service.delete_trip(trip.id, OWNER)
    assert fs.get_trip(trip.id) is None


def test_itinerary_round_trip(trip_service, trip):
    days = [ItineraryDayInput(id="day-1", date="2025-06-10",
                              items=[{"id": "i1", "activityId": "eiffel", "time": "10:00", "name": "Eiffel"}])]
    trip_service.upsert_itinerary(trip.id, OWNER, days)
    itinerary = trip_service.get_itinerary(trip.id, OWNER)
    assert itinerary[0]["items"][0]["activityId"] == "eiffel"


def test_quick_add_creates_trip_with_cities(trip_service):
    request = QuickAddRequest(cities=[
        {"id": "rome-italy", "name": "Rome", "country": "Italy", "img": "https://example.com/rome.jpg"},
        {"id": "rome-italy", "name": "Rome", "country": "Italy"},
        {"id": "florence-italy", "name": "Florence", "country": "Italy"},
    ])
    trip = trip_service.quick_add(OWNER, request)
    assert [c["id"] for c in trip.cities] == ["rome-italy", "florence-italy"]
    assert trip.data["budget"] == {"amount": 1000.0, "currency": "USD"}
    assert trip.data["coverPhoto"] == "https://example.com/rome.jpg"
    assert trip.duration == 7


def test_save_activity_creates_placeholder_trip(trip_service, fs):
    request = SaveActivityRequest(cityName="Lisbon", cityCountry="Portugal",
                                  activity={"id": "tram-28", "name": "Tram 28", "category": "Sightseeing",
                                            "cost": "Low", "duration": "1–3 hrs"})
    result = trip_service.save_activity_to_latest_trip(OWNER, request)
    assert result["createdTrip"] is True
    assert result["createdCity"] is True
    assert result["cityId"] == "lisbon-portugal"
    stored = fs.get_trip(result["trip"].id)
    assert stored["name"] == "My Trip"
    assert stored["selectedCities"][0]["activities"][0]["city"] == "Lisbon"


def test_save_activity_reuses_latest_trip_and_city(trip_service, trip):
    trip_service.add_city(trip.id, OWNER, PARIS)
    request = SaveActivityRequest(cityName="Paris", cityCountry="France", activity=EIFFEL)
    result = trip_service.save_activity_to_latest_trip(OWNER, request)
    assert result["trip"].id == trip.id
    assert result["createdTrip"] is False
    assert result["createdCity"] is False

    with pytest.raises(Conflict):
        trip_service.save_activity_to_latest_trip(OWNER, request)


def test_save_activity_rejects_bad_activity(trip_service):
    request = SaveActivityRequest(cityName="Paris", cityCountry="France", activity={"id": "x"})
    with pytest.raises(ValidationFailed) as exc:
        trip_service.save_activity_to_latest_trip(OWNER, request)
    assert all(e["field"].startswith("activity.") for e in exc.value.errors)
