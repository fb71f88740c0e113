from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query

from globetrotter.dependencies import get_current_user, get_optional_user, get_trip_service
from globetrotter.models.trip import (
    ActivityInput,
    BudgetSummaryInput,
    CityInput,
    ItineraryUpdate,
    QuickAddRequest,
    SaveActivityRequest,
    TripCreate,
    TripListResponse,
    TripResponse,
    TripStatusUpdate,
    TripUpdate,
)
from globetrotter.responses import ok
from globetrotter.services.trip_service import TripService

router = APIRouter()


def _viewer(user: Optional[Dict[str, Any]]) -> Optional[str]:
    return user["id"] if user else None


def _page(result: Dict[str, Any]):
    return [t.to_response() for t in result["items"]], result["pagination"]


# ---------------------------
# Collection routes (registered before /{trip_id})
# ---------------------------
@router.post("", status_code=201, response_model=TripResponse)
def create_trip(body: TripCreate, user=Depends(get_current_user), trips: TripService = Depends(get_trip_service)):
    trip = trips.create_trip(user["id"], body)
    return ok({"trip": trip.to_response()}, "Trip created successfully")


@router.get("", response_model=TripListResponse)
def list_trips(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    status: Optional[str] = Query(None),
    sortBy: str = Query("createdAt"),
    sortOrder: str = Query("desc"),
    user=Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    items, pagination = _page(trips.list_trips(user["id"], page, limit, status, sortBy, sortOrder))
    return ok({"trips": items}, pagination=pagination)


@router.get("/public", response_model=TripListResponse)
def list_public_trips(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sortBy: str = Query("createdAt"),
    sortOrder: str = Query("desc"),
    trips: TripService = Depends(get_trip_service),
):
    items, pagination = _page(trips.list_public_trips(page, limit, sortBy, sortOrder))
    return ok({"trips": items}, pagination=pagination)


@router.get("/upcoming", response_model=TripListResponse)
def list_upcoming_trips(user=Depends(get_current_user), trips: TripService = Depends(get_trip_service)):
    upcoming = trips.list_upcoming_trips(user["id"])
    return ok({"trips": [t.to_response() for t in upcoming]})


@router.get("/search", response_model=TripListResponse)
def search_trips(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    user=Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    items, pagination = _page(trips.search_trips(user["id"], q, page, limit))
    return ok({"trips": items}, pagination=pagination)


@router.post("/quick-add", status_code=201, response_model=TripResponse)
def quick_add(body: QuickAddRequest, user=Depends(get_current_user), trips: TripService = Depends(get_trip_service)):
    trip = trips.quick_add(user["id"], body)
    return ok({"trip": trip.to_response()}, "Trip created successfully")


@router.post("/save-activity", response_model=TripResponse)
def save_activity(body: SaveActivityRequest, user=Depends(get_current_user),
                  trips: TripService = Depends(get_trip_service)):
    result = trips.save_activity_to_latest_trip(user["id"], body)
    return ok({
        "trip": result["trip"].to_response(),
        "cityId": result["cityId"],
        "createdTrip": result["createdTrip"],
        "createdCity": result["createdCity"],
    }, "Activity saved successfully")


# ---------------------------
# Single trip
# ---------------------------
@router.get("/{trip_id}", response_model=TripResponse)
def get_trip(trip_id: str, user=Depends(get_optional_user), trips: TripService = Depends(get_trip_service)):
    return ok({"trip": trips.get_trip(trip_id, _viewer(user)).to_response()})


@router.put("/{trip_id}", response_model=TripResponse)
def update_trip(trip_id: str, body: TripUpdate, user=Depends(get_current_user),
                trips: TripService = Depends(get_trip_service)):
    trip = trips.update_trip(trip_id, user["id"], body)
    return ok({"trip": trip.to_response()}, "Trip updated successfully")


@router.delete("/{trip_id}")
def delete_trip(trip_id: str, user=Depends(get_current_user), trips: TripService = Depends(get_trip_service)):
    trips.delete_trip(trip_id, user["id"])
    return ok(None, "Trip deleted successfully")


@router.patch("/{trip_id}/status", response_model=TripResponse)
def update_status(trip_id: str, body: TripStatusUpdate, user=Depends(get_current_user),
                  trips: TripService = Depends(get_trip_service)):
    trip = trips.update_status(trip_id, user["id"], body.status)
    return ok({"trip": trip.to_response()}, "Trip status updated successfully")


# ---------------------------
# Cities & activities
# ---------------------------
@router.get("/{trip_id}/cities")
def list_cities(trip_id: str, user=Depends(get_optional_user), trips: TripService = Depends(get_trip_service)):
    return ok({"cities": trips.list_cities(trip_id, _viewer(user))})


@router.post("/{trip_id}/cities", status_code=201, response_model=TripResponse)
def add_city(trip_id: str, body: CityInput, user=Depends(get_current_user),
             trips: TripService = Depends(get_trip_service)):
    trip = trips.add_city(trip_id, user["id"], body)
    return ok({"trip": trip.to_response()}, "City added to trip successfully")


@router.delete("/{trip_id}/cities/{city_id}", response_model=TripResponse)
def remove_city(trip_id: str, city_id: str, user=Depends(get_current_user),
                trips: TripService = Depends(get_trip_service)):
    trip = trips.remove_city(trip_id, user["id"], city_id)
    return ok({"trip": trip.to_response()}, "City removed from trip successfully")


@router.get("/{trip_id}/cities/{city_id}/activities")
def list_activities(trip_id: str, city_id: str, user=Depends(get_optional_user),
                    trips: TripService = Depends(get_trip_service)):
    return ok({"activities": trips.list_activities(trip_id, city_id, _viewer(user))})


@router.post("/{trip_id}/cities/{city_id}/activities", status_code=201, response_model=TripResponse)
def add_activity(trip_id: str, city_id: str, body: ActivityInput, user=Depends(get_current_user),
                 trips: TripService = Depends(get_trip_service)):
    trip = trips.add_activity(trip_id, user["id"], city_id, body)
    return ok({"trip": trip.to_response()}, "Activity added successfully")


@router.delete("/{trip_id}/cities/{city_id}/activities/{activity_id}", response_model=TripResponse)
def remove_activity(trip_id: str, city_id: str, activity_id: str, user=Depends(get_current_user),
                    trips: TripService = Depends(get_trip_service)):
    trip = trips.remove_activity(trip_id, user["id"], city_id, activity_id)
    return ok({"trip": trip.to_response()}, "Activity removed successfully")


# ---------------------------
# Itinerary & budget summary
# ---------------------------
@router.get("/{trip_id}/itinerary")
def get_itinerary(trip_id: str, user=Depends(get_optional_user), trips: TripService = Depends(get_trip_service)):
    return ok({"itinerary": trips.get_itinerary(trip_id, _viewer(user))})


@router.put("/{trip_id}/itinerary")
def upsert_itinerary(trip_id: str, body: ItineraryUpdate, user=Depends(get_current_user),
                     trips: TripService = Depends(get_trip_service)):
    trip = trips.upsert_itinerary(trip_id, user["id"], body.itinerary)
    return ok({"itinerary": trip.data["itinerary"]}, "Itinerary saved successfully")


@router.get("/{trip_id}/budget-summary")
def get_budget_summary(trip_id: str, user=Depends(get_optional_user),
                       trips: TripService = Depends(get_trip_service)):
    return ok({"budgetSummary": trips.get_budget_summary(trip_id, _viewer(user))})


@router.put("/{trip_id}/budget-summary")
def upsert_budget_summary(trip_id: str, body: BudgetSummaryInput, user=Depends(get_current_user),
                          trips: TripService = Depends(get_trip_service)):
    trip = trips.upsert_budget_summary(trip_id, user["id"], body)
    return ok({"budgetSummary": trip.data["budgetSummary"]}, "Budget summary saved successfully")
