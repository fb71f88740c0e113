"""
Trip service: owner-checked operations over the trip aggregate.

Every mutation follows the same path: load the whole trip, check ownership,
apply the change in memory, run the pre-persist checks, write the whole
document back once.
"""

import math
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Callable

from globetrotter.config import settings
from globetrotter.errors import Forbidden, NotFound
from globetrotter.models.trip import (
    ActivityInput,
    BudgetSummaryInput,
    CityInput,
    ItineraryDayInput,
    QuickAddRequest,
    SaveActivityRequest,
    TripCreate,
    TripUpdate,
    TRIP_STATUSES,
    is_image_url,
    parse_command,
)
from globetrotter.services.firestore_service import FirestoreService
from globetrotter.services.trip_aggregate import Trip, slugify

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("createdAt", "startDate", "endDate", "name", "status")


def paginate(items: List[Any], page: int, limit: int) -> Dict[str, Any]:
    page = max(int(page or 1), 1)
    limit = max(int(limit or 1), 1)
    total = len(items)
    start = (page - 1) * limit
    return {
        "items": items[start:start + limit],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit) if total else 0,
            "totalTrips": total,
            "hasNextPage": page * limit < total,
            "hasPrevPage": page > 1,
        },
    }


def sort_trips(trips: List[Trip], sort_by: str = "createdAt", sort_order: str = "desc") -> List[Trip]:
    if sort_by not in SORTABLE_FIELDS:
        sort_by = "createdAt"
    reverse = str(sort_order).lower() != "asc"

    def key(trip: Trip):
        value = trip.data.get(sort_by)
        return value.lower() if isinstance(value, str) else value

    present = [t for t in trips if t.data.get(sort_by) is not None]
    missing = [t for t in trips if t.data.get(sort_by) is None]
    return sorted(present, key=key, reverse=reverse) + missing


class TripService:
    def __init__(self, fs: FirestoreService):
        self.fs = fs

    # -------------------------
    # Loading / persisting
    # -------------------------
    def _load(self, trip_id: str) -> Trip:
        doc = self.fs.get_trip(trip_id)
        if not doc:
            raise NotFound("trip", "Trip not found")
        return Trip.from_document(trip_id, doc)

    def _load_for_edit(self, trip_id: str, user_id: str, action: str = "edit") -> Trip:
        trip = self._load(trip_id)
        if not trip.can_edit(user_id):
            logger.warning(f"User {user_id} tried to {action} trip {trip_id} they do not own")
            raise Forbidden(f"Access denied. You can only {action} your own trips.")
        return trip

    def _save(self, trip: Trip) -> Trip:
        trip.validate()
        self.fs.save_trip(trip.id, trip.to_document())
        return trip

    def _mutate(self, trip_id: str, user_id: str, action: str, change: Callable[[Trip], Any]):
        trip = self._load_for_edit(trip_id, user_id, action)
        result = change(trip)
        self._save(trip)
        return trip, result

    def _user_trips(self, user_id: str) -> List[Trip]:
        return [Trip.from_document(d["id"], d) for d in self.fs.list_trips_for_user(user_id)]

    # -------------------------
    # Trip CRUD
    # -------------------------
    def create_trip(self, user_id: str, command: TripCreate) -> Trip:
        trip = Trip.new(self.fs.new_trip_id(), user_id, command)
        self._save(trip)
        logger.info(f"Created trip {trip.id} for user {user_id}")
        return trip

    def get_trip(self, trip_id: str, viewer_id: Optional[str] = None) -> Trip:
        trip = self._load(trip_id)
        if not trip.can_view(viewer_id):
            raise Forbidden("Access denied. This trip is private.")
        return trip

    def list_trips(self, user_id: str, page: int = 1, limit: int = 10, status: Optional[str] = None,
                   sort_by: str = "createdAt", sort_order: str = "desc") -> Dict[str, Any]:
        limit = min(max(int(limit or settings.default_page_size), 1), settings.max_page_size)
        trips = self._user_trips(user_id)
        if status in TRIP_STATUSES:
            trips = [t for t in trips if t.data.get("status") == status]
        return paginate(sort_trips(trips, sort_by, sort_order), page, limit)

    def list_public_trips(self, page: int = 1, limit: int = 10, sort_by: str = "createdAt",
                          sort_order: str = "desc") -> Dict[str, Any]:
        limit = min(max(int(limit or settings.default_page_size), 1), settings.max_page_size)
        trips = [Trip.from_document(d["id"], d) for d in self.fs.list_public_trips()]
        return paginate(sort_trips(trips, sort_by, sort_order), page, limit)

    def list_upcoming_trips(self, user_id: str, now: Optional[datetime] = None) -> List[Trip]:
        now = now or datetime.now(timezone.utc)
        trips = [
            t for t in self._user_trips(user_id)
            if t.data["startDate"] >= now and t.data.get("status") != "cancelled"
        ]
        return sorted(trips, key=lambda t: t.data["startDate"])

    def search_trips(self, user_id: str, query: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        needle = (query or "").strip().lower()
        limit = min(max(int(limit or settings.default_page_size), 1), settings.max_page_size)

        def matches(trip: Trip) -> bool:
            if needle in (trip.data.get("name") or "").lower():
                return True
            if needle in (trip.data.get("description") or "").lower():
                return True
            return any(needle in tag.lower() for tag in trip.data.get("tags") or [])

        found = [t for t in self._user_trips(user_id) if matches(t)]
        return paginate(sort_trips(found, "createdAt", "desc"), page, limit)

    def update_trip(self, trip_id: str, user_id: str, command: TripUpdate) -> Trip:
        trip, _ = self._mutate(trip_id, user_id, "edit", lambda t: t.update_fields(command))
        logger.info(f"Updated trip {trip_id}")
        return trip

    def update_status(self, trip_id: str, user_id: str, status: str) -> Trip:
        trip, _ = self._mutate(trip_id, user_id, "update", lambda t: t.set_status(status))
        logger.info(f"Trip {trip_id} status set to {status}")
        return trip

    def delete_trip(self, trip_id: str, user_id: str):
        self._load_for_edit(trip_id, user_id, "delete")
        self.fs.delete_trip(trip_id)
        logger.info(f"Deleted trip {trip_id}")

    # -------------------------
    # Cities
    # -------------------------
    def list_cities(self, trip_id: str, viewer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.get_trip(trip_id, viewer_id).cities

    def add_city(self, trip_id: str, user_id: str, command: CityInput) -> Trip:
        trip, _ = self._mutate(trip_id, user_id, "add cities to", lambda t: t.add_city(command))
        logger.info(f"Added city {command.id} to trip {trip_id}")
        return trip

    def remove_city(self, trip_id: str, user_id: str, city_id: str) -> Trip:
        trip, removed = self._mutate(trip_id, user_id, "remove cities from", lambda t: t.remove_city(city_id))
        if removed:
            logger.info(f"Removed city {city_id} from trip {trip_id}")
        return trip

    # -------------------------
    # Activities
    # -------------------------
    def list_activities(self, trip_id: str, city_id: str, viewer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.get_trip(trip_id, viewer_id).city_activities(city_id)

    def add_activity(self, trip_id: str, user_id: str, city_id: str, command: ActivityInput) -> Trip:
        trip, _ = self._mutate(
            trip_id, user_id, "add activities to", lambda t: t.add_activity(city_id, command)
        )
        logger.info(f"Added activity {command.id} to city {city_id} in trip {trip_id}")
        return trip

    def remove_activity(self, trip_id: str, user_id: str, city_id: str, activity_id: str) -> Trip:
        trip, _ = self._mutate(
            trip_id, user_id, "remove activities from", lambda t: t.remove_activity(city_id, activity_id)
        )
        logger.info(f"Removed activity {activity_id} from city {city_id} in trip {trip_id}")
        return trip

    # -------------------------
    # Itinerary & budget summary
    # -------------------------
    def get_itinerary(self, trip_id: str, viewer_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.get_trip(trip_id, viewer_id).data["itinerary"]

    def upsert_itinerary(self, trip_id: str, user_id: str, days: List[ItineraryDayInput]) -> Trip:
        trip, _ = self._mutate(trip_id, user_id, "edit", lambda t: t.replace_itinerary(days))
        logger.info(f"Saved itinerary with {len(days)} days for trip {trip_id}")
        return trip

    def get_budget_summary(self, trip_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        return self.get_trip(trip_id, viewer_id).data["budgetSummary"]

    def upsert_budget_summary(self, trip_id: str, user_id: str, summary: BudgetSummaryInput) -> Trip:
        trip, _ = self._mutate(trip_id, user_id, "edit", lambda t: t.replace_budget_summary(summary))
        logger.info(f"Saved budget summary for trip {trip_id}")
        return trip

    # -------------------------
    # Convenience compositions
    # -------------------------
    def quick_add(self, user_id: str, request: QuickAddRequest) -> Trip:
        cities = request.cities
        now = datetime.now(timezone.utc)
        first = cities[0]
        plural = "s" if len(cities) > 1 else ""
        command = TripCreate(
            name=f"Trip to {', '.join(c.name for c in cities)}"[:100],
            description=(
                f"Exploring {len(cities)} amazing destination{plural}: "
                + " • ".join(f"{c.name}, {c.country}" for c in cities)
            )[:1000],
            startDate=now + timedelta(days=7),
            endDate=now + timedelta(days=14),
            coverPhoto=first.img if is_image_url(first.img) else None,
            tags=[f"{c.name}, {c.country}" for c in cities],
            budget={"amount": 1000, "currency": "USD"},
            location={"city": first.name, "country": first.country},
        )
        trip = Trip.new(self.fs.new_trip_id(), user_id, command)
        for city in cities:
            if trip.find_city(city.id) is None:
                trip.add_city(city)
        self._save(trip)
        logger.info(f"Quick-created trip {trip.id} with {len(trip.cities)} cities")
        return trip

    def latest_trip(self, user_id: str) -> Optional[Trip]:
        trips = sort_trips(self._user_trips(user_id), "createdAt", "desc")
        return trips[0] if trips else None

    def save_activity_to_latest_trip(self, user_id: str, request: SaveActivityRequest) -> Dict[str, Any]:
        """
        Attach an activity without an explicit trip or city.

        Uses the caller's most recently created trip (creating a placeholder when
        there is none) and the city `slug(name-country)` inside it (created when
        absent), then applies the usual add-activity rules.
        """
        payload = dict(request.activity)
        payload.setdefault("city", request.cityName)
        activity = parse_command(ActivityInput, payload, prefix="activity")
        city_id = slugify(f"{request.cityName}-{request.cityCountry}")

        trip = self.latest_trip(user_id)
        created_trip = trip is None
        if created_trip:
            now = datetime.now(timezone.utc)
            trip = Trip.new(self.fs.new_trip_id(), user_id, TripCreate(
                name="My Trip",
                description=f"Trip started from {request.cityName}, {request.cityCountry}",
                startDate=now + timedelta(days=7),
                endDate=now + timedelta(days=14),
                location={"city": request.cityName, "country": request.cityCountry},
            ))

        created_city = trip.find_city(city_id) is None
        if created_city:
            trip.add_city(CityInput(id=city_id, name=request.cityName, country=request.cityCountry,
                                    img=request.cityImg))
        trip.add_activity(city_id, activity)
        self._save(trip)
        logger.info(f"Saved activity {activity.id} to trip {trip.id} (new trip: {created_trip})")
        return {"trip": trip, "cityId": city_id, "createdTrip": created_trip, "createdCity": created_city}
