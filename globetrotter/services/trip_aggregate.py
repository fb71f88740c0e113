"""
Trip aggregate.

A trip document owns its selected cities, each city owns its activities, and
the trip also owns the itinerary days and the budget summary. Every change to
those nested values goes through the mutators below and is persisted by
writing the whole document back in one call.

Invariants enforced here:
- startDate is strictly before endDate
- city ids are unique within a trip
- activity ids are unique within a city
- only the owner may mutate
"""

import math
import re
import unicodedata
from copy import deepcopy
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from globetrotter.errors import Conflict, NotFound, ValidationFailed
from globetrotter.models.trip import (
    ActivityInput,
    BudgetSummaryInput,
    CityInput,
    ItineraryDayInput,
    TripCreate,
    TripUpdate,
    TRIP_STATUSES,
    is_image_url,
)


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "city"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def empty_budget_summary(currency: str = "USD") -> Dict[str, Any]:
    return {"transport": 0, "stay": 0, "activities": 0, "meals": 0, "total": 0, "currency": currency}


class Trip:
    def __init__(self, trip_id: str, data: Dict[str, Any]):
        self.id = trip_id
        self.data = data

    # -------------------------
    # Construction / persistence shape
    # -------------------------
    @classmethod
    def new(cls, trip_id: str, owner_id: str, command: TripCreate) -> "Trip":
        now = _now()
        data = {
            "name": command.name,
            "description": command.description or "",
            "startDate": command.startDate,
            "endDate": command.endDate,
            "coverPhoto": command.coverPhoto or "",
            "status": command.status,
            "userId": owner_id,
            "isPublic": command.isPublic,
            "tags": list(command.tags),
            "budget": command.budget.model_dump(),
            "location": command.location.model_dump(exclude_none=True),
            "selectedCities": [],
            "itinerary": [],
            "budgetSummary": empty_budget_summary(command.budget.currency),
            "flagged": False,
            "createdAt": now,
            "updatedAt": now,
        }
        return cls(trip_id, data)

    @classmethod
    def from_document(cls, trip_id: str, doc: Dict[str, Any]) -> "Trip":
        data = deepcopy(doc)
        data.pop("id", None)
        data.setdefault("selectedCities", [])
        data.setdefault("itinerary", [])
        data.setdefault("budgetSummary", empty_budget_summary())
        data.setdefault("tags", [])
        data.setdefault("isPublic", False)
        data.setdefault("status", "planning")
        for city in data["selectedCities"]:
            city.setdefault("activities", [])
        return cls(trip_id, data)

    def to_document(self) -> Dict[str, Any]:
        return deepcopy(self.data)

    def to_response(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        body = {"id": self.id, **deepcopy(self.data)}
        body["duration"] = self.duration
        body["dateStatus"] = self.date_status(now)
        body["totalActivities"] = self.total_activities
        return body

    # -------------------------
    # Access
    # -------------------------
    @property
    def owner_id(self) -> str:
        return self.data.get("userId")

    @property
    def cities(self) -> List[Dict[str, Any]]:
        return self.data["selectedCities"]

    def can_edit(self, user_id: Optional[str]) -> bool:
        return user_id is not None and str(self.owner_id) == str(user_id)

    def can_view(self, user_id: Optional[str]) -> bool:
        return bool(self.data.get("isPublic")) or self.can_edit(user_id)

    def find_city(self, city_id: str) -> Optional[Dict[str, Any]]:
        for city in self.cities:
            if city.get("id") == city_id:
                return city
        return None

    # -------------------------
    # Derived values (computed on read, never stored)
    # -------------------------
    @property
    def duration(self) -> int:
        start, end = self.data.get("startDate"), self.data.get("endDate")
        if not start or not end:
            return 0
        seconds = abs((end - start).total_seconds())
        return math.ceil(seconds / 86400)

    def date_status(self, now: Optional[datetime] = None) -> str:
        now = now or _now()
        if self.data["startDate"] > now:
            return "upcoming"
        if self.data["endDate"] < now:
            return "past"
        return "ongoing"

    @property
    def total_activities(self) -> int:
        return sum(len(city.get("activities") or []) for city in self.cities)

    # -------------------------
    # Top-level fields
    # -------------------------
    def update_fields(self, command: TripUpdate):
        changes = command.model_dump(exclude_unset=True)
        for field in ("name", "description", "coverPhoto", "isPublic", "startDate", "endDate", "status"):
            if field in changes and changes[field] is not None:
                self.data[field] = changes[field]
        if "description" in changes and changes["description"] is None:
            self.data["description"] = ""
        if "coverPhoto" in changes and changes["coverPhoto"] is None:
            self.data["coverPhoto"] = ""
        if changes.get("tags") is not None:
            self.data["tags"] = list(command.tags)
        if command.budget is not None:
            self.data["budget"] = command.budget.model_dump()
        if command.location is not None:
            self.data["location"] = command.location.model_dump(exclude_none=True)
        self._touch()

    def set_status(self, status: str):
        if status not in TRIP_STATUSES:
            raise ValidationFailed.single("status", f"Invalid status. Must be one of: {', '.join(TRIP_STATUSES)}")
        self.data["status"] = status
        self._touch()

    def set_flagged(self, flagged: bool):
        self.data["flagged"] = bool(flagged)
        self._touch()

    # -------------------------
    # Cities
    # -------------------------
    def add_city(self, command: CityInput) -> Dict[str, Any]:
        if self.find_city(command.id) is not None:
            raise Conflict("City already exists in this trip")
        city = {
            "id": command.id,
            "name": command.name,
            "country": command.country,
            "img": command.img,
            "addedAt": _now(),
            "activities": [],
        }
        self.cities.append(city)
        self._touch()
        return city

    def remove_city(self, city_id: str) -> bool:
        """Removing an absent city is a successful no-op."""
        before = len(self.cities)
        self.data["selectedCities"] = [c for c in self.cities if c.get("id") != city_id]
        removed = len(self.cities) != before
        if removed:
            self._touch()
        return removed

    # -------------------------
    # Activities
    # -------------------------
    def add_activity(self, city_id: str, command: ActivityInput) -> Dict[str, Any]:
        city = self.find_city(city_id)
        if city is None:
            raise NotFound("city", "City not found in trip")
        activities = city.setdefault("activities", [])
        if any(a.get("id") == command.id for a in activities):
            raise Conflict("Activity already exists in this city")
        activity = {**command.model_dump(), "addedAt": _now()}
        activities.append(activity)
        self.deduplicate()
        self._touch()
        return activity

    def remove_activity(self, city_id: str, activity_id: str) -> Dict[str, Any]:
        # Unlike remove_city, absence is reported rather than ignored.
        city = self.find_city(city_id)
        if city is None:
            raise NotFound("city", "City not found in trip")
        activities = city.get("activities") or []
        for index, activity in enumerate(activities):
            if activity.get("id") == activity_id:
                removed = activities.pop(index)
                self.deduplicate()
                self._touch()
                return removed
        raise NotFound("activity", "Activity not found in this city")

    def city_activities(self, city_id: str) -> List[Dict[str, Any]]:
        city = self.find_city(city_id)
        if city is None:
            raise NotFound("city", "City not found in trip")
        return city.get("activities") or []

    def deduplicate(self):
        """Drop repeated city ids and repeated activity ids; the first one seen wins."""
        seen_cities = set()
        cities = []
        for city in self.cities:
            if city.get("id") in seen_cities:
                continue
            seen_cities.add(city.get("id"))
            seen_activities = set()
            activities = []
            for activity in city.get("activities") or []:
                if activity.get("id") in seen_activities:
                    continue
                seen_activities.add(activity.get("id"))
                activities.append(activity)
            city["activities"] = activities
            cities.append(city)
        self.data["selectedCities"] = cities

    # -------------------------
    # Itinerary & budget summary
    # -------------------------
    def replace_itinerary(self, days: List[ItineraryDayInput]):
        self.data["itinerary"] = [day.model_dump() for day in days]
        self._touch()

    def replace_budget_summary(self, summary: BudgetSummaryInput):
        self.data["budgetSummary"] = summary.model_dump()
        self._touch()

    # -------------------------
    # Pre-persist checks
    # -------------------------
    def validate(self):
        errors = []
        start, end = self.data.get("startDate"), self.data.get("endDate")
        if not start:
            errors.append({"field": "startDate", "message": "Please provide a start date"})
        if not end:
            errors.append({"field": "endDate", "message": "Please provide an end date"})
        if start and end and start >= end:
            errors.append({"field": "endDate", "message": "End date must be after start date"})
        cover = self.data.get("coverPhoto")
        if cover and not is_image_url(cover):
            errors.append({"field": "coverPhoto", "message": "Please provide a valid image URL"})
        ids = [c.get("id") for c in self.cities]
        if len(ids) != len(set(ids)):
            errors.append({"field": "selectedCities", "message": "Duplicate cities are not allowed in a trip"})
        if self.data.get("status") not in TRIP_STATUSES:
            errors.append({"field": "status", "message": "Invalid status"})
        if errors:
            raise ValidationFailed(errors)

    def _touch(self):
        self.data["updatedAt"] = _now()
