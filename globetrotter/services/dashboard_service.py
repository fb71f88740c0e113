"""
Dashboard statistics derived from trip documents.

Nothing here is stored: every call streams the relevant trips and recomputes.
Cancelled trips are left out of every derived figure (upcoming, recent, budget,
destinations, monthly and yearly sums, recommendations). They only show up in
the per-status tallies such as ``totalTrips`` and ``cancelledTrips``.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Callable, Tuple

from globetrotter.services.firestore_service import FirestoreService
from globetrotter.services.trip_aggregate import Trip
from globetrotter.services.trip_service import paginate

logger = logging.getLogger(__name__)

SEASONAL_DESTINATIONS = [
    {"name": "Ski Resorts", "destinations": ["Switzerland", "Canada", "Japan"], "season": "Winter"},
    {"name": "Beach Destinations", "destinations": ["Maldives", "Caribbean", "Australia"], "season": "Summer"},
    {"name": "Cultural Cities", "destinations": ["Paris", "Rome", "Kyoto"], "season": "Spring/Fall"},
    {"name": "Adventure Spots", "destinations": ["New Zealand", "Costa Rica", "Nepal"], "season": "Year-round"},
]
BUDGET_FRIENDLY_LIMIT = 2000
LUXURY_THRESHOLD = 5000
MAX_RECENT_DAYS = 3650


def is_counted(trip: Trip) -> bool:
    return trip.data.get("status") != "cancelled"


def budget_amount(trip: Trip) -> Optional[float]:
    amount = (trip.data.get("budget") or {}).get("amount")
    return float(amount) if isinstance(amount, (int, float)) else None


def budget_overview(trips: List[Trip]) -> Dict[str, Any]:
    amounts = [a for a in (budget_amount(t) for t in trips) if a is not None]
    if not amounts:
        return {"totalBudget": 0, "averageBudget": 0, "minBudget": 0, "maxBudget": 0, "budgetTrips": 0}
    return {
        "totalBudget": sum(amounts),
        "averageBudget": sum(amounts) / len(amounts),
        "minBudget": min(amounts),
        "maxBudget": max(amounts),
        "budgetTrips": len(amounts),
    }


def group_trips(trips: List[Trip], key: Callable[[Trip], Tuple], count_field: str = "visitCount",
                limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Group trips by `key`, summing budgets; sorted by count (desc), stable on first appearance."""
    groups: "OrderedDict[Tuple, Dict[str, Any]]" = OrderedDict()
    for trip in trips:
        k = key(trip)
        group = groups.setdefault(k, {"_id": k, count_field: 0, "totalBudget": 0.0, "_amounts": []})
        group[count_field] += 1
        amount = budget_amount(trip)
        if amount is not None:
            group["totalBudget"] += amount
            group["_amounts"].append(amount)
    rows = []
    for group in groups.values():
        amounts = group.pop("_amounts")
        group["averageBudget"] = sum(amounts) / len(amounts) if amounts else 0
        rows.append(group)
    rows.sort(key=lambda r: r[count_field], reverse=True)
    return rows[:limit] if limit else rows


def by_destination(trip: Trip) -> Dict[str, str]:
    location = trip.data.get("location") or {}
    return {"country": location.get("country", ""), "city": location.get("city", "")}


def _destination_key(trip: Trip) -> Tuple:
    dest = by_destination(trip)
    return (dest["country"], dest["city"])


def _label_destinations(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    for row in rows:
        country, city = row["_id"]
        row["_id"] = {"country": country, "city": city}
    return rows


def monthly_counts(trips: List[Trip], year: int) -> List[Dict[str, Any]]:
    months: Dict[int, Dict[str, Any]] = {}
    for trip in trips:
        start = trip.data.get("startDate")
        if not start or start.year != year:
            continue
        row = months.setdefault(start.month, {"month": start.month, "tripCount": 0, "totalBudget": 0.0})
        row["tripCount"] += 1
        row["totalBudget"] += budget_amount(trip) or 0
    return [months[m] for m in sorted(months)]


class DashboardService:
    def __init__(self, fs: FirestoreService):
        self.fs = fs

    def _trips(self, user_id: str) -> List[Trip]:
        return [Trip.from_document(d["id"], d) for d in self.fs.list_trips_for_user(user_id)]

    @staticmethod
    def _upcoming(trips: List[Trip], now: datetime) -> List[Trip]:
        found = [t for t in trips if is_counted(t) and t.data["startDate"] >= now]
        return sorted(found, key=lambda t: t.data["startDate"])

    @staticmethod
    def _recent(trips: List[Trip], now: datetime, days: int) -> List[Trip]:
        since = now - timedelta(days=days)
        found = [t for t in trips if is_counted(t) and t.data["endDate"] >= since]
        return sorted(found, key=lambda t: t.data["endDate"], reverse=True)

    def overview(self, user: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        trips = self._trips(user["id"])
        counted = [t for t in trips if is_counted(t)]
        upcoming = self._upcoming(trips, now)
        recent = self._recent(trips, now, 30)
        active = [t for t in counted if t.data.get("status") == "active"]
        completed = [t for t in counted if t.data.get("status") == "completed"]

        overview = budget_overview(counted)
        overview.pop("budgetTrips")
        return {
            "welcome": {
                "message": f"Welcome back, {user.get('name', 'traveler')}!",
                "date": now.strftime("%A, %B %d, %Y"),
            },
            "upcomingTrips": {"count": len(upcoming), "trips": [t.to_response(now) for t in upcoming[:5]]},
            "recentTrips": {"count": len(recent), "trips": [t.to_response(now) for t in recent[:5]]},
            "activeTrips": {"count": len(active), "trips": [t.to_response(now) for t in active]},
            "statistics": {
                "totalTrips": len(trips),
                "completedTrips": len(completed),
                "planningTrips": sum(1 for t in trips if t.data.get("status") == "planning"),
                "activeTrips": len(active),
                "cancelledTrips": sum(1 for t in trips if not is_counted(t)),
                "savedDestinationsCount": len(user.get("savedDestinations") or []),
            },
            "budget": {
                "totalSpent": sum(budget_amount(t) or 0 for t in completed),
                "upcomingExpenses": sum(budget_amount(t) or 0 for t in upcoming),
                "overview": overview,
            },
            "popularDestinations": _label_destinations(group_trips(counted, _destination_key, limit=5)),
            "monthlyTrips": monthly_counts(counted, now.year),
            "quickActions": {
                "planNewTrip": True,
                "viewAllTrips": True,
                "manageProfile": True,
                "exportData": True,
                "savedDestinations": True,
            },
        }

    def upcoming(self, user_id: str, page: int = 1, limit: int = 10, now: Optional[datetime] = None):
        now = now or datetime.now(timezone.utc)
        return paginate([t.to_response(now) for t in self._upcoming(self._trips(user_id), now)], page, limit)

    def recent(self, user_id: str, page: int = 1, limit: int = 10, days: int = 30,
               now: Optional[datetime] = None):
        now = now or datetime.now(timezone.utc)
        days = min(max(int(days), 0), MAX_RECENT_DAYS)
        trips = self._recent(self._trips(user_id), now, days)
        return paginate([t.to_response(now) for t in trips], page, limit)

    def statistics(self, user_id: str, year: Optional[int] = None) -> Dict[str, Any]:
        year = int(year or datetime.now(timezone.utc).year)
        trips = self._trips(user_id)
        in_year = [t for t in trips if t.data.get("startDate") and t.data["startDate"].year == year]
        counted_in_year = [t for t in in_year if is_counted(t)]
        counted = [t for t in trips if is_counted(t)]

        yearly_budget = budget_overview(counted_in_year)
        statuses = [t.data.get("status") for t in in_year]
        return {
            "yearly": {
                "totalTrips": len(in_year),
                "totalBudget": yearly_budget["totalBudget"],
                "averageBudget": yearly_budget["averageBudget"],
                "completedTrips": statuses.count("completed"),
                "activeTrips": statuses.count("active"),
                "planningTrips": statuses.count("planning"),
                "cancelledTrips": statuses.count("cancelled"),
            },
            "monthly": monthly_counts(counted, year),
            "destinations": _label_destinations(group_trips(counted, _destination_key, limit=10)),
            "budget": budget_overview(counted),
            "year": year,
        }

    def recommendations(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        mine = [t for t in self._trips(user_id) if is_counted(t)]
        everyone = [
            t for t in (Trip.from_document(d["id"], d) for d in self.fs.list_all_trips()) if is_counted(t)
        ]
        since = now - timedelta(days=30)
        fresh = [t for t in everyone if t.data.get("createdAt") and t.data["createdAt"] >= since]

        personalized = group_trips(mine, lambda t: (by_destination(t)["country"],), limit=5)
        for row in personalized:
            row["_id"] = {"country": row["_id"][0]}
        popular = _label_destinations(group_trips(everyone, _destination_key, limit=10))
        trending = _label_destinations(
            group_trips(fresh, _destination_key, count_field="recentVisits", limit=8)
        )
        return {
            "personalized": personalized,
            "popular": popular,
            "trending": trending,
            "seasonal": SEASONAL_DESTINATIONS,
            "budgetFriendly": [d for d in popular if d["averageBudget"] < BUDGET_FRIENDLY_LIMIT][:5],
            "luxury": [d for d in popular if d["averageBudget"] > LUXURY_THRESHOLD][:5],
        }

    def quick_actions(self, user: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        trips = self._trips(user["id"])
        active_count = sum(1 for t in trips if t.data.get("status") == "active")
        upcoming_count = len(self._upcoming(trips, now))
        saved_count = len(user.get("savedDestinations") or [])
        return {
            "planNewTrip": {"available": True, "action": "Create a new trip", "icon": "plus",
                            "route": "/trips/create"},
            "viewAllTrips": {"available": True, "action": "View all trips", "icon": "list",
                             "route": "/trips", "count": upcoming_count + active_count},
            "manageProfile": {"available": True, "action": "Edit profile", "icon": "user",
                              "route": "/profile"},
            "savedDestinations": {"available": True, "action": "Saved destinations", "icon": "bookmark",
                                  "route": "/profile/saved-destinations", "count": saved_count},
            "exportData": {"available": True, "action": "Export data", "icon": "download",
                           "route": "/profile/export"},
            "budgetOverview": {"available": True, "action": "Budget overview", "icon": "dollar-sign",
                               "route": "/dashboard/statistics"},
        }
