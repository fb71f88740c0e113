from datetime import datetime, timezone

import pytest

from globetrotter.models.trip import TripCreate
from globetrotter.services.dashboard_service import DashboardService

NOW = datetime(2030, 6, 15, 12, tzinfo=timezone.utc)
USER = {"id": "usr_dash", "name": "Dana", "savedDestinations": [{"id": "dest_1"}]}


def add_trip(trip_service, user_id, name, start, end, status, amount, city, country):
    return trip_service.create_trip(user_id, TripCreate(
        name=name, startDate=start, endDate=end, status=status,
        budget={"amount": amount, "currency": "USD"},
        location={"city": city, "country": country},
    ))


@pytest.fixture
def dashboard(fs, trip_service):
    add_trip(trip_service, USER["id"], "Upcoming Rome", "2030-07-01", "2030-07-05", "planning", 1500, "Rome", "Italy")
    add_trip(trip_service, USER["id"], "Cancelled Oslo", "2030-07-10", "2030-07-12", "cancelled", 9000, "Oslo", "Norway")
    add_trip(trip_service, USER["id"], "Done Paris", "2030-06-01", "2030-06-05", "completed", 2500, "Paris", "France")
    add_trip(trip_service, USER["id"], "Active Paris", "2030-06-14", "2030-06-20", "active", 1000, "Paris", "France")
    add_trip(trip_service, "usr_other", "Luxury Maldives", "2030-08-01", "2030-08-10", "planning", 12000,
             "Male", "Maldives")
    return DashboardService(fs)


def test_overview_counts_and_budget(dashboard):
    overview = dashboard.overview(USER, NOW)
    assert overview["welcome"]["message"] == "Welcome back, Dana!"
    assert overview["upcomingTrips"]["count"] == 1
    assert overview["upcomingTrips"]["trips"][0]["name"] == "Upcoming Rome"
    assert overview["recentTrips"]["count"] == 3
    assert overview["activeTrips"]["count"] == 1

    stats = overview["statistics"]
    assert stats["totalTrips"] == 4
    assert stats["cancelledTrips"] == 1
    assert stats["completedTrips"] == 1
    assert stats["planningTrips"] == 1
    assert stats["savedDestinationsCount"] == 1

    budget = overview["budget"]
    assert budget["totalSpent"] == 2500
    assert budget["upcomingExpenses"] == 1500
    assert budget["overview"]["totalBudget"] == 5000
    assert budget["overview"]["maxBudget"] == 2500


def test_cancelled_trips_excluded_from_derived_figures(dashboard):
    overview = dashboard.overview(USER, NOW)
    countries = [row["_id"]["country"] for row in overview["popularDestinations"]]
    assert countries[0] == "France"
    assert overview["popularDestinations"][0]["visitCount"] == 2
    assert "Norway" not in countries
    assert overview["monthlyTrips"] == [
        {"month": 6, "tripCount": 2, "totalBudget": 3500},
        {"month": 7, "tripCount": 1, "totalBudget": 1500},
    ]


def test_statistics_for_year(dashboard):
    stats = dashboard.statistics(USER["id"], 2030)
    assert stats["year"] == 2030
    assert stats["yearly"]["totalTrips"] == 4
    assert stats["yearly"]["cancelledTrips"] == 1
    assert stats["yearly"]["totalBudget"] == 5000
    assert stats["budget"]["budgetTrips"] == 3

    assert dashboard.statistics(USER["id"], 2029)["yearly"]["totalTrips"] == 0


def test_upcoming_and_recent_are_paged(dashboard):
    upcoming = dashboard.upcoming(USER["id"], page=1, limit=10, now=NOW)
    assert [t["name"] for t in upcoming["items"]] == ["Upcoming Rome"]

    recent = dashboard.recent(USER["id"], page=1, limit=2, days=30, now=NOW)
    assert [t["name"] for t in recent["items"]] == ["Upcoming Rome", "Active Paris"]
    assert recent["pagination"]["totalTrips"] == 3
    assert recent["pagination"]["hasNextPage"] is True


def test_recommendations(dashboard):
    recs = dashboard.recommendations(USER["id"])
    assert [row["_id"]["country"] for row in recs["personalized"]] == ["France", "Italy"]
    popular_countries = {row["_id"]["country"] for row in recs["popular"]}
    assert popular_countries == {"France", "Italy", "Maldives"}
    assert {row["_id"]["country"] for row in recs["luxury"]} == {"Maldives"}
    assert {row["_id"]["country"] for row in recs["budgetFriendly"]} == {"France", "Italy"}
    assert len(recs["seasonal"]) == 4


def test_quick_actions(dashboard):
    actions = dashboard.quick_actions(USER, NOW)
    assert actions["viewAllTrips"]["count"] == 2
    assert actions["savedDestinations"]["count"] == 1


def test_recent_window_is_capped(dashboard):
    recent = dashboard.recent(USER["id"], page=1, limit=10, days=10 ** 6, now=NOW)
    assert recent["pagination"]["totalTrips"] == 3
