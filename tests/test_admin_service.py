import pytest

from globetrotter.errors import Conflict, Forbidden, NotFound
from globetrotter.models.admin import DestinationCreate, DestinationUpdate, SettingsUpdate
from globetrotter.models.trip import TripCreate
from globetrotter.services.admin_service import AdminService
from globetrotter.services.destination_service import DestinationService
from scripts.ensure_admin import ensure_admin
from scripts.seed_destinations import SAMPLE_DESTINATIONS, seed_destinations


@pytest.fixture
def admin_service(fs):
    return AdminService(fs, max_page_size=100)


@pytest.fixture
def admin(fs, auth_service):
    ensure_admin(fs, auth_service.hasher, "root@example.com", "rootpass1", "Root Admin")
    return fs.find_user_by_email("root@example.com")


def test_ensure_admin_creates_then_normalizes(fs, auth_service):
    hasher = auth_service.hasher
    assert ensure_admin(fs, hasher, "Root@Example.com", "rootpass1", "Root") == "created"
    assert ensure_admin(fs, hasher, "root@example.com", "rootpass1", "Root") == "unchanged"

    user = fs.find_user_by_email("root@example.com")
    fs.update_user(user["id"], {"role": "user", "isActive": False})
    assert ensure_admin(fs, hasher, "root@example.com", "rootpass1", "Root") == "normalized"
    user = fs.find_user_by_email("root@example.com")
    assert user["role"] == "admin"
    assert user["isActive"] is True


def test_list_users_search_and_paging(admin_service, auth_service, admin):
    for i in range(3):
        auth_service.signup(f"Member {'abc'[i]}", f"member{i}@example.com", "member123")
    result = admin_service.list_users(q="member", page=1, limit=2)
    assert len(result["items"]) == 2
    assert result["pagination"] == {"page": 1, "total": 3, "pages": 2}
    assert all("passwordHash" not in u for u in result["items"])


def test_set_role_and_deactivate(admin_service, auth_service, fs, admin):
    member = auth_service.signup("Member One", "one@example.com", "member123")
    uid = member["user"]["id"]

    assert admin_service.set_role(admin, uid, "admin")["role"] == "admin"
    admin_service.set_active(admin, uid, False)
    stored = fs.get_user(uid)
    assert stored["isActive"] is False
    assert stored["refreshTokens"] == []


def test_superadmin_role_is_protected(admin_service, fs, admin):
    fs.update_user(admin["id"], {"role": "superadmin"})
    other = dict(admin, id="usr_other_admin", role="admin")
    with pytest.raises(Forbidden):
        admin_service.set_role(other, admin["id"], "user")


def test_delete_user(admin_service, auth_service, fs, admin):
    member = auth_service.signup("Member Two", "two@example.com", "member123")["user"]
    admin_service.delete_user(admin, member["id"])
    assert fs.get_user(member["id"]) is None
    with pytest.raises(NotFound):
        admin_service.delete_user(admin, member["id"])
    with pytest.raises(Forbidden):
        admin_service.delete_user(admin, admin["id"])


def test_flag_and_delete_trip(admin_service, trip_service, fs, admin):
    trip = trip_service.create_trip("usr_someone", TripCreate(name="Questionable", startDate="2030-01-01",
                                                             endDate="2030-01-02"))
    assert admin_service.flag_trip(admin, trip.id, True)["flagged"] is True
    assert fs.get_trip(trip.id)["flagged"] is True
    assert admin_service.list_trips(q="question")["pagination"]["total"] == 1

    admin_service.delete_trip(admin, trip.id)
    with pytest.raises(NotFound):
        admin_service.get_trip(trip.id)


def test_destination_catalog(fs):
    destinations = DestinationService(fs)
    created = destinations.create(DestinationCreate(name="Porto", country="Portugal", region="Europe",
                                                    popularity=60))
    with pytest.raises(Conflict):
        destinations.create(DestinationCreate(name="Porto", country="Portugal"))

    other = destinations.create(DestinationCreate(name="Braga", country="Portugal"))
    with pytest.raises(Conflict):
        destinations.update(other["id"], DestinationUpdate(name="Porto"))

    updated = destinations.update(created["id"], DestinationUpdate(costIndex=42))
    assert updated["costIndex"] == 42
    assert updated["region"] == "Europe"

    destinations.delete(created["id"])
    with pytest.raises(NotFound):
        destinations.get(created["id"])


def test_seed_and_browse_catalog(fs):
    assert seed_destinations(fs) == len(SAMPLE_DESTINATIONS)
    assert seed_destinations(fs) == 0

    destinations = DestinationService(fs)
    by_popularity = destinations.list(sort="popularity")
    assert by_popularity[0]["name"] == "Paris"
    by_cost = destinations.list(sort="costIndex")
    assert by_cost[0]["name"] == "Hanoi"
    assert {d["name"] for d in destinations.list(region="asia")} == {"Kyoto", "Hanoi"}
    assert [d["name"] for d in destinations.list(q="peru")] == ["Cusco"]


def test_analytics(admin_service, auth_service, trip_service, fs, admin):
    auth_service.signup("Member Three", "three@example.com", "member123")
    trip_service.create_trip("usr_x", TripCreate(name="Trip one", startDate="2030-01-01", endDate="2030-01-02"))
    trip_service.create_trip("usr_x", TripCreate(name="Trip two", startDate="2030-01-01", endDate="2030-01-02",
                                                 status="cancelled"))
    seed_destinations(fs)

    users = admin_service.user_analytics()
    assert users == {"totalUsers": 2, "activeUsers": 2, "admins": 1}
    trips = admin_service.trip_analytics()
    assert trips["totalTrips"] == 2
    assert trips["byStatus"] == {"planning": 1, "cancelled": 1}
    assert admin_service.popular_analytics(limit=2)["destinations"][1]["name"] == "Rome"


def test_settings_are_persisted(admin_service, fs, admin):
    assert admin_service.get_settings() == {"maintenance": False, "maintenanceMessage": ""}
    admin_service.set_maintenance(admin, True)
    admin_service.update_settings(admin, SettingsUpdate(maintenanceMessage="Back soon"))

    # A fresh service instance sees the same state
    fresh = AdminService(fs)
    assert fresh.get_settings() == {"maintenance": True, "maintenanceMessage": "Back soon"}
