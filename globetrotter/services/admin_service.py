import logging
from typing import Optional, Dict, Any

from globetrotter.errors import Forbidden, NotFound
from globetrotter.models.admin import SettingsUpdate
from globetrotter.services.auth_service import public_user
from globetrotter.services.firestore_service import FirestoreService
from globetrotter.services.trip_aggregate import Trip
from globetrotter.services.trip_service import paginate, sort_trips

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "superadmin")
DEFAULT_SETTINGS = {"maintenance": False, "maintenanceMessage": ""}


def is_admin(user: Optional[Dict[str, Any]]) -> bool:
    return bool(user) and user.get("role") in ADMIN_ROLES


def _admin_page(items, page: int, limit: int, max_limit: int) -> Dict[str, Any]:
    limit = min(max(int(limit or 20), 1), max_limit)
    result = paginate(items, page, limit)
    pagination = result["pagination"]
    result["pagination"] = {
        "page": pagination["currentPage"],
        "total": pagination["totalTrips"],
        "pages": pagination["totalPages"],
    }
    return result


class AdminService:
    """Administrative user/trip management, analytics and persisted settings."""

    def __init__(self, fs: FirestoreService, max_page_size: int = 100):
        self.fs = fs
        self.max_page_size = max_page_size

    # -------------------------
    # Users
    # -------------------------
    def _user(self, uid: str) -> Dict[str, Any]:
        user = self.fs.get_user(uid)
        if not user:
            raise NotFound("user", "User not found")
        return user

    def list_users(self, q: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        users = self.fs.list_users()
        if q:
            needle = q.strip().lower()
            users = [
                u for u in users
                if needle in (u.get("name") or "").lower() or needle in (u.get("email") or "").lower()
            ]
        users.sort(key=lambda u: u.get("createdAt") or 0, reverse=True)
        return _admin_page([public_user(u) for u in users], page, limit, self.max_page_size)

    def get_user(self, uid: str) -> Dict[str, Any]:
        return public_user(self._user(uid))

    def set_role(self, actor: Dict[str, Any], uid: str, role: str) -> Dict[str, Any]:
        user = self._user(uid)
        if user.get("role") == "superadmin" and actor.get("role") != "superadmin":
            raise Forbidden("Only a superadmin can change a superadmin's role")
        self.fs.update_user(uid, {"role": role})
        logger.info(f"Admin {actor['id']} set role of {uid} to {role}")
        return public_user({**user, "role": role})

    def set_active(self, actor: Dict[str, Any], uid: str, is_active: bool) -> Dict[str, Any]:
        user = self._user(uid)
        changes = {"isActive": is_active}
        if not is_active:
            # Deactivation also ends every refresh session.
            changes["refreshTokens"] = []
        self.fs.update_user(uid, changes)
        logger.info(f"Admin {actor['id']} set isActive={is_active} on {uid}")
        return public_user({**user, **changes})

    def delete_user(self, actor: Dict[str, Any], uid: str):
        self._user(uid)
        if uid == actor["id"]:
            raise Forbidden("Admins cannot delete their own account here")
        self.fs.delete_user(uid)
        logger.info(f"Admin {actor['id']} deleted user {uid}")

    # -------------------------
    # Trips
    # -------------------------
    def _trip(self, trip_id: str) -> Trip:
        doc = self.fs.get_trip(trip_id)
        if not doc:
            raise NotFound("trip", "Trip not found")
        return Trip.from_document(trip_id, doc)

    def list_trips(self, q: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        trips = [Trip.from_document(d["id"], d) for d in self.fs.list_all_trips()]
        if q:
            needle = q.strip().lower()
            trips = [
                t for t in trips
                if needle in (t.data.get("name") or "").lower()
                or needle in (t.data.get("description") or "").lower()
            ]
        trips = sort_trips(trips, "createdAt", "desc")
        return _admin_page([t.to_response() for t in trips], page, limit, self.max_page_size)

    def get_trip(self, trip_id: str) -> Dict[str, Any]:
        return self._trip(trip_id).to_response()

    def flag_trip(self, actor: Dict[str, Any], trip_id: str, flagged: bool) -> Dict[str, Any]:
        trip = self._trip(trip_id)
        trip.set_flagged(flagged)
        self.fs.save_trip(trip.id, trip.to_document())
        logger.info(f"Admin {actor['id']} set flagged={flagged} on trip {trip_id}")
        return trip.to_response()

    def delete_trip(self, actor: Dict[str, Any], trip_id: str):
        self._trip(trip_id)
        self.fs.delete_trip(trip_id)
        logger.info(f"Admin {actor['id']} deleted trip {trip_id}")

    # -------------------------
    # Analytics
    # -------------------------
    def user_analytics(self) -> Dict[str, Any]:
        users = self.fs.list_users()
        return {
            "totalUsers": len(users),
            "activeUsers": sum(1 for u in users if u.get("isActive", True)),
            "admins": sum(1 for u in users if u.get("role") in ADMIN_ROLES),
        }

    def trip_analytics(self) -> Dict[str, Any]:
        trips = self.fs.list_all_trips()
        by_status: Dict[str, int] = {}
        for trip in trips:
            status = trip.get("status", "planning")
            by_status[status] = by_status.get(status, 0) + 1
        return {"totalTrips": len(trips), "byStatus": by_status}

    def popular_analytics(self, limit: int = 10) -> Dict[str, Any]:
        destinations = sorted(self.fs.list_destinations(), key=lambda d: d.get("popularity") or 0, reverse=True)
        return {"destinations": destinations[:limit]}

    # -------------------------
    # Settings (persisted, one document shared by every instance)
    # -------------------------
    def get_settings(self) -> Dict[str, Any]:
        stored = self.fs.get_settings() or {}
        return {**DEFAULT_SETTINGS, **{k: v for k, v in stored.items() if k in DEFAULT_SETTINGS}}

    def update_settings(self, actor: Dict[str, Any], update: SettingsUpdate) -> Dict[str, Any]:
        changes = update.model_dump(exclude_none=True)
        if changes:
            self.fs.save_settings({**changes, "updatedBy": actor["id"]})
            logger.info(f"Admin {actor['id']} updated settings {sorted(changes)}")
        return self.get_settings()

    def set_maintenance(self, actor: Dict[str, Any], enabled: bool) -> Dict[str, Any]:
        return self.update_settings(actor, SettingsUpdate(maintenance=enabled))
