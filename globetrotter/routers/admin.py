import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from globetrotter.dependencies import (
    get_admin_service,
    get_auth_service,
    get_destination_service,
    require_admin,
)
from globetrotter.errors import Forbidden
from globetrotter.models.admin import (
    DeleteConfirmation,
    DestinationCreate,
    DestinationUpdate,
    MaintenanceToggle,
    RoleUpdate,
    SettingsUpdate,
    TripFlagUpdate,
    UserStatusUpdate,
)
from globetrotter.models.user import LoginRequest, SessionResponse
from globetrotter.responses import ok
from globetrotter.services.admin_service import AdminService, is_admin
from globetrotter.services.auth_service import AuthService, public_user
from globetrotter.services.destination_service import DestinationService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=SessionResponse)
def admin_login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Regular login that refuses non-admin accounts."""
    session = auth.login(body.email, body.password)
    if not is_admin(session["user"]):
        logger.warning("Non-admin account %s attempted admin login", session["user"]["id"])
        auth.logout(session["user"], session["refreshToken"])
        raise Forbidden("Access denied. Admin privileges required.")
    return ok(session, "Admin login successful")


@router.get("/me")
def admin_me(admin=Depends(require_admin)):
    return ok({"user": public_user(admin)})


# ---------------------------
# Users
# ---------------------------
@router.get("/users")
def list_users(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    admin=Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    result = service.list_users(q, page, limit)
    return ok({"users": result["items"]}, pagination=result["pagination"])


@router.get("/users/{uid}")
def get_user(uid: str, admin=Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return ok({"user": service.get_user(uid)})


@router.patch("/role/{uid}")
def set_role(uid: str, body: RoleUpdate, admin=Depends(require_admin),
             service: AdminService = Depends(get_admin_service)):
    return ok({"user": service.set_role(admin, uid, body.role)}, "User role updated")


@router.patch("/users/{uid}/status")
def set_status(uid: str, body: UserStatusUpdate, admin=Depends(require_admin),
               service: AdminService = Depends(get_admin_service)):
    user = service.set_active(admin, uid, body.isActive)
    return ok({"user": user}, "User activated" if body.isActive else "User deactivated")


@router.delete("/users/{uid}")
def delete_user(uid: str, body: DeleteConfirmation, admin=Depends(require_admin),
                service: AdminService = Depends(get_admin_service)):
    service.delete_user(admin, uid)
    return ok(None, "User deleted")


# ---------------------------
# Trips
# ---------------------------
@router.get("/trips")
def list_trips(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    admin=Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    result = service.list_trips(q, page, limit)
    return ok({"trips": result["items"]}, pagination=result["pagination"])


@router.get("/trips/{trip_id}")
def get_trip(trip_id: str, admin=Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return ok({"trip": service.get_trip(trip_id)})


@router.patch("/trips/{trip_id}/flag")
def flag_trip(trip_id: str, body: TripFlagUpdate, admin=Depends(require_admin),
              service: AdminService = Depends(get_admin_service)):
    trip = service.flag_trip(admin, trip_id, body.flagged)
    return ok({"trip": trip}, "Trip flagged" if body.flagged else "Trip unflagged")


@router.delete("/trips/{trip_id}")
def delete_trip(trip_id: str, admin=Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    service.delete_trip(admin, trip_id)
    return ok(None, "Trip deleted")


# ---------------------------
# Destination catalog
# ---------------------------
@router.get("/destinations")
def list_destinations(
    q: Optional[str] = Query(None),
    admin=Depends(require_admin),
    destinations: DestinationService = Depends(get_destination_service),
):
    return ok({"destinations": destinations.list(q=q)})


@router.post("/destinations", status_code=201)
def create_destination(body: DestinationCreate, admin=Depends(require_admin),
                       destinations: DestinationService = Depends(get_destination_service)):
    return ok({"destination": destinations.create(body)}, "Destination created")


@router.patch("/destinations/{dest_id}")
def update_destination(dest_id: str, body: DestinationUpdate, admin=Depends(require_admin),
                       destinations: DestinationService = Depends(get_destination_service)):
    return ok({"destination": destinations.update(dest_id, body)}, "Destination updated")


@router.delete("/destinations/{dest_id}")
def delete_destination(dest_id: str, admin=Depends(require_admin),
                       destinations: DestinationService = Depends(get_destination_service)):
    destinations.delete(dest_id)
    return ok(None, "Destination deleted")


# ---------------------------
# Analytics
# ---------------------------
@router.get("/analytics/users")
def user_analytics(admin=Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return ok(service.user_analytics())


@router.get("/analytics/trips")
def trip_analytics(admin=Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return ok(service.trip_analytics())


@router.get("/analytics/popular")
def popular_analytics(
    limit: int = Query(10, ge=1, le=50),
    admin=Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return ok(service.popular_analytics(limit))


# ---------------------------
# Settings
# ---------------------------
@router.get("/settings")
def get_settings(admin=Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return ok({"settings": service.get_settings()})


@router.patch("/settings")
def update_settings(body: SettingsUpdate, admin=Depends(require_admin),
                    service: AdminService = Depends(get_admin_service)):
    return ok({"settings": service.update_settings(admin, body)}, "Settings updated")


@router.patch("/settings/maintenance")
def toggle_maintenance(body: MaintenanceToggle, admin=Depends(require_admin),
                       service: AdminService = Depends(get_admin_service)):
    settings_doc = service.set_maintenance(admin, body.enabled)
    return ok({"settings": settings_doc}, "Maintenance mode enabled" if body.enabled else "Maintenance mode disabled")
