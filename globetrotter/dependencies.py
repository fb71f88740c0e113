import os
import json
import logging
from typing import Optional, Dict, Any

from fastapi import Header, Depends
from firebase_admin import credentials, initialize_app, get_app, _apps, firestore as admin_firestore
from google.cloud import secretmanager
from google.api_core import exceptions as gapi_exceptions

from globetrotter.config import settings
from globetrotter.errors import Forbidden, Unauthorized
from globetrotter.services.admin_service import AdminService, is_admin
from globetrotter.services.auth_service import AuthService
from globetrotter.services.dashboard_service import DashboardService
from globetrotter.services.destination_service import DestinationService
from globetrotter.services.firestore_service import FirestoreService
from globetrotter.services.profile_service import ProfileService
from globetrotter.services.trip_service import TripService

logger = logging.getLogger(__name__)


def _access_secret_from_sm(resource_name: str) -> str:
    """
    Given a full Secret Manager resource name (projects/.../secrets/.../versions/...),
    retrieve the secret payload (string).
    """
    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": resource_name})
        return response.payload.data.decode("UTF-8")
    except gapi_exceptions.GoogleAPIError as e:
        logger.exception("Unable to access secret %s: %s", resource_name, e)
        raise


def _init_firebase(cred=None):
    """Initialize firebase_admin once; later calls return the existing app."""
    if _apps:
        return get_app()
    app = initialize_app(cred) if cred is not None else initialize_app()
    return app


def init_firebase_admin():
    """
    Initialize firebase_admin and return a Firestore client.
    Order of preference:
      1) SERVICE_ACCOUNT_SECRET -> service account JSON from Secret Manager
      2) GOOGLE_APPLICATION_CREDENTIALS -> local file path (dev)
      3) Application Default Credentials (Cloud Run)
    """
    database = settings.database or "(default)"

    if settings.service_account_secret:
        secret_res_name = settings.service_account_secret
        # shorthand secret id -> full resource name
        if not secret_res_name.startswith("projects/") and settings.project_id:
            secret_res_name = f"projects/{settings.project_id}/secrets/{secret_res_name}/versions/latest"
        logger.info("Loading service account from Secret Manager: %s", secret_res_name)
        sa_dict = json.loads(_access_secret_from_sm(secret_res_name))
        _init_firebase(credentials.Certificate(sa_dict))
        return admin_firestore.client(database_id=database)

    path = settings.google_application_credentials
    if path and os.path.exists(path):
        logger.info("Loading service account from path: %s", path)
        _init_firebase(credentials.Certificate(path))
        return admin_firestore.client(database_id=database)

    logger.info("No explicit service account provided, using Application Default Credentials (ADC)")
    _init_firebase()
    return admin_firestore.client(database_id=database)


# Lazily initialize a single global Firestore client to reuse across requests
_db_client = None


def get_firestore_client():
    global _db_client
    if _db_client is None:
        _db_client = init_firebase_admin()
    return _db_client


# ---------------------------
# Services
# ---------------------------
def get_firestore_service(db=Depends(get_firestore_client)) -> FirestoreService:
    return FirestoreService(db)


def get_auth_service(fs: FirestoreService = Depends(get_firestore_service)) -> AuthService:
    return AuthService(fs)


def get_trip_service(fs: FirestoreService = Depends(get_firestore_service)) -> TripService:
    return TripService(fs)


def get_profile_service(
    fs: FirestoreService = Depends(get_firestore_service),
    auth: AuthService = Depends(get_auth_service),
) -> ProfileService:
    return ProfileService(fs, auth)


def get_dashboard_service(fs: FirestoreService = Depends(get_firestore_service)) -> DashboardService:
    return DashboardService(fs)


def get_admin_service(fs: FirestoreService = Depends(get_firestore_service)) -> AdminService:
    return AdminService(fs, settings.admin_max_page_size)


def get_destination_service(fs: FirestoreService = Depends(get_firestore_service)) -> DestinationService:
    return DestinationService(fs)


# ---------------------------
# Authentication
# ---------------------------
def _extract_bearer_token(authorization_header: Optional[str]) -> str:
    if not authorization_header:
        raise Unauthorized("Access denied. No token provided.")
    parts = authorization_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise Unauthorized("Invalid Authorization header")
    return parts[1]


def get_current_user(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """
    Resolve the bearer access token to the stored user document.
    Use it as a parameter:
        def endpoint(user = Depends(get_current_user)):
            uid = user["id"]
    """
    return auth.authenticate_access_token(_extract_bearer_token(authorization))


def get_optional_user(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    """Like get_current_user, but anonymous or invalid credentials yield None."""
    if not authorization:
        return None
    try:
        return auth.authenticate_access_token(_extract_bearer_token(authorization))
    except Unauthorized:
        return None


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_admin(user):
        logger.warning(f"User {user['id']} attempted an admin operation")
        raise Forbidden("Access denied. Admin privileges required.")
    return user
