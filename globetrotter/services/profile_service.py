import uuid
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List

from globetrotter.errors import Conflict, NotFound, ValidationFailed
from globetrotter.models.user import (
    PasswordChange,
    PreferencesUpdate,
    ProfileUpdate,
    SavedDestinationInput,
    default_preferences,
)
from globetrotter.services.auth_service import AuthService, public_user
from globetrotter.services.firestore_service import FirestoreService
from globetrotter.services.trip_aggregate import Trip

logger = logging.getLogger(__name__)


class ProfileService:
    """Profile, preferences and saved destinations for the signed-in user."""

    def __init__(self, fs: FirestoreService, auth: AuthService):
        self.fs = fs
        self.auth = auth

    def _load(self, uid: str) -> Dict[str, Any]:
        user = self.fs.get_user(uid)
        if not user:
            raise NotFound("user", "User not found")
        return user

    def get_profile(self, uid: str) -> Dict[str, Any]:
        return public_user(self._load(uid))

    def update_profile(self, uid: str, update: ProfileUpdate) -> Dict[str, Any]:
        user = self._load(uid)
        changes = {}
        if update.name is not None:
            changes["name"] = update.name
        if update.email is not None and update.email != user.get("email"):
            existing = self.fs.find_user_by_email(update.email)
            if existing and existing["id"] != uid:
                raise Conflict("Email is already in use by another account")
            changes["email"] = update.email
        if update.avatar is not None:
            changes["avatar"] = update.avatar
        if changes:
            self.fs.update_user(uid, changes)
            logger.info(f"Updated profile fields {sorted(changes)} for user {uid}")
        return public_user({**user, **changes})

    def change_password(self, uid: str, request: PasswordChange):
        user = self._load(uid)
        if not self.auth.verify_password(user, request.currentPassword):
            raise ValidationFailed.single("currentPassword", "Current password is incorrect")
        self.fs.update_user(uid, {"passwordHash": self.auth.hash_password(request.newPassword)})
        logger.info(f"Password changed for user {uid}")

    def update_preferences(self, uid: str, update: PreferencesUpdate) -> Dict[str, Any]:
        user = self._load(uid)
        preferences = {**default_preferences(), **(user.get("preferences") or {})}
        preferences.update(update.model_dump(exclude_none=True))
        self.fs.update_user(uid, {"preferences": preferences})
        return public_user({**user, "preferences": preferences})

    # -------------------------
    # Saved destinations
    # -------------------------
    def list_saved_destinations(self, uid: str) -> List[Dict[str, Any]]:
        return self._load(uid).get("savedDestinations") or []

    def add_saved_destination(self, uid: str, destination: SavedDestinationInput) -> Dict[str, Any]:
        user = self._load(uid)
        saved = list(user.get("savedDestinations") or [])
        for existing in saved:
            if (existing.get("name"), existing.get("city"), existing.get("country")) == (
                destination.name, destination.city, destination.country
            ):
                raise Conflict("Destination already saved")
        entry = {
            "id": f"dest_{uuid.uuid4().hex[:10]}",
            **destination.model_dump(),
            "savedAt": datetime.now(timezone.utc),
        }
        saved.append(entry)
        self.fs.update_user(uid, {"savedDestinations": saved})
        return entry

    def remove_saved_destination(self, uid: str, destination_id: str):
        user = self._load(uid)
        saved = user.get("savedDestinations") or []
        remaining = [d for d in saved if d.get("id") != destination_id]
        if len(remaining) == len(saved):
            raise NotFound("saved_destination", "Saved destination not found")
        self.fs.update_user(uid, {"savedDestinations": remaining})

    # -------------------------
    # Account
    # -------------------------
    def delete_account(self, uid: str, password: str):
        user = self._load(uid)
        if not self.auth.verify_password(user, password):
            raise ValidationFailed.single("password", "Password is incorrect")
        removed = self.fs.delete_trips_for_user(uid)
        self.fs.delete_user(uid)
        logger.info(f"Deleted account {uid} and {removed} trips")

    def export_data(self, uid: str) -> Dict[str, Any]:
        user = self._load(uid)
        trips = [Trip.from_document(d["id"], d).to_response() for d in self.fs.list_trips_for_user(uid)]
        return {
            "user": public_user(user),
            "trips": trips,
            "exportedAt": datetime.now(timezone.utc),
        }
