"""
Firestore Service Layer for GlobeTrotter.

This service wraps all read/write operations for:
- Users (profile, refresh credentials, reset tokens, saved destinations)
- Trips (one document per trip aggregate, nested cities/activities/itinerary)
- Destination catalog (the `cities` collection)
- Admin settings (single `settings/global` document)

Assumptions:
- A trip is always written whole: load, mutate in memory, set() the document.
- Document ids are generated here as `<prefix>_<hex>`.
- No optimistic concurrency; the last write to a document wins.
"""

import uuid
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter


USERS = "users"
TRIPS = "trips"
CATALOG = "cities"
SETTINGS = "settings"
GLOBAL_SETTINGS_ID = "global"


class FirestoreService:
    def __init__(self, db: firestore.Client):
        self.db = db

    # -------------------------
    # Utility
    # -------------------------
    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex[:12]}"

    def _now(self):
        return datetime.now(timezone.utc)

    @staticmethod
    def _with_id(snap) -> Dict[str, Any]:
        data = snap.to_dict() or {}
        data["id"] = snap.id
        return data

    def _query(self, collection: str, field: str, op: str, value: Any) -> List[Dict[str, Any]]:
        snaps = self.db.collection(collection).where(filter=FieldFilter(field, op, value)).stream()
        return [self._with_id(s) for s in snaps]

    def _all(self, collection: str) -> List[Dict[str, Any]]:
        return [self._with_id(s) for s in self.db.collection(collection).stream()]

    def ping(self) -> bool:
        """Round-trip to the store; raises if it is unreachable."""
        self.db.collection(SETTINGS).document(GLOBAL_SETTINGS_ID).get()
        return True

    # -------------------------
    # User Helpers
    # -------------------------
    def create_user(self, data: Dict[str, Any]) -> str:
        uid = self._new_id("usr")
        record = dict(data)
        record.pop("id", None)
        record["createdAt"] = self._now()
        record["updatedAt"] = record["createdAt"]
        self.db.collection(USERS).document(uid).set(record)
        return uid

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        if not uid:
            return None
        snap = self.db.collection(USERS).document(uid).get()
        return self._with_id(snap) if snap.exists else None

    def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        matches = self._query(USERS, "email", "==", email)
        return matches[0] if matches else None

    def find_user_by_reset_token(self, token_hash: str) -> Optional[Dict[str, Any]]:
        matches = self._query(USERS, "passwordResetToken", "==", token_hash)
        return matches[0] if matches else None

    def update_user(self, uid: str, fields: Dict[str, Any]):
        fields = dict(fields)
        fields.pop("id", None)
        fields["updatedAt"] = self._now()
        self.db.collection(USERS).document(uid).set(fields, merge=True)

    def delete_user(self, uid: str):
        self.db.collection(USERS).document(uid).delete()

    def list_users(self) -> List[Dict[str, Any]]:
        return self._all(USERS)

    # -------------------------
    # Trip Helpers
    # -------------------------
    def new_trip_id(self) -> str:
        return self._new_id("trip")

    def get_trip(self, trip_id: str) -> Optional[Dict[str, Any]]:
        if not trip_id:
            return None
        snap = self.db.collection(TRIPS).document(trip_id).get()
        return self._with_id(snap) if snap.exists else None

    def save_trip(self, trip_id: str, document: Dict[str, Any]) -> str:
        """Replace the whole trip document."""
        record = dict(document)
        record.pop("id", None)
        self.db.collection(TRIPS).document(trip_id).set(record)
        return trip_id

    def delete_trip(self, trip_id: str):
        self.db.collection(TRIPS).document(trip_id).delete()

    def list_trips_for_user(self, uid: str) -> List[Dict[str, Any]]:
        return self._query(TRIPS, "userId", "==", uid)

    def list_public_trips(self) -> List[Dict[str, Any]]:
        return self._query(TRIPS, "isPublic", "==", True)

    def list_all_trips(self) -> List[Dict[str, Any]]:
        return self._all(TRIPS)

    def delete_trips_for_user(self, uid: str) -> int:
        trips = self.list_trips_for_user(uid)
        for trip in trips:
            self.delete_trip(trip["id"])
        return len(trips)

    # -------------------------
    # Destination catalog
    # -------------------------
    def create_destination(self, data: Dict[str, Any]) -> str:
        dest_id = self._new_id("city")
        record = dict(data)
        record["createdAt"] = self._now()
        record["updatedAt"] = record["createdAt"]
        self.db.collection(CATALOG).document(dest_id).set(record)
        return dest_id

    def get_destination(self, dest_id: str) -> Optional[Dict[str, Any]]:
        if not dest_id:
            return None
        snap = self.db.collection(CATALOG).document(dest_id).get()
        return self._with_id(snap) if snap.exists else None

    def find_destination(self, name: str, country: str) -> Optional[Dict[str, Any]]:
        for dest in self._query(CATALOG, "name", "==", name):
            if dest.get("country") == country:
                return dest
        return None

    def update_destination(self, dest_id: str, fields: Dict[str, Any]):
        fields = dict(fields)
        fields.pop("id", None)
        fields["updatedAt"] = self._now()
        self.db.collection(CATALOG).document(dest_id).set(fields, merge=True)

    def delete_destination(self, dest_id: str):
        self.db.collection(CATALOG).document(dest_id).delete()

    def list_destinations(self) -> List[Dict[str, Any]]:
        return self._all(CATALOG)

    # -------------------------
    # Admin settings
    # -------------------------
    def get_settings(self) -> Optional[Dict[str, Any]]:
        snap = self.db.collection(SETTINGS).document(GLOBAL_SETTINGS_ID).get()
        return snap.to_dict() if snap.exists else None

    def save_settings(self, fields: Dict[str, Any]):
        fields = dict(fields)
        fields["updatedAt"] = self._now()
        self.db.collection(SETTINGS).document(GLOBAL_SETTINGS_ID).set(fields, merge=True)
