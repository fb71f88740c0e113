import logging
from typing import Optional, Dict, Any, List

from globetrotter.errors import Conflict, NotFound
from globetrotter.models.admin import DestinationCreate, DestinationUpdate
from globetrotter.services.firestore_service import FirestoreService

logger = logging.getLogger(__name__)

SORTS = {
    "name": (lambda d: (d.get("name") or "").lower(), False),
    "popularity": (lambda d: d.get("popularity") or 0, True),
    "costIndex": (lambda d: d.get("costIndex") or 0, False),
}


class DestinationService:
    """Reference catalog of real-world cities, separate from cities embedded in trips."""

    def __init__(self, fs: FirestoreService):
        self.fs = fs

    def list(self, q: Optional[str] = None, region: Optional[str] = None, sort: str = "name",
             limit: Optional[int] = None) -> List[Dict[str, Any]]:
        destinations = self.fs.list_destinations()
        if q:
            needle = q.strip().lower()
            destinations = [
                d for d in destinations
                if needle in (d.get("name") or "").lower() or needle in (d.get("country") or "").lower()
            ]
        if region:
            destinations = [d for d in destinations if (d.get("region") or "").lower() == region.strip().lower()]
        key, reverse = SORTS.get(sort, SORTS["name"])
        destinations.sort(key=key, reverse=reverse)
        return destinations[:limit] if limit else destinations

    def get(self, dest_id: str) -> Dict[str, Any]:
        destination = self.fs.get_destination(dest_id)
        if not destination:
            raise NotFound("destination", "Destination not found")
        return destination

    def create(self, command: DestinationCreate) -> Dict[str, Any]:
        if self.fs.find_destination(command.name, command.country):
            raise Conflict("Destination already exists")
        dest_id = self.fs.create_destination(command.model_dump(exclude_none=True))
        logger.info(f"Created destination {dest_id} ({command.name}, {command.country})")
        return self.fs.get_destination(dest_id)

    def update(self, dest_id: str, command: DestinationUpdate) -> Dict[str, Any]:
        current = self.get(dest_id)
        changes = command.model_dump(exclude_none=True)
        name = changes.get("name", current.get("name"))
        country = changes.get("country", current.get("country"))
        clash = self.fs.find_destination(name, country)
        if clash and clash["id"] != dest_id:
            raise Conflict("Destination already exists")
        if changes:
            self.fs.update_destination(dest_id, changes)
        return self.fs.get_destination(dest_id)

    def delete(self, dest_id: str):
        self.get(dest_id)
        self.fs.delete_destination(dest_id)
        logger.info(f"Deleted destination {dest_id}")
