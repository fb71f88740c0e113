import os, sys
import logging
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from globetrotter.services.firestore_service import FirestoreService

logger = logging.getLogger("seed_destinations")

SAMPLE_DESTINATIONS = [
    {"name": "Paris", "country": "France", "region": "Europe", "costIndex": 78, "popularity": 97,
     "image": "https://images.unsplash.com/photo-1502602898657-3e91760cbb34.jpg",
     "description": "Museums, cafes and the Seine.", "meta": {"timezone": "Europe/Paris"}},
    {"name": "Rome", "country": "Italy", "region": "Europe", "costIndex": 70, "popularity": 92,
     "image": "https://images.unsplash.com/photo-1552832230-c0197dd311b5.jpg",
     "description": "Ancient ruins and trattorias.", "meta": {"timezone": "Europe/Rome"}},
    {"name": "Kyoto", "country": "Japan", "region": "Asia", "costIndex": 65, "popularity": 88,
     "image": "https://images.unsplash.com/photo-1493976040374-85c8e12f0c0e.jpg",
     "description": "Temples, gardens and tea houses.", "meta": {"timezone": "Asia/Tokyo"}},
    {"name": "Lisbon", "country": "Portugal", "region": "Europe", "costIndex": 55, "popularity": 80,
     "image": "https://images.unsplash.com/photo-1585208798174-6cedd86e019a.jpg",
     "description": "Hills, trams and pastel de nata.", "meta": {"timezone": "Europe/Lisbon"}},
    {"name": "Hanoi", "country": "Vietnam", "region": "Asia", "costIndex": 25, "popularity": 74,
     "image": "https://images.unsplash.com/photo-1509030450996-dd1a26dda07a.jpg",
     "description": "Street food and the Old Quarter.", "meta": {"timezone": "Asia/Ho_Chi_Minh"}},
    {"name": "Cusco", "country": "Peru", "region": "South America", "costIndex": 30, "popularity": 70,
     "image": "https://images.unsplash.com/photo-1526392060635-9d6019884377.jpg",
     "description": "Gateway to Machu Picchu.", "meta": {"timezone": "America/Lima"}},
]


def seed_destinations(fs: FirestoreService, destinations=SAMPLE_DESTINATIONS) -> int:
    """Insert catalog cities that are not present yet; returns how many were added."""
    added = 0
    for destination in destinations:
        if fs.find_destination(destination["name"], destination["country"]):
            continue
        fs.create_destination(dict(destination))
        added += 1
    logger.info(f"Seeded {added} destinations ({len(destinations) - added} already present)")
    return added


if __name__ == "__main__":
    from globetrotter.dependencies import get_firestore_client

    logging.basicConfig(level=logging.INFO)
    seed_destinations(FirestoreService(get_firestore_client()))
