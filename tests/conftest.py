import os
import sys
from copy import deepcopy
from itertools import count

# Cheap hashing and a fixed secret for the whole test session
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-globetrotter-tests")

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from globetrotter.dependencies import get_firestore_client
from globetrotter.main import app
from globetrotter.services.auth_service import AuthService, PasswordHasher
from globetrotter.services.firestore_service import FirestoreService
from globetrotter.services.trip_service import TripService


# ---------------------------
# In-memory Firestore stand-in
# ---------------------------
def _deep_merge(target, changes):
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = deepcopy(value)


def _matches(doc, field, op, value):
    if field not in doc:
        return False
    actual = doc[field]
    if op == "==":
        return actual == value
    if op == "!=":
        return actual != value
    if op == "<":
        return actual < value
    if op == "<=":
        return actual <= value
    if op == ">":
        return actual > value
    if op == ">=":
        return actual >= value
    if op == "in":
        return actual in value
    if op == "array_contains":
        return isinstance(actual, list) and value in actual
    raise ValueError(f"Unsupported operator {op}")


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, store, collection, doc_id):
        self._docs = store.setdefault(collection, {})
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self.id, self._docs.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._docs:
            _deep_merge(self._docs[self.id], data)
        else:
            self._docs[self.id] = deepcopy(data)

    def update(self, fields):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self.id}")
        _deep_merge(self._docs[self.id], fields)

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, docs, filters=None, order=None, limit=None):
        self._docs = docs
        self._filters = filters or []
        self._order = order
        self._limit = limit

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return FakeQuery(self._docs, self._filters + [(field_path, op_string, value)], self._order, self._limit)

    def order_by(self, field_path, direction="ASCENDING"):
        return FakeQuery(self._docs, self._filters, (field_path, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._docs, self._filters, self._order, count)

    def stream(self):
        rows = [
            (doc_id, data) for doc_id, data in list(self._docs.items())
            if all(_matches(data, f, op, v) for f, op, v in self._filters)
        ]
        if self._order:
            field, direction = self._order
            rows.sort(key=lambda r: r[1].get(field), reverse=str(direction).upper() == "DESCENDING")
        if self._limit is not None:
            rows = rows[:self._limit]
        return iter([FakeSnapshot(doc_id, deepcopy(data)) for doc_id, data in rows])


class FakeCollection(FakeQuery):
    def __init__(self, store, name):
        super().__init__(store.setdefault(name, {}))
        self._store = store
        self._name = name
        self._ids = count(1)

    def document(self, doc_id=None):
        if doc_id is None:
            doc_id = f"auto_{self._name}_{len(self._docs) + 1}_{next(self._ids)}"
        return FakeDocument(self._store, self._name, doc_id)


class FakeFirestore:
    def __init__(self):
        self.store = {}

    def collection(self, name):
        return FakeCollection(self.store, name)


# ---------------------------
# Fixtures
# ---------------------------
@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def fs(db):
    return FirestoreService(db)


@pytest.fixture
def auth_service(fs):
    return AuthService(fs, hasher=PasswordHasher(4))


@pytest.fixture
def trip_service(fs):
    return TripService(fs)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_firestore_client] = lambda: db
    # no context manager: the startup connection check stays out of tests
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def signup(client, name="Alice Traveler", email="alice@example.com", password="wander123"):
    """Register through the API and return (user, auth headers, session)."""
    response = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    session = response.json()["data"]
    return session["user"], {"Authorization": f"Bearer {session['accessToken']}"}, session


def trip_payload(**overrides):
    payload = {
        "name": "Summer in Europe",
        "description": "Two weeks across the continent",
        "startDate": "2030-06-01",
        "endDate": "2030-06-15",
        "budget": {"amount": 3000, "currency": "EUR"},
        "location": {"city": "Paris", "country": "France"},
    }
    payload.update(overrides)
    return payload


def activity_payload(**overrides):
    payload = {
        "id": "louvre",
        "name": "Louvre Museum",
        "city": "Paris",
        "category": "Culture",
        "cost": "Medium",
        "duration": "Half-day",
        "rating": 4.8,
        "img": "https://example.com/louvre.jpg",
        "description": "World's largest art museum",
        "tags": ["art", "museum"],
    }
    payload.update(overrides)
    return payload
