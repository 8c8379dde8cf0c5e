"""Shared pytest configuration for unit tests."""
import itertools
import os
import sys

import pytest

# Ensure backend/ is on sys.path so `api`, `models`, `services` import as in the app
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
BACKEND_DIR = os.path.join(REPO_ROOT, "backend")
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from firebase_admin import firestore  # noqa: E402


# =====================================================
# In-memory Firestore stand-in
# =====================================================
_auto_ids = itertools.count(1)


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db, collection_name, doc_id):
        self._db = db
        self._collection_name = collection_name
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.data.setdefault(self._collection_name, {})

    def get(self):
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._docs:
            self._docs[self.id].update(data)
        else:
            self._docs[self.id] = dict(data)

    def update(self, data):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection_name}/{self.id}")
        self._docs[self.id].update(data)

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection_name, filters=()):
        self._db = db
        self._collection_name = collection_name
        self._filters = list(filters)

    def where(self, *args, filter=None):
        if filter is not None:
            clause = (filter.field_path, filter.op_string, filter.value)
        else:
            clause = tuple(args)
        return FakeQuery(self._db, self._collection_name, self._filters + [clause])

    def order_by(self, *args, **kwargs):
        return self

    def limit(self, count):
        return self

    def _matches(self, data):
        for field, op, value in self._filters:
            actual = data.get(field)
            if op == "==" and actual != value:
                return False
            if op == "array_contains" and value not in (actual or []):
                return False
        return True

    def stream(self):
        docs = self._db.data.get(self._collection_name, {})
        return [
            FakeSnapshot(FakeDocRef(self._db, self._collection_name, doc_id), data)
            for doc_id, data in list(docs.items())
            if self._matches(data)
        ]

    def get(self):
        return self.stream()


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id=None):
        return FakeDocRef(self._db, self._collection_name, doc_id or f"auto-{next(_auto_ids)}")

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeBatch:
    def __init__(self):
        self._ops = []
        self.committed = False

    def set(self, ref, data):
        self._ops.append(lambda: ref.set(data))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        for op in self._ops:
            op()
        self.committed = True


class FakeFirestore:
    """Just enough of the Firestore client surface for the models."""

    def __init__(self):
        self.data = {}

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch()

    def seed(self, collection_name, records):
        for record in records:
            record = dict(record)
            self.data.setdefault(collection_name, {})[record.pop("id")] = record

    def docs(self, collection_name):
        return self.data.get(collection_name, {})


# =====================================================
# Sample organization
# =====================================================
ORG_USERS = [
    {"id": "owner", "name": "Olivia Owner", "email": "owner@org.example", "role": "Co-founder", "team": "Presidium", "sub_team": None},
    {"id": "sec", "name": "Sam Secretary", "email": "sec@org.example", "role": "Secretary", "team": "Presidium", "sub_team": None},
    {"id": "d1", "name": "Dana Director", "email": "d1@org.example", "role": "Chair of Directors", "team": "Technology", "sub_team": None},
    {"id": "d2", "name": "Drew Director", "email": "d2@org.example", "role": "Director", "team": "Corporate", "sub_team": None},
    {"id": "l1", "name": "Lee Lead", "email": "l1@org.example", "role": "Lead", "team": "Technology", "sub_team": "dev"},
    {"id": "l2", "name": "Lou Lead", "email": "l2@org.example", "role": "Lead", "team": "Corporate", "sub_team": "events"},
    {"id": "m1", "name": "Mia Member", "email": "m1@org.example", "role": "Member", "team": "Technology", "sub_team": "dev"},
    {"id": "m2", "name": "Max Member", "email": "m2@org.example", "role": "Member", "team": "Technology", "sub_team": "iot"},
    {"id": "m3", "name": "Mo Member", "email": "m3@org.example", "role": "Member", "team": "Corporate", "sub_team": "events"},
]


@pytest.fixture
def org_users():
    return [dict(u) for u in ORG_USERS]


@pytest.fixture
def mock_db(monkeypatch):
    """Fresh in-memory Firestore patched over ``firestore.client`` for each test."""
    db = FakeFirestore()
    monkeypatch.setattr(firestore, "client", lambda *args, **kwargs: db)
    return db


@pytest.fixture
def seeded_db(mock_db):
    mock_db.seed("users", ORG_USERS)
    return mock_db


@pytest.fixture
def app(mock_db):
    from app import create_app

    test_app = create_app(initialize_firebase=False)
    test_app.config["TESTING"] = True
    return test_app


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()
