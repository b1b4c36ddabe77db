import copy
import itertools
import os
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest

# Settings are read at import time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-1234567")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOG_DIR", "")

from fastapi.testclient import TestClient  # noqa: E402

from gradebook.core.security import create_access_token  # noqa: E402
from gradebook.core.supabase import get_db  # noqa: E402
from gradebook.core.time_windows import utc_now  # noqa: E402
from main import app  # noqa: E402

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

SUPERADMIN_ID = "11111111-1111-1111-1111-111111111111"
TEACHER_ID = "22222222-2222-2222-2222-222222222222"
STUDENT_ID = "33333333-3333-3333-3333-333333333333"


def _comparable(value):
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return value


class FakeQuery:
    """Just enough of the PostgREST request builder for the code under test"""

    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.filters = []
        self.operation = "select"
        self.payload = None
        self.order_by = None
        self.row_limit = None

    def select(self, *columns):
        self.operation = "select"
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: _comparable(row.get(column)) <= _comparable(value))
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: _comparable(row.get(column)) >= _comparable(value))
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matching(self):
        rows = self.store.tables.setdefault(self.table, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self):
        self.store.calls.append((self.table, self.operation))
        if self.store.fail:
            raise httpx.ConnectError("connection refused")

        rows = self.store.tables.setdefault(self.table, [])
        if self.operation == "insert":
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            data = [self.store.add(self.table, record) for record in records]
        elif self.operation == "update":
            data = []
            for row in self._matching():
                row.update(copy.deepcopy(self.payload))
                data.append(row)
        elif self.operation == "delete":
            data = self._matching()
            self.store.tables[self.table] = [row for row in rows if row not in data]
        else:
            data = self._matching()
            if self.order_by:
                column, desc = self.order_by
                data = sorted(data, key=lambda row: _comparable(row.get(column)), reverse=desc)
            if self.row_limit is not None:
                data = data[:self.row_limit]
        return SimpleNamespace(data=copy.deepcopy(data))


class FakeSupabase:
    """In-memory stand-in for the Supabase client"""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.fail = False
        self._clock = itertools.count()

    def table(self, name):
        return FakeQuery(self, name)

    def add(self, table, record):
        """Store a row directly, filling the columns the database would default"""
        row = copy.deepcopy(record)
        stamp = (NOW - timedelta(days=30) + timedelta(seconds=next(self._clock))).isoformat()
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", stamp)
        row.setdefault("updated_at", stamp)
        self.tables.setdefault(table, []).append(row)
        return row


@pytest.fixture
def fake_db():
    db = FakeSupabase()
    for user_id, name, role in (
        (SUPERADMIN_ID, "Sam Super", "superadmin"),
        (TEACHER_ID, "Tina Teacher", "teacher"),
        (STUDENT_ID, "Stu Dent", "student"),
    ):
        db.add("profiles", {
            "user_id": user_id,
            "full_name": name,
            "email": f"{role}@school.test",
            "role": role,
        })
    return db


@pytest.fixture
def clock():
    """Mutable clock used by the API; set ``clock.now`` to move time"""
    return SimpleNamespace(now=NOW)


@pytest.fixture
def client(fake_db, clock):
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[utc_now] = lambda: clock.now
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id, role):
    token = create_access_token({"sub": user_id, "role": role, "email": f"{role}@school.test"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def superadmin_headers():
    return auth_headers(SUPERADMIN_ID, "superadmin")


@pytest.fixture
def teacher_headers():
    return auth_headers(TEACHER_ID, "teacher")


@pytest.fixture
def student_headers():
    return auth_headers(STUDENT_ID, "student")
