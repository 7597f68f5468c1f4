import asyncio

import pytest
from fastapi.testclient import TestClient

from rollcall.context import AttendanceContext
from rollcall.core.config import settings
from rollcall.core.errors import RemoteStoreError
from rollcall.main import create_app
from rollcall.schemas.auth import Identity

COACH = Identity(user_id="user-1", email="coach@tsunami.local")


def _matches(row: dict, filters: dict) -> bool:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            if row.get(column) not in value:
                return False
        elif row.get(column) != value:
            return False
    return True


class FakeStore:
    """In-memory RemoteStore with call recording, failure injection and a write gate."""

    def __init__(self, session: Identity | None = COACH):
        self.tables = {"attendance": [], "classes": [], "students": []}
        self.session = session
        self.calls = []
        self.failures = {}
        self.gate: asyncio.Event | None = None

    def fail(self, action: str, message: str = "duplicate key value violates unique constraint"):
        self.failures[action] = RemoteStoreError(message)

    def hold_writes(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    def writes(self):
        return [c for c in self.calls if c[0] in ("insert", "update", "delete", "upsert")]

    async def _call(self, action, table, payload):
        self.calls.append((action, table, payload))
        if self.gate is not None and action != "select":
            await self.gate.wait()
        if action in self.failures:
            raise self.failures[action]

    async def select(self, table, filters=None, order=None, desc=False, limit=None):
        await self._call("select", table, filters)
        rows = [dict(r) for r in self.tables[table] if _matches(r, filters)]
        if order:
            rows.sort(key=lambda r: r.get(order) or "", reverse=desc)
        if limit:
            rows = rows[:limit]
        return rows

    async def insert(self, table, rows):
        await self._call("insert", table, rows)
        self.tables[table].extend(dict(r) for r in rows)
        return rows

    async def update(self, table, patch, filters):
        await self._call("update", table, (patch, filters))
        updated = []
        for row in self.tables[table]:
            if _matches(row, filters):
                row.update(patch)
                updated.append(dict(row))
        return updated

    async def delete(self, table, filters):
        await self._call("delete", table, filters)
        removed = [r for r in self.tables[table] if _matches(r, filters)]
        self.tables[table] = [r for r in self.tables[table] if not _matches(r, filters)]
        return removed

    async def upsert(self, table, rows, on_conflict):
        await self._call("upsert", table, rows)
        columns = on_conflict.split(",")
        for row in rows:
            existing = next(
                (r for r in self.tables[table] if all(r.get(c) == row.get(c) for c in columns)),
                None,
            )
            if existing is not None:
                existing.update(row)
            else:
                self.tables[table].append(dict(row))
        return rows

    async def get_session(self):
        return self.session

    async def get_user(self, token):
        return None

    def attendance_rows(self, student_id=None):
        rows = self.tables["attendance"]
        if student_id is not None:
            rows = [r for r in rows if r["student_id"] == student_id]
        return rows


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def store():
    store = FakeStore()
    store.tables["classes"] = [
        {"id": "c1", "name": "SUB-11", "category": "futsal", "capacity": 20},
        {"id": "c2", "name": "SUB-15", "category": "futsal", "capacity": None},
    ]
    store.tables["students"] = [
        {"id": "S1", "name": "Bruno", "class_id": "c1", "registration_date": "2025-01-01", "status": "ativo"},
        {"id": "S2", "name": "ana", "class_id": "c1", "registration_date": "2025-06-10T00:00:00", "status": "ativo"},
        {"id": "S3", "name": "Caio", "class_id": "c2", "registration_date": "2025-01-01", "status": "ativo"},
        {"id": "S4", "name": "Davi", "class_id": "c2", "registration_date": "2024-01-01",
         "status": "inativo", "deactivation_date": "2025-03-01"},
    ]
    return store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def context(store, clock):
    return AttendanceContext(
        store, fetch_limit=500, refresh_after_batch=False, recent_write_window=30.0, clock=clock
    )


@pytest.fixture
def engine(context):
    return context.engine


@pytest.fixture
def client(context, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "mock")
    app = create_app(context)
    with TestClient(app) as client:
        client.headers["Authorization"] = "Bearer mock-user-1"
        yield client
