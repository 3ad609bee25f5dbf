# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets test environment variables before the app is imported and provides an
# in-memory stand-in for the Supabase client (tables + auth) so routes can be
# exercised end to end through FastAPI's TestClient.
# =============================================================================

import os
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# app.config loads settings at import time

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("APP_BASE_URL", "https://app.example.com")
os.environ.setdefault("RESEND_API_KEY", "test-resend-key")

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.database.supabase_client import get_supabase, get_service_supabase
from app.core.rate_limit import limiter
from app.modules.auth.service import clear_auth_cache


# =============================================================================
# Fake Supabase
# =============================================================================

_BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.limit_count = None
        self.range_bounds = None
        self.count_mode = None
        self.head = False
        self._negate = False

    # --- actions ---
    def select(self, columns="*", count=None, head=False):
        self.action = "select"
        self.count_mode = count
        self.head = head
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def upsert(self, payload, on_conflict=None):
        self.action = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    # --- filters ---
    @property
    def not_(self):
        self._negate = True
        return self

    def _add(self, predicate):
        if self._negate:
            self._negate = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    def eq(self, column, value):
        return self._add(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._add(lambda row: row.get(column) is not None and row.get(column) != value)

    def in_(self, column, values):
        values = list(values)
        return self._add(lambda row: row.get(column) in values)

    def is_(self, column, value):
        expected = None if value in (None, "null") else value
        return self._add(lambda row: row.get(column) is expected if expected is None else row.get(column) == expected)

    def gt(self, column, value):
        return self._add(lambda row: row.get(column) is not None and row.get(column) > value)

    def gte(self, column, value):
        return self._add(lambda row: row.get(column) is not None and row.get(column) >= value)

    def lte(self, column, value):
        return self._add(lambda row: row.get(column) is not None and row.get(column) <= value)

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def range(self, start, end):
        self.range_bounds = (start, end)
        return self

    # --- execution ---
    def _matches(self):
        return [row for row in self.db.rows(self.table) if all(f(row) for f in self.filters)]

    def execute(self):
        if self.table in self.db.fail_tables:
            raise Exception(f"simulated failure on {self.table}")
        if self.action == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResult([self.db.insert_row(self.table, r) for r in rows])
        if self.action == "upsert":
            return FakeResult(self._upsert())
        if self.action == "update":
            matched = self._matches()
            for row in matched:
                row.update(self.payload)
            return FakeResult([dict(r) for r in matched])
        if self.action == "delete":
            matched = self._matches()
            self.db.tables[self.table] = [r for r in self.db.rows(self.table) if r not in matched]
            return FakeResult([dict(r) for r in matched])

        rows = self._matches()
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, str(r.get(column) or "")), reverse=desc)
        count = len(rows) if self.count_mode else None
        if self.head:
            return FakeResult([], count)
        if self.range_bounds:
            start, end = self.range_bounds
            rows = rows[start:end + 1]
        if self.limit_count is not None:
            rows = rows[:self.limit_count]
        return FakeResult([dict(r) for r in rows], count)

    def _upsert(self):
        rows = self.payload if isinstance(self.payload, list) else [self.payload]
        keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
        saved = []
        for row in rows:
            existing = next(
                (r for r in self.db.rows(self.table) if all(r.get(k) == row.get(k) for k in keys)),
                None
            )
            if existing:
                existing.update(row)
                saved.append(dict(existing))
            else:
                saved.append(self.db.insert_row(self.table, row))
        return saved


class FakeAdminAuth:
    def __init__(self, auth):
        self.auth = auth

    def create_user(self, attributes):
        if self.auth.find_by_email(attributes["email"]):
            raise Exception("A user with this email address has already been registered")
        user = self.auth.add_user(
            attributes["email"],
            password=attributes.get("password"),
            user_metadata=attributes.get("user_metadata") or {},
            confirmed=attributes.get("email_confirm", False)
        )
        return SimpleNamespace(user=user)

    def delete_user(self, user_id):
        self.auth.users = [u for u in self.auth.users if u.id != user_id]

    def list_users(self, page=1, per_page=50):
        start = (page - 1) * per_page
        return self.auth.users[start:start + per_page]


class FakeAuth:
    def __init__(self):
        self.users = []
        self.passwords = {}
        self.tokens = {}
        self.reset_requests = []
        self.sign_up_calls = []
        self.admin = FakeAdminAuth(self)

    def add_user(self, email, password="password123", user_metadata=None, confirmed=True, token=None):
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata=user_metadata or {},
            app_metadata={},
            created_at=_BASE_TIME.isoformat(),
            updated_at=None,
            email_confirmed_at=_BASE_TIME.isoformat() if confirmed else None
        )
        self.users.append(user)
        self.passwords[email] = password
        if token:
            self.tokens[token] = user
        return user

    def find_by_email(self, email):
        return next((u for u in self.users if u.email == email), None)

    def get_user(self, jwt=None):
        user = self.tokens.get(jwt)
        if not user:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=user)

    def sign_up(self, credentials):
        self.sign_up_calls.append(credentials)
        if self.find_by_email(credentials["email"]):
            raise Exception("User already registered")
        user = self.add_user(
            credentials["email"],
            password=credentials["password"],
            user_metadata=(credentials.get("options") or {}).get("data") or {},
            confirmed=False
        )
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials):
        user = self.find_by_email(credentials["email"])
        if not user or self.passwords.get(credentials["email"]) != credentials["password"]:
            raise Exception("Invalid login credentials")
        token = f"token-{user.id}"
        self.tokens[token] = user
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token))

    def sign_out(self):
        return None

    def reset_password_for_email(self, email, options=None):
        self.reset_requests.append((email, options))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.fail_tables = set()
        self.auth = FakeAuth()
        self._sequence = 0

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def insert_row(self, table, row):
        self._sequence += 1
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", (_BASE_TIME + timedelta(seconds=self._sequence)).isoformat())
        self.rows(table).append(stored)
        return dict(stored)

    def table(self, name):
        return FakeQuery(self, name)

    # --- helpers for tests ---
    def add_user(self, email, token, account_type="epc", **metadata):
        return self.auth.add_user(
            email,
            user_metadata={"account_type": account_type, **metadata},
            token=token
        )

    def add_project(self, **fields):
        project = {
            "project_name": "Sunfield Solar",
            "name": "Sunfield Solar",
            "project_location": "Austin, TX",
            "total_project_piles": 100,
            "tracker_system": "software",
            "geotech_company": "GeoCo",
            "role": "project_manager",
            "embedment_tolerance": 1.0,
            **fields
        }
        return self.insert_row("projects", project)

    def add_member(self, user, project, role="engineer", is_owner=False):
        return self.insert_row("user_projects", {
            "user_id": user.id,
            "project_id": project["id"],
            "role": role,
            "is_owner": is_owner
        })

    def add_pile(self, project, **fields):
        return self.insert_row("piles", {"project_id": project["id"], "published": False, **fields})


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def _reset_caches():
    clear_auth_cache()
    limiter.reset()
    yield
    clear_auth_cache()


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner(fake_db):
    """EPC user who owns the project fixture"""
    return fake_db.add_user("owner@example.com", "owner-token", first_name="Olivia", last_name="Owner")


@pytest.fixture
def project(fake_db, owner):
    project = fake_db.add_project()
    fake_db.add_member(owner, project, role="project_manager", is_owner=True)
    return project


@pytest.fixture
def auth_headers():
    def build(token="owner-token"):
        return {"Authorization": f"Bearer {token}"}
    return build
