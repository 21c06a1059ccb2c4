import os
import re
import threading
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")

from fastapi.testclient import TestClient  # noqa: E402

from iwanyu.main import app  # noqa: E402
from iwanyu.supabase_client import get_supabase_anon_client, get_supabase_client  # noqa: E402


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Just enough of the PostgREST builder chain for the routers under test."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = None
        self.payload = None
        self.filters = []
        self.orders = []
        self.window = None
        self.max_rows = None
        self.count = None
        self.invalid = None

    def select(self, *columns, count=None):
        if self.op is None:
            self.op = "select"
        self.count = count
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload):
        self.op, self.payload = "upsert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        if value is None:
            self.invalid = f"invalid input syntax for {column}: \"null\""
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def ilike(self, column, pattern):
        regex = re.compile("^" + re.escape(pattern).replace("%", ".*") + "$", re.IGNORECASE)
        self.filters.append(lambda row: bool(regex.match(str(row.get(column) or ""))))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        if self.table in self.db.failing_tables:
            raise RuntimeError(f"relation {self.table} unavailable")
        if self.invalid:
            raise RuntimeError(self.invalid)
        with self.db.lock:
            return getattr(self, f"_{self.op}")()

    def _select(self):
        rows = [dict(r) for r in self.db.rows(self.table) if self._matches(r)]
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(rows)
        if self.window:
            rows = rows[self.window[0]:self.window[1] + 1]
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return FakeResponse(rows, total if self.count else None)

    def _insert(self):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        if self.table in self.db.rejecting_inserts:
            raise RuntimeError(self.db.rejecting_inserts[self.table])
        inserted = []
        for item in payload:
            row = {"id": str(uuid.uuid4()), "created_at": self.db.now(), **item}
            self.db.rows(self.table).append(row)
            inserted.append(dict(row))
        return FakeResponse(inserted)

    def _upsert(self):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        out = []
        for item in payload:
            existing = next((r for r in self.db.rows(self.table) if r.get("id") == item.get("id")), None)
            if existing:
                existing.update(item)
                out.append(dict(existing))
            else:
                row = {"created_at": self.db.now(), **item}
                self.db.rows(self.table).append(row)
                out.append(dict(row))
        return FakeResponse(out)

    def _update(self):
        updated = []
        for row in self.db.rows(self.table):
            if self._matches(row):
                row.update(self.payload)
                updated.append(dict(row))
        return FakeResponse(updated)

    def _delete(self):
        keep, removed = [], []
        for row in self.db.rows(self.table):
            (removed if self._matches(row) else keep).append(row)
        self.db.tables[self.table] = keep
        return FakeResponse([dict(r) for r in removed])


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, content, options=None):
        self.storage.files[(self.name, path)] = content
        return {"path": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def create_signed_url(self, path, expires_in):
        return {"signedURL": f"https://storage.test/signed/{self.name}/{path}?ttl={expires_in}"}

    def list(self, path=None):
        return [{"name": p} for (bucket, p) in self.storage.files if bucket == self.name]


class FakeStorage:
    def __init__(self):
        self.files = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSubscription:
    def __init__(self, auth, callback):
        self.auth = auth
        self.callback = callback

    def unsubscribe(self):
        self.auth.listeners.remove(self.callback)


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.tokens = {}
        self.listeners = []
        self.session = None
        self.reset_requests = []
        self.signed_out_tokens = []
        self.admin = SimpleNamespace(update_user_by_id=self._update_user_by_id, sign_out=self._admin_sign_out)

    def add_user(self, email, password="secret123", user_id=None, token=None):
        user = SimpleNamespace(
            id=user_id or str(uuid.uuid4()),
            email=email,
            phone=None,
            user_metadata={},
            created_at="2024-01-01T00:00:00+00:00",
        )
        self.users[email] = (user, password)
        token = token or f"token-{user.id}"
        self.tokens[token] = user
        return user, token

    def _session_for(self, user):
        token = next(t for t, u in self.tokens.items() if u is user)
        return SimpleNamespace(access_token=token, refresh_token=f"refresh-{user.id}", user=user)

    def get_user(self, token):
        if token not in self.tokens:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.tokens[token])

    def sign_in_with_password(self, credentials):
        entry = self.users.get(credentials["email"])
        if not entry or entry[1] != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        self.session = self._session_for(entry[0])
        return SimpleNamespace(user=entry[0], session=self.session)

    def sign_up(self, credentials):
        if credentials["email"] in self.users:
            raise RuntimeError("User already registered")
        user, _ = self.add_user(credentials["email"], credentials["password"])
        user.user_metadata = credentials.get("options", {}).get("data", {})
        return SimpleNamespace(user=user, session=self._session_for(user))

    def sign_out(self):
        self.session = None

    def get_session(self):
        return self.session

    def reset_password_for_email(self, email, options=None):
        self.reset_requests.append((email, options))

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return FakeSubscription(self, callback)

    def emit(self, event, session):
        for callback in list(self.listeners):
            callback(event, session)

    def _update_user_by_id(self, user_id, attributes):
        for email, (user, _) in list(self.users.items()):
            if user.id == user_id:
                self.users[email] = (user, attributes.get("password"))
                return SimpleNamespace(user=user)
        raise RuntimeError("User not found")

    def _admin_sign_out(self, jwt, scope="global"):
        self.signed_out_tokens.append(jwt)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.lock = threading.RLock()
        self.failing_tables = set()
        self.rejecting_inserts = {}
        self.auth = FakeAuth()
        self.storage = FakeStorage()
        self._clock = 0

    def now(self):
        self._clock += 1
        return datetime(2024, 1, 1, tzinfo=timezone.utc).replace(second=self._clock % 60, minute=self._clock // 60).isoformat()

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, **row):
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.now())
        self.rows(table).append(row)
        return row


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_supabase_client] = lambda: db
    app.dependency_overrides[get_supabase_anon_client] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db):
    user, token = db.auth.add_user("admin@iwanyu.rw")
    db.seed("profiles", id=user.id, email=user.email, role="admin", is_active=True, full_name="Ada Admin")
    return SimpleNamespace(user=user, token=token, headers=bearer(token))


def _make_vendor(db, email, status):
    user, token = db.auth.add_user(email)
    db.seed("profiles", id=user.id, email=email, role="vendor", is_active=True, full_name="Vera Vendor")
    vendor = db.seed(
        "vendors",
        user_id=user.id,
        full_name="Vera Vendor",
        shop_name=f"Shop {email.split('@')[0]}",
        shop_address="KG 11 Ave, Kigali",
        government_id_url="government-ids/id.png",
        bank_info={"method": "bank", "bank_name": "BK", "account_number": "001", "account_holder": "Vera"},
        status=status,
    )
    return SimpleNamespace(user=user, token=token, headers=bearer(token), vendor=vendor)


@pytest.fixture
def vendor(db):
    return _make_vendor(db, "vendor@iwanyu.rw", "approved")


@pytest.fixture
def pending_vendor(db):
    return _make_vendor(db, "newshop@iwanyu.rw", "pending")


@pytest.fixture
def make_vendor(db):
    def factory(email, status="approved"):
        return _make_vendor(db, email, status)
    return factory
