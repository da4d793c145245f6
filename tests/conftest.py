from __future__ import annotations

from datetime import datetime, timezone

import pytest

from storyseed_core import BackendError, ChangeEvent, MemoryStore, Session, StudioBackend


class FakeTables:
    def __init__(self, rows=None):
        self.rows = {name: [dict(r) for r in items] for name, items in (rows or {}).items()}
        self.fail = set()  # {(operation, table)}
        self.inserted = []
        self._seq = 0

    def _check(self, op, table):
        if (op, table) in self.fail:
            raise BackendError(f"{op} {table} failed", operation=op)

    def select(self, table, filters=None, columns="*"):
        self._check("select", table)
        out = []
        for row in self.rows.get(table, []):
            if all(row.get(k) == v for k, v in (filters or {}).items()):
                out.append(dict(row))
        return out

    def insert(self, table, record):
        self._check("insert", table)
        self._seq += 1
        row = dict(record)
        row.setdefault("id", f"{table}-{self._seq}")
        self.rows.setdefault(table, []).append(row)
        self.inserted.append((table, row))
        return dict(row)

    def update(self, table, filters, patch):
        self._check("update", table)
        for row in self.rows.get(table, []):
            if all(row.get(k) == v for k, v in filters.items()):
                row.update(patch)


class FakeAuth:
    def __init__(self, user_id="user-1", code="123456"):
        self.user_id = user_id
        self.code = code
        self.sent = []
        self.session = None
        self.callbacks = []
        self.fail_send = False

    def send_otp(self, phone):
        if self.fail_send:
            raise BackendError("sms gateway down", operation="send_otp")
        self.sent.append(phone)

    def verify_otp(self, phone, code):
        if code != self.code:
            raise BackendError("invalid code", operation="verify_otp")
        return self.user_id

    def get_session(self):
        return self.session

    def on_session_change(self, callback):
        self.callbacks.append(callback)
        return lambda: self.callbacks.remove(callback)

    def emit(self, session):
        for callback in list(self.callbacks):
            callback(session)


class FakeRealtime:
    def __init__(self):
        self.subscriptions = {}
        self._seq = 0

    def subscribe(self, table, on_change, filters=None):
        self._seq += 1
        self.subscriptions[self._seq] = (table, on_change)
        return self._seq

    def unsubscribe(self, handle):
        self.subscriptions.pop(handle, None)

    def notify(self, table, kind="INSERT", record=None):
        for sub_table, callback in list(self.subscriptions.values()):
            if sub_table == table:
                callback(ChangeEvent(table=table, kind=kind, record=record))


class FakeStorage:
    def __init__(self):
        self.uploads = []
        self.fail = False

    def upload(self, bucket, filename, data):
        if self.fail:
            raise BackendError("upload failed", operation="upload")
        self.uploads.append((bucket, filename, data))
        return f"https://cdn.example.test/{bucket}/{filename}"


class FakeWebhook:
    def __init__(self, fail=False):
        self.posts = []
        self.fail = fail

    def post(self, url, fields, files=None):
        if self.fail:
            raise RuntimeError("automation endpoint timed out")
        self.posts.append((url, dict(fields), files))


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def tables():
    return FakeTables()


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def backend(auth, tables):
    return StudioBackend(
        auth=auth,
        tables=tables,
        realtime=FakeRealtime(),
        storage=FakeStorage(),
        webhook=FakeWebhook(),
    )


@pytest.fixture
def session():
    return Session(user_id="user-1", phone="9876543210", session_id="sess-1")
