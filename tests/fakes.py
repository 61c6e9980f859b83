"""In-memory stand-in for the subset of the Supabase query builder the services use."""
import base64
import copy
import json
from datetime import datetime, timedelta, timezone
from itertools import count

from postgrest.exceptions import APIError


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self._op = "select"
        self._payload = None
        self._filters = []
        self._limit = None
        self._count = None

    def select(self, *columns, count=None):
        self._op = "select"
        self._count = count
        return self

    def insert(self, payload):
        self._op = "insert"
        self._payload = payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def lt(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def in_(self, column, values):
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _matches(self, row):
        return all(f(row) for f in self._filters)

    def execute(self):
        if self.table in self.db.broken:
            raise APIError({"message": "connection refused", "code": "08006", "hint": None, "details": None})
        rows = self.db.tables.setdefault(self.table, [])
        if self._op == "insert":
            return FakeResponse([self.db.insert(self.table, self._payload)])
        if self._op == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(removed))
        selected = [copy.deepcopy(row) for row in rows if self._matches(row)]
        total = len(selected) if self._count else None
        if self._limit is not None:
            selected = selected[:self._limit]
        return FakeResponse(selected, count=total)


class FakeSupabase:
    """Tables keyed by name; 'id' is the primary key, users.email is unique, users.id is an identity column."""

    UNIQUE = {"users": ("id", "email"), "biometric_credentials": ("id",), "webauthn_challenges": ("id",)}

    def __init__(self):
        self.tables = {}
        self.broken = set()
        self._user_ids = count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])

    def insert(self, table, payload):
        row = dict(payload)
        if table == "users" and "id" not in row:
            row["id"] = next(self._user_ids)
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        for column in self.UNIQUE.get(table, ("id",)):
            if any(existing.get(column) == row.get(column) for existing in self.rows(table)):
                raise APIError({
                    "message": f'duplicate key value violates unique constraint "{table}_{column}_key"',
                    "code": "23505",
                    "hint": None,
                    "details": None,
                })
        self.tables.setdefault(table, []).append(row)
        return copy.deepcopy(row)


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


def encode_client_data(type_, challenge, origin="https://testserver", urlsafe=True):
    raw = json.dumps({"type": type_, "challenge": challenge, "origin": origin, "crossOrigin": False}).encode()
    if urlsafe:
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return base64.b64encode(raw).decode("ascii")


def registration_credential(credential_id, challenge, type_="webauthn.create", **kwargs):
    return {
        "id": credential_id,
        "rawId": credential_id,
        "type": "public-key",
        "response": {
            "clientDataJSON": encode_client_data(type_, challenge, **kwargs),
            "attestationObject": "o2NmbXRkbm9uZWdhdHRTdG10oGhhdXRoRGF0YVg",
            "transports": ["internal"],
        },
    }


def assertion_credential(credential_id, challenge, type_="webauthn.get", **kwargs):
    return {
        "id": credential_id,
        "rawId": credential_id,
        "type": "public-key",
        "response": {
            "clientDataJSON": encode_client_data(type_, challenge, **kwargs),
            "authenticatorData": "SZYN5YgOjGh0NBcPZHZgW4_krrmihjLHmVzzuoMdl2MFAAAAAQ",
            "signature": "MEUCIQDsignature",
            "userHandle": None,
        },
    }
