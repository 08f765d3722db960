import json
from types import SimpleNamespace

import pytest

from habit_arc.core.dependencies import get_auth_gateway
from habit_arc.core.exceptions import AuthenticationError, IdentityNotFoundError, InvalidHabitDataError
from habit_arc.models.habit import HabitType
from habit_arc.services.habits.remote_store import AuthGateway, RemoteHabitStore, build_progress

ID_TABLES = ("identities", "habits")


class FakeQuery:
    """Fluent query builder evaluated against FakeSupabase's in-memory tables"""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = None
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.order_by = None

    def select(self, columns="*"):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def in_(self, column, values):
        self.filters.append((column, tuple(values)))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        for column, value in self.filters:
            if isinstance(value, tuple):
                if row.get(column) not in value:
                    return False
            elif row.get(column) != value:
                return False
        return True

    def execute(self):
        self.db.calls.append((self.table, self.op, tuple(self.filters)))
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self.db.new_row(self.table, item) for item in items]
            rows.extend(created)
            return SimpleNamespace(data=[dict(r) for r in created])

        if self.op == "upsert":
            keys = self.on_conflict.split(",")
            for row in rows:
                if all(row.get(k) == self.payload[k] for k in keys):
                    row.update(self.payload)
                    return SimpleNamespace(data=[dict(row)])
            row = self.db.new_row(self.table, self.payload)
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        matched = [row for row in rows if self._matches(row)]
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
        elif self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
        elif self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda r: r[column], reverse=desc)
        return SimpleNamespace(data=[dict(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self._next_id = 1

    def table(self, name):
        return FakeQuery(self, name)

    def new_row(self, table, item):
        row = dict(item)
        if table in ID_TABLES and "id" not in row:
            row["id"] = self._next_id
            row["created_at"] = f"2025-10-01T08:00:{self._next_id:02d}.000Z"
            self._next_id += 1
        return row

    def rows(self, table, **filters):
        return [r for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in filters.items())]


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def store(db):
    return RemoteHabitStore(db, "user-1")


def test_build_progress_places_rows_and_widens():
    rows = [{"day_index": 1, "completed": True}, {"day_index": 4, "completed": True}]
    assert build_progress(3, rows) == [False, True, False, False, True]
    assert build_progress(2, []) == [False, False]


def test_create_and_read_habit(store, db):
    identity = store.create_identity("Reader")
    habit = store.create_habit("Read", HabitType.START, 3, [identity.id, identity.id])

    assert habit.progress == [False, False, False]
    assert habit.linked_identities == [identity.id]
    assert len(db.rows("habit_progress", habit_id=habit.id)) == 3
    assert store.get_habit(habit.id) == habit
    assert identity.color == "blue"


def test_lists_are_scoped_to_the_user(store, db):
    store.create_habit("Read", HabitType.START, 2, [])
    other = RemoteHabitStore(db, "user-2")
    other.create_habit("Run", HabitType.START, 2, [])
    other.create_identity("Runner")

    assert [h.name for h in store.list_habits()] == ["Read"]
    assert store.list_identities() == []


def test_toggle_past_the_end_extends_total_days(store, db):
    habit = store.create_habit("Read", HabitType.START, 3, [])

    toggled = store.toggle_habit_day(habit.id, 5)

    assert toggled.total_days == 6
    assert toggled.progress == [False, False, False, False, False, True]
    assert db.rows("habits", id=habit.id)[0]["total_days"] == 6
    assert ("habit_progress", "upsert", ()) in db.calls
    assert ("habits", "update", (("id", habit.id), ("user_id", "user-1"))) in db.calls


def test_toggle_twice_restores_the_day(store):
    habit = store.create_habit("Read", HabitType.START, 3, [])
    store.toggle_habit_day(habit.id, 1)
    assert store.toggle_habit_day(habit.id, 1).progress == [False, False, False]


def test_update_refuses_to_shrink(store):
    habit = store.create_habit("Read", HabitType.START, 5, [])
    with pytest.raises(InvalidHabitDataError):
        store.update_habit(habit.id, {"total_days": 3})
    assert store.update_habit(habit.id, {"total_days": 7}).total_days == 7


def test_delete_identity_unlinks_and_keeps_progress(store, db):
    identity = store.create_identity("Reader")
    habit = store.create_habit("Read", HabitType.START, 3, [identity.id])
    store.toggle_habit_day(habit.id, 0)

    store.delete_identity(identity.id)

    after = store.get_habit(habit.id)
    assert after.linked_identities == []
    assert after.progress == [True, False, False]
    assert store.list_identities() == []


def test_deleting_another_users_identity_changes_nothing(db):
    owner = RemoteHabitStore(db, "owner")
    identity = owner.create_identity("Reader")
    habit = owner.create_habit("Read", HabitType.START, 3, [identity.id])
    intruder = RemoteHabitStore(db, "intruder")

    with pytest.raises(IdentityNotFoundError):
        intruder.delete_identity(identity.id)

    assert owner.get_habit(habit.id).linked_identities == [identity.id]
    assert [i.id for i in owner.list_identities()] == [identity.id]
    assert not any(table == "habit_identities" and op == "delete" for table, op, _ in db.calls)


def test_links_to_foreign_identities_are_dropped(db):
    foreign = RemoteHabitStore(db, "owner").create_identity("Reader")
    store = RemoteHabitStore(db, "user-1")
    mine = store.create_identity("Runner")

    habit = store.create_habit("Run", HabitType.START, 2, [foreign.id, mine.id])
    assert habit.linked_identities == [mine.id]

    updated = store.update_habit(habit.id, {"linked_identities": [foreign.id]})
    assert updated.linked_identities == []
    assert db.rows("habit_identities", identity_id=foreign.id) == []


def test_import_remaps_identity_ids(store, db):
    snapshot = {
        "identities": [
            {"id": 100, "name": "Reader", "color": "green", "createdAt": "2025-10-01T00:00:00.000Z"}
        ],
        "habits": [{
            "id": 200,
            "name": "Read",
            "type": "start",
            "totalDays": 3,
            "linkedIdentities": [100, 999],
            "progress": [True, False, True],
            "createdAt": "2025-10-01T00:00:00.000Z",
        }],
        "exportedAt": "2025-10-10T00:00:00.000Z",
        "version": "1.0.0",
    }

    assert store.import_data(json.dumps(snapshot)) is True

    identity = store.list_identities()[0]
    habit = store.list_habits()[0]
    assert identity.id != 100
    assert identity.color == "green"
    assert habit.linked_identities == [identity.id]
    assert habit.progress == [True, False, True]


@pytest.mark.parametrize("payload", ["not json", "[]", json.dumps({"habits": [{"name": "x"}]})])
def test_import_rejects_bad_input(store, db, payload):
    assert store.import_data(payload) is False
    assert db.rows("habits") == []


# ===== AUTH GATEWAY =====

def fake_admin_client(calls, error=None):
    def sign_out(token):
        if error:
            raise error
        calls.append(token)

    return SimpleNamespace(auth=SimpleNamespace(admin=SimpleNamespace(sign_out=sign_out)))


def test_sign_out_revokes_the_callers_session():
    calls = []
    AuthGateway(fake_admin_client(calls)).sign_out("access-token")
    assert calls == ["access-token"]


@pytest.mark.parametrize("token,error", [("", None), ("tok", RuntimeError("session expired"))])
def test_sign_out_failures(token, error):
    with pytest.raises(AuthenticationError):
        AuthGateway(fake_admin_client([], error)).sign_out(token)


def test_signout_route_forwards_bearer_token(app_client):
    app, client = app_client
    calls = []
    app.dependency_overrides[get_auth_gateway] = lambda: AuthGateway(fake_admin_client(calls))

    assert client.post("/auth/signout", headers={"Authorization": "Bearer abc"}).json() == {"ok": True}
    assert calls == ["abc"]

    response = client.post("/auth/signout")
    assert response.status_code == 401
    assert response.json() == {"error": "Missing access token"}
