"""Tests for the transaction helper."""

import pytest

from patient_flow.exceptions import PersistenceError
from patient_flow.hospital.database import connection, init_database
from patient_flow.hospital.database.models import Location


@pytest.fixture
def unreachable_store(tmp_path, monkeypatch):
    """Point the connection at a directory that does not exist."""
    monkeypatch.setattr(connection, "DB_PATH", tmp_path / "no" / "such" / "dir" / "x.db")


class TestTransaction:

    def test_commits(self, visit_repo, admitted_visit):
        with connection.transaction("touch") as conn:
            conn.execute("UPDATE patient_visits SET notes = 'seen' WHERE id = ?", (admitted_visit.id,))
        assert visit_repo.get_visit(admitted_visit.id).notes == "seen"

    def test_sqlite_error_is_wrapped(self):
        with pytest.raises(PersistenceError) as exc:
            with connection.transaction("bad_query") as conn:
                conn.execute("SELECT * FROM no_such_table")
        assert exc.value.operation == "bad_query"


class TestUnreachableStore:
    """Failing to open the store surfaces as PersistenceError."""

    def test_queue(self, router, unreachable_store):
        with pytest.raises(PersistenceError) as exc:
            router.queue(Location.LAB)
        assert exc.value.operation == "find_visits_by_location"

    def test_dispense(self, ledger, unreachable_store):
        with pytest.raises(PersistenceError):
            ledger.dispense("d-001")

    def test_init_database(self, unreachable_store):
        with pytest.raises(PersistenceError) as exc:
            init_database()
        assert exc.value.operation == "init_database"
