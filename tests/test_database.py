"""Tests for the SQLite storage layer."""

import logging
import sqlite3

import pytest

from core.errors import ConflictError, NotFoundError, PersistenceError
from tests.conftest import FIXED_NOW

DAY = FIXED_NOW.date()


class TestSchema:
    def test_tables_created(self, database):
        with database.transaction() as conn:
            names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        assert {"students", "training_images", "attendance"} <= names

    def test_init_is_repeatable(self, database):
        database.init_database()
        assert database.count_students() == 0

    def test_attendance_unit_is_unique(self, database, enroll):
        student_id = enroll("R001", "Alice", [0.1])
        with pytest.raises(sqlite3.IntegrityError):
            with database.transaction() as conn:
                for _ in range(2):
                    conn.execute(
                        "INSERT INTO attendance (student_id, subject, timeslot, slot_type, calendar_day, "
                        "marked_at, recognition_distance) VALUES (?, 'Math', '09:00', 'lecture', ?, ?, 0.1)",
                        (student_id, DAY.isoformat(), FIXED_NOW.isoformat(sep=" ")),
                    )

    def test_absent_status_cannot_be_stored(self, database, enroll):
        student_id = enroll("R001", "Alice", [0.1])
        with pytest.raises(sqlite3.IntegrityError):
            with database.transaction() as conn:
                conn.execute(
                    "INSERT INTO attendance (student_id, subject, timeslot, slot_type, calendar_day, "
                    "status, marked_at, recognition_distance) "
                    "VALUES (?, 'Math', '09:00', 'lecture', ?, 'Absent', ?, 0.1)",
                    (student_id, DAY.isoformat(), FIXED_NOW.isoformat(sep=" ")),
                )


class TestStudents:
    def test_duplicate_roll_number_is_conflict(self, database, enroll):
        enroll("R001", "Alice", [0.1])
        with pytest.raises(ConflictError):
            enroll("R001", "Other", [0.2])

    def test_students_ordered_by_roll_number(self, database, enroll):
        enroll("R003", "Carol", [0.3])
        enroll("R001", "Alice", [0.1])
        enroll("R002", "Bob", [0.2])
        assert [s["roll_no"] for s in database.get_all_students()] == ["R001", "R002", "R003"]
        assert [s["roll_no"] for s in database.get_enrolled_vectors()] == ["R001", "R002", "R003"]

    def test_image_refs_kept_in_order(self, database):
        student_id = database.add_student("R001", "Alice", "a@example.com", [0.1], ["b.jpg", "a.jpg"],
                                          registered_at=FIXED_NOW)
        assert database.get_image_refs(student_id) == ["b.jpg", "a.jpg"]

    def test_update_unknown_student(self, database):
        assert database.update_student(123, full_name="Nobody") is False

    def test_delete_unknown_student(self, database):
        assert database.delete_student(123) is None

    def test_delete_cascades(self, database, enroll):
        student_id = database.add_student("R001", "Alice", "a@example.com", [0.1], ["x.jpg"],
                                          registered_at=FIXED_NOW)
        database.upsert_attendance(student_id, "Math", "09:00", "lecture", DAY, FIXED_NOW, 0.1)
        assert database.delete_student(student_id) == ["x.jpg"]
        assert database.count_all_attendance() == 0
        assert database.get_image_refs(student_id) == []

    def test_delete_all_students(self, database, enroll):
        alice = database.add_student("R001", "Alice", "a@example.com", [0.1], ["a0.jpg", "a1.jpg"],
                                     registered_at=FIXED_NOW)
        enroll("R002", "Bob", [0.2])
        database.upsert_attendance(alice, "Math", "09:00", "lecture", DAY, FIXED_NOW, 0.1)
        assert database.delete_all_students() == (2, 1, ["a0.jpg", "a1.jpg"])


class TestAttendance:
    def test_upsert_returns_row(self, database, enroll):
        student_id = enroll("R001", "Alice", [0.1])
        row = database.upsert_attendance(student_id, "Math", "09:00", "lecture", DAY, FIXED_NOW, 0.12)
        assert row["status"] == "Present"
        assert row["calendar_day"] == "2026-03-02"
        assert row["marked_at"] == "2026-03-02 09:30:00"
        assert row["recognition_distance"] == pytest.approx(0.12)

    def test_find_attendance_filters(self, database, enroll):
        student_id = enroll("R001", "Alice", [0.1])
        database.upsert_attendance(student_id, "Math", "09:00", "lecture", DAY, FIXED_NOW, 0.1)
        database.upsert_attendance(student_id, "Math", "09:00", "lab", DAY, FIXED_NOW, 0.1)
        assert len(database.find_attendance(DAY)) == 2
        assert len(database.find_attendance(DAY, slot_type="lab")) == 1
        assert database.find_attendance(DAY, subject="Art") == []

    def test_delete_for_day(self, database, enroll):
        student_id = enroll("R001", "Alice", [0.1])
        database.upsert_attendance(student_id, "Math", "09:00", "lecture", DAY, FIXED_NOW, 0.1)
        assert database.delete_attendance_for_day(DAY) == 1
        assert database.delete_all_attendance() == 0


class TestRetries:
    def test_operational_error_retried_once(self, database):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert database._run("flaky", flaky) == "ok"
        assert len(calls) == 2

    def test_persistent_failure_becomes_persistence_error(self, database):
        calls = []

        def locked():
            calls.append(1)
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(PersistenceError, match="locked"):
            database._run("locked", locked)
        assert len(calls) == 2

    def test_operations_are_logged_with_attempts(self, database, caplog):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise sqlite3.OperationalError("database is locked")
            return 7

        with caplog.at_level(logging.DEBUG, logger="database"):
            database._run("count_students", flaky)

        queries = [r.getMessage() for r in caplog.records if r.getMessage().startswith("DB Query")]
        assert len(queries) == 1
        assert "Operation: count_students" in queries[0]
        assert "Attempts: 2" in queries[0]

    def test_upsert_for_missing_student_is_not_found(self, database):
        with pytest.raises(NotFoundError):
            database.upsert_attendance(404, "Math", "09:00", "lecture", DAY, FIXED_NOW, 0.1)

    def test_integrity_errors_are_not_retried(self, database):
        calls = []

        def duplicate():
            calls.append(1)
            raise sqlite3.IntegrityError("UNIQUE constraint failed")

        with pytest.raises(sqlite3.IntegrityError):
            database._run("duplicate", duplicate)
        assert len(calls) == 1
