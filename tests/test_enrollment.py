"""Tests for student enrollment."""

from datetime import datetime

import numpy as np
import pytest

from core.enrollment import EnrollmentAggregator, validate_email, validate_identity
from core.errors import (
    ConflictError,
    NotFoundError,
    PartialCaptureError,
    PersistenceError,
    ValidationError,
)
from database import DatabaseManager
from tests.conftest import FIXED_NOW, make_frame


def capture(count, vector=(0.2, 0.4, 0.6, 0.8)):
    return [make_frame() for _ in range(count)], [list(vector) for _ in range(count)]


@pytest.fixture
def aggregator(database, image_store):
    return EnrollmentAggregator(database=database, image_store=image_store, min_frames=3)


def stored_files(image_store):
    return sorted(p.name for p in image_store.images_dir.iterdir())


class TestIdentityValidation:
    @pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@school.edu.vn"])
    def test_valid_emails(self, email):
        assert validate_email(email) == email

    @pytest.mark.parametrize("email", ["", "plain", "a@b", "a@@b.com", "a b@c.com"])
    def test_invalid_emails(self, email):
        with pytest.raises(ValidationError):
            validate_email(email)

    def test_missing_fields_are_listed(self):
        with pytest.raises(ValidationError, match="name, rollNo"):
            validate_identity("  ", None, "x@y.com")

    def test_values_are_stripped(self):
        assert validate_identity(" Alice ", " R001 ", "alice@example.com ") == (
            "Alice", "R001", "alice@example.com",
        )


class TestRegister:
    def test_stores_centroid_and_frames(self, aggregator, database, image_store):
        frames = [make_frame() for _ in range(3)]
        features = [[0.0, 0.0], [2.0, 2.0], [1.0, 1.0]]

        student_id = aggregator.register("Alice", "R001", "alice@example.com", frames, features, now=FIXED_NOW)

        student = database.get_student(student_id)
        assert student["roll_no"] == "R001"
        assert student["full_name"] == "Alice"
        assert student["vector_length"] == 2
        assert student["registered_at"] == "2026-03-02 09:30:00"

        faces = database.get_enrolled_vectors()
        assert np.frombuffer(faces[0]["face_vector"], dtype="<f8").tolist() == [1.0, 1.0]

        refs = database.get_image_refs(student_id)
        assert len(refs) == 3
        assert all(image_store.exists(ref) for ref in refs)

    def test_partial_capture_stores_nothing(self, aggregator, database, image_store):
        frames, features = capture(2)
        with pytest.raises(PartialCaptureError):
            aggregator.register("Alice", "R001", "alice@example.com", frames, features)
        assert database.count_students() == 0
        assert stored_files(image_store) == []

    def test_partial_capture_is_a_validation_error(self, aggregator):
        frames, features = capture(3)
        with pytest.raises(ValidationError):
            aggregator.register("Alice", "R001", "alice@example.com", frames, features[:1])

    def test_duplicate_roll_number(self, aggregator, database, image_store):
        frames, features = capture(3)
        aggregator.register("Alice", "R001", "alice@example.com", frames, features)
        before = stored_files(image_store)

        with pytest.raises(ConflictError):
            aggregator.register("Alicia", "R001", "alicia@example.com", frames, features)

        assert database.count_students() == 1
        assert stored_files(image_store) == before

    def test_invalid_email(self, aggregator, database):
        frames, features = capture(3)
        with pytest.raises(ValidationError, match="invalid email"):
            aggregator.register("Alice", "R001", "not-an-email", frames, features)
        assert database.count_students() == 0

    def test_mixed_feature_lengths_rejected(self, aggregator, database):
        frames, _ = capture(3)
        with pytest.raises(ValidationError, match="share one length"):
            aggregator.register("Alice", "R001", "alice@example.com", frames, [[0.1, 0.2], [0.1, 0.2], [0.1]])
        assert database.count_students() == 0

    def test_fixed_length_enforced_when_configured(self, database, image_store):
        aggregator = EnrollmentAggregator(
            database=database, image_store=image_store, min_frames=3, expected_length=4
        )
        frames, features = capture(3, vector=(0.1, 0.2))
        with pytest.raises(ValidationError, match="must have 4 values"):
            aggregator.register("Alice", "R001", "alice@example.com", frames, features)

    def test_undecodable_frame_leaves_nothing(self, aggregator, database, image_store):
        frames, features = capture(3)
        frames[2] = "data:image/jpeg;base64,@@not-base64@@"
        with pytest.raises(ValidationError):
            aggregator.register("Alice", "R001", "alice@example.com", frames, features)
        assert database.count_students() == 0
        assert stored_files(image_store) == []

    def test_storage_failure_removes_saved_frames(self, tmp_path, image_store):
        class BrokenDatabase(DatabaseManager):
            def add_student(self, *args, **kwargs):
                raise PersistenceError("Storage unavailable during add_student")

        database = BrokenDatabase(tmp_path / "broken.db", retry_delay=0)
        aggregator = EnrollmentAggregator(database=database, image_store=image_store, min_frames=3)
        frames, features = capture(3)

        with pytest.raises(PersistenceError):
            aggregator.register("Alice", "R001", "alice@example.com", frames, features)
        assert stored_files(image_store) == []

    def test_non_list_inputs(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.register("Alice", "R001", "alice@example.com", "frames", [])


class TestStudentMaintenance:
    def test_update_student(self, aggregator, enroll):
        student_id = enroll("R001", "Alice", [0.1, 0.1])
        updated = aggregator.update_student(student_id, name="Alice Smith", email="alice.smith@example.com")
        assert updated["full_name"] == "Alice Smith"
        assert updated["email"] == "alice.smith@example.com"
        assert updated["roll_no"] == "R001"

    def test_update_unknown_student(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.update_student(999, name="Nobody")

    def test_update_to_taken_roll_number(self, aggregator, enroll):
        enroll("R001", "Alice", [0.1])
        bob = enroll("R002", "Bob", [0.2])
        with pytest.raises(ConflictError):
            aggregator.update_student(bob, roll_no="R001")

    def test_update_with_invalid_email(self, aggregator, enroll):
        student_id = enroll("R001", "Alice", [0.1])
        with pytest.raises(ValidationError):
            aggregator.update_student(student_id, email="nope")

    def test_delete_student_removes_frames_and_attendance(self, aggregator, database, image_store):
        frames, features = capture(3)
        student_id = aggregator.register("Alice", "R001", "alice@example.com", frames, features)
        database.upsert_attendance(student_id, "Math", "09:00-10:00", "lecture",
                                   FIXED_NOW.date(), FIXED_NOW, 0.01)

        assert aggregator.delete_student(student_id) == 3
        assert database.get_student(student_id) is None
        assert database.count_all_attendance() == 0
        assert stored_files(image_store) == []

    def test_delete_unknown_student(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.delete_student(42)


def test_registered_at_defaults_to_now(aggregator, database):
    frames, features = capture(3)
    before = datetime.now().replace(microsecond=0)
    student_id = aggregator.register("Alice", "R001", "alice@example.com", frames, features)
    registered_at = datetime.fromisoformat(database.get_student(student_id)["registered_at"])
    assert registered_at >= before
