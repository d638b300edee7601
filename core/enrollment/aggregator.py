"""Enrollment: turn a multi-pose capture into one stored centroid per student."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from core.errors import ConflictError, NotFoundError, PartialCaptureError, ValidationError
from core.features import FeatureVector, coerce_vector, compute_centroid
from logging_config import face_recognition_logger

DEFAULT_MIN_FRAMES = 25

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_email(email: str) -> str:
    email = _clean(email)
    if not email:
        raise ValidationError("email is required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(f"invalid email address: {email}")
    return email


def validate_identity(name: Any, roll_no: Any, email: Any) -> Tuple[str, str, str]:
    """Return stripped (name, roll_no, email) or raise ValidationError."""
    missing = [
        label for label, value in (("name", name), ("rollNo", roll_no), ("email", email))
        if not _clean(value)
    ]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")
    return _clean(name), _clean(roll_no), validate_email(email)


class EnrollmentAggregator:
    """Registers students and owns every later mutation of a student row."""

    def __init__(
        self,
        *,
        database: Any,
        image_store: Any,
        min_frames: int = DEFAULT_MIN_FRAMES,
        expected_length: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._db = database
        self._images = image_store
        self.min_frames = max(1, int(min_frames))
        self.expected_length = expected_length or None
        self._logger = logger or logging.getLogger(__name__)

    def _coerce_features(self, features: Sequence[Any]) -> List[FeatureVector]:
        vectors = [
            coerce_vector(
                feature,
                label=f"features[{idx}]",
                expected_length=self.expected_length,
            )
            for idx, feature in enumerate(features)
        ]
        # Mixed lengths are rejected instead of truncated
        compute_centroid(vectors)
        return vectors

    def register(
        self,
        name: Any,
        roll_no: Any,
        email: Any,
        frames: Sequence[Any],
        features: Sequence[Any],
        now: Optional[datetime] = None,
    ) -> int:
        """Validate, aggregate and persist a new student; returns its id.

        Either the student row and all of its images end up stored, or none
        of them do.
        """
        name, roll_no, email = validate_identity(name, roll_no, email)
        if not isinstance(frames, (list, tuple)) or not isinstance(features, (list, tuple)):
            raise ValidationError("frames and features must be arrays")
        if len(frames) < self.min_frames or len(features) < self.min_frames:
            raise PartialCaptureError(
                f"at least {self.min_frames} frames and features are required, "
                f"got {len(frames)} frames and {len(features)} features"
            )

        vectors = self._coerce_features(features)

        if self._db.get_student_by_roll(roll_no) is not None:
            raise ConflictError(f"Student with roll number {roll_no} already exists")

        centroid = compute_centroid(vectors)

        image_refs: List[str] = []
        try:
            image_refs = self._images.save_frames(roll_no, name, frames)
            student_id = self._db.add_student(
                roll_no,
                name,
                email,
                centroid,
                image_refs,
                registered_at=now or datetime.now(),
            )
        except Exception:
            removed = self._images.delete(image_refs)
            self._logger.warning(
                "Enrollment of %s rolled back, removed %d stored frames", roll_no, removed
            )
            raise

        face_recognition_logger.log_enrolled(name, roll_no, len(vectors))
        return student_id

    def update_student(self, student_id: int, name: Any = None, roll_no: Any = None, email: Any = None) -> dict:
        """Edit identity fields; omitted fields stay unchanged."""
        student = self._db.get_student(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")

        updates = {}
        if name is not None:
            if not _clean(name):
                raise ValidationError("name must not be empty")
            updates['full_name'] = _clean(name)
        if roll_no is not None:
            if not _clean(roll_no):
                raise ValidationError("rollNo must not be empty")
            updates['roll_no'] = _clean(roll_no)
        if email is not None:
            updates['email'] = validate_email(email)

        if not self._db.update_student(student_id, **updates):
            raise NotFoundError(f"Student {student_id} not found")
        self._logger.info("Updated student %s: %s", student_id, sorted(updates))
        return self._db.get_student(student_id)

    def delete_student(self, student_id: int) -> int:
        """Delete a student, its attendance rows and stored frames; returns frames removed."""
        image_refs = self._db.delete_student(student_id)
        if image_refs is None:
            raise NotFoundError(f"Student {student_id} not found")
        removed = self._images.delete(image_refs)
        self._logger.info("Deleted student %s and %d stored frames", student_id, removed)
        return removed

