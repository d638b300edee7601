"""Attendance ledger: idempotent Present transitions keyed per attendance unit."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from core.errors import ValidationError
from logging_config import face_recognition_logger

PRESENT = "Present"
ABSENT = "Absent"

SCOPE_TODAY = "today"
SCOPE_ALL = "all"

LOCK_STRIPES = 64


@dataclass(frozen=True)
class AttendanceUnitKey:
    """Granularity at which presence is decided."""

    student_id: int
    subject: str
    timeslot: str
    slot_type: str
    calendar_day: date

    def describe(self) -> str:
        return f"{self.subject}/{self.timeslot}/{self.slot_type}@{self.calendar_day.isoformat()}"


@dataclass(frozen=True)
class AttendanceRecord:
    key: AttendanceUnitKey
    status: str
    marked_at: datetime
    recognition_distance: float

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AttendanceRecord":
        return cls(
            key=AttendanceUnitKey(
                student_id=row["student_id"],
                subject=row["subject"],
                timeslot=row["timeslot"],
                slot_type=row["slot_type"],
                calendar_day=date.fromisoformat(row["calendar_day"]),
            ),
            status=row["status"],
            marked_at=datetime.fromisoformat(row["marked_at"]),
            recognition_distance=float(row["recognition_distance"]),
        )


def _require_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


class AttendanceLedger:
    """Applies recognition results to the attendance table.

    Writes to the same unit are serialized by one of a fixed set of striped
    locks on top of the atomic upsert in storage.
    """

    def __init__(
        self,
        *,
        database: Any,
        image_store: Any,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._db = database
        self._images = image_store
        self._logger = logger or logging.getLogger(__name__)
        self._unit_locks: Tuple[threading.Lock, ...] = tuple(
            threading.Lock() for _ in range(LOCK_STRIPES)
        )

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------
    def _lock_for(self, key: AttendanceUnitKey) -> threading.Lock:
        return self._unit_locks[hash(key) % len(self._unit_locks)]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def mark_present(
        self,
        match_result: Any,
        subject: str,
        timeslot: str,
        slot_type: str,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Upsert the Present record of the unit identified by the match.

        A repeated call for the same unit refreshes ``marked_at`` and the
        recognition distance; the row count never grows.
        """
        if not getattr(match_result, "recognized", False) or match_result.student_id is None:
            raise ValidationError("attendance can only be marked for a recognized student")
        distance = match_result.distance
        if distance is None or distance < 0:
            raise ValidationError("recognition distance must be a non-negative number")

        now = now or datetime.now()
        key = AttendanceUnitKey(
            student_id=match_result.student_id,
            subject=_require_text(subject, "subject"),
            timeslot=_require_text(timeslot, "timeslot"),
            slot_type=_require_text(slot_type, "slotType"),
            calendar_day=now.date(),
        )

        with self._lock_for(key):
            row = self._db.upsert_attendance(
                key.student_id,
                key.subject,
                key.timeslot,
                key.slot_type,
                key.calendar_day,
                now,
                float(distance),
            )

        record = AttendanceRecord.from_row(row)
        face_recognition_logger.log_attendance_marked(
            match_result.name, match_result.roll_no, key.describe(), distance
        )
        return record

    def clear_scope(self, scope: str, today: Optional[date] = None) -> int:
        """Delete today's records or every record; students are never touched."""
        if scope == SCOPE_TODAY:
            today = today or date.today()
            deleted = self._db.delete_attendance_for_day(today)
        elif scope == SCOPE_ALL:
            deleted = self._db.delete_all_attendance()
        else:
            raise ValidationError(f"unknown clear scope: {scope!r} (expected 'today' or 'all')")
        self._logger.info("Cleared %d attendance records (scope=%s)", deleted, scope)
        return deleted

    def clear_all(self) -> Tuple[int, int]:
        """Delete every record and every student, then their stored frames.

        Returns (students_deleted, attendance_deleted).
        """
        students_deleted, attendance_deleted, image_refs = self._db.delete_all_students()
        removed = self._images.delete(image_refs)
        self._logger.info(
            "Cleared database: %d students, %d attendance records, %d stored frames",
            students_deleted, attendance_deleted, removed,
        )
        return students_deleted, attendance_deleted

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------
    def status_for(
        self,
        student_id: int,
        day: date,
        subject: Optional[str] = None,
        timeslot: Optional[str] = None,
        slot_type: Optional[str] = None,
    ) -> str:
        rows = self._db.find_attendance(
            day,
            student_id=student_id,
            subject=subject,
            timeslot=timeslot,
            slot_type=slot_type,
        )
        return PRESENT if rows else ABSENT
