"""Read-only attendance reporting: daily counts, roster rows and CSV export.

Everything here is recomputed from the students and attendance tables on each
call; no counters are cached.
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from core.attendance.ledger import ABSENT, PRESENT

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
CSV_HEADER = ["Roll No.", "Name", "Status", "Date And Time"]


def format_timestamp(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return datetime.fromisoformat(value).strftime(TIME_FORMAT)


def attendance_percentage(present: int, total: int):
    if total <= 0:
        return 0
    return round(present / total * 100, 1)


class AttendanceReporter:
    def __init__(self, *, database: Any) -> None:
        self._db = database

    def daily_summary(
        self,
        day: date,
        subject: Optional[str] = None,
        timeslot: Optional[str] = None,
        slot_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        total = self._db.count_students()
        present = self._db.count_present(day, subject=subject, timeslot=timeslot, slot_type=slot_type)
        return {
            "date": day.isoformat(),
            "totalStudents": total,
            "present": present,
            "absent": total - present,
            "percentage": attendance_percentage(present, total),
        }

    def stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        summary = self.daily_summary(today or date.today())
        return {
            "totalStudents": summary["totalStudents"],
            "todayPresent": summary["present"],
            "todayAbsent": summary["absent"],
            "attendancePercentage": summary["percentage"],
        }

    def student_rows(
        self,
        day: date,
        subject: Optional[str] = None,
        timeslot: Optional[str] = None,
        slot_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """One row per student in ascending roll-number order."""
        latest: Dict[int, str] = {}
        # Rows come back ordered by marked_at, so the last one per student wins
        for row in self._db.find_attendance(day, subject=subject, timeslot=timeslot, slot_type=slot_type):
            if row["status"] == PRESENT:
                latest[row["student_id"]] = row["marked_at"]

        items = []
        for student in self._db.get_all_students():
            marked_at = latest.get(student["id"])
            items.append({
                "id": student["id"],
                "rollNo": student["roll_no"],
                "name": student["full_name"],
                "email": student["email"],
                "status": PRESENT if marked_at else ABSENT,
                "time": format_timestamp(marked_at) if marked_at else ABSENT,
                "registeredAt": datetime.fromisoformat(student["registered_at"]).isoformat(),
            })
        return items

    def absentees(
        self,
        day: date,
        subject: Optional[str] = None,
        timeslot: Optional[str] = None,
        slot_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return [
            row for row in self.student_rows(day, subject, timeslot, slot_type)
            if row["status"] == ABSENT
        ]

    def export_csv(
        self,
        day: date,
        subject: Optional[str] = None,
        timeslot: Optional[str] = None,
        slot_type: Optional[str] = None,
    ) -> str:
        """Deterministic CSV sheet; a subject+timeslot export starts with banner lines."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        if subject and timeslot:
            writer.writerow(["Subject", subject])
            writer.writerow(["Timeslot", timeslot])
            if slot_type:
                writer.writerow(["Slot Type", slot_type])
            writer.writerow(["Date", day.isoformat()])
            writer.writerow([])

        writer.writerow(CSV_HEADER)
        for row in self.student_rows(day, subject, timeslot, slot_type):
            writer.writerow([row["rollNo"], row["name"], row["status"], row["time"]])
        return buffer.getvalue()
