"""Error taxonomy shared by the matching, enrollment and ledger services.

Every error carries a stable machine-readable ``kind`` and the HTTP status the
API layer answers with, so routes never have to translate exceptions by hand.
"""
from __future__ import annotations

from typing import Any, Dict


class AttendanceError(Exception):
    """Base class for all expected failures."""

    kind = "attendance_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(AttendanceError):
    """Malformed or missing input fields, invalid email."""

    kind = "validation_error"
    status_code = 400


class PartialCaptureError(ValidationError):
    """Enrollment aborted before the minimum frame count was captured."""

    kind = "partial_capture"


class RecognitionInputError(ValidationError):
    """Empty or malformed query vector."""

    kind = "recognition_input_error"


class NotFoundError(AttendanceError):
    kind = "not_found"
    status_code = 404


class ConflictError(AttendanceError):
    """Duplicate roll number."""

    kind = "conflict"
    status_code = 409


class PersistenceError(AttendanceError):
    """Storage unavailable or timed out after the retry budget."""

    kind = "persistence_error"
    status_code = 503


class DeliveryError(AttendanceError):
    """The email collaborator could not deliver a message."""

    kind = "delivery_error"
    status_code = 502
