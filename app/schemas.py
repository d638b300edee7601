"""
Request schemas
Every operation parses its payload into one of these before any service sees it
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from core.attendance import SCOPE_ALL, SCOPE_TODAY
from core.errors import RecognitionInputError, ValidationError
from core.features import FeatureVector, coerce_vector


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("request body must be a JSON object")
    return payload


def _optional_text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    return value or None


def parse_day(value: Any, default: date) -> date:
    if value in (None, ""):
        return default
    if not isinstance(value, str):
        raise ValidationError("date must be a YYYY-MM-DD string")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(f"invalid date: {value}") from exc


@dataclass(frozen=True)
class RecognizeRequest:
    feature: FeatureVector

    @classmethod
    def from_payload(cls, payload: Any) -> "RecognizeRequest":
        payload = _require_mapping(payload)
        if "feature" not in payload:
            raise RecognitionInputError("feature array is required")
        return cls(feature=coerce_vector(payload["feature"], error_cls=RecognitionInputError))


@dataclass(frozen=True)
class RegisterRequest:
    name: Any
    roll_no: Any
    email: Any
    frames: List[Any]
    features: List[Any]

    @classmethod
    def from_payload(cls, payload: Any) -> "RegisterRequest":
        payload = _require_mapping(payload)
        frames = payload.get("frames")
        features = payload.get("features")
        if not isinstance(frames, list):
            raise ValidationError("frames must be an array of images")
        if not isinstance(features, list):
            raise ValidationError("features must be an array of feature vectors")
        return cls(
            name=payload.get("name"),
            roll_no=payload.get("rollNo"),
            email=payload.get("email"),
            frames=frames,
            features=features,
        )


@dataclass(frozen=True)
class MarkAttendanceRequest:
    feature: FeatureVector
    subject: str
    timeslot: str
    slot_type: str

    @classmethod
    def from_payload(cls, payload: Any, defaults: Mapping[str, str]) -> "MarkAttendanceRequest":
        payload = _require_mapping(payload)
        if "feature" not in payload:
            raise RecognitionInputError("feature array is required")
        return cls(
            feature=coerce_vector(payload["feature"], error_cls=RecognitionInputError),
            subject=_optional_text(payload, "subject") or defaults["subject"],
            timeslot=_optional_text(payload, "timeslot") or defaults["timeslot"],
            slot_type=_optional_text(payload, "slotType") or defaults["slot_type"],
        )


@dataclass(frozen=True)
class ClearAttendanceRequest:
    scope: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ClearAttendanceRequest":
        payload = _require_mapping(payload or {})
        scope = (_optional_text(payload, "scope") or SCOPE_TODAY).lower()
        if scope not in (SCOPE_TODAY, SCOPE_ALL):
            raise ValidationError("scope must be 'today' or 'all'")
        return cls(scope=scope)


@dataclass(frozen=True)
class StudentUpdateRequest:
    name: Optional[str]
    roll_no: Optional[str]
    email: Optional[str]

    @classmethod
    def from_payload(cls, payload: Any) -> "StudentUpdateRequest":
        payload = _require_mapping(payload)
        for key in ("name", "rollNo", "email"):
            if key in payload and not isinstance(payload[key], str):
                raise ValidationError(f"{key} must be a string")
        request = cls(
            name=payload.get("name"),
            roll_no=payload.get("rollNo"),
            email=payload.get("email"),
        )
        if request.name is None and request.roll_no is None and request.email is None:
            raise ValidationError("nothing to update: provide name, rollNo or email")
        return request


@dataclass(frozen=True)
class ReportScope:
    day: date
    subject: Optional[str] = None
    timeslot: Optional[str] = None
    slot_type: Optional[str] = None

    @classmethod
    def from_mapping(cls, values: Any, today: date) -> "ReportScope":
        values = _require_mapping(values or {})
        return cls(
            day=parse_day(values.get("date"), today),
            subject=_optional_text(values, "subject"),
            timeslot=_optional_text(values, "timeslot"),
            slot_type=_optional_text(values, "slotType"),
        )

    def filters(self) -> Dict[str, Optional[str]]:
        return {"subject": self.subject, "timeslot": self.timeslot, "slot_type": self.slot_type}

    def describe(self) -> Dict[str, Optional[str]]:
        return {
            "date": self.day.isoformat(),
            "subject": self.subject,
            "timeslot": self.timeslot,
            "slotType": self.slot_type,
        }


@dataclass(frozen=True)
class NotifyAbsentRequest:
    scope: ReportScope

    @classmethod
    def from_payload(cls, payload: Any, today: date) -> "NotifyAbsentRequest":
        scope = ReportScope.from_mapping(payload, today)
        if not scope.subject or not scope.timeslot:
            raise ValidationError("subject and timeslot are required")
        return cls(scope=scope)


@dataclass(frozen=True)
class EmailTestRequest:
    email: str
    message: Optional[str]

    @classmethod
    def from_payload(cls, payload: Any) -> "EmailTestRequest":
        payload = _require_mapping(payload)
        email = _optional_text(payload, "email")
        if not email:
            raise ValidationError("email is required")
        return cls(email=email, message=_optional_text(payload, "message"))
