"""Nearest-neighbor matching of a query feature vector against enrolled centroids."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from core.errors import RecognitionInputError
from core.features import FeatureVector, coerce_vector, prefix_rmse
from logging_config import face_recognition_logger

DEFAULT_THRESHOLD = 0.18


@dataclass(frozen=True)
class EnrolledFace:
    student_id: int
    roll_no: str
    name: str
    vector: FeatureVector


@dataclass(frozen=True)
class MatchResult:
    recognized: bool
    distance: Optional[float] = None
    student_id: Optional[int] = None
    name: Optional[str] = None
    roll_no: Optional[str] = None
    no_registrants: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "recognized": self.recognized,
            "distance": self.distance,
        }
        if self.no_registrants:
            payload["noRegistrants"] = True
        if self.recognized:
            payload.update(
                studentId=self.student_id,
                name=self.name,
                rollNo=self.roll_no,
            )
        return payload


class Matcher:
    """Linear-scan matcher using prefix RMSE.

    The scan is O(N*L) per query. A metric tree could replace it for large
    registries as long as the tie-break below is kept.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, logger: Optional[logging.Logger] = None) -> None:
        if threshold < 0 or math.isnan(threshold):
            raise ValueError("threshold must be a non-negative number")
        self.threshold = float(threshold)
        self._logger = logger or logging.getLogger(__name__)

    def accepts(self, distance: float) -> bool:
        return distance <= self.threshold

    def match(self, query: object, candidates: Iterable[EnrolledFace]) -> MatchResult:
        query_vector = coerce_vector(query, label="feature", error_cls=RecognitionInputError)

        # Ties go to the lowest roll number; sorted() is stable for equal keys.
        ordered: List[EnrolledFace] = sorted(candidates, key=lambda face: face.roll_no)
        if not ordered:
            face_recognition_logger.log_no_registrants()
            return MatchResult(recognized=False, no_registrants=True)

        best: Optional[EnrolledFace] = None
        best_distance = math.inf
        for face in ordered:
            if face.vector is None or len(face.vector) == 0:
                continue
            distance = prefix_rmse(query_vector, np.asarray(face.vector, dtype=np.float64))
            if distance < best_distance:
                best_distance = distance
                best = face
        self._logger.debug("Scanned %d enrolled faces, best distance %.4f", len(ordered), best_distance)

        if best is None:
            face_recognition_logger.log_no_registrants()
            return MatchResult(recognized=False, no_registrants=True)

        if not self.accepts(best_distance):
            face_recognition_logger.log_face_rejected(best_distance, self.threshold)
            return MatchResult(recognized=False, distance=best_distance)

        face_recognition_logger.log_face_recognized(best.name, best_distance, roll_no=best.roll_no)
        return MatchResult(
            recognized=True,
            distance=best_distance,
            student_id=best.student_id,
            name=best.name,
            roll_no=best.roll_no,
        )
