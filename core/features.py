"""Feature vector helpers: validation, centroid aggregation, distance and blob codec."""
from __future__ import annotations

import numbers
from typing import Iterable, Optional, Sequence, Type

import numpy as np

from .errors import ValidationError

FeatureVector = np.ndarray

# Stored blobs are always little-endian float64
_BLOB_DTYPE = np.dtype("<f8")


def coerce_vector(
    values: object,
    *,
    label: str = "feature",
    error_cls: Type[ValidationError] = ValidationError,
    expected_length: Optional[int] = None,
) -> FeatureVector:
    """Turn a JSON-ish sequence of numbers into a 1-D float64 array.

    Raises ``error_cls`` for anything that is not a non-empty, flat sequence of
    finite real numbers, and when ``expected_length`` is given but not met.
    """
    if isinstance(values, np.ndarray):
        if values.dtype.kind not in "iuf":
            raise error_cls(f"{label} must contain numbers only")
        array = values.astype(np.float64, copy=True)
    elif isinstance(values, (list, tuple)):
        for item in values:
            if isinstance(item, bool) or not isinstance(item, numbers.Real):
                raise error_cls(f"{label} must contain numbers only")
        array = np.asarray(values, dtype=np.float64)
    else:
        raise error_cls(f"{label} must be an array of numbers")

    if array.ndim != 1:
        raise error_cls(f"{label} must be a flat array of numbers")
    if array.size == 0:
        raise error_cls(f"{label} must not be empty")
    if not np.all(np.isfinite(array)):
        raise error_cls(f"{label} must contain finite numbers only")
    if expected_length and array.size != expected_length:
        raise error_cls(
            f"{label} must have {expected_length} values, got {array.size}"
        )
    return array


def compute_centroid(vectors: Sequence[FeatureVector]) -> FeatureVector:
    """Elementwise arithmetic mean of equally sized vectors."""
    if not vectors:
        raise ValidationError("at least one feature vector is required")
    lengths = {len(v) for v in vectors}
    if len(lengths) != 1:
        raise ValidationError(
            "all feature vectors must share one length, got lengths "
            + ", ".join(str(n) for n in sorted(lengths))
        )
    return np.vstack(vectors).mean(axis=0)


def prefix_rmse(query: FeatureVector, candidate: FeatureVector) -> float:
    """Root-mean-square difference over the overlapping prefix of two vectors."""
    n = min(len(query), len(candidate))
    if n == 0:
        raise ValidationError("cannot compare empty vectors")
    diff = query[:n] - candidate[:n]
    return float(np.sqrt(np.dot(diff, diff) / n))


def vector_to_blob(vector: Iterable[float]) -> bytes:
    return np.asarray(vector, dtype=_BLOB_DTYPE).tobytes()


def blob_to_vector(blob: Optional[bytes]) -> Optional[FeatureVector]:
    if blob is None:
        return None
    return np.frombuffer(blob, dtype=_BLOB_DTYPE).astype(np.float64)
