"""Tests for feature vector helpers."""

import math

import numpy as np
import pytest

from core.errors import RecognitionInputError, ValidationError
from core.features import (
    blob_to_vector,
    coerce_vector,
    compute_centroid,
    prefix_rmse,
    vector_to_blob,
)


class TestCoerceVector:
    def test_accepts_ints_and_floats(self):
        vector = coerce_vector([0, 0.5, 1])
        assert vector.dtype == np.float64
        assert vector.tolist() == [0.0, 0.5, 1.0]

    @pytest.mark.parametrize("value", [
        [],
        "0.1,0.2",
        None,
        [0.1, "0.2"],
        [True, 0.2],
        [[0.1, 0.2], [0.3, 0.4]],
        [0.1, float("nan")],
        [0.1, float("inf")],
    ])
    def test_rejects_malformed_input(self, value):
        with pytest.raises(ValidationError):
            coerce_vector(value)

    def test_uses_requested_error_class(self):
        with pytest.raises(RecognitionInputError):
            coerce_vector([], error_cls=RecognitionInputError)

    def test_enforces_expected_length(self):
        with pytest.raises(ValidationError, match="must have 4 values"):
            coerce_vector([0.1, 0.2], expected_length=4)
        assert coerce_vector([0.1] * 4, expected_length=4).size == 4


class TestCentroid:
    def test_elementwise_mean(self):
        centroid = compute_centroid([np.array([0.0, 0.0]), np.array([2.0, 2.0])])
        assert centroid.tolist() == [1.0, 1.0]

    def test_single_vector_is_its_own_centroid(self):
        centroid = compute_centroid([np.array([0.25, 0.75, 0.5])])
        assert centroid.tolist() == [0.25, 0.75, 0.5]

    def test_mixed_lengths_rejected(self):
        with pytest.raises(ValidationError, match="share one length"):
            compute_centroid([np.array([0.0, 0.0]), np.array([1.0, 1.0, 1.0])])

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            compute_centroid([])


class TestPrefixRmse:
    def test_identical_vectors(self):
        assert prefix_rmse(np.array([0.3, 0.4]), np.array([0.3, 0.4])) == 0.0

    def test_known_distance(self):
        assert prefix_rmse(np.array([0.0, 0.0]), np.array([2.0, 2.0])) == pytest.approx(2.0)

    def test_compares_overlapping_prefix_only(self):
        query = np.array([1.0, 1.0, 9.0, 9.0])
        assert prefix_rmse(query, np.array([1.0, 1.0])) == 0.0
        assert prefix_rmse(np.array([0.0]), np.array([0.3, 5.0])) == pytest.approx(0.3)

    def test_symmetric(self):
        a = np.array([0.1, 0.9, 0.4])
        b = np.array([0.7, 0.2, 0.4])
        assert math.isclose(prefix_rmse(a, b), prefix_rmse(b, a))


def test_blob_codec_preserves_values():
    vector = np.array([0.1, -2.5, 1e-9, 0.0])
    blob = vector_to_blob(vector)
    assert len(blob) == 32
    assert blob_to_vector(blob).tolist() == vector.tolist()
    assert blob_to_vector(None) is None
