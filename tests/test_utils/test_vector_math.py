import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal, assert_array_equal

from imureg.utils.vector_math import (
    axis_vector,
    is_almost_parallel_or_antiparallel,
    normalize,
    project_onto_plane,
    row_wise_dot,
)


class TestIsAlmostParallelOrAntiprallel:
    """Test the function `is_almost_parallel_or_antiprallel`."""

    @pytest.mark.parametrize(
        ("v1", "v2", "result"),
        [
            ([1, 0, 0], [1, 1, 0], False),
            ([1, 0, 0], [1, 0, 0], True),
            ([1, 0, 0], [0, 1, 0], False),
            ([1, 0, 1], [2, 0, 2], True),
            ([0, -1, 0], [0, 2, 0], True),
            ([1, -1, 0], [-1, 1, 0], True),
            ([1, 0, 0], [1, 1e-2, 0], False),
        ],
    )
    def test_single_vector(self, v1, v2, result) -> None:
        """Test single vectors if they parallel or antiprallel."""
        assert is_almost_parallel_or_antiparallel(np.array(v1), np.array(v2)) is result

    def test_multiple_vector(self) -> None:
        """Test array of vectors."""
        v1 = np.repeat(np.array([1.0, 0, 0])[None, :], 4, axis=0)
        v2 = np.array([[2.0, 0, 0], [-1.0, 0, 0], [0, 1.0, 0], [1.0, 1.0, 0]])
        assert_array_equal(is_almost_parallel_or_antiparallel(v1, v2), [True, True, False, False])


class TestNormalize:
    """Test the function `normalize`."""

    def test_normalize_1d_array(self) -> None:
        """Test 1D array."""
        assert_array_equal(normalize(np.array([2.0, 0, 0])), np.array([1.0, 0, 0]))

    @pytest.mark.parametrize(
        ("v1", "v2"),
        [([0, 2.0, 0], [0, 1, 0]), ([2.0, 0, 0], [1.0, 0, 0]), ([0.5, 0.5, 0], [0.707107, 0.707107, 0])],
    )
    def test_normalize_2d_array(self, v1, v2) -> None:
        """Test 2D array."""
        assert_array_almost_equal(normalize(np.array([v1, v1])), np.array([v2, v2]))

    def test_normalize_integer_input(self) -> None:
        """Integer input must not be truncated."""
        assert_array_almost_equal(normalize(np.array([0, 0, 2])), [0.0, 0.0, 1.0])

    def test_normalize_all_zeros(self) -> None:
        """Test vector [0, 0, 0]."""
        with pytest.raises(ValueError):
            normalize(np.array([0, 0, 0]))


class TestProjectOntoPlane:
    """Test the function `project_onto_plane`."""

    def test_single_vector(self) -> None:
        assert_array_almost_equal(project_onto_plane(np.array([1.0, 2.0, 3.0]), np.array([0, 1.0, 0])), [1, 0, 3])

    def test_unnormalized_normal(self) -> None:
        assert_array_almost_equal(project_onto_plane(np.array([1.0, 2.0, 3.0]), np.array([0, 0, 5.0])), [1, 2, 0])

    def test_multiple_vectors(self) -> None:
        v = np.array([[1.0, 1.0, 1.0], [0, 2.0, 0]])
        result = project_onto_plane(v, np.array([0, 1.0, 0]))
        assert_array_almost_equal(result, [[1, 0, 1], [0, 0, 0]])
        assert_array_almost_equal(row_wise_dot(result, np.array([0, 1.0, 0])), [0, 0])


class TestAxisVector:
    """Test the function `axis_vector`."""

    @pytest.mark.parametrize(("axis", "expected"), [("x", [1, 0, 0]), ("Y", [0, 1, 0]), ("z", [0, 0, 1])])
    def test_valid_axis(self, axis, expected) -> None:
        assert_array_equal(axis_vector(axis), expected)

    @pytest.mark.parametrize("axis", ["a", "-x", "", None])
    def test_invalid_axis(self, axis) -> None:
        with pytest.raises(ValueError, match="Invalid axis"):
            axis_vector(axis)
