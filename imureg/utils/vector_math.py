"""A set of helper functions to handle common vector operations.

Wherever possible, these functions are designed to handle multiple vectors at the same time to perform efficient
computations.
"""
from typing import Union

import numpy as np
from numpy.linalg import norm

from imureg.utils._types import _AxisName
from imureg.utils.consts import AXIS_VECTORS


def row_wise_dot(v1, v2, squeeze=False):
    """Calculate row wise dot product of two vectors."""
    v1, v2 = np.atleast_2d(v1, v2)
    out = np.sum(v1 * v2, axis=-1)
    if squeeze:
        return np.squeeze(out)
    return out


def is_almost_parallel_or_antiparallel(
    v1: np.ndarray, v2: np.ndarray, rtol: float = 1.0e-5, atol: float = 1.0e-8
) -> Union[bool, np.ndarray]:
    """Check if two vectors are either parallel or antiparallel.

    Parameters
    ----------
    v1 : vector with shape (3,) or array of vectors
        axis ([x, y ,z]) or array of axis
    v2 : vector with shape (3,) or array of vectors
        axis ([x, y ,z]) or array of axis
    rtol : float
        The relative tolerance parameter
    atol : float
        The absolute tolerance parameter

    Returns
    -------
    bool or array of bool values with len n

    Examples
    --------
    two vectors each of shape (3,)

    >>> is_almost_parallel_or_antiparallel(np.array([0, 0, 1]), np.array([0, 0, 1]))
    True
    >>> is_almost_parallel_or_antiparallel(np.array([0, 0, 1]), np.array([0, 1, 0]))
    False

    """
    out = np.isclose(np.abs(row_wise_dot(normalize(v1), normalize(v2))), 1, rtol=rtol, atol=atol)
    if np.ndim(v1) == 1 and np.ndim(v2) == 1:
        return bool(out[0])
    return out


def normalize(v: np.ndarray) -> np.ndarray:
    """Simply normalize a vector.

    If a 2D array is provided, each row is considered a vector, which is normalized independently.

    Parameters
    ----------
    v : array with shape (3,) or (n, 3)
         vector or array of vectors

    Returns
    -------
    normalized vector or  array of normalized vectors

    Examples
    --------
    1D array

    >>> normalize(np.array([0, 0, 2]))
    array([0., 0., 1.])

    """
    v = np.array(v, dtype=float)
    if not v.any():
        raise ValueError("one element at least should have value other than 0")
    if len(v.shape) == 1:
        ax = 0
    else:
        ax = 1
    return (v.T / norm(v, axis=ax)).T


def project_onto_plane(v: np.ndarray, plane_normal: np.ndarray) -> np.ndarray:
    """Remove the component of `v` (or each row of `v`) that is parallel to the plane normal.

    Examples
    --------
    >>> project_onto_plane(np.array([1.0, 2.0, 3.0]), np.array([0, 1.0, 0]))
    array([1., 0., 3.])

    """
    plane_normal = normalize(plane_normal)
    v = np.asarray(v, dtype=float)
    dot = row_wise_dot(v, plane_normal)
    out = np.atleast_2d(v) - dot[:, None] * plane_normal
    if v.ndim == 1:
        return out[0]
    return out


def axis_vector(axis: _AxisName) -> np.ndarray:
    """Get the unit vector of a named coordinate axis ("x", "y" or "z").

    The name is case-insensitive.
    """
    try:
        return np.array(AXIS_VECTORS[str(axis).lower()])
    except KeyError as e:
        raise ValueError(f"Invalid axis `{axis}`! Axis must be one of x, y or z.") from e
