"""Rigid transforms and the construction of coordinate frames from marker positions."""
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from imureg.utils.consts import DEGENERATE_LENGTH_TOLERANCE, IMU_CLUSTER_SUFFIXES, IMU_MARKER_SUFFIX
from imureg.utils.datatype_helper import MarkerSample
from imureg.utils.exceptions import DegenerateGeometryError
from imureg.utils.vector_math import is_almost_parallel_or_antiparallel, normalize


class RigidTransform:
    """The pose of a frame F relative to a reference frame G (rotation and origin of F expressed in G).

    Transforms compose like rotations: `X_AG = X_BG * X_AB`.

    Parameters
    ----------
    rotation
        Orientation of the frame.
        If None, the identity rotation is used.
    translation
        Origin of the frame with shape (3,).
        If None, the origin of the reference frame is used.

    Examples
    --------
    >>> x_bg = RigidTransform(Rotation.from_euler("z", 90, degrees=True), [1.0, 0, 0])
    >>> x_bg.apply([1.0, 0, 0]).round(3)
    array([1., 1., 0.])
    >>> (x_bg.inv() * x_bg).translation.round(3)
    array([0., 0., 0.])

    """

    def __init__(self, rotation: Optional[Rotation] = None, translation: Optional[Sequence[float]] = None):
        self.rotation = Rotation.identity() if rotation is None else rotation
        translation = np.zeros(3) if translation is None else np.array(translation, dtype=float)
        if translation.shape != (3,):
            raise ValueError(f"The translation is expected to have the shape (3,), but it has {translation.shape}.")
        self.translation = translation

    @classmethod
    def identity(cls) -> "RigidTransform":
        return cls()

    def inv(self) -> "RigidTransform":
        """Get the inverse transform (pose of the reference frame in this frame)."""
        inv_rot = self.rotation.inv()
        return RigidTransform(inv_rot, -inv_rot.apply(self.translation))

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform point(s) given in this frame into the reference frame."""
        return self.rotation.apply(points) + self.translation

    def as_matrix(self) -> np.ndarray:
        """Get the homogeneous 4x4 transformation matrix."""
        mat = np.eye(4)
        mat[:3, :3] = self.rotation.as_matrix()
        mat[:3, 3] = self.translation
        return mat

    def __mul__(self, other: "RigidTransform") -> "RigidTransform":
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return RigidTransform(self.rotation * other.rotation, self.apply(other.translation))

    def __eq__(self, other) -> bool:
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return bool(np.allclose(self.as_matrix(), other.as_matrix(), rtol=0, atol=1e-12))

    def __repr__(self) -> str:
        quat = np.round(self.rotation.as_quat(), 6).tolist()
        return f"RigidTransform(quat={quat}, translation={np.round(self.translation, 6).tolist()})"


def form_frame_from_points(
    origin: np.ndarray, x_point: np.ndarray, y_point: np.ndarray, tolerance: float = DEGENERATE_LENGTH_TOLERANCE
) -> RigidTransform:
    """Form a right-handed frame from an origin and two points along the (approximate) x and y axis.

    The x-axis points from `origin` to `x_point`.
    The y-axis is the part of the vector from `origin` to `y_point` that is orthogonal to the x-axis.
    The z-axis completes the right-handed frame.
    The frame is expressed in whatever frame the points were measured in.

    Parameters
    ----------
    origin
        Position of the origin with shape (3,)
    x_point
        A point along the positive x-axis
    y_point
        A point in the positive x-y half-plane
    tolerance
        Difference vectors shorter than this value (in the units of the points) can not define an axis

    Returns
    -------
    frame
        The pose of the formed frame with its origin at `origin`

    Raises
    ------
    DegenerateGeometryError
        If a point is NaN, one of the difference vectors is (almost) zero, or the three points are collinear

    """
    origin, x_point, y_point = (np.asarray(p, dtype=float) for p in (origin, x_point, y_point))
    if not (np.all(np.isfinite(origin)) and np.all(np.isfinite(x_point)) and np.all(np.isfinite(y_point))):
        raise DegenerateGeometryError("All points must be finite to form a frame.")
    x_vec = x_point - origin
    y_vec = y_point - origin
    if np.linalg.norm(x_vec) < tolerance or np.linalg.norm(y_vec) < tolerance:
        raise DegenerateGeometryError(
            "The x and y points must not coincide with the origin "
            f"(|x - o| = {np.linalg.norm(x_vec)}, |y - o| = {np.linalg.norm(y_vec)})."
        )
    if is_almost_parallel_or_antiparallel(x_vec, y_vec):
        raise DegenerateGeometryError("The origin, x and y points are collinear and do not define a plane.")

    x_axis = normalize(x_vec)
    y_axis = normalize(y_vec - np.dot(y_vec, x_axis) * x_axis)
    z_axis = np.cross(x_axis, y_axis)
    return RigidTransform(Rotation.from_matrix(np.column_stack([x_axis, y_axis, z_axis])), origin)


def cluster_marker_names(base: str) -> Dict[str, str]:
    """Get the labels of the origin, x, y and diagonal marker of the IMU cluster `<base>_IMU`."""
    return {k: f"{base}{IMU_MARKER_SUFFIX}{suffix}" for k, suffix in IMU_CLUSTER_SUFFIXES.items()}


def find_imu_cluster_bases(marker_names: Sequence[str]) -> List[str]:
    """Find the base names of all IMU marker clusters (`<base>_IMU_*`) in order of first appearance."""
    bases: List[str] = []
    for name in marker_names:
        ix = name.find(IMU_MARKER_SUFFIX)
        if ix <= 0:
            continue
        base = name[:ix]
        if base not in bases:
            bases.append(base)
    return bases


def frame_from_marker_cluster(sample: MarkerSample, base: str, use_centroid: bool = True) -> RigidTransform:
    """Form the frame of the IMU marker cluster `<base>_IMU` from a single marker sample.

    The frame is formed from the origin (`_O`), x (`_X`) and y (`_Y`) markers using :func:`form_frame_from_points`.
    If the diagonal marker (`_D`) is available (and `use_centroid` is True), the origin is replaced by the centroid of
    all four markers to average out marker placement noise.

    Raises
    ------
    DegenerateGeometryError
        If one of the O, X or Y markers is missing or the markers do not define a frame

    """
    names = cluster_marker_names(base)
    points = {}
    for key in ("origin", "x", "y"):
        point = sample.get(names[key])
        if point is None or not np.all(np.isfinite(point)):
            raise DegenerateGeometryError(f"The marker `{names[key]}` is missing or NaN.")
        points[key] = np.asarray(point, dtype=float)
    frame = form_frame_from_points(points["origin"], points["x"], points["y"])

    diagonal = sample.get(names["diagonal"])
    if use_centroid and diagonal is not None and np.all(np.isfinite(diagonal)):
        frame.translation = np.mean([points["origin"], points["x"], points["y"], diagonal], axis=0)
    return frame
