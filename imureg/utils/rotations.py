"""A set of util functions that ease handling rotations.

All util functions use :class:`scipy.spatial.transform.Rotation` to represent rotations.
"""
from typing import Dict, Sequence, Union

import numpy as np
from scipy.spatial.transform import Rotation

from imureg.utils.consts import GF_ORI
from imureg.utils.datatype_helper import OrientationTable, get_sensor_names, is_orientation_table
from imureg.utils.vector_math import normalize


def rotation_from_angle(axis: np.ndarray, angle: Union[float, np.ndarray]) -> Rotation:
    """Create a rotation based on a rotation axis and a angle.

    Parameters
    ----------
    axis : array with shape (3,) or (n, 3)
        normalized rotation axis ([x, y ,z]) or array of rotation axis
    angle : float or array with shape (n,)
        rotation angle or array of angeles in rad

    Returns
    -------
    rotation(s) : Rotation object with len n

    Examples
    --------
    Single rotation: 180 deg rotation around the x-axis

    >>> rot = rotation_from_angle(np.array([1, 0, 0]), np.deg2rad(180))
    >>> rot.as_quat().round(decimals=3)
    array([1., 0., 0., 0.])

    """
    angle = np.atleast_2d(angle)
    axis = np.atleast_2d(axis)
    return Rotation.from_rotvec(np.squeeze(axis * angle.T))


def rotation_from_euler_degrees(angles: Sequence[float], seq: str = "xyz") -> Rotation:
    """Create a rotation from a sequence of (extrinsic) euler angles in degrees."""
    angles = np.asarray(angles, dtype=float)
    if angles.shape != (len(seq),):
        raise ValueError(f"Expected {len(seq)} euler angles for the sequence `{seq}`, but got {angles.tolist()}.")
    return Rotation.from_euler(seq, angles, degrees=True)


def find_signed_3d_angle(v1: np.ndarray, v2: np.ndarray, rotation_axis: np.ndarray) -> Union[float, np.ndarray]:
    """Find the signed angle (in rad) between two 3D vectors.

    Signed means that the angle varies between -180 and 180 deg (or rather -pi and pi)
    This implementation uses acrtan2 to calculate the angle.

    Parameters
    ----------
    v1
        2D or 3D vector or series of vectors
    v2
        2D or 3D vector or series of vectors
    rotation_axis
        Axis the rotation is performed around. The direction of this axis also indicates the sign of the angle

    """
    v1 = normalize(v1)
    v2 = normalize(v2)

    single = False
    if v1.ndim == 1:
        single = True

    v1 = np.atleast_2d(v1)
    v2 = np.broadcast_to(v2, v1.shape)
    # If on of the vectors is a 2D vector instead of a 3D vector, add a 0 as z-value
    if v1.shape[-1] == 2:
        v1 = np.pad(v1, ((0, 0), (0, 1)), mode="constant", constant_values=0)
    if v2.shape[-1] == 2:
        v2 = np.pad(v2, ((0, 0), (0, 1)), mode="constant", constant_values=0)

    rotation_axis = normalize(rotation_axis)

    angle = np.arctan2(np.sum(np.cross(v1, v2) * rotation_axis, axis=-1), np.sum(v1 * v2, axis=-1))
    if single:
        return float(angle[0])
    return angle


def rotate_orientation_table(
    table: OrientationTable, rotation: Union[Rotation, Dict[str, Rotation]]
) -> OrientationTable:
    """Express all orientations of a table in a rotated reference (world) frame.

    Every orientation `R` of the table is replaced by `rotation * R`.
    This means the rotation is applied in the world frame and not in the local sensor frame.

    Parameters
    ----------
    table
        A valid orientation table
    rotation
        In case a single rotation object is passed, it will be applied to all sensors of the table.
        If a dictionary of rotations is passed, the respective rotations will be matched to the sensors based on the
        dict keys.
        If no rotation is provided for a sensor, it will not be modified.

    Returns
    -------
    rotated table
        This will always be a copy. The original dataframe will not be modified.

    """
    is_orientation_table(table, raise_exception=True)
    rotation_dict = rotation
    if not isinstance(rotation_dict, dict):
        rotation_dict = {k: rotation for k in get_sensor_names(table)}

    rotated_table = table.copy()
    for sensor, rot in rotation_dict.items():
        if sensor not in rotated_table.columns.unique(level=0):
            raise ValueError(f"The sensor `{sensor}` is not part of the orientation table.")
        original = Rotation.from_quat(table[sensor][GF_ORI].to_numpy(dtype=float, copy=True))
        rotated_table.loc[:, [(sensor, c) for c in GF_ORI]] = (rot * original).as_quat()
    return rotated_table
