"""Align the global heading of all sensors with the forward direction of the model based on a base sensor."""
import warnings
from typing import Optional, TypeVar

import numpy as np
from numpy.linalg import norm
from scipy.spatial.transform import Rotation

from imureg.base import BaseHeadingCorrection
from imureg.utils._types import _AxisName
from imureg.utils.consts import HEADING_PROJECTION_TOLERANCE
from imureg.utils.datatype_helper import OrientationTable, get_sensor_names, get_sensor_rotations, is_orientation_table
from imureg.utils.exceptions import AmbiguousHeadingError, MissingBaseSensorError, UncorrectedHeadingWarning
from imureg.utils.rotations import find_signed_3d_angle, rotate_orientation_table, rotation_from_angle
from imureg.utils.vector_math import axis_vector, project_onto_plane

Self = TypeVar("Self", bound="HeadingCorrection")


def _validate_axes(heading_axis: str, vertical_axis: str, forward_axis: str) -> None:
    for name, value in (("heading", heading_axis), ("vertical", vertical_axis), ("forward", forward_axis)):
        if str(value).lower() not in ("x", "y", "z"):
            raise ValueError(f"Invalid {name} axis `{value}`! Axis must be one of x, y or z.")
    if vertical_axis.lower() == forward_axis.lower():
        raise ValueError(
            "Invalid combination of vertical and forward axis! Axes must be perpendicular to each other!"
        )


def compute_heading_correction(
    base_orientation: Rotation,
    heading_axis: _AxisName = "z",
    vertical_axis: _AxisName = "y",
    forward_axis: _AxisName = "x",
) -> float:
    """Calculate the rotation angle around the vertical axis that aligns the heading of a sensor with forward.

    The heading of the sensor is defined by one of its local axes (`heading_axis`).
    This axis is expressed in the ground frame using the sensor orientation and projected onto the horizontal plane
    (the plane perpendicular to `vertical_axis`).
    The signed angle from the forward axis of the ground to this projection is the heading of the sensor.
    The returned correction is the negated heading, i.e. rotating the sensor orientation by this angle around the
    vertical axis of the ground aligns the projected heading axis with the forward direction.

    Parameters
    ----------
    base_orientation
        A single rotation describing the orientation of the base sensor in the ground frame at the calibration instant
    heading_axis
        The local axis of the base sensor that defines its heading ("x", "y" or "z")
    vertical_axis
        The vertical axis of the ground frame
    forward_axis
        The forward axis of the ground frame

    Returns
    -------
    correction_angle
        The correction angle in rad between -pi and pi (right-hand-rule around the vertical axis)

    Raises
    ------
    AmbiguousHeadingError
        If the heading axis of the sensor is (almost) vertical and its horizontal projection is shorter than
        :obj:`HEADING_PROJECTION_TOLERANCE <imureg.utils.consts.HEADING_PROJECTION_TOLERANCE>`

    Examples
    --------
    A sensor aligned with a y-up ground has its z-axis pointing sideways and needs to be turned by 90 deg around y

    >>> base = Rotation.identity()
    >>> round(np.rad2deg(compute_heading_correction(base, "z", vertical_axis="y", forward_axis="x")), 3)
    90.0

    """
    _validate_axes(heading_axis, vertical_axis, forward_axis)
    if len(np.atleast_2d(base_orientation.as_quat())) != 1:
        raise ValueError("The heading correction can only be computed from a single base orientation.")
    vertical = axis_vector(vertical_axis)
    forward = axis_vector(forward_axis)

    heading_in_ground = np.squeeze(base_orientation.apply(axis_vector(heading_axis)))
    heading_projection = project_onto_plane(heading_in_ground, vertical)
    if norm(heading_projection) < HEADING_PROJECTION_TOLERANCE:
        raise AmbiguousHeadingError(
            f"The {heading_axis}-axis of the base sensor is (almost) parallel to the vertical {vertical_axis}-axis "
            f"(horizontal component: {norm(heading_projection):.2e}). "
            "It can not be used to define the heading. Choose a different heading axis."
        )
    heading_angle = find_signed_3d_angle(forward, heading_projection, vertical)
    return -float(heading_angle)


def apply_heading_correction(
    table: OrientationTable, correction_angle: float, vertical_axis: _AxisName = "y"
) -> OrientationTable:
    """Rotate all orientations of a table around the vertical axis of the ground frame.

    Parameters
    ----------
    table
        A valid orientation table
    correction_angle
        The rotation angle in rad, usually calculated by :func:`compute_heading_correction`
    vertical_axis
        The vertical axis of the ground frame

    Returns
    -------
    corrected table
        A copy of the table, where every orientation `R` is replaced by `R_heading * R`

    """
    return rotate_orientation_table(table, rotation_from_angle(axis_vector(vertical_axis), correction_angle))


class HeadingCorrection(BaseHeadingCorrection):
    """Remove the global heading offset between the sensor world frame and the ground frame of a model.

    IMUs report their orientation relative to a world frame, whose heading (rotation around the vertical) is arbitrary
    (e.g. defined by magnetic north).
    To use the orientations with a model, the heading of one designated base sensor (usually the sensor on the pelvis)
    at the calibration instant (`sample_index`) is aligned with the forward direction of the model.
    The same correction is applied to all sensors, so that their relative headings stay unchanged.

    If no base sensor is specified, no correction is applied and a
    :class:`~imureg.utils.exceptions.UncorrectedHeadingWarning` is emitted, as the orientations are then assumed to be
    already aligned with the model.

    Parameters
    ----------
    base_sensor
        The label of the base sensor in the orientation table.
        If None, the correction is skipped.
    heading_axis
        The local axis of the base sensor that points forward when the subject is in the calibration pose.
    vertical_axis
        The vertical axis of the ground frame
    forward_axis
        The forward axis of the ground frame
    sample_index
        The row of the orientation table that holds the calibration instant.
        The heading of the base sensor in this row is aligned with the forward axis.

    Attributes
    ----------
    corrected_orientations_
        A copy of the orientation table with all orientations rotated by the correction
    correction_angle_
        The applied rotation angle around the vertical axis in rad (0 if no correction was applied)
    rotation_
        The applied correction as :class:`~scipy.spatial.transform.Rotation` (None if no correction was applied)

    Other Parameters
    ----------------
    orientations
        The orientation table passed to the `correct` method.

    Examples
    --------
    >>> hc = HeadingCorrection(base_sensor="pelvis_imu", heading_axis="z")
    >>> hc = hc.correct(orientations)
    >>> hc.corrected_orientations_
    <copy of the orientations with the pelvis_imu z-axis pointing forward>

    See Also
    --------
    imureg.heading_correction.compute_heading_correction: The underlying calculation of the correction angle

    """

    correction_angle_: float
    rotation_: Optional[Rotation]

    orientations: OrientationTable

    def __init__(
        self,
        base_sensor: Optional[str] = None,
        heading_axis: _AxisName = "z",
        vertical_axis: _AxisName = "y",
        forward_axis: _AxisName = "x",
        sample_index: int = 0,
    ):
        self.base_sensor = base_sensor
        self.heading_axis = heading_axis
        self.vertical_axis = vertical_axis
        self.forward_axis = forward_axis
        self.sample_index = sample_index
        super().__init__()

    def correct(self: Self, orientations: OrientationTable, **_) -> Self:
        """Correct the heading of all sensors in the orientation table."""
        self.orientations = orientations
        is_orientation_table(orientations, raise_exception=True)

        if self.base_sensor is None:
            warnings.warn(
                "No base sensor was provided. "
                "No heading correction is applied and the sensor orientations are assumed to be aligned with the "
                "heading of the model.",
                UncorrectedHeadingWarning,
            )
            self.correction_angle_ = 0.0
            self.rotation_ = None
            self.corrected_orientations_ = orientations.copy()
            return self

        if self.base_sensor not in get_sensor_names(orientations):
            raise MissingBaseSensorError(
                f"The base sensor `{self.base_sensor}` is not part of the orientation table. "
                f"Available sensors are: {get_sensor_names(orientations)}"
            )
        base_orientation = get_sensor_rotations(orientations, self.base_sensor)[self.sample_index]
        self.correction_angle_ = compute_heading_correction(
            base_orientation, self.heading_axis, self.vertical_axis, self.forward_axis
        )
        self.rotation_ = rotation_from_angle(axis_vector(self.vertical_axis), self.correction_angle_)
        self.corrected_orientations_ = apply_heading_correction(
            orientations, self.correction_angle_, self.vertical_axis
        )
        return self
