"""Calibrate the IMU frames of a model based on the sensor orientations in the calibration pose."""
import warnings
from pathlib import Path
from typing import Dict, Optional, Tuple, TypeVar, Union

from scipy.spatial.transform import Rotation

from imureg.base import BaseBodyModel, BaseCalibration
from imureg.heading_correction import HeadingCorrection
from imureg.utils._types import _AxisName
from imureg.utils.datatype_helper import (
    OrientationTable,
    get_orientation_row,
    get_sensor_names,
    is_orientation_table,
)
from imureg.utils.exceptions import NoMatchingSensorsError, SensorMismatchWarning
from imureg.utils.file_io import read_orientations_sto
from imureg.utils.frames import RigidTransform
from imureg.utils.rotations import rotate_orientation_table, rotation_from_euler_degrees

Self = TypeVar("Self", bound="OrientationBasedCalibration")


class OrientationBasedCalibration(BaseCalibration):
    """Find the orientation of every IMU relative to its segment from a single sample of sensor orientations.

    The subject is assumed to be in the default pose of the model (the calibration pose) at the calibration sample.
    After an optional fixed rotation of the sensor world frame (`sensor_to_model_rotation`) and the heading correction
    (see :class:`~imureg.heading_correction.HeadingCorrection`), the orientation of each sensor in ground `R_FG` is
    known.
    The orientation of the sensor relative to its segment is then `R_FB = R_BG^-1 * R_FG`, where `R_BG` is the
    orientation of the segment in the default pose.

    Only sensors that are declared by the model and are part of the orientation table are calibrated.
    All other sensors are reported with a :class:`~imureg.utils.exceptions.SensorMismatchWarning`.
    The translation of existing IMU frames is kept.
    Frames that do not exist yet are attached at the origin of their segment.

    Parameters
    ----------
    base_sensor
        The sensor used for the heading correction.
        If None, no heading correction is performed.
    heading_axis
        The axis of the base sensor that points forward in the calibration pose
    vertical_axis
        The vertical axis of the model ground
    forward_axis
        The forward axis of the model ground
    sensor_to_model_rotation
        Extrinsic xyz euler angles in degrees of a fixed rotation applied to all orientations before the heading
        correction.
        E.g. `(-90, 0, 0)` converts orientations relative to a z-up world into a y-up world.
        If None, no rotation is applied.
    sample_index
        The row of the orientation table that is used as calibration sample for the heading correction and the offsets

    Attributes
    ----------
    calibrated_model_
        A copy of the model with the calibrated IMU frames
    sensor_offsets_
        The calibrated orientation of every matched IMU frame relative to its segment
    corrected_orientations_
        The orientation table after the fixed rotation and the heading correction
    heading_correction_
        The applied heading correction algorithm (with its results)

    Other Parameters
    ----------------
    model
        The model passed to the `calibrate` method
    orientations
        The orientation table passed to the `calibrate` method

    """

    sensor_offsets_: Dict[str, Rotation]
    corrected_orientations_: OrientationTable
    heading_correction_: HeadingCorrection

    model: BaseBodyModel
    orientations: OrientationTable

    def __init__(
        self,
        base_sensor: Optional[str] = None,
        heading_axis: _AxisName = "z",
        vertical_axis: _AxisName = "y",
        forward_axis: _AxisName = "x",
        sensor_to_model_rotation: Optional[Tuple[float, float, float]] = None,
        sample_index: int = 0,
    ):
        self.base_sensor = base_sensor
        self.heading_axis = heading_axis
        self.vertical_axis = vertical_axis
        self.forward_axis = forward_axis
        self.sensor_to_model_rotation = sensor_to_model_rotation
        self.sample_index = sample_index
        super().__init__()

    def calibrate(self: Self, model: BaseBodyModel, orientations: OrientationTable, **_) -> Self:
        """Calibrate the declared IMU frames of a copy of the model."""
        self.model = model
        self.orientations = orientations
        is_orientation_table(orientations, raise_exception=True)

        if self.sensor_to_model_rotation is not None:
            orientations = rotate_orientation_table(
                orientations, rotation_from_euler_degrees(self.sensor_to_model_rotation)
            )
        self.heading_correction_ = HeadingCorrection(
            base_sensor=self.base_sensor,
            heading_axis=self.heading_axis,
            vertical_axis=self.vertical_axis,
            forward_axis=self.forward_axis,
            sample_index=self.sample_index,
        ).correct(orientations)
        corrected = self.heading_correction_.corrected_orientations_
        self.corrected_orientations_ = corrected

        declared = model.sensor_frames
        table_sensors = get_sensor_names(corrected)
        for sensor in table_sensors:
            if sensor not in declared:
                warnings.warn(
                    f"The sensor `{sensor}` is not declared by the model `{model.name}` and is ignored.",
                    SensorMismatchWarning,
                )
        for frame_name in declared:
            if frame_name not in table_sensors:
                warnings.warn(
                    f"No orientation data found for the IMU frame `{frame_name}` of the model. "
                    "The frame is not calibrated.",
                    SensorMismatchWarning,
                )
        matched = [frame_name for frame_name in declared if frame_name in table_sensors]
        if len(matched) == 0:
            raise NoMatchingSensorsError(
                f"None of the sensors of the orientation table ({table_sensors}) is declared by the model "
                f"`{model.name}` ({list(declared)})."
            )

        calibrated = model.clone()
        pose = calibrated.default_pose()
        calibration_sample = get_orientation_row(corrected, self.sample_index)
        offsets = {}
        for frame_name in matched:
            segment = declared[frame_name]
            segment_rotation = calibrated.get_transform_in_ground(segment, pose).rotation
            offsets[frame_name] = segment_rotation.inv() * calibration_sample[frame_name]
            existing = calibrated.get_offset_frame(frame_name)
            translation = existing[1].translation if existing is not None else None
            calibrated.add_offset_frame(segment, frame_name, RigidTransform(offsets[frame_name], translation))

        self.sensor_offsets_ = offsets
        self.calibrated_model_ = calibrated
        return self


def calibrate_model_from_orientations(
    model_file: Union[str, Path],
    orientations_file: Union[str, Path],
    base_sensor: Optional[str] = None,
    heading_axis: Optional[_AxisName] = None,
    output_file: Optional[Union[str, Path]] = None,
    sensor_to_model_rotation: Optional[Tuple[float, float, float]] = None,
) -> Path:
    """Calibrate the IMU frames of a model file with the first sample of an orientation file and write the result.

    Parameters
    ----------
    model_file
        A model stored with :meth:`~imureg.base.BaseBodyModel.to_json_file`, whose default pose is the calibration pose
    orientations_file
        An orientation `.sto` file (e.g. written by one of the data readers)
    base_sensor
        The sensor used for the heading correction.
        If None, no heading correction is performed.
    heading_axis
        The axis of the base sensor that points forward in the calibration pose.
        If None, the z-axis is used.
    output_file
        The path of the calibrated model.
        If None, the model is written to `calibrated_<model name>.json` next to the model file.
    sensor_to_model_rotation
        See :class:`OrientationBasedCalibration`

    Returns
    -------
    path
        The path of the written model

    Raises
    ------
    NoMatchingSensorsError
        If no sensor of the orientation file is declared by the model.
        No file is written in this case.

    """
    model_file = Path(model_file)
    model = BaseBodyModel.from_json_file(model_file)
    orientations = read_orientations_sto(orientations_file)

    calibration = OrientationBasedCalibration(
        base_sensor=base_sensor,
        heading_axis="z" if heading_axis is None else heading_axis,
        sensor_to_model_rotation=sensor_to_model_rotation,
    )
    calibrated = calibration.calibrate(model, orientations).calibrated_model_

    output_file = model_file.parent / f"calibrated_{model.name}.json" if output_file is None else Path(output_file)
    return calibrated.to_json_file(output_file)
