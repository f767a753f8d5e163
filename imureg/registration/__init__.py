"""Register IMU frames onto a body model and calibrate them from orientation data.

The module provides the algorithms as tpcp objects and file based functions that mirror the command line interface.
"""
from imureg.registration._marker_orientations import (
    create_orientations_file_from_markers,
    create_orientations_from_markers,
)
from imureg.registration._marker_registration import (
    MarkerBasedImuRegistration,
    add_imu_frames_from_markers,
    imu_frame_name,
)
from imureg.registration._orientation_calibration import (
    OrientationBasedCalibration,
    calibrate_model_from_orientations,
)

__all__ = [
    "MarkerBasedImuRegistration",
    "OrientationBasedCalibration",
    "add_imu_frames_from_markers",
    "calibrate_model_from_orientations",
    "create_orientations_from_markers",
    "create_orientations_file_from_markers",
    "imu_frame_name",
]
