"""Common constants used in the library."""

#: The default names of the Orientation columns of a single sensor (scalar-last, like scipy)
GF_ORI = ["q_x", "q_y", "q_z", "q_w"]
#: The order of quaternion components in files and vendor exports (scalar-first)
QUAT_FILE_ORDER = ["q_w", "q_x", "q_y", "q_z"]
#: The index name of all time indexed tables
TIME_INDEX = "time"

#: The default names of the position columns of a single marker
MARKER_COLS = ["x", "y", "z"]

#: The default names of the Gyroscope columns in the sensor frame
SF_GYR = ["gyr_x", "gyr_y", "gyr_z"]
#: The default names of the Accelerometer columns in the sensor frame
SF_ACC = ["acc_x", "acc_y", "acc_z"]
#: The default names of the Magnetometer columns in the sensor frame
SF_MAG = ["mag_x", "mag_y", "mag_z"]

#: Unit vectors of the named coordinate axes
AXIS_VECTORS = {
    "x": (1.0, 0.0, 0.0),
    "y": (0.0, 1.0, 0.0),
    "z": (0.0, 0.0, 1.0),
}

#: Marker label suffix identifying markers placed on an IMU (or its mounting plate)
IMU_MARKER_SUFFIX = "_IMU"
#: Suffixes of the origin, x-direction, y-direction and diagonal markers of an IMU cluster
IMU_CLUSTER_SUFFIXES = {"origin": "_O", "x": "_X", "y": "_Y", "diagonal": "_D"}
#: Name suffix of offset frames representing an IMU on a segment
IMU_FRAME_SUFFIX = "_imu"

#: Allowed deviation of the norm of a quaternion from 1
QUATERNION_NORM_TOLERANCE = 1e-3
#: Difference vectors shorter than this (in model length units) can not define a frame axis
DEGENERATE_LENGTH_TOLERANCE = 1e-8
#: Horizontal projections of a heading axis shorter than this make the heading ambiguous
HEADING_PROJECTION_TOLERANCE = 1e-3

#: Conversion factors from marker file units to metres
LENGTH_UNIT_FACTORS = {"m": 1.0, "cm": 0.01, "mm": 0.001}
