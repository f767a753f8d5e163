"""A couple of helper functions that ease the use of the typical imureg data formats.

Orientation tables
    A :class:`pandas.DataFrame` indexed by time (in s, index name `time`) with a two level MultiIndex as columns.
    The first level is the sensor label, the second level the quaternion components
    :obj:`GF_ORI <imureg.utils.consts.GF_ORI>` (scalar last).
Marker tables
    A :class:`pandas.DataFrame` indexed by time with a two level MultiIndex as columns.
    The first level is the marker label (in file order), the second level
    :obj:`MARKER_COLS <imureg.utils.consts.MARKER_COLS>`.
"""
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation

from imureg.utils._datatype_validation_helper import (
    _assert_has_multindex_cols,
    _assert_is_dtype,
    _assert_not_empty,
    _assert_strictly_increasing_index,
    _assert_sub_columns_per_group,
)
from imureg.utils.consts import GF_ORI, MARKER_COLS, QUATERNION_NORM_TOLERANCE, TIME_INDEX
from imureg.utils.exceptions import ValidationError

OrientationTable = pd.DataFrame
MarkerTable = pd.DataFrame
MarkerSample = Dict[str, np.ndarray]


def get_sensor_names(table: OrientationTable) -> List[str]:
    """Get the sensor labels of an orientation table in column order."""
    return list(table.columns.unique(level=0))


def get_marker_names(markers: MarkerTable) -> List[str]:
    """Get the marker labels of a marker table in column (file) order."""
    return list(markers.columns.unique(level=0))


def is_orientation_table(table: OrientationTable, raise_exception: bool = False) -> bool:
    """Check if an object is a valid orientation table following all conventions.

    A valid orientation table is:

    - a :class:`pandas.DataFrame` with at least one row
    - has a two level MultiIndex as columns, where the first level is the sensor name and the second level contains
      all columns listed in :obj:`GF_ORI <imureg.utils.consts.GF_ORI>` for every sensor
    - has a strictly increasing time index
    - only contains quaternions with a norm of 1 (within
      :obj:`QUATERNION_NORM_TOLERANCE <imureg.utils.consts.QUATERNION_NORM_TOLERANCE>`)

    Parameters
    ----------
    table
        Object that should be checked
    raise_exception
        If True an exception is raised if the object does not pass the validation.
        If False, the function will return simply True or False.

    """
    try:
        _assert_is_dtype(table, pd.DataFrame)
        _assert_has_multindex_cols(table, nlevels=2, expected=True)
        _assert_not_empty(table)
        _assert_sub_columns_per_group(table, GF_ORI)
        _assert_strictly_increasing_index(table)
        for sensor in get_sensor_names(table):
            quats = table[sensor][GF_ORI].to_numpy(dtype=float, copy=True)
            norms = np.linalg.norm(quats, axis=1)
            invalid = ~(np.abs(norms - 1) <= QUATERNION_NORM_TOLERANCE)
            if np.any(invalid):
                row = int(np.argmax(invalid))
                raise ValidationError(
                    f"The quaternion of sensor `{sensor}` at time {table.index[row]} has a norm of {norms[row]}. "
                    f"All quaternions are expected to have unit norm (tolerance {QUATERNION_NORM_TOLERANCE})."
                )
    except ValidationError as e:
        if raise_exception is True:
            raise ValidationError(
                "The passed object does not seem to be an OrientationTable. "
                f"The validation failed with the following error:\n\n{str(e)}"
            ) from e
        return False
    return True


def is_marker_table(markers: MarkerTable, raise_exception: bool = False) -> bool:
    """Check if an object is a valid marker table.

    A valid marker table is a :class:`pandas.DataFrame` with at least one row, a strictly increasing time index and a
    two level MultiIndex as columns, where every marker has the columns
    :obj:`MARKER_COLS <imureg.utils.consts.MARKER_COLS>`.
    Marker positions might be NaN (missing markers).

    Parameters
    ----------
    markers
        Object that should be checked
    raise_exception
        If True an exception is raised if the object does not pass the validation.
        If False, the function will return simply True or False.

    """
    try:
        _assert_is_dtype(markers, pd.DataFrame)
        _assert_has_multindex_cols(markers, nlevels=2, expected=True)
        _assert_not_empty(markers)
        _assert_sub_columns_per_group(markers, MARKER_COLS)
        _assert_strictly_increasing_index(markers)
    except ValidationError as e:
        if raise_exception is True:
            raise ValidationError(
                "The passed object does not seem to be a MarkerTable. "
                f"The validation failed with the following error:\n\n{str(e)}"
            ) from e
        return False
    return True


def orientation_table_from_quaternions(time: Sequence[float], quaternions: Dict[str, np.ndarray]) -> OrientationTable:
    """Create an orientation table from one (n, 4) array of scalar-last quaternions per sensor.

    The quaternions are taken as they are (no normalization).
    Use :func:`is_orientation_table` to validate the result.

    Parameters
    ----------
    time
        The time stamps in seconds
    quaternions
        A dictionary mapping sensor labels to arrays with as many quaternions as time stamps.
        The order of the dictionary defines the column order of the table.

    """
    return sensor_data_table(time, quaternions, GF_ORI)


def sensor_data_table(time: Sequence[float], data: Dict[str, np.ndarray], columns: Sequence[str]) -> pd.DataFrame:
    """Create a time indexed multi-sensor table from one (n, len(columns)) array per sensor.

    Parameters
    ----------
    time
        The time stamps in seconds
    data
        A dictionary mapping sensor labels to arrays with as many rows as time stamps.
        The order of the dictionary defines the column order of the table.
    columns
        The component names used as second column level for every sensor

    """
    time = np.asarray(time, dtype=float)
    if len(data) == 0:
        raise ValueError("At least one sensor is required to create a sensor table.")
    parts = {}
    for sensor, values in data.items():
        values = np.atleast_2d(np.asarray(values, dtype=float))
        if len(values) != len(time):
            raise ValueError(
                f"The number of samples of sensor `{sensor}` ({len(values)}) does not match the number of time "
                f"stamps ({len(time)})."
            )
        parts[sensor] = pd.DataFrame(values, columns=list(columns), index=pd.Index(time, name=TIME_INDEX))
    table = pd.concat(parts, axis=1, names=["sensor", "component"])
    table.index.name = TIME_INDEX
    return table


def orientation_table_from_rotations(time: Sequence[float], rotations: Dict[str, Rotation]) -> OrientationTable:
    """Create an orientation table from one multi-rotation object per sensor.

    Parameters
    ----------
    time
        The time stamps in seconds
    rotations
        A dictionary mapping sensor labels to rotation objects with as many rotations as time stamps.
        The order of the dictionary defines the column order of the table.

    """
    return orientation_table_from_quaternions(time, {sensor: rot.as_quat() for sensor, rot in rotations.items()})


def get_sensor_rotations(table: OrientationTable, sensor: str) -> Rotation:
    """Get all orientations of one sensor as a single rotation object."""
    return Rotation.from_quat(table[sensor][GF_ORI].to_numpy(dtype=float, copy=True))


def get_orientation_row(table: OrientationTable, index: int = 0) -> Dict[str, Rotation]:
    """Get the orientations of all sensors at a single row of the table."""
    row = table.iloc[index]
    return {
        sensor: Rotation.from_quat(row[sensor][GF_ORI].to_numpy(dtype=float, copy=True))
        for sensor in get_sensor_names(table)
    }


def get_marker_sample(
    markers: MarkerTable, index: int = 0, marker_names: Optional[Sequence[str]] = None
) -> MarkerSample:
    """Get the positions of all (or the selected) markers at a single row of a marker table.

    The order of the returned dictionary follows the column order of the table.
    Missing markers are represented by NaN positions.
    """
    row = markers.iloc[index]
    names = get_marker_names(markers) if marker_names is None else marker_names
    return {name: row[name][MARKER_COLS].to_numpy(dtype=float, copy=True) for name in names}
