"""Shared helpers of the vendor data readers."""
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation

from imureg.base import BaseDataReader
from imureg.utils.consts import SF_ACC, SF_GYR, SF_MAG
from imureg.utils.datatype_helper import is_orientation_table, orientation_table_from_rotations, sensor_data_table
from imureg.utils.exceptions import ParseError
from imureg.utils.file_io import write_orientations_sto

_SF_COLS = {"acc": SF_ACC, "gyr": SF_GYR, "mag": SF_MAG}


def to_numeric_frame(data: pd.DataFrame, path: Path) -> pd.DataFrame:
    """Convert all columns to float and raise a ParseError pointing to the first malformed value."""
    try:
        return data.apply(pd.to_numeric).astype(float)
    except (ValueError, TypeError) as e:
        raise ParseError(f"The file contains malformed numeric values: {e}", path) from e


def imu_tables_from_columns(
    time: np.ndarray, raw_data: Dict[str, pd.DataFrame], vendor_columns: Dict[str, List[str]]
) -> Tuple[Optional[pd.DataFrame], ...]:
    """Extract the acceleration, angular velocity and magnetic field tables from the raw vendor data.

    Only sensors that provide all three columns of a quantity are part of the respective table.
    If no sensor provides a quantity, None is returned for it.
    """
    tables = []
    for quantity in ("acc", "gyr", "mag"):
        values = {
            sensor: data[vendor_columns[quantity]].to_numpy(dtype=float, copy=True)
            for sensor, data in raw_data.items()
            if all(c in data.columns for c in vendor_columns[quantity])
        }
        tables.append(sensor_data_table(time, values, _SF_COLS[quantity]) if values else None)
    return tuple(tables)


def finalize_reader_results(
    reader: BaseDataReader, time: np.ndarray, rotations: Dict[str, Rotation], output: Optional[Path]
) -> None:
    """Create and validate the orientation table of a reader and write it to `output` if requested."""
    orientations = orientation_table_from_rotations(time, rotations)
    is_orientation_table(orientations, raise_exception=True)
    reader.orientations_ = orientations
    reader.orientations_file_ = None
    if output is not None:
        reader.orientations_file_ = write_orientations_sto(orientations, output, data_rate_hz=reader.data_rate_hz_)
