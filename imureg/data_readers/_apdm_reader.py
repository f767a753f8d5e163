"""Reader for APDM (Opal) csv exports with all sensors in a single file."""
import re
from pathlib import Path
from typing import Dict, Optional, TypeVar, Union

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation

from imureg.base import BaseDataReader
from imureg.data_readers._utils import finalize_reader_results, imu_tables_from_columns, to_numeric_frame
from imureg.utils.exceptions import EmptySourceError, FormatError, ParseError

Self = TypeVar("Self", bound="APDMDataReader")

# `<sensor>/Orientation/Scalar` (current exports) or `<sensor> Orientation Scalar` (legacy exports)
_COLUMN_PATTERN = re.compile(
    r"^(?P<sensor>.+?)[/ ](?P<quantity>Orientation|Accelerometer|Gyroscope|Magnetometer)"
    r"[/ ](?P<component>Scalar|X|Y|Z)$"
)
_ORI_COMPONENTS = ["X", "Y", "Z", "Scalar"]
_IMU_COLS = {
    "acc": ["Accelerometer/X", "Accelerometer/Y", "Accelerometer/Z"],
    "gyr": ["Gyroscope/X", "Gyroscope/Y", "Gyroscope/Z"],
    "mag": ["Magnetometer/X", "Magnetometer/Y", "Magnetometer/Z"],
}


def _group_sensor_columns(columns) -> Dict[str, Dict[str, str]]:
    """Map `sensor -> {"<quantity>/<component>": column label}` in order of first appearance."""
    groups: Dict[str, Dict[str, str]] = {}
    for column in columns:
        match = _COLUMN_PATTERN.match(str(column).strip())
        if match is None:
            continue
        groups.setdefault(match["sensor"].strip(), {})[f"{match['quantity']}/{match['component']}"] = column
    return groups


class APDMDataReader(BaseDataReader):
    """Read the orientations of all sensors of a trial exported by APDM Motion Studio as csv.

    All sensors are stored in a single wide csv file.
    Every sensor has a group of columns `<sensor>/Orientation/Scalar|X|Y|Z` (legacy exports use
    `<sensor> Orientation Scalar|X|Y|Z`) and optionally the respective `Accelerometer`, `Gyroscope` and `Magnetometer`
    columns.
    The `Time` column of the export contains the device clock and is not used.
    The time index is created from `sampling_rate_hz`.

    Parameters
    ----------
    sensor_mapping
        Maps the sensor name in the column labels (experiment label) to the sensor name that should be used in the
        output table.
        Only the mapped sensors are read.
        If None, all sensors with orientation columns are read under their experiment label.
    sampling_rate_hz
        The sampling rate of the export
    delimiter
        The column delimiter of the csv file

    Attributes
    ----------
    orientations_
        The orientation table of all sensors
    accelerations_
        The acceleration of all sensors that provide it (in the sensor frame) or None
    angular_velocities_
        The angular velocity of all sensors that provide it (in the sensor frame) or None
    magnetic_headings_
        The magnetic field of all sensors that provide it (in the sensor frame) or None
    data_rate_hz_
        The sampling rate of the trial
    orientations_file_
        The path of the written orientation file (None if no file was written)

    Other Parameters
    ----------------
    source
        The csv file passed to the `read` method

    """

    accelerations_: Optional[pd.DataFrame]
    angular_velocities_: Optional[pd.DataFrame]
    magnetic_headings_: Optional[pd.DataFrame]
    data_rate_hz_: float
    orientations_file_: Optional[Path]

    source: Path

    def __init__(
        self,
        sensor_mapping: Optional[Dict[str, str]] = None,
        sampling_rate_hz: float = 128.0,
        delimiter: str = ",",
    ):
        self.sensor_mapping = sensor_mapping
        self.sampling_rate_hz = sampling_rate_hz
        self.delimiter = delimiter
        super().__init__()

    def read(self: Self, source: Union[str, Path], write_orientations: bool = False, **_) -> Self:
        """Read all sensors from an APDM csv export.

        Parameters
        ----------
        source
            The csv file
        write_orientations
            If True, the orientation table is written to `<csv stem>_orientations.sto` next to the csv file

        """
        self.source = Path(source)
        if not self.source.is_file():
            raise FormatError("The file does not exist", self.source)
        try:
            data = pd.read_csv(self.source, sep=self.delimiter)
        except pd.errors.EmptyDataError as e:
            raise EmptySourceError("The csv file is empty", self.source) from e
        except pd.errors.ParserError as e:
            raise FormatError(f"The csv file could not be parsed: {e}", self.source) from e
        if len(data) == 0:
            raise EmptySourceError("The csv file does not contain any samples", self.source)

        groups = {
            sensor: columns
            for sensor, columns in _group_sensor_columns(data.columns).items()
            if all(f"Orientation/{c}" in columns for c in _ORI_COMPONENTS)
        }
        if self.sensor_mapping is not None:
            missing = [s for s in self.sensor_mapping if s not in groups]
            if missing:
                raise FormatError(f"No orientation columns found for the sensors {missing}", self.source)
            groups = {self.sensor_mapping[s]: groups[s] for s in self.sensor_mapping}
        if len(groups) == 0:
            raise FormatError(
                "The csv file does not contain any `<sensor>/Orientation/Scalar|X|Y|Z` column group", self.source
            )

        rotations: Dict[str, Rotation] = {}
        raw_data: Dict[str, pd.DataFrame] = {}
        for sensor, columns in groups.items():
            sensor_data = to_numeric_frame(data[list(columns.values())], self.source)
            sensor_data.columns = list(columns.keys())
            quats = sensor_data[[f"Orientation/{c}" for c in _ORI_COMPONENTS]].to_numpy(dtype=float, copy=True)
            try:
                rotations[sensor] = Rotation.from_quat(quats)
            except ValueError as e:
                raise ParseError(f"The orientation data of sensor `{sensor}` is invalid: {e}", self.source) from e
            raw_data[sensor] = sensor_data

        self.data_rate_hz_ = float(self.sampling_rate_hz)
        time = np.arange(len(data)) / self.data_rate_hz_
        self.accelerations_, self.angular_velocities_, self.magnetic_headings_ = imu_tables_from_columns(
            time, raw_data, _IMU_COLS
        )
        output = None
        if write_orientations:
            output = self.source.with_name(f"{self.source.stem}_orientations.sto")
        finalize_reader_results(self, time, rotations, output)
        return self
