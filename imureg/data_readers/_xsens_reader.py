"""Reader for Xsens (MT Manager) ascii exports with one file per sensor."""
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, TypeVar, Union

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation

from imureg.base import BaseDataReader
from imureg.data_readers._utils import finalize_reader_results, imu_tables_from_columns, to_numeric_frame
from imureg.utils.consts import GF_ORI, QUAT_FILE_ORDER
from imureg.utils.exceptions import EmptySourceError, FormatError, ParseError

Self = TypeVar("Self", bound="XsensDataReader")

_HEADER_PREFIX = "//"
_UPDATE_RATE_PATTERN = re.compile(r"Update Rate:\s*([0-9]*\.?[0-9]+)\s*Hz", re.IGNORECASE)
_QUAT_COLS = ["Quat_q0", "Quat_q1", "Quat_q2", "Quat_q3"]
_MAT_COLS = [[f"Mat[{i}][{j}]" for j in range(1, 4)] for i in range(1, 4)]
_EULER_COLS = ["Roll", "Pitch", "Yaw"]
_IMU_COLS = {
    "acc": ["Acc_X", "Acc_Y", "Acc_Z"],
    "gyr": ["Gyr_X", "Gyr_Y", "Gyr_Z"],
    "mag": ["Mag_X", "Mag_Y", "Mag_Z"],
}


def _read_xsens_file(path: Path, delimiter: str) -> Tuple[pd.DataFrame, Optional[float]]:
    with path.open(encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()
    header = [line for line in lines if line.startswith(_HEADER_PREFIX)]
    body = [line for line in lines if line.strip() and not line.startswith(_HEADER_PREFIX)]
    if len(body) == 0:
        raise FormatError("The sensor file has no column labels", path)

    rate = None
    for line in header:
        match = _UPDATE_RATE_PATTERN.search(line)
        if match:
            rate = float(match.group(1))
            break

    labels = [label.strip() for label in body[0].split(delimiter)]
    rows = [[cell.strip() for cell in line.split(delimiter)] for line in body[1:]]
    if len(rows) == 0:
        raise EmptySourceError("The sensor file does not contain any samples", path)
    n_cols = len(labels)
    # Exporters add a trailing delimiter to every data row
    rows = [row[:n_cols] + [""] * (n_cols - len(row)) for row in rows]
    data = pd.DataFrame(rows, columns=labels).replace("", np.nan)
    data = data.loc[:, [label for label in labels if label]]
    return to_numeric_frame(data, path), rate


def _orientations_from_xsens_columns(data: pd.DataFrame, path: Path) -> Rotation:
    try:
        if all(c in data.columns for c in _QUAT_COLS):
            quats = data[_QUAT_COLS].to_numpy(dtype=float, copy=True)
            # scalar-first -> scalar-last
            quats = quats[:, [QUAT_FILE_ORDER.index(c) for c in GF_ORI]]
            return Rotation.from_quat(quats)
        if all(c in data.columns for row in _MAT_COLS for c in row):
            matrices = np.stack([data[row].to_numpy(dtype=float, copy=True) for row in _MAT_COLS], axis=1)
            return Rotation.from_matrix(matrices)
        if all(c in data.columns for c in _EULER_COLS):
            roll, pitch, yaw = (data[c].to_numpy(dtype=float, copy=True) for c in _EULER_COLS)
            return Rotation.from_euler("ZYX", np.column_stack([yaw, pitch, roll]), degrees=True)
    except ValueError as e:
        raise ParseError(f"The orientation data of the sensor file is invalid: {e}", path) from e
    raise FormatError(
        "The sensor file does not contain orientation data. "
        f"Expected the columns {_QUAT_COLS}, the rotation matrix columns `Mat[i][j]` or {_EULER_COLS}",
        path,
    )


class XsensDataReader(BaseDataReader):
    """Read the orientations of all sensors of a trial exported by the Xsens MT Manager.

    The export consists of one tab separated file per sensor named `<trial_prefix>_<sensor><file_extension>` inside a
    single directory.
    Header lines start with `//`.
    The sampling rate is taken from the `// Update Rate: <f>Hz` header line (falling back to `sampling_rate_hz`).
    The orientation is read from the quaternion columns (`Quat_q0` - `Quat_q3`, scalar first), the rotation matrix
    columns (`Mat[i][j]`), or the euler angles (`Roll`, `Pitch`, `Yaw` in degrees), whatever is available first.

    The parameters of the reader are the settings of the import.
    Use :meth:`to_json_file` and :meth:`from_json_file` to store and load them.

    Parameters
    ----------
    trial_prefix
        The common file name prefix of all sensor files of the trial
    sensor_mapping
        Maps the sensor name in the file names (experiment label) to the sensor name that should be used in the output
        table (usually the name of the IMU frame in the model).
        Only the mapped sensors are read.
        If None, all sensor files of the trial found in the directory are read under their experiment label.
    sampling_rate_hz
        The sampling rate used if the files do not contain an update rate
    file_extension
        The extension of the sensor files
    delimiter
        The column delimiter of the sensor files

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
        The directory passed to the `read` method

    Examples
    --------
    >>> reader = XsensDataReader(trial_prefix="MT_012005D6", sensor_mapping={"00B421AF": "pelvis_imu"})
    >>> reader = reader.read("path/to/export", write_orientations=True)
    >>> reader.orientations_file_
    PosixPath('path/to/export/MT_012005D6_orientations.sto')

    """

    accelerations_: Optional[pd.DataFrame]
    angular_velocities_: Optional[pd.DataFrame]
    magnetic_headings_: Optional[pd.DataFrame]
    data_rate_hz_: float
    orientations_file_: Optional[Path]

    source: Path

    def __init__(
        self,
        trial_prefix: str = "",
        sensor_mapping: Optional[Dict[str, str]] = None,
        sampling_rate_hz: Optional[float] = None,
        file_extension: str = ".txt",
        delimiter: str = "\t",
    ):
        self.trial_prefix = trial_prefix
        self.sensor_mapping = sensor_mapping
        self.sampling_rate_hz = sampling_rate_hz
        self.file_extension = file_extension
        self.delimiter = delimiter
        super().__init__()

    @property
    def _file_prefix(self) -> str:
        return f"{self.trial_prefix}_" if self.trial_prefix else ""

    def _find_sensor_files(self, directory: Path) -> Dict[str, Path]:
        if self.sensor_mapping is not None:
            files = {}
            for experiment_label in self.sensor_mapping:
                path = directory / f"{self._file_prefix}{experiment_label}{self.file_extension}"
                if not path.is_file():
                    raise FormatError(f"No file found for the sensor `{experiment_label}`", path)
                files[experiment_label] = path
            return files
        files = {}
        for path in sorted(directory.glob(f"{self._file_prefix}*{self.file_extension}")):
            label = path.name[len(self._file_prefix) : len(path.name) - len(self.file_extension)]
            if label:
                files[label] = path
        if len(files) == 0:
            raise FormatError(
                f"No sensor files matching `{self._file_prefix}<sensor>{self.file_extension}` found", directory
            )
        return files

    def read(self: Self, source: Union[str, Path], write_orientations: bool = False, **_) -> Self:
        """Read all sensor files of the trial in a directory.

        Parameters
        ----------
        source
            The directory containing the sensor files
        write_orientations
            If True, the orientation table is written to `<trial_prefix>_orientations.sto` inside the directory

        """
        self.source = Path(source)
        if not self.source.is_dir():
            raise FormatError("The Xsens data source must be a directory", self.source)

        files = self._find_sensor_files(self.source)
        rotations: Dict[str, Rotation] = {}
        raw_data: Dict[str, pd.DataFrame] = {}
        rates: List[float] = []
        n_samples = None
        for experiment_label, path in files.items():
            data, rate = _read_xsens_file(path, self.delimiter)
            if n_samples is not None and len(data) != n_samples:
                raise FormatError(
                    f"All sensor files must have the same number of samples ({n_samples}), but the file of sensor "
                    f"`{experiment_label}` has {len(data)}",
                    path,
                )
            n_samples = len(data)
            if rate is not None:
                rates.append(rate)
            label = experiment_label if self.sensor_mapping is None else self.sensor_mapping[experiment_label]
            rotations[label] = _orientations_from_xsens_columns(data, path)
            raw_data[label] = data

        if rates:
            data_rate = rates[0]
        elif self.sampling_rate_hz is not None:
            data_rate = float(self.sampling_rate_hz)
        else:
            raise FormatError(
                "The sensor files do not specify an update rate and no `sampling_rate_hz` was provided", self.source
            )
        self.data_rate_hz_ = data_rate
        time = np.arange(n_samples) / data_rate

        self.accelerations_, self.angular_velocities_, self.magnetic_headings_ = imu_tables_from_columns(
            time, raw_data, _IMU_COLS
        )
        output = None
        if write_orientations:
            output = self.source / f"{self._file_prefix}orientations.sto"
        finalize_reader_results(self, time, rotations, output)
        return self
