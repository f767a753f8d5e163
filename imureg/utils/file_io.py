"""Read and write the file formats exchanged with the IK and calibration tooling.

Orientation tables are stored as OpenSim-style storage files (`.sto`):
a key-value header closed by `endheader`, followed by a tab separated table with a `time` column and one column per
sensor, where each cell contains the quaternion components as `w,x,y,z`.

Marker trials are read from `.trc` files or from `.csv` files with a two row header (marker label, axis).
"""
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd

from imureg.utils.consts import GF_ORI, LENGTH_UNIT_FACTORS, MARKER_COLS, QUAT_FILE_ORDER, TIME_INDEX
from imureg.utils.datatype_helper import (
    MarkerTable,
    OrientationTable,
    get_sensor_names,
    is_marker_table,
    is_orientation_table,
    orientation_table_from_quaternions,
)
from imureg.utils.exceptions import EmptySourceError, FormatError, ParseError

_PathLike = Union[str, Path]


def _read_lines(path: Path) -> List[str]:
    if not path.is_file():
        raise FormatError("The file does not exist", path)
    with path.open(encoding="utf-8", errors="replace") as f:
        return f.read().splitlines()


def _estimate_data_rate(time: np.ndarray) -> float:
    if len(time) < 2:
        return 0.0
    return float(1 / np.median(np.diff(time)))


def write_orientations_sto(table: OrientationTable, path: _PathLike, data_rate_hz: Optional[float] = None) -> Path:
    """Write an orientation table to an OpenSim-style quaternion storage file.

    Parameters
    ----------
    table
        A valid orientation table
    path
        The output file.
        Existing files are overwritten.
    data_rate_hz
        The sampling rate written into the header.
        If None, it is estimated from the time index.

    Returns
    -------
    path
        The path of the written file

    """
    is_orientation_table(table, raise_exception=True)
    path = Path(path)
    if data_rate_hz is None:
        data_rate_hz = _estimate_data_rate(table.index.to_numpy(dtype=float))

    cells = pd.DataFrame(index=table.index)
    for sensor in get_sensor_names(table):
        components = table[sensor][QUAT_FILE_ORDER].to_numpy(dtype=float)
        cells[sensor] = [",".join(repr(float(v)) for v in row) for row in components]

    header = [
        f"DataRate={data_rate_hz:f}",
        "DataType=Quaternion",
        "version=3",
        "OpenSimVersion=4.1",
        "endheader",
    ]
    with path.open("w", encoding="utf-8", newline="\n") as f:
        f.write("\n".join(header) + "\n")
        cells.to_csv(f, sep="\t", index_label=TIME_INDEX, lineterminator="\n")
    return path


def _parse_sto_header(lines: List[str], path: Path) -> Dict[str, str]:
    header = {}
    for line in lines:
        if line.strip().lower() == "endheader":
            return header
        if "=" in line:
            key, value = line.split("=", 1)
            header[key.strip()] = value.strip()
    raise FormatError("The storage file has no `endheader` line", path)


def read_orientations_sto(path: _PathLike) -> OrientationTable:
    """Read an orientation table from an OpenSim-style quaternion storage file.

    Raises
    ------
    FormatError
        If the file does not exist, has no header or no `time` column, or is not a quaternion file
    ParseError
        If a cell does not contain four numeric quaternion components
    EmptySourceError
        If the file does not contain any sample
    ValidationError
        If the resulting table violates the orientation table invariants (e.g. non increasing time)

    """
    path = Path(path)
    lines = _read_lines(path)
    header = _parse_sto_header(lines, path)
    data_type = header.get("DataType", "Quaternion")
    if data_type != "Quaternion":
        raise FormatError(f"Expected a storage file with `DataType=Quaternion`, but it has `{data_type}`", path)
    header_length = next(i for i, line in enumerate(lines) if line.strip().lower() == "endheader") + 1

    table_lines = [line for line in lines[header_length:] if line.strip()]
    if len(table_lines) == 0:
        raise FormatError("The storage file has no column labels", path)
    labels = table_lines[0].split("\t")
    if labels[0].strip().lower() != TIME_INDEX:
        raise FormatError(f"The first column of a storage file must be `time`, but it is `{labels[0]}`", path)
    sensors = [label.strip() for label in labels[1:]]
    if len(sensors) == 0:
        raise FormatError("The storage file does not contain any sensor columns", path)
    rows = table_lines[1:]
    if len(rows) == 0:
        raise EmptySourceError("The storage file does not contain any samples", path)

    time = np.empty(len(rows))
    quats = {sensor: np.empty((len(rows), 4)) for sensor in sensors}
    for i, row in enumerate(rows):
        cells = row.split("\t")
        if len(cells) != len(labels):
            raise ParseError(f"Row {i} has {len(cells)} columns, but the header has {len(labels)}", path)
        try:
            time[i] = float(cells[0])
            for sensor, cell in zip(sensors, cells[1:]):
                components = [float(c) for c in cell.split(",")]
                if len(components) != 4:
                    raise ValueError(f"expected 4 quaternion components for `{sensor}`, got {len(components)}")
                quats[sensor][i] = components
        except ValueError as e:
            raise ParseError(f"Row {i} could not be parsed: {e}", path) from e

    # File order is scalar first
    reorder = [QUAT_FILE_ORDER.index(c) for c in GF_ORI]
    table = orientation_table_from_quaternions(time, {sensor: q[:, reorder] for sensor, q in quats.items()})
    is_orientation_table(table, raise_exception=True)
    return table


def _to_metres(markers: pd.DataFrame, units: str, path: Path) -> pd.DataFrame:
    try:
        factor = LENGTH_UNIT_FACTORS[units.strip().lower()]
    except KeyError as e:
        raise FormatError(f"Unknown marker units `{units}`. Supported are {list(LENGTH_UNIT_FACTORS)}", path) from e
    return markers * factor


def _to_numeric(df: pd.DataFrame, path: Path) -> pd.DataFrame:
    try:
        return df.apply(pd.to_numeric)
    except (ValueError, TypeError) as e:
        raise ParseError(f"The marker data contains non numeric values: {e}", path) from e


def read_trc(path: _PathLike) -> MarkerTable:
    """Read marker positions from a `.trc` file.

    Marker positions are converted to metres based on the `Units` header field.
    Missing marker positions (empty cells) become NaN.
    """
    path = Path(path)
    lines = _read_lines(path)
    if len(lines) < 5:
        raise FormatError("A trc file needs at least 5 header lines", path)
    meta = dict(zip((k.strip() for k in lines[1].split("\t")), (v.strip() for v in lines[2].split("\t"))))
    marker_names = [name.strip() for name in lines[3].split("\t")[2:] if name.strip()]
    if len(marker_names) == 0:
        raise FormatError("The trc file does not contain any marker labels", path)

    data_lines = [line for line in lines[5:] if line.strip()]
    if len(data_lines) == 0:
        raise EmptySourceError("The trc file does not contain any samples", path)
    rows = []
    n_cols = 2 + 3 * len(marker_names)
    for line in data_lines:
        cells = line.split("\t")
        if len(cells) < n_cols:
            # Trailing missing markers can be dropped by some exporters
            cells = cells + [""] * (n_cols - len(cells))
        rows.append([c.strip() if c.strip() else np.nan for c in cells[:n_cols]])
    raw = _to_numeric(pd.DataFrame(rows), path)

    time = raw.iloc[:, 1].to_numpy(dtype=float)
    columns = pd.MultiIndex.from_product([marker_names, MARKER_COLS], names=["marker", "axis"])
    markers = pd.DataFrame(
        raw.iloc[:, 2:].to_numpy(dtype=float), columns=columns, index=pd.Index(time, name=TIME_INDEX)
    )
    markers = _to_metres(markers, meta.get("Units", "m"), path)
    is_marker_table(markers, raise_exception=True)
    return markers


def read_marker_csv(path: _PathLike, units: str = "m") -> MarkerTable:
    """Read marker positions from a csv file with a two row header (marker label, axis) and a time column."""
    path = Path(path)
    if not path.is_file():
        raise FormatError("The file does not exist", path)
    try:
        markers = pd.read_csv(path, header=[0, 1], index_col=0)
    except pd.errors.EmptyDataError as e:
        raise EmptySourceError("The csv file is empty", path) from e
    except (pd.errors.ParserError, ValueError, IndexError) as e:
        raise FormatError(f"The csv file could not be read as a marker table: {e}", path) from e
    if len(markers) == 0:
        raise EmptySourceError("The csv file does not contain any samples", path)
    markers = _to_numeric(markers, path)
    markers.columns = markers.columns.set_names(["marker", "axis"])
    markers.index = pd.Index(markers.index.to_numpy(dtype=float), name=TIME_INDEX)
    markers = _to_metres(markers, units, path)
    is_marker_table(markers, raise_exception=True)
    return markers


def read_marker_file(path: _PathLike) -> MarkerTable:
    """Read a marker trial from a `.trc` or `.csv` file based on the file extension."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".trc":
        return read_trc(path)
    if suffix == ".csv":
        return read_marker_csv(path)
    raise FormatError(f"Unsupported marker file type `{suffix}`. Supported are `.trc` and `.csv`", path)
