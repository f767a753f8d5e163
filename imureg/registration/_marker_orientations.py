"""Create orientation tables from the IMU marker clusters of a marker trial."""
import warnings
from pathlib import Path
from typing import Dict, Union

import numpy as np
from scipy.spatial.transform import Rotation

from imureg.utils.consts import IMU_MARKER_SUFFIX, MARKER_COLS
from imureg.utils.datatype_helper import (
    MarkerTable,
    OrientationTable,
    get_marker_names,
    is_marker_table,
    orientation_table_from_rotations,
)
from imureg.utils.exceptions import DegenerateGeometryError, RegistrationWarning
from imureg.utils.file_io import read_marker_file, write_orientations_sto
from imureg.utils.frames import cluster_marker_names, find_imu_cluster_bases, form_frame_from_points


def create_orientations_from_markers(markers: MarkerTable) -> OrientationTable:
    """Calculate the orientation of every IMU marker cluster for every sample of a marker trial.

    The orientation of the cluster `<base>_IMU` is stored under the sensor name `<base>_IMU`.
    Clusters with missing markers or a degenerate geometry in any sample are skipped with a
    :class:`~imureg.utils.exceptions.RegistrationWarning`.

    Parameters
    ----------
    markers
        A valid marker table

    Returns
    -------
    orientations
        The orientation table of all usable clusters with the time index of the marker table

    Raises
    ------
    DegenerateGeometryError
        If none of the clusters results in a usable orientation

    """
    is_marker_table(markers, raise_exception=True)
    marker_names = get_marker_names(markers)
    rotations: Dict[str, Rotation] = {}
    for base in find_imu_cluster_bases(marker_names):
        names = cluster_marker_names(base)
        sensor = f"{base}{IMU_MARKER_SUFFIX}"
        if not all(names[key] in marker_names for key in ("origin", "x", "y")):
            warnings.warn(
                f"The IMU cluster `{sensor}` is incomplete (origin, x and y markers are required) and is skipped.",
                RegistrationWarning,
            )
            continue
        points = [markers[names[key]][MARKER_COLS].to_numpy(dtype=float, copy=True) for key in ("origin", "x", "y")]
        try:
            quats = np.array([form_frame_from_points(o, x, y).rotation.as_quat() for o, x, y in zip(*points)])
        except DegenerateGeometryError as e:
            warnings.warn(f"The IMU cluster `{sensor}` does not form a frame in every sample: {e}", RegistrationWarning)
            continue
        rotations[sensor] = Rotation.from_quat(quats)

    if len(rotations) == 0:
        raise DegenerateGeometryError("None of the IMU marker clusters results in a usable orientation.")
    return orientation_table_from_rotations(markers.index.to_numpy(dtype=float), rotations)


def create_orientations_file_from_markers(marker_file: Union[str, Path]) -> Path:
    """Calculate the IMU cluster orientations of a marker trial and write them to `<marker stem>_orientations.sto`.

    The file is placed next to the marker file.
    """
    marker_file = Path(marker_file)
    orientations = create_orientations_from_markers(read_marker_file(marker_file))
    return write_orientations_sto(orientations, marker_file.with_name(f"{marker_file.stem}_orientations.sto"))
