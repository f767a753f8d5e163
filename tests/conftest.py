import random
from typing import Any, Dict

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_equal
from pandas._testing import assert_frame_equal, assert_series_equal
from scipy.spatial.transform import Rotation
from tpcp import BaseTpcpObject

from imureg.models import RigidBodyModel
from imureg.utils.consts import MARKER_COLS, TIME_INDEX
from imureg.utils.datatype_helper import orientation_table_from_rotations
from imureg.utils.frames import RigidTransform

#: Calibration marker cluster on the hand (coincides with the hand frame) and on the torso (rotated)
HAND_CLUSTER = {
    "lhand_IMU_O": [0.0, 0.0, 0.0],
    "lhand_IMU_X": [1.0, 0.0, 0.0],
    "lhand_IMU_Y": [0.0, 1.0, 0.0],
    "lhand_IMU_D": [1.0, 1.0, 0.0],
}
TORSO_CLUSTER = {
    "torso_IMU_O": [0.0, 0.0, 0.0],
    "torso_IMU_X": [0.0, 0.0, 1.0],
    "torso_IMU_Y": [1.0, 0.0, 0.0],
}
TORSO_POSITION = np.array([0.0, 1.0, 0.0])


@pytest.fixture(autouse=True)
def reset_random_seed():
    np.random.seed(10)
    random.seed(10)


def create_marker_table(positions: Dict[str, Any], time=None) -> pd.DataFrame:
    """Create a marker table from `{marker: (n, 3) or (3,) positions}` in dict order."""
    positions = {k: np.atleast_2d(np.asarray(v, dtype=float)) for k, v in positions.items()}
    n_samples = len(next(iter(positions.values())))
    time = np.arange(n_samples) / 100.0 if time is None else np.asarray(time, dtype=float)
    columns = pd.MultiIndex.from_product([list(positions), MARKER_COLS], names=["marker", "axis"])
    data = np.hstack(list(positions.values()))
    return pd.DataFrame(data, columns=columns, index=pd.Index(time, name=TIME_INDEX))


def create_arm_model(**kwargs) -> RigidBodyModel:
    markers = {name: ("hand", np.array(pos)) for name, pos in HAND_CLUSTER.items()}
    markers.update({name: ("torso", np.array(pos)) for name, pos in TORSO_CLUSTER.items()})
    params = dict(
        name="arm",
        segments={"hand": RigidTransform(), "torso": RigidTransform(translation=TORSO_POSITION)},
        markers=markers,
    )
    params.update(kwargs)
    return RigidBodyModel(**params)


@pytest.fixture()
def arm_model() -> RigidBodyModel:
    return create_arm_model()


def calibration_positions() -> Dict[str, np.ndarray]:
    """Marker positions of the arm model in its default pose and one unrelated marker."""
    positions = {name: np.array(pos) for name, pos in HAND_CLUSTER.items()}
    positions["C7"] = np.array([0.0, 1.5, 0.0])
    positions.update({name: np.array(pos) + TORSO_POSITION for name, pos in TORSO_CLUSTER.items()})
    return positions


@pytest.fixture()
def calibration_markers() -> pd.DataFrame:
    """A static trial with the arm model in its default pose."""
    return create_marker_table(calibration_positions())


@pytest.fixture()
def random_orientations() -> pd.DataFrame:
    """Three sensors with random orientations at 10 samples."""
    time = np.arange(10) / 50.0
    rng = np.random.default_rng(42)
    sensors = ["pelvis_imu", "lhand_imu", "torso_imu"]
    return orientation_table_from_rotations(
        time, {sensor: Rotation.from_quat(rng.normal(size=(10, 4))) for sensor in sensors}
    )


def _get_params_without_nested_class(instance: BaseTpcpObject) -> Dict[str, Any]:
    return {k: v for k, v in instance.get_params().items() if not hasattr(v, "get_params")}


def compare_algo_objects(a, b):
    parameters = _get_params_without_nested_class(a)
    b_parameters = _get_params_without_nested_class(b)

    assert set(parameters.keys()) == set(b_parameters.keys())

    for p, value in parameters.items():
        json_val = b_parameters[p]
        compare_val(value, json_val, p)


def compare_val(value, json_val, name):
    if isinstance(value, BaseTpcpObject):
        compare_algo_objects(value, json_val)
    elif isinstance(value, np.ndarray):
        assert_array_equal(value, json_val)
    elif isinstance(value, (tuple, list)):
        assert len(value) == len(json_val)
        for i, (v, j) in enumerate(zip(value, json_val)):
            compare_val(v, j, f"{name}_{i}")
    elif isinstance(value, dict):
        assert set(value.keys()) == set(json_val.keys()), name
        for k, v in value.items():
            compare_val(v, json_val[k], f"{name}_{k}")
    elif isinstance(value, Rotation):
        assert_array_equal(value.as_quat(), json_val.as_quat())
    elif isinstance(value, RigidTransform):
        assert value == json_val, name
    elif isinstance(value, pd.DataFrame):
        assert_frame_equal(value, json_val, check_dtype=False)
    elif isinstance(value, pd.Series):
        assert_series_equal(value, json_val)
    else:
        assert value == json_val, name
