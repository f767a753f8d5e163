"""This tests the BaseAlgorithm, the json serialization and the body model interface."""
from inspect import Parameter, signature
from typing import Any, Dict, Tuple

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal
from scipy.spatial.transform import Rotation
from tpcp import get_action_methods_names, get_action_params, get_results, is_action_applied

from imureg.base import BaseAlgorithm, BaseBodyModel
from imureg.data_readers import XsensDataReader
from imureg.heading_correction import HeadingCorrection
from imureg.models import RigidBodyModel
from imureg.registration import OrientationBasedCalibration
from imureg.utils.frames import RigidTransform
from tests.conftest import compare_algo_objects


def _init_getter():
    def _fake_init(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)

    return _fake_init


def create_test_class(action_method_name, params=None, **_) -> BaseAlgorithm:
    params = params or {}

    class_dict = {"_action_methods": action_method_name, "__init__": _init_getter()}
    test_class = type("TestClass", (BaseAlgorithm,), class_dict)

    # Set the signature to conform to the expected conventions
    sig = signature(test_class.__init__)
    sig = sig.replace(parameters=(Parameter(k, Parameter.KEYWORD_ONLY) for k in params.keys()))
    test_class.__init__.__signature__ = sig

    return test_class(**params)


@pytest.fixture(
    params=[
        dict(action_method_name="read", attributes={"orientations_": "test1"}, params={}, other_params={}),
        dict(
            action_method_name="correct",
            attributes={"attr1_": "test1", "attr2_": "test2"},
            params={"para1": "test1", "para2": "test2"},
            other_params={"orientations": "other_test1"},
        ),
    ]
)
def example_test_class_after_action(request) -> Tuple[BaseAlgorithm, Dict[str, Any]]:
    test_instance = create_test_class(**request.param)
    for k, v in {**request.param["attributes"], **request.param["other_params"]}.items():
        setattr(test_instance, k, v)
    return test_instance, request.param


class TestBaseAlgorithm:
    """Test that the algorithm base class exposes results and action parameters following the conventions."""

    def test_get_action_method_name(self, example_test_class_after_action):
        instance, test_parameters = example_test_class_after_action

        assert get_action_methods_names(instance)[0] == test_parameters["action_method_name"]

    def test_get_attributes(self, example_test_class_after_action):
        instance, test_parameters = example_test_class_after_action

        assert get_results(instance) == test_parameters["attributes"]

    def test_get_parameter(self, example_test_class_after_action):
        instance, test_parameters = example_test_class_after_action

        assert instance.get_params() == test_parameters["params"]

    def test_get_other_parameter(self, example_test_class_after_action):
        instance, test_parameters = example_test_class_after_action

        assert get_action_params(instance) == test_parameters["other_params"]

    def test_action_is_applied(self, example_test_class_after_action):
        instance, _ = example_test_class_after_action

        assert is_action_applied(instance) is True
        assert is_action_applied(instance.clone()) is False


class TestJsonSerialization:
    """Test the json export and import of imureg objects."""

    def test_tuple_and_none_params_survive(self):
        calibration = OrientationBasedCalibration(base_sensor="pelvis_imu", sensor_to_model_rotation=(-90.0, 0.0, 0.0))

        loaded = OrientationBasedCalibration.from_json(calibration.to_json())

        assert loaded.sensor_to_model_rotation == (-90.0, 0.0, 0.0)
        assert isinstance(loaded.sensor_to_model_rotation, tuple)
        compare_algo_objects(calibration, loaded)

    def test_dict_params_survive(self):
        reader = XsensDataReader(trial_prefix="MT_0120", sensor_mapping={"00B421AF": "pelvis_imu"}, sampling_rate_hz=40)

        loaded = XsensDataReader.from_json(reader.to_json())

        compare_algo_objects(reader, loaded)

    def test_wrong_class_raises(self):
        json_str = HeadingCorrection().to_json()

        with pytest.raises(ValueError, match="does not describe a `XsensDataReader`"):
            XsensDataReader.from_json(json_str)

    def test_unknown_class_raises(self):
        json_str = HeadingCorrection().to_json().replace("HeadingCorrection", "NotAnAlgorithm")

        with pytest.raises(ValueError, match="NotAnAlgorithm"):
            HeadingCorrection.from_json(json_str)

    def test_model_with_transforms(self):
        model = RigidBodyModel(
            name="test",
            segments={"a": RigidTransform(Rotation.from_euler("z", 30, degrees=True), [1.0, 2.0, 3.0])},
            markers={"m1": ("a", np.array([0.1, 0.2, 0.3]))},
            offset_frames={"a_imu": ("a", RigidTransform(translation=[0.0, 0.1, 0.0]))},
        )

        loaded = BaseBodyModel.from_json(model.to_json())

        assert isinstance(loaded, RigidBodyModel)
        assert loaded.segments["a"] == model.segments["a"]
        assert loaded.offset_frames["a_imu"][0] == "a"
        assert loaded.offset_frames["a_imu"][1] == model.offset_frames["a_imu"][1]
        assert_array_almost_equal(loaded.markers["m1"][1], [0.1, 0.2, 0.3])

    def test_json_file_roundtrip(self, tmp_path, arm_model):
        path = arm_model.to_json_file(tmp_path / "arm.json")

        loaded = RigidBodyModel.from_json_file(path)

        assert path == tmp_path / "arm.json"
        assert loaded.name == "arm"
        assert loaded.segment_names == arm_model.segment_names
        assert loaded.segments["torso"] == arm_model.segments["torso"]


class TestBodyModelInterface:
    """Test the default implementations of the body model interface."""

    def test_marker_parent(self, arm_model):
        assert arm_model.get_marker_parent("lhand_IMU_O") == "hand"
        assert arm_model.get_marker_parent("torso_IMU_Y") == "torso"
        assert arm_model.get_marker_parent("C7") is None

    def test_transform_in_ground_default_pose(self, arm_model):
        assert_array_almost_equal(arm_model.get_transform_in_ground("torso").translation, [0, 1, 0])

    def test_transform_in_ground_custom_pose(self, arm_model):
        pose = {"hand": RigidTransform(translation=[1.0, 0, 0])}
        assert_array_almost_equal(arm_model.get_transform_in_ground("hand", pose).translation, [1, 0, 0])

    def test_transform_in_ground_unknown_segment(self, arm_model):
        with pytest.raises(ValueError, match="has no segment `foot`"):
            arm_model.get_transform_in_ground("foot")

    def test_interface_not_implemented(self):
        class EmptyModel(BaseBodyModel):
            def __init__(self, name: str = "empty"):
                self.name = name

        with pytest.raises(NotImplementedError):
            EmptyModel().assemble({})
        with pytest.raises(NotImplementedError):
            _ = EmptyModel().sensor_frames
