"""Base classes for all algorithms and the body model interface."""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Type, TypeVar, Union

import numpy as np
import pandas as pd
import tpcp
from scipy.spatial.transform import Rotation

from imureg.utils.datatype_helper import MarkerSample, MarkerTable, OrientationTable
from imureg.utils.frames import RigidTransform

BaseType = TypeVar("BaseType", bound="_BaseSerializable")  # noqa: invalid-name

#: The pose of a model: the transform of each segment in ground
ModelPose = Dict[str, RigidTransform]


def _hint_tuples(item):
    """Encode tuple values for json serialization.

    Modified based on: https://stackoverflow.com/questions/15721363/preserve-python-tuples-with-json
    """
    if isinstance(item, tuple):
        return dict(_obj_type="Tuple", tuple=item)
    if isinstance(item, list):
        return [_hint_tuples(e) for e in item]
    if isinstance(item, dict):
        return {key: _hint_tuples(value) for key, value in item.items()}
    return item


class _CustomEncoder(json.JSONEncoder):
    def encode(self, o: Any) -> str:
        return super().encode(_hint_tuples(o))

    def default(self, o):  # noqa: method-hidden
        if isinstance(o, _BaseSerializable):
            return o._to_json_dict()
        if isinstance(o, Rotation):
            return dict(_obj_type="Rotation", quat=o.as_quat().tolist())
        if isinstance(o, RigidTransform):
            return dict(
                _obj_type="RigidTransform", quat=o.rotation.as_quat().tolist(), translation=o.translation.tolist()
            )
        if isinstance(o, np.generic):
            return o.item()
        if isinstance(o, np.ndarray):
            return dict(_obj_type="Array", array=o.tolist())
        if isinstance(o, pd.DataFrame):
            return dict(_obj_type="DataFrame", df=o.to_json(orient="split"))
        if isinstance(o, pd.Series):
            return dict(_obj_type="Series", df=o.to_json(orient="split"))
        # Let the base class default method raise the TypeError
        return super().default(o)


def _custom_deserialize(json_obj):  # noqa: too-many-return-statements
    if "_imureg_obj" in json_obj:
        return _BaseSerializable._find_subclass(json_obj["_imureg_obj"])._from_json_dict(json_obj)
    if "_obj_type" in json_obj:
        if json_obj["_obj_type"] == "Rotation":
            return Rotation.from_quat(json_obj["quat"])
        if json_obj["_obj_type"] == "RigidTransform":
            return RigidTransform(Rotation.from_quat(json_obj["quat"]), json_obj["translation"])
        if json_obj["_obj_type"] == "Array":
            return np.array(json_obj["array"])
        if json_obj["_obj_type"] in ["Series", "DataFrame"]:
            typ = "series" if json_obj["_obj_type"] == "Series" else "frame"
            return pd.read_json(json_obj["df"], orient="split", typ=typ)
        if json_obj["_obj_type"] == "Tuple":
            return tuple(json_obj["tuple"])
        raise ValueError("Unknown object type found in serialization!")

    return json_obj


class _BaseSerializable(tpcp.BaseTpcpObject):
    @classmethod
    def _get_subclasses(cls: Type[BaseType]):
        for subclass in cls.__subclasses__():
            yield from subclass._get_subclasses()
            yield subclass

    @classmethod
    def _find_subclass(cls: Type[BaseType], name: str) -> Type[BaseType]:
        for subclass in _BaseSerializable._get_subclasses():
            if subclass.__name__ == name:
                return subclass
        raise ValueError("No algorithm class with name {} exists".format(name))

    @classmethod
    def _from_json_dict(cls: Type[BaseType], json_dict: Dict) -> BaseType:
        params = json_dict["params"]
        input_data = {k: params[k] for k in tpcp.get_param_names(cls) if k in params}
        instance = cls(**input_data)
        return instance

    def _to_json_dict(self) -> Dict[str, Any]:
        json_dict: Dict[str, Union[str, Dict[str, Any]]] = {
            "_imureg_obj": self.__class__.__name__,
            "params": self.get_params(deep=False),
        }
        return json_dict

    def to_json(self) -> str:
        """Export the current object parameters as json.

        You can use the `from_json` method of any imureg object to load the object again.
        For the data readers, this json representation is the settings file.

        .. warning:: This will only export the Parameters of the instance, but **not** any results!

        """
        final_dict = self._to_json_dict()
        return json.dumps(final_dict, indent=4, cls=_CustomEncoder)

    @classmethod
    def from_json(cls: Type[BaseType], json_str: str) -> BaseType:
        """Import an imureg object from its json representation.

        You can use the `to_json` method of a class to export it as a compatible json string.

        Parameters
        ----------
        json_str
            json formatted string

        """
        instance = json.loads(json_str, object_hook=_custom_deserialize)
        if not isinstance(instance, cls):
            raise ValueError(f"The json string does not describe a `{cls.__name__}` but a `{type(instance).__name__}`.")
        return instance

    def to_json_file(self, path: Union[str, Path]) -> Path:
        """Write the json representation of the object to a file (existing files are overwritten)."""
        path = Path(path)
        path.write_text(self.to_json(), encoding="utf-8")
        return path

    @classmethod
    def from_json_file(cls: Type[BaseType], path: Union[str, Path]) -> BaseType:
        """Load an object from a json file written by `to_json_file`."""
        return cls.from_json(Path(path).read_text(encoding="utf-8"))


class BaseAlgorithm(tpcp.Algorithm, _BaseSerializable):
    """Base class for all algorithms.

    All type-specific algorithm classes should inherit from this class and need to

    1. overwrite `_action_methods` with the name of the actual action method of this class type
    2. implement a stub for the action method

    """


class BaseDataReader(BaseAlgorithm):
    """Base class for all vendor data readers."""

    _action_methods = ("read",)

    orientations_: OrientationTable

    def read(self: BaseType, source: Union[str, Path], **kwargs) -> BaseType:
        """Read the orientations (and raw sensor data) from a vendor specific source."""
        raise NotImplementedError("Needs to be implemented by child class.")


class BaseHeadingCorrection(BaseAlgorithm):
    """Base class for all heading correction algorithms."""

    _action_methods = ("correct",)

    corrected_orientations_: OrientationTable

    def correct(self: BaseType, orientations: OrientationTable, **kwargs) -> BaseType:
        """Correct the global heading of all orientations."""
        raise NotImplementedError("Needs to be implemented by child class.")


class BaseRegistration(BaseAlgorithm):
    """Base class for algorithms that register IMU frames onto a model based on marker data."""

    _action_methods = ("register",)

    registered_model_: "BaseBodyModel"

    def register(self: BaseType, model: "BaseBodyModel", markers: MarkerTable, **kwargs) -> BaseType:
        """Attach IMU frames to the segments of a (copy of the) model."""
        raise NotImplementedError("Needs to be implemented by child class.")


class BaseCalibration(BaseAlgorithm):
    """Base class for algorithms that calibrate the IMU frames of a model based on orientation data."""

    _action_methods = ("calibrate",)

    calibrated_model_: "BaseBodyModel"

    def calibrate(self: BaseType, model: "BaseBodyModel", orientations: OrientationTable, **kwargs) -> BaseType:
        """Calibrate the declared IMU frames of a (copy of the) model."""
        raise NotImplementedError("Needs to be implemented by child class.")


class BaseBodyModel(_BaseSerializable):
    """Interface of the rigid body model the registration and calibration algorithms work with.

    The algorithms only depend on this narrow interface.
    A model can be posed based on marker data (`assemble`), provides the transforms of its segments in ground for a
    given pose, and owns the offset frames that are attached to its segments.
    Algorithms never modify the model that is passed to them, but work on a clone.
    """

    name: str

    @property
    def segment_names(self) -> Tuple[str, ...]:
        """The names of all segments of the model."""
        raise NotImplementedError("Needs to be implemented by child class.")

    @property
    def sensor_frames(self) -> Dict[str, str]:
        """The declared IMU frames of the model mapped to the segment they are attached to."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def iter_markers(self) -> Iterator[Tuple[str, str]]:
        """Iterate over all model markers as `(marker_name, segment_name)` in model order."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def get_marker_parent(self, marker: str) -> Optional[str]:
        """Get the segment a model marker is attached to (None if the model does not have this marker)."""
        for name, segment in self.iter_markers():
            if name == marker:
                return segment
        return None

    def default_pose(self) -> ModelPose:
        """Get the default (calibration) pose of the model."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def assemble(self, marker_sample: MarkerSample) -> ModelPose:
        """Find the pose of the model that best matches the provided marker positions."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def get_transform_in_ground(self, segment: str, pose: Optional[ModelPose] = None) -> RigidTransform:
        """Get the transform of a segment in ground for the given pose (default pose if None)."""
        pose = self.default_pose() if pose is None else pose
        try:
            return pose[segment]
        except KeyError as e:
            raise ValueError(f"The model `{self.name}` has no segment `{segment}`.") from e

    def set_default_pose(self, pose: ModelPose) -> None:
        """Store a pose as the default pose of the model."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def get_offset_frame(self, frame_name: str) -> Optional[Tuple[str, RigidTransform]]:
        """Get the parent segment and the transform of an attached offset frame (None if it does not exist)."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def add_offset_frame(self, segment: str, frame_name: str, transform: RigidTransform) -> None:
        """Attach an offset frame to a segment, replacing an existing frame with the same name."""
        raise NotImplementedError("Needs to be implemented by child class.")

    def declare_sensor(self, frame_name: str, segment: str) -> None:
        """Declare a frame as IMU frame of a segment, so that it is updated during calibration."""
        raise NotImplementedError("Needs to be implemented by child class.")
