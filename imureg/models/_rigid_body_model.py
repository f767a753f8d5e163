"""A minimal json-serializable rigid body model."""
import warnings
from typing import Dict, Iterator, Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from imureg.base import BaseBodyModel, ModelPose
from imureg.utils.consts import DEGENERATE_LENGTH_TOLERANCE
from imureg.utils.datatype_helper import MarkerSample
from imureg.utils.exceptions import RegistrationWarning
from imureg.utils.frames import RigidTransform


class RigidBodyModel(BaseBodyModel):
    """A set of independent rigid segments with markers and IMU offset frames.

    Each segment has a default transform in ground (the calibration pose of the model).
    Markers and offset frames are rigidly attached to exactly one segment.
    There are no joints: :meth:`assemble` fits every segment independently to its markers.
    This is sufficient to pose a model for the registration of IMU frames, but it is no replacement for a multibody
    inverse kinematics solver.

    Parameters
    ----------
    name
        The name of the model.
        Used to name output files.
    segments
        The default transform in ground of each segment (segment name -> :class:`~imureg.utils.frames.RigidTransform`).
    markers
        The model markers in model order (marker name -> (segment name, position in the segment frame)).
    sensors
        The declared IMU frames (frame name -> segment name).
        A declared IMU frame does not need to exist as offset frame yet.
    offset_frames
        Frames attached to the segments (frame name -> (segment name, transform of the frame in the segment)).
    min_assembly_markers
        The minimal number of observed markers required to fit the pose of a segment during :meth:`assemble`.
        Segments with less markers keep their default pose.

    Examples
    --------
    >>> model = RigidBodyModel(
    ...     name="arm",
    ...     segments={"humerus": RigidTransform(translation=[0, 1.4, 0])},
    ...     markers={"lhand_IMU_O": ("humerus", np.array([0.0, -0.2, 0.05]))},
    ...     sensors={"humerus_imu": "humerus"},
    ... )
    >>> model.to_json_file("arm.json")  # doctest: +SKIP

    """

    def __init__(
        self,
        name: str = "model",
        segments: Optional[Dict[str, RigidTransform]] = None,
        markers: Optional[Dict[str, Tuple[str, np.ndarray]]] = None,
        sensors: Optional[Dict[str, str]] = None,
        offset_frames: Optional[Dict[str, Tuple[str, RigidTransform]]] = None,
        min_assembly_markers: int = 3,
    ):
        self.name = name
        self.segments = segments
        self.markers = markers
        self.sensors = sensors
        self.offset_frames = offset_frames
        self.min_assembly_markers = min_assembly_markers

    @property
    def segment_names(self) -> Tuple[str, ...]:
        return tuple(self.segments or {})

    @property
    def sensor_frames(self) -> Dict[str, str]:
        return dict(self.sensors or {})

    def iter_markers(self) -> Iterator[Tuple[str, str]]:
        for marker, (segment, _) in (self.markers or {}).items():
            yield marker, segment

    def default_pose(self) -> ModelPose:
        return dict(self.segments or {})

    def _check_segment(self, segment: str) -> None:
        if segment not in self.segment_names:
            raise ValueError(f"The model `{self.name}` has no segment `{segment}`.")

    def assemble(self, marker_sample: MarkerSample) -> ModelPose:
        """Fit the transform of every segment to the observed positions of its markers.

        The optimal rotation is found using :meth:`scipy.spatial.transform.Rotation.align_vectors` on the centered
        marker positions.
        Segments without markers keep their default pose.
        Segments with markers, but less than `min_assembly_markers` finite, non collinear observations keep their
        default pose and a :class:`~imureg.utils.exceptions.RegistrationWarning` is emitted.
        """
        pose = self.default_pose()
        for segment in self.segment_names:
            model_points = []
            observed_points = []
            for marker, (parent, position) in (self.markers or {}).items():
                if parent != segment:
                    continue
                observed = marker_sample.get(marker)
                if observed is None or not np.all(np.isfinite(observed)):
                    continue
                model_points.append(np.asarray(position, dtype=float))
                observed_points.append(np.asarray(observed, dtype=float))
            has_markers = any(parent == segment for _, parent in self.iter_markers())
            if not has_markers:
                continue
            if len(model_points) < self.min_assembly_markers:
                warnings.warn(
                    f"Only {len(model_points)} markers of segment `{segment}` were observed. "
                    "The segment keeps its default pose.",
                    RegistrationWarning,
                )
                continue
            model_points = np.array(model_points)
            observed_points = np.array(observed_points)
            model_centered = model_points - model_points.mean(axis=0)
            observed_centered = observed_points - observed_points.mean(axis=0)
            if np.linalg.matrix_rank(model_centered, tol=DEGENERATE_LENGTH_TOLERANCE) < 2:
                warnings.warn(
                    f"The markers of segment `{segment}` are collinear. The segment keeps its default pose.",
                    RegistrationWarning,
                )
                continue
            rotation, _ = Rotation.align_vectors(observed_centered, model_centered)
            translation = observed_points.mean(axis=0) - rotation.apply(model_points.mean(axis=0))
            pose[segment] = RigidTransform(rotation, translation)
        return pose

    def set_default_pose(self, pose: ModelPose) -> None:
        unknown = [s for s in pose if s not in self.segment_names]
        if unknown:
            raise ValueError(f"The pose contains segments that are not part of the model `{self.name}`: {unknown}")
        self.segments = {segment: pose.get(segment, transform) for segment, transform in (self.segments or {}).items()}

    def get_offset_frame(self, frame_name: str) -> Optional[Tuple[str, RigidTransform]]:
        return (self.offset_frames or {}).get(frame_name)

    def add_offset_frame(self, segment: str, frame_name: str, transform: RigidTransform) -> None:
        self._check_segment(segment)
        if self.offset_frames is None:
            self.offset_frames = {}
        self.offset_frames[frame_name] = (segment, transform)

    def declare_sensor(self, frame_name: str, segment: str) -> None:
        self._check_segment(segment)
        if self.sensors is None:
            self.sensors = {}
        self.sensors[frame_name] = segment
