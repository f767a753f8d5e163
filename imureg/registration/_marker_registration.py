"""Register IMU frames onto the segments of a model based on marker clusters placed on the IMUs."""
import warnings
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, TypeVar, Union

from imureg.base import BaseBodyModel, BaseRegistration, ModelPose
from imureg.utils.consts import IMU_FRAME_SUFFIX, IMU_MARKER_SUFFIX
from imureg.utils.datatype_helper import MarkerTable, get_marker_names, get_marker_sample, is_marker_table
from imureg.utils.exceptions import DegenerateGeometryError, RegistrationWarning
from imureg.utils.file_io import read_marker_file
from imureg.utils.frames import RigidTransform, frame_from_marker_cluster

Self = TypeVar("Self", bound="MarkerBasedImuRegistration")


def imu_frame_name(base: str) -> str:
    """Get the name of the offset frame representing the IMU of the marker cluster `<base>_IMU`."""
    return base.lower() + IMU_FRAME_SUFFIX


class MarkerBasedImuRegistration(BaseRegistration):
    """Attach an IMU frame to every segment of a model that carries an IMU marker cluster.

    Each IMU (or its mounting plate) is expected to carry a cluster of markers labeled `<base>_IMU_O` (origin),
    `<base>_IMU_X` (along the x-axis of the IMU), `<base>_IMU_Y` (in the x-y plane) and optionally `<base>_IMU_D`
    (diagonal).
    The markers of each cluster must be part of the model, so that the segment carrying the IMU is known.

    The model is first assembled to the marker sample at `sample_index`.
    Then the marker labels are scanned in file order.
    For every cluster, the frame of the cluster in ground is formed (see
    :func:`~imureg.utils.frames.frame_from_marker_cluster`) and converted into the frame of the segment
    (`X_FB = X_BG^-1 * X_FG`).
    Only the first usable cluster of every segment is used.
    After the scan, the assembled pose becomes the default pose of the model and all found frames are attached as
    offset frames named `<base in lower case>_imu` and declared as sensors of their segment.
    Existing frames with the same name are replaced, so that running the registration on its own output results in
    the same model.

    Clusters that can not be used (markers missing from the model, missing or NaN positions, collinear markers) are
    skipped with a :class:`~imureg.utils.exceptions.RegistrationWarning`.

    Parameters
    ----------
    sample_index
        The row of the marker table that is used as calibration pose
    use_centroid
        If True, the origin of clusters with a diagonal marker is placed at the centroid of all four markers

    Attributes
    ----------
    registered_model_
        A copy of the input model with the assembled default pose and the attached IMU frames
    imu_frames_
        The registered frames (frame name -> (segment name, transform of the frame in the segment))
    pose_
        The assembled pose of the model

    Other Parameters
    ----------------
    model
        The model passed to the `register` method
    markers
        The marker table passed to the `register` method

    """

    imu_frames_: Dict[str, Tuple[str, RigidTransform]]
    pose_: ModelPose

    model: BaseBodyModel
    markers: MarkerTable

    def __init__(self, sample_index: int = 0, use_centroid: bool = True):
        self.sample_index = sample_index
        self.use_centroid = use_centroid
        super().__init__()

    def register(self: Self, model: BaseBodyModel, markers: MarkerTable, **_) -> Self:
        """Register the IMU frames of all marker clusters onto a copy of the model."""
        self.model = model
        self.markers = markers
        is_marker_table(markers, raise_exception=True)

        registered = model.clone()
        sample = get_marker_sample(markers, self.sample_index)
        pose = registered.assemble(sample)

        claimed_segments: Set[str] = set()
        visited_bases: Set[str] = set()
        pending: List[Tuple[str, str, RigidTransform]] = []
        for label in get_marker_names(markers):
            ix = label.find(IMU_MARKER_SUFFIX)
            if ix <= 0:
                continue
            base = label[:ix]
            if base in visited_bases:
                continue
            visited_bases.add(base)

            segment = registered.get_marker_parent(label)
            if segment is None:
                warnings.warn(
                    f"The marker `{label}` is not part of the model `{registered.name}`. "
                    f"The IMU cluster `{base}{IMU_MARKER_SUFFIX}` is skipped.",
                    RegistrationWarning,
                )
                continue
            if segment in claimed_segments:
                continue
            try:
                frame_in_ground = frame_from_marker_cluster(sample, base, use_centroid=self.use_centroid)
            except DegenerateGeometryError as e:
                warnings.warn(
                    f"The IMU cluster `{base}{IMU_MARKER_SUFFIX}` on segment `{segment}` can not form a frame and is "
                    f"skipped: {e}",
                    RegistrationWarning,
                )
                continue
            segment_in_ground = registered.get_transform_in_ground(segment, pose)
            pending.append((segment, imu_frame_name(base), segment_in_ground.inv() * frame_in_ground))
            claimed_segments.add(segment)

        if len(pending) == 0:
            warnings.warn("No usable IMU marker cluster was found. No IMU frame was registered.", RegistrationWarning)

        registered.set_default_pose(pose)
        for segment, frame_name, transform in pending:
            registered.add_offset_frame(segment, frame_name, transform)
            registered.declare_sensor(frame_name, segment)

        self.imu_frames_ = {frame_name: (segment, transform) for segment, frame_name, transform in pending}
        self.pose_ = pose
        self.registered_model_ = registered
        return self


def add_imu_frames_from_markers(
    model_file: Union[str, Path], marker_file: Union[str, Path], output_dir: Optional[Union[str, Path]] = None
) -> Path:
    """Register IMU frames onto a model file based on a static marker trial and write the result.

    The registered model is renamed to `<model name>_<marker file stem>_IMUs` and written as `<new name>.json`.

    Parameters
    ----------
    model_file
        A model stored with :meth:`~imureg.base.BaseBodyModel.to_json_file`
    marker_file
        A `.trc` or `.csv` marker trial, whose first sample is the calibration pose
    output_dir
        The directory of the output file.
        If None, the directory of the model file is used.

    Returns
    -------
    path
        The path of the written model

    """
    model_file = Path(model_file)
    marker_file = Path(marker_file)
    model = BaseBodyModel.from_json_file(model_file)
    markers = read_marker_file(marker_file)

    registered = MarkerBasedImuRegistration().register(model, markers).registered_model_
    registered = registered.set_params(name=f"{model.name}_{marker_file.stem}_IMUs")

    output_dir = model_file.parent if output_dir is None else Path(output_dir)
    return registered.to_json_file(output_dir / f"{registered.name}.json")
