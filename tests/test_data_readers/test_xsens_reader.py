from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal
from pandas._testing import assert_frame_equal
from scipy.spatial.transform import Rotation

from imureg.base import BaseType
from imureg.data_readers import XsensDataReader
from imureg.utils.consts import SF_ACC
from imureg.utils.datatype_helper import get_sensor_names, get_sensor_rotations
from imureg.utils.exceptions import EmptySourceError, FormatError, ParseError
from imureg.utils.file_io import read_orientations_sto
from tests.mixins.test_algorithm_mixin import TestAlgorithmMixin

Z_90_QUAT_WXYZ = [np.cos(np.pi / 4), 0, 0, np.sin(np.pi / 4)]


def write_xsens_file(
    path: Path, columns: Dict[str, List[float]], update_rate: Optional[float] = 40.0, trailing_tab: bool = True
) -> Path:
    """Write a sensor file in the layout of the MT Manager ascii export."""
    lines = ["// General information:", "//  MT Manager version: 4.6.0"]
    if update_rate is not None:
        lines.append(f"// Update Rate: {update_rate}Hz")
    lines.append("// Filter Profile: human (46.1)")
    end = "\t" if trailing_tab else ""
    labels = ["PacketCounter"] + list(columns)
    lines.append("\t".join(labels) + end)
    n_samples = len(next(iter(columns.values())))
    for i in range(n_samples):
        lines.append("\t".join([str(i)] + [str(v[i]) for v in columns.values()]) + end)
    path.write_text("\n".join(lines) + "\n")
    return path


def quat_columns(quats_wxyz, n_samples: int = 3) -> Dict[str, List[float]]:
    return {f"Quat_q{i}": [quats_wxyz[i]] * n_samples for i in range(4)}


@pytest.fixture()
def xsens_trial(tmp_path) -> Path:
    acc = {"Acc_X": [0.1, 0.2, 0.3], "Acc_Y": [0.0, 0.0, 0.0], "Acc_Z": [9.81, 9.81, 9.81]}
    write_xsens_file(tmp_path / "MT_01_00B421AF.txt", {**acc, **quat_columns([1, 0, 0, 0])})
    write_xsens_file(tmp_path / "MT_01_00B421B0.txt", quat_columns(Z_90_QUAT_WXYZ))
    return tmp_path


class MetaTestConfig:
    algorithm_class = XsensDataReader

    @pytest.fixture()
    def after_action_instance(self, xsens_trial) -> BaseType:
        return XsensDataReader(trial_prefix="MT_01").read(xsens_trial)


class TestMetaFunctionality(MetaTestConfig, TestAlgorithmMixin):
    __test__ = True


class TestXsensDataReader:
    """Test reading of Xsens exports."""

    def test_read_all_sensors(self, xsens_trial):
        reader = XsensDataReader(trial_prefix="MT_01").read(xsens_trial)

        assert get_sensor_names(reader.orientations_) == ["00B421AF", "00B421B0"]
        assert reader.data_rate_hz_ == 40.0
        assert_array_almost_equal(reader.orientations_.index, [0, 0.025, 0.05])
        assert_array_almost_equal(reader.orientations_["00B421AF"].to_numpy(), [[0, 0, 0, 1.0]] * 3)
        assert_array_almost_equal(
            get_sensor_rotations(reader.orientations_, "00B421B0").as_euler("xyz", degrees=True), [[0, 0, 90]] * 3
        )
        assert reader.orientations_file_ is None

    def test_sensor_mapping(self, xsens_trial):
        reader = XsensDataReader(trial_prefix="MT_01", sensor_mapping={"00B421B0": "pelvis_imu"}).read(xsens_trial)

        assert get_sensor_names(reader.orientations_) == ["pelvis_imu"]

    def test_mapped_sensor_missing(self, xsens_trial):
        reader = XsensDataReader(trial_prefix="MT_01", sensor_mapping={"00B421FF": "pelvis_imu"})

        with pytest.raises(FormatError, match="00B421FF"):
            reader.read(xsens_trial)

    def test_raw_imu_data(self, xsens_trial):
        reader = XsensDataReader(trial_prefix="MT_01").read(xsens_trial)

        assert get_sensor_names(reader.accelerations_) == ["00B421AF"]
        assert list(reader.accelerations_["00B421AF"].columns) == SF_ACC
        assert_array_almost_equal(reader.accelerations_["00B421AF"]["acc_x"], [0.1, 0.2, 0.3])
        assert reader.angular_velocities_ is None
        assert reader.magnetic_headings_ is None

    def test_write_orientations(self, xsens_trial):
        reader = XsensDataReader(trial_prefix="MT_01").read(xsens_trial, write_orientations=True)

        assert reader.orientations_file_ == xsens_trial / "MT_01_orientations.sto"
        assert reader.orientations_file_.read_text().startswith("DataRate=40.000000\n")
        assert_frame_equal(read_orientations_sto(reader.orientations_file_), reader.orientations_, check_exact=False)

    def test_without_prefix(self, tmp_path):
        write_xsens_file(tmp_path / "pelvis.txt", quat_columns([1, 0, 0, 0]))

        reader = XsensDataReader().read(tmp_path, write_orientations=True)

        assert get_sensor_names(reader.orientations_) == ["pelvis"]
        assert reader.orientations_file_ == tmp_path / "orientations.sto"

    def test_rotation_matrix_columns(self, tmp_path):
        matrix = Rotation.from_euler("z", 90, degrees=True).as_matrix()
        columns = {f"Mat[{i + 1}][{j + 1}]": [matrix[i, j]] * 2 for i in range(3) for j in range(3)}
        write_xsens_file(tmp_path / "MT_01_s1.txt", columns)

        reader = XsensDataReader(trial_prefix="MT_01").read(tmp_path)

        assert_array_almost_equal(
            get_sensor_rotations(reader.orientations_, "s1").as_matrix(), np.repeat(matrix[None], 2, axis=0)
        )

    def test_euler_columns(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", {"Roll": [10.0], "Pitch": [20.0], "Yaw": [30.0]})

        reader = XsensDataReader(trial_prefix="MT_01").read(tmp_path)

        expected = Rotation.from_euler("ZYX", [30, 20, 10], degrees=True)
        result = get_sensor_rotations(reader.orientations_, "s1")[0]
        assert_array_almost_equal((expected.inv() * result).magnitude(), 0)

    def test_quaternions_are_normalized(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([2, 0, 0, 0]))

        reader = XsensDataReader(trial_prefix="MT_01").read(tmp_path)

        assert_array_almost_equal(reader.orientations_["s1"].to_numpy(), [[0, 0, 0, 1.0]] * 3)

    def test_without_trailing_delimiter(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([1, 0, 0, 0]), trailing_tab=False)

        reader = XsensDataReader(trial_prefix="MT_01").read(tmp_path)

        assert len(reader.orientations_) == 3

    def test_sampling_rate_fallback(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([1, 0, 0, 0]), update_rate=None)

        reader = XsensDataReader(trial_prefix="MT_01", sampling_rate_hz=50).read(tmp_path)

        assert reader.data_rate_hz_ == 50
        assert_array_almost_equal(reader.orientations_.index, [0, 0.02, 0.04])

    def test_no_sampling_rate(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([1, 0, 0, 0]), update_rate=None)

        with pytest.raises(FormatError, match="update rate"):
            XsensDataReader(trial_prefix="MT_01").read(tmp_path)

    def test_different_number_of_samples(self, xsens_trial):
        write_xsens_file(xsens_trial / "MT_01_00B421B0.txt", quat_columns([1, 0, 0, 0], n_samples=2))

        with pytest.raises(FormatError, match="same number of samples"):
            XsensDataReader(trial_prefix="MT_01").read(xsens_trial)

    def test_no_orientation_columns(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", {"Acc_X": [1.0], "Acc_Y": [1.0], "Acc_Z": [1.0]})

        with pytest.raises(FormatError, match="does not contain orientation data"):
            XsensDataReader(trial_prefix="MT_01").read(tmp_path)

    def test_malformed_value(self, tmp_path):
        columns = quat_columns([1, 0, 0, 0])
        columns["Quat_q2"][1] = "0,a"
        write_xsens_file(tmp_path / "MT_01_s1.txt", columns)

        with pytest.raises(ParseError):
            XsensDataReader(trial_prefix="MT_01").read(tmp_path)

    def test_zero_quaternion(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([0, 0, 0, 0]))

        with pytest.raises(ParseError):
            XsensDataReader(trial_prefix="MT_01").read(tmp_path)

    def test_file_without_samples(self, tmp_path):
        write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([1, 0, 0, 0], n_samples=0))

        with pytest.raises(EmptySourceError):
            XsensDataReader(trial_prefix="MT_01").read(tmp_path)

    def test_no_sensor_files(self, tmp_path):
        with pytest.raises(FormatError, match="No sensor files"):
            XsensDataReader(trial_prefix="MT_01").read(tmp_path)

    def test_source_is_not_a_directory(self, tmp_path):
        path = write_xsens_file(tmp_path / "MT_01_s1.txt", quat_columns([1, 0, 0, 0]))

        with pytest.raises(FormatError, match="directory"):
            XsensDataReader().read(path)

    def test_settings_file(self, tmp_path):
        reader = XsensDataReader(trial_prefix="MT_01", sensor_mapping={"00B421AF": "pelvis_imu"}, sampling_rate_hz=60)

        loaded = XsensDataReader.from_json_file(reader.to_json_file(tmp_path / "settings.json"))

        assert loaded.get_params() == reader.get_params()
