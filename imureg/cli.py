"""Command-line interface for reading IMU data and registering IMUs onto a model."""
import argparse
import logging
import sys
from typing import Optional, Sequence

from imureg.data_readers import APDMDataReader, XsensDataReader
from imureg.registration import (
    add_imu_frames_from_markers,
    calibrate_model_from_orientations,
    create_orientations_file_from_markers,
)
from imureg.utils.exceptions import DataSourceError, ValidationError

logger = logging.getLogger(__name__)

_READERS = {"xsens": XsensDataReader, "apdm": APDMDataReader}


def _log_reader_results(reader) -> None:
    n_sensors = len(reader.orientations_.columns.unique(level=0))
    logger.info(f"Read {n_sensors} sensors with {len(reader.orientations_)} samples at {reader.data_rate_hz_} Hz")
    logger.info(f"Wrote orientations to: {reader.orientations_file_}")


def cmd_read_xsens(*, args: argparse.Namespace) -> None:
    """Convert an Xsens export directory into an orientation file."""
    reader = XsensDataReader() if args.settings is None else XsensDataReader.from_json_file(args.settings)
    reader = reader.read(args.directory, write_orientations=True)
    _log_reader_results(reader)


def cmd_read_apdm(*, args: argparse.Namespace) -> None:
    """Convert an APDM csv export into an orientation file."""
    reader = APDMDataReader() if args.settings is None else APDMDataReader.from_json_file(args.settings)
    reader = reader.read(args.file, write_orientations=True)
    _log_reader_results(reader)


def cmd_calibrate(*, args: argparse.Namespace) -> None:
    """Calibrate the IMU frames of a model from an orientation file."""
    if args.base_sensor is None:
        logger.info("No base sensor provided. The heading correction is skipped.")
    else:
        logger.info(f"Heading correction using `{args.base_sensor}` along its {args.heading_axis or 'z'}-axis")
    rotation = None if args.sensor_to_model_rotation is None else tuple(args.sensor_to_model_rotation)
    output = calibrate_model_from_orientations(
        args.model,
        args.orientations,
        base_sensor=args.base_sensor,
        heading_axis=args.heading_axis,
        output_file=args.output,
        sensor_to_model_rotation=rotation,
    )
    logger.info(f"Wrote calibrated model to: {output}")


def cmd_add_imus(*, args: argparse.Namespace) -> None:
    """Register IMU frames onto a model from a static marker trial."""
    output = add_imu_frames_from_markers(args.model, args.markers, output_dir=args.output_dir)
    logger.info(f"Wrote model with IMU frames to: {output}")


def cmd_transform(*, args: argparse.Namespace) -> None:
    """Convert the IMU marker clusters of a marker trial into an orientation file."""
    output = create_orientations_file_from_markers(args.markers)
    logger.info(f"Wrote orientations to: {output}")


def cmd_print_settings(*, args: argparse.Namespace) -> None:
    """Write the default settings of a data reader."""
    reader = _READERS[args.reader]()
    if args.output is None:
        print(reader.to_json())
        return
    output = reader.to_json_file(args.output)
    logger.info(f"Wrote default {args.reader} settings to: {output}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imureg",
        description="Read IMU orientations and register IMUs onto a body model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:

  # Convert an Xsens export with custom settings
  imureg read-xsens trial_directory/ xsens_settings.json

  # Write the default APDM settings as a template
  imureg print-settings apdm apdm_settings.json

  # Calibrate a model, using the z-axis of the pelvis IMU for the heading correction
  imureg calibrate model.json calibration_orientations.sto pelvis_imu z

  # Register IMU frames from a static marker trial
  imureg add-imus model.json static.trc
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug messages")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    xsens_parser = subparsers.add_parser("read-xsens", help="Convert an Xsens export directory into a .sto file")
    xsens_parser.add_argument("directory", help="Directory with one export file per sensor")
    xsens_parser.add_argument("settings", nargs="?", help="Reader settings json (see print-settings)")

    apdm_parser = subparsers.add_parser("read-apdm", help="Convert an APDM csv export into a .sto file")
    apdm_parser.add_argument("file", help="APDM csv export")
    apdm_parser.add_argument("settings", nargs="?", help="Reader settings json (see print-settings)")

    calibrate_parser = subparsers.add_parser(
        "calibrate", help="Calibrate the IMU frames of a model in its calibration pose"
    )
    calibrate_parser.add_argument("model", help="Model json, whose default pose is the calibration pose")
    calibrate_parser.add_argument("orientations", help="Orientation .sto file of the calibration pose")
    calibrate_parser.add_argument("base_sensor", nargs="?", help="Sensor used for the heading correction")
    calibrate_parser.add_argument(
        "heading_axis",
        nargs="?",
        type=str.lower,
        choices=["x", "y", "z"],
        help="Forward axis of the base sensor (default: z)",
    )
    calibrate_parser.add_argument("--output", "-o", help="Output model json (default: calibrated_<name>.json)")
    calibrate_parser.add_argument(
        "--sensor-to-model-rotation",
        type=float,
        nargs=3,
        metavar=("X", "Y", "Z"),
        help="Fixed xyz euler rotation (deg) from the sensor world to the model ground, e.g. -90 0 0",
    )

    add_imus_parser = subparsers.add_parser("add-imus", help="Register IMU frames from IMU marker clusters")
    add_imus_parser.add_argument("model", help="Model json with the IMU markers")
    add_imus_parser.add_argument("markers", help="Static marker trial (.trc or .csv)")
    add_imus_parser.add_argument("--output-dir", "-o", help="Output directory (default: directory of the model)")

    transform_parser = subparsers.add_parser(
        "transform", help="Convert the IMU marker clusters of a marker trial into a .sto file"
    )
    transform_parser.add_argument("markers", help="Marker trial (.trc or .csv)")

    settings_parser = subparsers.add_parser("print-settings", help="Write the default settings of a reader")
    settings_parser.add_argument("reader", choices=sorted(_READERS), help="Reader type")
    settings_parser.add_argument("output", nargs="?", help="Output json (default: print to stdout)")
    return parser


_COMMANDS = {
    "read-xsens": cmd_read_xsens,
    "read-apdm": cmd_read_apdm,
    "calibrate": cmd_calibrate,
    "add-imus": cmd_add_imus,
    "transform": cmd_transform,
    "print-settings": cmd_print_settings,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line interface and return the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help(sys.stderr)
        return 1

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s | %(message)s")
    logging.captureWarnings(True)

    try:
        _COMMANDS[args.command](args=args)
    except (DataSourceError, ValidationError, ValueError, OSError) as e:
        print(f"imureg {args.command}: error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
