"""
Command-line entry point.

Usage:
    mono-calib "images/*.png" --rows 5 --cols 7 --output calibration_setup/intrinsics.yml
    mono-calib images/ --rows 5 --cols 7 --output out.yml --headless
"""

from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import Optional, Sequence

import cv2

from mono_calib import __version__
from mono_calib.core.intrinsic import IntrinsicCalibrationConfig
from mono_calib.core.types import (
    CalibrationError,
    CheckerboardConfig,
    NoImagesFoundError,
    PersistenceError,
)
from mono_calib.io.formats.base import FieldNames
from mono_calib.pipeline import CalibrationPipeline, PipelineConfig
from mono_calib.utils.logging import get_logger, setup_logging

logger = get_logger("cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mono-calib",
        description="Single-camera checkerboard calibration.",
    )
    parser.add_argument(
        "images",
        help="Directory of calibration images or a glob pattern (quote it)",
    )
    parser.add_argument("--rows", type=int, required=True,
                        help="Inner corners along the vertical axis")
    parser.add_argument("--cols", type=int, required=True,
                        help="Inner corners along the horizontal axis")
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Parameter file (.yml, .yaml, .xml, .json, .h5, .mat)")
    parser.add_argument("--square-size", type=float, default=1.0,
                        help="Square edge length in world units (default: 1)")
    parser.add_argument("--alpha", type=float, default=1.0,
                        help="Free scaling for the refined camera matrix, 0..1 (default: 1)")
    parser.add_argument("--headless", action="store_true",
                        help="Do not open preview windows")
    parser.add_argument("--undistorted-dir", type=Path, default=None,
                        help="Save undistorted images to this directory")
    parser.add_argument("--legacy-field-names", action="store_true",
                        help="Write CAMERA_MATRIX_LEFT/DISTCOEFFS_RIGHT/... field names")
    parser.add_argument("--min-images", type=int, default=1,
                        help="Minimum accepted views required (default: 1)")

    flags = parser.add_argument_group("calibration flags")
    flags.add_argument("--legacy-flags", action="store_true",
                       help="Start from the stereo-derived flag set; other switches add to it")
    flags.add_argument("--fix-principal-point", action="store_true")
    flags.add_argument("--fix-aspect-ratio", action="store_true")
    flags.add_argument("--use-intrinsic-guess", action="store_true")
    flags.add_argument("--zero-tangent-dist", action="store_true")
    flags.add_argument("--same-focal-length", action="store_true")
    flags.add_argument("--rational-model", action="store_true")

    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    checkerboard = CheckerboardConfig(
        rows=args.rows, cols=args.cols, square_size=args.square_size
    )
    switches = {
        "fix_principal_point": args.fix_principal_point,
        "fix_aspect_ratio": args.fix_aspect_ratio,
        "use_intrinsic_guess": args.use_intrinsic_guess,
        "zero_tangent_dist": args.zero_tangent_dist,
        "same_focal_length": args.same_focal_length,
        "use_rational_model": args.rational_model,
    }
    if args.legacy_flags:
        # Explicit switches are added on top of the preset
        explicit = {name: True for name, on in switches.items() if on}
        calibration = IntrinsicCalibrationConfig.legacy_preset(
            checkerboard, min_images=args.min_images, **explicit
        )
    else:
        calibration = IntrinsicCalibrationConfig(
            checkerboard=checkerboard, min_images=args.min_images, **switches
        )
    return PipelineConfig(
        image_source=args.images,
        output_path=args.output,
        calibration=calibration,
        alpha=args.alpha,
        headless=args.headless,
        undistorted_dir=args.undistorted_dir,
        field_names=FieldNames.LEGACY if args.legacy_field_names else FieldNames.DEFAULT,
    )


def _origin(error: BaseException) -> str:
    frames = traceback.extract_tb(error.__traceback__)
    if not frames:
        return "<unknown>"
    frame = frames[-1]
    return f"{frame.filename}:{frame.lineno}"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a calibration from the command line.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
    )

    try:
        config = config_from_args(args)
    except (ValueError, CalibrationError) as e:
        parser.error(str(e))

    try:
        result = CalibrationPipeline(config).run()
    except PersistenceError as e:
        print(f"Error: {e}, at {_origin(e)}", file=sys.stderr)
        return EXIT_FAILURE
    except NoImagesFoundError as e:
        logger.error(str(e))
        return EXIT_NO_INPUT
    except CalibrationError as e:
        logger.error(f"Calibration failed: {e}")
        return EXIT_FAILURE
    except cv2.error as e:
        logger.error(f"OpenCV error: {e}")
        return EXIT_FAILURE

    logger.info("\n" + result.calibration.summary())
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
