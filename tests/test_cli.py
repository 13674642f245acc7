import logging

import cv2
import pytest

from mono_calib import __version__
from mono_calib.cli import EXIT_FAILURE, EXIT_NO_INPUT, EXIT_OK, build_parser, config_from_args, main
from mono_calib.io.calibration_file import CalibrationFile
from mono_calib.io.formats.base import FieldNames
from mono_calib.io.image_loader import ImageLoader


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logging.getLogger("mono_calib").handlers.clear()


def _args(image_dir, output, *extra):
    return [str(image_dir), "--rows", "5", "--cols", "7", "--output", str(output), "--headless", *extra]


def test_successful_run_writes_parameters(image_dir, tmp_path):
    output = tmp_path / "intrinsics.yml"

    assert main(_args(image_dir, output)) == EXIT_OK

    params = CalibrationFile.load(output)
    assert params.camera_matrix.shape == (3, 3)


def test_missing_output_directory_is_fatal(image_dir, tmp_path, capsys):
    output = tmp_path / "calibration_setup" / "intrinsics.yml"

    assert main(_args(image_dir, output)) == EXIT_FAILURE

    err = capsys.readouterr().err
    assert err.startswith("Error: Output directory does not exist")
    assert ", at " in err and ".py:" in err
    assert not output.exists()


def test_no_images_exit_code(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    assert main(_args(empty, tmp_path / "out.yml")) == EXIT_NO_INPUT


def test_no_detections_exit_code(tmp_path, blank_image):
    source = tmp_path / "blank"
    ImageLoader.save(source / "blank.png", blank_image)

    assert main(_args(source, tmp_path / "out.yml")) == EXIT_FAILURE
    assert not (tmp_path / "out.yml").exists()


def test_flags_map_to_config(tmp_path):
    args = build_parser().parse_args(
        _args(tmp_path, tmp_path / "out.yml", "--legacy-flags", "--legacy-field-names",
              "--min-images", "3", "--square-size", "25", "--alpha", "0.5")
    )

    config = config_from_args(args)

    assert config.checkerboard.pattern_size == (7, 5)
    assert config.checkerboard.square_size == 25.0
    assert config.calibration.same_focal_length
    assert config.calibration.zero_tangent_dist
    assert config.calibration.min_images == 3
    assert config.field_names == FieldNames.LEGACY
    assert config.alpha == 0.5
    assert config.headless


def test_invalid_board_is_a_usage_error(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path), "--rows", "0", "--cols", "7", "--output", "out.yml"])
    assert exc.value.code == 2


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_explicit_switches_add_to_legacy_flags(tmp_path):
    args = build_parser().parse_args(
        _args(tmp_path, tmp_path / "out.yml", "--legacy-flags", "--rational-model",
              "--fix-principal-point")
    )

    calibration = config_from_args(args).calibration

    assert calibration.use_rational_model
    assert calibration.fix_principal_point
    assert calibration.same_focal_length
    assert calibration.use_intrinsic_guess
    assert calibration.get_calibration_flags() & cv2.CALIB_RATIONAL_MODEL
    assert calibration.get_calibration_flags() & cv2.CALIB_FIX_PRINCIPAL_POINT


def test_switches_without_preset(tmp_path):
    args = build_parser().parse_args(
        _args(tmp_path, tmp_path / "out.yml", "--zero-tangent-dist")
    )

    calibration = config_from_args(args).calibration

    assert calibration.zero_tangent_dist
    assert not calibration.same_focal_length
    assert calibration.get_calibration_flags() == cv2.CALIB_ZERO_TANGENT_DIST
