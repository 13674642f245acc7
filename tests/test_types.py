import numpy as np
import pytest

from mono_calib.core.types import (
    CalibrationParameters,
    CalibrationResult,
    CameraIntrinsic,
    CheckerboardConfig,
)


@pytest.mark.parametrize("rows, cols", [(1, 1), (5, 7), (6, 9), (3, 2)])
def test_object_points_cover_grid_in_pattern_order(rows, cols):
    points = CheckerboardConfig(rows=rows, cols=cols).generate_object_points()

    assert points.shape == (rows * cols, 3)
    assert points.dtype == np.float32
    for k, (x, y, z) in enumerate(points):
        assert (x, y, z) == (k % cols, k // cols, 0.0)


def test_object_points_are_deterministic_and_scaled():
    config = CheckerboardConfig(rows=5, cols=7, square_size=25.0)

    first = config.generate_object_points()
    second = config.generate_object_points()

    np.testing.assert_array_equal(first, second)
    assert first[1, 0] == 25.0
    assert first[7, 1] == 25.0
    assert np.all(first[:, 2] == 0)


def test_pattern_size_is_cols_then_rows():
    config = CheckerboardConfig(rows=5, cols=7)
    assert config.pattern_size == (7, 5)
    assert config.num_corners == 35


@pytest.mark.parametrize("kwargs", [
    {"rows": 0, "cols": 7},
    {"rows": 5, "cols": -1},
    {"rows": 5, "cols": 7, "square_size": 0},
])
def test_checkerboard_rejects_non_positive_values(kwargs):
    with pytest.raises(ValueError):
        CheckerboardConfig(**kwargs)


def _intrinsic():
    return CameraIntrinsic(
        camera_matrix=np.array([[500.0, 0, 320], [0, 510.0, 240], [0, 0, 1]]),
        distortion_coeffs=np.array([[0.1, -0.05, 0.001, 0.002, 0.01]]),
        image_size=(640, 480),
        reprojection_error=0.25,
    )


def test_intrinsic_accessors():
    intrinsic = _intrinsic()

    assert (intrinsic.fx, intrinsic.fy, intrinsic.cx, intrinsic.cy) == (500, 510, 320, 240)
    assert intrinsic.distortion_coeffs.shape == (5,)
    assert intrinsic.p2 == pytest.approx(0.002)


def test_intrinsic_rejects_bad_matrix_shape():
    with pytest.raises(ValueError):
        CameraIntrinsic(np.eye(2), np.zeros(5), (640, 480))


def test_calibration_result_is_immutable():
    result = CalibrationResult(
        intrinsic=_intrinsic(),
        rotation_vectors=[np.zeros((3, 1)), np.ones((3, 1))],
        translation_vectors=[np.zeros((3, 1)), np.ones((3, 1))],
        per_image_errors=[0.1, 0.2],
    )

    assert result.num_views == 2
    assert result.rotation_vectors.shape == (2, 3)
    with pytest.raises(ValueError):
        result.rotation_vectors[0, 0] = 1.0
    with pytest.raises(ValueError):
        result.intrinsic.camera_matrix[0, 0] = 1.0
    with pytest.raises(AttributeError):
        result.num_images_used = 3
    np.testing.assert_allclose(result.rotation_matrix(0), np.eye(3))


def test_calibration_result_rejects_pose_count_mismatch():
    with pytest.raises(ValueError):
        CalibrationResult(
            intrinsic=_intrinsic(),
            rotation_vectors=np.zeros((2, 3)),
            translation_vectors=np.zeros((1, 3)),
        )


def test_parameters_from_result_prefers_given_matrix():
    result = CalibrationResult(
        intrinsic=_intrinsic(),
        rotation_vectors=np.zeros((1, 3)),
        translation_vectors=np.ones((1, 3)),
    )
    refined = np.array([[450.0, 0, 300], [0, 455.0, 230], [0, 0, 1]])

    params = CalibrationParameters.from_result(result, camera_matrix=refined)
    plain = CalibrationParameters.from_result(result)

    np.testing.assert_array_equal(params.camera_matrix, refined)
    np.testing.assert_array_equal(plain.camera_matrix, result.intrinsic.camera_matrix)
    assert params.distortion_coeffs.shape == (1, 5)
    assert params.translation.shape == (1, 3)
