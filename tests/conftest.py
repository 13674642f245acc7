"""
Shared fixtures: a virtual pinhole camera photographing a checkerboard.

Views are rendered by warping a board texture with the homography
K [r1 r2 t], so every corner has an exact ground-truth pixel position.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np
import pytest

from mono_calib.core.types import CheckerboardConfig

IMAGE_SIZE = (640, 480)
TRUE_CAMERA_MATRIX = np.array(
    [
        [600.0, 0.0, 320.0],
        [0.0, 600.0, 240.0],
        [0.0, 0.0, 1.0],
    ]
)
# Texture pixels per board square
SQUARE_PX = 32
BACKGROUND = 128

# (rotation vector, board centre in camera coordinates)
POSES = [
    ((0.0, 0.0, 0.0), (0.0, 0.0, 16.0)),
    ((0.35, 0.0, 0.0), (0.0, 0.0, 16.0)),
    ((-0.35, 0.0, 0.0), (0.0, 0.0, 16.0)),
    ((0.0, 0.35, 0.0), (0.0, 0.0, 16.0)),
    ((0.0, -0.35, 0.0), (0.0, 0.0, 16.0)),
    ((0.25, 0.25, 0.05), (-1.0, -0.5, 15.0)),
    ((-0.25, 0.25, -0.05), (1.0, 0.5, 17.0)),
    ((0.25, -0.25, 0.08), (0.5, -1.0, 16.0)),
    ((-0.25, -0.25, -0.08), (-0.5, 1.0, 18.0)),
    ((0.15, -0.1, 0.1), (1.5, 0.0, 15.0)),
]


@dataclass
class SyntheticView:
    image: np.ndarray
    rvec: np.ndarray
    tvec: np.ndarray
    corners: np.ndarray  # (N, 2) ground-truth pixels in pattern order


def board_texture(config: CheckerboardConfig, square_px: int = SQUARE_PX) -> np.ndarray:
    """Checkerboard of (cols+1) x (rows+1) squares with a one-square white margin."""
    squares_x, squares_y = config.cols + 1, config.rows + 1
    texture = np.full(
        ((squares_y + 2) * square_px, (squares_x + 2) * square_px), 255, np.uint8
    )
    for sy in range(squares_y):
        for sx in range(squares_x):
            if (sx + sy) % 2 == 0:
                y0, x0 = (sy + 1) * square_px, (sx + 1) * square_px
                texture[y0:y0 + square_px, x0:x0 + square_px] = 0
    return texture


def board_pose(config: CheckerboardConfig, rvec, centre) -> tuple[np.ndarray, np.ndarray]:
    rvec = np.asarray(rvec, dtype=np.float64).reshape(3, 1)
    R, _ = cv2.Rodrigues(rvec)
    board_centre = np.array(
        [(config.cols - 1) / 2.0, (config.rows - 1) / 2.0, 0.0]
    ) * config.square_size
    tvec = np.asarray(centre, dtype=np.float64) - R @ board_centre
    return rvec, tvec.reshape(3, 1)


def project_corners(
    config: CheckerboardConfig,
    rvec: np.ndarray,
    tvec: np.ndarray,
    camera_matrix: np.ndarray = TRUE_CAMERA_MATRIX,
    dist_coeffs=None,
) -> np.ndarray:
    projected, _ = cv2.projectPoints(
        config.generate_object_points().astype(np.float64),
        rvec,
        tvec,
        camera_matrix,
        dist_coeffs,
    )
    return projected.reshape(-1, 2)


def render_view(
    config: CheckerboardConfig,
    rvec,
    centre,
    camera_matrix: np.ndarray = TRUE_CAMERA_MATRIX,
    image_size: tuple[int, int] = IMAGE_SIZE,
) -> SyntheticView:
    rvec, tvec = board_pose(config, rvec, centre)
    R, _ = cv2.Rodrigues(rvec)

    # Texture pixel centres -> board units; corner i sits on the edge at (i + 2) * s - 0.5
    s = SQUARE_PX / config.square_size
    texture_to_world = np.array(
        [
            [1.0 / s, 0.0, 0.5 / s - 2.0 * config.square_size],
            [0.0, 1.0 / s, 0.5 / s - 2.0 * config.square_size],
            [0.0, 0.0, 1.0],
        ]
    )
    world_to_image = camera_matrix @ np.column_stack((R[:, 0], R[:, 1], tvec.ravel()))
    homography = world_to_image @ texture_to_world

    gray = cv2.warpPerspective(
        board_texture(config),
        homography,
        image_size,
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=BACKGROUND,
    )
    gray = cv2.GaussianBlur(gray, (3, 3), 0)

    return SyntheticView(
        image=cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR),
        rvec=rvec,
        tvec=tvec,
        corners=project_corners(config, rvec, tvec, camera_matrix),
    )


@pytest.fixture(scope="session")
def board() -> CheckerboardConfig:
    """8x6 squares, i.e. 7x5 inner corners."""
    return CheckerboardConfig(rows=5, cols=7)


@pytest.fixture(scope="session")
def synthetic_views(board) -> list[SyntheticView]:
    return [render_view(board, rvec, centre) for rvec, centre in POSES]


@pytest.fixture(scope="session")
def image_dir(tmp_path_factory, synthetic_views):
    """Directory holding the ten rendered views as PNG files."""
    directory = tmp_path_factory.mktemp("checkerboard")
    for i, view in enumerate(synthetic_views):
        cv2.imwrite(str(directory / f"view_{i:02d}.png"), view.image)
    return directory


@pytest.fixture
def blank_image() -> np.ndarray:
    return np.full((IMAGE_SIZE[1], IMAGE_SIZE[0], 3), BACKGROUND, np.uint8)
