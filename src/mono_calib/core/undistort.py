"""
Intrinsic refinement and image undistortion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
from numpy.typing import NDArray

from mono_calib.core.types import CameraIntrinsic, InvalidParameterError
from mono_calib.utils.logging import get_logger

logger = get_logger("core.undistort")


@dataclass(frozen=True)
class OptimizedIntrinsics:
    """Camera matrix refined for undistortion.

    Attributes:
        camera_matrix: 3x3 refined camera matrix.
        roi: Valid pixel rectangle (x, y, width, height) after undistortion.
        alpha: Free scaling parameter it was computed with.
        image_size: Output image dimensions (width, height).
    """
    camera_matrix: NDArray[np.float64]
    roi: tuple[int, int, int, int]
    alpha: float
    image_size: tuple[int, int]


def compute_optimal_intrinsics(
    intrinsic: CameraIntrinsic,
    alpha: float = 1.0,
    new_image_size: Optional[tuple[int, int]] = None,
) -> OptimizedIntrinsics:
    """Compute the refined camera matrix with ``getOptimalNewCameraMatrix``.

    Args:
        intrinsic: Calibrated intrinsics.
        alpha: 0 keeps only valid pixels, 1 keeps every source pixel
            (black borders may appear).
        new_image_size: Output size, defaults to the calibration size.

    Returns:
        OptimizedIntrinsics for the requested size.
    """
    if not 0.0 <= alpha <= 1.0:
        raise InvalidParameterError(f"alpha must be in [0, 1], got {alpha}")

    image_size = new_image_size or intrinsic.image_size
    new_matrix, roi = cv2.getOptimalNewCameraMatrix(
        intrinsic.camera_matrix,
        intrinsic.distortion_coeffs,
        intrinsic.image_size,
        alpha,
        image_size,
        centerPrincipalPoint=False,
    )
    new_matrix = np.asarray(new_matrix, dtype=np.float64)
    new_matrix.setflags(write=False)

    logger.debug(f"Optimal camera matrix (alpha={alpha}): roi={roi}")

    return OptimizedIntrinsics(
        camera_matrix=new_matrix,
        roi=tuple(int(v) for v in roi),
        alpha=float(alpha),
        image_size=(int(image_size[0]), int(image_size[1])),
    )


class Undistorter:
    """Undistort frames with a calibrated camera and refined matrix.

    Example:
        >>> optimized = compute_optimal_intrinsics(result.intrinsic)
        >>> corrected = Undistorter(result.intrinsic, optimized).undistort(frame)
    """

    def __init__(self, intrinsic: CameraIntrinsic, optimized: OptimizedIntrinsics):
        self.intrinsic = intrinsic
        self.optimized = optimized

    def undistort(self, image: NDArray) -> NDArray:
        """Return a new, undistorted image; the input is left untouched."""
        return cv2.undistort(
            image,
            self.intrinsic.camera_matrix,
            self.intrinsic.distortion_coeffs,
            None,
            self.optimized.camera_matrix,
        )

