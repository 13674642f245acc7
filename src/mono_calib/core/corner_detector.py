"""
Checkerboard corner detection.

This module wraps OpenCV's chessboard finder and sub-pixel refinement
and reports every attempt as an explicit :class:`CornerDetectionResult`,
so skipped images and the reason they were skipped stay inspectable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from numpy.typing import NDArray

from mono_calib.core.types import CheckerboardConfig, InvalidParameterError
from mono_calib.io.image_loader import ImageLoader
from mono_calib.utils.logging import get_logger

logger = get_logger("core.corner_detector")


class DetectionFailure(Enum):
    """Why an image contributed no correspondence."""
    LOAD_FAILED = "load_failed"
    PATTERN_NOT_FOUND = "pattern_not_found"


@dataclass
class CornerDetectionResult:
    """Result of corner detection on a single image.

    Attributes:
        success: Whether corners were successfully detected.
        corners: Refined corner points (N, 1, 2) or None if failed.
        image_path: Path to the source image, if any.
        image_size: Image dimensions (width, height).
        failure: Failure reason, None on success.
        error_message: Error description if detection failed.
    """
    success: bool
    corners: Optional[NDArray[np.float32]]
    image_path: Optional[Path]
    image_size: tuple[int, int]
    failure: Optional[DetectionFailure] = None
    error_message: str = ""

    @property
    def num_corners(self) -> int:
        """Number of detected corners."""
        if self.corners is None:
            return 0
        return len(self.corners)

    @property
    def name(self) -> str:
        return str(self.image_path) if self.image_path is not None else "array"

    def get_corners_2d(self) -> Optional[NDArray[np.float32]]:
        """Get corners as (N, 2) array."""
        if self.corners is None:
            return None
        return self.corners.reshape(-1, 2)


class CornerDetector:
    """Checkerboard corner detector.

    Example:
        >>> detector = CornerDetector(CheckerboardConfig(rows=5, cols=7))
        >>> result = detector.detect("calibration_image.jpg")
        >>> if result.success:
        ...     print(f"Found {result.num_corners} corners")
    """

    SUBPIX_CRITERIA = (
        cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER,
        30,  # max iterations
        0.001,  # epsilon
    )
    SUBPIX_WINDOW_SIZE = (11, 11)
    SUBPIX_ZERO_ZONE = (-1, -1)

    DEFAULT_FLAGS = (
        cv2.CALIB_CB_ADAPTIVE_THRESH
        | cv2.CALIB_CB_NORMALIZE_IMAGE
        | cv2.CALIB_CB_FAST_CHECK
    )

    # findChessboardCorners rejects smaller patterns
    MIN_PATTERN_DIM = 3

    def __init__(
        self,
        config: CheckerboardConfig,
        refine_corners: bool = True,
        detection_flags: Optional[int] = None,
    ):
        """Initialize the corner detector.

        Args:
            config: Checkerboard configuration.
            refine_corners: Whether to refine corners with subpixel accuracy.
            detection_flags: OpenCV detection flags (default: adaptive + normalize + fast).

        Raises:
            InvalidParameterError: If the pattern is too small to detect.
        """
        if min(config.pattern_size) < self.MIN_PATTERN_DIM:
            raise InvalidParameterError(
                f"Checkerboard needs at least {self.MIN_PATTERN_DIM} inner corners "
                f"per side, got {config.cols}x{config.rows}"
            )
        self.config = config
        self.refine_corners = refine_corners
        self.detection_flags = (
            self.DEFAULT_FLAGS if detection_flags is None else detection_flags
        )
        self._image_loader = ImageLoader()

    def detect(
        self,
        image: Union[str, Path, NDArray],
        source: Optional[Union[str, Path]] = None,
    ) -> CornerDetectionResult:
        """Detect checkerboard corners in an image.

        Args:
            image: Image path or numpy array (BGR or grayscale).
            source: Path to report for an array input.

        Returns:
            CornerDetectionResult with detection outcome.
        """
        image_path: Optional[Path] = Path(source) if source is not None else None
        if isinstance(image, (str, Path)):
            image_path = Path(image)
            loaded = self._image_loader.load(image_path)
            if loaded is None:
                return self.load_failure(image_path)
            image = loaded

        height, width = image.shape[:2]
        image_size = (width, height)

        if image.ndim == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image

        found, corners = cv2.findChessboardCorners(
            gray, self.config.pattern_size, flags=self.detection_flags
        )
        label = image_path or "array"

        if not found or corners is None:
            logger.debug(f"Corner detection failed for: {label}")
            return CornerDetectionResult(
                success=False,
                corners=None,
                image_path=image_path,
                image_size=image_size,
                failure=DetectionFailure.PATTERN_NOT_FOUND,
                error_message="No checkerboard pattern found",
            )

        # OpenCV 4 returns (N, 1, 2), OpenCV 5 returns (N, 2)
        corners = corners.reshape(-1, 1, 2)

        if self.refine_corners:
            corners = cv2.cornerSubPix(
                gray,
                corners,
                self.SUBPIX_WINDOW_SIZE,
                self.SUBPIX_ZERO_ZONE,
                self.SUBPIX_CRITERIA,
            ).reshape(-1, 1, 2)

        logger.debug(f"Detected {len(corners)} corners in: {label}")

        return CornerDetectionResult(
            success=True,
            corners=corners,
            image_path=image_path,
            image_size=image_size,
        )

    @staticmethod
    def load_failure(path: Union[str, Path]) -> CornerDetectionResult:
        """Result for an image that could not be read."""
        return CornerDetectionResult(
            success=False,
            corners=None,
            image_path=Path(path),
            image_size=(0, 0),
            failure=DetectionFailure.LOAD_FAILED,
            error_message=f"Failed to load image: {path}",
        )

    def draw_corners(
        self,
        image: NDArray,
        result: CornerDetectionResult,
    ) -> NDArray:
        """Draw the detection overlay on a copy of an image.

        Failed detections return an unmarked copy.
        """
        output = image.copy()
        if result.success and result.corners is not None:
            cv2.drawChessboardCorners(
                output, self.config.pattern_size, result.corners, True
            )
        return output
