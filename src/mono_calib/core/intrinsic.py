"""
Camera intrinsic calibration.

This module accumulates checkerboard correspondences over many views
and estimates the camera matrix, distortion coefficients and per-view
poses with ``cv2.calibrateCamera``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from numpy.typing import NDArray

from mono_calib.core.types import (
    CalibrationResult,
    CameraIntrinsic,
    CheckerboardConfig,
    InconsistentImageSizeError,
    InsufficientImagesError,
    InvalidParameterError,
    NoValidDetectionsError,
)
from mono_calib.core.corner_detector import CornerDetector, CornerDetectionResult
from mono_calib.utils.logging import get_logger

logger = get_logger("core.intrinsic")

# OpenCV's own default for calibrateCamera
DEFAULT_CRITERIA = (
    cv2.TERM_CRITERIA_COUNT + cv2.TERM_CRITERIA_EPS,
    30,
    float(np.finfo(np.float64).eps),
)


@dataclass
class IntrinsicCalibrationConfig:
    """Configuration for intrinsic calibration.

    The flag bitmask built from these switches and ``criteria`` are
    passed to the optimizer on every run.

    Attributes:
        checkerboard: Checkerboard pattern configuration.
        fix_principal_point: Fix principal point at image center.
        fix_aspect_ratio: Keep fx/fy at the ratio of the initial matrix.
        use_intrinsic_guess: Seed the optimizer with ``initCameraMatrix2D``.
        zero_tangent_dist: Assume zero tangential distortion.
        same_focal_length: Force fx == fy.
        use_rational_model: Use rational distortion model (8 coefficients).
        criteria: Termination criteria (type, max_iter, epsilon).
        min_images: Minimum number of accepted views.
        max_skip_ratio: Warn when more than this share of images is skipped.
    """
    checkerboard: CheckerboardConfig
    fix_principal_point: bool = False
    fix_aspect_ratio: bool = False
    use_intrinsic_guess: bool = False
    zero_tangent_dist: bool = False
    same_focal_length: bool = False
    use_rational_model: bool = False
    criteria: tuple[int, int, float] = DEFAULT_CRITERIA
    min_images: int = 1
    max_skip_ratio: float = 0.5

    def __post_init__(self) -> None:
        if self.min_images < 1:
            raise InvalidParameterError(f"min_images must be >= 1, got {self.min_images}")
        if not 0.0 <= self.max_skip_ratio <= 1.0:
            raise InvalidParameterError(
                f"max_skip_ratio must be in [0, 1], got {self.max_skip_ratio}"
            )

    @classmethod
    def legacy_preset(
        cls, checkerboard: CheckerboardConfig, **overrides
    ) -> IntrinsicCalibrationConfig:
        """Flags of the earlier stereo-derived routine, applied to one camera."""
        settings = dict(
            fix_aspect_ratio=True,
            use_intrinsic_guess=True,
            zero_tangent_dist=True,
            same_focal_length=True,
            criteria=(cv2.TERM_CRITERIA_COUNT + cv2.TERM_CRITERIA_EPS, 100, 1e-5),
        )
        settings.update(overrides)
        return cls(checkerboard=checkerboard, **settings)

    def get_calibration_flags(self) -> int:
        """Get OpenCV calibration flags from config."""
        flags = 0
        if self.fix_principal_point:
            flags |= cv2.CALIB_FIX_PRINCIPAL_POINT
        if self.fix_aspect_ratio or self.same_focal_length:
            flags |= cv2.CALIB_FIX_ASPECT_RATIO
        if self.use_intrinsic_guess:
            flags |= cv2.CALIB_USE_INTRINSIC_GUESS
        if self.zero_tangent_dist:
            flags |= cv2.CALIB_ZERO_TANGENT_DIST
        if self.use_rational_model:
            flags |= cv2.CALIB_RATIONAL_MODEL
        return flags


@dataclass
class ImageCorrespondence:
    """World pattern paired with the detected pixels of one view."""
    object_points: NDArray[np.float32]
    image_points: NDArray[np.float32]
    image_size: tuple[int, int]
    source: Optional[Path] = None

    def __post_init__(self) -> None:
        self.image_points = np.asarray(self.image_points, dtype=np.float32).reshape(-1, 1, 2)
        if len(self.object_points) != len(self.image_points):
            raise InvalidParameterError(
                f"Point count mismatch: {len(self.object_points)} world points, "
                f"{len(self.image_points)} image points"
            )


@dataclass
class CorrespondenceSet:
    """Accepted views in the order they were added."""
    views: list[ImageCorrespondence] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.views)

    def append(self, view: ImageCorrespondence) -> None:
        self.views.append(view)

    @property
    def object_points(self) -> list[NDArray[np.float32]]:
        return [v.object_points for v in self.views]

    @property
    def image_points(self) -> list[NDArray[np.float32]]:
        return [v.image_points for v in self.views]

    def image_size(self) -> tuple[int, int]:
        """The single resolution shared by every view.

        Raises:
            NoValidDetectionsError: If the set is empty.
            InconsistentImageSizeError: If views differ in resolution.
        """
        if not self.views:
            raise NoValidDetectionsError("No valid detections: correspondence set is empty")
        sizes = {v.image_size for v in self.views}
        if len(sizes) > 1:
            details = ", ".join(
                f"{v.source or f'view {i}'}={v.image_size[0]}x{v.image_size[1]}"
                for i, v in enumerate(self.views)
            )
            raise InconsistentImageSizeError(f"Inconsistent image dimensions: {details}")
        return self.views[0].image_size


class IntrinsicCalibrator:
    """Camera intrinsic parameter calibrator.

    Example:
        >>> config = IntrinsicCalibrationConfig(
        ...     checkerboard=CheckerboardConfig(rows=5, cols=7)
        ... )
        >>> calibrator = IntrinsicCalibrator(config)
        >>> for path in image_paths:
        ...     calibrator.add_image(path)
        >>> result = calibrator.calibrate()
        >>> print(f"Reprojection error: {result.reprojection_error:.4f}")
    """

    def __init__(self, config: IntrinsicCalibrationConfig):
        self.config = config
        self.corner_detector = CornerDetector(config.checkerboard)

        self._correspondences = CorrespondenceSet()
        self._detection_results: list[CornerDetectionResult] = []

        # Object points (same for all images)
        self._objp = config.checkerboard.generate_object_points()

    @property
    def correspondences(self) -> CorrespondenceSet:
        return self._correspondences

    def add_image(
        self,
        image: Union[str, Path, NDArray],
        source: Optional[Union[str, Path]] = None,
    ) -> CornerDetectionResult:
        """Detect corners in an image and keep the view if they are found.

        Args:
            image: Image path or numpy array.
            source: Path to report for an array input.

        Returns:
            CornerDetectionResult indicating success/failure.
        """
        return self.record(self.corner_detector.detect(image, source=source))

    def record(self, result: CornerDetectionResult) -> CornerDetectionResult:
        """Keep a detection outcome, adding its view when it succeeded."""
        self._detection_results.append(result)

        if result.success and result.corners is not None:
            self._correspondences.append(
                ImageCorrespondence(
                    object_points=self._objp,
                    image_points=result.corners,
                    image_size=result.image_size,
                    source=result.image_path,
                )
            )
            logger.info(
                f"Added image: {result.name} ({len(self._correspondences)} total)"
            )
        else:
            logger.warning(
                f"Skipped image: {result.name} - {result.error_message}"
            )

        return result

    def add_correspondence(
        self,
        image_points: NDArray,
        image_size: tuple[int, int],
        source: Optional[Union[str, Path]] = None,
    ) -> None:
        """Add a view whose corners were located elsewhere.

        Args:
            image_points: (rows*cols, 2) pixel coordinates in pattern order.
            image_size: Image dimensions (width, height).
            source: Optional label for diagnostics.
        """
        self._correspondences.append(
            ImageCorrespondence(
                object_points=self._objp,
                image_points=image_points,
                image_size=(int(image_size[0]), int(image_size[1])),
                source=Path(source) if source is not None else None,
            )
        )

    @property
    def num_valid_images(self) -> int:
        """Number of accepted views."""
        return len(self._correspondences)

    @property
    def num_skipped_images(self) -> int:
        return sum(1 for r in self._detection_results if not r.success)

    @property
    def skip_ratio(self) -> float:
        if not self._detection_results:
            return 0.0
        return self.num_skipped_images / len(self._detection_results)

    @property
    def can_calibrate(self) -> bool:
        """Check if enough images are available for calibration."""
        return self.num_valid_images >= max(1, self.config.min_images)

    def clear(self) -> None:
        """Clear all added images and reset calibrator."""
        self._correspondences = CorrespondenceSet()
        self._detection_results.clear()
        logger.info("Calibrator cleared")

    def _initial_camera_matrix(
        self, image_size: tuple[int, int]
    ) -> Optional[NDArray[np.float64]]:
        config = self.config
        if config.use_intrinsic_guess:
            aspect_ratio = 1.0 if config.same_focal_length else 0.0
            return cv2.initCameraMatrix2D(
                self._correspondences.object_points,
                self._correspondences.image_points,
                image_size,
                aspect_ratio,
            )
        if config.fix_aspect_ratio or config.same_focal_length:
            # Only the fx/fy ratio of this matrix is used
            return np.eye(3, dtype=np.float64)
        return None

    def calibrate(self) -> CalibrationResult:
        """Run camera calibration.

        Returns:
            CalibrationResult with intrinsic parameters and per-view poses.

        Raises:
            NoValidDetectionsError: If no view was accepted.
            InsufficientImagesError: If fewer than ``min_images`` views.
            InconsistentImageSizeError: If views differ in resolution.
        """
        if self.num_valid_images == 0:
            raise NoValidDetectionsError(
                f"No valid detections: checkerboard "
                f"{self.config.checkerboard.cols}x{self.config.checkerboard.rows} "
                f"not found in any of {len(self._detection_results)} images"
            )
        if not self.can_calibrate:
            raise InsufficientImagesError(
                f"Need at least {self.config.min_images} images, "
                f"have {self.num_valid_images}"
            )

        image_size = self._correspondences.image_size()

        if self.skip_ratio > self.config.max_skip_ratio:
            logger.warning(
                f"Skipped {self.num_skipped_images}/{len(self._detection_results)} "
                f"images without a detectable checkerboard"
            )

        logger.info(
            f"Starting calibration with {self.num_valid_images} images, "
            f"image size: {image_size}"
        )

        flags = self.config.get_calibration_flags()
        initial_matrix = self._initial_camera_matrix(image_size)

        object_points = self._correspondences.object_points
        image_points = self._correspondences.image_points

        ret, camera_matrix, dist_coeffs, rvecs, tvecs = cv2.calibrateCamera(
            object_points,
            image_points,
            image_size,
            initial_matrix,
            None,
            flags=flags,
            criteria=self.config.criteria,
        )

        per_image_errors = []
        for i in range(len(object_points)):
            projected, _ = cv2.projectPoints(
                object_points[i],
                rvecs[i],
                tvecs[i],
                camera_matrix,
                dist_coeffs,
            )
            error = cv2.norm(
                image_points[i].reshape(-1, 2),
                projected.reshape(-1, 2).astype(np.float32),
                cv2.NORM_L2,
            ) / len(projected)
            per_image_errors.append(error)

        logger.info(f"Reprojection error camera= {ret:.6f}")

        intrinsic = CameraIntrinsic(
            camera_matrix=camera_matrix,
            distortion_coeffs=dist_coeffs,
            image_size=image_size,
            reprojection_error=ret,
        )

        return CalibrationResult(
            intrinsic=intrinsic,
            rotation_vectors=np.array(rvecs).reshape(-1, 3),
            translation_vectors=np.array(tvecs).reshape(-1, 3),
            per_image_errors=tuple(per_image_errors),
            checkerboard_config=self.config.checkerboard,
            num_images_used=self.num_valid_images,
        )

    def get_detection_results(self) -> list[CornerDetectionResult]:
        """Get all corner detection results."""
        return self._detection_results.copy()

    def get_skipped_detections(self) -> list[CornerDetectionResult]:
        """Get only failed corner detections."""
        return [r for r in self._detection_results if not r.success]
