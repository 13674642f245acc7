"""
Core data types for camera calibration.

This module defines the fundamental data structures used throughout
the mono-calib library: the checkerboard target, camera parameters,
calibration results and the parameter record written to disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import cv2
import numpy as np
from numpy.typing import NDArray


def _frozen_array(values, dtype=np.float64) -> NDArray:
    array = np.array(values, dtype=dtype, copy=True)
    array.setflags(write=False)
    return array


@dataclass
class CheckerboardConfig:
    """Configuration for checkerboard calibration target.

    Attributes:
        rows: Number of inner corners in the vertical direction.
        cols: Number of inner corners in the horizontal direction.
        square_size: Edge length of one square in world units.

    Example:
        A board of 8x6 squares has 7x5 inner corners:
        >>> config = CheckerboardConfig(rows=5, cols=7)
    """
    rows: int
    cols: int
    square_size: float = 1.0

    def __post_init__(self) -> None:
        if self.rows <= 0:
            raise ValueError(f"rows must be > 0, got {self.rows}")
        if self.cols <= 0:
            raise ValueError(f"cols must be > 0, got {self.cols}")
        if self.square_size <= 0:
            raise ValueError(f"square_size must be > 0, got {self.square_size}")

    @property
    def pattern_size(self) -> tuple[int, int]:
        """OpenCV-compatible pattern size (cols, rows)."""
        return (self.cols, self.rows)

    @property
    def num_corners(self) -> int:
        """Total number of inner corners."""
        return self.rows * self.cols

    def generate_object_points(self) -> NDArray[np.float32]:
        """Generate 3D object points for the checkerboard.

        Points are ordered the way OpenCV reports corners: x advances
        fastest over the columns, then y over the rows.

        Returns:
            Array of shape (rows*cols, 3) with Z=0 for all points.
        """
        objp = np.zeros((self.num_corners, 3), dtype=np.float32)
        objp[:, :2] = np.mgrid[0:self.cols, 0:self.rows].T.reshape(-1, 2)
        objp *= self.square_size
        return objp


@dataclass(frozen=True)
class CameraIntrinsic:
    """Camera intrinsic parameters.

    Attributes:
        camera_matrix: 3x3 camera matrix K containing fx, fy, cx, cy.
        distortion_coeffs: Distortion coefficients [k1, k2, p1, p2, k3, ...].
        image_size: Image dimensions as (width, height).
        reprojection_error: RMS reprojection error in pixels.
    """
    camera_matrix: NDArray[np.float64]
    distortion_coeffs: NDArray[np.float64]
    image_size: tuple[int, int]
    reprojection_error: float = 0.0

    def __post_init__(self) -> None:
        camera_matrix = np.asarray(self.camera_matrix)
        if camera_matrix.shape != (3, 3):
            raise ValueError(
                f"camera_matrix must be 3x3, got {camera_matrix.shape}"
            )
        object.__setattr__(self, "camera_matrix", _frozen_array(camera_matrix))
        object.__setattr__(
            self,
            "distortion_coeffs",
            _frozen_array(np.asarray(self.distortion_coeffs).ravel()),
        )
        object.__setattr__(
            self, "image_size", (int(self.image_size[0]), int(self.image_size[1]))
        )
        object.__setattr__(self, "reprojection_error", float(self.reprojection_error))

    @property
    def fx(self) -> float:
        """Focal length in x direction (pixels)."""
        return float(self.camera_matrix[0, 0])

    @property
    def fy(self) -> float:
        """Focal length in y direction (pixels)."""
        return float(self.camera_matrix[1, 1])

    @property
    def cx(self) -> float:
        """Principal point x coordinate (pixels)."""
        return float(self.camera_matrix[0, 2])

    @property
    def cy(self) -> float:
        """Principal point y coordinate (pixels)."""
        return float(self.camera_matrix[1, 2])

    def _coeff(self, index: int) -> float:
        if len(self.distortion_coeffs) > index:
            return float(self.distortion_coeffs[index])
        return 0.0

    @property
    def k1(self) -> float:
        return self._coeff(0)

    @property
    def k2(self) -> float:
        return self._coeff(1)

    @property
    def p1(self) -> float:
        return self._coeff(2)

    @property
    def p2(self) -> float:
        return self._coeff(3)

    @property
    def k3(self) -> float:
        return self._coeff(4)


@dataclass(frozen=True)
class CalibrationResult:
    """Complete single-camera calibration result.

    Produced once by :meth:`IntrinsicCalibrator.calibrate`; every array
    it holds is read-only.

    Attributes:
        intrinsic: Camera matrix, distortion and RMS error.
        rotation_vectors: (N, 3) Rodrigues vectors, one per accepted view.
        translation_vectors: (N, 3) translations, one per accepted view.
        per_image_errors: Mean reprojection error of each accepted view.
    """
    intrinsic: CameraIntrinsic
    rotation_vectors: NDArray[np.float64]
    translation_vectors: NDArray[np.float64]
    per_image_errors: tuple[float, ...] = ()
    checkerboard_config: Optional[CheckerboardConfig] = None
    num_images_used: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        rvecs = np.asarray(self.rotation_vectors, dtype=np.float64).reshape(-1, 3)
        tvecs = np.asarray(self.translation_vectors, dtype=np.float64).reshape(-1, 3)
        if len(rvecs) != len(tvecs):
            raise ValueError(
                f"rotation/translation count mismatch: {len(rvecs)} != {len(tvecs)}"
            )
        object.__setattr__(self, "rotation_vectors", _frozen_array(rvecs))
        object.__setattr__(self, "translation_vectors", _frozen_array(tvecs))
        object.__setattr__(
            self, "per_image_errors", tuple(float(e) for e in self.per_image_errors)
        )

    @property
    def reprojection_error(self) -> float:
        return self.intrinsic.reprojection_error

    @property
    def num_views(self) -> int:
        return len(self.rotation_vectors)

    def rotation_matrix(self, view: int) -> NDArray[np.float64]:
        """3x3 rotation matrix of one view."""
        R, _ = cv2.Rodrigues(self.rotation_vectors[view])
        return R

    def summary(self) -> str:
        """Generate a human-readable summary of the calibration."""
        intrinsic = self.intrinsic
        lines = [
            "=" * 50,
            "Camera Calibration Result",
            "=" * 50,
            f"Timestamp: {self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "Intrinsic Parameters:",
            f"  Image Size: {intrinsic.image_size[0]} x {intrinsic.image_size[1]}",
            f"  Focal Length: fx={intrinsic.fx:.2f}, fy={intrinsic.fy:.2f}",
            f"  Principal Point: cx={intrinsic.cx:.2f}, cy={intrinsic.cy:.2f}",
            f"  Reprojection Error: {intrinsic.reprojection_error:.4f} pixels",
            "",
            "Distortion Coefficients:",
            f"  k1={intrinsic.k1:.6f}, k2={intrinsic.k2:.6f}",
            f"  p1={intrinsic.p1:.6f}, p2={intrinsic.p2:.6f}",
            f"  k3={intrinsic.k3:.6f}",
        ]

        if self.checkerboard_config:
            lines.extend([
                "",
                "Checkerboard Configuration:",
                f"  Pattern: {self.checkerboard_config.cols} x {self.checkerboard_config.rows}",
                f"  Square Size: {self.checkerboard_config.square_size}",
            ])

        lines.extend([
            "",
            f"Images Used: {self.num_images_used}",
            "=" * 50,
        ])

        return "\n".join(lines)


@dataclass(frozen=True)
class CalibrationParameters:
    """The four parameter blocks persisted by :class:`CalibrationFile`.

    Attributes:
        camera_matrix: 3x3 camera matrix.
        distortion_coeffs: 1xN distortion coefficients.
        rotation: (N, 3) per-view rotation vectors.
        translation: (N, 3) per-view translation vectors.
    """
    camera_matrix: NDArray[np.float64]
    distortion_coeffs: NDArray[np.float64]
    rotation: NDArray[np.float64]
    translation: NDArray[np.float64]

    def __post_init__(self) -> None:
        camera_matrix = np.asarray(self.camera_matrix, dtype=np.float64)
        if camera_matrix.shape != (3, 3):
            raise ValueError(f"camera_matrix must be 3x3, got {camera_matrix.shape}")
        object.__setattr__(self, "camera_matrix", _frozen_array(camera_matrix))
        object.__setattr__(
            self,
            "distortion_coeffs",
            _frozen_array(np.asarray(self.distortion_coeffs).reshape(1, -1)),
        )
        object.__setattr__(
            self, "rotation", _frozen_array(np.asarray(self.rotation).reshape(-1, 3))
        )
        object.__setattr__(
            self, "translation", _frozen_array(np.asarray(self.translation).reshape(-1, 3))
        )

    @classmethod
    def from_result(
        cls,
        result: CalibrationResult,
        camera_matrix: Optional[NDArray[np.float64]] = None,
    ) -> CalibrationParameters:
        """Build the persisted record from a calibration result.

        Args:
            result: Calibration result.
            camera_matrix: Matrix to store instead of the calibrated one,
                typically the optimized matrix used for undistortion.
        """
        if camera_matrix is None:
            camera_matrix = result.intrinsic.camera_matrix
        return cls(
            camera_matrix=camera_matrix,
            distortion_coeffs=result.intrinsic.distortion_coeffs,
            rotation=result.rotation_vectors,
            translation=result.translation_vectors,
        )


# Custom exceptions
class CalibrationError(Exception):
    """Base exception for calibration errors."""
    pass


class InsufficientImagesError(CalibrationError):
    """Raised when there are not enough images for calibration."""
    pass


class NoValidDetectionsError(InsufficientImagesError):
    """Raised when no image produced a usable checkerboard detection."""
    pass


class NoImagesFoundError(InsufficientImagesError):
    """Raised when the image source matches no files."""
    pass


class InconsistentImageSizeError(CalibrationError):
    """Raised when accepted views do not share one resolution."""
    pass


class InvalidParameterError(CalibrationError):
    """Raised when invalid parameters are provided."""
    pass


class FileFormatError(CalibrationError):
    """Raised when file format is invalid or unsupported."""
    pass


class PersistenceError(FileFormatError):
    """Raised when calibration parameters cannot be written."""
    pass
