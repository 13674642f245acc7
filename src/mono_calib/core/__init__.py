"""Core calibration algorithms - no display or file-format dependencies."""

from mono_calib.core.types import (
    CalibrationError,
    CalibrationParameters,
    CalibrationResult,
    CameraIntrinsic,
    CheckerboardConfig,
)
from mono_calib.core.corner_detector import (
    CornerDetectionResult,
    CornerDetector,
    DetectionFailure,
)
from mono_calib.core.intrinsic import (
    CorrespondenceSet,
    ImageCorrespondence,
    IntrinsicCalibrationConfig,
    IntrinsicCalibrator,
)
from mono_calib.core.undistort import (
    OptimizedIntrinsics,
    Undistorter,
    compute_optimal_intrinsics,
)

__all__ = [
    # Types
    "CalibrationError",
    "CalibrationParameters",
    "CalibrationResult",
    "CameraIntrinsic",
    "CheckerboardConfig",
    # Corner Detection
    "CornerDetectionResult",
    "CornerDetector",
    "DetectionFailure",
    # Intrinsic
    "CorrespondenceSet",
    "ImageCorrespondence",
    "IntrinsicCalibrationConfig",
    "IntrinsicCalibrator",
    # Undistortion
    "OptimizedIntrinsics",
    "Undistorter",
    "compute_optimal_intrinsics",
]
