"""
mono-calib: single-camera checkerboard calibration.

Detects checkerboard corners in a set of images, estimates the camera
matrix and distortion coefficients, writes them to a parameter file and
undistorts the inputs for visual verification.
"""

__version__ = "1.0.0"

from mono_calib.core.types import (
    CalibrationParameters,
    CalibrationResult,
    CameraIntrinsic,
    CheckerboardConfig,
)

__all__ = [
    "CalibrationParameters",
    "CalibrationResult",
    "CameraIntrinsic",
    "CheckerboardConfig",
    "__version__",
]
