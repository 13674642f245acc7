"""
End-to-end single-camera calibration.

The pipeline runs four phases in order:

1. detection: every image is searched for the checkerboard and the
   accepted views are collected,
2. calibration: intrinsics, distortion and per-view poses are estimated
   and the refined (optimal) camera matrix is derived,
3. persistence: the parameters are written to the configured file,
4. verification: each image is undistorted and shown next to the
   original (and optionally saved).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from mono_calib.core.corner_detector import (
    CornerDetectionResult,
    CornerDetector,
    DetectionFailure,
)
from mono_calib.core.intrinsic import IntrinsicCalibrationConfig, IntrinsicCalibrator
from mono_calib.core.types import (
    CalibrationParameters,
    CalibrationResult,
    CheckerboardConfig,
    InvalidParameterError,
    NoImagesFoundError,
)
from mono_calib.core.undistort import (
    OptimizedIntrinsics,
    Undistorter,
    compute_optimal_intrinsics,
)
from mono_calib.io.calibration_file import CalibrationFile
from mono_calib.io.formats.base import FieldNames
from mono_calib.io.image_loader import ImageLoader
from mono_calib.ui.viewer import KEY_ENTER, Viewer
from mono_calib.utils.logging import get_logger

logger = get_logger("pipeline")

DETECTION_WINDOW = "Image"
BEFORE_WINDOW = "Image before rectification"
AFTER_WINDOW = "Image after rectification"


@dataclass
class PipelineConfig:
    """Everything one calibration run needs.

    Attributes:
        image_source: Directory of images or a glob pattern.
        output_path: Parameter file to write; its directory must exist.
        calibration: Checkerboard and optimizer settings.
        alpha: Free scaling parameter for the refined camera matrix.
        headless: Skip preview windows and keypress waits.
        undistorted_dir: Where to save corrected images, if anywhere.
        field_names: Names of the persisted fields.
    """
    image_source: Union[str, Path]
    output_path: Union[str, Path]
    calibration: IntrinsicCalibrationConfig
    alpha: float = 1.0
    headless: bool = False
    undistorted_dir: Optional[Path] = None
    field_names: FieldNames = FieldNames.DEFAULT

    def __post_init__(self) -> None:
        if not 0.0 <= self.alpha <= 1.0:
            raise InvalidParameterError(f"alpha must be in [0, 1], got {self.alpha}")
        self.output_path = Path(self.output_path)
        if self.undistorted_dir is not None:
            self.undistorted_dir = Path(self.undistorted_dir)

    @property
    def checkerboard(self) -> CheckerboardConfig:
        return self.calibration.checkerboard


@dataclass
class PipelineResult:
    """Outputs of a complete run."""
    calibration: CalibrationResult
    optimized: OptimizedIntrinsics
    output_path: Path
    detections: list[CornerDetectionResult] = field(default_factory=list)
    undistorted_paths: list[Path] = field(default_factory=list)

    @property
    def skipped(self) -> list[CornerDetectionResult]:
        return [d for d in self.detections if not d.success]

    def skip_reasons(self) -> dict[DetectionFailure, int]:
        counts: dict[DetectionFailure, int] = {}
        for detection in self.skipped:
            counts[detection.failure] = counts.get(detection.failure, 0) + 1
        return counts


class CalibrationPipeline:
    """Run detection, calibration, persistence and verification.

    Example:
        >>> config = PipelineConfig(
        ...     image_source="images/*.png",
        ...     output_path="calibration_setup/intrinsics.yml",
        ...     calibration=IntrinsicCalibrationConfig(
        ...         checkerboard=CheckerboardConfig(rows=5, cols=7)
        ...     ),
        ...     headless=True,
        ... )
        >>> result = CalibrationPipeline(config).run()
    """

    def __init__(self, config: PipelineConfig, viewer: Optional[Viewer] = None):
        self.config = config
        self.viewer = viewer or Viewer(headless=config.headless)
        self.calibrator = IntrinsicCalibrator(config.calibration)
        self._image_loader = ImageLoader()

    def list_images(self) -> list[Path]:
        paths = ImageLoader.list_images(self.config.image_source)
        if not paths:
            raise NoImagesFoundError(
                f"No images found for: {self.config.image_source}"
            )
        return paths

    def detect(self, paths: list[Path]) -> list[CornerDetectionResult]:
        """Detection pass with an overlay preview of every frame."""
        logger.info("Running camera calibration ...")
        results = []
        for path in paths:
            frame = self._image_loader.load(path)
            if frame is None:
                results.append(
                    self.calibrator.record(CornerDetector.load_failure(path))
                )
                continue

            result = self.calibrator.add_image(frame, source=path)
            results.append(result)

            annotated = self.calibrator.corner_detector.draw_corners(frame, result)
            self.viewer.show(DETECTION_WINDOW, annotated, (0, 0))
            self.viewer.wait_for_key(KEY_ENTER)

        self.viewer.close_all()

        accepted = sum(1 for r in results if r.success)
        logger.info(f"Corner detection: {accepted}/{len(results)} images accepted")
        return results

    def calibrate(self) -> tuple[CalibrationResult, OptimizedIntrinsics]:
        result = self.calibrator.calibrate()
        optimized = compute_optimal_intrinsics(result.intrinsic, alpha=self.config.alpha)
        return result, optimized

    def persist(
        self,
        result: CalibrationResult,
        optimized: OptimizedIntrinsics,
    ) -> Path:
        """Write the refined camera matrix with distortion and poses."""
        params = CalibrationParameters.from_result(
            result, camera_matrix=optimized.camera_matrix
        )
        return CalibrationFile.save(
            self.config.output_path, params, field_names=self.config.field_names
        )

    def verify(
        self,
        paths: list[Path],
        result: CalibrationResult,
        optimized: OptimizedIntrinsics,
    ) -> list[Path]:
        """Show each image before and after undistortion.

        Returns:
            Paths of the corrected images written to ``undistorted_dir``.
        """
        logger.info("Running images distortion rectification...")
        undistorter = Undistorter(result.intrinsic, optimized)
        saved = []

        for path in paths:
            original = self._image_loader.load(path)
            if original is None:
                continue

            self.viewer.show(BEFORE_WINDOW, original, (0, 0))
            self.viewer.wait_for_key()

            corrected = undistorter.undistort(original)

            self.viewer.show(AFTER_WINDOW, corrected, (900, 0))
            self.viewer.wait_for_key()
            self.viewer.close_all()

            if self.config.undistorted_dir is not None:
                target = self.config.undistorted_dir / path.name
                if ImageLoader.save(target, corrected):
                    saved.append(target)

        return saved

    def run(self) -> PipelineResult:
        """Run every phase and return the collected outputs.

        Raises:
            CalibrationError: On missing input, unusable detections or
                a parameter file that cannot be written.
        """
        paths = self.list_images()
        detections = self.detect(paths)
        result, optimized = self.calibrate()
        output_path = self.persist(result, optimized)
        readable = [
            d.image_path for d in detections
            if d.failure is not DetectionFailure.LOAD_FAILED
        ]
        undistorted_paths = self.verify(readable, result, optimized)

        logger.info(
            f"End of calibration phase, parameters are in {output_path.parent}"
        )

        return PipelineResult(
            calibration=result,
            optimized=optimized,
            output_path=output_path,
            detections=detections,
            undistorted_paths=undistorted_paths,
        )
