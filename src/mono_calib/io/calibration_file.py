"""
Unified calibration file interface.

Provides a single entry point for saving/loading calibration
parameters in multiple formats (OpenCV YAML/XML, JSON, HDF5, MAT).
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Union

from mono_calib.core.types import CalibrationParameters, FileFormatError
from mono_calib.io.formats.base import FieldNames
from mono_calib.io.formats.hdf5_format import HDF5Format
from mono_calib.io.formats.json_format import JSONFormat
from mono_calib.io.formats.mat_format import MATFormat
from mono_calib.io.formats.opencv_format import OpenCVStorageFormat
from mono_calib.utils.logging import get_logger

logger = get_logger("io.calibration_file")


class CalibrationFileFormat(Enum):
    """Supported calibration file formats."""
    OPENCV = "opencv"
    JSON = "json"
    HDF5 = "hdf5"
    MAT = "mat"

    @classmethod
    def from_extension(cls, ext: str) -> "CalibrationFileFormat":
        """Get format from file extension.

        Args:
            ext: File extension (with or without leading dot).

        Raises:
            ValueError: If extension is not recognized.
        """
        ext = ext.lower().lstrip(".")
        mapping = {
            "yml": cls.OPENCV,
            "yaml": cls.OPENCV,
            "xml": cls.OPENCV,
            "json": cls.JSON,
            "h5": cls.HDF5,
            "hdf5": cls.HDF5,
            "mat": cls.MAT,
        }
        if ext not in mapping:
            raise ValueError(f"Unknown file extension: {ext}")
        return mapping[ext]


class CalibrationFile:
    """Unified interface for calibration file operations.

    Example:
        >>> CalibrationFile.save("intrinsics.yml", params)   # OpenCV YAML
        >>> CalibrationFile.save("intrinsics.h5", params)    # HDF5
        >>> params = CalibrationFile.load("intrinsics.yml")
    """

    DEFAULT_EXTENSION = ".yml"

    _handlers = {
        CalibrationFileFormat.OPENCV: OpenCVStorageFormat,
        CalibrationFileFormat.JSON: JSONFormat,
        CalibrationFileFormat.HDF5: HDF5Format,
        CalibrationFileFormat.MAT: MATFormat,
    }

    @classmethod
    def resolve(
        cls,
        path: Union[str, Path],
    ) -> tuple[Path, CalibrationFileFormat]:
        """Pick the format for a path; a bare name gets ``.yml``.

        Raises:
            FileFormatError: If the extension is not supported.
        """
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(cls.DEFAULT_EXTENSION)
        try:
            return path, CalibrationFileFormat.from_extension(path.suffix)
        except ValueError as e:
            raise FileFormatError(
                f"Unsupported calibration file extension '{path.suffix}', "
                f"expected one of {cls.get_supported_extensions()}"
            ) from e

    @classmethod
    def save(
        cls,
        path: Union[str, Path],
        params: CalibrationParameters,
        format: CalibrationFileFormat | None = None,
        field_names: FieldNames = FieldNames.DEFAULT,
    ) -> Path:
        """Write calibration parameters, replacing any existing file.

        Args:
            path: Output file path. Its directory must already exist.
            params: Parameters to save.
            format: File format (auto-detected from extension if None).
            field_names: Names of the four fields.

        Returns:
            Path to saved file.

        Raises:
            PersistenceError: If the file cannot be written.
            FileFormatError: If the format cannot be determined.
        """
        if format is None:
            path, format = cls.resolve(path)
        else:
            path = Path(path)

        cls._handlers[format].save(path, params, field_names=field_names)

        logger.info(f"Write Done in file → {path.name}")
        return path

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        format: CalibrationFileFormat | None = None,
    ) -> CalibrationParameters:
        """Load calibration parameters from file.

        Raises:
            FileFormatError: If file cannot be loaded.
        """
        path = Path(path)

        if not path.exists():
            raise FileFormatError(f"File not found: {path}")

        if format is None:
            try:
                format = CalibrationFileFormat.from_extension(path.suffix)
            except ValueError:
                format = cls._detect_format(path)

        params = cls._handlers[format].load(path)
        logger.info(f"Loaded calibration from {format.value}: {path}")
        return params

    @classmethod
    def _detect_format(cls, path: Path) -> CalibrationFileFormat:
        for format, handler in cls._handlers.items():
            if handler.is_valid_file(path):
                return format

        raise FileFormatError(f"Could not detect format of: {path}")

    @classmethod
    def get_supported_extensions(cls) -> list[str]:
        """Get list of supported file extensions."""
        return [ext for handler in cls._handlers.values() for ext in handler.EXTENSIONS]
