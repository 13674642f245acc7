"""Data I/O layer for calibration files and images."""

from mono_calib.io.image_loader import ImageLoader
from mono_calib.io.calibration_file import CalibrationFile, CalibrationFileFormat
from mono_calib.io.formats.base import FieldNames

__all__ = [
    "ImageLoader",
    "CalibrationFile",
    "CalibrationFileFormat",
    "FieldNames",
]
