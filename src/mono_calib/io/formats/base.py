"""
Shared pieces of the parameter file formats: field naming and the
pre-write checks every writer runs before touching the disk.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from mono_calib.core.types import CalibrationParameters, FileFormatError, PersistenceError


@dataclass(frozen=True)
class FieldNames:
    """Names of the four persisted fields, in write order."""
    camera_matrix: str
    distortion_coeffs: str
    rotation: str
    translation: str

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.camera_matrix, self.distortion_coeffs, self.rotation, self.translation)

    def items(self, params: CalibrationParameters) -> list[tuple[str, NDArray[np.float64]]]:
        """(name, array) pairs in write order; arrays are writable copies."""
        return [
            (self.camera_matrix, params.camera_matrix.copy()),
            (self.distortion_coeffs, params.distortion_coeffs.copy()),
            (self.rotation, params.rotation.copy()),
            (self.translation, params.translation.copy()),
        ]


FieldNames.DEFAULT = FieldNames(
    camera_matrix="CAMERA_MATRIX",
    distortion_coeffs="DISTORTION_COEFFICIENTS",
    rotation="ROTATION_VECTORS",
    translation="TRANSLATION_VECTORS",
)

# Stereo-shaped names written by earlier releases, kept for existing readers
FieldNames.LEGACY = FieldNames(
    camera_matrix="CAMERA_MATRIX_LEFT",
    distortion_coeffs="DISTCOEFFS_RIGHT",
    rotation="ROTATION_MATRIX",
    translation="TRASLATION_VECTOR",
)

KNOWN_FIELD_NAMES = (FieldNames.DEFAULT, FieldNames.LEGACY)


def ensure_writable(path: Path) -> None:
    """Check that ``path`` can be created or overwritten.

    No directory is created.

    Raises:
        PersistenceError: If the directory is missing or not writable,
            or the path is an existing directory or read-only file.
    """
    directory = path.parent if str(path.parent) else Path(".")
    if not directory.is_dir():
        raise PersistenceError(f"Output directory does not exist: {directory}")
    if path.is_dir():
        raise PersistenceError(f"Output path is a directory: {path}")
    if not os.access(directory, os.W_OK):
        raise PersistenceError(f"Output directory is not writable: {directory}")
    if path.exists() and not os.access(path, os.W_OK):
        raise PersistenceError(f"Output file is not writable: {path}")


def read_parameters(
    lookup: Callable[[str], Optional[NDArray]],
    source: Path,
) -> CalibrationParameters:
    """Build parameters from whichever known naming the file uses.

    Args:
        lookup: Returns the array stored under a name, or None.
        source: File being read, for error messages.

    Raises:
        FileFormatError: If no complete set of fields is present.
    """
    for names in KNOWN_FIELD_NAMES:
        if lookup(names.camera_matrix) is None:
            continue
        values = [lookup(name) for name in names.as_tuple()]
        missing = [name for name, value in zip(names.as_tuple(), values) if value is None]
        if missing:
            raise FileFormatError(f"Missing fields {missing} in {source}")
        camera_matrix, distortion_coeffs, rotation, translation = values
        return CalibrationParameters(
            camera_matrix=np.asarray(camera_matrix, dtype=np.float64),
            distortion_coeffs=np.asarray(distortion_coeffs, dtype=np.float64),
            rotation=np.asarray(rotation, dtype=np.float64),
            translation=np.asarray(translation, dtype=np.float64),
        )
    raise FileFormatError(f"No camera matrix field found in {source}")
