"""
OpenCV FileStorage support for calibration parameters.

YAML is the default output format. Files look like::

    %YAML:1.0
    ---
    CAMERA_MATRIX: !!opencv-matrix
       rows: 3
       cols: 3
       dt: d
       data: [ ... ]
    DISTORTION_COEFFICIENTS: !!opencv-matrix
       ...

and are read back in C++ with ``cv::FileStorage fs(path, READ)``.
The same writer handles ``.xml`` since FileStorage picks the syntax
from the extension.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from numpy.typing import NDArray

from mono_calib.core.types import CalibrationParameters, FileFormatError, PersistenceError
from mono_calib.io.formats.base import FieldNames, ensure_writable, read_parameters
from mono_calib.utils.logging import get_logger

logger = get_logger("io.formats.opencv")


class OpenCVStorageFormat:
    """cv2.FileStorage reader/writer (YAML or XML)."""

    EXTENSIONS = (".yml", ".yaml", ".xml")

    @classmethod
    def save(
        cls,
        path: Union[str, Path],
        params: CalibrationParameters,
        field_names: FieldNames = FieldNames.DEFAULT,
    ) -> None:
        """Write the four parameter fields.

        Raises:
            PersistenceError: If the file cannot be opened for writing.
        """
        path = Path(path)
        ensure_writable(path)

        try:
            fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_WRITE)
        except cv2.error as e:
            raise PersistenceError(f"Could not open {path} for writing: {e}") from e
        if not fs.isOpened():
            raise PersistenceError(f"Could not open {path} for writing")

        try:
            for name, value in field_names.items(params):
                fs.write(name, value)
        finally:
            fs.release()

        logger.debug(f"Wrote {len(field_names.as_tuple())} fields to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> CalibrationParameters:
        """Read parameters written with either field naming.

        Raises:
            FileFormatError: If the file cannot be parsed.
        """
        path = Path(path)
        if not path.exists():
            raise FileFormatError(f"File not found: {path}")

        try:
            fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
        except cv2.error as e:
            raise FileFormatError(f"Invalid FileStorage file {path}: {e}") from e
        if not fs.isOpened():
            raise FileFormatError(f"Could not open {path} for reading")

        logger.debug(f"Reading FileStorage parameters: {path}")

        def lookup(name: str) -> Optional[NDArray]:
            node = fs.getNode(name)
            if node.empty() or node.isNone():
                return None
            return np.asarray(node.mat(), dtype=np.float64)

        try:
            return read_parameters(lookup, path)
        finally:
            fs.release()

    @classmethod
    def is_valid_file(cls, path: Union[str, Path]) -> bool:
        try:
            cls.load(path)
        except FileFormatError:
            return False
        return True
