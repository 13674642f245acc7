"""
JSON format support for calibration parameters.

JSON format is human-readable and widely supported.
It's useful for configuration, debugging, and interoperability.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from mono_calib.core.types import CalibrationParameters, FileFormatError, PersistenceError
from mono_calib.io.formats.base import FieldNames, ensure_writable, read_parameters
from mono_calib.utils.logging import get_logger

logger = get_logger("io.formats.json")


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy arrays."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        return super().default(obj)


class JSONFormat:
    """JSON format reader/writer for calibration parameters.

    Arrays are stored as nested lists, keeping their 2D shape:

        {
            "format_type": "mono-calib",
            "format_version": "1.0",
            "CAMERA_MATRIX": [[fx, 0, cx], [0, fy, cy], [0, 0, 1]],
            "DISTORTION_COEFFICIENTS": [[k1, k2, p1, p2, k3]],
            "ROTATION_VECTORS": [[rx, ry, rz], ...],
            "TRANSLATION_VECTORS": [[tx, ty, tz], ...]
        }

    Example (Python):
        >>> with open('calibration.json', 'r') as f:
        ...     data = json.load(f)
        >>> K = np.array(data['CAMERA_MATRIX'])
    """

    EXTENSIONS = (".json",)
    VERSION = "1.0"

    @classmethod
    def save(
        cls,
        path: Union[str, Path],
        params: CalibrationParameters,
        field_names: FieldNames = FieldNames.DEFAULT,
        indent: int = 2,
    ) -> None:
        path = Path(path)
        ensure_writable(path)

        data: dict[str, Any] = {
            "format_type": "mono-calib",
            "format_version": cls.VERSION,
        }
        for name, value in field_names.items(params):
            data[name] = value

        # Serialize before opening so a failure leaves no partial file
        text = json.dumps(data, indent=indent, cls=NumpyEncoder)

        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e

        logger.debug(f"Wrote JSON parameters to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> CalibrationParameters:
        """Load calibration parameters from JSON file.

        Raises:
            FileFormatError: If file format is invalid.
        """
        path = Path(path)

        if not path.exists():
            raise FileFormatError(f"File not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FileFormatError(f"Invalid JSON format: {e}") from e

        if not isinstance(data, dict):
            raise FileFormatError(f"Expected a JSON object in {path}")

        format_type = data.get("format_type", "")
        if format_type != "mono-calib":
            logger.warning(f"Unknown format type: {format_type}")

        def lookup(name: str) -> Optional[np.ndarray]:
            if name not in data:
                return None
            return np.array(data[name], dtype=np.float64)

        return read_parameters(lookup, path)

    @classmethod
    def is_valid_file(cls, path: Union[str, Path]) -> bool:
        try:
            cls.load(path)
        except FileFormatError:
            return False
        return True
