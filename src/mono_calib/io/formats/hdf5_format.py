"""
HDF5 format support for calibration parameters.

HDF5 is a cross-platform, widely supported format for scientific data.
It can be read by Python (h5py), MATLAB, Octave, Julia, R, and many other tools.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import h5py
import numpy as np

from mono_calib.core.types import CalibrationParameters, FileFormatError, PersistenceError
from mono_calib.io.formats.base import FieldNames, ensure_writable, read_parameters
from mono_calib.utils.logging import get_logger

logger = get_logger("io.formats.hdf5")


class HDF5Format:
    """HDF5 format reader/writer for calibration parameters.

    File structure (default names):
        /CAMERA_MATRIX            (3,3) float64
        /DISTORTION_COEFFICIENTS  (1,n) float64
        /ROTATION_VECTORS         (N,3) float64
        /TRANSLATION_VECTORS      (N,3) float64
        attrs: format_type, format_version, field_order

    Example (Octave/MATLAB):
        K = h5read('calibration.h5', '/CAMERA_MATRIX');
    """

    EXTENSIONS = (".h5", ".hdf5")
    VERSION = "1.0"

    @classmethod
    def save(
        cls,
        path: Union[str, Path],
        params: CalibrationParameters,
        field_names: FieldNames = FieldNames.DEFAULT,
        compression: Optional[str] = "gzip",
    ) -> None:
        """Save calibration parameters to HDF5 file.

        Args:
            path: Output file path.
            params: Parameters to save.
            field_names: Dataset names.
            compression: Compression algorithm ('gzip', 'lzf', or None).
        """
        path = Path(path)
        ensure_writable(path)

        try:
            with h5py.File(path, "w", track_order=True) as f:
                f.attrs["format_type"] = "mono-calib"
                f.attrs["format_version"] = cls.VERSION
                f.attrs["field_order"] = ",".join(field_names.as_tuple())
                for name, value in field_names.items(params):
                    f.create_dataset(name, data=value, compression=compression)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e

    @classmethod
    def load(cls, path: Union[str, Path]) -> CalibrationParameters:
        """Load calibration parameters from HDF5 file.

        Raises:
            FileFormatError: If file format is invalid.
        """
        path = Path(path)

        if not path.exists():
            raise FileFormatError(f"File not found: {path}")

        try:
            f = h5py.File(path, "r")
        except OSError as e:
            raise FileFormatError(f"Invalid HDF5 file {path}: {e}") from e

        with f:
            format_type = f.attrs.get("format_type", "")
            if format_type != "mono-calib":
                logger.warning(f"Unknown format type: {format_type}")

            def lookup(name: str) -> Optional[np.ndarray]:
                if name not in f:
                    return None
                return np.asarray(f[name][()], dtype=np.float64)

            return read_parameters(lookup, path)

    @classmethod
    def is_valid_file(cls, path: Union[str, Path]) -> bool:
        """Check if a file is a readable HDF5 parameter file."""
        path = Path(path)
        if not path.exists() or not h5py.is_hdf5(path):
            return False
        try:
            cls.load(path)
        except FileFormatError:
            return False
        return True
