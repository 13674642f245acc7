"""
MAT format support for calibration parameters.

MAT format is native to MATLAB and fully compatible with GNU Octave.
This implementation uses scipy.io for reading/writing MAT files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np
import scipy.io as sio

from mono_calib.core.types import CalibrationParameters, FileFormatError, PersistenceError
from mono_calib.io.formats.base import FieldNames, ensure_writable, read_parameters
from mono_calib.utils.logging import get_logger

logger = get_logger("io.formats.mat")


class MATFormat:
    """MAT (level 5) reader/writer for calibration parameters.

    Every field becomes a MATLAB variable of the same name.

    Example (Octave/MATLAB):
        >> data = load('calibration.mat');
        >> K = data.CAMERA_MATRIX;
        >> disp(['Focal length: ', num2str(K(1,1))]);
    """

    EXTENSIONS = (".mat",)

    @classmethod
    def save(
        cls,
        path: Union[str, Path],
        params: CalibrationParameters,
        field_names: FieldNames = FieldNames.DEFAULT,
    ) -> None:
        path = Path(path)
        ensure_writable(path)

        mdict = dict(field_names.items(params))

        try:
            sio.savemat(path, mdict, do_compression=True)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e

        logger.debug(f"Wrote {len(mdict)} variables to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> CalibrationParameters:
        """Load calibration parameters from MAT file.

        Raises:
            FileFormatError: If file format is invalid.
        """
        path = Path(path)

        if not path.exists():
            raise FileFormatError(f"File not found: {path}")

        try:
            # squeeze_me stays off so (1,n) and (3,3) shapes survive
            data = sio.loadmat(path)
        except (OSError, ValueError, sio.matlab.MatReadError) as e:
            raise FileFormatError(f"Failed to load MAT file: {e}") from e

        logger.debug(f"Reading MAT variables: {path}")

        def lookup(name: str) -> Optional[np.ndarray]:
            if name not in data:
                return None
            return np.asarray(data[name], dtype=np.float64)

        return read_parameters(lookup, path)

    @classmethod
    def is_valid_file(cls, path: Union[str, Path]) -> bool:
        try:
            cls.load(path)
        except FileFormatError:
            return False
        return True
