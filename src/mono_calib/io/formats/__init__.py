"""Export format implementations."""

from mono_calib.io.formats.base import FieldNames
from mono_calib.io.formats.hdf5_format import HDF5Format
from mono_calib.io.formats.json_format import JSONFormat
from mono_calib.io.formats.mat_format import MATFormat
from mono_calib.io.formats.opencv_format import OpenCVStorageFormat

__all__ = [
    "FieldNames",
    "HDF5Format",
    "JSONFormat",
    "MATFormat",
    "OpenCVStorageFormat",
]
