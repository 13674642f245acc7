"""Utility functions."""

from mono_calib.utils.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
