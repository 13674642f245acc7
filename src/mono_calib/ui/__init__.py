"""Preview windows."""

from mono_calib.ui.viewer import KEY_ENTER, Viewer

__all__ = [
    "KEY_ENTER",
    "Viewer",
]
