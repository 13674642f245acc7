"""
OpenCV preview windows used to pace the calibration passes.

A headless viewer turns every call into a no-op so the pipeline can
run in tests and on machines without a display.
"""

from __future__ import annotations

from typing import Optional

import cv2
from numpy.typing import NDArray

from mono_calib.utils.logging import get_logger

logger = get_logger("ui.viewer")

KEY_ENTER = 13


class Viewer:
    """Thin wrapper over ``cv2.imshow`` / ``cv2.waitKey``.

    Example:
        >>> viewer = Viewer()
        >>> viewer.show("Image", frame)
        >>> viewer.wait_for_key(KEY_ENTER)
        >>> viewer.close_all()
    """

    def __init__(self, headless: bool = False):
        self.headless = headless

    def show(
        self,
        window: str,
        image: NDArray,
        position: Optional[tuple[int, int]] = None,
    ) -> None:
        if self.headless:
            return
        cv2.imshow(window, image)
        if position is not None:
            cv2.moveWindow(window, position[0], position[1])

    def wait_for_key(self, key: Optional[int] = None) -> None:
        """Block until ``key`` is pressed, or any key when ``key`` is None."""
        if self.headless:
            return
        if key is None:
            cv2.waitKey(0)
            return
        logger.debug(f"Waiting for key code {key}")
        while (cv2.waitKey(1) & 0xFF) != key:
            pass

    def close_all(self) -> None:
        if self.headless:
            return
        cv2.destroyAllWindows()
