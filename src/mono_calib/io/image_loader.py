"""
Image enumeration and loading with Unicode path support.

OpenCV's imread() has issues with non-ASCII paths on Windows, so files
are read as bytes and decoded with imdecode().
"""

from __future__ import annotations

import glob
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from numpy.typing import NDArray

from mono_calib.utils.logging import get_logger

logger = get_logger("io.image_loader")


class ImageLoader:
    """Cross-platform image loader.

    Example:
        >>> loader = ImageLoader()
        >>> paths = loader.list_images("calibration_images/*.png")
        >>> image = loader.load(paths[0])
    """

    # Extensions we expect to decode; others are attempted with a warning
    SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif"}

    @staticmethod
    def list_images(source: Union[str, Path]) -> list[Path]:
        """Enumerate image files in lexicographic order.

        Args:
            source: A directory (every file in it is taken) or a glob
                pattern such as ``images/*.jpg``.

        Returns:
            Sorted list of file paths. Empty if nothing matches.
        """
        source_path = Path(source)
        if source_path.is_dir():
            paths = [p for p in source_path.iterdir() if p.is_file()]
        else:
            paths = [Path(p) for p in glob.glob(str(source)) if Path(p).is_file()]

        paths.sort(key=lambda p: str(p))
        logger.debug(f"Found {len(paths)} files for: {source}")
        return paths

    def load(
        self,
        path: Union[str, Path],
        flags: int = cv2.IMREAD_COLOR,
    ) -> Optional[NDArray]:
        """Load an image from file.

        Args:
            path: Path to the image file (supports Unicode).
            flags: OpenCV imread flags (default: IMREAD_COLOR).

        Returns:
            Image as numpy array, or None if loading failed.
        """
        path = Path(path)

        if not path.exists():
            logger.error(f"Image file not found: {path}")
            return None

        if path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            logger.warning(f"Unsupported image format: {path.suffix}")

        try:
            with open(path, "rb") as f:
                data = f.read()

            nparr = np.frombuffer(data, np.uint8)
            image = cv2.imdecode(nparr, flags)

            if image is None:
                logger.error(f"Failed to decode image: {path}")
                return None

            logger.debug(f"Loaded image: {path} ({image.shape})")
            return image

        except OSError as e:
            logger.error(f"Failed to read image file: {path} - {e}")
            return None
        except cv2.error as e:
            logger.error(f"OpenCV error decoding image: {path} - {e}")
            return None

    @staticmethod
    def save(
        path: Union[str, Path],
        image: NDArray,
        params: Optional[list[int]] = None,
    ) -> bool:
        """Save an image to file (with Unicode path support).

        Args:
            path: Output path; the extension selects the encoder.
            image: Image to save.
            params: Optional imwrite parameters.

        Returns:
            True if successful, False otherwise.
        """
        path = Path(path)

        try:
            success, encoded = cv2.imencode(path.suffix.lower(), image, params or [])

            if not success:
                logger.error(f"Failed to encode image for: {path}")
                return False

            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(encoded.tobytes())

            logger.debug(f"Saved image: {path}")
            return True

        except OSError as e:
            logger.error(f"Failed to save image: {path} - {e}")
            return False
        except cv2.error as e:
            logger.error(f"OpenCV error encoding image: {path} - {e}")
            return False
