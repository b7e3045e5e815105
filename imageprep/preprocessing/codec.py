"""
Image decode/encode helpers backed by OpenCV.

Files are read and written through numpy buffers (``cv2.imdecode`` /
``cv2.imencode``) so non-ASCII paths work on every platform.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """The file could not be read or is not a decodable image."""


class ImageWriteError(Exception):
    """The image could not be encoded or written to disk."""


def read_image(path: Union[str, Path]) -> np.ndarray:
    """
    Decode an image file, keeping its channels and bit depth.

    Raises:
        ImageDecodeError: If the file is unreadable or not an image.
    """
    try:
        buffer = np.fromfile(str(path), dtype=np.uint8)
    except OSError as e:
        raise ImageDecodeError(f"Cannot read {path}: {e}") from e

    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if image is None:
        raise ImageDecodeError(f"Cannot decode image data in {path}")
    return image


def _encode_params(extension: str, quality: int) -> list:
    # PNG is lossless, quality only applies to JPEG
    if extension in (".jpg", ".jpeg"):
        return [cv2.IMWRITE_JPEG_QUALITY, quality]
    return []


def write_image(image: np.ndarray, path: Union[str, Path], quality: int = 95) -> None:
    """
    Encode ``image`` in the format implied by the path extension and write it.

    Raises:
        ImageWriteError: If encoding fails or the filesystem rejects the write.
    """
    path = Path(path)
    extension = path.suffix.lower()

    # JPEG has no alpha channel
    if extension in (".jpg", ".jpeg") and image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    try:
        ok, encoded = cv2.imencode(extension, image, _encode_params(extension, quality))
    except cv2.error as e:
        raise ImageWriteError(f"Cannot encode {path}: {e}") from e
    if not ok:
        raise ImageWriteError(f"Cannot encode {path} as {extension}")

    try:
        encoded.tofile(str(path))
    except OSError as e:
        # tofile may have created or truncated the target before failing
        if path.is_file():
            try:
                path.unlink()
            except OSError as cleanup_error:
                logger.debug(f"Could not remove partial file {path}: {cleanup_error}")
        raise ImageWriteError(f"Cannot write {path}: {e}") from e
    logger.debug(f"Saved image to {path}")
